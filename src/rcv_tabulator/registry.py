"""
Registry of tabulation engines, keyed by engine id, and the map from a contest's voting method to its engine.
"""

from typing import Dict, List, Optional

from rcv_tabulator.engines.base import TabulationEngine
from rcv_tabulator.engines.irv import irv_engine

_engines: Dict[str, TabulationEngine] = {}

# voting method name (as configured on a contest) -> engine id
_method_to_engine = {
    "IRV": "irv",
}


def register_engine(engine: TabulationEngine) -> None:
    """Register an engine under its id, replacing any engine already registered with that id.

    :param engine: Engine instance
    :type engine: TabulationEngine
    """
    if not isinstance(engine, TabulationEngine):
        raise TypeError(f"expected a TabulationEngine, got {type(engine).__name__}")
    if not engine.id:
        raise ValueError(f"{engine!r} has no id")
    _engines[engine.id] = engine


def register_method(method: str, engine_id: str) -> None:
    """Map a voting method name to a registered engine id.

    :raises KeyError: if no engine is registered under `engine_id`
    """
    if engine_id not in _engines:
        raise KeyError(f"no engine registered with id: {engine_id}")
    _method_to_engine[method] = engine_id


def get_engine(engine_id: str) -> Optional[TabulationEngine]:
    return _engines.get(engine_id)


def get_all_engines() -> List[TabulationEngine]:
    return list(_engines.values())


def get_engine_for_method(method: str) -> Optional[TabulationEngine]:
    """Return the engine that tabulates contests using voting method `method`, e.g. "IRV".

    :param method: Voting method name, as configured on the contest. Case sensitive.
    :type method: str
    :return: The engine, or None if the method is not supported.
    :rtype: Optional[TabulationEngine]
    """
    engine_id = _method_to_engine.get(method)
    return _engines.get(engine_id) if engine_id else None


def get_supported_methods() -> List[str]:
    return [method for method, engine_id in _method_to_engine.items() if engine_id in _engines]


# default engines
register_engine(irv_engine)
