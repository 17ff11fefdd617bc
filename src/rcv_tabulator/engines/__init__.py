from rcv_tabulator.engines.base import TabulationEngine
from rcv_tabulator.engines.irv import IRVEngine, irv_engine

__all__ = ["TabulationEngine", "IRVEngine", "irv_engine"]
