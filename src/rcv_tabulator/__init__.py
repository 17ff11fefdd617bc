"""
Ranked choice ballot tabulation.
"""

from rcv_tabulator.ballots import Ballot, BallotStatus, Option
from rcv_tabulator.engines import IRVEngine, TabulationEngine, irv_engine
from rcv_tabulator.integrity import ballots_hash, check_integrity, compute_integrity
from rcv_tabulator.registry import (
    get_all_engines,
    get_engine,
    get_engine_for_method,
    get_supported_methods,
    register_engine,
    register_method,
)
from rcv_tabulator.results import TabulationResult
from rcv_tabulator.settings import TabulationSettings
from rcv_tabulator.validation import ValidationReport, validate_ballots

__version__ = "0.1.0"

__all__ = [
    "Ballot",
    "BallotStatus",
    "Option",
    "TabulationEngine",
    "IRVEngine",
    "irv_engine",
    "ballots_hash",
    "check_integrity",
    "compute_integrity",
    "get_all_engines",
    "get_engine",
    "get_engine_for_method",
    "get_supported_methods",
    "register_engine",
    "register_method",
    "TabulationResult",
    "TabulationSettings",
    "ValidationReport",
    "validate_ballots",
]
