"""
Record types making up a tabulation result.

Every record serializes through `to_dict` into the JSON-safe, camelCase shape that
result caches store and results views render. `TabulationResult.from_dict` reads
such a cached blob back.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

import dataclasses
import json

from rcv_tabulator.package_types import ResultDict
from rcv_tabulator.util import to_camel

# tally statuses
ACTIVE = "active"
ELIMINATED = "eliminated"
ELECTED = "elected"


def _serialize(value: Any) -> Any:
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


class Record:
    """Mixin giving dataclasses a camelCase `to_dict`."""

    def to_dict(self) -> ResultDict:
        return {to_camel(field.name): _serialize(getattr(self, field.name)) for field in dataclasses.fields(self)}


@dataclasses.dataclass
class OptionTally(Record):
    option_id: str
    option_name: str
    votes: int
    percentage: float
    status: str = ACTIVE

    @classmethod
    def from_dict(cls, dct: Dict) -> OptionTally:
        return cls(dct["optionId"], dct["optionName"], dct["votes"], dct["percentage"], dct["status"])


@dataclasses.dataclass
class VoteTransfer(Record):
    """Ballots moved from an eliminated option. A `to_option_id` of None means the ballots exhausted."""

    from_option_id: str
    from_option_name: str
    to_option_id: Optional[str]
    to_option_name: Optional[str]
    count: int

    @classmethod
    def from_dict(cls, dct: Dict) -> VoteTransfer:
        return cls(dct["fromOptionId"], dct["fromOptionName"], dct["toOptionId"], dct["toOptionName"], dct["count"])


@dataclasses.dataclass
class ElectionEvent(Record):
    """An option elected or eliminated in a round, with its votes in that round."""

    option_id: str
    option_name: str
    votes: int

    @classmethod
    def from_dict(cls, dct: Dict) -> ElectionEvent:
        return cls(dct["optionId"], dct["optionName"], dct["votes"])


@dataclasses.dataclass
class Round(Record):
    round_number: int
    tallies: List[OptionTally]
    eliminated: List[ElectionEvent]
    elected: Optional[List[ElectionEvent]]
    transfers: List[VoteTransfer]
    active_ballots: int
    exhausted_ballots: int
    total_exhausted: int
    majority_threshold: int
    notes: List[str] = dataclasses.field(default_factory=list)

    def tally_dict(self) -> Dict[str, int]:
        return {t.option_id: t.votes for t in self.tallies}

    @classmethod
    def from_dict(cls, dct: Dict) -> Round:
        return cls(
            round_number=dct["roundNumber"],
            tallies=[OptionTally.from_dict(d) for d in dct["tallies"]],
            eliminated=[ElectionEvent.from_dict(d) for d in dct["eliminated"]],
            elected=None if dct["elected"] is None else [ElectionEvent.from_dict(d) for d in dct["elected"]],
            transfers=[VoteTransfer.from_dict(d) for d in dct["transfers"]],
            active_ballots=dct["activeBallots"],
            exhausted_ballots=dct["exhaustedBallots"],
            total_exhausted=dct["totalExhausted"],
            majority_threshold=dct["majorityThreshold"],
            notes=list(dct["notes"]),
        )


@dataclasses.dataclass
class Winner(Record):
    option_id: str
    option_name: str
    final_votes: int
    final_percentage: float

    @classmethod
    def from_dict(cls, dct: Dict) -> Winner:
        return cls(dct["optionId"], dct["optionName"], dct["finalVotes"], dct["finalPercentage"])


@dataclasses.dataclass
class FinalRanking(Record):
    rank: int
    option_id: str
    option_name: str
    eliminated_in_round: Optional[int]
    final_votes: int

    @classmethod
    def from_dict(cls, dct: Dict) -> FinalRanking:
        return cls(dct["rank"], dct["optionId"], dct["optionName"], dct["eliminatedInRound"], dct["finalVotes"])


@dataclasses.dataclass
class TabulationSummary(Record):
    """
    `exhausted_ballots` is the total after the last round's transfers, so it can be larger than the last
    round's `total_exhausted`.
    """

    winner: Optional[Winner]
    is_tie: bool
    total_ballots: int
    valid_ballots: int
    exhausted_ballots: int
    exhausted_percentage: float
    rounds_count: int
    final_rankings: List[FinalRanking] = dataclasses.field(default_factory=list)
    tied_options: List[ElectionEvent] = dataclasses.field(default_factory=list)
    notes: List[str] = dataclasses.field(default_factory=list)

    @classmethod
    def empty(cls, total_ballots: int = 0) -> TabulationSummary:
        return cls(
            winner=None,
            is_tie=False,
            total_ballots=total_ballots,
            valid_ballots=0,
            exhausted_ballots=0,
            exhausted_percentage=0.0,
            rounds_count=0,
        )

    @classmethod
    def from_dict(cls, dct: Dict) -> TabulationSummary:
        return cls(
            winner=None if dct["winner"] is None else Winner.from_dict(dct["winner"]),
            is_tie=dct["isTie"],
            total_ballots=dct["totalBallots"],
            valid_ballots=dct["validBallots"],
            exhausted_ballots=dct["exhaustedBallots"],
            exhausted_percentage=dct["exhaustedPercentage"],
            rounds_count=dct["roundsCount"],
            final_rankings=[FinalRanking.from_dict(d) for d in dct.get("finalRankings", [])],
            tied_options=[ElectionEvent.from_dict(d) for d in dct.get("tiedOptions", [])],
            notes=list(dct.get("notes", [])),
        )


@dataclasses.dataclass
class Integrity(Record):
    ballot_count: int
    option_count: int
    ballots_hash: str

    @classmethod
    def from_dict(cls, dct: Dict) -> Integrity:
        return cls(dct["ballotCount"], dct["optionCount"], dct["ballotsHash"])


@dataclasses.dataclass
class TabulationResult(Record):
    method: str
    method_display_name: str
    success: bool
    rounds: List[Round]
    summary: TabulationSummary
    computed_at: str
    compute_time_ms: float
    integrity: Integrity
    error: Optional[str] = None

    def to_dict(self) -> ResultDict:
        dct = super().to_dict()
        if self.error is None:
            del dct["error"]
        return dct

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_dict(cls, dct: Dict) -> TabulationResult:
        """Rebuild a result from the dictionary produced by `to_dict`, e.g. a cached result blob.

        :param dct: Result dictionary with camelCase keys.
        :type dct: Dict
        :rtype: TabulationResult
        """
        return cls(
            method=dct["method"],
            method_display_name=dct["methodDisplayName"],
            success=dct["success"],
            rounds=[Round.from_dict(d) for d in dct["rounds"]],
            summary=TabulationSummary.from_dict(dct["summary"]),
            computed_at=dct["computedAt"],
            compute_time_ms=dct["computeTimeMs"],
            integrity=Integrity.from_dict(dct["integrity"]),
            error=dct.get("error"),
        )
