"""
Contains the Ballot and Option classes consumed by the tabulation engines.
"""

from __future__ import annotations
from typing import Dict, Optional, Sequence, TYPE_CHECKING

import dataclasses

if TYPE_CHECKING:
    from rcv_tabulator.settings import TabulationSettings


class BallotStatus:
    """Ballot status values assigned by the ballot store."""

    VALID = "VALID"
    SUSPECTED_DUPLICATE = "SUSPECTED_DUPLICATE"
    DEDUPED_IGNORED = "DEDUPED_IGNORED"
    REMOVED = "REMOVED"
    INVALID = "INVALID"

    ALL = frozenset({VALID, SUSPECTED_DUPLICATE, DEDUPED_IGNORED, REMOVED, INVALID})

    # never counted, regardless of settings
    NEVER_COUNTED = frozenset({DEDUPED_IGNORED, INVALID})


@dataclasses.dataclass(frozen=True)
class Option:
    """A candidate or choice in a contest.

    Inactive options never receive votes. Ballots ranking them are counted as
    if that preference was absent.
    """

    id: str
    name: str
    active: bool = True
    category_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str):
            raise TypeError(f"option id must be a string, got {type(self.id).__name__}")
        if not isinstance(self.name, str):
            raise TypeError(f"option name must be a string, got {type(self.name).__name__}")
        if not isinstance(self.active, bool):
            raise TypeError(f"option active flag must be a bool, got {type(self.active).__name__}")

    @classmethod
    def from_dict(cls, dct: Dict) -> Option:
        """Build an option from its stored shape, `{id, name, active}`.

        :param dct: Dictionary with keys id, name and optionally active and categoryId.
        :type dct: Dict
        :rtype: Option
        """
        return cls(
            id=dct["id"],
            name=dct["name"],
            active=dct.get("active", True),
            category_id=dct.get("categoryId"),
        )

    def to_dict(self) -> Dict:
        return {"id": self.id, "name": self.name, "active": self.active}


@dataclasses.dataclass(frozen=True)
class Ballot:
    """One voter's ranking, most preferred option first.

    The ranking may be empty or partial. It is stored as a tuple so that
    tabulation can never write back to it.
    """

    id: str
    ranking: Sequence[str] = ()
    status: str = BallotStatus.VALID
    category_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str):
            raise TypeError(f"ballot id must be a string, got {type(self.id).__name__}")
        if not isinstance(self.ranking, (list, tuple)):
            raise TypeError(f"ballot ranking must be a list or tuple, got {type(self.ranking).__name__}")
        if not all(isinstance(option_id, str) for option_id in self.ranking):
            raise TypeError(f"ballot {self.id} ranking must only contain option id strings")
        if self.status not in BallotStatus.ALL:
            raise ValueError(f"ballot {self.id} has unknown status: {self.status}")
        object.__setattr__(self, "ranking", tuple(self.ranking))

    @classmethod
    def from_dict(cls, dct: Dict) -> Ballot:
        """Build a ballot from its stored shape, `{id, ranking, status}`.

        :param dct: Dictionary with keys id, ranking and optionally status and categoryId.
        :type dct: Dict
        :rtype: Ballot
        """
        return cls(
            id=dct["id"],
            ranking=dct.get("ranking") or (),
            status=dct.get("status", BallotStatus.VALID),
            category_id=dct.get("categoryId"),
        )

    def to_dict(self) -> Dict:
        return {"id": self.id, "ranking": list(self.ranking), "status": self.status}

    def is_countable(self, settings: TabulationSettings) -> bool:
        """Return True if the ballot's status lets it take part in tabulation under `settings`.

        :param settings: Tabulation settings holding the duplicate and removed exclusion policies.
        :type settings: TabulationSettings
        :rtype: bool
        """
        if self.status in BallotStatus.NEVER_COUNTED:
            return False
        if self.status == BallotStatus.REMOVED and settings.exclude_removed:
            return False
        if self.status == BallotStatus.SUSPECTED_DUPLICATE and settings.exclude_duplicates:
            return False
        return True
