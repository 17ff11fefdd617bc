"""
Contains the TabulationSettings class and the loader for its defaults.
"""

from __future__ import annotations
from typing import Dict, Optional

import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)

ELIMINATE_ALL = "eliminate-all"
PREVIOUS_ROUND = "previous-round"
RANDOM = "random"


def load_settings_fields() -> Dict:
    """Read field types and defaults from tabulation_settings.json, stored alongside this module.

    :return: Dictionary keyed by snake_case field name. Values hold the camelCase key, type name and default.
    :rtype: Dict
    """
    settings_fpath = f"{os.path.dirname(__file__)}/tabulation_settings.json"
    if os.path.isfile(settings_fpath) is False:
        raise RuntimeError(
            f"(developer error) Looking for tabulation_settings.json. Not a valid file path: {settings_fpath}"
        )

    with open(settings_fpath) as settings_file:
        return json.load(settings_file)


_SETTINGS_FIELDS = load_settings_fields()


@dataclasses.dataclass(frozen=True)
class TabulationSettings:
    """Per-run tabulation policy.

    :param allow_partial_ranking: If False, an empty ranking is a validation error rather than an exhausted ballot.
    :param tie_break_method: Policy when several options tie for fewest votes: 'eliminate-all', 'previous-round' or 'random'.
    :param random_seed: Seed for the 'random' tie break. If None, the ballots hash is used.
    :param exclude_duplicates: If True, SUSPECTED_DUPLICATE ballots are not counted.
    :param exclude_removed: If True, REMOVED ballots are not counted.
    :param max_ranks: If set, ballots ranking more options than this receive a validation warning.
    """

    allow_partial_ranking: bool = _SETTINGS_FIELDS["allow_partial_ranking"]["default"]
    tie_break_method: str = _SETTINGS_FIELDS["tie_break_method"]["default"]
    random_seed: Optional[str] = _SETTINGS_FIELDS["random_seed"]["default"]
    exclude_duplicates: bool = _SETTINGS_FIELDS["exclude_duplicates"]["default"]
    exclude_removed: bool = _SETTINGS_FIELDS["exclude_removed"]["default"]
    max_ranks: Optional[int] = _SETTINGS_FIELDS["max_ranks"]["default"]

    def __post_init__(self) -> None:
        for field in ("allow_partial_ranking", "exclude_duplicates", "exclude_removed"):
            if not isinstance(getattr(self, field), bool):
                raise TypeError(f"{field} must be a bool, got {getattr(self, field)!r}")

        choices = _SETTINGS_FIELDS["tie_break_method"]["choices"]
        if self.tie_break_method not in choices:
            raise ValueError(f"tie_break_method must be one of {choices}, got {self.tie_break_method!r}")

        if self.max_ranks is not None and (isinstance(self.max_ranks, bool) or not isinstance(self.max_ranks, int)):
            raise TypeError(f"max_ranks must be an int or None, got {self.max_ranks!r}")

        if self.random_seed is not None:
            object.__setattr__(self, "random_seed", str(self.random_seed))

    @classmethod
    def from_dict(cls, dct: Optional[Dict]) -> TabulationSettings:
        """Build settings from a dictionary with either snake_case or camelCase keys. Missing keys take their
        defaults from tabulation_settings.json, as do keys set to None. Unknown keys are ignored.

        :param dct: Settings dictionary, may be None.
        :type dct: Optional[Dict]
        :rtype: TabulationSettings
        """
        camel_to_field = {spec["key"]: field for field, spec in _SETTINGS_FIELDS.items()}

        kwargs = {}
        for key, value in (dct or {}).items():
            field = key if key in _SETTINGS_FIELDS else camel_to_field.get(key)
            if field is None:
                logger.warning('"%s" is an unrecognized tabulation setting, it will be ignored.', key)
                continue
            # null values fall back to the default
            if value is not None:
                kwargs[field] = value

        return cls(**kwargs)

    @classmethod
    def from_contest(cls, contest_settings: Optional[Dict], deduplication_enabled: bool = False) -> TabulationSettings:
        """Derive tabulation settings from a contest's stored settings object.

        Partial ranking is allowed unless the contest explicitly disallows it, ties eliminate all tied options
        unless another method is configured, and removed ballots are always excluded.

        :param contest_settings: The contest's settings dictionary (camelCase keys).
        :type contest_settings: Optional[Dict]
        :param deduplication_enabled: Whether the contest flags suspected duplicates for exclusion, defaults to False
        :type deduplication_enabled: bool, optional
        :rtype: TabulationSettings
        """
        contest_settings = contest_settings or {}
        return cls(
            allow_partial_ranking=contest_settings.get("allowPartialRanking") is not False,
            tie_break_method=contest_settings.get("tieBreakMethod") or ELIMINATE_ALL,
            random_seed=contest_settings.get("randomSeed"),
            exclude_duplicates=bool(deduplication_enabled),
            exclude_removed=True,
            max_ranks=contest_settings.get("maxRanks"),
        )

    def to_dict(self) -> Dict:
        return {_SETTINGS_FIELDS[field.name]["key"]: getattr(self, field.name) for field in dataclasses.fields(self)}
