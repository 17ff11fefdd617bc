"""
Contains the TabulationEngine class, the interface every voting method engine implements.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Tuple, Union

import abc
import datetime
import logging
import time

from rcv_tabulator.ballots import Ballot, Option
from rcv_tabulator.integrity import ballots_hash
from rcv_tabulator.results import Integrity, Round, TabulationResult, TabulationSummary
from rcv_tabulator.settings import TabulationSettings
from rcv_tabulator.validation import ValidationReport, malformed_ballot_result, validate_ballots

logger = logging.getLogger(__name__)

BallotInput = Union[Ballot, Dict]
OptionInput = Union[Option, Dict]
SettingsInput = Union[TabulationSettings, Dict, None]


def _as_settings(settings: SettingsInput) -> TabulationSettings:
    if isinstance(settings, TabulationSettings):
        return settings
    return TabulationSettings.from_dict(settings)


def _as_ballots(ballots: Iterable[BallotInput]) -> List[Ballot]:
    return [b if isinstance(b, Ballot) else Ballot.from_dict(b) for b in ballots]


def _as_options(options: Iterable[OptionInput]) -> List[Option]:
    return [o if isinstance(o, Option) else Option.from_dict(o) for o in options]


class TabulationEngine(abc.ABC):
    """
    Template class for voting method engines. Subclasses set the identifying attributes and implement
    `_run_tabulation`; input coercion, ballot filtering, integrity hashing, timing and failure handling
    happen here so that every engine returns a well formed result.

    Engines hold no per-run state, one instance can serve concurrent tabulations.
    """

    id: str = ""
    display_name: str = ""
    description: str = ""
    supports_multi_winner: bool = False

    def validate(
        self,
        ballots: Iterable[BallotInput],
        options: Iterable[OptionInput],
        settings: SettingsInput = None,
    ) -> ValidationReport:
        """Run ballot validation. See `rcv_tabulator.validation.validate_ballots`.

        :param ballots: Ballots, as `Ballot` objects or their stored dictionary shape.
        :type ballots: Iterable[Union[Ballot, Dict]]
        :param options: Contest options, as `Option` objects or their stored dictionary shape.
        :type options: Iterable[Union[Option, Dict]]
        :param settings: Tabulation settings or a settings dictionary, defaults to None (all defaults)
        :type settings: Union[TabulationSettings, Dict, None], optional
        :rtype: ValidationReport
        """
        ballot_objs = []
        malformed = []
        for ballot in ballots:
            if isinstance(ballot, Ballot):
                ballot_objs.append(ballot)
                continue
            try:
                ballot_objs.append(Ballot.from_dict(ballot))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                malformed.append(malformed_ballot_result(ballot, e))

        return validate_ballots(ballot_objs, _as_options(options), _as_settings(settings), malformed=malformed)

    def tabulate(
        self,
        ballots: Iterable[BallotInput],
        options: Iterable[OptionInput],
        settings: SettingsInput = None,
    ) -> TabulationResult:
        """Tabulate the contest. Never raises: internal errors are returned as a result with `success` False
        and an `error` message, empty rounds and a zeroed summary.

        :param ballots: Ballots, as `Ballot` objects or their stored dictionary shape.
        :type ballots: Iterable[Union[Ballot, Dict]]
        :param options: Contest options, as `Option` objects or their stored dictionary shape.
        :type options: Iterable[Union[Option, Dict]]
        :param settings: Tabulation settings or a settings dictionary, defaults to None (all defaults)
        :type settings: Union[TabulationSettings, Dict, None], optional
        :rtype: TabulationResult
        """
        start_time = time.perf_counter()
        n_ballots = 0
        n_options = 0

        try:
            ballots = list(ballots)
            options = list(options)
            n_ballots = len(ballots)
            n_options = len(options)

            settings = _as_settings(settings)
            ballot_objs = _as_ballots(ballots)
            option_objs = _as_options(options)

            countable_ballots = [b for b in ballot_objs if b.is_countable(settings)]
            active_options = [o for o in option_objs if o.active]

            integrity = Integrity(
                ballot_count=len(countable_ballots),
                option_count=len(active_options),
                ballots_hash=ballots_hash(countable_ballots),
            )

            rounds, summary = self._run_tabulation(countable_ballots, active_options, settings, integrity)
            summary.total_ballots = len(ballot_objs)
            summary.valid_ballots = len(countable_ballots)

        except Exception as e:
            logger.exception("%s tabulation failed", self.id)
            return TabulationResult(
                method=self.id,
                method_display_name=self.display_name,
                success=False,
                error=str(e) or f"Unknown error during tabulation ({e.__class__.__name__})",
                rounds=[],
                summary=TabulationSummary.empty(total_ballots=n_ballots),
                computed_at=self._now(),
                compute_time_ms=self._elapsed_ms(start_time),
                integrity=Integrity(ballot_count=0, option_count=n_options, ballots_hash=""),
            )

        return TabulationResult(
            method=self.id,
            method_display_name=self.display_name,
            success=True,
            rounds=rounds,
            summary=summary,
            computed_at=self._now(),
            compute_time_ms=self._elapsed_ms(start_time),
            integrity=integrity,
        )

    @abc.abstractmethod
    def _run_tabulation(
        self,
        countable_ballots: List[Ballot],
        active_options: List[Option],
        settings: TabulationSettings,
        integrity: Integrity,
    ) -> Tuple[List[Round], TabulationSummary]:
        """
        Compute the rounds and summary of a contest.

        :param countable_ballots: Ballots whose status lets them be counted, in input order.
        :param active_options: Active options, in input order.
        :param settings: Tabulation settings.
        :param integrity: Integrity block of the countable ballots, available for seeding.
        :return: Ordered rounds and the summary. Ballot totals in the summary are filled in by the caller.
        """
        pass

    @staticmethod
    def _now() -> str:
        return datetime.datetime.now(datetime.timezone.utc).isoformat()

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 3)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

