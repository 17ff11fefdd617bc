"""
Ballot validation.

Validation is advisory. It reports structural problems with each ballot and never
alters the ballots; tabulation does its own filtering independently.
"""

from __future__ import annotations
from typing import Dict, Iterable, List

import dataclasses

from rcv_tabulator.ballots import Ballot, Option
from rcv_tabulator.results import Record
from rcv_tabulator.settings import TabulationSettings


@dataclasses.dataclass
class BallotValidationResult(Record):
    ballot_id: str
    valid: bool
    errors: List[str] = dataclasses.field(default_factory=list)
    warnings: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class ValidationSummary(Record):
    duplicate_rankings: int = 0
    unknown_options: int = 0
    empty_ballots: int = 0


@dataclasses.dataclass
class ValidationReport(Record):
    valid: bool
    total_ballots: int
    valid_ballots: int
    invalid_ballots: int
    ballot_results: List[BallotValidationResult]
    summary: ValidationSummary

    def invalid_ballot_ids(self) -> List[str]:
        return [r.ballot_id for r in self.ballot_results if not r.valid]

    def errors_by_ballot(self) -> Dict[str, List[str]]:
        return {r.ballot_id: r.errors for r in self.ballot_results if r.errors}


def malformed_ballot_result(raw_ballot, error: Exception) -> BallotValidationResult:
    """Result for a stored ballot that could not be read as a Ballot at all."""
    raw_id = raw_ballot.get("id") if isinstance(raw_ballot, dict) else None
    return BallotValidationResult(ballot_id=str(raw_id), valid=False, errors=[f"Malformed ballot: {error}"])


def validate_ballots(
    ballots: Iterable[Ballot],
    options: Iterable[Option],
    settings: TabulationSettings,
    malformed: Iterable[BallotValidationResult] = (),
) -> ValidationReport:
    """Check every ballot for empty rankings, repeated options and options that are unknown or inactive.

    :param ballots: Ballots to check. Status is not considered, every ballot is checked.
    :type ballots: Iterable[Ballot]
    :param options: Contest options. Only active options are valid ranking entries.
    :type options: Iterable[Option]
    :param settings: Tabulation settings. `allow_partial_ranking` decides whether an empty ballot is an error and `max_ranks` adds warnings for over-long rankings.
    :type settings: TabulationSettings
    :param malformed: Results for ballots that failed to convert, added after the checked ballots, defaults to ()
    :type malformed: Iterable[BallotValidationResult], optional
    :return: Report with one result per ballot and aggregate counters.
    :rtype: ValidationReport
    """
    ballots = list(ballots)
    active_option_ids = {o.id for o in options if o.active}

    summary = ValidationSummary()
    results = []

    for ballot in ballots:
        errors = []
        warnings = []

        if not ballot.ranking:
            if not settings.allow_partial_ranking:
                errors.append("Ballot is empty")
            summary.empty_ballots += 1

        seen = set()
        for option_id in ballot.ranking:
            if option_id in seen:
                errors.append(f"Duplicate ranking for option: {option_id}")
                summary.duplicate_rankings += 1
            seen.add(option_id)

            if option_id not in active_option_ids:
                errors.append(f"Unknown option ID: {option_id}")
                summary.unknown_options += 1

        if settings.max_ranks is not None and len(ballot.ranking) > settings.max_ranks:
            warnings.append(f"Ballot ranks {len(ballot.ranking)} options; at most {settings.max_ranks} are allowed")

        results.append(BallotValidationResult(ballot.id, not errors, errors, warnings))

    results.extend(malformed)
    n_valid = sum(r.valid for r in results)

    return ValidationReport(
        valid=n_valid == len(results),
        total_ballots=len(results),
        valid_ballots=n_valid,
        invalid_ballots=len(results) - n_valid,
        ballot_results=results,
        summary=summary,
    )
