"""
Functions that read ballots and options from files.

Every parser returns a dictionary with keys `contest` (contest metadata, possibly empty),
`options` (list of Option) and `ballots` (list of Ballot).
"""

from typing import Dict, List, Optional

import json
import logging
import os
import re

import pandas as pd

from rcv_tabulator.ballots import Ballot, BallotStatus, Option
from rcv_tabulator.package_types import ContestDict, ParserDict, Path

logger = logging.getLogger(__name__)

RANK_COLUMN = re.compile(r"^Rank\s*(\d+)$", re.IGNORECASE)


def get_parser_dict() -> ParserDict:
    """
    Return dictionary of parser functions usable in a contest set, parser_name: parser function.
    Each function takes a contest dictionary with keys ballots_path, options_path and category_id.
    """
    return {
        "export_json": _parse_export_json_contest,
        "ballot_csv": _parse_ballot_csv_contest,
    }


def _check_path(path: Path) -> None:
    if os.path.isfile(path) is False:
        raise RuntimeError(f"not a valid file path: {path}")


def _in_category(obj, category_id: Optional[str]) -> bool:
    return category_id is None or obj.category_id == category_id


def read_export_json(path: Path, category_id: Optional[str] = None) -> Dict:
    """Read a contest export document.

    The document holds `contest` metadata, a list of `options` ({id, name, active?, categoryId?}) and a list
    of `ballots` ({id, ranking, status?, categoryId?}). Ranking entries are either option ids or
    {optionId, optionName} objects. Options without an `active` field are active.

    :param path: Path to the JSON file
    :type path: Path
    :param category_id: If given, only options and ballots in this category are returned, defaults to None
    :type category_id: Optional[str], optional
    :return: Dictionary with keys contest, options and ballots
    :rtype: Dict
    """
    _check_path(path)
    with open(path) as export_file:
        export = json.load(export_file)

    options = [Option.from_dict(o) for o in export.get("options", [])]

    ballots = []
    for b in export.get("ballots", []):
        ranking = [r["optionId"] if isinstance(r, dict) else r for r in b.get("ranking") or []]
        ballots.append(Ballot.from_dict({**b, "ranking": ranking}))

    options = [o for o in options if _in_category(o, category_id)]
    ballots = [b for b in ballots if _in_category(b, category_id)]

    logger.info("read %d ballots and %d options from %s", len(ballots), len(options), path)
    return {"contest": export.get("contest", {}), "options": options, "ballots": ballots}


def read_options_csv(path: Path) -> List[Option]:
    """Read options from a CSV with columns id, name and optionally active and categoryId.

    :param path: Path to the CSV file
    :type path: Path
    :rtype: List[Option]
    """
    _check_path(path)
    df = pd.read_csv(path, dtype=object, keep_default_na=False)

    missing = {"id", "name"} - set(df.columns)
    if missing:
        raise RuntimeError(f"options file {path} is missing columns: {sorted(missing)}")

    options = []
    for row in df.to_dict("records"):
        active = row.get("active", "")
        options.append(
            Option(
                id=row["id"],
                name=row["name"],
                active=active.strip().title() != "False" if active else True,
                category_id=row.get("categoryId") or None,
            )
        )
    return options


def read_ballot_csv(
    path: Path, options: Optional[List[Option]] = None, category_id: Optional[str] = None
) -> List[Ballot]:
    """Read ballots from a rank format CSV, one ballot per row.

    Columns are BallotID, an optional Status and CategoryID, and Rank1 ... RankN. Blank rank cells are skipped.
    If `options` are given, rank cells holding an option name instead of an option id are converted to the id.

    :param path: Path to the CSV file
    :type path: Path
    :param options: Contest options, used to resolve option names, defaults to None
    :type options: Optional[List[Option]], optional
    :param category_id: If given, only ballots in this category are returned, defaults to None
    :type category_id: Optional[str], optional
    :rtype: List[Ballot]
    """
    _check_path(path)
    df = pd.read_csv(path, dtype=object, keep_default_na=False)

    if "BallotID" not in df.columns:
        raise RuntimeError(f"ballot file {path} has no BallotID column")

    rank_cols = sorted(
        [col for col in df.columns if RANK_COLUMN.match(col.strip())],
        key=lambda col: int(RANK_COLUMN.match(col.strip()).group(1)),
    )
    if not rank_cols:
        raise RuntimeError(f"ballot file {path} has no Rank columns")

    option_ids = {o.id for o in options or []}
    name_to_id = {o.name: o.id for o in options or []}

    ballots = []
    for row in df.to_dict("records"):
        ranking = []
        for col in rank_cols:
            mark = row[col].strip()
            if not mark:
                continue
            if mark not in option_ids and mark in name_to_id:
                mark = name_to_id[mark]
            ranking.append(mark)

        ballots.append(
            Ballot(
                id=row["BallotID"],
                ranking=ranking,
                status=row.get("Status") or BallotStatus.VALID,
                category_id=row.get("CategoryID") or None,
            )
        )

    ballots = [b for b in ballots if _in_category(b, category_id)]
    logger.info("read %d ballots from %s", len(ballots), path)
    return ballots


def _parse_export_json_contest(contest: ContestDict) -> Dict:
    return read_export_json(contest["ballots_path"], category_id=contest.get("category_id"))


def _parse_ballot_csv_contest(contest: ContestDict) -> Dict:
    if not contest.get("options_path"):
        raise RuntimeError(f'contest {contest["contest_id"]}: ballot_csv parser requires an options_path')

    category_id = contest.get("category_id")
    options = [o for o in read_options_csv(contest["options_path"]) if _in_category(o, category_id)]
    ballots = read_ballot_csv(contest["ballots_path"], options=options, category_id=category_id)
    return {"contest": {"id": contest["contest_id"]}, "options": options, "ballots": ballots}
