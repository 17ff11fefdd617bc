"""
Functions that write tabulation results to disk. Every writer creates the output directory if it is missing
and names the file after the contest id.
"""

from typing import Union

import json
import pathlib

from rcv_tabulator.package_types import Path
from rcv_tabulator.results import TabulationResult
from rcv_tabulator.tables import final_rankings_table, round_by_round_table, transfers_table
from rcv_tabulator.validation import ValidationReport

import rcv_tabulator.util as util


def _outfile(save_dir: Union[str, Path], contest_id: str, suffix: str) -> pathlib.Path:
    save_dir = pathlib.Path(save_dir)
    util.verifyDir(save_dir)
    return save_dir / f"{contest_id}{suffix}"


def write_result_json(result: TabulationResult, save_dir: Union[str, Path], contest_id: str) -> pathlib.Path:
    """Write the full result, in its cached dictionary shape, to `<contest_id>.json`.

    :param result: Tabulation result, successful or not
    :type result: TabulationResult
    :param save_dir: Output directory
    :type save_dir: Union[str, Path]
    :param contest_id: Contest id, used as file stem
    :type contest_id: str
    :return: Path of the written file
    :rtype: pathlib.Path
    """
    outfile = _outfile(save_dir, contest_id, ".json")
    with open(outfile, "w") as result_file:
        json.dump(result.to_dict(), result_file, indent=2)
    return outfile


def write_round_by_round_csv(result: TabulationResult, save_dir: Union[str, Path], contest_id: str) -> pathlib.Path:
    """Write the round by round table to `<contest_id>_round_by_round.csv`."""
    outfile = _outfile(save_dir, contest_id, "_round_by_round.csv")
    round_by_round_table(result).to_csv(outfile)
    return outfile


def write_final_rankings_csv(result: TabulationResult, save_dir: Union[str, Path], contest_id: str) -> pathlib.Path:
    outfile = _outfile(save_dir, contest_id, "_final_rankings.csv")
    final_rankings_table(result).to_csv(outfile, index=False)
    return outfile


def write_transfers_csv(result: TabulationResult, save_dir: Union[str, Path], contest_id: str) -> pathlib.Path:
    outfile = _outfile(save_dir, contest_id, "_transfers.csv")
    transfers_table(result).to_csv(outfile, index=False)
    return outfile


def write_validation_report(report: ValidationReport, save_dir: Union[str, Path], contest_id: str) -> pathlib.Path:
    """Write a validation report to `<contest_id>_validation.json`.

    :param report: Validation report
    :type report: ValidationReport
    :param save_dir: Output directory
    :type save_dir: Union[str, Path]
    :param contest_id: Contest id, used as file stem
    :type contest_id: str
    :return: Path of the written file
    :rtype: pathlib.Path
    """
    outfile = _outfile(save_dir, contest_id, "_validation.json")
    with open(outfile, "w") as report_file:
        json.dump(report.to_dict(), report_file, indent=2)
    return outfile
