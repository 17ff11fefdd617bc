"""
Module that contains the command line app.
"""
import argparse
import json
import logging
import os
import pathlib

from rcv_tabulator.batch import tabulate_contest_set
from rcv_tabulator.parsers import read_export_json
from rcv_tabulator.registry import get_engine_for_method, get_supported_methods
from rcv_tabulator.settings import TabulationSettings
from rcv_tabulator.tables import round_by_round_table

import rcv_tabulator.write_out as write_out

logger = logging.getLogger(__name__)


def _build_parser():

    p = argparse.ArgumentParser(description="Tabulate ranked choice contests.")
    p.add_argument("--verbose", action="store_true", help="Log debug messages, including round by round decisions.")
    subparsers = p.add_subparsers(dest="command", required=True)

    tab = subparsers.add_parser("tabulate", help="Tabulate a single contest export.")
    tab.add_argument("export_path", help="Path to a contest export JSON file.")
    tab.add_argument(
        "--method",
        help="Voting method. Defaults to the votingMethod in the export, or IRV. "
        f"Supported: {', '.join(get_supported_methods())}",
    )
    tab.add_argument("--settings", help="Path to a JSON file of tabulation settings.")
    tab.add_argument("--category", help="Only tabulate options and ballots in this category.")
    tab.add_argument("--output", help="Directory to write results in. By default the result JSON is printed.")
    tab.add_argument("--validate", action="store_true", help="Also run ballot validation.")
    tab.add_argument("--tables", action="store_true", help="Also produce round by round, ranking and transfer tables.")

    batch = subparsers.add_parser("batch", help="Tabulate every contest in a contest set directory.")
    batch.add_argument("contest_set_path", help="Path to directory containing contest_set.csv and run_config.json.")
    batch.add_argument("--output", help="Directory to write results in, defaults to contest_set_path.")
    batch.add_argument("--fresh", action="store_true", help="Delete the existing results/ directory first.")

    return p


def _read_settings(settings_path, contest):

    if settings_path is None:
        return TabulationSettings.from_contest(contest.get("settings"), contest.get("deduplicationEnabled", False))

    if os.path.isfile(settings_path) is False:
        raise RuntimeError(f"invalid path [settings]: {settings_path}")

    with open(settings_path) as settings_file:
        return TabulationSettings.from_dict(json.load(settings_file))


def _tabulate(args):

    parsed = read_export_json(args.export_path, category_id=args.category)
    contest = parsed["contest"]
    contest_id = contest.get("id") or pathlib.Path(args.export_path).stem

    method = args.method or contest.get("votingMethod") or "IRV"
    engine = get_engine_for_method(method)
    if engine is None:
        logger.error("unsupported voting method: %s. Supported: %s", method, get_supported_methods())
        return 1

    settings = _read_settings(args.settings, contest)

    if args.validate:
        report = engine.validate(parsed["ballots"], parsed["options"], settings)
        logger.info("validation: %d of %d ballots valid", report.valid_ballots, report.total_ballots)
        if args.output:
            write_out.write_validation_report(report, args.output, contest_id)
        else:
            print(json.dumps(report.to_dict(), indent=2))

    result = engine.tabulate(parsed["ballots"], parsed["options"], settings)

    if args.output:
        write_out.write_result_json(result, args.output, contest_id)
        if args.tables and result.success:
            write_out.write_round_by_round_csv(result, args.output, contest_id)
            write_out.write_final_rankings_csv(result, args.output, contest_id)
            write_out.write_transfers_csv(result, args.output, contest_id)
    else:
        print(result.to_json(indent=2))
        if args.tables and result.success:
            print(round_by_round_table(result).to_string())

    if not result.success:
        logger.error("tabulation failed: %s", result.error)
        return 1

    winner = result.summary.winner
    logger.info(
        "%s: %s after %d rounds",
        contest_id,
        f"{winner.option_name} wins" if winner else "no winner",
        result.summary.rounds_count,
    )
    return 0


def _batch(args):

    contest_set_path = args.contest_set_path
    if not os.path.isabs(contest_set_path):
        contest_set_path = f"{os.getcwd()}/{contest_set_path}"

    if not os.path.isdir(contest_set_path):
        raise RuntimeError(f"invalid path [contest_set_path]: {contest_set_path}")

    tabulate_contest_set(contest_set_path, output_path=args.output, fresh_output=args.fresh)
    return 0


def main(argv=None):

    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.command == "tabulate":
        return _tabulate(args)
    return _batch(args)
