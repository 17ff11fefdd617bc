"""
Contains functions used to tabulate a batch of contests described by a contest set directory.
"""

from typing import Dict, List, Optional, Tuple

import abc
import collections
import dataclasses
import datetime
import json
import logging
import os
import pathlib
import shutil

import pandas as pd
import tqdm

from rcv_tabulator import __version__
from rcv_tabulator.package_types import ContestDict, Path
from rcv_tabulator.parsers import get_parser_dict
from rcv_tabulator.registry import get_engine_for_method
from rcv_tabulator.settings import TabulationSettings

import rcv_tabulator.util as util
import rcv_tabulator.write_out as write_out

logger = logging.getLogger(__name__)

parser_dict = get_parser_dict()

# contest_set.csv columns passed on to TabulationSettings
SETTINGS_COLUMNS = [field.name for field in dataclasses.fields(TabulationSettings)]

SUMMARY_COLUMNS = [
    "contest_id",
    "method",
    "success",
    "winner",
    "is_tie",
    "rounds",
    "total_ballots",
    "valid_ballots",
    "invalid_ballots",
    "exhausted_ballots",
    "ballots_hash",
    "n_errors",
]


# typecast functions
def _cast_str(s):
    """
    If string-in-string '"0006"', strip the quotes to '0006'
    If 'None', return None
    else, return str() result
    """
    s = str(s).strip()
    if len(s) > 1 and s[0] == s[-1] and s[0] in "\"'":
        return s[1:-1]
    elif s == "None":
        return None
    else:
        return s


def _cast_int(s):
    if isinstance(s, int):
        return s
    return int(s)


def _cast_bool(s):
    if isinstance(s, bool):
        return s
    if s.strip().title() not in ("True", "False"):
        raise RuntimeError(f'invalid value ({s}) provided for a true/false option. Must be "true" or "false".')
    return s.strip().title() == "True"


def _cast_parser(s):
    if s not in parser_dict:
        raise RuntimeError(f'unrecognized parser "{s}". Must be one of: {list(parser_dict)}')
    return parser_dict[s]


cast_dict = {
    "str": _cast_str,
    "int": _cast_int,
    "bool": _cast_bool,
    "parser": _cast_parser,
}


def _cast_value(value, setting: Dict):
    if value is None or (isinstance(value, float) and pd.isna(value)):
        value = setting["default"]
    return None if value is None else cast_dict[setting["type"]](value)


def _load_package_json(fname: str) -> Dict:
    fpath = f"{os.path.dirname(__file__)}/{fname}"
    if os.path.isfile(fpath) is False:
        raise RuntimeError(f"(developer error) Looking for {fname}. Not a valid file path: {fpath}")

    with open(fpath) as json_file:
        return json.load(json_file)


def _resolve_path(root: pathlib.Path, path: Optional[str]) -> Optional[pathlib.Path]:
    # absolute paths are left as they are
    return None if path is None else root / path


def _read_contest_set(
    contest_set_path: Path, override_ballots_root_dir: Optional[Path] = None
) -> Tuple[List[ContestDict], Dict]:
    """Read contest_set.csv and run_config.json from a contest set directory.

    :param contest_set_path: Directory containing contest_set.csv and run_config.json
    :type contest_set_path: Path
    :param override_ballots_root_dir: Directory that relative ballot and option paths are resolved against,
        overriding `ballots_path_root` in run_config.json, defaults to None
    :type override_ballots_root_dir: Optional[Path], optional
    :return: List of contest dictionaries, one per contest to tabulate, and the completed run config
    :rtype: Tuple[List[ContestDict], Dict]
    """
    contest_set_path = pathlib.Path(contest_set_path)

    # settings/defaults
    contest_set_settings = _load_package_json("contest_set_settings.json")
    run_config_settings = _load_package_json("run_config_settings.json")

    # read run_config.json
    run_config_fpath = contest_set_path / "run_config.json"
    if os.path.isfile(run_config_fpath) is False:
        raise RuntimeError(f"not a valid file path: {run_config_fpath}")

    with open(run_config_fpath) as run_config_file:
        run_config = json.load(run_config_file)

    for field in run_config:
        if field not in run_config_settings:
            logger.info('"%s" is an unrecognized option in run_config.json, it will be ignored.', field)

    # add in defaults for missing options
    run_config = {
        field: _cast_value(run_config.get(field), setting) for field, setting in run_config_settings.items()
    }

    ballots_root = pathlib.Path(override_ballots_root_dir or run_config["ballots_path_root"] or ".")
    if not ballots_root.is_absolute():
        ballots_root = contest_set_path / ballots_root

    # read contest_set.csv
    contest_set_fpath = contest_set_path / "contest_set.csv"
    if os.path.isfile(contest_set_fpath) is False:
        raise RuntimeError(f"not a valid file path: {contest_set_fpath}")

    contest_set_df = pd.read_csv(contest_set_fpath, dtype=object)

    for col in contest_set_df.columns:
        if col not in contest_set_settings:
            logger.info('"%s" is an unrecognized column in contest_set.csv, it will be ignored.', col)

    # one dict per row, missing columns and empty cells take their defaults
    valid_contests = []
    for row_num, raw_row in enumerate(contest_set_df.to_dict("records"), start=1):

        row = {col: _cast_value(raw_row.get(col), setting) for col, setting in contest_set_settings.items()}

        if row["contest_id"] is None or row["ballots_path"] is None:
            raise RuntimeError(f"contest_set.csv row {row_num} must have a contest_id and a ballots_path")

        if row["ignore_contest"]:
            logger.info("ignoring contest: %s", row["contest_id"])
            continue

        valid_contests.append(
            {
                "contest_id": row["contest_id"],
                "method": row["method"],
                "parser": row["parser"],
                "ballots_path": _resolve_path(ballots_root, row["ballots_path"]),
                "options_path": _resolve_path(ballots_root, row["options_path"]),
                "category_id": row["category_id"],
                "settings": {k: row[k] for k in SETTINGS_COLUMNS if row[k] is not None},
            }
        )

    contest_ids = [c["contest_id"] for c in valid_contests]
    duplicated = sorted({i for i in contest_ids if contest_ids.count(i) > 1})
    if duplicated:
        raise RuntimeError(f"contest_set.csv has repeated contest_id values: {duplicated}")

    # store file locations
    run_config["contest_set_file_path"] = contest_set_fpath
    run_config["run_config_file_path"] = run_config_fpath

    return valid_contests, run_config


# step functions
def _parse_contest(contest: ContestDict) -> Dict:
    return contest["parser"](contest)


def _resolve_engine(method: str):
    engine = get_engine_for_method(method)
    if engine is None:
        raise RuntimeError(f"unsupported voting method: {method}")
    return engine


def _contest_settings(contest: ContestDict) -> TabulationSettings:
    return TabulationSettings.from_dict(contest["settings"])


def _validate(engine, parsed, settings):
    return engine.validate(parsed["ballots"], parsed["options"], settings)


def _tabulate(engine, parsed, settings):
    return engine.tabulate(parsed["ballots"], parsed["options"], settings)


def _check_result(result) -> None:
    if not result.success:
        raise RuntimeError(f"tabulation failed: {result.error}")


class _Steps(abc.ABC):
    """
    Runs an ordered set of steps for one contest. A step runs once its condition is met and every step it
    depends on has succeeded. A step that raises is recorded in the error logs and does not stop later
    steps that do not depend on it.
    """

    def __init__(self, contest, output_config, results_dir, pbar_desc):

        self.contest = contest
        self.output_config = output_config
        self.results_dir = results_dir
        self.pbar_desc = pbar_desc
        self.error_log_writers = []

        self.state_data = {
            "n_errors": 0,
            "parsed": None,
            "engine": None,
            "settings": None,
            "validation_report": None,
            "result": None,
        }
        self.steps = {}

    def update_error_log_writers(self, writers_list):
        self.error_log_writers = writers_list if isinstance(writers_list, list) else [writers_list]

    def refresh_steps(self):

        # step args are rebuilt from state_data, keep bookkeeping across the rebuild
        cache_keys = ["success", "order"]
        cache = collections.defaultdict(dict)
        for k1 in self.steps:
            for k2 in cache_keys:
                if k2 in self.steps[k1]:
                    cache[k1].update({k2: self.steps[k1][k2]})

        self.steps = self.generate_steps()

        for k in self.steps:
            for cache_key in cache_keys:
                if cache_key in cache[k]:
                    self.steps[k][cache_key] = cache[k][cache_key]

    @abc.abstractmethod
    def generate_steps(self):
        pass

    def n_steps(self):
        return len(self.steps.keys())

    def next_step(self):

        remaining_steps = [
            (k, step)
            for k, step in self.steps.items()
            if step["success"] is None  # step not attempted yet
            and step["condition"]  # step conditions are met
            and all(self.steps[dep_k]["success"] for dep_k in step["depends_on"])  # all step dependencies are met
        ]

        if not remaining_steps:
            return False
        else:
            return remaining_steps[0]

    def run_steps(self):

        self.state_data["n_errors"] = 0

        # init
        self.refresh_steps()
        for step_num, k in enumerate(self.steps, start=1):
            self.steps[k]["success"] = None
            self.steps[k]["order"] = step_num

        step_reached = 0

        pbar = tqdm.tqdm(
            total=self.n_steps(),
            bar_format="{l_bar}{bar}|{postfix}",
            colour="GREEN",
        )
        pbar.set_description(self.pbar_desc)

        next_step = self.next_step()
        while next_step:

            step_name, step_details = next_step

            try:

                pbar.set_postfix_str(step_name)

                if step_details["return_key"]:
                    self.state_data.update({step_details["return_key"]: step_details["f"](*step_details["args"])})
                else:
                    step_details["f"](*step_details["args"])

            except Exception as e:

                self.steps[step_name]["success"] = False
                logger.debug("contest %s: step %s failed", self.contest["contest_id"], step_name, exc_info=True)

                for writer in self.error_log_writers:
                    writer.write([self.contest["contest_id"], step_name, repr(e)])
                self.state_data["n_errors"] += 1

            else:
                self.steps[step_name]["success"] = True

            finally:
                pbar.update(step_details["order"] - step_reached)
                step_reached = step_details["order"]

            self.refresh_steps()
            next_step = self.next_step()

        pbar.update(self.n_steps() - step_reached)
        pbar.set_postfix_str("complete")
        pbar.close()

    def return_results(self):
        return self.state_data


class _TabulateSteps(_Steps):
    def generate_steps(self):

        contest_id = self.contest["contest_id"]
        parsed = self.state_data["parsed"]
        engine = self.state_data["engine"]
        settings = self.state_data["settings"]
        result = self.state_data["result"]

        return collections.OrderedDict(
            [
                (
                    "parse",
                    {
                        "f": _parse_contest,
                        "args": [self.contest],
                        "condition": True,
                        "depends_on": [],
                        "return_key": "parsed",
                    },
                ),
                (
                    "resolve_engine",
                    {
                        "f": _resolve_engine,
                        "args": [self.contest["method"]],
                        "condition": True,
                        "depends_on": [],
                        "return_key": "engine",
                    },
                ),
                (
                    "settings",
                    {
                        "f": _contest_settings,
                        "args": [self.contest],
                        "condition": True,
                        "depends_on": [],
                        "return_key": "settings",
                    },
                ),
                (
                    "validate",
                    {
                        "f": _validate,
                        "args": [engine, parsed, settings],
                        "condition": True,
                        "depends_on": ["parse", "resolve_engine", "settings"],
                        "return_key": "validation_report",
                    },
                ),
                (
                    "validation_report",
                    {
                        "f": write_out.write_validation_report,
                        "args": [self.state_data["validation_report"], self.results_dir, contest_id],
                        "condition": self.output_config.get("validation_report"),
                        "depends_on": ["validate"],
                        "return_key": None,
                    },
                ),
                (
                    "tabulate",
                    {
                        "f": _tabulate,
                        "args": [engine, parsed, settings],
                        "condition": True,
                        "depends_on": ["parse", "resolve_engine", "settings"],
                        "return_key": "result",
                    },
                ),
                (
                    "result_json",
                    {
                        "f": write_out.write_result_json,
                        "args": [result, self.results_dir, contest_id],
                        "condition": self.output_config.get("result_json"),
                        "depends_on": ["tabulate"],
                        "return_key": None,
                    },
                ),
                (
                    "check_result",
                    {
                        "f": _check_result,
                        "args": [result],
                        "condition": True,
                        "depends_on": ["tabulate"],
                        "return_key": None,
                    },
                ),
                (
                    "round_by_round_table",
                    {
                        "f": write_out.write_round_by_round_csv,
                        "args": [result, self.results_dir, contest_id],
                        "condition": self.output_config.get("round_by_round_table"),
                        "depends_on": ["check_result"],
                        "return_key": None,
                    },
                ),
                (
                    "final_rankings_table",
                    {
                        "f": write_out.write_final_rankings_csv,
                        "args": [result, self.results_dir, contest_id],
                        "condition": self.output_config.get("final_rankings_table"),
                        "depends_on": ["check_result"],
                        "return_key": None,
                    },
                ),
                (
                    "transfers_table",
                    {
                        "f": write_out.write_transfers_csv,
                        "args": [result, self.results_dir, contest_id],
                        "condition": self.output_config.get("transfers_table"),
                        "depends_on": ["check_result"],
                        "return_key": None,
                    },
                ),
            ]
        )


def _summary_row(contest: ContestDict, state_data: Dict) -> Dict:

    row = {col: None for col in SUMMARY_COLUMNS}
    row.update(
        {
            "contest_id": contest["contest_id"],
            "method": contest["method"],
            "success": False,
            "n_errors": state_data["n_errors"],
        }
    )

    report = state_data.get("validation_report")
    if report is not None:
        row["invalid_ballots"] = report.invalid_ballots

    result = state_data.get("result")
    if result is not None:
        summary = result.summary
        row.update(
            {
                "success": result.success,
                "winner": summary.winner.option_name if summary.winner else None,
                "is_tie": summary.is_tie,
                "rounds": summary.rounds_count,
                "total_ballots": summary.total_ballots,
                "valid_ballots": summary.valid_ballots,
                "exhausted_ballots": summary.exhausted_ballots,
                "ballots_hash": result.integrity.ballots_hash,
            }
        )

    return row


def _write_input_dir(results_dir, run_config, start_time, end_time):

    # copy input files
    result_log_dir = results_dir / "inputs"
    util.verifyDir(result_log_dir)

    with open(result_log_dir / "pkg_info.txt", "w") as pkg_info:
        pkg_info.write(f"version: {__version__}\n")
        pkg_info.write(f'start_time: {start_time.strftime("%Y-%m-%d %H:%M:%S")}\n')
        pkg_info.write(f'end_time: {end_time.strftime("%Y-%m-%d %H:%M:%S")}')

    shutil.copy2(run_config["run_config_file_path"], result_log_dir / "run_config.json")
    shutil.copy2(run_config["contest_set_file_path"], result_log_dir / "contest_set.csv")


def _tabulate_contests(
    contest_set: List[ContestDict], run_config: Dict, path_to_output: Path, fresh_output: bool = False
) -> pd.DataFrame:

    start_time = datetime.datetime.now()

    path_to_output = pathlib.Path(path_to_output)

    results_dir = path_to_output / "results"
    if fresh_output and results_dir.exists():
        logger.info("deleting existing results directory...")
        shutil.rmtree(results_dir)
    util.verifyDir(results_dir)

    # init logger
    header_list = ["contest", "step", "message"]
    error_logger = util.CSVLogger(results_dir / "error_log.csv", header_list)

    n_errors = 0
    summary_rows = []

    for idx, contest in enumerate(contest_set):

        pbar_desc = f'{idx+1} of {len(contest_set)} contests: {contest["contest_id"]}'
        if n_errors:
            pbar_desc = f"[{n_errors} ERRORS SO FAR] " + pbar_desc

        steps = _TabulateSteps(contest, run_config, results_dir, pbar_desc)
        steps.update_error_log_writers([error_logger])
        steps.run_steps()

        step_returns = steps.return_results()
        n_errors += step_returns["n_errors"]
        summary_rows.append(_summary_row(contest, step_returns))

    error_logger.close()

    summary_df = pd.DataFrame(summary_rows, columns=SUMMARY_COLUMNS)
    if run_config.get("summary_table"):
        summary_df.to_csv(results_dir / "summary.csv", index=False)

    end_time = datetime.datetime.now()
    _write_input_dir(results_dir, run_config, start_time, end_time)

    if n_errors:
        logger.warning("%d total errors, see %s", n_errors, results_dir / "error_log.csv")
    logger.info("runtime duration: %s", end_time - start_time)

    return summary_df


def tabulate_contest_set(
    contest_set_path: Path, output_path: Optional[Path] = None, fresh_output: bool = False
) -> pd.DataFrame:
    """Tabulate every contest listed in a contest set directory.

    Results are written to `<output_path>/results`. Errors in one contest are logged to `error_log.csv`
    and do not stop the rest of the batch.

    :param contest_set_path: Directory containing contest_set.csv and run_config.json
    :type contest_set_path: Path
    :param output_path: Directory to write results in, defaults to `contest_set_path`
    :type output_path: Optional[Path], optional
    :param fresh_output: If True, delete existing results before writing, defaults to False
    :type fresh_output: bool, optional
    :return: Summary table, one row per contest
    :rtype: pd.DataFrame
    """
    contest_set, run_config = _read_contest_set(contest_set_path)
    return _tabulate_contests(contest_set, run_config, output_path or contest_set_path, fresh_output=fresh_output)
