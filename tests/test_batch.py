import json

import pandas as pd
import pytest

from rcv_tabulator.batch import _read_contest_set, tabulate_contest_set

CONTEST_SET_CSV = """contest_id,method,parser,ballots_path,category_id,tie_break_method,ignore_contest,notes
pies,IRV,export_json,contest-1.json,cat-1,,,first contest
cakes,IRV,export_json,contest-1.json,cat-2,previous-round,,
stv,STV,export_json,contest-1.json,cat-1,,,
missing,IRV,export_json,missing.json,,,,
skipped,IRV,export_json,contest-1.json,,,true,
"""


def _write_contest_set(path, export_document, contest_set_csv=CONTEST_SET_CSV, run_config=None):
    ballots_dir = path / "ballots"
    ballots_dir.mkdir(parents=True, exist_ok=True)
    with open(ballots_dir / "contest-1.json", "w") as export_file:
        json.dump(export_document, export_file)

    if run_config is None:
        run_config = {"ballots_path_root": "ballots", "final_rankings_table": True}
    with open(path / "run_config.json", "w") as run_config_file:
        json.dump(run_config, run_config_file)

    (path / "contest_set.csv").write_text(contest_set_csv)
    return path


@pytest.fixture
def contest_set_dir(tmp_path, export_document):
    return _write_contest_set(tmp_path / "contest_set", export_document)


def test_read_contest_set(contest_set_dir):
    contests, run_config = _read_contest_set(contest_set_dir)

    assert [c["contest_id"] for c in contests] == ["pies", "cakes", "stv", "missing"]

    cakes = contests[1]
    assert cakes["ballots_path"] == contest_set_dir / "ballots" / "contest-1.json"
    assert cakes["options_path"] is None
    assert cakes["category_id"] == "cat-2"
    assert cakes["settings"] == {
        "allow_partial_ranking": True,
        "tie_break_method": "previous-round",
        "exclude_duplicates": False,
        "exclude_removed": True,
    }

    assert run_config["result_json"] is True
    assert run_config["final_rankings_table"] is True
    assert run_config["transfers_table"] is False


def test_tabulate_contest_set(contest_set_dir):
    summary = tabulate_contest_set(contest_set_dir).set_index("contest_id")

    assert list(summary.index) == ["pies", "cakes", "stv", "missing"]
    assert summary.loc["pies", "winner"] == "Cee"
    assert summary.loc["pies", "rounds"] == 2
    assert summary.loc["pies", "valid_ballots"] == 5
    assert summary.loc["cakes", "winner"] == "Ex"
    assert bool(summary.loc["pies", "success"])
    assert not bool(summary.loc["stv", "success"])
    assert not bool(summary.loc["missing", "success"])
    assert summary["n_errors"].tolist() == [0, 0, 1, 1]

    results_dir = contest_set_dir / "results"
    written = {p.name for p in results_dir.iterdir()}
    assert {
        "pies.json",
        "pies_round_by_round.csv",
        "pies_final_rankings.csv",
        "pies_validation.json",
        "cakes.json",
        "summary.csv",
        "error_log.csv",
        "inputs",
    } <= written
    assert "pies_transfers.csv" not in written
    assert not any(name.startswith("stv") for name in written)

    errors = pd.read_csv(results_dir / "error_log.csv")
    assert sorted(zip(errors["contest"], errors["step"])) == [("missing", "parse"), ("stv", "resolve_engine")]

    assert pd.read_csv(results_dir / "summary.csv")["contest_id"].tolist() == ["pies", "cakes", "stv", "missing"]
    assert (results_dir / "inputs" / "contest_set.csv").exists()
    assert (results_dir / "inputs" / "run_config.json").exists()


def test_output_path_and_fresh_output(contest_set_dir, tmp_path):
    output_path = tmp_path / "out"
    stale = output_path / "results" / "stale.csv"
    stale.parent.mkdir(parents=True)
    stale.write_text("old")

    tabulate_contest_set(contest_set_dir, output_path=output_path)
    assert stale.exists()
    assert (output_path / "results" / "pies.json").exists()

    tabulate_contest_set(contest_set_dir, output_path=output_path, fresh_output=True)
    assert not stale.exists()
    assert (output_path / "results" / "pies.json").exists()


params = [
    ("contest_id,parser,ballots_path\nc1,xml,contest-1.json\n", "unrecognized parser"),
    ("contest_id,ballots_path\nc1,contest-1.json\nc1,contest-1.json\n", "repeated contest_id"),
    ("contest_id,ballots_path\n,contest-1.json\n", "must have a contest_id"),
    ("contest_id,ballots_path,exclude_removed\nc1,contest-1.json,maybe\n", "true/false"),
]


@pytest.mark.parametrize("contest_set_csv, message", params)
def test_bad_contest_set(tmp_path, export_document, contest_set_csv, message):
    path = _write_contest_set(tmp_path, export_document, contest_set_csv=contest_set_csv)
    with pytest.raises(RuntimeError, match=message):
        tabulate_contest_set(path)


def test_missing_run_config(tmp_path):
    (tmp_path / "contest_set.csv").write_text("contest_id,ballots_path\nc1,contest-1.json\n")
    with pytest.raises(RuntimeError, match="run_config.json"):
        tabulate_contest_set(tmp_path)
