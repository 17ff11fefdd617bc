import json

import pytest

from rcv_tabulator.cli import main
from rcv_tabulator.engines.irv import irv_engine


def test_tabulate_prints_result(export_path, capsys):
    assert main(["tabulate", str(export_path), "--category", "cat-1"]) == 0

    result = json.loads(capsys.readouterr().out)
    assert result["success"] is True
    assert result["summary"]["winner"]["optionId"] == "c"


def test_tabulate_settings_file(export_path, tmp_path, capsys):
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(json.dumps({"tieBreakMethod": "previous-round"}))

    assert main(["tabulate", str(export_path), "--settings", str(settings_path)]) == 0

    result = json.loads(capsys.readouterr().out)
    assert "not resolved by previous rounds" in result["rounds"][0]["notes"][0]
    assert result["summary"]["winner"]["optionId"] == "c"


def test_tabulate_writes_files(export_path, tmp_path):
    output = tmp_path / "out"
    args = ["tabulate", str(export_path), "--category", "cat-1", "--output", str(output), "--validate", "--tables"]
    assert main(args) == 0

    assert sorted(p.name for p in output.iterdir()) == [
        "contest-1.json",
        "contest-1_final_rankings.csv",
        "contest-1_round_by_round.csv",
        "contest-1_transfers.csv",
        "contest-1_validation.json",
    ]


def test_unsupported_method(export_path):
    assert main(["tabulate", str(export_path), "--method", "STV"]) == 1


def test_failed_tabulation(export_path, monkeypatch, capsys):
    def fail(*args):
        raise RuntimeError("boom")

    monkeypatch.setattr(irv_engine, "_run_tabulation", fail)

    assert main(["tabulate", str(export_path)]) == 1
    result = json.loads(capsys.readouterr().out)
    assert result["error"] == "boom"


def test_missing_settings_file(export_path, tmp_path):
    with pytest.raises(RuntimeError):
        main(["tabulate", str(export_path), "--settings", str(tmp_path / "missing.json")])


def test_batch(tmp_path, export_path):
    (tmp_path / "run_config.json").write_text("{}")
    (tmp_path / "contest_set.csv").write_text(
        f"contest_id,ballots_path,category_id\npies,{export_path.name},cat-1\n"
    )

    assert main(["batch", str(tmp_path)]) == 0
    assert (tmp_path / "results" / "summary.csv").exists()
    assert (tmp_path / "results" / "pies.json").exists()


def test_batch_missing_dir(tmp_path):
    with pytest.raises(RuntimeError):
        main(["batch", str(tmp_path / "missing")])
