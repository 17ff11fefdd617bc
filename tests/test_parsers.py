import pytest

from rcv_tabulator.ballots import Ballot, BallotStatus, Option
from rcv_tabulator.parsers import get_parser_dict, read_ballot_csv, read_export_json, read_options_csv

OPTIONS_CSV = """id,name,active,categoryId
a,Ay,true,cat-1
b,Bee,,cat-1
c,Cee,false,cat-1
"""

BALLOTS_CSV = """BallotID,CategoryID,Status,CreatedAt,Rank1,Rank2,Rank10
b1,cat-1,VALID,2024-05-01T10:00:00.000Z,"Ay","Bee",
b2,cat-1,REMOVED,,b,,a
b3,cat-2,,,Cee,,
"""


@pytest.fixture
def csv_paths(tmp_path):
    options_path = tmp_path / "options.csv"
    options_path.write_text(OPTIONS_CSV)
    ballots_path = tmp_path / "ballots.csv"
    ballots_path.write_text(BALLOTS_CSV)
    return ballots_path, options_path


def test_read_export_json(export_path):
    parsed = read_export_json(export_path)

    assert parsed["contest"]["id"] == "contest-1"
    assert [o.id for o in parsed["options"]] == ["a", "b", "c", "x"]
    assert len(parsed["ballots"]) == 6
    # ranking entries given as objects or as plain ids
    assert parsed["ballots"][0] == Ballot("b1", ["a", "b"], BallotStatus.VALID, "cat-1")
    assert parsed["ballots"][1].ranking == ("a", "b")


def test_read_export_json_category(export_path):
    parsed = read_export_json(export_path, category_id="cat-2")
    assert parsed["options"] == [Option("x", "Ex", True, "cat-2")]
    assert [b.id for b in parsed["ballots"]] == ["b6"]


def test_read_options_csv(csv_paths):
    _, options_path = csv_paths
    assert read_options_csv(options_path) == [
        Option("a", "Ay", True, "cat-1"),
        Option("b", "Bee", True, "cat-1"),
        Option("c", "Cee", False, "cat-1"),
    ]


def test_read_ballot_csv(csv_paths):
    ballots_path, options_path = csv_paths
    ballots = read_ballot_csv(ballots_path, options=read_options_csv(options_path))

    assert ballots == [
        Ballot("b1", ["a", "b"], BallotStatus.VALID, "cat-1"),
        Ballot("b2", ["b", "a"], BallotStatus.REMOVED, "cat-1"),
        Ballot("b3", ["c"], BallotStatus.VALID, "cat-2"),
    ]


def test_read_ballot_csv_without_options(csv_paths):
    ballots_path, _ = csv_paths
    ballots = read_ballot_csv(ballots_path, category_id="cat-1")
    assert [b.ranking for b in ballots] == [("Ay", "Bee"), ("b", "a")]


params = [
    ("BallotID,Choice1\nb1,a\n", "no Rank columns"),
    ("Ballot,Rank1\nb1,a\n", "no BallotID column"),
]


@pytest.mark.parametrize("contents, message", params)
def test_read_ballot_csv_bad_columns(tmp_path, contents, message):
    path = tmp_path / "ballots.csv"
    path.write_text(contents)
    with pytest.raises(RuntimeError, match=message):
        read_ballot_csv(path)


def test_missing_files(tmp_path):
    with pytest.raises(RuntimeError):
        read_export_json(tmp_path / "missing.json")
    with pytest.raises(RuntimeError):
        read_ballot_csv(tmp_path / "missing.csv")
    with pytest.raises(RuntimeError):
        read_options_csv(tmp_path / "missing.csv")


def test_options_csv_missing_columns(tmp_path):
    path = tmp_path / "options.csv"
    path.write_text("id\na\n")
    with pytest.raises(RuntimeError, match="missing columns"):
        read_options_csv(path)


def test_parser_dict(export_path, csv_paths):
    parser_dict = get_parser_dict()
    assert set(parser_dict) == {"export_json", "ballot_csv"}

    parsed = parser_dict["export_json"]({"contest_id": "c1", "ballots_path": export_path, "category_id": "cat-1"})
    assert len(parsed["ballots"]) == 5

    ballots_path, options_path = csv_paths
    contest = {"contest_id": "c2", "ballots_path": ballots_path, "options_path": options_path, "category_id": "cat-1"}
    parsed = parser_dict["ballot_csv"](contest)
    assert parsed["contest"] == {"id": "c2"}
    assert [o.id for o in parsed["options"]] == ["a", "b", "c"]
    assert [b.id for b in parsed["ballots"]] == ["b1", "b2"]

    with pytest.raises(RuntimeError, match="options_path"):
        parser_dict["ballot_csv"]({"contest_id": "c3", "ballots_path": ballots_path, "options_path": None})
