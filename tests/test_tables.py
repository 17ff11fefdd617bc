import math

import pytest

from rcv_tabulator.ballots import Ballot, Option
from rcv_tabulator.engines.irv import irv_engine
from rcv_tabulator.tables import final_rankings_table, ordered_option_ids, round_by_round_table, transfers_table


@pytest.fixture
def result():
    options = [Option("a", "Ay"), Option("b", "Bee"), Option("c", "Cee")]
    ballots = [
        Ballot("b1", ["a", "b"]),
        Ballot("b2", ["a", "b"]),
        Ballot("b3", ["b", "c"]),
        Ballot("b4", ["c", "a"]),
        Ballot("b5", ["c", "a"]),
    ]
    return irv_engine.tabulate(ballots, options)


def test_ordered_option_ids(result):
    # winner, still standing, eliminated
    assert ordered_option_ids(result) == ["c", "a", "b"]


def test_round_by_round_table(result):
    df = round_by_round_table(result)

    assert list(df.index) == ["c", "a", "b", "exhaust", "colsum"]
    assert df.index.name == "optionId"
    assert list(df.columns) == [
        "candidate",
        "r1_count",
        "r1_percent",
        "r1_transfer",
        "r2_count",
        "r2_percent",
        "r2_transfer",
    ]
    assert df["candidate"].tolist() == ["Cee", "Ay", "Bee", "exhaust", "colsum"]

    assert df.loc[["c", "a", "b", "exhaust", "colsum"], "r1_count"].tolist() == [2, 2, 1, 0, 5]
    assert df.loc[["c", "a", "b", "exhaust", "colsum"], "r1_transfer"].tolist() == [1, 0, -1, 0, 0]
    assert df.loc[["c", "a", "b", "exhaust", "colsum"], "r2_count"].tolist() == [3, 2, 0, 0, 5]

    assert df.loc["c", "r2_percent"] == pytest.approx(60.0)
    assert df.loc["colsum", "r1_percent"] == pytest.approx(100.0)
    assert math.isnan(df.loc["exhaust", "r1_percent"])


def test_final_rankings_table(result):
    df = final_rankings_table(result)
    assert df["optionId"].tolist() == ["c", "b"]
    assert df["rank"].tolist() == [1, 2]
    assert df["eliminatedInRound"].tolist()[1] == 1


def test_transfers_table(result):
    df = transfers_table(result)
    assert df.to_dict("records") == [
        {"round": 1, "fromOptionId": "b", "fromOptionName": "Bee", "toOptionId": "c", "toOptionName": "Cee", "count": 1}
    ]


def test_empty_result_tables():
    result = irv_engine.tabulate([], [Option("a", "Ay")])
    assert ordered_option_ids(result) == []
    assert final_rankings_table(result).empty
    assert transfers_table(result).empty


def test_failed_result_raises():
    result = irv_engine.tabulate([], [], {"tieBreakMethod": "coin-flip"})
    with pytest.raises(ValueError):
        round_by_round_table(result)
