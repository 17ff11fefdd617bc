import pytest

from rcv_tabulator.ballots import Ballot, BallotStatus, Option
from rcv_tabulator.settings import TabulationSettings


def test_ballot_ranking_is_tuple():
    ballot = Ballot("b1", ["a", "b"])
    assert ballot.ranking == ("a", "b")
    assert ballot.status == BallotStatus.VALID


def test_ballot_is_immutable():
    ballot = Ballot("b1", ["a"])
    with pytest.raises(AttributeError):
        ballot.ranking = ("b",)


params = [
    ({"id": 1, "ranking": ["a"]}, TypeError),
    ({"id": "b1", "ranking": "ab"}, TypeError),
    ({"id": "b1", "ranking": ["a", 2]}, TypeError),
    ({"id": "b1", "ranking": ["a"], "status": "SPOILED"}, ValueError),
]


@pytest.mark.parametrize("kwargs, error", params)
def test_ballot_rejects_bad_input(kwargs, error):
    with pytest.raises(error):
        Ballot(**kwargs)


def test_option_rejects_bad_input():
    with pytest.raises(TypeError):
        Option(1, "Ay")
    with pytest.raises(TypeError):
        Option("a", "Ay", active="yes")


def test_from_dict():
    ballot = Ballot.from_dict({"id": "b1", "ranking": ["a"], "status": "REMOVED", "categoryId": "cat-1"})
    assert ballot == Ballot("b1", ("a",), BallotStatus.REMOVED, "cat-1")

    assert Ballot.from_dict({"id": "b2", "ranking": None}).ranking == ()

    option = Option.from_dict({"id": "a", "name": "Ay"})
    assert option.active is True
    assert option.to_dict() == {"id": "a", "name": "Ay", "active": True}


params = [
    (BallotStatus.VALID, {}, True),
    (BallotStatus.INVALID, {}, False),
    (BallotStatus.DEDUPED_IGNORED, {"exclude_removed": False, "exclude_duplicates": False}, False),
    (BallotStatus.REMOVED, {}, False),
    (BallotStatus.REMOVED, {"exclude_removed": False}, True),
    (BallotStatus.SUSPECTED_DUPLICATE, {}, True),
    (BallotStatus.SUSPECTED_DUPLICATE, {"exclude_duplicates": True}, False),
]


@pytest.mark.parametrize("status, settings, expected", params)
def test_is_countable(status, settings, expected):
    ballot = Ballot("b1", ["a"], status)
    assert ballot.is_countable(TabulationSettings(**settings)) is expected
