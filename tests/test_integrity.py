import hashlib

from rcv_tabulator.ballots import Ballot, BallotStatus, Option
from rcv_tabulator.integrity import ballots_hash, check_integrity, compute_integrity
from rcv_tabulator.settings import TabulationSettings

OPTIONS = [Option("a", "Ay"), Option("b", "Bee"), Option("c", "Cee", active=False)]


def test_hash_format():
    ballots = [Ballot("b2", ["c"]), Ballot("b1", ["a", "b"])]
    expected = hashlib.sha256("b1:a,b|b2:c".encode("utf-8")).hexdigest()[:16]
    assert ballots_hash(ballots) == expected
    assert len(ballots_hash([])) == 16


def test_hash_ignores_ballot_order():
    ballots = [Ballot(f"b{i}", ["a", "b"] if i % 2 else ["b"]) for i in range(20)]
    assert ballots_hash(ballots) == ballots_hash(list(reversed(ballots)))


def test_hash_sees_ranking_order():
    assert ballots_hash([Ballot("b1", ["a", "b"])]) != ballots_hash([Ballot("b1", ["b", "a"])])


def test_compute_integrity_counts_what_is_tabulated():
    ballots = [Ballot("b1", ["a"]), Ballot("b2", ["b"], BallotStatus.REMOVED)]
    integrity = compute_integrity(ballots, OPTIONS, TabulationSettings())

    assert integrity.ballot_count == 1
    assert integrity.option_count == 2
    assert integrity.ballots_hash == ballots_hash(ballots[:1])


def test_check_integrity():
    settings = TabulationSettings()
    ballots = [Ballot("b1", ["a"]), Ballot("b2", ["b", "a"])]
    integrity = compute_integrity(ballots, OPTIONS, settings)

    assert check_integrity(integrity, ballots, OPTIONS, settings)
    assert check_integrity(integrity.to_dict(), list(reversed(ballots)), OPTIONS, settings)

    changed = ballots + [Ballot("b3", ["b"])]
    assert not check_integrity(integrity, changed, OPTIONS, settings)

    fewer_options = OPTIONS[:1]
    assert not check_integrity(integrity, ballots, fewer_options, settings)
