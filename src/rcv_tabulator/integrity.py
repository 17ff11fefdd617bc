"""
Integrity fingerprint of the ballot set a result was computed from.
"""

from typing import Dict, Iterable, Union

import hashlib

from rcv_tabulator.ballots import Ballot, Option
from rcv_tabulator.results import Integrity
from rcv_tabulator.settings import TabulationSettings

HASH_LENGTH = 16


def ballots_hash(ballots: Iterable[Ballot]) -> str:
    """Stable fingerprint of a ballot set, independent of ballot order.

    Each ballot is written as `id:ranking,joined,by,commas`. The entries are sorted, joined with `|`
    and hashed with SHA-256. The first 16 hex characters are returned.

    :param ballots: Ballots to fingerprint, usually the countable ballots of a tabulation.
    :type ballots: Iterable[Ballot]
    :rtype: str
    """
    data = "|".join(sorted(f"{b.id}:{','.join(b.ranking)}" for b in ballots))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def compute_integrity(
    ballots: Iterable[Ballot], options: Iterable[Option], settings: TabulationSettings
) -> Integrity:
    """Integrity block for the ballots and options a tabulation under `settings` would count."""
    countable = [b for b in ballots if b.is_countable(settings)]
    n_active = sum(1 for o in options if o.active)
    return Integrity(ballot_count=len(countable), option_count=n_active, ballots_hash=ballots_hash(countable))


def check_integrity(
    integrity: Union[Integrity, Dict],
    ballots: Iterable[Ballot],
    options: Iterable[Option],
    settings: TabulationSettings,
) -> bool:
    """Return True if a cached result's integrity block still matches the current ballots and options.

    :param integrity: Integrity block of the cached result, as an `Integrity` or its dictionary form.
    :type integrity: Union[Integrity, Dict]
    :param ballots: Current ballot set.
    :type ballots: Iterable[Ballot]
    :param options: Current contest options.
    :type options: Iterable[Option]
    :param settings: Settings the cached result was computed with.
    :type settings: TabulationSettings
    :return: False if the cached result is stale and should be recomputed.
    :rtype: bool
    """
    if isinstance(integrity, dict):
        integrity = Integrity.from_dict(integrity)
    return compute_integrity(ballots, options, settings) == integrity
