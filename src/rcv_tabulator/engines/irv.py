"""
Instant Runoff Voting (IRV) engine.

Single winner. Each round counts every live ballot for its highest ranked option still in
the count. An option holding a majority of the round's live ballots wins; otherwise the
option(s) with the fewest votes are eliminated and their ballots move to the next ranked
option still in the count, or exhaust.
"""

from __future__ import annotations
from typing import Dict, List, Tuple

import collections
import logging
import random

from rcv_tabulator.ballots import Ballot, Option
from rcv_tabulator.engines.base import TabulationEngine
from rcv_tabulator.results import (
    ACTIVE,
    ELECTED,
    ELIMINATED,
    ElectionEvent,
    FinalRanking,
    Integrity,
    OptionTally,
    Round,
    TabulationSummary,
    VoteTransfer,
    Winner,
)
from rcv_tabulator.settings import ELIMINATE_ALL, PREVIOUS_ROUND, RANDOM, TabulationSettings
from rcv_tabulator.util import percent

logger = logging.getLogger(__name__)


class IRVEngine(TabulationEngine):
    """Instant Runoff Voting, also known as single winner Ranked Choice Voting."""

    id = "irv"
    display_name = "Instant Runoff Voting (Ranked Choice)"
    description = (
        "Candidates are eliminated one by one until someone has a majority. Also known as Ranked Choice Voting."
    )
    supports_multi_winner = False

    def _run_tabulation(
        self,
        countable_ballots: List[Ballot],
        active_options: List[Option],
        settings: TabulationSettings,
        integrity: Integrity,
    ) -> Tuple[List[Round], TabulationSummary]:
        count = _IRVCount(countable_ballots, active_options, settings, integrity.ballots_hash)
        count.run()
        return count.rounds, count.summary()


class _IRVCount:
    """
    Working state of one IRV tabulation. A new instance is made for every call to `IRVEngine.tabulate`.

    Ballot scan state is kept in parallel lists indexed by working ballot: `_ranks` holds each ballot's
    ranking restricted to active options, `_cursors` the index of its current choice and `_exhausted`
    whether it has left the count.
    """

    def __init__(
        self,
        countable_ballots: List[Ballot],
        active_options: List[Option],
        settings: TabulationSettings,
        ballots_hash: str,
    ) -> None:

        self._settings = settings
        self._options = active_options
        self._option_map = {o.id: o for o in active_options}

        # working ballots
        self._ranks = [tuple(i for i in b.ranking if i in self._option_map) for b in countable_ballots]
        self._cursors = [0] * len(self._ranks)
        self._exhausted = [not ranks for ranks in self._ranks]

        # tabulation-level
        self._eliminated = set()
        self._elimination_order = []
        self._total_exhausted = sum(self._exhausted)
        self._winner = None
        self._tied_options = []
        self._notes = []

        seed = settings.random_seed if settings.random_seed is not None else ballots_hash
        self._rng = random.Random(seed)

        self.rounds = []

    def _remaining_options(self) -> List[Option]:
        return [o for o in self._options if o.id not in self._eliminated]

    def _pre_check(self) -> bool:
        """
        Return False, with an explanatory note, if there is nothing to tabulate.
        """
        if not self._options:
            self._notes.append("No active options to tabulate")
            return False

        if not self._ranks:
            self._notes.append("No countable ballots to tabulate")
            return False

        if all(self._exhausted):
            self._notes.append("No countable ballot ranks an active option")
            return False

        return True

    def run(self) -> None:
        """
        Run the rounds of the contest.
        """
        if not self._pre_check():
            logger.debug("nothing to tabulate: %s", self._notes[-1])
            return

        round_num = 0
        while self._winner is None and self._remaining_options():
            round_num += 1

            #############################################
            # COUNT ROUND RESULTS
            vote_counts, active_ballot_count = self._tally_active_ballots()
            majority_threshold = active_ballot_count // 2 + 1

            n_exhausted = sum(self._exhausted)
            exhausted_this_round = n_exhausted - self._total_exhausted
            self._total_exhausted = n_exhausted

            tallies = self._build_tallies(vote_counts, active_ballot_count)
            new_round = Round(
                round_number=round_num,
                tallies=tallies,
                eliminated=[],
                elected=None,
                transfers=[],
                active_ballots=active_ballot_count,
                exhausted_ballots=exhausted_this_round,
                total_exhausted=self._total_exhausted,
                majority_threshold=majority_threshold,
            )

            #############################################
            # CHECK FOR ROUND WINNER
            active_tallies = [t for t in tallies if t.status == ACTIVE]
            top = active_tallies[0]
            if top.votes >= majority_threshold:
                top.status = ELECTED
                self._winner = ElectionEvent(top.option_id, top.option_name, top.votes)
                new_round.elected = [self._winner]
                new_round.notes.append(
                    f"{top.option_name} wins with {top.votes} votes "
                    f"({percent(top.votes, active_ballot_count):.1f}%)"
                )
                self.rounds.append(new_round)
                logger.debug("round %d: %s elected by majority", round_num, top.option_id)
                break

            #############################################
            # IDENTIFY ROUND LOSERS
            losers = self._select_round_losers(active_tallies, new_round.notes)

            #############################################
            # ELIMINATE AND TRANSFER
            new_round.transfers = self._eliminate(losers, round_num)
            new_round.eliminated = [ElectionEvent(t.option_id, t.option_name, t.votes) for t in losers]
            self.rounds.append(new_round)
            logger.debug("round %d: eliminated %s", round_num, [t.option_id for t in losers])

            #############################################
            # LAST OPTION STANDING
            remaining = self._remaining_options()
            if len(remaining) == 1:
                last = remaining[0]
                self._winner = ElectionEvent(last.id, last.name, vote_counts[last.id])
                for tally in tallies:
                    if tally.option_id == last.id:
                        tally.status = ELECTED
                new_round.elected = [self._winner]
                new_round.notes.append(f"{last.name} wins as the last remaining candidate")
                logger.debug("round %d: %s elected as last remaining option", round_num, last.id)

            elif not remaining:
                self._tied_options = new_round.eliminated
                logger.debug("round %d: all remaining options eliminated, no winner", round_num)

    def _tally_active_ballots(self) -> Tuple[Dict[str, int], int]:
        """
        Count one vote per live ballot for its highest ranked option still in the count. Ballots with no
        such option left are marked exhausted and skipped from then on.
        """
        vote_counts = collections.OrderedDict((o.id, 0) for o in self._remaining_options())
        active_ballot_count = 0

        for idx, ranks in enumerate(self._ranks):

            if self._exhausted[idx]:
                continue

            cursor = self._advance_cursor(idx, self._cursors[idx])
            self._cursors[idx] = cursor

            if cursor >= len(ranks):
                self._exhausted[idx] = True
                continue

            vote_counts[ranks[cursor]] += 1
            active_ballot_count += 1

        return vote_counts, active_ballot_count

    def _advance_cursor(self, idx: int, cursor: int) -> int:
        ranks = self._ranks[idx]
        while cursor < len(ranks) and ranks[cursor] in self._eliminated:
            cursor += 1
        return cursor

    def _build_tallies(self, vote_counts: Dict[str, int], active_ballot_count: int) -> List[OptionTally]:
        """
        Tallies for options still in the count, followed by zero vote entries for options already
        eliminated, sorted by votes descending. Equal votes keep option input order.
        """
        tallies = [
            OptionTally(
                option_id=option_id,
                option_name=self._option_map[option_id].name,
                votes=votes,
                percentage=percent(votes, active_ballot_count),
                status=ACTIVE,
            )
            for option_id, votes in vote_counts.items()
        ]
        tallies += [
            OptionTally(option_id=o.id, option_name=o.name, votes=0, percentage=0.0, status=ELIMINATED)
            for o in self._options
            if o.id in self._eliminated
        ]
        return sorted(tallies, key=lambda t: -t.votes)

    def _select_round_losers(self, active_tallies: List[OptionTally], notes: List[str]) -> List[OptionTally]:
        """
        Find the options with the fewest votes and apply the tie break method when there is more than one.
        """
        min_votes = min(t.votes for t in active_tallies)
        tied = [t for t in active_tallies if t.votes == min_votes]

        if len(tied) == 1:
            return tied

        tie_break_method = self._settings.tie_break_method

        if tie_break_method == PREVIOUS_ROUND:
            return self._break_tie_by_previous_rounds(tied, min_votes, notes)

        if tie_break_method == RANDOM:
            loser = self._rng.sample(sorted(tied, key=lambda t: t.option_id), 1)[0]
            notes.append(
                f"Tie for last place with {min_votes} votes between {_names(tied)}. "
                f"Eliminating by random draw: {loser.option_name}"
            )
            return [loser]

        if tie_break_method != ELIMINATE_ALL:
            raise ValueError(f"unknown tie break method: {tie_break_method}")

        notes.append(f"Tie for last place with {min_votes} votes. Eliminating all tied candidates: {_names(tied)}")
        return tied

    def _break_tie_by_previous_rounds(
        self, tied: List[OptionTally], min_votes: int, notes: List[str]
    ) -> List[OptionTally]:
        """
        Look back through earlier rounds, most recent first, keeping only the tied options with the fewest
        votes in each. Stops once a single option is left. Any options still tied after the first round
        are all eliminated.
        """
        candidates = tied
        deciding_round = None

        for prev_round in reversed(self.rounds):
            prev_votes = prev_round.tally_dict()
            fewest = min(prev_votes[t.option_id] for t in candidates)
            narrowed = [t for t in candidates if prev_votes[t.option_id] == fewest]
            if len(narrowed) < len(candidates):
                candidates = narrowed
                deciding_round = prev_round.round_number
            if len(candidates) == 1:
                break

        if len(candidates) == 1:
            notes.append(
                f"Tie for last place with {min_votes} votes between {_names(tied)}. "
                f"Broken using round {deciding_round} counts. Eliminating: {candidates[0].option_name}"
            )
        else:
            notes.append(
                f"Tie for last place with {min_votes} votes not resolved by previous rounds. "
                f"Eliminating all tied candidates: {_names(candidates)}"
            )
        return candidates

    def _eliminate(self, losers: List[OptionTally], round_num: int) -> List[VoteTransfer]:
        """
        Eliminate the round losers and move each of their ballots to its next ranked option still in the
        count. All losers leave the count before any ballot moves, so no ballot transfers to an option
        eliminated in the same round.
        """
        for loser in losers:
            self._eliminated.add(loser.option_id)
            self._elimination_order.append({"option_id": loser.option_id, "round": round_num, "votes": loser.votes})
            loser.status = ELIMINATED

        transfer_counts = collections.OrderedDict()
        loser_ids = [t.option_id for t in losers]

        for loser_id in loser_ids:
            for idx, ranks in enumerate(self._ranks):

                if self._exhausted[idx] or ranks[self._cursors[idx]] != loser_id:
                    continue

                cursor = self._advance_cursor(idx, self._cursors[idx] + 1)
                self._cursors[idx] = cursor

                if cursor >= len(ranks):
                    self._exhausted[idx] = True
                    key = (loser_id, None)
                else:
                    key = (loser_id, ranks[cursor])

                transfer_counts[key] = transfer_counts.get(key, 0) + 1

        transfers = [
            VoteTransfer(
                from_option_id=from_id,
                from_option_name=self._option_map[from_id].name,
                to_option_id=to_id,
                to_option_name=self._option_map[to_id].name if to_id is not None else None,
                count=n,
            )
            for (from_id, to_id), n in transfer_counts.items()
        ]
        return sorted(transfers, key=lambda t: -t.count)

    def summary(self) -> TabulationSummary:
        """
        Summarize the tabulation. Ballot totals are filled in by the engine.
        """
        final_rankings = []

        if self._winner is not None:
            final_rankings.append(
                FinalRanking(
                    rank=1,
                    option_id=self._winner.option_id,
                    option_name=self._winner.option_name,
                    eliminated_in_round=None,
                    final_votes=self._winner.votes,
                )
            )

        # most recently eliminated ranks highest
        for elim in reversed(self._elimination_order):
            final_rankings.append(
                FinalRanking(
                    rank=len(final_rankings) + 1,
                    option_id=elim["option_id"],
                    option_name=self._option_map[elim["option_id"]].name,
                    eliminated_in_round=elim["round"],
                    final_votes=elim["votes"],
                )
            )

        winner = None
        if self._winner is not None:
            winner = Winner(
                option_id=self._winner.option_id,
                option_name=self._winner.option_name,
                final_votes=self._winner.votes,
                final_percentage=percent(self._winner.votes, self.rounds[-1].active_ballots),
            )

        notes = list(self._notes)
        is_tie = self._winner is None and bool(self.rounds) and not self._remaining_options()
        if is_tie:
            notes.append(f"No winner: {_names(self._tied_options)} tied and were eliminated together")

        exhausted = sum(self._exhausted)

        return TabulationSummary(
            winner=winner,
            is_tie=is_tie,
            total_ballots=len(self._ranks),
            valid_ballots=len(self._ranks),
            exhausted_ballots=exhausted,
            exhausted_percentage=percent(exhausted, len(self._ranks)),
            rounds_count=len(self.rounds),
            final_rankings=final_rankings,
            tied_options=list(self._tied_options),
            notes=notes,
        )


def _names(entries) -> str:
    return ", ".join(e.option_name for e in entries)


irv_engine = IRVEngine()
