"""Tabular views of a tabulation result, for display and export.
"""

from typing import List

import pandas as pd

from rcv_tabulator.results import TabulationResult
from rcv_tabulator.util import EXHAUST, NAN, LD2DL


def _check_result(result: TabulationResult) -> None:
    if not result.success:
        raise ValueError(f"cannot build a table from a failed tabulation: {result.error}")


def ordered_option_ids(result: TabulationResult) -> List[str]:
    """Option ids in final order: winner first, then options still standing at the end ordered by final round
    votes, then eliminated options with the most recently eliminated first.

    :param result: Successful tabulation result
    :type result: TabulationResult
    :rtype: List[str]
    """
    _check_result(result)
    if not result.rounds:
        return []

    ranked_ids = [fr.option_id for fr in result.summary.final_rankings]
    winner_ids = ranked_ids[:1] if result.summary.winner is not None else []
    eliminated_ids = ranked_ids[len(winner_ids):]

    # tallies are already sorted by votes
    standing_ids = [
        t.option_id for t in result.rounds[-1].tallies if t.option_id not in ranked_ids
    ]
    return winner_ids + standing_ids + eliminated_ids


def round_by_round_table(result: TabulationResult) -> pd.DataFrame:
    """Create a table containing round by round details for the tabulation.

    Indexed by option id. One row per option, in final order, followed by an `exhaust` row (cumulative exhausted ballots) and a
    `colsum` row. Each round adds three columns: `r<N>_count`, `r<N>_percent` (share of the round's live
    ballots) and `r<N>_transfer` (net votes moved in that round's elimination).

    :param result: Successful tabulation result
    :type result: TabulationResult
    :return: round by round table
    :rtype: pd.DataFrame
    """
    option_ids = ordered_option_ids(result)
    names = {}
    for rnd in result.rounds:
        names.update({t.option_id: t.option_name for t in rnd.tallies})

    row_names = option_ids + [EXHAUST]
    rcv_df = pd.DataFrame(NAN, index=row_names + ["colsum"], columns=["candidate"])
    rcv_df["candidate"] = [names[i] for i in option_ids] + [EXHAUST, "colsum"]

    for rnd in result.rounds:

        rnd_count_col = f"r{rnd.round_number}_count"
        rnd_percent_col = f"r{rnd.round_number}_percent"
        rnd_transfer_col = f"r{rnd.round_number}_transfer"

        rnd_transfer = {row: 0 for row in row_names}
        for transfer in rnd.transfers:
            rnd_transfer[transfer.from_option_id] -= transfer.count
            rnd_transfer[transfer.to_option_id or EXHAUST] += transfer.count

        for tally in rnd.tallies:
            rcv_df.loc[tally.option_id, rnd_count_col] = tally.votes
            rcv_df.loc[tally.option_id, rnd_percent_col] = tally.percentage

        rcv_df.loc[EXHAUST, rnd_count_col] = rnd.total_exhausted
        rcv_df.loc[EXHAUST, rnd_percent_col] = NAN

        for row in row_names:
            rcv_df.loc[row, rnd_transfer_col] = rnd_transfer[row]

        # sum round columns
        rcv_df.loc["colsum", rnd_count_col] = rcv_df.loc[row_names, rnd_count_col].astype(float).sum()
        rcv_df.loc["colsum", rnd_percent_col] = rcv_df.loc[option_ids, rnd_percent_col].astype(float).sum()
        rcv_df.loc["colsum", rnd_transfer_col] = rcv_df.loc[row_names, rnd_transfer_col].astype(float).sum()

    rcv_df.index.name = "optionId"
    return rcv_df


def final_rankings_table(result: TabulationResult) -> pd.DataFrame:
    """Final rankings as a table with columns rank, optionId, optionName, eliminatedInRound and finalVotes.

    :param result: Successful tabulation result
    :type result: TabulationResult
    :rtype: pd.DataFrame
    """
    _check_result(result)
    columns = ["rank", "optionId", "optionName", "eliminatedInRound", "finalVotes"]
    rows = [fr.to_dict() for fr in result.summary.final_rankings]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(LD2DL(rows), columns=columns)


def transfers_table(result: TabulationResult) -> pd.DataFrame:
    """All vote transfers, one row per round and (from, to) pair. Exhausted ballots have an empty `toOptionId`.

    :param result: Successful tabulation result
    :type result: TabulationResult
    :rtype: pd.DataFrame
    """
    _check_result(result)
    columns = ["round", "fromOptionId", "fromOptionName", "toOptionId", "toOptionName", "count"]
    rows = [{"round": rnd.round_number, **transfer.to_dict()} for rnd in result.rounds for transfer in rnd.transfers]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)
