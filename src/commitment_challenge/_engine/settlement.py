# Area: Engine
"""
commitment_challenge._engine.settlement — Settlement arithmetic
===============================================================

Pure integer functions, no I/O. Every division floors, so rounding always
favors the pool: the sum of bonus shares may be smaller than the bonus
pool, and the remainder stays in the pool.

    cashout   = floor(stake * completed / total)
    forfeited = stake - cashout
    bonus_i   = floor(stake_i * bonus_pool / sum(winner stakes))
"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass(frozen=True)
class CashoutSettlement:
    """Split of a folding player's stake."""
    cashout: int
    forfeited: int


def stake_for(stake_unit: int, multiplier: int) -> int:
    return stake_unit * multiplier


def cashout_amount(stake: int, checkpoints_completed: int, total_checkpoints: int) -> int:
    if total_checkpoints <= 0:
        raise ValueError("total_checkpoints must be positive")
    if not 0 <= checkpoints_completed <= total_checkpoints:
        raise ValueError(
            f"checkpoints_completed {checkpoints_completed} outside 0..{total_checkpoints}"
        )
    return stake * checkpoints_completed // total_checkpoints


def forfeited_amount(stake: int, cashout: int) -> int:
    return stake - cashout


def settle_cashout(stake: int, checkpoints_completed: int, total_checkpoints: int) -> CashoutSettlement:
    cashout = cashout_amount(stake, checkpoints_completed, total_checkpoints)
    return CashoutSettlement(cashout=cashout, forfeited=forfeited_amount(stake, cashout))


def bonus_share(winner_stake: int, bonus_pool: int, total_winner_stakes: int) -> int:
    if total_winner_stakes <= 0:
        return 0
    return winner_stake * bonus_pool // total_winner_stakes


def bonus_shares(winner_stakes: Mapping[str, int], bonus_pool: int) -> Dict[str, int]:
    """
    Split the bonus pool across winners in proportion to their stakes.

    Args:
        winner_stakes: player id -> stake, for every winner
        bonus_pool: amount available for distribution

    Returns:
        player id -> bonus share. sum(values) <= bonus_pool.
    """
    total = sum(winner_stakes.values())
    return {
        player_id: bonus_share(stake, bonus_pool, total)
        for player_id, stake in winner_stakes.items()
    }
