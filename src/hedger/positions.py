"""Wagers on a two-sided market and their per-outcome nets.

If side A wins, the book collects the profit of every A wager and forfeits
every stake placed on B (and vice versa). That cross term is what makes a
binary hedge work:

    net_a = profit_a - stake_b - fees_a
    net_b = profit_b - stake_a - fees_b
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from hedger.fees import ContractFees, FeePolicy, NoFees, apply_policy, contract_cost
from hedger.odds import profit_per_dollar


class Side(str, Enum):
    """One of the two outcomes of a binary market."""

    A = "A"
    B = "B"

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A


@dataclass(frozen=True)
class Position:
    """A placed (or proposed) wager.

    profit is the gross profit if the wager wins; fees is the total fee
    already charged for it.
    """

    side: Side
    stake: float
    profit: float
    odds: float | None = None
    fees: float = 0.0

    def __post_init__(self) -> None:
        if self.stake < 0:
            raise ValueError(f"stake must be non-negative, got {self.stake}")
        if self.odds is not None and (not math.isfinite(self.odds) or -100 < self.odds < 100):
            raise ValueError(f"odds must be <= -100 or >= +100, got {self.odds}")


def build_position(
    side: Side,
    stake: float,
    odds: float,
    policy: FeePolicy = NoFees(),
    price: float | None = None,
) -> Position:
    """Create a Position from a stake at canonical odds under a fee policy.

    Args:
        side: Outcome the wager pays on.
        stake: Amount risked.
        odds: Canonical American odds.
        policy: Fee policy of the book the wager is placed with.
        price: Contract price, required when policy is ContractFees.

    Returns:
        Position whose profit is the gross profit and fees the fee total.
        Under ContractFees the stake is the cost of the whole contracts
        bought, since the leftover cents are never risked.
    """
    gross_profit = stake * profit_per_dollar(odds)
    result = apply_policy(policy, stake, gross_profit, price=price)
    if isinstance(policy, ContractFees):
        stake = contract_cost(stake, price, policy.side)
    return Position(
        side=Side(side),
        stake=stake,
        profit=result.profit_before_fees,
        odds=odds,
        fees=result.fees.total,
    )


@dataclass(frozen=True)
class AggregateNet:
    """Per-side totals of a set of positions."""

    stake_a: float = 0.0
    stake_b: float = 0.0
    profit_a: float = 0.0
    profit_b: float = 0.0
    fees_a: float = 0.0
    fees_b: float = 0.0

    @property
    def net_a(self) -> float:
        return self.profit_a - self.stake_b - self.fees_a

    @property
    def net_b(self) -> float:
        return self.profit_b - self.stake_a - self.fees_b

    def stake(self, side: Side) -> float:
        return self.stake_a if side is Side.A else self.stake_b

    def profit(self, side: Side) -> float:
        return self.profit_a if side is Side.A else self.profit_b

    def fees(self, side: Side) -> float:
        return self.fees_a if side is Side.A else self.fees_b

    def net(self, side: Side) -> float:
        return self.net_a if side is Side.A else self.net_b


def aggregate(positions: Iterable[Position]) -> AggregateNet:
    """Sum stakes, profits and fees per side in a single pass."""
    stake = {Side.A: 0.0, Side.B: 0.0}
    profit = {Side.A: 0.0, Side.B: 0.0}
    fees = {Side.A: 0.0, Side.B: 0.0}
    for p in positions:
        side = Side(p.side)
        stake[side] += p.stake
        profit[side] += p.profit
        fees[side] += p.fees or 0.0
    return AggregateNet(
        stake_a=stake[Side.A],
        stake_b=stake[Side.B],
        profit_a=profit[Side.A],
        profit_b=profit[Side.B],
        fees_a=fees[Side.A],
        fees_b=fees[Side.B],
    )
