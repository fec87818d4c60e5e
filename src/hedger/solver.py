"""Stake solver for hedging a two-sided book.

Each objective is solved the same way. Adding stake d to a side at decimal
odds D changes the nets linearly:

    net_side'  = net_side + d * ((D - 1) * (1 - settle) - open)
    net_other' = net_other - d

so the required stake is (target - current) / rate, clamped at zero.
Degenerate outcomes (already balanced, target already met, fees eating the
whole edge) come back as None or a zero stake, never as exceptions.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from hedger.fees import NO_FEES, FeeAdapter
from hedger.odds import profit_per_dollar, to_decimal
from hedger.positions import Position, Side, aggregate

log = logging.getLogger(__name__)

BALANCE_TOLERANCE = 0.01


@dataclass(frozen=True)
class CoverResult:
    """Stake that brings one side's net to zero, with both nets afterwards."""

    side: Side
    stake: float
    odds: float
    net_a_after: float
    net_b_after: float
    fees_exceed_edge: bool = False


@dataclass(frozen=True)
class EqualizationResult:
    """Stake that makes both nets equal."""

    side: Side
    stake: float
    odds: float
    target_total: float


@dataclass(frozen=True)
class TargetProfitResult:
    side: Side
    stake: float
    odds: float
    target_profit: float


@dataclass(frozen=True)
class CoverageResult:
    side: Side
    stake: float
    odds: float
    coverage_percent: float


def _usable(odds: float | None) -> bool:
    # Same range Position accepts.
    return odds is not None and math.isfinite(odds) and not -100 < odds < 100


def _profit_multiplier(odds: float) -> float:
    return to_decimal(odds) - 1


def cover(
    positions: Iterable[Position],
    side: Side,
    odds: float | None,
    fees: FeeAdapter = NO_FEES,
) -> CoverResult | None:
    """Stake to add on side so that its net becomes zero if it wins.

    Never proposes removing stake: a side whose net is already >= 0 gets a
    zero stake. When fees consume the whole payout the stake is also zero and
    fees_exceed_edge is set.

    Returns:
        CoverResult, or None if odds are missing or invalid.
    """
    if not _usable(odds):
        return None
    side = Side(side)
    agg = aggregate(positions)
    multiplier = _profit_multiplier(odds)
    effective = multiplier - fees.settle_fee_rate - fees.open_fee_rate

    net = agg.net(side)
    fees_exceed_edge = effective <= 0
    if net < 0 and not fees_exceed_edge:
        stake = abs(net) / effective
    else:
        stake = 0.0
    if fees_exceed_edge:
        log.debug("Cannot cover side %s at %s: fees exceed edge", side.value, odds)

    win = stake * multiplier
    new_net = net + win - win * fees.settle_fee_rate - stake * fees.open_fee_rate
    other_net = agg.net(side.other) - stake
    net_a, net_b = (new_net, other_net) if side is Side.A else (other_net, new_net)
    return CoverResult(
        side=side,
        stake=stake,
        odds=odds,
        net_a_after=net_a,
        net_b_after=net_b,
        fees_exceed_edge=fees_exceed_edge,
    )


def equalize(
    positions: Iterable[Position],
    side: Side,
    odds: float | None,
    fees: FeeAdapter = NO_FEES,
    tolerance: float = BALANCE_TOLERANCE,
) -> EqualizationResult | None:
    """Stake to add on side so that both nets end up equal.

    Returns:
        EqualizationResult, or None if the book is already balanced within
        tolerance or odds are missing or invalid.
    """
    if not _usable(odds):
        return None
    side = Side(side)
    agg = aggregate(positions)
    if abs(agg.net_a - agg.net_b) < tolerance:
        log.debug("Book already balanced (net_a=%.2f, net_b=%.2f)", agg.net_a, agg.net_b)
        return None

    multiplier = _profit_multiplier(odds)
    gap = agg.net(side.other) - agg.net(side)
    denominator = 1 + multiplier * (1 - fees.settle_fee_rate) - fees.open_fee_rate
    stake = gap / denominator if denominator > 0 else 0.0
    stake = max(0.0, stake)
    return EqualizationResult(
        side=side,
        stake=stake,
        odds=odds,
        target_total=agg.stake(side) + stake,
    )


def auto_equalize(
    positions: Iterable[Position],
    odds_a: float | None,
    odds_b: float | None,
    fees: FeeAdapter = NO_FEES,
    tolerance: float = BALANCE_TOLERANCE,
) -> EqualizationResult | None:
    """Pick the side that needs a bet and equalize on it.

    A one-sided book is hedged on the empty side; otherwise the side with the
    lower net gets the bet.
    """
    positions = list(positions)
    agg = aggregate(positions)
    if abs(agg.net_a - agg.net_b) < tolerance:
        return None

    if agg.stake_a > 0 and agg.stake_b == 0:
        side = Side.B
    elif agg.stake_b > 0 and agg.stake_a == 0:
        side = Side.A
    elif agg.net_a > agg.net_b:
        side = Side.B
    else:
        side = Side.A
    odds = odds_a if side is Side.A else odds_b
    return equalize(positions, side, odds, fees, tolerance)


def _weaker_side(net_a: float, net_b: float) -> Side:
    # Ties go to B.
    return Side.A if net_a < net_b else Side.B


def _stake_to_reach(target_net: float, current_net: float, odds: float, fees: FeeAdapter) -> float | None:
    denominator = _profit_multiplier(odds) - fees.settle_fee_rate - fees.open_fee_rate
    if denominator <= 0:
        log.debug("Fees exceed edge at odds %s", odds)
        return None
    stake = (target_net - current_net) / denominator
    if stake < 0:
        log.debug("Target net %.2f already met (current %.2f)", target_net, current_net)
        return None
    return stake


def target_profit(
    positions: Iterable[Position],
    target: float,
    odds_a: float | None,
    odds_b: float | None,
    fees: FeeAdapter = NO_FEES,
) -> TargetProfitResult | None:
    """Stake on the weaker side that lifts its net to target.

    Returns:
        TargetProfitResult, or None when the weaker side has no odds, fees
        exceed the edge, or the target is already met.
    """
    agg = aggregate(positions)
    side = _weaker_side(agg.net_a, agg.net_b)
    odds = odds_a if side is Side.A else odds_b
    if not _usable(odds):
        return None
    stake = _stake_to_reach(target, agg.net(side), odds, fees)
    if stake is None:
        return None
    return TargetProfitResult(side=side, stake=stake, odds=odds, target_profit=target)


def coverage(
    positions: Iterable[Position],
    coverage_percent: float,
    odds_a: float | None,
    odds_b: float | None,
    fees: FeeAdapter = NO_FEES,
) -> CoverageResult | None:
    """Stake on the weaker side so it loses at most (1 - coverage) of the stake at risk.

    Args:
        positions: Current book.
        coverage_percent: Fraction of the losing stake to protect, 0-1.
            0.8 means the weaker outcome may lose at most 20% of the stake
            placed on the other side.
        odds_a: Odds available for a new bet on A.
        odds_b: Odds available for a new bet on B.
        fees: Fee rates for the new bet.

    Returns:
        CoverageResult, or None for a percent outside [0, 1], missing odds,
        fees exceeding the edge, or coverage already reached.
    """
    if not 0 <= coverage_percent <= 1:
        return None
    agg = aggregate(positions)
    side = _weaker_side(agg.net_a, agg.net_b)
    odds = odds_a if side is Side.A else odds_b
    if not _usable(odds):
        return None
    losing_stake = agg.stake(side.other)
    target_net = -losing_stake * (1 - coverage_percent)
    stake = _stake_to_reach(target_net, agg.net(side), odds, fees)
    if stake is None:
        return None
    return CoverageResult(side=side, stake=stake, odds=odds, coverage_percent=coverage_percent)


def ghost_position(
    result: CoverResult | EqualizationResult | TargetProfitResult | CoverageResult,
    fees: FeeAdapter = NO_FEES,
) -> Position:
    """The position to append to a book to commit a solver preview."""
    profit = result.stake * profit_per_dollar(result.odds)
    return Position(
        side=result.side,
        stake=result.stake,
        profit=profit,
        odds=result.odds,
        fees=result.stake * fees.open_fee_rate + profit * fees.settle_fee_rate,
    )
