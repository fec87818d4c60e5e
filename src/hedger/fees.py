"""Fee models applied to a single wager.

Three external fee regimes are modelled:

* no fees (standard sportsbooks);
* a flat fee on winnings, charged only when the wager profits
  (the "PX!" exchange marker, 1% of profit);
* a two-phase event-contract model: an open fee charged on the contract cost
  when the position is entered, and a settlement fee charged when it wins.

Every monetary intermediate is rounded to cents after each step
(round half away from zero), which is how the modelled exchange settles.
Fees are never truncated.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from hedger.odds import to_american

DEFAULT_OPEN_FEE_RATE = 0.01
DEFAULT_SETTLE_FEE_RATE = 0.02
FLAT_WIN_FEE_RATE = 0.01
FLAT_FEE_MARKER = "PX!"
CONTRACT_SIDES = ("yes", "no")

_CENT = Decimal("0.01")


def round2(x: float) -> float:
    """Round a dollar amount to cents, halves away from zero."""
    return float(Decimal(repr(float(x))).quantize(_CENT, rounding=ROUND_HALF_UP))


class SettleBase(str, Enum):
    """What the settlement fee rate is charged on."""

    PROFIT = "profit"
    CONTRACTS = "contracts"


@dataclass(frozen=True)
class FeeBreakdown:
    """Individual fee components. Components a policy does not charge are None."""

    total: float = 0.0
    open_fee: float | None = None
    settle_fee: float | None = None
    win_fee: float | None = None


@dataclass(frozen=True)
class FeeResult:
    """Standardised outcome of applying a fee policy to one wager."""

    payout: float
    profit_before_fees: float
    fees: FeeBreakdown
    net_profit: float


@dataclass(frozen=True)
class ContractLedger:
    """Cash flows of buying event contracts and winning."""

    contracts: int
    cost: float
    open_fee: float
    settle_fee: float
    net_payout: float
    profit: float


# ---------------------------------------------------------------------------
# Fee functions
# ---------------------------------------------------------------------------


def apply_none(stake: float, gross_profit: float) -> FeeResult:
    """Identity policy: no fees of any kind."""
    return FeeResult(
        payout=round2(stake + gross_profit),
        profit_before_fees=round2(gross_profit),
        fees=FeeBreakdown(total=0.0),
        net_profit=round2(gross_profit),
    )


def apply_flat_winnings_fee(
    stake: float,
    gross_profit: float,
    rate: float = FLAT_WIN_FEE_RATE,
) -> FeeResult:
    """Charge a flat percentage of winnings.

    Losses and a profit of exactly zero pass through untouched.
    """
    if gross_profit <= 0:
        return apply_none(stake, gross_profit)
    win_fee = round2(gross_profit * rate)
    net_profit = round2(gross_profit - win_fee)
    return FeeResult(
        payout=round2(stake + net_profit),
        profit_before_fees=round2(gross_profit),
        fees=FeeBreakdown(total=win_fee, win_fee=win_fee),
        net_profit=net_profit,
    )


def _contract_count(stake: float, price: float) -> int:
    # Round before flooring so 0.6 / 0.2 counts as 3 contracts, not 2.
    return math.floor(round(stake / price, 9))


def _validate_price(price: float) -> None:
    if not math.isfinite(price) or price <= 0 or price >= 1:
        raise ValueError(f"Invalid contract price {price}: must be between 0.01 and 0.99")


def contract_cost(stake: float, price: float, side: str = "yes") -> float:
    """Dollars actually spent on whole contracts; the cent remainder is not bet.

    price is the YES price, as in apply_contract_fees.
    """
    _validate_price(price)
    if side not in CONTRACT_SIDES:
        raise ValueError(f"side must be 'yes' or 'no', got {side!r}")
    effective_price = price if side == "yes" else 1 - price
    return round2(_contract_count(stake, effective_price) * effective_price)


def contract_ledger(
    stake: float,
    price: float,
    open_rate: float = DEFAULT_OPEN_FEE_RATE,
    settle_rate: float = DEFAULT_SETTLE_FEE_RATE,
    settle_base: SettleBase = SettleBase.CONTRACTS,
) -> ContractLedger:
    """Ledger for buying YES contracts with a stake and winning.

    Args:
        stake: Dollars available to spend.
        price: Contract price in dollars, strictly between 0 and 1.
        open_rate: Fee rate on the contract cost, charged at entry.
        settle_rate: Fee rate charged at settlement.
        settle_base: Charge the settlement fee on the contract count
            (the $1-per-contract gross payout) or on the winnings.

    Returns:
        ContractLedger. At stake=100, price=0.50 with default rates:
        200 contracts, cost 100, open fee 1, settle fee 4,
        net payout 196, profit 95.

    Raises:
        ValueError: If price is not in (0, 1).
    """
    _validate_price(price)
    contracts = _contract_count(stake, price)
    cost = round2(contracts * price)
    open_fee = round2(cost * open_rate)
    if settle_base is SettleBase.CONTRACTS:
        settle_fee = round2(contracts * settle_rate)
    else:
        settle_fee = round2(round2(contracts - cost) * settle_rate)
    net_payout = round2(contracts - settle_fee)
    profit = round2(net_payout - (cost + open_fee))
    return ContractLedger(
        contracts=contracts,
        cost=cost,
        open_fee=open_fee,
        settle_fee=settle_fee,
        net_payout=net_payout,
        profit=profit,
    )


def contract_effective_odds(
    price: float,
    open_rate: float = DEFAULT_OPEN_FEE_RATE,
    settle_rate: float = DEFAULT_SETTLE_FEE_RATE,
) -> int:
    """American odds a contract price is really worth once fees are paid.

    Computed from the ledger of a $100 stake: profit over total outlay.

    Raises:
        ValueError: If the fees leave no profit.
    """
    ledger = contract_ledger(100, price, open_rate, settle_rate)
    profit_ratio = ledger.profit / (ledger.cost + ledger.open_fee)
    if profit_ratio <= 0:
        raise ValueError(f"No profit left after fees at price {price}")
    return to_american(1 + profit_ratio)


def apply_contract_fees(
    stake: float,
    price: float,
    open_rate: float = DEFAULT_OPEN_FEE_RATE,
    settle_rate: float = DEFAULT_SETTLE_FEE_RATE,
    side: str = "yes",
    settle_base: SettleBase = SettleBase.PROFIT,
) -> FeeResult:
    """Apply the two-phase open/settlement model to an event-contract wager.

    price is always the YES price. A NO wager buys at 1 - price and its
    gross profit is price per contract.

    Raises:
        ValueError: If price is not in (0, 1) or side is not "yes"/"no".
    """
    _validate_price(price)
    if side not in CONTRACT_SIDES:
        raise ValueError(f"side must be 'yes' or 'no', got {side!r}")

    effective_price = price if side == "yes" else 1 - price
    contracts = _contract_count(stake, effective_price)
    cost = round2(contracts * effective_price)
    open_fee = round2(cost * open_rate)
    if side == "yes":
        gross_profit = round2(contracts - cost)
    else:
        gross_profit = round2(price * contracts)

    if settle_base is SettleBase.CONTRACTS:
        settle_fee = round2(contracts * settle_rate)
    else:
        settle_fee = round2(gross_profit * settle_rate)
    net_profit = round2(gross_profit - settle_fee - open_fee)

    return FeeResult(
        payout=round2(stake + net_profit),
        profit_before_fees=gross_profit,
        fees=FeeBreakdown(
            total=round2(open_fee + settle_fee),
            open_fee=open_fee,
            settle_fee=settle_fee,
        ),
        net_profit=net_profit,
    )


def apply_custom(stake: float, gross_profit: float, open_rate: float, win_rate: float) -> FeeResult:
    """User-defined fees: a percentage of stake always, a percentage of winnings on a win."""
    open_fee = round2(stake * open_rate)
    win_fee = round2(gross_profit * win_rate) if gross_profit > 0 else 0.0
    total = round2(open_fee + win_fee)
    net_profit = round2(gross_profit - total)
    return FeeResult(
        payout=round2(stake + net_profit),
        profit_before_fees=round2(gross_profit),
        fees=FeeBreakdown(total=total, open_fee=open_fee, win_fee=win_fee),
        net_profit=net_profit,
    )


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoFees:
    """Standard sportsbook: no fees."""


@dataclass(frozen=True)
class FlatWinningsFee:
    """Flat percentage of positive winnings."""

    rate: float = FLAT_WIN_FEE_RATE


@dataclass(frozen=True)
class ContractFees:
    """Two-phase open/settlement fees on an event contract."""

    open_rate: float = DEFAULT_OPEN_FEE_RATE
    settle_rate: float = DEFAULT_SETTLE_FEE_RATE
    side: str = "yes"
    settle_base: SettleBase = SettleBase.PROFIT


@dataclass(frozen=True)
class CustomFees:
    """User-entered open and win percentages."""

    open_rate: float = 0.0
    win_rate: float = 0.0


FeePolicy = NoFees | FlatWinningsFee | ContractFees | CustomFees


def policy_from_marker(marker: str | None, flat_marker: str = FLAT_FEE_MARKER) -> FeePolicy:
    """Map a sportsbook marker typed by the user to a fee policy.

    Only the flat-fee marker (case-insensitive, surrounding blanks ignored)
    selects a fee; every other marker, including blank, means no fees.
    """
    if marker and marker.strip().upper() == flat_marker.upper():
        return FlatWinningsFee()
    return NoFees()


def apply_policy(
    policy: FeePolicy,
    stake: float,
    gross_profit: float,
    price: float | None = None,
) -> FeeResult:
    """Apply any fee policy to a wager.

    Contract fees derive profit from the contract price, so price is
    required for ContractFees and gross_profit is ignored.
    """
    if isinstance(policy, NoFees):
        return apply_none(stake, gross_profit)
    if isinstance(policy, FlatWinningsFee):
        return apply_flat_winnings_fee(stake, gross_profit, policy.rate)
    if isinstance(policy, ContractFees):
        if price is None:
            raise ValueError("ContractFees requires a contract price")
        return apply_contract_fees(
            stake, price, policy.open_rate, policy.settle_rate, policy.side, policy.settle_base
        )
    if isinstance(policy, CustomFees):
        return apply_custom(stake, gross_profit, policy.open_rate, policy.win_rate)
    raise TypeError(f"Unknown fee policy: {policy!r}")


def apply_marker_fee(stake: float, gross_profit: float, marker: str | None) -> FeeResult:
    """Apply the fee selected by a sportsbook marker string."""
    return apply_policy(policy_from_marker(marker), stake, gross_profit)


# ---------------------------------------------------------------------------
# Solver-facing rates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeeAdapter:
    """Fee rates for a proposed bet, as seen by the stake solver.

    open_fee_rate taxes the stake itself; settle_fee_rate taxes winnings.
    """

    open_fee_rate: float = 0.0
    settle_fee_rate: float = 0.0


NO_FEES = FeeAdapter()


def adapter_for(policy: FeePolicy) -> FeeAdapter:
    """Rates the solver should assume for a new bet under a policy."""
    if isinstance(policy, NoFees):
        return NO_FEES
    if isinstance(policy, FlatWinningsFee):
        return FeeAdapter(open_fee_rate=0.0, settle_fee_rate=policy.rate)
    if isinstance(policy, ContractFees):
        return FeeAdapter(open_fee_rate=policy.open_rate, settle_fee_rate=policy.settle_rate)
    if isinstance(policy, CustomFees):
        return FeeAdapter(open_fee_rate=policy.open_rate, settle_fee_rate=policy.win_rate)
    raise TypeError(f"Unknown fee policy: {policy!r}")
