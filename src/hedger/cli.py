"""CLI entry point for the hedge calculator."""

import logging
import sys
from dataclasses import replace
from pathlib import Path

import click

from hedger.config import HedgeConfig, load_config
from hedger.fees import (
    NO_FEES,
    CustomFees,
    FeeAdapter,
    SettleBase,
    adapter_for,
    apply_contract_fees,
    apply_policy,
    contract_effective_odds,
    contract_ledger,
)
from hedger.odds import (
    OddsFormat,
    format_odds,
    implied_probability,
    parse,
    parse_with_kind,
    profit_per_dollar,
    validate,
)
from hedger.positions import Position, Side, aggregate, build_position
from hedger.solver import auto_equalize, cover, coverage, equalize, ghost_position, target_profit

log = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _odds_or_fail(raw: str, cfg: HedgeConfig) -> float:
    error = validate(raw, cfg.sign_preference)
    american = parse(raw, cfg.sign_preference)
    if error is not None or american is None:
        message = error.message if error is not None else "Invalid odds format"
        raise click.BadParameter(f"{raw!r}: {message}")
    return american


def _optional_odds(raw: str | None, cfg: HedgeConfig) -> float | None:
    return None if raw is None else _odds_or_fail(raw, cfg)


def _parse_bet(text: str, cfg: HedgeConfig) -> Position:
    """Parse SIDE:STAKE:ODDS[:MARKER] into a Position."""
    parts = text.split(":")
    if len(parts) not in (3, 4):
        raise click.BadParameter(f"{text!r}: expected SIDE:STAKE:ODDS[:MARKER]")
    side_raw, stake_raw, odds_raw = parts[:3]
    try:
        side = Side(side_raw.strip().upper())
    except ValueError:
        raise click.BadParameter(f"{text!r}: side must be A or B") from None
    try:
        stake = float(stake_raw)
    except ValueError:
        raise click.BadParameter(f"{text!r}: stake must be a number") from None
    if stake < 0:
        raise click.BadParameter(f"{text!r}: stake must be non-negative")
    odds = _odds_or_fail(odds_raw, cfg)
    marker = parts[3] if len(parts) == 4 else None
    return build_position(side, stake, odds, cfg.policy_for_marker(marker))


def _fee_adapter(mode: str, cfg: HedgeConfig) -> FeeAdapter:
    if mode == "contract":
        return adapter_for(cfg.contract_policy())
    if mode == "flat":
        return adapter_for(cfg.policy_for_marker(cfg.flat_fee_marker))
    return NO_FEES


def _book(ctx: click.Context, bets: tuple[str, ...]) -> list[Position]:
    cfg = ctx.obj["config"]
    positions = [_parse_bet(b, cfg) for b in bets]
    agg = aggregate(positions)
    click.echo(f"Current: net A {agg.net_a:.2f}, net B {agg.net_b:.2f}")
    return positions


def _echo_after(positions: list[Position], ghost: Position) -> None:
    agg = aggregate(positions + [ghost])
    click.echo(f"After:   net A {agg.net_a:.2f}, net B {agg.net_b:.2f}")


bet_option = click.option(
    "--bet", "bets", multiple=True,
    help="Existing wager as SIDE:STAKE:ODDS[:MARKER], e.g. A:100:+150. Repeatable.",
)
fees_option = click.option(
    "--fees", "fee_mode", type=click.Choice(["none", "contract", "flat"]), default="none",
    show_default=True, help="Fee model of the book taking the new bet.",
)


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="YAML settings file.")
@click.option("--sign", type=click.Choice(["+", "-"]), default=None,
              help="Sign for bare integers >= 101 (overrides config).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, sign: str | None, verbose: bool) -> None:
    """Hedge calculator: odds conversion, fees and hedge stakes."""
    setup_logging(verbose)
    try:
        cfg = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    if sign is not None:
        cfg = replace(cfg, sign_preference=sign)
    log.debug("Using config %s", cfg)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command(name="parse")
@click.argument("raw")
@click.pass_context
def parse_cmd(ctx: click.Context, raw: str) -> None:
    """Parse odds in any notation and show every display format."""
    cfg = ctx.obj["config"]
    error = validate(raw, cfg.sign_preference)
    if error is not None:
        raise click.ClickException(f"{raw!r}: {error.message}")
    parsed = parse_with_kind(raw, cfg.sign_preference)
    click.echo(f"american: {format_odds(parsed.american, OddsFormat.AMERICAN)}")
    click.echo(f"decimal:  {format_odds(parsed.american, OddsFormat.DECIMAL)}")
    click.echo(f"contract: {format_odds(parsed.american, OddsFormat.CONTRACT)}")
    click.echo(f"percent:  {format_odds(parsed.american, OddsFormat.PERCENT)}")
    click.echo(f"notation: {parsed.kind}{' (contract price)' if parsed.is_contract_price else ''}")


@cli.command()
@click.argument("raw")
@click.option("--to", "fmt", type=click.Choice([f.value for f in OddsFormat]), default="american",
              show_default=True)
@click.pass_context
def convert(ctx: click.Context, raw: str, fmt: str) -> None:
    """Convert odds to a single display format."""
    american = _odds_or_fail(raw, ctx.obj["config"])
    click.echo(format_odds(american, fmt))


@cli.command()
@click.argument("stake", type=float)
@click.argument("price", type=float)
@click.option("--settle-base", type=click.Choice([b.value for b in SettleBase]), default="contracts",
              show_default=True, help="Charge the settlement fee on contract count or on profit.")
@click.pass_context
def ledger(ctx: click.Context, stake: float, price: float, settle_base: str) -> None:
    """Contract ledger for buying YES at PRICE (0-1) with STAKE dollars."""
    cfg = ctx.obj["config"]
    try:
        result = contract_ledger(
            stake, price, cfg.contract_open_rate, cfg.contract_settle_rate, SettleBase(settle_base)
        )
        effective = contract_effective_odds(price, cfg.contract_open_rate, cfg.contract_settle_rate)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"contracts:  {result.contracts}")
    click.echo(f"cost:       {result.cost:.2f}")
    click.echo(f"open fee:   {result.open_fee:.2f}")
    click.echo(f"settle fee: {result.settle_fee:.2f}")
    click.echo(f"net payout: {result.net_payout:.2f}")
    click.echo(f"profit:     {result.profit:.2f}")
    click.echo(f"effective:  {format_odds(effective, OddsFormat.AMERICAN)}")


@cli.command()
@click.argument("stake", type=float)
@click.argument("odds")
@click.option("--marker", default=None, help="Sportsbook marker; the flat-fee marker charges on winnings.")
@click.option("--contract", "contract_side", type=click.Choice(["yes", "no"]), default=None,
              help="Price the wager as an event contract on this side; ODDS gives the YES price.")
@click.option("--custom", nargs=2, type=float, default=None, metavar="OPEN WIN",
              help="Custom open and win fee rates, e.g. --custom 0.01 0.02.")
@click.pass_context
def fees(
    ctx: click.Context,
    stake: float,
    odds: str,
    marker: str | None,
    contract_side: str | None,
    custom: tuple[float, float] | None,
) -> None:
    """Fee breakdown and net profit of a single wager."""
    cfg = ctx.obj["config"]
    american = _odds_or_fail(odds, cfg)
    try:
        if contract_side is not None:
            price = round(implied_probability(american), 2)
            result = apply_contract_fees(
                stake, price, cfg.contract_open_rate, cfg.contract_settle_rate, contract_side
            )
        else:
            policy = CustomFees(*custom) if custom else cfg.policy_for_marker(marker)
            result = apply_policy(policy, stake, stake * profit_per_dollar(american))
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    breakdown = result.fees
    click.echo(f"profit before fees: {result.profit_before_fees:.2f}")
    for label, value in (("open fee", breakdown.open_fee), ("settle fee", breakdown.settle_fee),
                         ("win fee", breakdown.win_fee)):
        if value is not None:
            click.echo(f"{label + ':':<19} {value:.2f}")
    click.echo(f"total fees:         {breakdown.total:.2f}")
    click.echo(f"net profit:         {result.net_profit:.2f}")
    click.echo(f"payout:             {result.payout:.2f}")


@cli.command(name="equalize")
@bet_option
@click.option("--side", type=click.Choice(["A", "B"], case_sensitive=False), default=None,
              help="Side to bet on. Picked automatically when omitted.")
@click.option("--odds-a", default=None, help="Odds available on A.")
@click.option("--odds-b", default=None, help="Odds available on B.")
@fees_option
@click.pass_context
def equalize_cmd(
    ctx: click.Context,
    bets: tuple[str, ...],
    side: str | None,
    odds_a: str | None,
    odds_b: str | None,
    fee_mode: str,
) -> None:
    """Stake that makes both outcomes pay the same."""
    cfg = ctx.obj["config"]
    positions = _book(ctx, bets)
    adapter = _fee_adapter(fee_mode, cfg)
    a, b = _optional_odds(odds_a, cfg), _optional_odds(odds_b, cfg)
    if side is None:
        result = auto_equalize(positions, a, b, adapter, cfg.balance_tolerance)
    else:
        side = Side(side.upper())
        result = equalize(positions, side, a if side is Side.A else b, adapter, cfg.balance_tolerance)
    if result is None:
        click.echo("No bet needed.")
        return
    click.echo(f"Bet {result.stake:.2f} on {result.side.value} at "
               f"{format_odds(result.odds, OddsFormat.AMERICAN)}")
    _echo_after(positions, ghost_position(result, adapter))


@cli.command(name="cover")
@bet_option
@click.option("--side", type=click.Choice(["A", "B"], case_sensitive=False), required=True,
              help="Side whose net should reach zero.")
@click.option("--odds", "odds_raw", required=True, help="Odds available on that side.")
@fees_option
@click.pass_context
def cover_cmd(ctx: click.Context, bets: tuple[str, ...], side: str, odds_raw: str, fee_mode: str) -> None:
    """Stake that makes one outcome break even."""
    cfg = ctx.obj["config"]
    positions = _book(ctx, bets)
    adapter = _fee_adapter(fee_mode, cfg)
    result = cover(positions, Side(side.upper()), _odds_or_fail(odds_raw, cfg), adapter)
    if result.fees_exceed_edge:
        click.echo("Cannot cover with given fees.")
        return
    click.echo(f"Bet {result.stake:.2f} on {result.side.value} at "
               f"{format_odds(result.odds, OddsFormat.AMERICAN)}")
    click.echo(f"After:   net A {result.net_a_after:.2f}, net B {result.net_b_after:.2f}")


@cli.command(name="target")
@bet_option
@click.argument("amount", type=float)
@click.option("--odds-a", default=None, help="Odds available on A.")
@click.option("--odds-b", default=None, help="Odds available on B.")
@fees_option
@click.pass_context
def target_cmd(
    ctx: click.Context,
    bets: tuple[str, ...],
    amount: float,
    odds_a: str | None,
    odds_b: str | None,
    fee_mode: str,
) -> None:
    """Stake on the weaker side that lifts its net to AMOUNT."""
    cfg = ctx.obj["config"]
    positions = _book(ctx, bets)
    adapter = _fee_adapter(fee_mode, cfg)
    result = target_profit(
        positions, amount, _optional_odds(odds_a, cfg), _optional_odds(odds_b, cfg), adapter
    )
    if result is None:
        click.echo("No bet possible or needed.")
        return
    click.echo(f"Bet {result.stake:.2f} on {result.side.value} at "
               f"{format_odds(result.odds, OddsFormat.AMERICAN)}")
    _echo_after(positions, ghost_position(result, adapter))


@cli.command(name="coverage")
@bet_option
@click.argument("percent", type=float)
@click.option("--odds-a", default=None, help="Odds available on A.")
@click.option("--odds-b", default=None, help="Odds available on B.")
@fees_option
@click.pass_context
def coverage_cmd(
    ctx: click.Context,
    bets: tuple[str, ...],
    percent: float,
    odds_a: str | None,
    odds_b: str | None,
    fee_mode: str,
) -> None:
    """Stake on the weaker side protecting PERCENT (0-1) of the stake at risk."""
    cfg = ctx.obj["config"]
    positions = _book(ctx, bets)
    adapter = _fee_adapter(fee_mode, cfg)
    result = coverage(
        positions, percent, _optional_odds(odds_a, cfg), _optional_odds(odds_b, cfg), adapter
    )
    if result is None:
        click.echo("No bet possible or needed.")
        return
    click.echo(f"Bet {result.stake:.2f} on {result.side.value} at "
               f"{format_odds(result.odds, OddsFormat.AMERICAN)}")
    _echo_after(positions, ghost_position(result, adapter))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
