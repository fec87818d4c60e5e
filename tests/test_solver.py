"""Tests for the hedge stake solver."""

import math

import pytest

from hedger.fees import NO_FEES, FeeAdapter
from hedger.positions import Position, Side, aggregate, build_position
from hedger.solver import (
    auto_equalize,
    cover,
    coverage,
    equalize,
    ghost_position,
    target_profit,
)

CONTRACT = FeeAdapter(open_fee_rate=0.01, settle_fee_rate=0.02)


def _one_sided() -> list[Position]:
    """$100 on A at even money."""
    return [build_position(Side.A, 100, 100)]


class TestCover:
    def test_even_money(self) -> None:
        result = cover(_one_sided(), Side.B, 100)
        assert result.stake == pytest.approx(100)
        assert result.net_b_after == pytest.approx(0)
        assert result.net_a_after == pytest.approx(0)
        assert not result.fees_exceed_edge

    def test_negative_odds(self) -> None:
        positions = [build_position(Side.A, 100, 150)]
        result = cover(positions, Side.B, -150)
        assert result.stake == pytest.approx(150)
        assert result.net_b_after == pytest.approx(0, abs=1e-9)
        assert result.net_a_after == pytest.approx(0, abs=1e-9)

    def test_with_fees(self) -> None:
        result = cover(_one_sided(), Side.B, 100, CONTRACT)
        assert result.stake == pytest.approx(103.09, abs=0.01)
        assert result.net_b_after == pytest.approx(0, abs=1e-9)

    def test_already_winning_side_gets_zero(self) -> None:
        result = cover(_one_sided(), Side.A, 100)
        assert result.stake == 0
        assert not result.fees_exceed_edge

    def test_fees_exceed_edge(self) -> None:
        result = cover(_one_sided(), Side.B, -10000, CONTRACT)
        assert result.stake == 0
        assert result.fees_exceed_edge
        assert result.net_b_after == pytest.approx(-100)

    @pytest.mark.parametrize("odds", [None, 0, math.nan, 50, -99])
    def test_unusable_odds(self, odds: float | None) -> None:
        assert cover(_one_sided(), Side.B, odds) is None

    def test_accepts_string_side(self) -> None:
        assert cover(_one_sided(), "B", 100).side is Side.B

    def test_ghost_commits_to_zero(self) -> None:
        """Appending the cover bet leaves the covered side at zero."""
        positions = [build_position(Side.A, 100, 150)]
        result = cover(positions, Side.B, 100, CONTRACT)
        after = aggregate(positions + [ghost_position(result, CONTRACT)])
        assert after.net_b == pytest.approx(0, abs=1e-9)
        assert after.net_a == pytest.approx(result.net_a_after)


class TestEqualize:
    def test_fee_free(self) -> None:
        result = equalize(_one_sided(), Side.B, 100)
        assert result.stake == pytest.approx(100)
        assert result.target_total == pytest.approx(100)

    def test_with_fees(self) -> None:
        result = equalize(_one_sided(), Side.B, 100, CONTRACT)
        assert result.stake == pytest.approx(101.52, abs=0.01)

    def test_fixed_point(self) -> None:
        """After committing the bet, nets match and a second call is a no-op."""
        for fees in [NO_FEES, CONTRACT]:
            positions = _one_sided()
            result = equalize(positions, Side.B, 100, fees)
            positions.append(ghost_position(result, fees))
            after = aggregate(positions)
            assert after.net_a == pytest.approx(after.net_b, abs=1e-9)
            assert equalize(positions, Side.B, 100, fees) is None

    def test_existing_stake_on_side(self) -> None:
        positions = [build_position(Side.A, 100, 100), build_position(Side.B, 20, 100)]
        result = equalize(positions, Side.B, 100)
        assert result.stake == pytest.approx(80)
        assert result.target_total == pytest.approx(100)

    def test_already_balanced(self) -> None:
        assert equalize([], Side.A, 100) is None
        positions = [build_position(Side.A, 100, 100), build_position(Side.B, 100, 100)]
        assert equalize(positions, Side.B, 100) is None

    def test_within_tolerance(self) -> None:
        positions = [Position(Side.A, 100, 100.004, 100), Position(Side.B, 100, 100, 100)]
        assert equalize(positions, Side.B, 100) is None

    def test_wrong_side_clamped_to_zero(self) -> None:
        result = equalize(_one_sided(), Side.A, 100)
        assert result.stake == 0

    def test_unusable_odds(self) -> None:
        assert equalize(_one_sided(), Side.B, None) is None


class TestAutoEqualize:
    def test_one_sided_bets_empty_side(self) -> None:
        result = auto_equalize(_one_sided(), odds_a=100, odds_b=100)
        assert result.side is Side.B
        assert result.stake == pytest.approx(100)

    def test_only_b_staked_bets_a(self) -> None:
        positions = [build_position(Side.B, 50, 200)]
        result = auto_equalize(positions, odds_a=100, odds_b=100)
        assert result.side is Side.A

    def test_both_sides_bets_lower_net(self) -> None:
        positions = [build_position(Side.A, 100, 100), build_position(Side.B, 50, 100)]
        result = auto_equalize(positions, odds_a=100, odds_b=100)
        assert result.side is Side.B
        assert result.stake == pytest.approx(50)

    def test_balanced_returns_none(self) -> None:
        assert auto_equalize([], 100, 100) is None

    def test_missing_odds_for_chosen_side(self) -> None:
        assert auto_equalize(_one_sided(), odds_a=100, odds_b=None) is None


class TestTargetProfit:
    def test_fee_free(self) -> None:
        result = target_profit(_one_sided(), 50, odds_a=100, odds_b=100)
        assert result.side is Side.B
        assert result.stake == pytest.approx(150)
        assert result.target_profit == 50

    def test_with_fees(self) -> None:
        result = target_profit(_one_sided(), 50, 100, 100, CONTRACT)
        assert result.stake == pytest.approx(154.64, abs=0.01)

    def test_target_already_met(self) -> None:
        assert target_profit(_one_sided(), -200, 100, 100) is None

    def test_uses_weaker_side_odds(self) -> None:
        result = target_profit(_one_sided(), 50, odds_a=300, odds_b=-200)
        assert result.odds == -200
        assert result.stake == pytest.approx(300)

    def test_empty_book_goes_to_b(self) -> None:
        result = target_profit([], 100, 100, 100)
        assert result.side is Side.B
        assert result.stake == pytest.approx(100)

    def test_missing_odds(self) -> None:
        assert target_profit(_one_sided(), 50, 100, None) is None

    def test_fees_exceed_edge(self) -> None:
        assert target_profit(_one_sided(), 50, 100, -10000, CONTRACT) is None

    def test_fixed_point(self) -> None:
        positions = _one_sided()
        result = target_profit(positions, 25, 100, 100, CONTRACT)
        after = aggregate(positions + [ghost_position(result, CONTRACT)])
        assert after.net_b == pytest.approx(25, abs=1e-9)


class TestCoverage:
    def test_eighty_percent(self) -> None:
        result = coverage(_one_sided(), 0.8, 100, 100)
        assert result.side is Side.B
        assert result.stake == pytest.approx(80)
        assert result.coverage_percent == 0.8

    def test_full_coverage(self) -> None:
        assert coverage(_one_sided(), 1.0, 100, 100).stake == pytest.approx(100)

    def test_with_fees(self) -> None:
        result = coverage(_one_sided(), 0.8, 100, 100, CONTRACT)
        assert result.stake == pytest.approx(82.47, abs=0.01)

    def test_zero_coverage_needs_no_stake(self) -> None:
        assert coverage(_one_sided(), 0.0, 100, 100).stake == pytest.approx(0)

    @pytest.mark.parametrize("pct", [-0.1, 1.5])
    def test_invalid_percent(self, pct: float) -> None:
        assert coverage(_one_sided(), pct, 100, 100) is None

    def test_partial_existing_hedge(self) -> None:
        positions = [build_position(Side.A, 100, 100), build_position(Side.B, 50, 100)]
        result = coverage(positions, 0.8, 100, 100)
        assert result.stake == pytest.approx(30)

    def test_already_covered(self) -> None:
        positions = [build_position(Side.A, 100, 100), build_position(Side.B, 90, 100)]
        assert coverage(positions, 0.8, 100, 100) is None

    def test_fixed_point(self) -> None:
        positions = _one_sided()
        result = coverage(positions, 0.8, 100, 100)
        after = aggregate(positions + [ghost_position(result)])
        assert after.net_b == pytest.approx(-20)


class TestGhostPosition:
    def test_fee_free(self) -> None:
        result = equalize(_one_sided(), Side.B, 100)
        ghost = ghost_position(result)
        assert ghost.side is Side.B
        assert ghost.profit == pytest.approx(100)
        assert ghost.fees == 0

    def test_fees(self) -> None:
        result = cover(_one_sided(), Side.B, 100, CONTRACT)
        ghost = ghost_position(result, CONTRACT)
        assert ghost.fees == pytest.approx(result.stake * 0.01 + ghost.profit * 0.02)


class TestOddsInsideRange:
    @pytest.mark.parametrize("odds", [50, -99.5])
    def test_every_objective_rejects(self, odds: float) -> None:
        book = _one_sided()
        assert equalize(book, Side.B, odds) is None
        assert auto_equalize(book, odds, odds) is None
        assert target_profit(book, 50, odds, odds) is None
        assert coverage(book, 0.8, odds, odds) is None
