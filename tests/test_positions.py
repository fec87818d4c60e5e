"""Tests for positions and per-side aggregation."""

import pytest

from hedger.fees import ContractFees, FlatWinningsFee
from hedger.positions import AggregateNet, Position, Side, aggregate, build_position


class TestSide:
    def test_other(self) -> None:
        assert Side.A.other is Side.B
        assert Side.B.other is Side.A

    def test_from_string(self) -> None:
        assert Side("A") is Side.A


class TestPosition:
    def test_frozen(self) -> None:
        p = Position(Side.A, 100, 100, 100)
        with pytest.raises(AttributeError):
            p.stake = 50

    def test_negative_stake_raises(self) -> None:
        with pytest.raises(ValueError, match="stake"):
            Position(Side.A, -1, 0)

    def test_odds_inside_range_raise(self) -> None:
        with pytest.raises(ValueError, match="odds"):
            Position(Side.A, 100, 50, odds=50)

    def test_missing_odds_allowed(self) -> None:
        assert Position(Side.B, 0, 0, odds=None).odds is None


class TestBuildPosition:
    def test_no_fees(self) -> None:
        p = build_position(Side.A, 100, 150)
        assert p.profit == 150
        assert p.fees == 0
        assert p.odds == 150

    def test_negative_odds(self) -> None:
        p = build_position(Side.B, 100, -118.5)
        assert p.profit == pytest.approx(84.39, abs=0.01)

    def test_flat_fee_recorded_as_fees(self) -> None:
        p = build_position(Side.A, 200, 100, FlatWinningsFee())
        assert p.profit == 200
        assert p.fees == 2

    def test_contract_fees(self) -> None:
        p = build_position(Side.A, 100, 100, ContractFees(), price=0.5)
        assert p.profit == 100
        assert p.fees == 3

    def test_contract_stake_is_whole_contract_cost(self) -> None:
        """151 contracts at 0.33 cost 49.83; the remaining 17 cents are not risked."""
        p = build_position(Side.A, 50, 203, ContractFees(), price=0.33)
        assert p.stake == 49.83
        assert p.profit == pytest.approx(101.17)
        assert aggregate([p]).net_b == pytest.approx(-49.83)

    def test_contract_no_side_stake(self) -> None:
        p = build_position(Side.B, 62.5, 163, ContractFees(side="no"), price=0.38)
        assert p.stake == 62
        assert p.profit == 38


class TestAggregate:
    def test_empty(self) -> None:
        agg = aggregate([])
        assert agg == AggregateNet()
        assert agg.net_a == 0
        assert agg.net_b == 0

    def test_cross_term(self) -> None:
        """net_a collects A's profit and forfeits B's stake."""
        agg = aggregate([
            Position(Side.A, 50, 100, 200),
            Position(Side.B, 30, 30, 100),
        ])
        assert agg.net_a == 70
        assert agg.net_b == -20

    def test_fees_reduce_own_side(self) -> None:
        agg = aggregate([
            Position(Side.A, 100, 95, 100, fees=5),
            Position(Side.B, 50, 48, 100, fees=2),
        ])
        assert agg.net_a == pytest.approx(40)
        assert agg.net_b == pytest.approx(-54)
        assert agg.fees(Side.A) == 5
        assert agg.fees(Side.B) == 2

    def test_sums_per_side(self) -> None:
        agg = aggregate([
            Position(Side.B, 100, 50, -200),
            Position(Side.B, 50, 100, 200),
        ])
        assert agg.stake(Side.B) == 150
        assert agg.profit(Side.B) == 150
        assert agg.net(Side.A) == -150
        assert agg.net(Side.B) == 150

    def test_order_independent(self) -> None:
        positions = [
            Position(Side.A, 100, 150, 150),
            Position(Side.B, 40, 60, 150, fees=1),
            Position(Side.A, 25, 12.5, -200),
        ]
        assert aggregate(positions) == aggregate(list(reversed(positions)))

    def test_additive(self) -> None:
        """Net is linear in the position set."""
        p1 = Position(Side.A, 100, 150, 150)
        p2 = Position(Side.B, 40, 60, 150)
        both = aggregate([p1, p2])
        assert both.net_a == pytest.approx(
            aggregate([p1]).net_a + aggregate([p2]).profit_a - aggregate([p2]).stake_b
        )
        assert both.net_b == pytest.approx(
            aggregate([p1]).net_b + aggregate([p2]).profit_b
        )

    def test_accepts_generator(self) -> None:
        agg = aggregate(Position(Side.A, s, s, 100) for s in [10, 20])
        assert agg.stake_a == 30
