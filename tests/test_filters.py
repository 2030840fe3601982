"""Tests for trading_ops.filters: open positions and stop-loss orders."""

from conftest import make_order, make_position

from broker.models import Order, Position
from trading_ops.filters import (
    STOP_LOSS_ORDER_TYPES,
    is_stop_loss,
    open_positions,
    parse_net_positions,
    parse_orders,
    stop_loss_orders,
)


class TestParse:
    def test_net_positions_only(self):
        payload = {
            "net": [make_position("TCS", 5)],
            "day": [make_position("INFY", 3)],
        }
        positions = parse_net_positions(payload)
        assert [p.symbol for p in positions] == ["TCS"]
        assert isinstance(positions[0], Position)

    def test_missing_net_key(self):
        assert parse_net_positions({"day": []}) == []

    def test_parse_orders_defaults_variety(self):
        orders = parse_orders([make_order("1", "SL", variety=None)])
        assert orders[0].variety == "regular"
        assert isinstance(orders[0], Order)

    def test_position_fields(self):
        p = Position.from_api(make_position("TCS", -10, exchange="BSE", product="NRML"))
        assert p.quantity == -10
        assert p.exchange == "BSE"
        assert p.product == "NRML"
        assert p.average_price == 3500.0
        assert p.instrument_key == "BSE:TCS"


class TestOpenPositions:
    def test_excludes_zero_quantity(self):
        positions = parse_net_positions(
            {"net": [make_position("TCS", 5), make_position("INFY", 0), make_position("SBIN", -2)]}
        )
        result = open_positions(positions)
        assert [p.symbol for p in result] == ["TCS", "SBIN"]
        assert all(p.quantity != 0 for p in result)

    def test_all_flat(self):
        positions = parse_net_positions({"net": [make_position("INFY", 0)]})
        assert open_positions(positions) == []

    def test_preserves_api_order(self):
        positions = parse_net_positions(
            {"net": [make_position("ZEEL", 1), make_position("ACC", -1), make_position("MRF", 2)]}
        )
        assert [p.symbol for p in open_positions(positions)] == ["ZEEL", "ACC", "MRF"]


class TestStopLossOrders:
    def test_selects_sl_and_slm_only(self):
        orders = parse_orders(
            [
                make_order("1", "SL"),
                make_order("2", "LIMIT"),
                make_order("3", "SL-M"),
                make_order("4", "MARKET"),
            ]
        )
        assert [o.order_id for o in stop_loss_orders(orders)] == ["1", "3"]

    def test_case_sensitive_types(self):
        orders = parse_orders([make_order("1", "sl"), make_order("2", "SLM")])
        assert stop_loss_orders(orders) == []

    def test_type_set(self):
        assert STOP_LOSS_ORDER_TYPES == {"SL", "SL-M"}

    def test_is_stop_loss(self):
        assert is_stop_loss(Order.from_api(make_order("9", "SL-M")))
        assert not is_stop_loss(Order.from_api(make_order("9", "LIMIT")))
