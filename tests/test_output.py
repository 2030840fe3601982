"""Tests for cli.output: rich tables and status lines."""

import io

from conftest import make_order, make_position
from rich.console import Console
from rich.table import Table

from broker.models import Order, Position
from cli.output import (
    ORDER_HEADERS,
    POSITION_HEADERS,
    format_cancel_result,
    format_close_result,
    format_prices,
    format_summary,
    orders_table,
    positions_table,
)
from trading_ops.batch import ItemResult, ItemStatus


def _render(table: Table) -> str:
    buf = io.StringIO()
    Console(file=buf, width=200, color_system=None).print(table)
    return buf.getvalue()


def test_orders_table_columns_in_api_order() -> None:
    orders = [Order.from_api(make_order("22", "SL", symbol="TCS")), Order.from_api(make_order("11", "LIMIT"))]
    table = orders_table(orders)
    assert [c.header for c in table.columns] == ORDER_HEADERS
    assert table.row_count == 2
    text = _render(table)
    assert text.index("22") < text.index("11")
    assert "TRIGGER PENDING" in text


def test_positions_table() -> None:
    table = positions_table([Position.from_api(make_position("TCS", -10))])
    assert [c.header for c in table.columns] == POSITION_HEADERS
    row = next(line for line in _render(table).splitlines() if "TCS" in line)
    assert "-10" in row
    assert "3500.00" in row
    assert "105.00" in row


def test_missing_price_renders_blank() -> None:
    raw = make_order("7", "MARKET")
    raw["price"] = None
    table = orders_table([Order.from_api(raw)])
    assert list(table.columns[3].cells) == [""]


def test_symbol_with_brackets_not_treated_as_markup() -> None:
    table = positions_table([Position.from_api(make_position("NIFTY[X]", 1))])
    assert "NIFTY[X]" in _render(table)


def test_format_prices() -> None:
    text = format_prices({"NSE:TCS": 3510.5})
    assert text.splitlines() == ["Successfully fetched LTPs for all positions:", "- TCS: ₹3510.5"]


def test_close_result_lines() -> None:
    pos = Position.from_api(make_position("TCS", -10))
    assert format_close_result(ItemResult(pos, ItemStatus.DONE, order_id="77")) == (
        "Closed position: TCS (Quantity: -10, Order ID: 77)"
    )
    assert format_close_result(ItemResult(pos, ItemStatus.FAILED, error="Insufficient funds")) == (
        "Failed to close position TCS: Insufficient funds"
    )
    assert format_close_result(ItemResult(pos, ItemStatus.SKIPPED)) == "Skipped position TCS"


def test_cancel_result_lines() -> None:
    order = Order.from_api(make_order("5", "SL", symbol="SBIN"))
    assert format_cancel_result(ItemResult(order, ItemStatus.DONE, order_id="5")) == "Closed order: 5 (SBIN)"
    assert format_cancel_result(ItemResult(order, ItemStatus.FAILED, error="nope")) == "Failed to close order 5: nope"
    dry = ItemResult(order, ItemStatus.DRY_RUN, detail="cancel regular order 5 (SBIN)")
    assert format_cancel_result(dry) == "[dry-run] would cancel regular order 5 (SBIN)"


def test_summary() -> None:
    assert format_summary(2, 1, 0, noun="orders") == "Summary: 2 orders done, 1 failed"
    assert format_summary(0, 1, 3, noun="positions") == "Summary: 0 positions done, 1 failed, 3 skipped"
