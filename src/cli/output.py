"""
Terminal output: rich tables and per-item status lines.

Every command prints through these formatters so the operator sees exactly
what will be (or was) sent to the broker.
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.markup import escape
from rich.table import Table

from broker.models import Order, Position
from trading_ops.batch import ItemResult, ItemStatus

ORDER_HEADERS = [
    "Order ID",
    "Symbol",
    "Quantity",
    "Price",
    "Status",
    "Order Type",
    "Product Type",
    "Exchange",
]

POSITION_HEADERS = [
    "Symbol",
    "Quantity",
    "Average Price",
    "LTP",
    "P&L",
    "Product Type",
    "Exchange",
]

NUMERIC_COLUMNS = {"Quantity", "Price", "Average Price", "LTP", "P&L"}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    return escape(str(value))


def _table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> Table:
    table = Table(show_header=True)
    for name in headers:
        if name in NUMERIC_COLUMNS:
            table.add_column(name, justify="right")
        elif name == "Symbol":
            table.add_column(name, style="cyan")
        else:
            table.add_column(name)
    for row in rows:
        table.add_row(*[_cell(v) for v in row])
    return table


def orders_table(orders: Sequence[Order]) -> Table:
    return _table(
        ORDER_HEADERS,
        [
            [o.order_id, o.symbol, o.quantity, o.price, o.status, o.order_type, o.product, o.exchange]
            for o in orders
        ],
    )


def positions_table(positions: Sequence[Position]) -> Table:
    return _table(
        POSITION_HEADERS,
        [
            [p.symbol, p.quantity, p.average_price, p.last_price, p.pnl, p.product, p.exchange]
            for p in positions
        ],
    )


def format_prices(prices: dict[str, float]) -> str:
    lines = ["Successfully fetched LTPs for all positions:"]
    for key, price in prices.items():
        symbol = key.split(":", 1)[-1]
        lines.append(f"- {symbol}: ₹{price}")
    return "\n".join(lines)


def format_cancel_result(result: ItemResult[Order]) -> str:
    order = result.item
    if result.status == ItemStatus.DONE:
        return f"Closed order: {order.order_id} ({order.symbol})"
    if result.status == ItemStatus.DRY_RUN:
        return f"[dry-run] would {result.detail}"
    if result.status == ItemStatus.SKIPPED:
        return f"Skipped order {order.order_id} ({order.symbol})"
    return f"Failed to close order {order.order_id}: {result.error}"


def format_close_result(result: ItemResult[Position]) -> str:
    pos = result.item
    if result.status == ItemStatus.DONE:
        return f"Closed position: {pos.symbol} (Quantity: {pos.quantity}, Order ID: {result.order_id})"
    if result.status == ItemStatus.DRY_RUN:
        return f"[dry-run] would place {result.detail}"
    if result.status == ItemStatus.SKIPPED:
        return f"Skipped position {pos.symbol}"
    return f"Failed to close position {pos.symbol}: {result.error}"


def format_summary(succeeded: int, failed: int, skipped: int, *, noun: str) -> str:
    parts = [f"{succeeded} {noun} done", f"{failed} failed"]
    if skipped:
        parts.append(f"{skipped} skipped")
    return "Summary: " + ", ".join(parts)
