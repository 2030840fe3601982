"""
Client-side filters over broker snapshots.

- open positions: quantity != 0
- stop-loss orders: order_type in {SL, SL-M}
Input order is preserved; nothing is sorted.
"""

from __future__ import annotations

from typing import Any, Iterable

from broker.models import ORDER_TYPE_SL, ORDER_TYPE_SLM, Order, Position

STOP_LOSS_ORDER_TYPES = frozenset({ORDER_TYPE_SL, ORDER_TYPE_SLM})


def parse_net_positions(payload: dict[str, Any]) -> list[Position]:
    """Net positions from a ``positions()`` payload (``{"net": [...], "day": [...]}``)."""
    return [Position.from_api(raw) for raw in payload.get("net") or []]


def parse_orders(payload: Iterable[dict[str, Any]]) -> list[Order]:
    return [Order.from_api(raw) for raw in payload or []]


def open_positions(positions: Iterable[Position]) -> list[Position]:
    return [p for p in positions if p.quantity != 0]


def is_stop_loss(order: Order) -> bool:
    return order.order_type in STOP_LOSS_ORDER_TYPES


def stop_loss_orders(orders: Iterable[Order]) -> list[Order]:
    return [o for o in orders if is_stop_loss(o)]
