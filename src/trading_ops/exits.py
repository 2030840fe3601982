"""
Exit orders: Position -> offsetting OrderRequest.

A long position (quantity > 0) is closed with a SELL, a short one with a
BUY, always for abs(quantity). Limit exits are priced at the last traded
price; market exits carry no price.
"""

from __future__ import annotations

from typing import Any, Iterable

from broker.models import (
    ORDER_TYPE_LIMIT,
    ORDER_TYPE_MARKET,
    TRANSACTION_TYPE_BUY,
    TRANSACTION_TYPE_SELL,
    VALIDITY_DAY,
    VARIETY_REGULAR,
    OrderRequest,
    Position,
)


class MissingPriceError(Exception):
    """Raised when a limit exit has no last traded price for its instrument."""


def exit_quantity(position: Position) -> int:
    return abs(position.quantity)


def exit_side(position: Position) -> str:
    """BUY to cover a short, SELL to close a long."""
    if position.quantity == 0:
        raise ValueError(f"{position.symbol} has no open quantity")
    return TRANSACTION_TYPE_BUY if position.quantity < 0 else TRANSACTION_TYPE_SELL


def instrument_keys(positions: Iterable[Position]) -> list[str]:
    """``EXCHANGE:SYMBOL`` keys, deduplicated, in position order."""
    keys: list[str] = []
    for p in positions:
        if p.instrument_key not in keys:
            keys.append(p.instrument_key)
    return keys


def last_prices(ltp_payload: dict[str, dict[str, Any]]) -> dict[str, float]:
    """Flatten an ``ltp()`` payload to ``{instrument_key: last_price}``."""
    prices: dict[str, float] = {}
    for key, quote in ltp_payload.items():
        if isinstance(quote, dict) and quote.get("last_price") is not None:
            prices[key] = float(quote["last_price"])
    return prices


def build_exit_order(
    position: Position,
    *,
    use_limit_order: bool = False,
    prices: dict[str, float] | None = None,
    variety: str = VARIETY_REGULAR,
    validity: str = VALIDITY_DAY,
) -> OrderRequest:
    """Build the order that flattens *position*.

    The product type is carried over from the position so the exit nets
    against the same bucket (MIS, CNC, NRML).
    """
    price = None
    if use_limit_order:
        price = (prices or {}).get(position.instrument_key)
        if price is None:
            raise MissingPriceError(f"No last traded price for {position.instrument_key}")

    return OrderRequest(
        symbol=position.symbol,
        exchange=position.exchange,
        transaction_type=exit_side(position),
        order_type=ORDER_TYPE_LIMIT if use_limit_order else ORDER_TYPE_MARKET,
        quantity=exit_quantity(position),
        product=position.product,
        price=price,
        trigger_price=None,
        validity=validity,
        variety=variety,
    )
