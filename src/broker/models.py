"""Position, Order and OrderRequest snapshots built from Kite API payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

VARIETY_REGULAR = "regular"

TRANSACTION_TYPE_BUY = "BUY"
TRANSACTION_TYPE_SELL = "SELL"

ORDER_TYPE_MARKET = "MARKET"
ORDER_TYPE_LIMIT = "LIMIT"
ORDER_TYPE_SL = "SL"
ORDER_TYPE_SLM = "SL-M"

VALIDITY_DAY = "DAY"


def _float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class Position:
    symbol: str
    exchange: str
    quantity: int  # signed: > 0 long, < 0 short
    average_price: float | None
    last_price: float | None
    pnl: float | None
    product: str

    @property
    def instrument_key(self) -> str:
        return f"{self.exchange}:{self.symbol}"

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Position":
        return cls(
            symbol=str(raw["tradingsymbol"]),
            exchange=str(raw["exchange"]),
            quantity=int(raw.get("quantity") or 0),
            average_price=_float(raw.get("average_price")),
            last_price=_float(raw.get("last_price")),
            pnl=_float(raw.get("pnl")),
            product=str(raw.get("product", "")),
        )


@dataclass(frozen=True)
class Order:
    order_id: str
    symbol: str
    exchange: str
    quantity: int
    price: float | None
    status: str
    order_type: str
    product: str
    variety: str = VARIETY_REGULAR

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Order":
        return cls(
            order_id=str(raw["order_id"]),
            symbol=str(raw.get("tradingsymbol", "")),
            exchange=str(raw.get("exchange", "")),
            quantity=int(raw.get("quantity") or 0),
            price=_float(raw.get("price")),
            status=str(raw.get("status", "")),
            order_type=str(raw.get("order_type", "")),
            product=str(raw.get("product", "")),
            variety=str(raw.get("variety") or VARIETY_REGULAR),
        )


@dataclass(frozen=True)
class OrderRequest:
    """Parameters for one place_order call."""

    symbol: str
    exchange: str
    transaction_type: str
    order_type: str
    quantity: int
    product: str
    price: float | None = None
    trigger_price: float | None = None
    validity: str = VALIDITY_DAY
    variety: str = VARIETY_REGULAR

    def to_params(self) -> dict[str, Any]:
        """Form parameters for POST /orders/{variety}; None values are dropped."""
        params = {
            "tradingsymbol": self.symbol,
            "exchange": self.exchange,
            "transaction_type": self.transaction_type,
            "order_type": self.order_type,
            "quantity": self.quantity,
            "product": self.product,
            "price": self.price,
            "trigger_price": self.trigger_price,
            "validity": self.validity,
        }
        return {k: v for k, v in params.items() if v is not None}

    def describe(self) -> str:
        price = f" @ {self.price}" if self.price is not None else ""
        return (
            f"{self.transaction_type} {self.quantity} {self.exchange}:{self.symbol} "
            f"{self.order_type}{price} ({self.product}, {self.variety})"
        )
