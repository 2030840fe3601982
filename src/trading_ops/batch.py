"""
Sequential mutation loops: cancel stop-loss orders, flatten positions.

Items run strictly one after another. Each item's outcome is reported
through ``on_result`` as soon as it is known. Failure handling is chosen by
BatchPolicy:

    isolate        a failed item is reported and the loop continues
    stop-on-error  the first failure marks every remaining item skipped

The LTP fetch for limit exits is not an item: if it fails, nothing is placed
and PriceFetchError propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Iterable, TypeVar

from broker.client import BrokerClient
from broker.errors import KiteError
from broker.models import VALIDITY_DAY, VARIETY_REGULAR, Order, Position

from trading_ops.exits import build_exit_order, instrument_keys, last_prices

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchPolicy(str, Enum):
    ISOLATE = "isolate"
    STOP_ON_ERROR = "stop-on-error"


class ItemStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"
    DRY_RUN = "dry-run"


class PriceFetchError(Exception):
    """Raised when last traded prices for limit exits cannot be fetched."""


@dataclass
class ItemResult(Generic[T]):
    item: T
    status: ItemStatus
    order_id: str | None = None
    detail: str = ""
    error: str | None = None


@dataclass
class BatchResult(Generic[T]):
    results: list[ItemResult[T]] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded(self) -> list[ItemResult[T]]:
        return [r for r in self.results if r.status == ItemStatus.DONE]

    @property
    def failed(self) -> list[ItemResult[T]]:
        return [r for r in self.results if r.status == ItemStatus.FAILED]

    @property
    def skipped(self) -> list[ItemResult[T]]:
        return [r for r in self.results if r.status == ItemStatus.SKIPPED]


def run_batch(
    items: Iterable[T],
    action: Callable[[T], tuple[str | None, str]],
    *,
    policy: BatchPolicy = BatchPolicy.ISOLATE,
    dry_run: bool = False,
    on_result: Callable[[ItemResult[T]], None] | None = None,
) -> BatchResult[T]:
    """Apply *action* to each item in order.

    *action* returns ``(order_id, detail)``. Under dry-run it must not call
    the broker; the result is recorded as DRY_RUN.
    """
    batch: BatchResult[T] = BatchResult()
    for item in items:
        if batch.aborted:
            result = ItemResult(item, ItemStatus.SKIPPED, error="skipped after earlier failure")
        else:
            try:
                order_id, detail = action(item)
            except Exception as exc:
                logger.warning("Batch item failed: %s", exc)
                result = ItemResult(item, ItemStatus.FAILED, error=str(exc))
                if policy == BatchPolicy.STOP_ON_ERROR:
                    batch.aborted = True
            else:
                status = ItemStatus.DRY_RUN if dry_run else ItemStatus.DONE
                result = ItemResult(item, status, order_id=order_id, detail=detail)
        batch.results.append(result)
        if on_result is not None:
            on_result(result)
    return batch


def cancel_orders(
    client: BrokerClient,
    orders: Iterable[Order],
    *,
    policy: BatchPolicy = BatchPolicy.ISOLATE,
    dry_run: bool = False,
    on_result: Callable[[ItemResult[Order]], None] | None = None,
) -> BatchResult[Order]:
    """Cancel each order with its own variety."""

    def _cancel(order: Order) -> tuple[str | None, str]:
        detail = f"cancel {order.variety} order {order.order_id} ({order.symbol})"
        if dry_run:
            return None, detail
        return client.cancel_order(order.variety, order.order_id), detail

    return run_batch(orders, _cancel, policy=policy, dry_run=dry_run, on_result=on_result)


def fetch_last_prices(client: BrokerClient, positions: list[Position]) -> dict[str, float]:
    """One batched LTP call for every instrument; all-or-nothing."""
    keys = instrument_keys(positions)
    try:
        payload = client.ltp(keys)
    except KiteError as exc:
        raise PriceFetchError(str(exc)) from exc
    prices = last_prices(payload)
    logger.info("Fetched last prices for %d of %d instruments", len(prices), len(keys))
    return prices


def close_positions(
    client: BrokerClient,
    positions: Iterable[Position],
    *,
    use_limit_order: bool = False,
    variety: str = VARIETY_REGULAR,
    validity: str = VALIDITY_DAY,
    policy: BatchPolicy = BatchPolicy.ISOLATE,
    dry_run: bool = False,
    on_prices: Callable[[dict[str, float]], None] | None = None,
    on_result: Callable[[ItemResult[Position]], None] | None = None,
) -> BatchResult[Position]:
    """Place one offsetting order per position.

    Zero-quantity positions are expected to be filtered out by the caller.
    With *use_limit_order*, prices are fetched first; PriceFetchError aborts
    before any order is placed.
    """
    positions = list(positions)
    prices: dict[str, float] | None = None
    if use_limit_order:
        prices = fetch_last_prices(client, positions)
        if on_prices is not None:
            on_prices(prices)

    def _close(position: Position) -> tuple[str | None, str]:
        request = build_exit_order(
            position,
            use_limit_order=use_limit_order,
            prices=prices,
            variety=variety,
            validity=validity,
        )
        if dry_run:
            return None, request.describe()
        order_id = client.place_order(request.variety, **request.to_params())
        return order_id, request.describe()

    return run_batch(positions, _close, policy=policy, dry_run=dry_run, on_result=on_result)
