"""
trading-ops: filtering and mutation loops over broker snapshots.

No console I/O. Talks to the broker only through BrokerClient, so every
workflow runs against an in-memory fake under test.
"""

from trading_ops.batch import (
    BatchPolicy,
    BatchResult,
    ItemResult,
    ItemStatus,
    PriceFetchError,
    cancel_orders,
    close_positions,
    fetch_last_prices,
    run_batch,
)
from trading_ops.exits import (
    MissingPriceError,
    build_exit_order,
    exit_quantity,
    exit_side,
    instrument_keys,
    last_prices,
)
from trading_ops.filters import (
    STOP_LOSS_ORDER_TYPES,
    is_stop_loss,
    open_positions,
    parse_net_positions,
    parse_orders,
    stop_loss_orders,
)

__all__ = [
    "BatchPolicy",
    "BatchResult",
    "ItemResult",
    "ItemStatus",
    "MissingPriceError",
    "PriceFetchError",
    "STOP_LOSS_ORDER_TYPES",
    "build_exit_order",
    "cancel_orders",
    "close_positions",
    "exit_quantity",
    "exit_side",
    "fetch_last_prices",
    "instrument_keys",
    "is_stop_loss",
    "last_prices",
    "open_positions",
    "parse_net_positions",
    "parse_orders",
    "run_batch",
    "stop_loss_orders",
]
