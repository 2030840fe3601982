"""
Brokerage collaborator: Kite Connect client, payload models, errors, session.

trading_ops and cli depend on the BrokerClient protocol, never on requests.
"""

from broker.client import BrokerClient
from broker.errors import (
    DataError,
    GeneralError,
    InputError,
    KiteError,
    KitePermissionError,
    NetworkError,
    OrderError,
    TokenError,
    is_token_error,
)
from broker.models import Order, OrderRequest, Position
from broker.session import AuthenticationError, Session, TokenStore, establish_session, mask_token, renew_session

__all__ = [
    "AuthenticationError",
    "BrokerClient",
    "DataError",
    "GeneralError",
    "InputError",
    "KiteError",
    "KitePermissionError",
    "NetworkError",
    "Order",
    "OrderError",
    "OrderRequest",
    "Position",
    "Session",
    "TokenError",
    "TokenStore",
    "establish_session",
    "get_kite_client",
    "is_token_error",
    "mask_token",
    "renew_session",
]


def get_kite_client(api_key: str, *, base_url: str, login_url: str, timeout_sec: float):
    """Build the live Kite REST client; tests inject a fake instead."""
    from broker.kite_client import KiteClient

    return KiteClient(api_key, base_url=base_url, login_url=login_url, timeout_sec=timeout_sec)
