"""
Brokerage collaborator interface. One implementation per broker; sync only.
"""

from typing import Any, Protocol


class BrokerClient(Protocol):
    """Protocol for the brokerage API. Shapes follow Kite Connect v3 payloads."""

    def login_url(self) -> str:
        """URL the user opens to log in and obtain a request token."""
        ...

    def generate_session(self, request_token: str, api_secret: str) -> dict[str, Any]:
        """Exchange a request token for a session dict containing ``access_token``."""
        ...

    def set_access_token(self, access_token: str) -> None:
        ...

    def renew_access_token(self, refresh_token: str, api_secret: str) -> dict[str, Any]:
        """Return a dict containing a fresh ``access_token``."""
        ...

    def positions(self) -> dict[str, list[dict[str, Any]]]:
        """Return ``{"net": [...], "day": [...]}``."""
        ...

    def orders(self) -> list[dict[str, Any]]:
        ...

    def ltp(self, instruments: list[str]) -> dict[str, dict[str, Any]]:
        """Map ``EXCHANGE:SYMBOL`` to ``{"last_price": ...}`` for each instrument."""
        ...

    def place_order(self, variety: str, **params: Any) -> str:
        """Place an order and return its order id."""
        ...

    def cancel_order(self, variety: str, order_id: str) -> str:
        ...
