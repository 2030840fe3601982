"""Pytest fixtures: in-memory broker and Kite-shaped payloads for deterministic tests."""

from typing import Any

import pytest

from broker.errors import KiteError


class FakeBroker:
    """In-memory BrokerClient. Records every call; failures are injected per key."""

    def __init__(
        self,
        *,
        positions: list[dict] | None = None,
        orders: list[dict] | None = None,
        ltp: dict[str, dict] | None = None,
    ) -> None:
        self.net_positions = positions or []
        self.order_book = orders or []
        self.ltp_data = ltp or {}
        self.access_token: str | None = None
        self.calls: list[tuple[str, tuple, dict]] = []
        self.placed: list[tuple[str, dict[str, Any]]] = []
        self.cancelled: list[tuple[str, str]] = []
        self.fail_cancel: set[str] = set()
        self.fail_place: set[str] = set()
        self.fail_ltp = False
        self.fail_session = False
        self.orders_errors: list[Exception] = []
        self.renew_response: dict[str, Any] = {"access_token": "renewed-token-9999"}
        self._next_order_id = 1000

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def login_url(self) -> str:
        return "https://kite.zerodha.com/connect/login?v=3&api_key=test-key"

    def generate_session(self, request_token: str, api_secret: str) -> dict[str, Any]:
        self._record("generate_session", request_token, api_secret)
        if self.fail_session:
            raise KiteError("Invalid `checksum`.", status_code=403, error_type="TokenException")
        return {"access_token": "fresh-token-1234", "refresh_token": "refresh-1"}

    def set_access_token(self, access_token: str) -> None:
        self.access_token = access_token

    def renew_access_token(self, refresh_token: str, api_secret: str) -> dict[str, Any]:
        self._record("renew_access_token", refresh_token, api_secret)
        return self.renew_response

    def positions(self) -> dict[str, list[dict]]:
        self._record("positions")
        return {"net": self.net_positions, "day": []}

    def orders(self) -> list[dict]:
        self._record("orders")
        if self.orders_errors:
            raise self.orders_errors.pop(0)
        return self.order_book

    def ltp(self, instruments: list[str]) -> dict[str, dict]:
        self._record("ltp", list(instruments))
        if self.fail_ltp:
            raise KiteError("Too many requests", status_code=429, error_type="NetworkException")
        return {k: v for k, v in self.ltp_data.items() if k in instruments}

    def place_order(self, variety: str, **params: Any) -> str:
        self._record("place_order", variety, **params)
        if params.get("tradingsymbol") in self.fail_place:
            raise KiteError("Insufficient funds", status_code=400, error_type="MarginException")
        self.placed.append((variety, params))
        self._next_order_id += 1
        return str(self._next_order_id)

    def cancel_order(self, variety: str, order_id: str) -> str:
        self._record("cancel_order", variety, order_id)
        if order_id in self.fail_cancel:
            raise KiteError("Order cannot be cancelled", status_code=400, error_type="OrderException")
        self.cancelled.append((variety, order_id))
        return order_id


def make_position(symbol: str, quantity: int, *, exchange: str = "NSE", product: str = "MIS", **extra: Any) -> dict:
    raw = {
        "tradingsymbol": symbol,
        "exchange": exchange,
        "quantity": quantity,
        "average_price": 3500.0,
        "last_price": 3510.5,
        "pnl": 105.0,
        "product": product,
    }
    raw.update(extra)
    return raw


def make_order(order_id: str, order_type: str, *, symbol: str = "INFY", variety: str | None = "regular", **extra: Any) -> dict:
    raw = {
        "order_id": order_id,
        "tradingsymbol": symbol,
        "exchange": "NSE",
        "quantity": 10,
        "price": 1500.0,
        "status": "TRIGGER PENDING" if order_type in ("SL", "SL-M") else "OPEN",
        "order_type": order_type,
        "product": "MIS",
        "variety": variety,
    }
    raw.update(extra)
    return raw


@pytest.fixture
def fake_broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def credentials_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Credentials only through the environment; no stray access token."""
    monkeypatch.setenv("ZERODHA_API_KEY", "test-key")
    monkeypatch.setenv("ZERODHA_API_SECRET", "test-secret")
    monkeypatch.delenv("ZERODHA_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("ZERODHA_REFRESH_TOKEN", raising=False)


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run from an empty directory so no zerodha.yaml or .env is picked up.

    COLUMNS keeps rich tables on one line per row under CliRunner.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.delenv("FORCE_COLOR", raising=False)
