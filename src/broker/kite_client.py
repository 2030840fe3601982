"""
Kite Connect v3 REST client: implements BrokerClient with requests.

- Adds ``X-Kite-Version`` and ``Authorization: token api_key:access_token`` headers
- Unwraps the ``{"status", "data"}`` response envelope
- Maps ``error_type`` to the broker.errors hierarchy
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any
from urllib.parse import urlencode

import requests

from broker.errors import DataError, NetworkError, error_for

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.kite.trade"
DEFAULT_LOGIN_URL = "https://kite.zerodha.com/connect/login"
KITE_API_VERSION = "3"


def checksum(api_key: str, token: str, api_secret: str) -> str:
    """SHA-256 of api_key + token + api_secret, as the session endpoints expect."""
    return hashlib.sha256(f"{api_key}{token}{api_secret}".encode("utf-8")).hexdigest()


class KiteClient:
    """
    Thin REST client for Kite Connect.

    One instance per invocation; the access token lives only on this object.
    """

    def __init__(
        self,
        api_key: str,
        *,
        access_token: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        login_url: str = DEFAULT_LOGIN_URL,
        timeout_sec: float = 7.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Kite API key is required.")
        self.api_key = api_key
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self._login_url = login_url
        self.timeout_sec = timeout_sec
        self._session = session or requests.Session()

    # ---------- session ----------

    def login_url(self) -> str:
        return f"{self._login_url}?{urlencode({'v': KITE_API_VERSION, 'api_key': self.api_key})}"

    def set_access_token(self, access_token: str) -> None:
        self.access_token = access_token

    def generate_session(self, request_token: str, api_secret: str) -> dict[str, Any]:
        data = self._request(
            "POST",
            "/session/token",
            data={
                "api_key": self.api_key,
                "request_token": request_token,
                "checksum": checksum(self.api_key, request_token, api_secret),
            },
        )
        if not isinstance(data, dict) or not data.get("access_token"):
            raise DataError("Session response did not contain an access_token")
        self.set_access_token(data["access_token"])
        return data

    def renew_access_token(self, refresh_token: str, api_secret: str) -> dict[str, Any]:
        data = self._request(
            "POST",
            "/session/refresh_token",
            data={
                "api_key": self.api_key,
                "refresh_token": refresh_token,
                "checksum": checksum(self.api_key, refresh_token, api_secret),
            },
        )
        if not isinstance(data, dict):
            raise DataError("Unexpected token renewal response")
        if data.get("access_token"):
            self.set_access_token(data["access_token"])
        return data

    # ---------- reads ----------

    def positions(self) -> dict[str, list[dict[str, Any]]]:
        data = self._request("GET", "/portfolio/positions")
        if not isinstance(data, dict):
            raise DataError("Unexpected positions response")
        return data

    def orders(self) -> list[dict[str, Any]]:
        data = self._request("GET", "/orders")
        if not isinstance(data, list):
            raise DataError("Unexpected orders response")
        return data

    def ltp(self, instruments: list[str]) -> dict[str, dict[str, Any]]:
        data = self._request("GET", "/quote/ltp", params={"i": list(instruments)})
        if not isinstance(data, dict):
            raise DataError("Unexpected LTP response")
        return data

    # ---------- mutations ----------

    def place_order(self, variety: str, **params: Any) -> str:
        body = {k: v for k, v in params.items() if v is not None}
        data = self._request("POST", f"/orders/{variety}", data=body)
        try:
            return str(data["order_id"])
        except (KeyError, TypeError) as exc:
            raise DataError("Order response did not contain an order_id") from exc

    def cancel_order(self, variety: str, order_id: str) -> str:
        data = self._request("DELETE", f"/orders/{variety}/{order_id}")
        if isinstance(data, dict) and data.get("order_id"):
            return str(data["order_id"])
        return str(order_id)

    # ---------- transport ----------

    def _headers(self) -> dict[str, str]:
        headers = {"X-Kite-Version": KITE_API_VERSION}
        if self.access_token:
            headers["Authorization"] = f"token {self.api_key}:{self.access_token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            resp = self._session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                data=data,
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            if resp.status_code >= 500:
                raise NetworkError(
                    f"Gateway error {resp.status_code} on {method} {path}",
                    status_code=resp.status_code,
                )
            raise DataError(
                f"Unparsable response ({resp.status_code}) on {method} {path}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        if payload.get("status") == "error" or resp.status_code >= 400:
            message = str(payload.get("message") or f"HTTP {resp.status_code}")
            logger.warning("%s %s -> %s %s", method, path, resp.status_code, payload.get("error_type"))
            raise error_for(message, status_code=resp.status_code, error_type=payload.get("error_type"))

        return payload.get("data")
