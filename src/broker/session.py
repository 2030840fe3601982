"""
Session establishment: reuse an access token or run the login exchange.

The login exchange is interactive: the login URL is shown, the operator logs
in through a browser and pastes back the ``request_token`` from the redirect.
Console I/O is injected (``echo`` / ``ask``) so the flow runs under tests.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from broker.client import BrokerClient
from broker.errors import KiteError

if TYPE_CHECKING:
    from config.credentials import Credentials

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when no usable access token could be obtained."""


@dataclass(frozen=True)
class Session:
    api_key: str
    access_token: str
    obtained: bool = False  # True when issued during this invocation


def mask_token(token: str) -> str:
    """Show only the edges of a token: ``abcd...wxyz``."""
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


class TokenStore:
    """Access-token cache file, readable only by its owner (mode 0600)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            obj = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable token cache %s: %s", self.path, exc)
            return None
        token = obj.get("access_token") if isinstance(obj, dict) else None
        return str(token) if token else None

    def save(self, access_token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            {
                "access_token": access_token,
                "saved_at": datetime.now(timezone.utc).isoformat(),
            },
            indent=2,
        )
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.chmod(self.path, 0o600)
        logger.info("Access token cached at %s", self.path)


def establish_session(
    client: BrokerClient,
    credentials: Credentials,
    *,
    echo: Callable[[str], None],
    ask: Callable[[str], str],
) -> Session:
    """Return a Session with an access token set on *client*.

    A supplied access token is used as-is; it is not validated until the
    first API call. Otherwise the login-URL / request-token exchange runs.
    """
    if credentials.access_token:
        client.set_access_token(credentials.access_token)
        return Session(credentials.api_key, credentials.access_token)

    echo("Please visit the following URL to authenticate:")
    echo(client.login_url())
    echo("\nAfter logging in, you will be redirected with a request_token. Please enter it below:")

    request_token = (ask("Enter request_token from redirect URL") or "").strip()
    if not request_token:
        raise AuthenticationError("Request token is required")

    echo("Authenticating with Kite Connect...")
    try:
        response = client.generate_session(request_token, credentials.api_secret)
    except KiteError as exc:
        raise AuthenticationError(f"Token exchange failed: {exc}") from exc

    access_token = response.get("access_token")
    if not access_token:
        raise AuthenticationError("Token exchange returned no access_token")
    client.set_access_token(access_token)
    return Session(credentials.api_key, access_token, obtained=True)


def renew_session(client: BrokerClient, credentials: Credentials, current_token: str | None) -> Session:
    """Renew the access token with the refresh token (or the current token if none).

    Raises AuthenticationError when renewal is impossible or rejected.
    """
    renewal_token = credentials.refresh_token or current_token
    if not renewal_token:
        raise AuthenticationError("Token renewal failed: no refresh token available.")
    try:
        response = client.renew_access_token(renewal_token, credentials.api_secret)
    except KiteError as exc:
        raise AuthenticationError(f"Token renewal failed: {exc}") from exc

    access_token = response.get("access_token") if isinstance(response, dict) else None
    if not access_token:
        raise AuthenticationError("Token renewal failed: No access_token in response.")
    client.set_access_token(access_token)
    return Session(credentials.api_key, access_token, obtained=True)
