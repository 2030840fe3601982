"""
Credential resolution with explicit precedence: CLI option > environment > none.

Environment names follow the ZERODHA_* convention; a .env file in the working
directory is loaded into the environment by the CLI before resolution.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

ENV_API_KEY = "ZERODHA_API_KEY"
ENV_API_SECRET = "ZERODHA_API_SECRET"
ENV_ACCESS_TOKEN = "ZERODHA_ACCESS_TOKEN"
ENV_REFRESH_TOKEN = "ZERODHA_REFRESH_TOKEN"


class CredentialsError(Exception):
    """Raised when a required credential is missing from every source."""


@dataclass(frozen=True)
class Credentials:
    api_key: str
    api_secret: str
    access_token: str | None = None
    refresh_token: str | None = None

    def with_access_token(self, access_token: str | None) -> "Credentials":
        return Credentials(self.api_key, self.api_secret, access_token, self.refresh_token)


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def resolve_credentials(
    *,
    api_key: str | None = None,
    api_secret: str | None = None,
    access_token: str | None = None,
    refresh_token: str | None = None,
    env: Mapping[str, str] | None = None,
    cached_access_token: str | None = None,
) -> Credentials:
    """Resolve each credential from its option, then the environment.

    ``cached_access_token`` (from a token cache file) is the last source
    for the access token only. Raises CredentialsError if the API key or
    secret cannot be found.
    """
    if env is None:
        env = os.environ

    key = _first(api_key, env.get(ENV_API_KEY))
    secret = _first(api_secret, env.get(ENV_API_SECRET))
    if not key or not secret:
        raise CredentialsError("API key and API secret are required")

    return Credentials(
        api_key=key,
        api_secret=secret,
        access_token=_first(access_token, env.get(ENV_ACCESS_TOKEN), cached_access_token),
        refresh_token=_first(refresh_token, env.get(ENV_REFRESH_TOKEN)),
    )
