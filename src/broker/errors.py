"""
Kite Connect error hierarchy.

Every failed API call surfaces as a KiteError subclass chosen from the
``error_type`` field of the response envelope.
"""

from __future__ import annotations


class KiteError(Exception):
    """Base class for brokerage API failures."""

    def __init__(self, message: str, *, status_code: int | None = None, error_type: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class TokenError(KiteError):
    """Session expired or access token invalid."""


class KitePermissionError(KiteError):
    pass


class OrderError(KiteError):
    pass


class InputError(KiteError):
    pass


class DataError(KiteError):
    """Response could not be parsed or had an unexpected shape."""


class NetworkError(KiteError):
    """Transport failure or upstream gateway error."""


class GeneralError(KiteError):
    pass


_ERROR_TYPES: dict[str, type[KiteError]] = {
    "TokenException": TokenError,
    "PermissionException": KitePermissionError,
    "OrderException": OrderError,
    "InputException": InputError,
    "DataException": DataError,
    "NetworkException": NetworkError,
    "GeneralException": GeneralError,
    "UserException": GeneralError,
    "MarginException": OrderError,
    "HoldingException": OrderError,
}


def error_for(message: str, *, status_code: int | None = None, error_type: str | None = None) -> KiteError:
    """Build the KiteError subclass matching *error_type* (GeneralError if unknown)."""
    cls = _ERROR_TYPES.get(error_type or "", GeneralError)
    if error_type is None and status_code == 403:
        cls = TokenError
    return cls(message, status_code=status_code, error_type=error_type)


def is_token_error(exc: BaseException) -> bool:
    """True for token-expiry failures, including ones only named in the message."""
    if isinstance(exc, TokenError):
        return True
    return "TokenException" in str(exc)
