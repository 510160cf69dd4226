"""Exception hierarchy for pajama.

All exceptions inherit from :class:`PajamaError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pajama.exit_codes`.
The top-level handler in :func:`pajama.app.main` catches ``PajamaError``,
prints a single message and exits with that code.

Every failure of a login attempt is a :class:`LoginError`. They are all
terminal: nothing retries internally, and the caller re-runs the whole login,
which regenerates every secret and binds a new port.

Subclass hierarchy::

    PajamaError (exit 1)
    +-- ConfigError                    (exit 1)
    +-- LoginError                     (exit 3)
        +-- HTTPStageError
        |   +-- DiscoveryError
        |   +-- RegistrationError
        |   +-- TokenExchangeError
        +-- ParseError
        +-- RegistrationUnsupportedError
        +-- BindError
        +-- CallbackServerError
        +-- TimeoutError_
        +-- UnexpectedTokenTypeError
"""

from __future__ import annotations

from typing import Optional

from pajama.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
)


class PajamaError(Exception):
    """Base exception for all pajama errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(PajamaError):
    """Raised for configuration problems (unreadable file, invalid JSON, missing token)."""

    exit_code = EXIT_GENERIC_FAILURE


class LoginError(PajamaError):
    """Base class for every attempt-level OAuth login failure."""

    exit_code = EXIT_AUTH_FAILURE


class HTTPStageError(LoginError):
    """A login stage whose HTTP call failed.

    ``status`` is ``None`` when the request never produced a response
    (DNS failure, connection refused, timeout).
    """

    stage = "request"

    def __init__(self, status: Optional[int], body: str = "", detail: str = ""):
        self.status = status
        self.body = body
        if status is None:
            message = f"{self.stage} failed: {detail or 'no response'}"
        else:
            message = f"{self.stage} failed (HTTP {status}): {body}"
        super().__init__(message)


class DiscoveryError(HTTPStageError):
    """The authorization server metadata could not be fetched."""

    stage = "oauth metadata request"


class RegistrationError(HTTPStageError):
    """Dynamic client registration was rejected."""

    stage = "client registration"


class TokenExchangeError(HTTPStageError):
    """The token endpoint rejected the authorization code."""

    stage = "token exchange"


class ParseError(LoginError):
    """A response body was not valid JSON or lacked a required field."""


class RegistrationUnsupportedError(LoginError):
    """No cached client id and the server exposes no ``registration_endpoint``."""

    def __init__(self, message: str = "oauth server does not expose a registration_endpoint"):
        super().__init__(message)


class BindError(LoginError):
    """A loopback port could not be acquired for the callback listener."""


class CallbackServerError(LoginError):
    """The callback listener stopped accepting connections unexpectedly."""


class TimeoutError_(LoginError):
    """No valid callback arrived within the login timeout.

    Named with a trailing underscore to avoid shadowing the built-in
    ``TimeoutError``.
    """


class UnexpectedTokenTypeError(LoginError):
    """The token endpoint issued something other than a bearer token."""

    def __init__(self, token_type: str):
        self.token_type = token_type
        super().__init__(f"unexpected token_type '{token_type}' (expected Bearer)")
