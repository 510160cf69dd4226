"""Pydantic models shared across pajama modules.

**Configuration model** -- serialised as JSON in the user's config directory:
    :class:`Config`.

**OAuth wire models** -- parsed from the authorization server's responses:
    :class:`AuthServerMetadata`, :class:`TokenResponse`, and the
    caller-facing :class:`LoginResult`.

Wire models ignore unknown keys so that servers may add fields freely.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class Config(BaseModel):
    """Persistent CLI configuration stored in ``config.json``.

    Example::

        Config(
            api_base_url="https://api-game-dev-memory.pajamadot.com",
            client_id="cli_123",
            access_token="gdm_abc",
        )
    """

    api_base_url: str = Field(description="Memory API base URL")
    client_id: Optional[str] = Field(
        default=None, description="OAuth client id obtained by dynamic registration"
    )
    access_token: Optional[str] = Field(
        default=None, description="Bearer token saved by `pajama login`"
    )


# --- OAuth wire models ---


class AuthServerMetadata(BaseModel):
    """Endpoint set published at ``/.well-known/oauth-authorization-server``.

    Immutable once fetched.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    issuer: Optional[str] = None
    authorization_endpoint: str
    token_endpoint: str
    registration_endpoint: Optional[str] = None


class TokenResponse(BaseModel):
    """Successful response body of the token endpoint."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str
    token_type: str
    expires_in: Optional[int] = None
    scope: Optional[str] = None


class LoginResult(BaseModel):
    """Outcome of a completed login, handed back to the caller for persistence."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    client_id: str
