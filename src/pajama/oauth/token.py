"""Authorization code to bearer token exchange."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from pajama.exceptions import ParseError, TokenExchangeError, UnexpectedTokenTypeError
from pajama.models import TokenResponse
from pajama.oauth.http import borrow_client, json_object, send
from pajama.output import OutputManager, get_output

logger = logging.getLogger(__name__)

EXPECTED_TOKEN_PREFIX = "gdm_"
"""Memory API keys all start with this prefix."""


def exchange_code(
    token_endpoint: str,
    code: str,
    redirect_uri: str,
    code_verifier: str,
    client_id: str,
    *,
    http: Optional[httpx.Client] = None,
    output: Optional[OutputManager] = None,
) -> TokenResponse:
    """Trade an authorization code for a bearer token.

    The code is sent exactly once; a failed exchange is never retried.

    Args:
        token_endpoint: The server's ``token_endpoint``.
        code: Authorization code received on the loopback callback.
        redirect_uri: Must be byte-identical to the ``redirect_uri`` of the
            authorization request.
        code_verifier: PKCE verifier whose challenge was sent earlier.
        client_id: The resolved client id.
        http: Optional client to send the request with.
        output: Sink for the non-fatal token-format warning.

    Returns:
        The parsed :class:`~pajama.models.TokenResponse`.

    Raises:
        TokenExchangeError: On a non-2xx status or a transport failure.
        ParseError: If the body is not JSON or lacks required fields.
        UnexpectedTokenTypeError: If ``token_type`` is not ``bearer``
            (case-insensitive).
    """
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "code_verifier": code_verifier,
        "client_id": client_id,
    }
    with borrow_client(http) as client:
        response = send(client, "POST", token_endpoint, TokenExchangeError, data=form)
    data = json_object(response, "token response")

    token_type = data.get("token_type")
    if not isinstance(token_type, str):
        raise ParseError("parse token response json: missing 'token_type'")
    if token_type.lower() != "bearer":
        raise UnexpectedTokenTypeError(token_type)

    try:
        token = TokenResponse.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"parse token response json: {exc}") from exc

    if not token.access_token.startswith(EXPECTED_TOKEN_PREFIX):
        (output or get_output()).warning(
            f"access_token does not look like a {EXPECTED_TOKEN_PREFIX} API key. Continuing anyway."
        )
    logger.debug("Token exchange succeeded (scope=%s)", token.scope)
    return token
