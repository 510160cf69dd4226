"""Login orchestration: discovery through token exchange.

:func:`login` runs one attempt against already-discovered metadata, and
:func:`run_login` prefixes it with discovery. Each attempt generates its own
state, PKCE pair and loopback port; a failure at any stage aborts the attempt
and nothing from it is reused by the next.

Side effects on the terminal and the browser go through injected
collaborators (an :class:`~pajama.output.OutputManager` and a
:class:`~pajama.oauth.browser.BrowserLauncher`) so the flow can run in tests
without a display.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from pajama.models import AuthServerMetadata, LoginResult
from pajama.oauth.authorize import build_authorization_url
from pajama.oauth.browser import BrowserLauncher
from pajama.oauth.callback import LoopbackListener
from pajama.oauth.discovery import DEFAULT_CLIENT_NAME, discover, resolve_client_id
from pajama.oauth.http import borrow_client
from pajama.oauth.pkce import build_pkce_pair, new_state
from pajama.oauth.token import exchange_code
from pajama.output import OutputManager, get_output

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT = 180.0
"""Seconds to wait for the browser redirect before giving up."""

DEFAULT_SCOPE = (
    "projects:read projects:write memories:read memories:write "
    "artifacts:read artifacts:write assets:read assets:write"
)
"""Full access for a personal/org token. A request hint only; the server decides."""


def login(
    metadata: AuthServerMetadata,
    client_id: Optional[str] = None,
    scope: str = DEFAULT_SCOPE,
    auto_open: bool = True,
    *,
    http: Optional[httpx.Client] = None,
    output: Optional[OutputManager] = None,
    launcher: Optional[BrowserLauncher] = None,
    timeout: float = LOGIN_TIMEOUT,
    client_name: str = DEFAULT_CLIENT_NAME,
) -> LoginResult:
    """Run one Authorization Code + PKCE login attempt.

    Args:
        metadata: Endpoints from :func:`~pajama.oauth.discovery.discover`.
        client_id: Cached client id; registration runs when omitted.
        scope: Space-separated scopes requested.
        auto_open: Open the browser automatically instead of only printing
            the URL.
        http: Client for registration and token exchange.
        output: Sink for user-facing progress messages.
        launcher: Browser launcher; built from *output* when omitted.
        timeout: Seconds to wait for a valid callback.
        client_name: Name sent with dynamic registration.

    Returns:
        The :class:`~pajama.models.LoginResult` for the caller to persist.

    Raises:
        LoginError: Any stage failure. See :mod:`pajama.exceptions`.
    """
    output = output or get_output()
    launcher = launcher or BrowserLauncher(output)

    with borrow_client(http) as client:
        resolved_client_id = resolve_client_id(metadata, client_id, client_name, http=client)

        state = new_state()
        pkce = build_pkce_pair()

        with LoopbackListener.bind(state) as listener:
            redirect_uri = listener.redirect_uri
            auth_url = build_authorization_url(
                metadata.authorization_endpoint,
                client_id=resolved_client_id,
                redirect_uri=redirect_uri,
                scope=scope,
                state=state,
                pkce=pkce,
            )
            listener.start()
            launcher.launch(auth_url, auto_open=auto_open)
            output.debug(f"Waiting for the browser redirect on {redirect_uri}")
            code = listener.wait_for_code(timeout)

        token = exchange_code(
            metadata.token_endpoint,
            code,
            redirect_uri,
            pkce.verifier,
            resolved_client_id,
            http=client,
            output=output,
        )

    logger.debug("Login complete for client %s", resolved_client_id)
    return LoginResult(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in,
        scope=token.scope,
        client_id=resolved_client_id,
    )


def run_login(
    api_base_url: str,
    client_id: Optional[str] = None,
    scope: str = DEFAULT_SCOPE,
    auto_open: bool = True,
    *,
    http: Optional[httpx.Client] = None,
    output: Optional[OutputManager] = None,
    launcher: Optional[BrowserLauncher] = None,
    timeout: float = LOGIN_TIMEOUT,
) -> LoginResult:
    """Discover the authorization server at *api_base_url*, then :func:`login`."""
    with borrow_client(http) as client:
        metadata = discover(api_base_url, http=client)
        return login(
            metadata,
            client_id,
            scope,
            auto_open,
            http=client,
            output=output,
            launcher=launcher,
            timeout=timeout,
        )
