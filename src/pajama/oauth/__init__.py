"""OAuth 2.0 Authorization Code + PKCE login over a loopback redirect.

Exports:
    :func:`login` / :func:`run_login` -- the orchestrated flow.
    :func:`discover` -- authorization server metadata lookup.
    :class:`LoopbackListener` -- the redirect receiver.
    :class:`BrowserLauncher` -- best-effort browser opener.
    :func:`build_pkce_pair` -- PKCE verifier/challenge generation.

See Also:
    :mod:`pajama.exceptions` for the failure taxonomy.
"""

from pajama.oauth.browser import BrowserLauncher
from pajama.oauth.callback import LoopbackListener
from pajama.oauth.discovery import discover, register_client, resolve_client_id
from pajama.oauth.flow import DEFAULT_SCOPE, LOGIN_TIMEOUT, login, run_login
from pajama.oauth.pkce import PkcePair, build_pkce_pair
from pajama.oauth.token import exchange_code

__all__ = [
    "DEFAULT_SCOPE",
    "LOGIN_TIMEOUT",
    "BrowserLauncher",
    "LoopbackListener",
    "PkcePair",
    "build_pkce_pair",
    "discover",
    "exchange_code",
    "login",
    "register_client",
    "resolve_client_id",
    "run_login",
]
