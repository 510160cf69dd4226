"""Authorization URL construction."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pajama.oauth.pkce import CHALLENGE_METHOD, PkcePair


def build_authorization_url(
    authorization_endpoint: str,
    *,
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str,
    pkce: PkcePair,
) -> str:
    """Return the browser-facing authorization request URL.

    *scope* is a space-separated list passed through verbatim; enforcement is
    server-side. Any query already present on *authorization_endpoint* is
    kept ahead of the login parameters.
    """
    parts = urlsplit(authorization_endpoint)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(
        [
            ("response_type", "code"),
            ("client_id", client_id),
            ("redirect_uri", redirect_uri),
            ("scope", scope),
            ("state", state),
            ("code_challenge", pkce.challenge),
            ("code_challenge_method", CHALLENGE_METHOD),
        ]
    )
    return urlunsplit(parts._replace(query=urlencode(query)))
