"""Authorization server discovery and client identity resolution.

:func:`discover` fetches the RFC 8414 metadata document, and
:func:`resolve_client_id` either reuses the cached client id or performs
RFC 7591 dynamic client registration through :func:`register_client`.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from pajama.exceptions import (
    DiscoveryError,
    ParseError,
    RegistrationError,
    RegistrationUnsupportedError,
)
from pajama.models import AuthServerMetadata
from pajama.oauth.http import borrow_client, json_object, send

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/oauth-authorization-server"
DEFAULT_CLIENT_NAME = "pajama-cli"


def metadata_url(base_url: str) -> str:
    """Return the metadata URL for *base_url*, ignoring trailing slashes."""
    return base_url.rstrip("/") + WELL_KNOWN_PATH


def discover(base_url: str, *, http: Optional[httpx.Client] = None) -> AuthServerMetadata:
    """Fetch the authorization server's endpoint set.

    Issues a single unauthenticated GET; there are no retries.

    Args:
        base_url: API base URL, e.g. ``https://api.example.com``.
        http: Optional client to send the request with.

    Returns:
        The parsed :class:`~pajama.models.AuthServerMetadata`.

    Raises:
        DiscoveryError: On a non-2xx status or a transport failure.
        ParseError: If the body is not JSON or lacks
            ``authorization_endpoint`` / ``token_endpoint``.
    """
    url = metadata_url(base_url)
    logger.debug("Fetching oauth metadata from %s", url)
    with borrow_client(http) as client:
        response = send(client, "GET", url, DiscoveryError)
    data = json_object(response, "oauth metadata")
    try:
        return AuthServerMetadata.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"parse oauth metadata json: {exc}") from exc


def register_client(
    registration_endpoint: str,
    client_name: str = DEFAULT_CLIENT_NAME,
    *,
    http: Optional[httpx.Client] = None,
) -> str:
    """Register a public client and return its ``client_id``.

    No redirect URIs are pre-registered: the loopback port is only chosen
    when a login starts.

    Raises:
        RegistrationError: On a non-2xx status or a transport failure.
        ParseError: If the body is not JSON or has no string ``client_id``.
    """
    document = {"client_name": client_name, "redirect_uris": []}
    with borrow_client(http) as client:
        response = send(client, "POST", registration_endpoint, RegistrationError, json=document)
    data = json_object(response, "register response")
    client_id = data.get("client_id")
    if not isinstance(client_id, str) or not client_id:
        raise ParseError("parse register response json: missing 'client_id'")
    logger.debug("Registered oauth client %s", client_id)
    return client_id


def resolve_client_id(
    metadata: AuthServerMetadata,
    cached_client_id: Optional[str] = None,
    client_name: str = DEFAULT_CLIENT_NAME,
    *,
    http: Optional[httpx.Client] = None,
) -> str:
    """Return the client id to log in with.

    A cached id is returned unchanged. Otherwise the server must expose a
    ``registration_endpoint``; its absence fails before any request is sent.

    Raises:
        RegistrationUnsupportedError: No cached id and no registration endpoint.
        RegistrationError: Registration was rejected.
        ParseError: Registration response was malformed.
    """
    if cached_client_id:
        return cached_client_id
    if not metadata.registration_endpoint:
        raise RegistrationUnsupportedError()
    return register_client(metadata.registration_endpoint, client_name, http=http)
