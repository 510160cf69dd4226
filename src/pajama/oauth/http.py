"""Shared plumbing for the login flow's three HTTP calls.

Discovery, registration and token exchange all follow the same pattern:
send one request with no retries, map a non-2xx status or a transport failure
to the stage's :class:`~pajama.exceptions.HTTPStageError` subclass, and
decode a JSON object body or raise :class:`~pajama.exceptions.ParseError`.
"""

from __future__ import annotations

import contextlib
import json
from typing import Any, Iterator, Optional

import httpx

from pajama import __version__
from pajama.exceptions import HTTPStageError, ParseError

USER_AGENT = f"pajama-cli/{__version__}"
REQUEST_TIMEOUT = 30.0


def create_client() -> httpx.Client:
    """Build the client used when the caller does not inject one."""
    return httpx.Client(
        timeout=REQUEST_TIMEOUT,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
    )


@contextlib.contextmanager
def borrow_client(http: Optional[httpx.Client]) -> Iterator[httpx.Client]:
    """Yield *http* unchanged, or a short-lived client closed on exit."""
    if http is not None:
        yield http
        return
    with create_client() as client:
        yield client


def send(
    http: httpx.Client,
    method: str,
    url: str,
    error_cls: type[HTTPStageError],
    **kwargs: Any,
) -> httpx.Response:
    """Send one request and return the response if its status is 2xx.

    Raises:
        HTTPStageError: An instance of *error_cls*, carrying the status and
            body for non-2xx responses, or ``status=None`` when no response
            was received.
    """
    try:
        response = http.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise error_cls(None, detail=str(exc)) from exc
    if not response.is_success:
        raise error_cls(response.status_code, response.text)
    return response


def json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode *response* as a JSON object.

    Raises:
        ParseError: If the body is not JSON or not an object.
    """
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError(f"parse {what} json: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"parse {what} json: expected an object, got {type(data).__name__}")
    return data
