"""Loopback listener that receives the OAuth authorization redirect.

The listener binds ``127.0.0.1`` on an OS-assigned port, and one worker thread
runs its accept loop while the login orchestrator waits. Each connection
goes through a small state machine::

    Parsing -> Validating -> Resolved | Rejected

A *Rejected* connection (wrong method or path, state mismatch, provider
error, missing code) gets an HTML page and the listener goes back to
listening. The attempt itself moves through::

    BOUND -> LISTENING -> DELIVERED | STOPPED

The first *Resolved* connection ends the loop. The authorization code is the
return value of the loop, carried to the orchestrator by the worker's
:class:`~concurrent.futures.Future`; the loop returns once, so the code can
be delivered at most once. Only the overall timeout bounds how many rejected
connections an attempt absorbs.

HTTP handling is minimal: the request head is read into a bounded buffer
within :data:`READ_TIMEOUT` seconds in total, only the request line is
parsed, and no body is ever read. A stop request interrupts a read in
progress, so a slow client cannot hold the worker past the login timeout.
"""

from __future__ import annotations

import concurrent.futures
import enum
import hmac
import html
import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from pajama.exceptions import BindError, CallbackServerError, TimeoutError_

__all__ = [
    "CallbackOutcome",
    "ListenerState",
    "LoopbackListener",
    "Verdict",
    "evaluate_request",
    "parse_request_line",
    "read_request_head",
    "render_response",
]

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
CALLBACK_PATH = "/callback"

MAX_REQUEST_HEAD = 16 * 1024
HEADER_TERMINATOR = b"\r\n\r\n"
READ_TIMEOUT = 5.0
"""Total seconds one connection may take to deliver its request head."""

ACCEPT_POLL_INTERVAL = 0.2


class ListenerState(str, enum.Enum):
    """Attempt-level lifecycle of a :class:`LoopbackListener`."""

    BOUND = "bound"
    LISTENING = "listening"
    DELIVERED = "delivered"
    STOPPED = "stopped"


class Verdict(str, enum.Enum):
    """Terminal state of a single callback connection."""

    RESOLVED = "resolved"
    REJECTED = "rejected"


# ---------------------------------------------------------------------------
# HTML pages
# ---------------------------------------------------------------------------

_PAGE = """\
<!doctype html>
<html>
<head><meta charset="utf-8" /><title>Pajama</title></head>
<body style="font-family: sans-serif; text-align: center; margin-top: 4em;">
<h2>{heading}</h2>
<p>{message}</p>
</body>
</html>
"""


def success_page() -> str:
    return _PAGE.format(heading="Login complete", message="You can close this window.")


def error_page(message: str) -> str:
    """Render a failure page; *message* is always HTML-escaped."""
    return _PAGE.format(heading="Login error", message=html.escape(message, quote=True))


def render_response(page: str) -> bytes:
    """Serialise *page* as the listener's one and only response shape."""
    body = page.encode("utf-8")
    head = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: text/html; charset=utf-8\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    return head.encode("ascii") + body


# ---------------------------------------------------------------------------
# Per-connection state machine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallbackOutcome:
    """Result of evaluating one callback connection.

    Attributes:
        verdict: Whether this connection completes the login.
        page: HTML body to answer the connection with.
        code: The authorization code; set only when ``verdict`` is
            :attr:`Verdict.RESOLVED`.
        reason: Short machine-readable label used in debug logs.
    """

    verdict: Verdict
    page: str
    code: Optional[str] = None
    reason: str = ""

    @classmethod
    def resolved(cls, code: str) -> CallbackOutcome:
        return cls(Verdict.RESOLVED, success_page(), code=code, reason="ok")

    @classmethod
    def rejected(cls, reason: str, message: str) -> CallbackOutcome:
        return cls(Verdict.REJECTED, error_page(message), reason=reason)


def parse_request_line(data: bytes) -> tuple[str, str]:
    """Return ``(method, target)`` from a raw request head.

    Missing pieces come back as empty strings; nothing here raises.
    """
    text = data.decode("utf-8", errors="replace")
    lines = text.splitlines()
    parts = lines[0].split() if lines else []
    method = parts[0] if parts else ""
    target = parts[1] if len(parts) > 1 else ""
    return method, target


def read_request_head(
    conn: socket.socket,
    limit: int = MAX_REQUEST_HEAD,
    deadline: Optional[float] = None,
    stop: Optional[threading.Event] = None,
) -> bytes:
    """Read from *conn* until the header terminator, EOF, or *limit* bytes.

    A read error ends the read with whatever arrived so far. Without a
    *deadline* a socket timeout does too. With one, *deadline* is a
    :func:`time.monotonic` instant bounding the whole read, however slowly
    the peer trickles bytes in, and *stop* is polled between short waits.
    """
    buf = bytearray()
    while len(buf) < limit:
        if stop is not None and stop.is_set():
            break
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.debug("Callback request head not complete before the deadline")
                break
            conn.settimeout(min(remaining, ACCEPT_POLL_INTERVAL))
        try:
            chunk = conn.recv(min(4096, limit - len(buf)))
        except socket.timeout:
            if deadline is None:
                break
            continue
        except OSError as exc:
            logger.debug("Stopped reading callback request: %s", exc)
            break
        if not chunk:
            break
        buf += chunk
        if HEADER_TERMINATOR in buf:
            break
    return bytes(buf)


def _first(params: dict[str, list[str]], key: str) -> Optional[str]:
    values = params.get(key)
    return values[0] if values else None


def _state_matches(received: Optional[str], expected: str) -> bool:
    if received is None:
        return False
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def evaluate_request(head: bytes, expected_state: str) -> CallbackOutcome:
    """Parse and validate one request head against the attempt's state."""
    # Parsing
    method, target = parse_request_line(head)
    parts = urlsplit(target)
    if method != "GET" or parts.path != CALLBACK_PATH:
        return CallbackOutcome.rejected("not_found", "Not found.")

    # Validating
    params = parse_qs(parts.query, keep_blank_values=True)
    if not _state_matches(_first(params, "state"), expected_state):
        return CallbackOutcome.rejected(
            "state_mismatch", "State mismatch. You can close this window and retry."
        )

    code = _first(params, "code")
    if code:
        return CallbackOutcome.resolved(code)

    # A provider error only explains a callback that carries no code.
    provider_error = _first(params, "error")
    if provider_error:
        description = _first(params, "error_description")
        detail = f"{provider_error}: {description}" if description else provider_error
        return CallbackOutcome.rejected(
            "provider_error",
            f"Authorization failed ({detail}). You can close this window and retry.",
        )
    return CallbackOutcome.rejected(
        "missing_code", "Missing authorization code. You can close this window and retry."
    )


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


class LoopbackListener:
    """Ephemeral loopback HTTP endpoint for one login attempt.

    Create with :meth:`bind`, start the accept loop with :meth:`start`, then
    block on :meth:`wait_for_code`. The listening socket belongs to the
    listener: after :meth:`start` only the worker thread touches it, and the
    worker closes it when the loop ends. :meth:`close` (also called on
    context-manager exit) stops the loop and joins the worker, after which
    the port has been released.

    Example::

        with LoopbackListener.bind(state) as listener:
            url = build_authorization_url(..., redirect_uri=listener.redirect_uri)
            listener.start()
            code = listener.wait_for_code(timeout=180)
    """

    def __init__(self, sock: socket.socket, expected_state: str) -> None:
        self._sock = sock
        self._expected_state = expected_state
        self._port: int = sock.getsockname()[1]
        self._redirect_uri = f"http://{LOOPBACK_HOST}:{self._port}{CALLBACK_PATH}"
        self._stop = threading.Event()
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._future: Optional[concurrent.futures.Future[Optional[str]]] = None
        self._state = ListenerState.BOUND

    @classmethod
    def bind(cls, expected_state: str, host: str = LOOPBACK_HOST) -> LoopbackListener:
        """Bind *host* on an OS-assigned port.

        Raises:
            BindError: If no loopback port could be acquired.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((host, 0))
            sock.listen()
            sock.settimeout(ACCEPT_POLL_INTERVAL)
        except OSError as exc:
            sock.close()
            raise BindError(f"bind loopback callback server: {exc}") from exc
        listener = cls(sock, expected_state)
        logger.debug("Callback listener bound on port %d", listener.port)
        return listener

    @property
    def port(self) -> int:
        return self._port

    @property
    def redirect_uri(self) -> str:
        """``http://127.0.0.1:{port}/callback``, fixed for the attempt."""
        return self._redirect_uri

    @property
    def state(self) -> ListenerState:
        return self._state

    def start(self) -> concurrent.futures.Future[Optional[str]]:
        """Run the accept loop on a dedicated worker thread.

        Returns:
            A future resolving to the authorization code, or to ``None`` if
            the loop was stopped before a valid callback arrived.
        """
        if self._executor is not None:
            raise RuntimeError("callback listener already started")
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pajama-callback"
        )
        self._future = self._executor.submit(self._serve)
        return self._future

    def wait_for_code(self, timeout: float) -> str:
        """Block until a valid callback arrives or *timeout* seconds pass.

        Raises:
            TimeoutError_: No valid callback within *timeout*.
            CallbackServerError: The accept loop failed.
        """
        if self._future is None:
            raise RuntimeError("callback listener not started")
        try:
            code = self._future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            raise TimeoutError_(
                f"timeout waiting for oauth callback after {timeout:g} seconds"
            ) from None
        if code is None:
            raise TimeoutError_("callback listener stopped before a callback arrived")
        return code

    def stop(self) -> None:
        """Ask the accept loop to exit at its next poll."""
        self._stop.set()

    def close(self) -> None:
        """Stop the loop and wait for the worker to release the socket."""
        self._stop.set()
        if self._executor is None:
            self._sock.close()
            self._state = ListenerState.STOPPED
            return
        self._executor.shutdown(wait=True)

    def __enter__(self) -> LoopbackListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _transition(self, new_state: ListenerState) -> None:
        logger.debug("Callback listener %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _serve(self) -> Optional[str]:
        self._transition(ListenerState.LISTENING)
        try:
            while not self._stop.is_set():
                try:
                    conn, peer = self._sock.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self._stop.is_set():
                        break
                    raise CallbackServerError(
                        f"failed to accept callback connection: {exc}"
                    ) from exc

                with conn:
                    outcome = self._handle(conn)
                logger.debug(
                    "Callback from %s:%d %s (%s)",
                    peer[0], peer[1], outcome.verdict.value, outcome.reason,
                )

                if outcome.verdict is Verdict.RESOLVED:
                    self._transition(ListenerState.DELIVERED)
                    return outcome.code
                # Rejected connections leave the attempt in LISTENING.
            self._transition(ListenerState.STOPPED)
            return None
        finally:
            self._sock.close()

    def _handle(self, conn: socket.socket) -> CallbackOutcome:
        deadline = time.monotonic() + READ_TIMEOUT
        head = read_request_head(conn, deadline=deadline, stop=self._stop)
        conn.settimeout(ACCEPT_POLL_INTERVAL)
        outcome = evaluate_request(head, self._expected_state)
        try:
            conn.sendall(render_response(outcome.page))
            conn.shutdown(socket.SHUT_WR)
        except OSError as exc:
            logger.debug("Could not answer callback connection: %s", exc)
        return outcome
