"""Shared test fixtures for pajama.

Provides config isolation, output state management, a CLI runner, and
helpers for faking the authorization server with ``httpx.MockTransport``.
"""

from __future__ import annotations

import socket
import threading
from pathlib import Path
from typing import Callable

import httpx
import pytest

from pajama.models import AuthServerMetadata
from pajama.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stderr at creation time;
    CliRunner swaps those streams, so a fresh manager is needed per test.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG dirs at tmp_path and clear PAJAMA_* environment variables."""
    monkeypatch.setattr("pajama.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["PAJAMA_API_URL", "PAJAMA_TOKEN"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless OutputManager as the global output."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Authorization server fakes
# ---------------------------------------------------------------------------


BASE_URL = "https://api.example.com"


@pytest.fixture
def metadata() -> AuthServerMetadata:
    """Metadata for a server that supports dynamic registration."""
    return AuthServerMetadata(
        issuer=BASE_URL,
        authorization_endpoint=f"{BASE_URL}/oauth/authorize",
        token_endpoint=f"{BASE_URL}/oauth/token",
        registration_endpoint=f"{BASE_URL}/oauth/register",
    )


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Factory building an ``httpx.Client`` backed by a handler function."""
    clients: list[httpx.Client] = []

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Slow loopback client
# ---------------------------------------------------------------------------


class TricklingClient(threading.Thread):
    """Connects to a port and sends one byte per interval, never finishing a request."""

    def __init__(self, port: int, interval: float = 0.3) -> None:
        super().__init__(daemon=True)
        self.port = port
        self.interval = interval
        self.connected = threading.Event()
        self.finished = threading.Event()

    def run(self) -> None:
        try:
            with socket.create_connection(("127.0.0.1", self.port), timeout=5) as sock:
                self.connected.set()
                while not self.finished.wait(self.interval):
                    sock.sendall(b"G")
        except OSError:
            pass  # the listener hung up
        finally:
            self.connected.set()


@pytest.fixture
def trickle() -> Callable[[int], TricklingClient]:
    """Factory starting a :class:`TricklingClient` against a port; all are stopped on teardown."""
    clients: list[TricklingClient] = []

    def _start(port: int) -> TricklingClient:
        client = TricklingClient(port)
        clients.append(client)
        client.start()
        client.connected.wait(5)
        return client

    yield _start
    for client in clients:
        client.finished.set()
        client.join(timeout=5)
