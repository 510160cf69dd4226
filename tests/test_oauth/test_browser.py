"""Tests for the browser launcher fallbacks."""

from __future__ import annotations

import webbrowser
from unittest.mock import MagicMock

from pajama.oauth.browser import BrowserLauncher
from pajama.output import OutputManager

URL = "https://api.example.com/oauth/authorize?state=abc"


def _infos(output: MagicMock) -> list[str]:
    return [c.args[0] for c in output.info.call_args_list]


class TestBrowserLauncher:
    def test_opens_browser(self) -> None:
        output = MagicMock(spec=OutputManager)
        opener = MagicMock(return_value=True)

        assert BrowserLauncher(output, opener).launch(URL) is True
        opener.assert_called_once_with(URL)
        assert "Opening browser for login..." in _infos(output)
        assert URL not in _infos(output)

    def test_no_open_prints_url(self) -> None:
        output = MagicMock(spec=OutputManager)
        opener = MagicMock(return_value=True)

        assert BrowserLauncher(output, opener).launch(URL, auto_open=False) is False
        opener.assert_not_called()
        assert URL in _infos(output)

    def test_opener_returning_false_prints_url(self) -> None:
        output = MagicMock(spec=OutputManager)

        launched = BrowserLauncher(output, MagicMock(return_value=False)).launch(URL)
        assert launched is False
        assert "Open this URL manually:" in _infos(output)
        assert URL in _infos(output)

    def test_opener_error_warns_and_prints_url(self) -> None:
        output = MagicMock(spec=OutputManager)
        opener = MagicMock(side_effect=webbrowser.Error("no runnable browser"))

        assert BrowserLauncher(output, opener).launch(URL) is False
        output.warning.assert_called_once()
        assert "no runnable browser" in output.warning.call_args[0][0]
        assert URL in _infos(output)

    def test_os_error_is_not_fatal(self) -> None:
        output = MagicMock(spec=OutputManager)
        opener = MagicMock(side_effect=OSError("display unavailable"))

        assert BrowserLauncher(output, opener).launch(URL) is False
        assert URL in _infos(output)

    def test_defaults_to_global_output(self, quiet_output: OutputManager) -> None:
        assert BrowserLauncher().output is quiet_output
