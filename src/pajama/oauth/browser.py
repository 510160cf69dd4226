"""Best-effort browser launch for the authorization URL.

Nothing here can fail a login: when the browser cannot be opened, or the
user asked for ``--no-open``, the URL is printed to stderr for manual
navigation instead.
"""

from __future__ import annotations

import webbrowser
from typing import Callable, Optional

from pajama.output import OutputManager, get_output


class BrowserLauncher:
    """Open a URL in the default browser, falling back to printing it.

    Args:
        output: Sink for the user-facing messages. Defaults to the global
            :class:`~pajama.output.OutputManager`.
        opener: Callable used to open the URL; ``webbrowser.open`` unless a
            test substitutes something else.
    """

    def __init__(
        self,
        output: Optional[OutputManager] = None,
        opener: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._output = output
        self._opener = opener

    @property
    def output(self) -> OutputManager:
        return self._output or get_output()

    def launch(self, url: str, auto_open: bool = True) -> bool:
        """Show *url* to the user.

        Returns:
            ``True`` if a browser was opened, ``False`` if the URL was printed
            instead.
        """
        if not auto_open:
            self.output.info("Open this URL in your browser to continue login:")
            self.output.info(url)
            return False

        try:
            opened = self._opener(url)
        except (webbrowser.Error, OSError) as exc:
            self.output.warning(f"Failed to open browser: {exc}")
            opened = False

        if opened:
            self.output.info("Opening browser for login...")
            return True

        self.output.info("Open this URL manually:")
        self.output.info(url)
        return False
