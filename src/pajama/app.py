"""Typer application and CLI entry point for pajama.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, registers the built-in
commands and invokes the Typer app. :class:`~pajama.exceptions.PajamaError`
is reported as a single error line with the error's exit code; anything else
is written to a crash log under the data directory.

See Also:
    :mod:`pajama.commands.auth`: ``login``, ``logout`` and ``token``.
    :mod:`pajama.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from pajama import __version__
from pajama.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="pajama",
    help="PajamaDot CLI for Game Dev Memory (API + OAuth login).",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pajama {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    api_url: Optional[str] = typer.Option(
        None,
        "--api-url",
        help="Memory API base URL (defaults to config or PAJAMA_API_URL).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Bearer token override. If omitted, uses the token saved by `pajama login`.",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~pajama.output.OutputManager` and stores the
    shared options in ``ctx.obj`` for the sub-commands.
    """
    from pajama.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="[debug] %(name)s: %(message)s",
        )

    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url
    ctx.obj["token"] = token
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from pajama.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    """Attach the built-in commands to :data:`app`. Safe to call repeatedly."""
    from pajama.commands.auth import login_command, logout_command, token_command
    from pajama.commands.config import config_path_command

    if app.registered_commands:
        return
    app.command("login")(login_command)
    app.command("logout")(logout_command)
    app.command("token")(token_command)
    app.command("config-path")(config_path_command)


def main() -> None:
    """CLI entry point invoked by the ``pajama`` console script.

    Unhandled :class:`~pajama.exceptions.PajamaError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a crash
    log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from pajama.exceptions import PajamaError
        from pajama.output import error

        if isinstance(exc, PajamaError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
