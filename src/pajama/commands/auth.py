"""Auth commands -- browser login and the saved token.

Provides ``pajama login``, ``pajama logout`` and ``pajama token``. Login runs
the OAuth Authorization Code + PKCE flow from :mod:`pajama.oauth` and saves
the resulting API token, together with the registered client id, to the
config file.

Typical workflow::

    pajama login                 # browser opens, token saved
    pajama login --no-open       # print the URL instead (SSH sessions)
    pajama token                 # print the token for scripts
    pajama logout
"""

from __future__ import annotations

from typing import Optional

import typer

from pajama.exceptions import PajamaError
from pajama.models import Config
from pajama.output import error, get_output, print_data, success, suggest


def _load_config(api_url: Optional[str]) -> Config:
    """Load config and apply the ``--api-url`` override, exiting on failure."""
    from pajama.config import load_config

    try:
        cfg = load_config()
    except PajamaError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    if api_url and api_url.strip():
        cfg.api_base_url = api_url.strip()
    return cfg


def login_command(
    ctx: typer.Context,
    scope: Optional[str] = typer.Option(
        None, "--scope", help="OAuth scopes requested (space-separated)."
    ),
    no_open: bool = typer.Option(
        False,
        "--no-open",
        help="Do not attempt to open a browser automatically (prints URL instead).",
    ),
    timeout: float = typer.Option(
        180.0,
        "--timeout",
        min=1.0,
        help="Seconds to wait for the browser redirect.",
    ),
) -> None:
    """Login via browser (OAuth PKCE). Stores an API key locally.

    Discovers the authorization server behind the API base URL, reuses the
    saved client id (or registers one), and waits for the browser redirect
    on a loopback port. On success the client id and access token are saved.

    Example::

        pajama login --scope "projects:read memories:read"
    """
    from pajama.config import save_config
    from pajama.oauth import DEFAULT_SCOPE, run_login

    obj = ctx.obj or {}
    cfg = _load_config(obj.get("api_url"))

    try:
        result = run_login(
            cfg.api_base_url,
            cfg.client_id,
            scope or DEFAULT_SCOPE,
            auto_open=not no_open,
            output=get_output(),
            timeout=timeout,
        )
        cfg.client_id = result.client_id
        cfg.access_token = result.access_token
        save_config(cfg)
    except PajamaError as exc:
        error(str(exc))
        suggest("Run `pajama login` again to start a fresh attempt.")
        raise typer.Exit(code=exc.exit_code) from None

    success("Login saved.")


def logout_command(ctx: typer.Context) -> None:
    """Remove the saved access token.

    The registered client id is kept so the next login skips registration.
    """
    from pajama.config import save_config

    cfg = _load_config((ctx.obj or {}).get("api_url"))
    cfg.access_token = None
    try:
        save_config(cfg)
    except OSError as exc:
        error(f"Could not write config: {exc}")
        raise typer.Exit(code=1) from None
    print_data("ok")


def token_command(ctx: typer.Context) -> None:
    """Print the current access token (treat as secret)."""
    from pajama.config import resolve_token

    obj = ctx.obj or {}
    cfg = _load_config(obj.get("api_url"))
    try:
        token = resolve_token(obj.get("token"), cfg)
    except PajamaError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    print_data(token)
