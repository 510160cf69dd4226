"""Configuration management with XDG paths and atomic writes.

This module handles the small amount of persistent state pajama keeps:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.pajama/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config file** -- a single :class:`~pajama.models.Config` JSON file
  holding the API base URL, the registered OAuth ``client_id`` and the
  saved access token.
* **Token resolution** -- :func:`resolve_token` applies the
  ``--token`` > ``PAJAMA_TOKEN`` > saved-token precedence.

The file holds a bearer token, so writes go through :func:`_atomic_write`,
which creates the temp file with ``0o600`` permissions before any content is
written and renames it into place.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pajama.exceptions import ConfigError
from pajama.models import Config

_APP_NAME = "pajama"
_CONFIG_FILENAME = "config.json"

DEFAULT_API_BASE_URL = "https://api-game-dev-memory.pajamadot.com"
"""Production Memory API, used when neither config nor environment override it."""

API_URL_ENV = "PAJAMA_API_URL"
TOKEN_ENV = "PAJAMA_TOKEN"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/pajama/`` (default ``~/.config/pajama/``).
    On macOS/Windows: ``~/.pajama/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/pajama/`` (default ``~/.local/share/pajama/``).
    On macOS/Windows: ``~/.pajama/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    """Path to the config file (the file itself may not exist yet)."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX, and is chmod'ed to
    ``0o600`` before the secret content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, 0o600)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def default_api_base_url() -> str:
    """Return ``$PAJAMA_API_URL`` when set to a non-blank value, else the production URL."""
    value = os.environ.get(API_URL_ENV, "").strip()
    return value or DEFAULT_API_BASE_URL


def load_config() -> Config:
    """Load the config file.

    Returns:
        The deserialised :class:`~pajama.models.Config`. A missing file
        yields defaults, and a blank ``api_base_url`` is replaced with
        :func:`default_api_base_url`.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = config_path()
    if not path.is_file():
        return Config(api_base_url=default_api_base_url())
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        cfg = Config.model_validate(data)
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not cfg.api_base_url.strip():
        cfg.api_base_url = default_api_base_url()
    return cfg


def save_config(cfg: Config) -> Path:
    """Persist *cfg* atomically and return the path written."""
    path = config_path()
    data = cfg.model_dump(mode="json")
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
    return path


def resolve_token(token_override: Optional[str], cfg: Config) -> str:
    """Return the bearer token to use for API calls.

    Precedence: explicit ``--token`` flag, then ``$PAJAMA_TOKEN``, then the
    token saved by ``pajama login``. Blank values are skipped.

    Raises:
        ConfigError: If none of the sources provides a token.
    """
    for candidate in (token_override, os.environ.get(TOKEN_ENV), cfg.access_token):
        if candidate and candidate.strip():
            return candidate.strip()
    raise ConfigError(
        f"missing access token; run `pajama login` (or pass --token / set {TOKEN_ENV})"
    )
