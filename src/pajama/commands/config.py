"""Config commands."""

from __future__ import annotations

from pajama.output import print_data


def config_path_command() -> None:
    """Print the config path."""
    from pajama.config import config_path

    print_data(str(config_path()))
