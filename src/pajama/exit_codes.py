"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pajama.exceptions.PajamaError` subclass.
Shell wrappers can inspect the exit code to tell a failed login apart from a
broken config file without parsing stderr.

Example::

    $ pajama login --no-open
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the login attempt failed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including config problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (reported by Typer itself)."""

EXIT_AUTH_FAILURE = 3
"""The OAuth login attempt failed at some stage."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
