"""pajama -- command-line client for the Game Dev Memory API.

This package implements the CLI's browser login: an OAuth 2.0 Authorization
Code grant with PKCE performed against a loopback redirect, plus the small
amount of local configuration needed to remember the resulting token.

Typical workflow::

    pajama login            # opens the browser, saves an API token
    pajama token            # prints the saved token
    pajama logout           # forgets it

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for config and OAuth wire formats.
    config: XDG-aware configuration file management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting with Rich support.
    oauth: the login flow itself.
"""

__version__ = "0.1.2"
