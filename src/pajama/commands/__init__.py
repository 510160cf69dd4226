"""Built-in CLI sub-commands for pajama.

* :mod:`~pajama.commands.auth` -- ``login``, ``logout`` and ``token``.
* :mod:`~pajama.commands.config` -- ``config-path``.

Each module exports plain callback functions that
:func:`pajama.app.register_commands` attaches to the root app.
"""
