"""Built-in CLI sub-commands for wsclient.

* :mod:`~wsclient.commands.get` -- run one request and print its payload.
* :mod:`~wsclient.commands.config` -- view and modify persisted settings.

``get`` is a plain callback registered directly on the root app; ``config``
is a :class:`typer.Typer` sub-application.
"""
