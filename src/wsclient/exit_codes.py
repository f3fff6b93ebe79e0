"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~wsclient.exceptions.WSClientError` subclass.
Shell scripts wrapping ``wsclient get`` can inspect the exit code to tell a
refused connection from an in-band API error without parsing stderr.

Example::

    $ wsclient get https://api.example.com/ws/status
    $ echo $?
    8   # EXIT_BUSINESS_ERROR -- the service answered with "error": true
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_TRANSPORT_ERROR = 5
"""The server answered with an HTTP status of 400 or above, or the round trip failed."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DECODE_ERROR = 7
"""The response body could not be parsed by the selected decoder."""

EXIT_BUSINESS_ERROR = 8
"""The response parsed correctly but carried its own error flag."""
