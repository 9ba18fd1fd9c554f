"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specsmith.exceptions.SpecsmithError` subclass.
CI scripts that run ``specsmith build`` can inspect the exit code to tell a
broken YAML tree apart from a missing operation without parsing stderr.

Example::

    $ specsmith validate
    $ echo $?
    7   # EXIT_SPEC_ERROR -- the merged document has schema violations
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_FOUND = 4
"""The requested operation or version has no matching YAML fragment."""

EXIT_SPEC_ERROR = 7
"""A YAML fragment could not be parsed, or the merged document is invalid."""

EXIT_MISSING_OPERATION_ID = 8
"""A resolved operation template has no ``operationId``."""

EXIT_NO_VERSIONS = 9
"""No dated API version has been defined yet."""
