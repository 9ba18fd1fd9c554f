"""Exception hierarchy for specsmith.

All exceptions inherit from :class:`SpecsmithError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specsmith.exit_codes`.
The CLI entry point in :func:`specsmith.app.main` catches ``SpecsmithError``
and exits with the appropriate code.

Subclass hierarchy::

    SpecsmithError            (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- ConfigError           (exit 1)
    +-- ParseError            (exit 7)
    |   +-- ReferenceSyntaxError
    +-- SchemaValidationError (exit 7)
    +-- OperationNotFoundError (exit 4)
    |   +-- VersionNotFoundError
    +-- MissingOperationIdError (exit 8)
    +-- EmptyVersionSetError  (exit 9)
"""

from __future__ import annotations

from typing import Optional, Sequence

from specsmith.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MISSING_OPERATION_ID,
    EXIT_NO_VERSIONS,
    EXIT_NOT_FOUND,
    EXIT_SPEC_ERROR,
)


class SpecsmithError(Exception):
    """Base exception for all specsmith errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecsmithError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(SpecsmithError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class ParseError(SpecsmithError):
    """Raised when a YAML fragment is malformed or its root is not a mapping.

    Aborts the whole compilation: no partial document is trustworthy once a
    single fragment fails to load.

    Args:
        message: Description of the failure.
        source_path: The offending file.
        dump: Line-numbered copy of the text that was being parsed, for
            debugging. Empty when the file could not be read at all.
    """

    exit_code = EXIT_SPEC_ERROR

    def __init__(self, message: str, source_path: str = "", dump: str = ""):
        super().__init__(message)
        self.source_path = source_path
        self.dump = dump


class ReferenceSyntaxError(ParseError):
    """Raised before parsing when a fragment contains a malformed ``$ref`` literal."""


class SchemaValidationError(SpecsmithError):
    """Raised when a merged document fails OpenAPI meta-schema validation.

    Only raised when the caller asks for strict compilation; otherwise the
    violations are logged and the document is still returned.

    Args:
        violations: Every violation found, not just the first.
    """

    exit_code = EXIT_SPEC_ERROR

    def __init__(self, violations: Sequence[str]):
        self.violations = list(violations)
        lines = "\n".join(f"  - {v}" for v in self.violations)
        super().__init__(
            f"Merged document has {len(self.violations)} schema violation(s):\n{lines}"
        )


class OperationNotFoundError(SpecsmithError):
    """Raised when no YAML fragment exists for an operation.

    Args:
        message: Description of the failure.
        operation: The searched operation path (e.g. ``/api/widgets/get``).
        version: The requested version token.
        known: Every operation path the index knows about.
    """

    exit_code = EXIT_NOT_FOUND

    def __init__(
        self,
        message: str,
        operation: str = "",
        version: Optional[str] = None,
        known: Sequence[str] = (),
    ):
        super().__init__(message)
        self.operation = operation
        self.version = version
        self.known = list(known)


class VersionNotFoundError(OperationNotFoundError):
    """Raised when an operation exists but has neither the requested version nor a draft."""


class MissingOperationIdError(SpecsmithError):
    """Raised when a resolved operation template has no ``operationId``."""

    exit_code = EXIT_MISSING_OPERATION_ID


class EmptyVersionSetError(SpecsmithError):
    """Raised by :meth:`~specsmith.versions.VersionIndex.latest` when only ``draft`` exists."""

    exit_code = EXIT_NO_VERSIONS
