"""Validate merged documents against the OpenAPI 3.0 meta-schema.

Every violation is collected rather than stopping at the first, and each one
is rendered as a stable, human-readable sentence::

    The property '#/paths/~1api~1widgets/get' 'responses' is a required property

Known false positives are suppressed by an allow-list of *exact* messages
(see :data:`~specsmith.models.DEFAULT_VALIDATION_EXCLUSIONS`). The list is
deliberately matched verbatim so that every exclusion stays auditable.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from jsonschema import Draft4Validator
from jsonschema.exceptions import ValidationError as JSONSchemaError
from openapi_spec_validator.schemas import schema_v30

from specsmith.models import DEFAULT_VALIDATION_EXCLUSIONS

_TYPE_NAMES = {
    dict: "object",
    list: "array",
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
    type(None): "null",
}

_validator: Optional[Draft4Validator] = None


def _get_validator() -> Draft4Validator:
    global _validator
    if _validator is None:
        _validator = Draft4Validator(dict(schema_v30))
    return _validator


def validate_document(
    document: dict[str, Any],
    exclusions: Optional[Iterable[str]] = None,
) -> list[str]:
    """Return every meta-schema violation of *document*.

    Args:
        document: A merged OpenAPI 3.0 document.
        exclusions: Exact violation messages to ignore. Defaults to
            :data:`~specsmith.models.DEFAULT_VALIDATION_EXCLUSIONS`.

    Returns:
        Violation messages in document order; empty when the document is valid.
    """
    allowed = set(DEFAULT_VALIDATION_EXCLUSIONS if exclusions is None else exclusions)
    errors = sorted(
        _get_validator().iter_errors(document),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    messages = [describe_error(error) for error in errors]
    return [m for m in messages if m not in allowed]


def describe_error(error: JSONSchemaError) -> str:
    """Render a jsonschema error as ``The property '<pointer>' <reason>``."""
    pointer = json_pointer(error.absolute_path)
    if error.validator in ("oneOf", "anyOf"):
        type_name = _TYPE_NAMES.get(type(error.instance), type(error.instance).__name__)
        reason = f"of type {type_name} did not match any of the required schemas"
    else:
        reason = error.message
    return f"The property '{pointer}' {reason}"


def json_pointer(path: Iterable[Any]) -> str:
    """Build a ``#/``-rooted JSON Pointer, escaping ``~`` and ``/`` per RFC 6901."""
    segments = [str(p).replace("~", "~0").replace("/", "~1") for p in path]
    return "#/" + "/".join(segments)
