"""Expand shorthand schema names into ``$ref`` objects.

Authors write::

    properties:
      widget: Widget

instead of::

    properties:
      widget:
        $ref: '#/components/schemas/Widget'

Whether a string is a shorthand is decided by *where* it sits in the document,
never by its value. The walk carries the structural path (the keys from the
document root, joined with ``/``) and matches it against a closed set of two
patterns:

* ``schema`` -- ``.../properties/<name>`` or ``components/schemas/<name>``,
  optionally followed by ``/items`` and/or a composition keyword, and
  optionally preceded by a composition keyword. Expands to
  ``#/components/schemas/<value>``.
* ``component_schema`` -- ``components/(requestBodies|responses)/<name>/schema``
  or the same under ``content/application/json``, optionally followed by a
  composition keyword. Expands to the JSON content schema of another
  component of the same kind (``/`` in the MIME type escaped as ``~1``).

Sequence indexes are not part of the path, so every element of
``oneOf: [A, B]`` is expanded. Already expanded ``$ref`` objects are mappings,
which makes :func:`normalize_refs` idempotent.
"""

from __future__ import annotations

import re
from typing import Any, Sequence

COMPOSITION_KEYWORDS = r"(?:oneOf|allOf|anyOf|not)"

REF_PATTERNS: dict[str, re.Pattern[str]] = {
    # components/responses/{name}/content/application/json/schema
    # components/responses/{name}/schema/allOf
    "component_schema": re.compile(
        rf"""
        ^components
        /(requestBodies|responses)
        /[^/]+
        (?:/content/application/json)?
        /schema
        (?:/{COMPOSITION_KEYWORDS})?
        $
        """,
        re.VERBOSE,
    ),
    # components/schemas/{name}
    # components/schemas/{name}/allOf
    # .../properties/{name}
    # .../allOf/properties/{name}/items
    "schema": re.compile(
        rf"""
        (?:/{COMPOSITION_KEYWORDS})?
        (?:^components/schemas|/properties)
        /[^/]+
        (?:/items)?
        (?:/{COMPOSITION_KEYWORDS})?
        $
        """,
        re.VERBOSE,
    ),
}


def normalize_ref(path: Sequence[str], value: Any) -> Any:
    """Expand *value* if it is a string at a shorthand position.

    Args:
        path: Keys from the document root down to *value*.
        value: A leaf value, or a sequence of leaves sharing the same path.

    Returns:
        A ``{"$ref": ...}`` mapping, a list of expanded items, or *value*
        unchanged.
    """
    if isinstance(value, str):
        joined = "/".join(path)
        if REF_PATTERNS["schema"].search(joined):
            return {"$ref": f"#/components/schemas/{value}"}
        if REF_PATTERNS["component_schema"].search(joined):
            return {
                "$ref": f"#/components/{path[1]}/{value}/content/application~1json/schema"
            }
        return value
    if isinstance(value, list):
        return [normalize_ref(path, item) for item in value]
    return value


def normalize_refs(document: Any) -> Any:
    """Return a copy of *document* with every shorthand expanded.

    The input is never mutated.
    """
    return _visit(document, ())


def _visit(node: Any, path: tuple[str, ...]) -> Any:
    if isinstance(node, dict):
        return {key: _visit(value, path + (str(key),)) for key, value in node.items()}
    if isinstance(node, list):
        return [_visit(item, path) for item in node]
    return normalize_ref(path, node)
