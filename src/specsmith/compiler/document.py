"""Compile many small YAML fragments into one OpenAPI document.

Each file goes through the same pipeline of pure steps before being
deep-merged into the result:

1. :func:`~specsmith.compiler.loader.load_fragment` -- parse and classify;
2. :func:`normalize_content` -- nest flat ``schema``/``examples`` of
   component entries under ``content: {application/json: ...}``;
3. :func:`normalize_operation` -- ``id`` -> ``operationId`` and shorthand
   response schemas for operation files;
4. :func:`normalize_path` -- wrap the data according to where the file lives
   (``paths`` for operations, ``components`` for components);
5. :func:`~specsmith.compiler.refs.normalize_refs` -- expand shorthands.

Files are merged in the order given. Use
:func:`~specsmith.compiler.paths.discover` to obtain a deterministic order.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from specsmith.compiler.loader import load_fragment
from specsmith.compiler.merge import deep_merge
from specsmith.compiler.refs import normalize_refs
from specsmith.compiler.validation import validate_document
from specsmith.exceptions import SchemaValidationError
from specsmith.models import (
    DEFAULT_PREFIX,
    FileKind,
    SpecFragment,
)

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"


class DocumentCompiler:
    """Merge YAML fragments into a single OpenAPI document.

    Args:
        root: The spec root. Operation paths are derived relative to it.
        prefix: API prefix substituted for *root* in operation paths.
        exclusions: Exact validation messages to ignore; ``None`` uses the
            defaults from :mod:`specsmith.compiler.validation`.

    Example::

        compiler = DocumentCompiler("spec/api")
        document = compiler.compile(discover("spec/api"))
        if compiler.violations:
            ...
    """

    def __init__(
        self,
        root: Union[str, Path],
        prefix: str = DEFAULT_PREFIX,
        exclusions: Optional[Iterable[str]] = None,
    ) -> None:
        self.root = Path(root)
        self.prefix = prefix
        self.exclusions = None if exclusions is None else list(exclusions)
        self.violations: list[str] = []

    def compile(
        self, files: Iterable[Union[str, Path]], strict: bool = False
    ) -> dict[str, Any]:
        """Load, normalise and merge *files*, then validate the result.

        Args:
            files: YAML files, merged in the given order.
            strict: Raise instead of only logging when validation fails.

        Returns:
            The merged document. Top-level keys starting with ``_`` (file-local
            scratch data such as YAML anchors) are dropped.

        Raises:
            ParseError: If any file cannot be loaded.
            SchemaValidationError: If *strict* and the document has violations.
        """
        document: dict[str, Any] = {}
        for path in files:
            logger.debug("Merging %s", path)
            fragment = load_fragment(path, self.root, self.prefix)
            document = deep_merge(document, self.transform(fragment))

        document = {k: v for k, v in document.items() if not k.startswith("_")}

        # info.version and paths are filled in per version by the writer.
        candidate = deep_merge({"paths": {}}, deep_merge(document, {"info": {"version": "1"}}))
        self.violations = validate_document(candidate, self.exclusions)
        if self.violations:
            for violation in self.violations:
                logger.warning("OpenAPI violation: %s", violation)
            if strict:
                raise SchemaValidationError(self.violations)

        return document

    def transform(self, fragment: SpecFragment) -> dict[str, Any]:
        """Run the per-file normalisation pipeline on one fragment."""
        data = normalize_content(fragment)
        data = normalize_operation(fragment, data)
        data = normalize_path(fragment, data)
        return normalize_refs(data)


def normalize_content(fragment: SpecFragment) -> dict[str, Any]:
    """Nest flat ``schema``/``examples`` of component entries under ``content``.

    ``{Widget: {schema: ..., examples: ...}}`` becomes
    ``{Widget: {content: {application/json: {schema: ..., examples: ...}}}}``.
    Absent keys are dropped rather than written as ``null``. An existing
    ``content`` map keeps its other media types. Non-component fragments are
    returned as a copy, untouched.
    """
    data = copy.deepcopy(fragment.content)
    if fragment.kind != FileKind.COMPONENT:
        return data

    for value in data.values():
        if not isinstance(value, dict):
            continue
        if "schema" not in value and "examples" not in value:
            continue
        media = {key: value.pop(key) for key in ("schema", "examples") if key in value}
        media = {key: item for key, item in media.items() if item is not None}
        value["content"] = deep_merge(value.get("content") or {}, {JSON_MIME_TYPE: media})
    return data


def normalize_operation(fragment: SpecFragment, data: dict[str, Any]) -> dict[str, Any]:
    """Apply operation-level shorthands to an operation file.

    * ``id`` is renamed ``operationId``;
    * a string ``schema`` of a response names a schema component.
    """
    if fragment.kind not in (FileKind.OPERATION, FileKind.VERSIONED_OPERATION):
        return data

    data = dict(data)
    if "id" in data and "operationId" not in data:
        data["operationId"] = data.pop("id")

    responses = data.get("responses")
    if isinstance(responses, dict):
        data["responses"] = {
            status: _expand_schema_name(response) for status, response in responses.items()
        }
    elif isinstance(responses, list):
        data["responses"] = [_expand_schema_name(response) for response in responses]

    return data


def normalize_path(fragment: SpecFragment, data: dict[str, Any]) -> dict[str, Any]:
    """Wrap *data* according to the fragment's location in the tree.

    * operation files -> ``{paths: {<path>: {<method>: data}}}``;
    * component files -> ``{components: {<kind>: data}}``;
    * static and other files -> unchanged.
    """
    if fragment.operation is not None:
        key = fragment.operation
        return {"paths": {key.path: {key.method: data}}}
    if fragment.kind == FileKind.COMPONENT and fragment.component is not None:
        return {"components": {fragment.component.value: data}}
    return data


def _expand_schema_name(container: Any) -> Any:
    if isinstance(container, dict) and isinstance(container.get("schema"), str):
        container = dict(container)
        container["schema"] = {"$ref": f"#/components/schemas/{container['schema']}"}
    return container
