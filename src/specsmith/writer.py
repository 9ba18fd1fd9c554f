"""Assemble and write one OpenAPI document per version.

A version's document is its static fragments
(:meth:`~specsmith.versions.VersionIndex.static_docs_for`) plus one Operation
Object per indexed operation, resolved for that version with draft fallback.
Documents are written as ``<output_dir>/<version>.json`` (or ``.yaml``).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

import yaml

from specsmith.compiler.merge import deep_merge
from specsmith.compiler.validation import validate_document
from specsmith.config import atomic_write
from specsmith.exceptions import SchemaValidationError, SpecsmithError
from specsmith.models import DocumentFormat
from specsmith.template import OperationTemplate
from specsmith.versions import VersionIndex

logger = logging.getLogger(__name__)


def build_document(
    index: VersionIndex,
    version: str,
    legacy_prefixes: Sequence[str] = (),
) -> dict[str, Any]:
    """Build the full document for *version*.

    Operations that fail to resolve are logged and left out; the remaining
    operations are still documented.
    """
    document = index.static_docs_for(version)
    paths: dict[str, Any] = {}
    for key in index.operations():
        try:
            template = OperationTemplate.find(
                key.slug, version, index=index, legacy_prefixes=legacy_prefixes
            )
            operation = template.to_operation(document.get("components"))
        except SpecsmithError as exc:
            logger.error("Skipping %s (%s): %s", key, version, exc)
            continue
        paths.setdefault(key.path, {})[key.method] = operation
    return deep_merge(document, {"paths": paths})


def serialize(document: dict[str, Any], fmt: DocumentFormat = DocumentFormat.JSON) -> str:
    """Serialise *document* as pretty JSON or block-style YAML."""
    if fmt == DocumentFormat.YAML:
        # Round-trip through JSON so dates and other YAML scalars become plain strings.
        plain = json.loads(json.dumps(document, default=str))
        return yaml.safe_dump(plain, sort_keys=False, allow_unicode=True)
    return json.dumps(document, indent=2, ensure_ascii=False, default=str) + "\n"


def write_documents(
    index: VersionIndex,
    output_dir: Union[str, Path],
    fmt: DocumentFormat = DocumentFormat.JSON,
    versions: Optional[Iterable[str]] = None,
    legacy_prefixes: Sequence[str] = (),
    exclusions: Optional[Iterable[str]] = None,
    strict: bool = False,
) -> list[Path]:
    """Write one document per version.

    Args:
        index: The version index to read from.
        output_dir: Target directory, created if missing.
        fmt: Output format.
        versions: Versions to write; defaults to every known version,
            ``draft`` included.
        legacy_prefixes: Operation prefixes allowed to omit an ``operationId``.
        exclusions: Exact validation messages to ignore.
        strict: Refuse to write a document that has schema violations.

    Returns:
        The written file paths, in version order.

    Raises:
        SchemaValidationError: If *strict* and a document is invalid. Documents
            of earlier versions may already have been written.
    """
    exclusions = None if exclusions is None else list(exclusions)
    output_dir = Path(output_dir)
    written = []
    for version in versions if versions is not None else index.versions():
        document = build_document(index, version, legacy_prefixes=legacy_prefixes)
        violations = validate_document(document, exclusions)
        for violation in violations:
            logger.warning("%s.%s: %s", version, fmt.value, violation)
        if strict and violations:
            raise SchemaValidationError(violations)
        path = output_dir / f"{version}.{fmt.value}"
        atomic_write(path, serialize(document, fmt))
        logger.info("Wrote %s", path)
        written.append(path)
    return written
