"""Read YAML fragments from disk into :class:`~specsmith.models.SpecFragment` objects.

Any failure here aborts compilation: a tree with one unreadable file cannot
produce a trustworthy document. Syntax errors carry a line-numbered dump of
the text that was being parsed so the offending line can be found quickly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Union

import yaml

from specsmith.compiler.paths import classify
from specsmith.exceptions import ParseError, ReferenceSyntaxError
from specsmith.models import DEFAULT_PREFIX, SpecFragment

logger = logging.getLogger(__name__)

# `$ref:'...'` parses as a plain scalar key, silently dropping the reference.
_BAD_REF_LITERAL = "$ref:'"


def load_yaml(path: Union[str, Path]) -> dict[str, Any]:
    """Load one YAML file into a mapping with string keys.

    Args:
        path: The file to read.

    Returns:
        The parsed mapping. Keys are converted to strings recursively, so
        ``200:`` becomes ``"200"``.

    Raises:
        ReferenceSyntaxError: If the text contains ``$ref:'`` (missing space).
        ParseError: If the file cannot be read, is not valid YAML, or its
            root is not a mapping.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParseError(f"Failed to read {path}: {exc}", source_path=str(path)) from exc

    if _BAD_REF_LITERAL in text:
        raise ReferenceSyntaxError(
            f"{path}: $ref:'...' should be $ref: '...' (note the space)",
            source_path=str(path),
        )

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        dump = number_lines(text)
        logger.error("Failed to parse %s:\n%s", path, dump)
        raise ParseError(
            f"Invalid YAML in {path}: {exc}", source_path=str(path), dump=dump
        ) from exc

    if not isinstance(data, dict):
        raise ParseError(f"{path} missing or empty", source_path=str(path))

    return stringify_keys(data)


def load_fragment(
    path: Union[str, Path],
    root: Union[str, Path],
    prefix: str = DEFAULT_PREFIX,
) -> SpecFragment:
    """Load and classify one file of the spec tree."""
    info = classify(path, root, prefix)
    return SpecFragment(
        source_path=str(path),
        content=load_yaml(path),
        kind=info.kind,
        component=info.component,
        operation=info.operation,
        version=info.version,
    )


def stringify_keys(node: Any) -> Any:
    """Recursively convert every mapping key to ``str``."""
    if isinstance(node, dict):
        return {str(key): stringify_keys(value) for key, value in node.items()}
    if isinstance(node, list):
        return [stringify_keys(item) for item in node]
    return node


def number_lines(text: str) -> str:
    """Prefix every line of *text* with its 1-based line number."""
    return "\n".join(
        f"{index}: {line}" for index, line in enumerate(text.splitlines(), start=1)
    )
