"""Classify YAML files by their position in the spec tree.

The directory layout *is* the schema of a specsmith tree::

    <root>/widgets/get.yml                  draft operation
    <root>/widgets/get/20210101.yml         version-specific operation
    <root>/widgets/schemas/widget.yml       shared component
    <root>/open_api/index.yml               static document fragment

Classification is pure and never raises: anything that matches no rule is
:attr:`~specsmith.models.FileKind.OTHER` and is merged into the document
unwrapped (``info``, ``servers`` and similar root-level fragments).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from specsmith.models import (
    DEFAULT_PREFIX,
    HTTP_METHODS,
    ComponentKind,
    FileKind,
    OperationKey,
)

PathLike = Union[str, Path]

COMPONENT_FOLDERS = ("examples", "parameters", "requests", "responses", "schemas")
STATIC_FOLDERS = ("open_api", "_openapi")

_VERSIONED_STEM = re.compile(r"[\d.]+")


@dataclass(frozen=True)
class PathInfo:
    """Result of :func:`classify`."""

    kind: FileKind
    component: Optional[ComponentKind] = None
    operation: Optional[OperationKey] = None
    version: Optional[str] = None


def discover(root: PathLike) -> list[Path]:
    """Return every ``*.yml`` file under *root*, sorted by full path.

    Sorting fixes merge precedence: directory listing order differs across
    platforms and file systems.
    """
    root = Path(root)
    if not root.is_dir():
        return []
    return sorted((p for p in root.rglob("*.yml") if p.is_file()), key=str)


def relative_parts(path: PathLike, root: PathLike) -> tuple[str, ...]:
    """Split *path* into segments relative to *root*, dropping the ``.yml`` suffix.

    Paths outside *root* are split as-is (minus any anchor or ``.`` segments).
    """
    path = Path(path)
    try:
        rel = path.relative_to(Path(root))
    except ValueError:
        rel = Path(*[p for p in path.parts if p not in (path.anchor, ".")])
    parts = list(rel.parts)
    if not parts:
        return ()
    parts[-1] = Path(parts[-1]).stem if parts[-1].endswith(".yml") else parts[-1]
    return tuple(parts)


def classify(
    path: PathLike, root: PathLike, prefix: str = DEFAULT_PREFIX
) -> PathInfo:
    """Classify one file of the spec tree.

    Rules, first match wins:

    1. a segment named ``open_api``/``_openapi`` -> static fragment;
    2. a segment named after an HTTP method -> operation. When the method is
       the file name the file is the draft; when it is a directory the file
       name is the version token (not validated here);
    3. a segment named ``examples|parameters|requests|responses|schemas``
       -> component;
    4. anything else -> other.

    Args:
        path: The YAML file.
        root: The spec root the file lives under.
        prefix: API prefix substituted for *root* in operation paths.
    """
    parts = relative_parts(path, root)

    if any(part in STATIC_FOLDERS for part in parts):
        return PathInfo(kind=FileKind.STATIC)

    method_positions = [i for i, part in enumerate(parts) if part in HTTP_METHODS]
    if method_positions:
        i = method_positions[-1]
        key = OperationKey(
            method=parts[i], path=_path_template(parts[:i], prefix)
        )
        if i == len(parts) - 1:
            return PathInfo(kind=FileKind.OPERATION, operation=key)
        return PathInfo(
            kind=FileKind.VERSIONED_OPERATION, operation=key, version=parts[-1]
        )

    for part in parts:
        if part in COMPONENT_FOLDERS:
            return PathInfo(
                kind=FileKind.COMPONENT, component=ComponentKind.from_folder(part)
            )

    return PathInfo(kind=FileKind.OTHER)


def is_operation_file(path: PathLike, root: PathLike) -> bool:
    """True for draft and version-specific operation files."""
    return classify(path, root).kind in (
        FileKind.OPERATION,
        FileKind.VERSIONED_OPERATION,
    )


def is_versioned_file(path: PathLike) -> bool:
    """True when the file name is a version token (digits and dots only)."""
    return bool(_VERSIONED_STEM.fullmatch(Path(path).stem))


def is_index_file(path: PathLike, root: PathLike) -> bool:
    """True for files following the ``index`` naming convention (merged first)."""
    return any("index" in part for part in relative_parts(path, root))


def _path_template(segments: tuple[str, ...], prefix: str) -> str:
    prefix = prefix.rstrip("/")
    if not segments:
        return prefix or "/"
    return f"{prefix}/{'/'.join(segments)}"
