"""Group operation files by version and resolve which fragment applies.

Every operation has a *draft* file and optionally one file per dated version::

    spec/api/widgets/get.yml              -> draft
    spec/api/widgets/get/20210101.yml     -> 20210101

:class:`VersionIndex` scans the tree once, on first access, and keeps the
parsed fragments for the lifetime of the instance. Call
:meth:`VersionIndex.clear` to pick up changes on disk; there is no file
watching.

Version tokens sort lexicographically, which is only correct for date-like
tokens (``YYYYMMDD``), not for semantic versions. ``draft`` is always last.

A process-wide default index is available through :func:`get_index`. Worker
processes each build their own; warm the cache before forking if the first
access must not race.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from specsmith.compiler.document import DocumentCompiler
from specsmith.compiler.loader import load_fragment
from specsmith.compiler.merge import deep_merge
from specsmith.compiler.paths import (
    classify,
    discover,
    is_index_file,
    is_operation_file,
    is_versioned_file,
)
from specsmith.exceptions import (
    EmptyVersionSetError,
    OperationNotFoundError,
    VersionNotFoundError,
)
from specsmith.models import DEFAULT_PREFIX, DRAFT, FileKind, OperationKey, Settings

logger = logging.getLogger(__name__)

VersionTable = dict[OperationKey, dict[str, dict[str, Any]]]


class VersionIndex:
    """Lazily built index of operation fragments keyed by operation and version.

    Args:
        root: Directory holding the YAML tree.
        prefix: API prefix substituted for *root* in operation paths.
        draft_only: When ``True``, :meth:`find_range` always returns
            ``["draft"]`` so local runs skip historical versions.
        exclusions: Exact validation messages ignored when compiling static
            documents.
    """

    def __init__(
        self,
        root: Union[str, Path],
        prefix: str = DEFAULT_PREFIX,
        draft_only: bool = True,
        exclusions: Optional[Iterable[str]] = None,
    ) -> None:
        self.root = Path(root)
        self.prefix = prefix.rstrip("/")
        self.draft_only = draft_only
        self.exclusions = None if exclusions is None else list(exclusions)
        self._table: Optional[VersionTable] = None
        self._versions: Optional[list[str]] = None
        self._static_docs: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "VersionIndex":
        """Build an index from resolved :class:`~specsmith.models.Settings`."""
        return cls(
            settings.root,
            prefix=settings.prefix,
            draft_only=settings.draft_only,
            exclusions=settings.validation_exclusions,
        )

    # ------------------------------------------------------------------ #
    # Cache management
    # ------------------------------------------------------------------ #

    @property
    def table(self) -> VersionTable:
        """Operation -> {version -> parsed YAML}, built on first access."""
        if self._table is None:
            self._table = self._build_table()
        return self._table

    def clear(self) -> None:
        """Drop every cached table and document so the next access rescans the tree."""
        self._table = None
        self._versions = None
        self._static_docs = {}

    def _build_table(self) -> VersionTable:
        table: VersionTable = {}
        for path in discover(self.root):
            if classify(path, self.root, self.prefix).kind not in (
                FileKind.OPERATION,
                FileKind.VERSIONED_OPERATION,
            ):
                continue
            fragment = load_fragment(path, self.root, self.prefix)
            assert fragment.operation is not None
            table.setdefault(fragment.operation, {})[fragment.version_token] = fragment.content
        logger.debug("Indexed %d operation(s) under %s", len(table), self.root)
        return table

    # ------------------------------------------------------------------ #
    # Versions
    # ------------------------------------------------------------------ #

    def versions(self) -> list[str]:
        """Every version token seen, sorted, with ``draft`` always last."""
        if self._versions is None:
            tokens = {token for versions in self.table.values() for token in versions}
            tokens.discard(DRAFT)
            self._versions = sorted(tokens) + [DRAFT]
        return list(self._versions)

    def latest(self) -> str:
        """The most recent dated version (``draft`` excluded).

        Raises:
            EmptyVersionSetError: If no dated version has been defined.
        """
        versions = self.versions()
        if len(versions) < 2:
            raise EmptyVersionSetError(
                f"No API versions defined under {self.root}; only '{DRAFT}' exists"
            )
        return versions[-2]

    def range(
        self, include_after: Optional[str] = None, include_until: Optional[str] = None
    ) -> list[str]:
        """Versions strictly after *include_after*, up to and including *include_until*.

        ``after`` is used rather than ``from`` because a date-based version
        number is not known while the code is being written.

        A missing or unknown *include_after* starts at the first version; a
        missing or unknown *include_until* ends at the latest dated version.
        ``draft`` is never part of the range.

        Example::

            # versions() == ["1", "2", "3", "draft"]
            range("1", "3")   # ["2", "3"]
            range(None, "2")  # ["1", "2"]
        """
        versions = self.versions()
        start = versions.index(include_after) + 1 if include_after in versions else 0
        if include_until in versions and include_until != DRAFT:
            end = versions.index(include_until)
        else:
            end = len(versions) - 2
        if start > end:
            return []
        return versions[start : end + 1]

    def find_range(self, metadata: Optional[Mapping[str, Any]] = None) -> list[str]:
        """Versions to run an operation against, most recent first.

        Args:
            metadata: Caller metadata; recognised keys are ``draft`` (bool),
                ``after`` and ``until`` (version tokens).

        Returns:
            ``["draft"]`` when ``metadata["draft"]`` is truthy or the index is
            in draft-only mode; otherwise :meth:`range` reversed.
        """
        metadata = metadata or {}
        if metadata.get("draft") or self.draft_only:
            return [DRAFT]
        return list(reversed(self.range(metadata.get("after"), metadata.get("until"))))

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def operations(self) -> list[OperationKey]:
        """Every indexed operation, sorted by path then method."""
        return sorted(self.table, key=lambda key: (key.path, key.method))

    def template_for(
        self, operation: Union[str, OperationKey], version: Optional[str] = None
    ) -> dict[str, Any]:
        """Return the YAML fragment of *operation* that applies to *version*.

        The requested version is tried first, then ``draft``.

        Args:
            operation: An :class:`~specsmith.models.OperationKey` or a
                descriptor such as ``"/api/widgets/get"`` or ``"GET /widgets"``.
            version: Version token; ``None`` means ``draft``.

        Returns:
            A copy of the parsed fragment.

        Raises:
            OperationNotFoundError: If the operation has no file at all.
            VersionNotFoundError: If it has neither *version* nor a draft.
        """
        key = operation if isinstance(operation, OperationKey) else OperationKey.parse(
            operation, self.prefix
        )
        version = version or DRAFT
        known = [k.slug for k in self.operations()]

        versions = self.table.get(key)
        if versions is None:
            directory, _, filename = key.slug.rpartition("/")
            raise OperationNotFoundError(
                f"Could not find {filename}.yml in the spec directory {directory}. "
                f"Have you defined it?\n\n{key.slug} {version} not found: {known}",
                operation=key.slug,
                version=version,
                known=known,
            )

        for candidate in (version, DRAFT):
            if candidate in versions:
                return copy.deepcopy(versions[candidate])

        raise VersionNotFoundError(
            f"{key.slug} has no {version}.yml and no draft file; "
            f"defined versions: {sorted(versions)}",
            operation=key.slug,
            version=version,
            known=known,
        )

    # ------------------------------------------------------------------ #
    # Static documents
    # ------------------------------------------------------------------ #

    def static_docs_for(self, version: str) -> dict[str, Any]:
        """Compile the non-operation files that apply to *version*.

        The result starts from ``{"info": {"version": version}}``; compiled
        values win over it. Memoised per version token.
        """
        if version not in self._static_docs:
            compiler = DocumentCompiler(self.root, self.prefix, self.exclusions)
            compiled = compiler.compile(self.static_files_for(version))
            self._static_docs[version] = deep_merge({"info": {"version": version}}, compiled)
        return copy.deepcopy(self._static_docs[version])

    def static_files_for(self, version: str) -> list[Path]:
        """Non-operation files for *version*, ``index`` files first.

        * ``draft`` -- every file whose name is not a version token;
        * a dated version -- files named ``<version>.yml`` plus index files.
        """
        files = [p for p in discover(self.root) if not is_operation_file(p, self.root)]
        if version == DRAFT:
            files = [p for p in files if not is_versioned_file(p)]
        else:
            files = [
                p
                for p in files
                if p.stem == version
                or (is_index_file(p, self.root) and not is_versioned_file(p))
            ]
        return sorted(files, key=lambda p: (0 if is_index_file(p, self.root) else 1, str(p)))


# ---------------------------------------------------------------------- #
# Process-wide default index
# ---------------------------------------------------------------------- #

_index: Optional[VersionIndex] = None


def get_index() -> VersionIndex:
    """Return the process-wide index, building it from resolved settings on first use."""
    global _index
    if _index is None:
        from specsmith.config import resolve_settings

        _index = VersionIndex.from_settings(resolve_settings())
    return _index


def set_index(index: VersionIndex) -> None:
    """Install *index* as the process-wide default."""
    global _index
    _index = index


def reset_index() -> None:
    """Forget the process-wide index; the next :func:`get_index` rebuilds it."""
    global _index
    _index = None
