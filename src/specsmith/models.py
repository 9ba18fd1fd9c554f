"""Canonical Pydantic models shared across all specsmith modules.

The models fall into two groups:

**Configuration models** -- read from ``./specsmith.json`` and environment
variables by :mod:`specsmith.config`:
    :class:`DocumentFormat` and :class:`Settings`.

**Compiler models** -- produced while discovering and indexing YAML files:
    :class:`FileKind`, :class:`ComponentKind`, :class:`SpecFragment` and
    :class:`OperationKey`.

Compiler models are frozen: a fragment is created once per file read and
normalisation always produces new documents rather than mutating it.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DRAFT = "draft"
"""Version token of the implicit, always-present in-progress API surface."""

DEFAULT_PREFIX = "/api"

HTTP_METHODS = ("get", "post", "patch", "put", "delete")

DEFAULT_VALIDATION_EXCLUSIONS = [
    "The property '#/components/parameters/core.custom_field_value_params' "
    "of type object did not match any of the required schemas",
]


# --- Configuration ---


class DocumentFormat(str, enum.Enum):
    """Serialisation format of the written OpenAPI documents."""

    JSON = "json"
    YAML = "yaml"


class Settings(BaseModel):
    """Effective configuration for one specsmith run.

    Example::

        Settings(root=Path("spec/api"), prefix="/api", draft_only=False)
    """

    root: Path = Field(
        default=Path("spec/api"), description="Directory holding the YAML tree"
    )
    prefix: str = Field(
        default=DEFAULT_PREFIX,
        description="Path prefix substituted for the root directory",
    )
    draft_only: bool = Field(
        default=True,
        description="Only replay the draft version (fast local iteration)",
    )
    output_dir: Path = Field(
        default=Path("openapi"), description="Where written documents go"
    )
    output_format: DocumentFormat = DocumentFormat.JSON
    legacy_prefixes: list[str] = Field(
        default_factory=list,
        description="Operation prefixes allowed to omit an operationId",
    )
    validation_exclusions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_VALIDATION_EXCLUSIONS),
        description="Exact violation messages that are known false positives",
    )

    @field_validator("prefix")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


# --- Compiler ---


class FileKind(str, enum.Enum):
    """How a YAML file takes part in compilation."""

    OPERATION = "operation"
    VERSIONED_OPERATION = "versioned_operation"
    COMPONENT = "component"
    STATIC = "static"
    OTHER = "other"


class ComponentKind(str, enum.Enum):
    """OpenAPI ``components`` namespaces a component file can populate."""

    EXAMPLES = "examples"
    PARAMETERS = "parameters"
    REQUEST_BODIES = "requestBodies"
    RESPONSES = "responses"
    SCHEMAS = "schemas"

    @classmethod
    def from_folder(cls, name: str) -> "ComponentKind":
        """Map an on-disk folder name to its namespace (``requests`` -> ``requestBodies``)."""
        if name == "requests":
            return cls.REQUEST_BODIES
        return cls(name)


class SpecFragment(BaseModel):
    """One parsed YAML file.

    ``version`` is ``None`` for draft files. ``content`` uses string keys
    throughout.
    """

    model_config = ConfigDict(frozen=True)

    source_path: str
    content: dict[str, Any]
    kind: FileKind
    component: Optional[ComponentKind] = None
    operation: Optional["OperationKey"] = None
    version: Optional[str] = None

    @property
    def version_token(self) -> str:
        """The version token, with ``draft`` standing in for ``None``."""
        return self.version or DRAFT


class OperationKey(BaseModel):
    """Normalised ``(method, path)`` identifier of one operation.

    The path always carries the API prefix, and the method is lower-case, so
    ``"GET /widgets"`` and ``"/api/widgets/get"`` produce equal keys. The
    prefix is matched case-insensitively and rewritten to its configured
    spelling; the rest of the path keeps its case (``{widgetId}``).
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str

    @field_validator("method")
    @classmethod
    def _lower_method(cls, value: str) -> str:
        return value.lower()

    @classmethod
    def parse(cls, descriptor: str, prefix: str = DEFAULT_PREFIX) -> "OperationKey":
        """Build a key from ``"VERB /path"`` or ``"/path/verb"``.

        Args:
            descriptor: Operation descriptor in either notation.
            prefix: API prefix prepended when the path does not start with it.

        Returns:
            The normalised key.
        """
        descriptor = descriptor.strip()
        if " " in descriptor:
            method, path = descriptor.split(None, 1)
        else:
            path, _, method = descriptor.rstrip("/").rpartition("/")
        path = "/" + path.strip().strip("/") if path.strip("/") else ""
        prefix = prefix.rstrip("/")
        if prefix:
            lowered = path.lower()
            if lowered == prefix.lower() or lowered.startswith(prefix.lower() + "/"):
                path = prefix + path[len(prefix):]
            else:
                path = prefix + path
        return cls(method=method, path=path or "/")

    @property
    def slug(self) -> str:
        """The on-disk style identifier, e.g. ``/api/widgets/get``."""
        return f"{self.path.rstrip('/')}/{self.method}"

    def __str__(self) -> str:
        return f"{self.method.upper()} {self.path}"


SpecFragment.model_rebuild()
