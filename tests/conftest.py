"""Shared test fixtures for specsmith.

Provides a small on-disk spec tree, an index over it, and isolation of the
process-wide state (output manager, default index, ``SPECSMITH_*``
environment variables, working directory). These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
import yaml

from specsmith.output import reset_output
from specsmith.versions import VersionIndex, reset_index


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_yaml(path: Path, data: Any) -> Path:
    """Write *data* as YAML to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals() -> None:
    """Reset the global OutputManager and default index after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()
    reset_index()


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear SPECSMITH_* variables and run each test from tmp_path."""
    for key in list(os.environ):
        if key.startswith("SPECSMITH_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Spec tree fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def spec_root(tmp_path: Path) -> Path:
    """A small spec tree with three dated versions.

    Layout::

        open_api/index.yml                 static, all versions
        open_api/20210301.yml              static, 20210301 only
        widgets/get.yml                    draft
        widgets/get/20210201.yml
        widgets/get/20210301.yml
        widgets/post.yml                   draft
        widgets/schemas/widget.yml         component (schemas)
        widgets/responses/widget.yml       component (responses)
        gadgets/get/20210101.yml           no draft
    """
    root = tmp_path / "spec" / "api"
    write_yaml(
        root / "open_api" / "index.yml",
        {"openapi": "3.0.0", "info": {"title": "Widgets API"}},
    )
    write_yaml(
        root / "open_api" / "20210301.yml",
        {"info": {"description": "March release"}},
    )
    write_yaml(
        root / "widgets" / "get.yml",
        {
            "id": "listWidgets",
            "summary": "List widgets",
            "responses": {200: {"description": "OK", "schema": "widget"}},
        },
    )
    write_yaml(
        root / "widgets" / "get" / "20210201.yml",
        {
            "id": "listWidgets",
            "summary": "List widgets (February)",
            "responses": {200: {"description": "OK"}},
        },
    )
    write_yaml(
        root / "widgets" / "get" / "20210301.yml",
        {
            "id": "listWidgets",
            "summary": "List widgets (March)",
            "responses": {200: {"description": "OK"}},
        },
    )
    write_yaml(
        root / "widgets" / "post.yml",
        {
            "id": "createWidget",
            "parameters": [{"name": "name", "in": "query"}],
            "responses": {201: {"description": "Created"}},
        },
    )
    write_yaml(
        root / "widgets" / "schemas" / "widget.yml",
        {"Widget": {"type": "object", "properties": {"name": {"type": "string"}}}},
    )
    write_yaml(
        root / "widgets" / "responses" / "widget.yml",
        {
            "widget": {
                "description": "A widget",
                "schema": {"$ref": "#/components/schemas/Widget"},
            }
        },
    )
    write_yaml(
        root / "gadgets" / "get" / "20210101.yml",
        {"id": "listGadgets", "responses": {200: {"description": "OK"}}},
    )
    return root


@pytest.fixture
def index(spec_root: Path) -> VersionIndex:
    """A draft-only index over :func:`spec_root`."""
    return VersionIndex(spec_root)


@pytest.fixture
def full_index(spec_root: Path) -> VersionIndex:
    """An index over :func:`spec_root` that replays every version."""
    return VersionIndex(spec_root, draft_only=False)
