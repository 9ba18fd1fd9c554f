"""Tests for specsmith.compiler.document -- the per-file pipeline and DocumentCompiler."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest
import yaml

from specsmith.compiler.document import (
    DocumentCompiler,
    normalize_content,
    normalize_operation,
    normalize_path,
)
from specsmith.compiler.paths import discover
from specsmith.exceptions import ParseError, SchemaValidationError
from specsmith.models import ComponentKind, FileKind, OperationKey, SpecFragment


def _write_yaml(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def _fragment(content: dict[str, Any], kind: FileKind, **kwargs: Any) -> SpecFragment:
    return SpecFragment(source_path="x.yml", content=content, kind=kind, **kwargs)


VALID_HEADER = {"openapi": "3.0.0", "info": {"title": "T", "version": "1"}}


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


class TestCompileEndToEnd:
    @pytest.fixture()
    def root(self, tmp_path: Path) -> Path:
        root = tmp_path / "spec"
        _write_yaml(root / "a" / "get.yml", {"id": "A", "responses": {"200": {"schema": "Foo"}}})
        _write_yaml(root / "a" / "schemas" / "schemas.yml", {"Foo": {"type": "object"}})
        return root

    def test_operation_and_component_merged(self, root: Path) -> None:
        compiler = DocumentCompiler(root, prefix="")
        document = compiler.compile(discover(root))

        operation = document["paths"]["/a"]["get"]
        assert operation["operationId"] == "A"
        assert "id" not in operation
        assert operation["responses"]["200"]["schema"] == {"$ref": "#/components/schemas/Foo"}
        assert document["components"]["schemas"]["Foo"]["type"] == "object"

    def test_default_prefix(self, root: Path) -> None:
        document = DocumentCompiler(root).compile(discover(root))
        assert list(document["paths"]) == ["/api/a"]

    def test_violations_reported_not_raised(
        self, root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        compiler = DocumentCompiler(root, prefix="")
        with caplog.at_level(logging.WARNING, logger="specsmith.compiler.document"):
            document = compiler.compile(discover(root))
        assert document["paths"]
        assert compiler.violations
        assert "OpenAPI violation" in caplog.text

    def test_strict_raises_with_every_violation(self, root: Path) -> None:
        compiler = DocumentCompiler(root, prefix="")
        with pytest.raises(SchemaValidationError) as exc_info:
            compiler.compile(discover(root), strict=True)
        assert exc_info.value.violations == compiler.violations
        assert len(exc_info.value.violations) >= 1

    def test_deterministic_for_fixed_order(self, root: Path) -> None:
        files = discover(root)
        first = json.dumps(DocumentCompiler(root).compile(files), sort_keys=False)
        second = json.dumps(DocumentCompiler(root).compile(files), sort_keys=False)
        assert first == second


class TestCompileMerging:
    def test_later_file_wins(self, tmp_path: Path) -> None:
        first = _write_yaml(tmp_path / "a.yml", {"info": {"title": "A", "description": "d"}})
        second = _write_yaml(tmp_path / "b.yml", {"info": {"title": "B"}})
        compiler = DocumentCompiler(tmp_path)
        assert compiler.compile([first, second])["info"] == {"title": "B", "description": "d"}
        assert compiler.compile([second, first])["info"] == {"title": "A", "description": "d"}

    def test_private_top_level_keys_dropped(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "info.yml", {"_anchors": {"x": 1}, "openapi": "3.0.0"})
        assert DocumentCompiler(tmp_path).compile([path]) == {"openapi": "3.0.0"}

    def test_valid_document_has_no_violations(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "open_api" / "index.yml", {**VALID_HEADER, "paths": {}})
        compiler = DocumentCompiler(tmp_path)
        compiler.compile([path], strict=True)
        assert compiler.violations == []

    def test_static_fragments_validate_without_paths_or_version(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "open_api" / "index.yml", {"openapi": "3.0.0", "info": {"title": "T"}}
        )
        compiler = DocumentCompiler(tmp_path)
        document = compiler.compile([path], strict=True)
        assert compiler.violations == []
        assert "paths" not in document
        assert "version" not in document["info"]

    def test_exclusions_suppress_known_messages(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "open_api" / "index.yml", {"openapi": "3.0.0", "info": {}, "paths": {}}
        )
        compiler = DocumentCompiler(tmp_path)
        compiler.compile([path])
        assert compiler.violations == ["The property '#/info' 'title' is a required property"]

        quiet = DocumentCompiler(tmp_path, exclusions=compiler.violations)
        quiet.compile([path], strict=True)
        assert quiet.violations == []

    def test_parse_error_aborts(self, tmp_path: Path) -> None:
        good = _write_yaml(tmp_path / "a.yml", {"openapi": "3.0.0"})
        bad = tmp_path / "b.yml"
        bad.write_text("- not a mapping\n")
        with pytest.raises(ParseError):
            DocumentCompiler(tmp_path).compile([good, bad])

    def test_component_file_end_to_end(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "widgets" / "responses" / "widget.yml",
            {"widget": {"description": "A widget", "schema": "base"}},
        )
        document = DocumentCompiler(tmp_path).compile([path])
        assert document["components"]["responses"]["widget"] == {
            "description": "A widget",
            "content": {
                "application/json": {
                    "schema": {
                        "$ref": "#/components/responses/base/content/application~1json/schema"
                    }
                }
            },
        }


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


class TestNormalizeContent:
    def test_nests_schema_and_examples(self) -> None:
        fragment = _fragment(
            {"widget": {"description": "d", "schema": "W", "examples": {"a": {}}}},
            FileKind.COMPONENT,
            component=ComponentKind.RESPONSES,
        )
        assert normalize_content(fragment) == {
            "widget": {
                "description": "d",
                "content": {"application/json": {"schema": "W", "examples": {"a": {}}}},
            }
        }

    def test_absent_keys_not_written(self) -> None:
        fragment = _fragment(
            {"widget": {"schema": "W"}, "other": {"description": "no body"}},
            FileKind.COMPONENT,
            component=ComponentKind.RESPONSES,
        )
        result = normalize_content(fragment)
        assert result["widget"] == {"content": {"application/json": {"schema": "W"}}}
        assert result["other"] == {"description": "no body"}

    def test_existing_content_keeps_other_media_types(self) -> None:
        fragment = _fragment(
            {
                "widget": {
                    "content": {"text/plain": {"schema": {"type": "string"}}},
                    "schema": "W",
                }
            },
            FileKind.COMPONENT,
            component=ComponentKind.RESPONSES,
        )
        assert normalize_content(fragment) == {
            "widget": {
                "content": {
                    "text/plain": {"schema": {"type": "string"}},
                    "application/json": {"schema": "W"},
                }
            }
        }

    def test_null_values_dropped(self) -> None:
        fragment = _fragment(
            {"widget": {"schema": None, "examples": {"a": {}}}},
            FileKind.COMPONENT,
            component=ComponentKind.REQUEST_BODIES,
        )
        assert normalize_content(fragment) == {
            "widget": {"content": {"application/json": {"examples": {"a": {}}}}}
        }

    def test_non_components_untouched(self) -> None:
        content = {"widget": {"schema": "W"}}
        fragment = _fragment(content, FileKind.OTHER)
        result = normalize_content(fragment)
        assert result == content
        assert result is not fragment.content

    def test_fragment_not_mutated(self) -> None:
        fragment = _fragment(
            {"widget": {"schema": "W"}}, FileKind.COMPONENT, component=ComponentKind.RESPONSES
        )
        normalize_content(fragment)
        assert fragment.content == {"widget": {"schema": "W"}}


class TestNormalizeOperation:
    def test_id_renamed(self) -> None:
        fragment = _fragment({"id": "A"}, FileKind.OPERATION)
        assert normalize_operation(fragment, {"id": "A"}) == {"operationId": "A"}

    def test_explicit_operation_id_kept(self) -> None:
        data = {"id": "old", "operationId": "new"}
        fragment = _fragment(data, FileKind.OPERATION)
        assert normalize_operation(fragment, data) == data

    def test_legacy_response_list(self) -> None:
        data = {"responses": [{"status": 200, "schema": "Foo"}]}
        fragment = _fragment(data, FileKind.VERSIONED_OPERATION, version="1")
        result = normalize_operation(fragment, data)
        assert result["responses"] == [
            {"status": 200, "schema": {"$ref": "#/components/schemas/Foo"}}
        ]

    def test_other_kinds_untouched(self) -> None:
        data = {"id": "A", "responses": {"200": {"schema": "Foo"}}}
        fragment = _fragment(data, FileKind.STATIC)
        assert normalize_operation(fragment, data) == data


class TestNormalizePath:
    def test_operation(self) -> None:
        key = OperationKey(method="get", path="/api/widgets")
        fragment = _fragment({}, FileKind.OPERATION, operation=key)
        assert normalize_path(fragment, {"x": 1}) == {"paths": {"/api/widgets": {"get": {"x": 1}}}}

    def test_component(self) -> None:
        fragment = _fragment({}, FileKind.COMPONENT, component=ComponentKind.REQUEST_BODIES)
        assert normalize_path(fragment, {"x": 1}) == {"components": {"requestBodies": {"x": 1}}}

    @pytest.mark.parametrize("kind", [FileKind.STATIC, FileKind.OTHER])
    def test_unwrapped(self, kind: FileKind) -> None:
        assert normalize_path(_fragment({}, kind), {"x": 1}) == {"x": 1}
