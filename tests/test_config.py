"""Tests for specsmith.config -- atomic writes, project config, precedence."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from specsmith.config import atomic_write, load_project_config, resolve_settings
from specsmith.exceptions import ConfigError
from specsmith.models import DEFAULT_VALIDATION_EXCLUSIONS, DocumentFormat


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "draft.json"
        atomic_write(target, "{}\n")
        assert target.read_text(encoding="utf-8") == "{}\n"

    def test_overwrites(self, tmp_path: Path) -> None:
        target = tmp_path / "draft.json"
        target.write_text("old")
        atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_failure_leaves_no_temp_file(self, tmp_path: Path) -> None:
        target = tmp_path / "draft.json"
        target.write_text("old")
        with patch("specsmith.config.os.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError, match="boom"):
                atomic_write(target, "new")
        assert target.read_text() == "old"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["draft.json"]


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestLoadProjectConfig:
    def test_absent_default_file(self) -> None:
        assert load_project_config() is None

    def test_default_file_in_cwd(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "specsmith.json", {"prefix": "/v1"})
        assert load_project_config() == {"prefix": "/v1"}

    def test_explicit_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_project_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "specsmith.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config(path)

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "specsmith.json"
        _write_json(path, ["a"])
        with pytest.raises(ConfigError, match="must be a JSON object"):
            load_project_config(path)


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveSettings:
    def test_defaults(self) -> None:
        settings = resolve_settings()
        assert settings.root == Path("spec/api")
        assert settings.prefix == "/api"
        assert settings.draft_only is True
        assert settings.output_dir == Path("openapi")
        assert settings.output_format == DocumentFormat.JSON
        assert settings.legacy_prefixes == []
        assert settings.validation_exclusions == DEFAULT_VALIDATION_EXCLUSIONS

    def test_project_file(self, tmp_path: Path) -> None:
        _write_json(
            tmp_path / "specsmith.json",
            {
                "root": "api",
                "prefix": "/v1/",
                "legacy_prefixes": ["/v1/old"],
                "validation_exclusions": [],
            },
        )
        settings = resolve_settings()
        assert settings.root == Path("api")
        assert settings.prefix == "/v1"
        assert settings.legacy_prefixes == ["/v1/old"]
        assert settings.validation_exclusions == []

    def test_env_overrides_project_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(tmp_path / "specsmith.json", {"root": "from-file", "output_format": "json"})
        monkeypatch.setenv("SPECSMITH_ROOT", "from-env")
        monkeypatch.setenv("SPECSMITH_FORMAT", "yaml")
        monkeypatch.setenv("SPECSMITH_DRAFT_ONLY", "off")
        settings = resolve_settings()
        assert settings.root == Path("from-env")
        assert settings.output_format == DocumentFormat.YAML
        assert settings.draft_only is False

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSMITH_ROOT", "from-env")
        monkeypatch.setenv("SPECSMITH_OUTPUT_DIR", "env-out")
        monkeypatch.setenv("SPECSMITH_DRAFT_ONLY", "1")
        settings = resolve_settings(
            cli_root="from-cli",
            cli_output_dir="cli-out",
            cli_format="yaml",
            cli_draft_only=False,
        )
        assert settings.root == Path("from-cli")
        assert settings.output_dir == Path("cli-out")
        assert settings.output_format == DocumentFormat.YAML
        assert settings.draft_only is False

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        path = tmp_path / "conf" / "custom.json"
        _write_json(path, {"prefix": ""})
        assert resolve_settings(config_path=path).prefix == ""

    def test_empty_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSMITH_ROOT", "")
        assert resolve_settings().root == Path("spec/api")

    def test_invalid_bool(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSMITH_DRAFT_ONLY", "maybe")
        with pytest.raises(ConfigError, match="SPECSMITH_DRAFT_ONLY"):
            resolve_settings()

    def test_invalid_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSMITH_FORMAT", "xml")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_settings()

    def test_environment_untouched(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSMITH_PREFIX", "/x")
        resolve_settings()
        assert os.environ["SPECSMITH_PREFIX"] == "/x"
