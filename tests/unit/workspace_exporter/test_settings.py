from __future__ import annotations

from pathlib import Path

import pytest

from workspace_exporter.config import OutputFormat
from workspace_exporter.exceptions import ConfigFileError
from workspace_exporter.settings import (
    CONFIG_ENV_VAR,
    CONFIG_FILE_NAME,
    ExporterConfig,
    Settings,
    load_config_file,
    resolve_config_path,
)


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.repo.resolve() == Path.cwd().resolve()
    assert settings.command == "export"
    assert settings.format is None
    assert settings.chunk_size is None
    assert settings.no_tree is False
    assert settings.prefetch == 0


@pytest.mark.unit
def test_settings_rejects_negative_chunk_size() -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        Settings(chunk_size=-1)


@pytest.mark.unit
def test_load_config_file_defaults_when_missing() -> None:
    assert load_config_file(None) == ExporterConfig()


@pytest.mark.unit
def test_load_config_file_parses_yaml(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILE_NAME
    path.write_text(
        "output_format: markdown\n"
        "include_file_tree: false\n"
        "chunk_size: 8000\n"
        "global_excludes:\n  - '**/*.lock'\n"
        "custom_templates:\n"
        "  - id: vue\n"
        "    label: Vue app\n"
        "    pattern: '**/*.vue'\n",
        encoding="utf-8",
    )

    config = load_config_file(path)

    assert config.output_format is OutputFormat.MARKUP
    assert config.include_file_tree is False
    assert config.chunk_size == 8000
    assert config.global_excludes == ["**/*.lock"]
    assert config.custom_templates[0].id == "vue"


@pytest.mark.unit
@pytest.mark.parametrize("content", ["output_format: [unclosed\n", "- just\n- a list\n", "chunk_size: -3\n"])
def test_load_config_file_rejects_bad_content(tmp_path: Path, content: str) -> None:
    path = tmp_path / CONFIG_FILE_NAME
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigFileError) as exc_info:
        load_config_file(path)

    assert exc_info.value.file == path


@pytest.mark.unit
def test_load_config_file_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigFileError):
        load_config_file(tmp_path / "absent.yaml")


@pytest.mark.unit
def test_resolve_config_path_lookup_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert resolve_config_path(tmp_path) is None

    (tmp_path / CONFIG_FILE_NAME).write_text("{}\n", encoding="utf-8")
    assert resolve_config_path(tmp_path) == tmp_path / CONFIG_FILE_NAME

    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "other.yaml"))
    assert resolve_config_path(tmp_path) == tmp_path / "other.yaml"

    assert resolve_config_path(tmp_path, "explicit.yaml") == Path("explicit.yaml")
