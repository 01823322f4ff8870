from __future__ import annotations

from pathlib import Path

import pytest

from tplgen.domain.diagnostics import LogLevel
from tplgen.domain.template import SourceLanguage
from tplgen.domain.tokens import UnresolvedPolicy
from tplgen.settings import GeneratorSettings, RuntimeSettings, SettingsError, load_generator_settings, load_settings


@pytest.fixture()
def runtime(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    for name in ("TPLGEN_LOG_LEVEL", "TPLGEN_OVERWRITE", "TPLGEN_SUPPRESS_ERRORS"):
        monkeypatch.delenv(name, raising=False)
    return RuntimeSettings(home_dir=tmp_path, log_dir=tmp_path / "logs", config_file=tmp_path / "config.yaml")


def test_defaults_without_config(runtime: RuntimeSettings) -> None:
    assert load_generator_settings(runtime) == GeneratorSettings()


def test_home_dir_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TPLGEN_HOME", str(tmp_path / "custom"))
    settings = load_settings()
    assert settings.home_dir == tmp_path / "custom"
    assert settings.config_file == tmp_path / "custom" / "config.yaml"
    assert settings.telemetry_file == tmp_path / "custom" / "logs" / "telemetry.jsonl"


def test_config_file_environment_and_overrides_layer(runtime: RuntimeSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    runtime.config_file.write_text(
        "generator:\n  log_level: verbose\n  suppress_errors: true\n  language: fs\n  unresolved_variables: skip-file\n",
        encoding="utf-8",
    )
    settings = load_generator_settings(runtime)
    assert settings.log_level is LogLevel.VERBOSE
    assert settings.raise_on_error is False
    assert settings.language is SourceLanguage.FSHARP
    assert settings.unresolved_variables is UnresolvedPolicy.SKIP_FILE

    monkeypatch.setenv("TPLGEN_LOG_LEVEL", "warn")
    monkeypatch.setenv("TPLGEN_OVERWRITE", "1")
    settings = load_generator_settings(runtime, {"language": "vb", "log_level": None})
    assert settings.log_level is LogLevel.WARNING
    assert settings.overwrite is True
    assert settings.language is SourceLanguage.VISUALBASIC


@pytest.mark.parametrize(
    "content",
    ["log_level: shouting\n", "language: cobol\n", "colour: blue\n", "- a\n- b\n", "key: [unclosed\n"],
)
def test_invalid_config_is_rejected(runtime: RuntimeSettings, content: str) -> None:
    runtime.config_file.write_text(content, encoding="utf-8")
    with pytest.raises(SettingsError):
        load_generator_settings(runtime)
