from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from tplgen.settings import RuntimeSettings
from tplgen.utils import telemetry
from tplgen.utils.telemetry import RunEvent


@pytest.fixture()
def runtime(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    monkeypatch.setenv("TPLGEN_TELEMETRY", "1")
    return RuntimeSettings(home_dir=tmp_path, log_dir=tmp_path / "logs", config_file=tmp_path / "config.yaml")


def test_runs_are_appended_and_summarised(runtime: RuntimeSettings) -> None:
    telemetry.record_run(runtime, RunEvent("generate.run", "success", "t.xml", {"files": 3}, 1.5))
    telemetry.record_run(runtime, RunEvent("export.run", "fatal", "t.xml", {"errors": 1}))

    lines = runtime.telemetry_file.read_text(encoding="utf-8").splitlines()
    first = json.loads(lines[0])
    assert first["payload"] == {"template": "t.xml", "files": 3}
    assert first["durationMs"] == 1.5
    assert first["level"] == "info"
    assert first["version"] == runtime.cli_version
    assert json.loads(lines[1])["level"] == "error"

    summary = telemetry.summarize(telemetry.read_events(runtime))
    assert summary == {
        "total": 2,
        "by_event": {"generate.run": 1, "export.run": 1},
        "by_status": {"success": 1, "fatal": 1},
    }
    assert [event["event"] for event in telemetry.read_events(runtime, 1)] == ["export.run"]


def test_partial_run_is_logged_as_warning() -> None:
    assert RunEvent("generate.run", "partial", "t.xml").level == "warn"


def test_disabled_telemetry_writes_nothing(runtime: RuntimeSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TPLGEN_TELEMETRY", "off")
    telemetry.record_run(runtime, RunEvent("generate.run", "success", "t.xml"))
    assert not runtime.telemetry_file.exists()
    assert telemetry.read_events(runtime) == []


def test_corrupt_lines_are_skipped(runtime: RuntimeSettings) -> None:
    runtime.log_dir.mkdir(parents=True)
    runtime.telemetry_file.write_text('{"event": "a"}\nnot json\n\n', encoding="utf-8")
    assert [event["event"] for event in telemetry.read_events(runtime)] == ["a"]


@pytest.mark.parametrize(
    "run",
    [
        RunEvent("bootstrap.run", "success", "t.xml"),
        RunEvent("generate.run", "done", "t.xml"),
        RunEvent("generate.run", "success", "t.xml", {"bytes": 10}),
        RunEvent("generate.run", "success", "t.xml", {"files": -1}),
    ],
)
def test_invalid_runs_are_rejected(runtime: RuntimeSettings, run: RunEvent) -> None:
    with pytest.raises(jsonschema.ValidationError):
        telemetry.record_run(runtime, run)
    assert not runtime.telemetry_file.exists()


def test_clear_removes_log(runtime: RuntimeSettings) -> None:
    telemetry.record_run(runtime, RunEvent("template.vars", "ok", "t.xml", {"variables": 2}))
    telemetry.clear(runtime)
    assert not runtime.telemetry_file.exists()
    telemetry.clear(runtime)
