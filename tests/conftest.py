from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "tplgen-home"
os.environ.setdefault("TPLGEN_HOME", str(SANDBOX_HOME))
os.environ.setdefault("TPLGEN_TELEMETRY", "0")
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

TemplateFactory = Callable[..., Path]


@pytest.fixture()
def make_template(tmp_path: Path) -> TemplateFactory:
    """Write a template description plus its source files under ``tmp_path/template``."""

    def factory(body: str, files: Mapping[str, str | bytes] | None = None, name: str = "template.xml") -> Path:
        root = tmp_path / "template"
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in (files or {}).items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        path = root / name
        path.write_text(body, encoding="utf-8")
        return path

    return factory
