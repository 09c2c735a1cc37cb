# tests/unit/conftest.py

from __future__ import annotations
from pathlib import Path
import pytest


@pytest.fixture
def echo_config(tmp_path: Path) -> Path:
    """Temp repo with config/default.yaml wired to the offline echo backends."""
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir(parents=True)
    sessions_dir = tmp_path / "sessions"
    cfg = cfg_dir / "default.yaml"
    cfg.write_text(
        f"""
model:
  provider: echo
  name: echo-model
providers:
  echo:
    token_delay: 0.0
speech:
  provider: echo
secrets:
  method: env
  mapping: {{}}
sessions:
  default_time_limit_seconds: 300
storage:
  backend: file
  transcripts_dir: "{sessions_dir}"
runtime:
  stream: true
""",
        encoding="utf-8",
    )
    return cfg
