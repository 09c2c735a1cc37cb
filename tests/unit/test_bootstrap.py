# tests/unit/test_bootstrap.py

from __future__ import annotations
import sys
from pathlib import Path

# Ensure "src" is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from interviewer.bootstrap import build_app
from interviewer.core.lifecycle import SessionController
from interviewer.providers.echo import EchoProvider, EchoSpeech
from interviewer.resilience.guarded_provider import GuardedProvider, GuardedSpeech


def test_build_app_echo(tmp_path: Path, echo_config: Path):
    ctx = build_app(echo_config, repo_root=tmp_path)

    assert isinstance(ctx["provider"], GuardedProvider)
    assert isinstance(ctx["provider"].inner, EchoProvider)
    assert isinstance(ctx["speech"], GuardedSpeech)
    assert isinstance(ctx["controller"], SessionController)
    assert ctx["paths"]["transcripts_dir"] == tmp_path / "sessions"
    assert ctx["cfg"]["model"]["provider"] == "echo"
    assert len(ctx["registry"]) == 0


def test_file_backend_archives_turns(tmp_path: Path, echo_config: Path):
    ctx = build_app(echo_config, repo_root=tmp_path)
    session_id, reply = ctx["controller"].start_session("https://example.com/design", 60)

    path = tmp_path / "sessions" / f"{session_id}.jsonl"
    assert path.exists()
    lines = path.read_text(encoding="utf-8").splitlines()
    # header + opening user turn + model turn
    assert len(lines) == 3
    assert reply.split()[0] in lines[-1]


def test_provider_override_switches_speech_too(tmp_path: Path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text(
        """
model: { provider: openai, name: gpt-4o-mini }
providers: { echo: { token_delay: 0.0 } }
storage: { backend: none, transcripts_dir: sessions }
runtime: { stream: false }
""",
        encoding="utf-8",
    )
    ctx = build_app(cfg, repo_root=tmp_path, provider="echo", model="whatever")

    assert ctx["cfg"]["model"]["name"] == "whatever"
    assert isinstance(ctx["speech"].inner, EchoSpeech)
    # backend "none" writes nothing
    ctx["controller"].start_session("https://example.com/x")
    assert not (tmp_path / "sessions").exists()
