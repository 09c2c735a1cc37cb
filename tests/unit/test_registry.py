# tests/unit/test_registry.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from interviewer.providers.registry import ProviderRegistry, SPEECH  # type: ignore


def test_registry_register_and_get():
    @ProviderRegistry.register("Dummy")
    class DummyProvider:
        @classmethod
        def create(cls, *, model_name, provider_cfg, secrets):
            return cls()
        def chat(self, messages): return {"content": "ok"}
        def chat_stream(self, messages):
            yield "ok"

    # Case-insensitive lookup
    assert ProviderRegistry.get("dummy") is DummyProvider
    assert ProviderRegistry.get("DUMMY") is DummyProvider


def test_kinds_are_separate_namespaces():
    @ProviderRegistry.register("twin")
    class ChatTwin: ...

    @ProviderRegistry.register("twin", kind=SPEECH)
    class SpeechTwin: ...

    assert ProviderRegistry.get("twin") is ChatTwin
    assert ProviderRegistry.get("twin", kind=SPEECH) is SpeechTwin


def test_builtins_register_on_import():
    ProviderRegistry.ensure_imports()
    assert {"openai", "echo"} <= set(ProviderRegistry.names())
    assert {"openai", "echo"} <= set(ProviderRegistry.names(SPEECH))


def test_registry_unknown_raises():
    with pytest.raises(KeyError):
        ProviderRegistry.get("does-not-exist")
    with pytest.raises(KeyError):
        ProviderRegistry.get("does-not-exist", kind=SPEECH)
