from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional
import time

from interviewer.providers.registry import ProviderRegistry, SPEECH

_DEFAULT_TRANSCRIPT = "I would start with a single database and a cache."

_SCRIPT = (
    "Let's design a URL shortening service like the one in the article. "
    "Start simple: what are the core read and write paths, and where would you store the mappings?"
).split()


@ProviderRegistry.register("echo")
class EchoProvider:
    """
    Offline stand-in for the completion backend.
    Returns a fixed interviewer prompt; streaming yields one word at a time
    with a small delay to simulate tokens.
    """
    model = "echo-interviewer"

    def __init__(self, token_delay: float = 0.05, words: Optional[List[str]] = None):
        self.token_delay = float(token_delay)
        self.words = list(words) if words is not None else list(_SCRIPT)

    @classmethod
    def create(cls, *, model_name: str, provider_cfg: Dict[str, Any], secrets) -> "EchoProvider":
        provider_cfg = provider_cfg or {}
        return cls(token_delay=provider_cfg.get("token_delay", 0.05), words=provider_cfg.get("words"))

    def chat(self, messages: List[Dict[str, Any]]) -> Dict[str, str]:
        return {"content": " ".join(self.words)}

    def chat_stream(self, messages: List[Dict[str, Any]]) -> Iterator[str]:
        last_idx = len(self.words) - 1
        for i, w in enumerate(self.words):
            yield w + ("" if i == last_idx else " ")
            if self.token_delay > 0:
                time.sleep(self.token_delay)


@ProviderRegistry.register("echo", kind=SPEECH)
class EchoSpeech:
    """Offline stand-in for both speech backends. Audio out is the UTF-8 text itself."""

    media_type = "application/octet-stream"

    def __init__(self, transcript: str = _DEFAULT_TRANSCRIPT):
        self.transcript = transcript

    @classmethod
    def create(cls, *, speech_cfg: Dict[str, Any], secrets) -> "EchoSpeech":
        return cls(transcript=speech_cfg.get("transcript") or _DEFAULT_TRANSCRIPT)

    def transcribe(self, audio: bytes, *, filename: str = "audio.webm") -> str:
        return self.transcript if audio else ""

    def synthesize(self, text: str) -> bytes:
        return text.encode("utf-8")
