from __future__ import annotations
from typing import Protocol, Iterable, List, Dict, Any


class Provider(Protocol):
    """
    Interface the core uses to talk to any LLM backend.
    The backend is stateless across calls: every call carries the full history.
    """

    # Surfaced in logs and the session header
    model: str

    def chat(self, messages: List[Dict[str, Any]]) -> Dict[str, str]:
        """
        Synchronous call. Returns {'content': <assistant_text>}.
        'messages' are OpenAI-style: [{'role': 'system'|'user'|'assistant', 'content': '...'}, ...]
        """
        ...

    def chat_stream(self, messages: List[Dict[str, Any]]) -> Iterable[str]:
        """
        Streaming call. Yields text fragments as they arrive.
        Closing the returned iterator must release the backend stream.
        """
        ...


class SpeechToText(Protocol):
    def transcribe(self, audio: bytes, *, filename: str = "audio.webm") -> str:
        """Encoded audio in, transcript text out."""
        ...


class TextToSpeech(Protocol):
    media_type: str

    def synthesize(self, text: str) -> bytes:
        """Text in, encoded audio out (format given by media_type)."""
        ...


class SpeechBackend(SpeechToText, TextToSpeech, Protocol):
    """Both speech directions behind one adapter."""
