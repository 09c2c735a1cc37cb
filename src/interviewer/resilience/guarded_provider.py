from __future__ import annotations
import logging
import time
from typing import Any, Dict, Iterator, List

from interviewer.core.errors import BackendUnavailable, InterviewerError
from interviewer.core.ports import Provider, SpeechBackend

logger = logging.getLogger("interviewer.provider")


class GuardedProvider:
    """
    Wraps a completion provider so that every failure surfaces as a
    BackendUnavailable subclass. Nothing is retried: the caller sees the
    first failure and decides what to do. How long a blocked read may wait is
    the adapter's own `timeout`.
    """

    def __init__(self, inner: Provider):
        self.inner = inner
        self.model = getattr(inner, "model", "unknown")

    @staticmethod
    def _wrap(exc: Exception) -> InterviewerError:
        if isinstance(exc, InterviewerError):
            return exc
        return BackendUnavailable(f"Provider call failed: {exc}")

    def chat(self, messages: List[Dict[str, Any]]) -> Dict[str, str]:
        start = time.monotonic()
        try:
            reply = self.inner.chat(messages)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logger.warning("chat failed on %s after %.2fs: %s", self.model, time.monotonic() - start, e)
            raise self._wrap(e) from e
        logger.debug("chat on %s took %.2fs", self.model, time.monotonic() - start)
        return reply

    def chat_stream(self, messages: List[Dict[str, Any]]) -> Iterator[str]:
        start = time.monotonic()
        pieces = None
        count = 0
        try:
            pieces = iter(self.inner.chat_stream(messages))
            for chunk in pieces:
                count += 1
                yield chunk
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logger.warning("stream failed on %s after %d fragments: %s", self.model, count, e)
            raise self._wrap(e) from e
        finally:
            close = getattr(pieces, "close", None)
            if close is not None:
                close()
        logger.debug("stream on %s: %d fragments in %.2fs", self.model, count, time.monotonic() - start)


class GuardedSpeech:
    """Same contract as GuardedProvider, for the speech backends."""

    def __init__(self, inner: SpeechBackend):
        self.inner = inner
        self.media_type = getattr(inner, "media_type", "application/octet-stream")

    def transcribe(self, audio: bytes, *, filename: str = "audio.webm") -> str:
        try:
            return self.inner.transcribe(audio, filename=filename)
        except Exception as e:
            logger.warning("speech-to-text failed: %s", e)
            raise GuardedProvider._wrap(e) from e

    def synthesize(self, text: str) -> bytes:
        try:
            return self.inner.synthesize(text)
        except Exception as e:
            logger.warning("text-to-speech failed: %s", e)
            raise GuardedProvider._wrap(e) from e
