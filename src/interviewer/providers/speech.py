from __future__ import annotations
from typing import Any, Dict, Optional

from interviewer.providers.openai_adapter import build_client, classify_openai_exception
from interviewer.providers.registry import ProviderRegistry, SPEECH
from interviewer.core.errors import ProviderClientError


@ProviderRegistry.register("openai", kind=SPEECH)
class OpenAISpeechAdapter:
    """Speech-to-text via the transcriptions endpoint, text-to-speech via the speech endpoint."""

    media_type = "audio/mpeg"

    def __init__(
        self,
        api_key: str,
        *,
        stt_model: str = "whisper-1",
        tts_model: str = "tts-1",
        voice: str = "alloy",
        language: str = "en",
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
    ):
        self.client = build_client(api_key, base_url=base_url)
        self.stt_model = stt_model
        self.tts_model = tts_model
        self.voice = voice
        self.language = language
        self.timeout = timeout

    @classmethod
    def create(cls, *, speech_cfg: Dict[str, Any], secrets) -> "OpenAISpeechAdapter":
        api_key = secrets.secret("openai", "api_key")
        if not api_key:
            raise ProviderClientError("No API key for 'openai'")
        kwargs = {k: speech_cfg[k] for k in ("stt_model", "tts_model", "voice", "language", "timeout", "base_url")
                  if speech_cfg.get(k) is not None}
        return cls(api_key=api_key, **kwargs)

    def _extra(self) -> Dict[str, Any]:
        return {"timeout": self.timeout} if self.timeout is not None else {}

    def transcribe(self, audio: bytes, *, filename: str = "audio.webm") -> str:
        try:
            resp = self.client.audio.transcriptions.create(
                model=self.stt_model,
                file=(filename, audio),
                language=self.language,
                **self._extra(),
            )
        except Exception as e:
            raise classify_openai_exception(e) from e
        return (getattr(resp, "text", None) or "").strip()

    def synthesize(self, text: str) -> bytes:
        try:
            resp = self.client.audio.speech.create(
                model=self.tts_model,
                voice=self.voice,
                input=text,
                response_format="mp3",
                **self._extra(),
            )
        except Exception as e:
            raise classify_openai_exception(e) from e
        return resp.content
