from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional

from openai import OpenAI

from interviewer.providers.registry import ProviderRegistry
from interviewer.core.errors import ProviderClientError, ProviderTransientError


def classify_openai_exception(exc: Exception) -> Exception:
    """
    Convert OpenAI/client exceptions into neutral provider errors.
    Avoid hard dependency on specific SDK exception classes by inspecting attributes/message.
    """
    status = getattr(exc, "status_code", None) or getattr(exc, "http_status", None)
    msg = str(exc)

    if status is not None:
        s = int(status)
        if s == 429 or s >= 500:
            return ProviderTransientError(msg)
        return ProviderClientError(msg)

    lower = msg.lower()
    if any(k in lower for k in ("rate limit", "temporarily unavailable", "timeout", "timed out", "connection")):
        return ProviderTransientError(msg)
    if any(k in lower for k in ("invalid_request_error", "unsupported", "parameter", "authentication")):
        return ProviderClientError(msg)
    return ProviderTransientError(msg)


def build_client(api_key: str, *, base_url: Optional[str] = None, organization: Optional[str] = None) -> OpenAI:
    client_kwargs: Dict[str, Any] = {"api_key": api_key}
    if base_url:
        client_kwargs["base_url"] = base_url
    if organization:
        client_kwargs["organization"] = organization
    return OpenAI(**client_kwargs)


@ProviderRegistry.register("openai")
class OpenAIAdapter:
    """
    Chat completions adapter:
    - 'params' come straight from providers.openai.params in the config
    - maps SDK errors to ProviderClientError / ProviderTransientError
    - closing the stream iterator closes the HTTP response
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        self.model = model
        self.client = build_client(api_key, base_url=base_url, organization=organization)
        self.params = params or {}
        self.timeout = timeout

    @classmethod
    def create(cls, *, model_name: str, provider_cfg: Dict[str, Any], secrets) -> "OpenAIAdapter":
        api_key = secrets.secret("openai", "api_key")
        if not api_key:
            raise ProviderClientError("No API key for 'openai'")
        provider_cfg = provider_cfg or {}
        return cls(
            model=model_name,
            api_key=api_key,
            params=provider_cfg.get("params") or {},
            timeout=provider_cfg.get("timeout"),
            base_url=provider_cfg.get("base_url"),
            organization=provider_cfg.get("organization"),
        )

    def _build_args(self, messages: List[Dict[str, Any]], *, stream: bool) -> Dict[str, Any]:
        args: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": stream,
            **self.params,
        }
        if self.timeout is not None:
            args["timeout"] = self.timeout
        return args

    def chat(self, messages: List[Dict[str, Any]]) -> Dict[str, str]:
        try:
            resp = self.client.chat.completions.create(**self._build_args(messages, stream=False))
            msg = resp.choices[0].message
            return {"content": msg.content or ""}
        except Exception as e:
            raise classify_openai_exception(e) from e

    def chat_stream(self, messages: List[Dict[str, Any]]) -> Iterator[str]:
        try:
            stream = self.client.chat.completions.create(**self._build_args(messages, stream=True))
        except Exception as e:
            raise classify_openai_exception(e) from e

        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                piece = chunk.choices[0].delta.content
                if piece:
                    yield piece
        except Exception as e:
            raise classify_openai_exception(e) from e
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()
