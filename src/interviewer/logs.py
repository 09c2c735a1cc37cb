from __future__ import annotations
import json
import logging
from typing import Any, Optional

logger = logging.getLogger("interviewer.events")

# Conversation content never goes to the log verbatim
_REDACTED_KEYS = {"text", "content", "fragment", "user_text", "message", "reply"}


def _sanitize_value(key: str, value: Any) -> Any:
    if key.lower() in _REDACTED_KEYS:
        text = str(value or "")
        return {"redacted": True, "length": len(text)}
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(k): _sanitize_value(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_sanitize_value(key, item) for item in value]
    return str(value)


def log_event(component: str, event: str, session_id: Optional[str], **kwargs: Any) -> None:
    payload = {
        "component": component,
        "event": event,
        "session_id": session_id or "",
    }
    payload.update({str(k): _sanitize_value(str(k), v) for k, v in kwargs.items()})
    logger.info(json.dumps(payload, ensure_ascii=False, default=str))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
