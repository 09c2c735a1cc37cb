# src/interviewer/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml

PROVIDERS = ("openai", "echo")
BACKENDS = ("file", "none")


class ConfigError(ValueError):
    pass


def _lookup(d: Dict[str, Any], dotted: str) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    return cur


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    val = _lookup(d, dotted)
    if typ is bool and not isinstance(val, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(val, str):
        raise ConfigError(f"'{dotted}' must be a string")
    return val


def _choice(value: Any, dotted: str, allowed: tuple) -> str:
    norm = str(value).lower()
    if norm not in allowed:
        expected = " or ".join(f"'{a}'" for a in allowed)
        raise ConfigError(f"Unknown {dotted} '{value}' (expected {expected}).")
    return norm


def load_config(path: Path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Required keys (no defaults here)
    _require(raw, "model.provider", str)
    _require(raw, "model.name", str)
    _require(raw, "storage.backend", str)          # 'file' or 'none'
    _require(raw, "storage.transcripts_dir", str)  # path string
    _require(raw, "runtime.stream", bool)

    raw["model"]["provider"] = _choice(raw["model"]["provider"], "model.provider", PROVIDERS)
    raw["storage"]["backend"] = _choice(raw["storage"]["backend"], "storage.backend", BACKENDS)

    # Optional sections
    speech = raw.get("speech") or {}
    if not isinstance(speech, dict):
        raise ConfigError("'speech' must be a mapping")
    speech["provider"] = _choice(speech.get("provider", raw["model"]["provider"]), "speech.provider", PROVIDERS)
    raw["speech"] = speech

    sessions = raw.get("sessions") or {}
    limit = sessions.get("default_time_limit_seconds", 300)
    if isinstance(limit, bool) or not isinstance(limit, (int, float)) or not 0 < limit <= 7 * 24 * 3600:
        raise ConfigError("'sessions.default_time_limit_seconds' must be a positive number of at most 7 days")
    sessions["default_time_limit_seconds"] = limit
    raw["sessions"] = sessions

    # Leave paths as provided; resolve them later in bootstrap
    return raw
