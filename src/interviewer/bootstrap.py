from __future__ import annotations
import datetime as dt
import functools
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .config_loader import load_config, ConfigError, PROVIDERS
from .providers.registry import ProviderRegistry, CHAT, SPEECH
from .storage.transcript import Transcript
from .resilience.guarded_provider import GuardedProvider, GuardedSpeech
from .core.directives import Directives
from .core.lifecycle import SessionController
from .core.session_registry import SessionRegistry
from .core.turn_generator import TurnGenerator
from .secrets.sources import SecretsResolver


def build_app(
    config_path: Path,
    repo_root: Optional[Path] = None,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Composition root: load YAML, build the completion and speech providers
    (each wrapped in a guard), the empty session registry and the controller.
    Called once per process.
    """
    load_dotenv()
    config_path = Path(config_path)
    cfg = load_config(config_path)
    if provider:
        if provider.lower() not in PROVIDERS:
            raise ConfigError(f"Unknown model.provider '{provider}' (expected 'openai' or 'echo').")
        # One switch for both backends, so an offline run needs no API key
        cfg["model"]["provider"] = provider.lower()
        cfg["speech"]["provider"] = provider.lower()
    if model:
        cfg["model"]["name"] = model
    config_dir = config_path.resolve().parent
    repo_root = repo_root or Path(__file__).resolve().parents[2]

    # ----- Providers -----
    ProviderRegistry.ensure_imports()  # make sure built-ins register

    provider_name = cfg["model"]["provider"]
    model_name = cfg["model"]["name"]
    provider_cfg = (cfg.get("providers") or {}).get(provider_name) or {}

    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(method=secrets_cfg.get("method", "env"), mapping=secrets_cfg.get("mapping") or {})

    Adapter = ProviderRegistry.get(provider_name, kind=CHAT)
    inner = Adapter.create(model_name=model_name, provider_cfg=provider_cfg, secrets=resolver)
    guarded = GuardedProvider(inner)

    speech_cfg = cfg["speech"]
    SpeechAdapter = ProviderRegistry.get(speech_cfg["provider"], kind=SPEECH)
    speech = GuardedSpeech(SpeechAdapter.create(speech_cfg=speech_cfg, secrets=resolver))

    # ----- Transcript archive -----
    tdir_path = Path(cfg["storage"]["transcripts_dir"])
    transcripts_dir = (repo_root / tdir_path).resolve() if not tdir_path.is_absolute() else tdir_path
    archive_dir = transcripts_dir if cfg["storage"]["backend"] == "file" else None
    transcript_factory = functools.partial(
        Transcript,
        root_dir=archive_dir,
        header_meta={"config_path": str(config_path), "provider": provider_name, "model": model_name},
    )

    # ----- Sessions -----
    registry = SessionRegistry()
    generator = TurnGenerator(guarded, Directives())
    controller = SessionController(
        registry,
        generator,
        default_time_limit=dt.timedelta(seconds=cfg["sessions"]["default_time_limit_seconds"]),
        transcript_factory=transcript_factory,
    )

    return {
        "cfg": cfg,
        "paths": {"config_dir": config_dir, "repo_root": repo_root, "transcripts_dir": transcripts_dir},
        "provider": guarded,
        "speech": speech,
        "registry": registry,
        "controller": controller,
    }
