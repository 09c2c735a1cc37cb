from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import os

import keyring
from keyring.errors import KeyringError


class SecretSource(Protocol):
    def get(self, service: str) -> Optional[str]: ...


class EnvSource:
    """Looks up `service` as an env var name, then <SERVICE>_API_KEY, then <SERVICE>."""

    def get(self, service: str) -> Optional[str]:
        for key in (service, f"{service.upper()}_API_KEY", service.upper()):
            val = os.getenv(key)
            if val and val.strip():
                return val.strip()
        return None


class KeyringSource:
    """System keyring (macOS Keychain, Secret Service, Windows Credential Locker)."""

    ACCOUNTS = ("api_key", "API_KEY", "default")

    def get(self, service: str) -> Optional[str]:
        try:
            cred = keyring.get_credential(service, None)
            if cred is not None and cred.password:
                return cred.password.strip()
            for account in self.ACCOUNTS:
                val = keyring.get_password(service, account)
                if val:
                    return val.strip()
        except KeyringError:
            # No usable backend on this machine
            return None
        return None


_SOURCES = {"env": EnvSource, "keyring": KeyringSource}


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    methods = [method] if isinstance(method, str) else list(method)
    sources: List[SecretSource] = []
    seen = set()
    for m in methods:
        key = str(m).strip().lower()
        if key not in _SOURCES:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_SOURCES)}")
        if key not in seen:
            seen.add(key)
            sources.append(_SOURCES[key]())
    return sources


class SecretsResolver:
    """
    Resolve secrets using one or more methods in order.
    mapping: per-provider map of names -> service/env-key
      e.g. { "openai": { "api_key": "OPENAI_API_KEY" } }
    """
    def __init__(self, method: Union[str, Iterable[str]] = "env", mapping: Optional[Dict[str, Dict[str, str]]] = None):
        self._sources = build_secret_sources(method)
        self._map = mapping or {}

    def secret(self, provider: str, name: str = "api_key") -> Optional[str]:
        service = self._map.get(provider, {}).get(name, provider)
        for src in self._sources:
            val = src.get(service)
            if val:
                return val
        return None
