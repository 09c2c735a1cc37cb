from __future__ import annotations
from typing import Dict, Tuple, Type, Callable
from importlib import import_module

CHAT = "chat"
SPEECH = "speech"


class ProviderRegistry:
    """Adapter classes keyed by (kind, name). Kinds: 'chat' and 'speech'."""

    _classes: Dict[Tuple[str, str], Type] = {}

    @classmethod
    def register(cls, name: str, kind: str = CHAT) -> Callable[[Type], Type]:
        key = (kind.lower(), name.lower())
        def deco(klass: Type) -> Type:
            cls._classes[key] = klass
            return klass
        return deco

    @classmethod
    def get(cls, name: str, kind: str = CHAT) -> Type:
        key = (kind.lower(), name.lower())
        if key not in cls._classes:
            raise KeyError(f"{kind.capitalize()} provider '{name}' not registered")
        return cls._classes[key]

    @classmethod
    def names(cls, kind: str = CHAT) -> list[str]:
        return sorted(name for k, name in cls._classes if k == kind.lower())

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in adapters so their @register decorators run.
        Call once at bootstrap before get().
        """
        import_module("interviewer.providers.openai_adapter")
        import_module("interviewer.providers.speech")
        import_module("interviewer.providers.echo")
