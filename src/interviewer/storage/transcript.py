from __future__ import annotations
import json
import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Literal, Tuple

Role = Literal['user', 'model']

# Provider-facing role names (OpenAI-style)
_PROVIDER_ROLES: Dict[str, str] = {'user': 'user', 'model': 'assistant'}


@dataclass(frozen=True)
class Turn:
    """One role-tagged unit of conversation: an ordered tuple of text segments."""

    role: Role
    content: Tuple[str, ...]

    def __post_init__(self) -> None:
        if self.role not in _PROVIDER_ROLES:
            raise ValueError(f"Unknown turn role '{self.role}'")
        object.__setattr__(self, 'content', tuple(str(s) for s in self.content))

    @classmethod
    def user(cls, *segments: str) -> "Turn":
        return cls('user', segments)

    @classmethod
    def model(cls, *segments: str) -> "Turn":
        return cls('model', segments)

    @property
    def text(self) -> str:
        return '\n\n'.join(self.content)

    def as_message(self) -> Dict[str, str]:
        return {'role': _PROVIDER_ROLES[self.role], 'content': self.text}


class Transcript:
    """
    Ordered, append-only log of turns for one session.
    - .messages is the provider-ready view, in conversation order
    - If root_dir is provided, turns are mirrored to <root_dir>/<session_id>.jsonl
      once the transcript is bound to a session id (write-only archive, never read back)
    - If root_dir is None: in-memory only
    """

    def __init__(
        self,
        root_dir: Optional[Path] = None,
        header_meta: Optional[Dict] = None,
    ):
        self._root_dir = Path(root_dir) if root_dir else None
        self._header_meta = header_meta or {}
        self._session_id: Optional[str] = None
        self._path: Optional[Path] = None
        self._turns: List[Turn] = []
        # Records appended before bind(); flushed to the archive on bind
        self._pending: List[Dict] = [{
            'type': 'header',
            'ts': dt.datetime.now(dt.timezone.utc).isoformat(),
            'meta': self._header_meta,
        }]

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def turns(self) -> List[Turn]:
        # Shallow copy; turns themselves are immutable
        return list(self._turns)

    @property
    def messages(self) -> List[Dict[str, str]]:
        return [t.as_message() for t in self._turns]

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.turns)

    def last(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    def append(self, turn: Turn) -> None:
        if not isinstance(turn, Turn):
            raise TypeError(f"Transcript only accepts Turn, got {type(turn).__name__}")
        rec = {
            'type': 'turn',
            'ts': dt.datetime.now(dt.timezone.utc).isoformat(),
            'role': turn.role,
            'content': list(turn.content),
        }
        if self._path is not None:
            self._write([rec])
        else:
            self._pending.append(rec)
        self._turns.append(turn)

    def bind(self, session_id: str) -> None:
        if self._session_id is not None and self._session_id != session_id:
            raise RuntimeError(f"Transcript already bound to session '{self._session_id}'")
        self._session_id = session_id
        if self._root_dir and self._path is None:
            self._root_dir.mkdir(parents=True, exist_ok=True)
            self._path = self._root_dir / f'{session_id}.jsonl'
            self._pending[0]['session_id'] = session_id
            self._write(self._pending)
        self._pending = []

    # Internal helpers

    def _write(self, records: List[Dict]) -> None:
        assert self._path is not None
        with self._path.open('a', encoding='utf-8') as f:
            for rec in records:
                f.write(json.dumps(rec, ensure_ascii=False) + '\n')
