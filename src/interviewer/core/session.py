from __future__ import annotations
import datetime as dt
import threading
from dataclasses import dataclass, field
from typing import Optional

from interviewer.storage.transcript import Transcript


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(eq=False)
class Session:
    """
    One timed interview. Identity is `id`, assigned by the SessionRegistry.
    `transcript` and `last_activity` are only mutated while holding `lock`.
    `active` is one-way: close() may clear it without the lock, and every
    submission re-checks it after acquiring the lock.
    """
    subject_url: str
    time_limit: dt.timedelta
    transcript: Transcript = field(default_factory=Transcript)
    start_time: dt.datetime = field(default_factory=utc_now)
    id: Optional[str] = None
    active: bool = True
    last_activity: Optional[dt.datetime] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        if self.last_activity is None:
            self.last_activity = self.start_time

    def bind(self, session_id: str) -> None:
        self.id = session_id
        self.transcript.bind(session_id)

    def touch(self, now: Optional[dt.datetime] = None) -> None:
        self.last_activity = now or utc_now()

    def close(self) -> None:
        # One-way: a closed session never becomes active again
        self.active = False
