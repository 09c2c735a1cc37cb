"""
Time budget arithmetic for a session. Pure functions; the caller supplies `now`.

Nothing here enforces anything: the lifecycle controller reads these values
lazily on each access, and the turn generator forwards the remaining time to
the model so it can pace the conversation.
"""
from __future__ import annotations
import datetime as dt
from enum import Enum

from .session import Session

_ZERO = dt.timedelta(0)


class PacingTier(str, Enum):
    SHORT = "short"
    STANDARD = "standard"
    EXTENDED = "extended"


SHORT_LIMIT = dt.timedelta(minutes=10)
STANDARD_LIMIT = dt.timedelta(minutes=30)


def elapsed(session: Session, now: dt.datetime) -> dt.timedelta:
    return max(_ZERO, now - session.start_time)


def is_expired(session: Session, now: dt.datetime) -> bool:
    # The exact boundary counts as expired
    return now - session.start_time >= session.time_limit


def remaining(session: Session, now: dt.datetime) -> dt.timedelta:
    return max(_ZERO, session.time_limit - (now - session.start_time))


def pacing_tier(time_limit: dt.timedelta) -> PacingTier:
    if time_limit <= SHORT_LIMIT:
        return PacingTier.SHORT
    if time_limit <= STANDARD_LIMIT:
        return PacingTier.STANDARD
    return PacingTier.EXTENDED


def time_note(session: Session, now: dt.datetime) -> str:
    return f"timeRemaining: {int(remaining(session, now).total_seconds())}s"
