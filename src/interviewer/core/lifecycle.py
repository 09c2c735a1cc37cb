from __future__ import annotations
import datetime as dt
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple, Union
from urllib.parse import urlparse

from interviewer.logs import log_event
from interviewer.storage.transcript import Transcript, Turn
from . import time_budget
from .errors import InvalidInput, NotFound
from .session import Session, utc_now
from .session_registry import SessionRegistry
from .turn_generator import TurnGenerator

DEFAULT_TIME_LIMIT = dt.timedelta(seconds=300)
# Keeps start_time + limit inside datetime range
MAX_TIME_LIMIT = dt.timedelta(days=7)

TimeLimit = Union[None, int, float, dt.timedelta]


@dataclass(frozen=True)
class StreamEvent:
    """One item of a streamed reply: the new session id, or a text fragment."""
    kind: str  # "session_id" | "fragment"
    data: str


@dataclass(frozen=True)
class SessionStatus:
    session_id: str
    subject_url: str
    active: bool
    expired: bool
    elapsed_seconds: float
    remaining_seconds: float
    time_limit_seconds: float
    turns: int
    started_at: dt.datetime
    last_activity: dt.datetime


def validate_subject(subject_reference: Optional[str]) -> str:
    url = (subject_reference or "").strip()
    if not url:
        raise InvalidInput("A valid 'articleLink' is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInput(f"'{url}' is not an http(s) URL with a host")
    return url


def resolve_time_limit(time_limit: TimeLimit, default: dt.timedelta = DEFAULT_TIME_LIMIT) -> dt.timedelta:
    if time_limit is None:
        return default
    if isinstance(time_limit, dt.timedelta):
        limit = time_limit
    else:
        try:
            limit = dt.timedelta(seconds=float(time_limit))
        except (OverflowError, ValueError) as e:
            raise InvalidInput(f"'timeLimitSeconds' out of range: {time_limit}") from e
    if limit <= dt.timedelta(0):
        return default
    if limit > MAX_TIME_LIMIT:
        raise InvalidInput(f"'timeLimitSeconds' must be at most {int(MAX_TIME_LIMIT.total_seconds())}")
    return limit


def opening_turn(subject_url: str, time_limit: dt.timedelta, note: str) -> Turn:
    seconds = int(time_limit.total_seconds())
    return Turn.user(
        f"articleLink: {subject_url}",
        f"timeLimitSeconds: {seconds}",
        note,
    )


class SessionController:
    """
    Entry point for every session operation.

    Submissions to one session are serialized by session.lock, held from the
    user-turn append until the model turn commits or fails. Streaming methods
    validate eagerly and return a generator that takes the lock on first
    iteration and releases it when exhausted or closed.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        generator: TurnGenerator,
        *,
        default_time_limit: dt.timedelta = DEFAULT_TIME_LIMIT,
        transcript_factory: Callable[[], Transcript] = Transcript,
        clock: Callable[[], dt.datetime] = utc_now,
    ):
        self.registry = registry
        self.generator = generator
        self.default_time_limit = default_time_limit
        self._new_transcript = transcript_factory
        self._clock = clock

    # ----- start -----

    def _new_session(self, subject_reference: Optional[str], time_limit: TimeLimit) -> Tuple[Session, Turn]:
        url = validate_subject(subject_reference)
        limit = resolve_time_limit(time_limit, self.default_time_limit)
        now = self._clock()
        session = Session(
            subject_url=url,
            time_limit=limit,
            transcript=self._new_transcript(),
            start_time=now,
        )
        return session, opening_turn(url, limit, time_budget.time_note(session, now))

    def start_session(self, subject_reference: Optional[str], time_limit: TimeLimit = None) -> Tuple[str, str]:
        """Buffered start. The session is registered only once the opening turn is committed."""
        session, seed = self._new_session(subject_reference, time_limit)
        with session.lock:
            reply = self.generator.generate(session, seed)
            session.touch(self._clock())
        session_id = self.registry.create(session)
        log_event("lifecycle", "session_started", session_id,
                  subject_url=session.subject_url, time_limit_seconds=session.time_limit.total_seconds())
        return session_id, reply

    def start_session_stream(self, subject_reference: Optional[str], time_limit: TimeLimit = None) -> Iterator[StreamEvent]:
        """
        Streaming start. The first event carries the session id and is emitted
        only after the registry entry exists; the opening turn follows.
        """
        session, seed = self._new_session(subject_reference, time_limit)
        return self._open_stream(session, seed)

    def _open_stream(self, session: Session, seed: Turn) -> Iterator[StreamEvent]:
        with session.lock:
            session_id = self.registry.create(session)
            log_event("lifecycle", "session_started", session_id,
                      subject_url=session.subject_url, time_limit_seconds=session.time_limit.total_seconds())
            yield StreamEvent("session_id", session_id)
            turns = self.generator.stream(session, seed)
            try:
                for piece in turns:
                    yield StreamEvent("fragment", piece)
            finally:
                turns.close()
            session.touch(self._clock())

    # ----- submit -----

    def _lookup_active(self, session_id: str) -> Session:
        session = self.registry.get(session_id)
        if not session.active:
            raise NotFound(f"Session '{session_id}' has ended")
        return session

    @staticmethod
    def _validate_text(user_text: Optional[str]) -> str:
        text = (user_text or "").strip()
        if not text:
            raise InvalidInput("User message cannot be empty")
        return text

    def _user_turn(self, session: Session, text: str) -> Tuple[bool, Turn]:
        # Called under session.lock; the session may have closed while we waited
        if not session.active:
            raise NotFound(f"Session '{session.id}' has ended")
        now = self._clock()
        turn = Turn.user(text, time_budget.time_note(session, now))
        return time_budget.is_expired(session, now), turn

    def _after_commit(self, session: Session, expired: bool) -> None:
        session.touch(self._clock())
        if expired:
            # The wrap-up reply has been delivered; no further turns
            session.close()
            log_event("lifecycle", "time_budget_exhausted", session.id, turns=len(session.transcript))

    def submit_message(self, session_id: str, user_text: Optional[str]) -> str:
        session = self._lookup_active(session_id)
        text = self._validate_text(user_text)
        with session.lock:
            expired, user_turn = self._user_turn(session, text)
            reply = self.generator.generate(session, user_turn)
            self._after_commit(session, expired)
        return reply

    def submit_message_stream(self, session_id: str, user_text: Optional[str]) -> Iterator[StreamEvent]:
        session = self._lookup_active(session_id)
        text = self._validate_text(user_text)
        return self._reply_stream(session, text)

    def _reply_stream(self, session: Session, text: str) -> Iterator[StreamEvent]:
        with session.lock:
            expired, user_turn = self._user_turn(session, text)
            turns = self.generator.stream(session, user_turn)
            try:
                for piece in turns:
                    yield StreamEvent("fragment", piece)
            finally:
                turns.close()
            self._after_commit(session, expired)

    # ----- other -----

    def close_session(self, session_id: str) -> None:
        session = self.registry.get(session_id)
        if session.active:
            session.close()
            log_event("lifecycle", "session_closed", session_id, turns=len(session.transcript))

    def describe(self, session_id: str) -> SessionStatus:
        session = self.registry.get(session_id)
        now = self._clock()
        return SessionStatus(
            session_id=session_id,
            subject_url=session.subject_url,
            active=session.active,
            expired=time_budget.is_expired(session, now),
            elapsed_seconds=time_budget.elapsed(session, now).total_seconds(),
            remaining_seconds=time_budget.remaining(session, now).total_seconds(),
            time_limit_seconds=session.time_limit.total_seconds(),
            turns=len(session.transcript),
            started_at=session.start_time,
            last_activity=session.last_activity,
        )
