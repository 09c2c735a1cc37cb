from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generator, List, Optional

from interviewer.logs import log_event
from interviewer.storage.transcript import Turn
from .directives import Directives
from .errors import BackendUnavailable, EmptyResult, InterviewerError
from .ports import Provider
from .session import Session

logger = logging.getLogger("interviewer.turns")


class TurnState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMMITTED = "committed"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class TurnOutcome:
    """Terminal record of one exchange. `text` is what reached the caller."""
    session_id: Optional[str]
    state: TurnState
    text: str
    fragments: int = 0
    error: Optional[str] = None


class TurnGenerator:
    """
    Runs one user -> model exchange for a session.

    The caller must hold session.lock for the whole exchange (including the
    full iteration of a stream). The user turn is appended first and stays in
    the transcript whatever happens next; the model turn is appended only once
    it is complete.
    """

    def __init__(
        self,
        model: Provider,
        directives: Optional[Directives] = None,
        observer: Optional[Callable[[TurnOutcome], None]] = None,
    ):
        self.model = model
        self.directives = directives or Directives()
        self.observer = observer

    def _outgoing_messages(self, session: Session) -> List[Dict[str, Any]]:
        # Backend is stateless: send every turn, in order, every time
        return [self.directives.system_message(session.time_limit)] + session.transcript.messages

    def _enter(self, session: Session, state: TurnState) -> None:
        log_event("turn", state.value, session.id, turns=len(session.transcript))

    def _finish(
        self,
        session: Session,
        state: TurnState,
        text: str,
        fragments: int = 0,
        error: Optional[BaseException] = None,
    ) -> TurnOutcome:
        outcome = TurnOutcome(
            session_id=session.id,
            state=state,
            text=text,
            fragments=fragments,
            error=str(error) if error is not None else None,
        )
        log_event("turn", state.value, session.id, fragments=fragments, content=text, error=outcome.error)
        if state is not TurnState.COMMITTED:
            logger.warning("turn %s for session %s: %s", state.value, session.id, outcome.error or "no detail")
        if self.observer is not None:
            self.observer(outcome)
        return outcome

    def _commit(self, session: Session, text: str, fragments: int = 0) -> Turn:
        turn = Turn.model(text)
        session.transcript.append(turn)
        self._finish(session, TurnState.COMMITTED, text, fragments)
        return turn

    def generate(self, session: Session, user_turn: Turn) -> str:
        """Buffered mode: one blocking backend call, one committed model turn."""
        session.transcript.append(user_turn)
        messages = self._outgoing_messages(session)
        self._enter(session, TurnState.REQUESTING)
        try:
            reply = self.model.chat(messages)
        except InterviewerError as e:
            self._finish(session, TurnState.FAILED, "", error=e)
            raise
        except Exception as e:
            self._finish(session, TurnState.FAILED, "", error=e)
            raise BackendUnavailable(f"Completion backend failed: {e}") from e

        content = reply.get("content") if isinstance(reply, dict) else reply
        if not isinstance(content, str) or not content.strip():
            err = EmptyResult("Completion backend returned no text")
            self._finish(session, TurnState.FAILED, "", error=err)
            raise err

        self._commit(session, content)
        return content

    def stream(self, session: Session, user_turn: Turn) -> Generator[str, None, Turn]:
        """
        Streaming mode. Yields fragments in emission order as they arrive and
        returns the committed model Turn.

        - backend error: raises BackendUnavailable, commits nothing
        - close() by the consumer: stops pulling, releases the backend stream,
          commits nothing (fragments already yielded stay delivered)
        """
        session.transcript.append(user_turn)
        messages = self._outgoing_messages(session)
        self._enter(session, TurnState.REQUESTING)

        partial: List[str] = []
        pieces = None
        try:
            pieces = iter(self.model.chat_stream(messages))
            for piece in pieces:
                if not piece:
                    continue
                if not partial:
                    self._enter(session, TurnState.STREAMING)
                partial.append(piece)
                yield piece
        except GeneratorExit:
            self._finish(session, TurnState.ABORTED, "".join(partial), len(partial), error=None)
            raise
        except InterviewerError as e:
            self._finish(session, TurnState.FAILED, "".join(partial), len(partial), error=e)
            raise
        except Exception as e:
            self._finish(session, TurnState.FAILED, "".join(partial), len(partial), error=e)
            raise BackendUnavailable(f"Completion stream failed: {e}") from e
        finally:
            close = getattr(pieces, "close", None)
            if close is not None:
                close()

        text = "".join(partial)
        if not text.strip():
            err = EmptyResult("Completion stream ended without text")
            self._finish(session, TurnState.FAILED, text, len(partial), error=err)
            raise err
        return self._commit(session, text, len(partial))
