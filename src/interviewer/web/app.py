from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterator, Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from interviewer.bootstrap import build_app
from interviewer.core.errors import (
    BackendUnavailable,
    EmptyResult,
    InterviewerError,
    InvalidInput,
    NotFound,
)
from interviewer.core.lifecycle import SessionController, StreamEvent
from interviewer.core.ports import SpeechBackend

logger = logging.getLogger("interviewer.web")

_STATUS = {
    InvalidInput: 400,
    NotFound: 404,
    BackendUnavailable: 502,
    EmptyResult: 502,
}

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class StartRequest(BaseModel):
    articleLink: Optional[str] = None
    timeLimitSeconds: Optional[int] = None


class ChatRequest(BaseModel):
    userMessage: Optional[str] = None


class SpeakRequest(BaseModel):
    text: Optional[str] = None


def _status_for(exc: InterviewerError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS:
            return _STATUS[cls]
    return 500


def _error_body(exc: InterviewerError) -> Dict[str, str]:
    return {"error": exc.kind, "detail": str(exc)}


def sse(data: str, event: Optional[str] = None) -> str:
    # Multi-line payloads become multiple data: lines of one event
    lines = [f"event: {event}"] if event else []
    lines += [f"data: {line}" for line in data.split("\n")]
    return "\n".join(lines) + "\n\n"


async def relay(events: Iterator[StreamEvent]) -> AsyncIterator[str]:
    """
    Pull events from the synchronous controller stream on a worker thread and
    hand each one to the response as its own chunk. When the client goes away
    the response task is cancelled and the finally block closes the stream,
    which releases the session lock and the backend stream.
    """
    try:
        while True:
            event = await run_in_threadpool(next, events, None)
            if event is None:
                break
            if event.kind == "session_id":
                yield sse(event.data, event="session_id")
            else:
                yield sse(event.data)
        yield sse("", event="done")
    except InterviewerError as e:
        # Fragments already sent stay sent; the client learns the turn failed
        yield sse(json.dumps(_error_body(e)), event="error")
    finally:
        events.close()


def create_app(
    config_path: Optional[Path] = None,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    services: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    if services is None:
        if config_path is None:
            raise ValueError("create_app needs either config_path or services")
        services = build_app(Path(config_path), provider=provider, model=model)

    cfg = services["cfg"]
    controller: SessionController = services["controller"]
    speech: SpeechBackend = services["speech"]
    default_stream = bool((cfg.get("runtime") or {}).get("stream", False))

    app = FastAPI(title="interviewer")
    app.state.cfg = cfg
    app.state.controller = controller
    app.state.registry = services["registry"]
    app.state.speech = speech

    @app.exception_handler(InterviewerError)
    async def _interviewer_error(_request: Request, exc: InterviewerError):
        status = _status_for(exc)
        if status >= 500:
            logger.warning("%s: %s", exc.kind, exc)
        return JSONResponse(_error_body(exc), status_code=status)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError):
        detail = "; ".join(str(e.get("msg", "")) for e in exc.errors()) or "Invalid request body"
        return JSONResponse({"error": InvalidInput.kind, "detail": detail}, status_code=400)

    def _use_stream(stream: Optional[bool]) -> bool:
        return default_stream if stream is None else stream

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    @app.post("/start")
    def start(req: StartRequest, stream: Optional[bool] = None):
        if _use_stream(stream):
            events = controller.start_session_stream(req.articleLink, req.timeLimitSeconds)
            return StreamingResponse(relay(events), media_type="text/event-stream", headers=_SSE_HEADERS)
        session_id, message = controller.start_session(req.articleLink, req.timeLimitSeconds)
        return JSONResponse({"sessionId": session_id, "message": message})

    @app.post("/chat/{session_id}")
    def chat(session_id: str, req: ChatRequest, stream: Optional[bool] = None):
        if _use_stream(stream):
            events = controller.submit_message_stream(session_id, req.userMessage)
            return StreamingResponse(
                relay(events),
                media_type="text/event-stream",
                headers={**_SSE_HEADERS, "X-Session-Id": session_id},
            )
        message = controller.submit_message(session_id, req.userMessage)
        return JSONResponse({"sessionId": session_id, "message": message})

    @app.get("/chat/{session_id}")
    def status(session_id: str):
        st = controller.describe(session_id)
        return JSONResponse({
            "sessionId": st.session_id,
            "articleLink": st.subject_url,
            "active": st.active,
            "expired": st.expired,
            "elapsedSeconds": round(st.elapsed_seconds, 3),
            "remainingSeconds": round(st.remaining_seconds, 3),
            "timeLimitSeconds": st.time_limit_seconds,
            "turns": st.turns,
            "startedAt": st.started_at.isoformat(),
            "lastActivity": st.last_activity.isoformat(),
        })

    @app.delete("/chat/{session_id}", status_code=204)
    def end(session_id: str):
        controller.close_session(session_id)
        return Response(status_code=204)

    @app.post("/stt")
    def speech_to_text(audio: UploadFile = File(...)):
        data = audio.file.read()
        if not data:
            raise InvalidInput("Audio upload is empty")
        text = speech.transcribe(data, filename=audio.filename or "audio.webm")
        if not text:
            raise EmptyResult("No transcript found")
        return JSONResponse({"text": text})

    @app.post("/tts")
    def text_to_speech(req: SpeakRequest):
        text = (req.text or "").strip()
        if not text:
            raise InvalidInput("Text cannot be empty")
        audio = speech.synthesize(text)
        if not audio:
            raise EmptyResult("Speech backend returned no audio")
        return Response(content=audio, media_type=speech.media_type)

    return app


def run(
    *,
    config: Path,
    host: str = "127.0.0.1",
    port: int = 8080,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    log_level: str = "info",
) -> None:
    import uvicorn

    app = create_app(config, provider=provider, model=model)
    uvicorn.run(app, host=host, port=port, log_level=log_level)
