# tests/unit/test_web_app.py

from __future__ import annotations
import asyncio
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient

# Ensure "src" is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from interviewer.bootstrap import build_app
from interviewer.providers.echo import _SCRIPT, _DEFAULT_TRANSCRIPT
from interviewer.web.app import create_app, relay, sse

ARTICLE = "https://example.com/designing-a-url-shortener"
REPLY = " ".join(_SCRIPT)


@pytest.fixture
def client(tmp_path: Path, echo_config: Path):
    services = build_app(echo_config, repo_root=tmp_path)
    return TestClient(create_app(services=services))


def _events(body: str):
    """Parse an SSE body into (event, data) pairs."""
    out = []
    for block in body.split("\n\n"):
        if not block:
            continue
        event, data = None, []
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data.append(line[len("data: "):])
        out.append((event, "\n".join(data)))
    return out


def _start(client) -> str:
    r = client.post("/start?stream=false", json={"articleLink": ARTICLE, "timeLimitSeconds": 600})
    assert r.status_code == 200
    return r.json()["sessionId"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.text == "OK"


def test_buffered_start_and_chat(client):
    r = client.post("/start?stream=false", json={"articleLink": ARTICLE})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == REPLY

    r = client.post(f"/chat/{body['sessionId']}?stream=false", json={"userMessage": "A key-value store."})
    assert r.status_code == 200
    assert r.json() == {"sessionId": body["sessionId"], "message": REPLY}


def test_streaming_start_sends_id_first_then_done(client):
    r = client.post("/start", json={"articleLink": ARTICLE})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")

    events = _events(r.text)
    assert events[0][0] == "session_id"
    assert events[-1][0] == "done"
    fragments = [data for event, data in events if event is None]
    assert "".join(fragments) == REPLY

    # The id is usable right away
    status = client.get(f"/chat/{events[0][1]}").json()
    assert status["turns"] == 2
    assert status["active"] is True


def test_streaming_chat(client):
    sid = _start(client)
    r = client.post(f"/chat/{sid}", json={"userMessage": "Hash the URL."})
    assert r.status_code == 200
    assert r.headers["x-session-id"] == sid
    events = _events(r.text)
    assert events[-1] == ("done", "")
    assert "".join(d for e, d in events if e is None) == REPLY


def test_status_endpoint(client):
    sid = _start(client)
    body = client.get(f"/chat/{sid}").json()
    assert body["sessionId"] == sid
    assert body["articleLink"] == ARTICLE
    assert body["timeLimitSeconds"] == 600
    assert body["expired"] is False
    assert 0 <= body["remainingSeconds"] <= 600


def test_delete_closes_session(client):
    sid = _start(client)
    assert client.delete(f"/chat/{sid}").status_code == 204
    # idempotent
    assert client.delete(f"/chat/{sid}").status_code == 204
    assert client.get(f"/chat/{sid}").json()["active"] is False

    r = client.post(f"/chat/{sid}?stream=false", json={"userMessage": "still there?"})
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


@pytest.mark.parametrize("stream", ["true", "false"])
def test_unknown_session_is_404(client, stream):
    r = client.post(f"/chat/nope?stream={stream}", json={"userMessage": "hi"})
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


@pytest.mark.parametrize("payload", [
    {},
    {"articleLink": ""},
    {"articleLink": "not a url"},
    {"articleLink": "ftp://example.com/x"},
])
def test_bad_start_is_400(client, payload):
    r = client.post("/start", json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"


def test_empty_message_is_400_and_leaves_transcript(client):
    sid = _start(client)
    r = client.post(f"/chat/{sid}", json={"userMessage": "   "})
    assert r.status_code == 400
    assert client.get(f"/chat/{sid}").json()["turns"] == 2


def test_malformed_body_is_400(client):
    sid = _start(client)
    r = client.post(f"/chat/{sid}", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"


def test_stt(client):
    r = client.post("/stt", files={"audio": ("answer.webm", b"\x1a\x45\xdf\xa3", "audio/webm")})
    assert r.status_code == 200
    assert r.json() == {"text": _DEFAULT_TRANSCRIPT}


def test_stt_empty_upload_is_400(client):
    r = client.post("/stt", files={"audio": ("answer.webm", b"", "audio/webm")})
    assert r.status_code == 400


def test_tts(client):
    r = client.post("/tts", json={"text": "Tell me about caching."})
    assert r.status_code == 200
    assert r.content == b"Tell me about caching."
    assert r.headers["content-type"].startswith("application/octet-stream")


def test_tts_empty_text_is_400(client):
    assert client.post("/tts", json={"text": " "}).status_code == 400


def test_sse_splits_multiline_data():
    assert sse("a\nb") == "data: a\ndata: b\n\n"
    assert sse("", event="done") == "event: done\ndata: \n\n"


@pytest.mark.parametrize("stream", ["true", "false"])
def test_out_of_range_time_limit_is_400(client, stream):
    r = client.post(f"/start?stream={stream}", json={"articleLink": ARTICLE, "timeLimitSeconds": 10**14})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"


def test_dropped_client_mid_stream_releases_session(tmp_path: Path, echo_config: Path):
    services = build_app(echo_config, repo_root=tmp_path)
    closed = []

    def tracked(messages):
        try:
            for word in ["one ", "two ", "three"]:
                yield word
        finally:
            closed.append(True)

    services["provider"].inner.chat_stream = tracked
    events = services["controller"].start_session_stream(ARTICLE, 300)

    async def read_two_then_disconnect():
        body = relay(events)
        first = await body.__anext__()
        second = await body.__anext__()
        # Starlette closes the body iterator when the client goes away
        await body.aclose()
        return first, second

    first, second = asyncio.run(read_two_then_disconnect())
    assert first.startswith("event: session_id\n")
    assert second == "data: one \n\n"

    session_id = _events(first)[0][1]
    session = services["registry"].get(session_id)
    assert not session.lock.locked()
    assert closed == [True]
    # Opening user turn only; the partial reply is not committed
    assert [t.role for t in session.transcript.turns] == ["user"]
