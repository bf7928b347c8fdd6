"""Tests for the estimate HTTP client."""

import httpx
import orjson
import pytest

from estimator.client.analysis import AnalysisClient, build_request
from estimator.client.errors import (
    EmptyInputError,
    InvalidResponseError,
    NetworkError,
    RemoteError,
    StreamInterruptedError,
    UnauthorizedError,
)
from estimator.models.events import DeltaEvent, ResultEvent, StatusEvent
from estimator.utils.sse import format_sse

RESULT = {
    "totals": {"calories": 420, "protein": 30, "carbs": 35, "fat": 18},
    "source": "text",
    "notes": "estimated",
}


def make_client(handler):
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport, base_url="https://project.example.co")
    return AnalysisClient(
        "https://project.example.co", access_token="token", anon_key="anon", client=http
    )


def sse_body(*events):
    return "".join(format_sse(name, data) for name, data in events).encode()


def test_build_request_trims_and_validates():
    request = build_request("  toast  ", None, None, "text")
    assert request.text == "toast"

    with pytest.raises(EmptyInputError):
        build_request("   ", [], None, "text")


def test_user_messages():
    assert EmptyInputError().user_message == "Please enter a food description or attach a photo."
    assert UnauthorizedError().user_message == "Your session expired. Please log in again."
    assert StreamInterruptedError("reset").user_message == "Connection interrupted, please retry."
    assert NetworkError("offline").user_message.startswith("Network error: offline.")
    assert RemoteError("No food found").user_message == "No food found"


@pytest.mark.asyncio
async def test_analyze_stream_decodes_events():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["body"] = orjson.loads(request.content)
        body = sse_body(
            ("status", {"stage": "requesting_model"}),
            ("delta", {"delta": '{"totals":'}),
            ("status", {"stage": "finalizing"}),
            ("result", RESULT),
        )
        return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

    client = make_client(handler)
    events = [e async for e in client.analyze_stream(build_request("pasta", None, None, "text"))]
    await client.aclose()

    assert [type(e) for e in events] == [StatusEvent, DeltaEvent, StatusEvent, ResultEvent]
    assert events[-1].estimate.calories == 420
    assert seen["headers"]["Accept"] == "text/event-stream"
    assert seen["headers"]["Authorization"] == "Bearer token"
    assert seen["headers"]["apikey"] == "anon"
    assert seen["body"] == {"text": "pasta", "inputType": "text", "stream": True}


@pytest.mark.asyncio
async def test_analyze_stream_unauthorized():
    client = make_client(lambda request: httpx.Response(401))
    with pytest.raises(UnauthorizedError):
        async for _ in client.analyze_stream(build_request("pasta", None, None, "text")):
            pass


@pytest.mark.asyncio
async def test_analyze_stream_non_2xx():
    client = make_client(lambda request: httpx.Response(503))
    with pytest.raises(RemoteError, match="non-2xx status code: 503"):
        async for _ in client.analyze_stream(build_request("pasta", None, None, "text")):
            pass


@pytest.mark.asyncio
async def test_analyze_stream_connection_failure():
    def handler(request):
        raise httpx.ConnectError("no route")

    client = make_client(handler)
    with pytest.raises(NetworkError):
        async for _ in client.analyze_stream(build_request("pasta", None, None, "text")):
            pass


class DroppingStream(httpx.AsyncByteStream):
    """Delivers one event, then fails like a dropped connection."""

    async def __aiter__(self):
        yield format_sse("delta", {"delta": "partial"}).encode()
        raise httpx.ReadError("connection reset")


@pytest.mark.asyncio
async def test_analyze_stream_interrupted_mid_stream():
    client = make_client(lambda request: httpx.Response(200, stream=DroppingStream()))

    received = []
    with pytest.raises(StreamInterruptedError):
        async for event in client.analyze_stream(build_request("pasta", None, None, "text")):
            received.append(event)
    assert received == [DeltaEvent(text="partial")]


class RecordingStream(httpx.AsyncByteStream):
    """Streams delta events until closed."""

    def __init__(self):
        self.closed = False

    async def __aiter__(self):
        while not self.closed:
            yield format_sse("delta", {"delta": "chunk"}).encode()

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_closing_analyze_stream_closes_the_response():
    body = RecordingStream()
    client = make_client(lambda request: httpx.Response(200, stream=body))

    events = client.analyze_stream(build_request("pasta", None, None, "text"))
    assert await events.__anext__() == DeltaEvent(text="chunk")
    assert not body.closed

    await events.aclose()

    assert body.closed


@pytest.mark.asyncio
async def test_analyze_returns_estimate():
    def handler(request):
        assert "Accept" not in request.headers or request.headers["Accept"] != "text/event-stream"
        assert "stream" not in orjson.loads(request.content)
        return httpx.Response(200, json=RESULT)

    client = make_client(handler)
    estimate = await client.analyze(build_request("pasta", None, None, "text", stream=True))
    assert estimate.protein == 30


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response,error,message",
    [
        (httpx.Response(200, content=b""), InvalidResponseError, None),
        (httpx.Response(200, json={"error": "No food in photo"}), RemoteError, "No food in photo"),
        (httpx.Response(400, json={"error": "Invalid JWT"}), RemoteError, "Invalid JWT"),
        (httpx.Response(401, text="expired"), UnauthorizedError, "expired"),
        (httpx.Response(500, text="boom"), RemoteError, "Edge Function returned 500: boom"),
        (httpx.Response(200, json={"source": "text"}), InvalidResponseError, None),
        (
            httpx.Response(
                200,
                json={"calories": -1, "protein": 1, "carbs": 1, "fat": 1, "source": "text", "notes": ""},
            ),
            InvalidResponseError,
            None,
        ),
    ],
)
async def test_analyze_errors(response, error, message):
    client = make_client(lambda request: response)
    with pytest.raises(error) as exc_info:
        await client.analyze(build_request("pasta", None, None, "text"))
    if message:
        assert message in str(exc_info.value)
