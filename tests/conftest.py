"""
Shared fixtures for StreamLoop tests.

HTTP is faked with httpx.MockTransport: each test queues the responses the
provider should return, in order, and inspects the requests that were sent.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from streamloop.llm.base import LLMConfig
from streamloop.llm.providers import get_provider
from streamloop.llm.transport import HTTPTransport
from streamloop.tools import ToolRegistry, tool

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TrackingStream(httpx.AsyncByteStream):
    """Response body that records whether it was closed"""

    def __init__(self, chunks: List[bytes], error: Optional[Exception] = None):
        self.chunks = chunks
        self.closed = False
        self.chunks_read = 0
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            self.chunks_read += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class MockHTTP:
    """Queue of canned responses served in order, plus the requests received"""

    def __init__(self):
        self.responses: List[Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]] = []
        self.requests: List[httpx.Request] = []
        self.streams: List[TrackingStream] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response

    def add_sse(self, payloads: List[Any], error: Optional[Exception] = None) -> TrackingStream:
        """Queue a 200 SSE response whose data fields are ``payloads``, optionally failing with ``error`` after them"""
        lines = []
        for payload in payloads:
            data = payload if isinstance(payload, str) else json.dumps(payload)
            lines.append(f"data: {data}\n\n")
        stream = TrackingStream([line.encode("utf-8") for line in lines], error)
        self.streams.append(stream)
        self.responses.append(httpx.Response(
            200, headers={"content-type": "text/event-stream"}, stream=stream,
        ))
        return stream

    def add_sse_fixture(self, name: str) -> TrackingStream:
        """Queue a 200 SSE response from tests/fixtures/<name>"""
        raw = (FIXTURES_DIR / name).read_text(encoding="utf-8")
        stream = TrackingStream([raw.encode("utf-8")])
        self.streams.append(stream)
        self.responses.append(httpx.Response(
            200, headers={"content-type": "text/event-stream"}, stream=stream,
        ))
        return stream

    def add_json(self, body: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        self.responses.append(httpx.Response(status_code, json=body, headers=headers))

    def add_json_fixture(self, name: str, status_code: int = 200):
        body = json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))
        self.add_json(body, status_code)

    def add_error(self, status_code: int, body: Any = None, headers: Optional[Dict[str, str]] = None):
        if body is None:
            self.responses.append(httpx.Response(status_code, headers=headers))
        elif isinstance(body, (dict, list)):
            self.responses.append(httpx.Response(status_code, json=body, headers=headers))
        else:
            self.responses.append(httpx.Response(status_code, text=body, headers=headers))

    def json_body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture
def mock_http():
    return MockHTTP()


@pytest.fixture
def http_client(mock_http):
    return httpx.AsyncClient(transport=httpx.MockTransport(mock_http.handler))


@pytest.fixture
def transport(http_client):
    return HTTPTransport(client=http_client)


@pytest.fixture
def vertex_config():
    return LLMConfig(
        model="gemini-2.5-flash",
        api_key="test-key-1234",
        extra={"project_id": "test-project", "location": "us-central1"},
    )


@pytest.fixture
def vertex_provider(vertex_config):
    return get_provider("vertexai", vertex_config)


@pytest.fixture
def gemini_provider():
    return get_provider("gemini", LLMConfig(model="gemini-2.0-flash", api_key="test-gemini-key"))


@pytest.fixture
def openai_provider():
    return get_provider("openai", LLMConfig(model="gpt-4o", api_key="sk-test"))


@pytest.fixture
def weather_registry():
    registry = ToolRegistry()

    @tool(registry=registry)
    def weather(city: str) -> str:
        """useful when you need to search for current weather conditions"""
        return "The weather will be " + ("50" if city == "San Francisco" else "75") + f"° and sunny in {city}"

    @tool(registry=registry)
    async def search(query: str) -> str:
        """useful for searching current events or data"""
        return f"Search results for: {query}"

    return registry


@pytest.fixture
def sf_weather_registry():
    registry = ToolRegistry()

    @tool(registry=registry)
    def weather(city: str) -> str:
        """useful when you need to search for current weather conditions"""
        return f"The weather will be 75° and sunny in {city}"

    return registry
