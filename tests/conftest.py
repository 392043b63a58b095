import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from apisteps.services.api_testing.context import ApiContext
from apisteps.services.api_testing.headers import HeaderBag
from apisteps.services.api_testing.http_client import HTTPResponse
from apisteps.services.api_testing.request_builder import Request, RequestOptions

BASE_URI = "http://localhost:9876"


def make_response(
    status_code: int = 200,
    body: Any = b"",
    headers: dict[str, Any] | None = None,
    reason_phrase: str = "OK",
) -> HTTPResponse:
    if not isinstance(body, (bytes, str)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    return HTTPResponse(
        status_code=status_code,
        reason_phrase=reason_phrase,
        headers=HeaderBag(headers or {}),
        body=body,
    )


@dataclass
class FakeTransport:
    """Replays queued responses / errors and records what was sent."""
    queue: list[HTTPResponse | Exception] = field(default_factory=list)
    history: list[tuple[Request, RequestOptions]] = field(default_factory=list)

    def append(self, item: HTTPResponse | Exception) -> "FakeTransport":
        self.queue.append(item)
        return self

    def send(self, request: Request, options: RequestOptions) -> HTTPResponse:
        self.history.append((request, options))
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def last_request(self) -> Request:
        return self.history[-1][0]

    @property
    def last_options(self) -> RequestOptions:
        return self.history[-1][1]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def context(transport: FakeTransport) -> ApiContext:
    return ApiContext(transport=transport, base_uri=BASE_URI)


@pytest.fixture
def respond(context: ApiContext, transport: FakeTransport):
    """Capture a response in the context by requesting /some/path."""

    def _respond(*args: Any, **kwargs: Any) -> ApiContext:
        transport.append(make_response(*args, **kwargs))
        return context.request_path("/some/path")

    return _respond


@pytest.fixture
def upload_file(tmp_path: Path) -> Path:
    path = tmp_path / "upload.txt"
    path.write_text("file contents\n")
    return path
