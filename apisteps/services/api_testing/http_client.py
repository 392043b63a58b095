"""HTTP transport used to send the pending request and capture the response."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from apisteps.services.api_testing.errors import TransportError
from apisteps.services.api_testing.headers import HeaderBag, ReadOnlyHeaderBag
from apisteps.services.api_testing.request_builder import (
    FormParamsBody,
    MultipartBody,
    RawBody,
    Request,
    RequestOptions,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HTTPResponse:
    """Captured HTTP response. Its headers are read-only."""
    status_code: int
    reason_phrase: str = ""
    headers: HeaderBag = field(default_factory=HeaderBag)
    body: bytes = b""

    def __post_init__(self):
        if not isinstance(self.headers, ReadOnlyHeaderBag):
            object.__setattr__(self, "headers", ReadOnlyHeaderBag(self.headers.items()))

    @property
    def text(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError:
            return self.body.decode("latin-1")

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason_phrase}"

    def json(self) -> Any:
        """Parse response body as JSON."""
        return json.loads(self.text)


class Transport(Protocol):
    """Sends a request and returns the captured response."""

    def send(self, request: Request, options: RequestOptions) -> HTTPResponse:
        ...


def flatten_form_params(params: dict[str, str | list[str]]) -> dict[str, str]:
    """Encode list values with indexed names: ``{"a": ["1", "2"]}`` -> ``a[0]=1&a[1]=2``."""
    flat = {}
    for name, value in params.items():
        if isinstance(value, list):
            for index, item in enumerate(value):
                flat[f"{name}[{index}]"] = item
        else:
            flat[name] = value
    return flat


def from_httpx_response(response: httpx.Response) -> HTTPResponse:
    """Convert an httpx response into an immutable HTTPResponse."""
    return HTTPResponse(
        status_code=response.status_code,
        reason_phrase=response.reason_phrase,
        headers=ReadOnlyHeaderBag(response.headers.multi_items()),
        body=response.read(),
    )


class APIHttpClient:
    """Blocking HTTP transport backed by httpx."""

    def __init__(
        self,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        verify_ssl: bool = True,
        raise_for_status: bool = False,
        transport: httpx.BaseTransport | None = None,
    ):
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.verify_ssl = verify_ssl
        self.raise_for_status = raise_for_status
        self.transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=self.follow_redirects,
                verify=self.verify_ssl,
                transport=self.transport,
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()
            self._client = None

    def build_kwargs(self, request: Request, options: RequestOptions) -> dict[str, Any]:
        """
        Translate the pending request into ``httpx.Client.request`` arguments.

        Args:
            request: Request to send, with form parameters already folded
                into any multipart parts
            options: Side-channel options such as basic auth credentials

        Returns:
            Keyword arguments for ``httpx.Client.request``
        """
        kwargs: dict[str, Any] = {
            "method": request.method,
            "url": request.uri,
            "headers": list(request.headers.items()),
        }

        body = request.body
        if isinstance(body, RawBody):
            content = body.content
            kwargs["content"] = content if isinstance(content, bytes) else content.read()
        elif isinstance(body, FormParamsBody):
            kwargs["data"] = flatten_form_params(body.params)
        elif isinstance(body, MultipartBody):
            # A list keeps the parts in order; (None, value) renders a plain field.
            kwargs["files"] = [
                (part.name, (part.filename, part.contents))
                for part in body.parts
            ]

        if options.auth:
            kwargs["auth"] = options.auth

        return kwargs

    def send(self, request: Request, options: RequestOptions) -> HTTPResponse:
        """
        Execute the request and return the captured response.

        Raises:
            TransportError: When no response could be obtained, or, with
                ``raise_for_status`` enabled, for error statuses (the
                response is then embedded in the error)
        """
        client = self._get_client()
        kwargs = self.build_kwargs(request, options)

        try:
            response = client.request(**kwargs)
            captured = from_httpx_response(response)
            if self.raise_for_status:
                response.raise_for_status()
            return captured

        except httpx.HTTPStatusError as e:
            raise TransportError(str(e), response=captured) from e
        except httpx.TimeoutException as e:
            logger.error(f"Timeout requesting {request.method} {request.uri}: {e}")
            raise TransportError(f"Timeout: {str(e)}") from e
        except httpx.ConnectError as e:
            logger.error(f"Connection error requesting {request.method} {request.uri}: {e}")
            raise TransportError(f"Connection error: {str(e)}") from e
        except httpx.HTTPError as e:
            logger.error(f"Request error for {request.method} {request.uri}: {e}")
            raise TransportError(f"Request error: {str(e)}") from e
