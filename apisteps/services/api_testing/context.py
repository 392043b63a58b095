"""Per-scenario API test context: build a request, send it, assert on the response."""

import logging
from typing import Any, BinaryIO, Iterable

from apisteps.config import Settings, get_settings
from apisteps.services.api_testing.assertion_engine import ResponseAssertions
from apisteps.services.api_testing.comparator import ArrayContainsComparator
from apisteps.services.api_testing.dispatcher import RequestDispatcher
from apisteps.services.api_testing.errors import UsageError
from apisteps.services.api_testing.files import FileAccessor, MimeDetector
from apisteps.services.api_testing.http_client import APIHttpClient, HTTPResponse, Transport
from apisteps.services.api_testing.request_builder import RequestBuilder
from apisteps.services.api_testing.text import TextBlock

logger = logging.getLogger(__name__)


class ApiContext:
    """
    Owns one pending request and the last captured response of a scenario.

    Request steps are chainable and mutate the pending request. ``send``
    (or ``request_path``) hands the request to the dispatcher, which starts
    a fresh blank request for the next exchange. Response checks are on
    ``assertions``.

    A context is meant to be used by a single scenario; it is not shared
    between scenarios.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        base_uri: str | None = None,
        files: FileAccessor | None = None,
        mime_detector: MimeDetector | None = None,
        comparator: ArrayContainsComparator | None = None,
        preview_length: int = 500,
    ):
        self.files = files or FileAccessor()
        self.mime_detector = mime_detector or MimeDetector()
        self.builder: RequestBuilder | None = None
        self.dispatcher: RequestDispatcher | None = None
        self.assertions = ResponseAssertions(
            lambda: self.response,
            comparator=comparator,
            preview_length=preview_length,
        )

        if transport is not None:
            self.set_client(transport, base_uri)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "ApiContext":
        """Create a context sending requests over HTTP as configured in settings."""
        settings = settings or get_settings()
        transport = APIHttpClient(
            timeout=settings.timeout,
            follow_redirects=settings.follow_redirects,
            verify_ssl=settings.verify_ssl,
            raise_for_status=settings.raise_for_status,
        )
        return cls(
            transport=transport,
            base_uri=settings.base_uri,
            preview_length=settings.body_preview_length,
            **kwargs,
        )

    def set_client(self, transport: Transport, base_uri: str | None = None) -> "ApiContext":
        """Bind a transport and base URI, and start a blank GET request."""
        if self.builder is not None:
            self.builder.reset()
        self.builder = RequestBuilder(base_uri, files=self.files, mime_detector=self.mime_detector)
        self.dispatcher = RequestDispatcher(transport)
        return self

    @property
    def response(self) -> HTTPResponse | None:
        return self.dispatcher.response if self.dispatcher else None

    def _require_builder(self) -> RequestBuilder:
        if self.builder is None:
            raise UsageError("No transport has been set for this context.")
        return self.builder

    # Request steps

    def set_request_header(self, name: str, value: str) -> "ApiContext":
        self._require_builder().set_header(name, value)
        return self

    def add_request_header(self, name: str, value: str) -> "ApiContext":
        self._require_builder().add_header(name, value)
        return self

    def set_basic_auth(self, username: str, password: str) -> "ApiContext":
        self._require_builder().set_basic_auth(username, password)
        return self

    def set_request_body(self, content: str | bytes | TextBlock | BinaryIO) -> "ApiContext":
        self._require_builder().set_body(content)
        return self

    def set_request_body_to_file(self, path: str) -> "ApiContext":
        self._require_builder().set_body_from_file(path)
        return self

    def add_multipart_file(self, path: str, part_name: str) -> "ApiContext":
        self._require_builder().add_multipart_part(path, part_name)
        return self

    def set_request_form_params(self, table: Iterable[Any]) -> "ApiContext":
        self._require_builder().set_form_params(table)
        return self

    def set_request_path(self, path: str) -> "ApiContext":
        self._require_builder().set_uri(path)
        return self

    def set_request_method(self, method: str) -> "ApiContext":
        self._require_builder().set_method(method)
        return self

    def send(self) -> HTTPResponse:
        """Send the pending request; a blank request takes its place."""
        request, options, resources = self._require_builder().detach()
        return self.dispatcher.send(request, options, resources)

    def request_path(self, path: str, method: str | None = None) -> "ApiContext":
        """
        Request ``path`` (resolved against the base URI) and capture the response.

        Args:
            path: Absolute URI, or path relative to the base URI
            method: HTTP method. When omitted the pending request keeps its
                method: GET, or POST if form parameters are set
        """
        self.set_request_path(path)
        if method is not None:
            self.set_request_method(method)
        self.send()
        return self
