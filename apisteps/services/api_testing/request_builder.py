"""Accumulates test steps into one pending HTTP request."""

import os
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterable, Mapping

import httpx

from apisteps.services.api_testing.errors import (
    BodyModeConflictError,
    FileNotFoundValidationError,
    FileNotReadableValidationError,
)
from apisteps.services.api_testing.files import FileAccessor, MimeDetector
from apisteps.services.api_testing.headers import HeaderBag
from apisteps.services.api_testing.text import TextBlock, as_text

FormValue = str | list[str]

BODY_CONFLICT_MESSAGE = (
    "It's not allowed to set a request body when using multipart/form-data or form parameters."
)
FORM_CONFLICT_MESSAGE = (
    "It's not allowed to use multipart/form-data or form parameters when a request body has been set."
)


@dataclass
class MultipartPart:
    """One part of a multipart/form-data body."""
    name: str
    contents: str | bytes | BinaryIO
    filename: str | None = None


@dataclass
class NoBody:
    pass


@dataclass
class RawBody:
    content: bytes | BinaryIO


@dataclass
class FormParamsBody:
    params: dict[str, FormValue] = field(default_factory=dict)


@dataclass
class MultipartBody:
    """
    Multipart parts, plus any form parameters staged alongside them.

    The staged form parameters are folded into ``parts`` when the request
    is sent.
    """
    parts: list[MultipartPart] = field(default_factory=list)
    form_params: dict[str, FormValue] = field(default_factory=dict)


BodyMode = NoBody | RawBody | FormParamsBody | MultipartBody


@dataclass
class Request:
    """The pending outgoing request."""
    uri: str
    method: str = "GET"
    headers: HeaderBag = field(default_factory=HeaderBag)
    body: BodyMode = field(default_factory=NoBody)
    method_explicit: bool = False

    @property
    def form_params(self) -> dict[str, FormValue]:
        """Form parameters staged on the request, whatever the body mode."""
        if isinstance(self.body, MultipartBody):
            return self.body.form_params
        if isinstance(self.body, FormParamsBody):
            return self.body.params
        return {}


@dataclass
class RequestOptions:
    """Settings handed to the transport next to the request."""
    auth: tuple[str, str] | None = None


def resolve_uri(base_uri: str | None, path: str) -> str:
    """Resolve ``path`` against ``base_uri`` (RFC 3986 reference resolution)."""
    if not base_uri:
        return str(httpx.URL(path))
    return str(httpx.URL(base_uri).join(path))


def add_form_value(params: dict[str, FormValue], name: str, value: str) -> None:
    """
    Record one form value.

    The first value for a name is stored as a scalar. A second value turns
    the entry into a list and later values are appended to it.
    """
    if name not in params:
        params[name] = value
    elif isinstance(params[name], list):
        params[name].append(value)
    else:
        params[name] = [params[name], value]


def iter_table_rows(table: Iterable[Any]) -> Iterable[tuple[str, str]]:
    """
    Yield (name, value) pairs from a two-column parameter table.

    Rows may be mappings with ``name``/``value`` keys or two-item sequences.
    A leading ``name, value`` header row is skipped.
    """
    for index, row in enumerate(table):
        if isinstance(row, Mapping):
            name, value = row["name"], row["value"]
        else:
            name, value = row
            if index == 0 and (name, value) == ("name", "value"):
                continue
        yield str(name), str(value)


class RequestBuilder:
    """
    Builds the pending request one step at a time.

    Every mutator returns the builder so steps can be chained. Files opened
    for attachments are tracked and handed over with the request so the
    dispatcher can close them once the request is done.
    """

    def __init__(
        self,
        base_uri: str | None = None,
        files: FileAccessor | None = None,
        mime_detector: MimeDetector | None = None,
    ):
        self.base_uri = base_uri
        self.files = files or FileAccessor()
        self.mime_detector = mime_detector or MimeDetector()
        self.request = self._blank_request()
        self.options = RequestOptions()
        self._resources: list[BinaryIO] = []

    def _blank_request(self) -> Request:
        return Request(uri=str(httpx.URL(self.base_uri)) if self.base_uri else "")

    def reset(self) -> "RequestBuilder":
        """
        Start over with a blank GET request against the base URI.

        Files opened for the discarded request are closed.
        """
        for handle in self._resources:
            handle.close()

        self.request = self._blank_request()
        self.options = RequestOptions()
        self._resources = []
        return self

    def detach(self) -> tuple[Request, RequestOptions, list[BinaryIO]]:
        """
        Hand over the pending request, its options and open files, then reset.

        The handed-over files stay open; closing them is up to the caller.
        """
        pending = (self.request, self.options, self._resources)
        self._resources = []
        self.reset()
        return pending

    def _open(self, path: str) -> BinaryIO:
        handle = self.files.open(path)
        self._resources.append(handle)
        return handle

    def set_header(self, name: str, value: str) -> "RequestBuilder":
        self.request.headers.set(name, value)
        return self

    def add_header(self, name: str, value: str) -> "RequestBuilder":
        self.request.headers.add(name, value)
        return self

    def set_uri(self, path: str) -> "RequestBuilder":
        self.request.uri = resolve_uri(self.base_uri, path)
        return self

    def set_method(self, method: str) -> "RequestBuilder":
        self.request.method = method.upper()
        self.request.method_explicit = True
        return self

    def _ensure_raw_body_allowed(self) -> None:
        if isinstance(self.request.body, (MultipartBody, FormParamsBody)):
            raise BodyModeConflictError(BODY_CONFLICT_MESSAGE, mode=type(self.request.body).__name__)

    def _ensure_form_body_allowed(self) -> None:
        if isinstance(self.request.body, RawBody):
            raise BodyModeConflictError(FORM_CONFLICT_MESSAGE, mode=type(self.request.body).__name__)

    def set_body(self, content: str | bytes | TextBlock | BinaryIO) -> "RequestBuilder":
        """
        Use ``content`` as the raw request body.

        Args:
            content: Text, bytes, a multi-line text literal or a binary stream

        Raises:
            BodyModeConflictError: If multipart parts or form parameters are staged
        """
        self._ensure_raw_body_allowed()

        if isinstance(content, (str, TextBlock)):
            content = as_text(content).encode("utf-8")

        self.request.body = RawBody(content=content)
        return self

    def set_body_from_file(self, path: str) -> "RequestBuilder":
        """
        Use the contents of a file as the request body.

        The Content-Type header is set to the detected MIME type of the file.

        Raises:
            FileNotFoundValidationError: If ``path`` does not exist
            FileNotReadableValidationError: If ``path`` cannot be read
            BodyModeConflictError: If multipart parts or form parameters are staged
        """
        if not self.files.exists(path):
            raise FileNotFoundValidationError(path)

        if not self.files.is_readable(path):
            raise FileNotReadableValidationError(path)

        self._ensure_raw_body_allowed()

        self.set_header("Content-Type", self.mime_detector.detect(path))
        return self.set_body(self._open(path))

    def add_multipart_part(self, path: str, part_name: str) -> "RequestBuilder":
        """
        Attach a file to the request as a multipart/form-data part.

        Args:
            path: Path to the file to attach
            part_name: Name of the multipart entry

        Raises:
            FileNotFoundValidationError: If ``path`` does not exist
            FileNotReadableValidationError: If ``path`` cannot be read
            BodyModeConflictError: If a raw body has been set
        """
        if not self.files.exists(path):
            raise FileNotFoundValidationError(path)

        if not self.files.is_readable(path):
            raise FileNotReadableValidationError(path)

        self._ensure_form_body_allowed()

        body = self.request.body
        if isinstance(body, FormParamsBody):
            body = MultipartBody(form_params=body.params)
        elif not isinstance(body, MultipartBody):
            body = MultipartBody()

        body.parts.append(MultipartPart(
            name=part_name,
            contents=self._open(path),
            filename=os.path.basename(path),
        ))
        self.request.body = body
        return self

    def set_form_params(self, table: Iterable[Any]) -> "RequestBuilder":
        """
        Add form parameters from a two-column (name, value) table.

        Repeated names, within one table or across calls, collect their
        values in a list.

        Raises:
            BodyModeConflictError: If a raw body has been set
        """
        rows = list(iter_table_rows(table))
        if not rows:
            return self

        self._ensure_form_body_allowed()

        body = self.request.body
        if isinstance(body, MultipartBody):
            params = body.form_params
        elif isinstance(body, FormParamsBody):
            params = body.params
        else:
            body = FormParamsBody()
            params = body.params

        for name, value in rows:
            add_form_value(params, name, value)

        self.request.body = body
        return self

    def set_basic_auth(self, username: str, password: str) -> "RequestBuilder":
        """Send basic auth credentials with the request. Headers are left untouched."""
        self.options.auth = (username, password)
        return self
