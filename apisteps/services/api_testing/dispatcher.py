"""Sends the pending request and keeps the captured response."""

import logging
from contextlib import ExitStack
from dataclasses import dataclass, replace
from typing import BinaryIO, Iterable

from apisteps.services.api_testing.errors import TransportError
from apisteps.services.api_testing.http_client import HTTPResponse, Transport
from apisteps.services.api_testing.request_builder import (
    FormValue,
    MultipartBody,
    MultipartPart,
    Request,
    RequestOptions,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
    """Outcome of one transport call: a response, or the error raised instead."""
    response: HTTPResponse | None = None
    error: TransportError | None = None


def form_params_to_parts(params: dict[str, FormValue]) -> list[MultipartPart]:
    """
    Turn form parameters into multipart parts.

    List values become one ``name[]`` part per item, scalars a single part.
    """
    parts = []
    for name, contents in params.items():
        if isinstance(contents, list):
            parts.extend(MultipartPart(name=f"{name}[]", contents=item) for item in contents)
        else:
            parts.append(MultipartPart(name=name, contents=contents))
    return parts


def prepare_request(request: Request) -> Request:
    """
    Resolve the request as it goes on the wire.

    - Form parameters make the request a POST unless a method was set.
    - Form parameters staged next to multipart parts are appended to the
      parts and dropped from the request.
    """
    method = request.method
    if request.form_params and not request.method_explicit:
        method = "POST"

    body = request.body
    if isinstance(body, MultipartBody) and body.form_params:
        body = MultipartBody(parts=body.parts + form_params_to_parts(body.form_params))

    return replace(request, method=method, body=body)


class RequestDispatcher:
    """
    Sends requests through a transport and holds the last captured response.

    One transport attempt is made per send. A TransportError that carries a
    response counts as a completed exchange; one without a response is
    re-raised unchanged.
    """

    def __init__(self, transport: Transport):
        self.transport = transport
        self.response: HTTPResponse | None = None

    def _attempt(self, request: Request, options: RequestOptions) -> SendResult:
        try:
            return SendResult(response=self.transport.send(request, options))
        except TransportError as e:
            return SendResult(error=e)

    def send(
        self,
        request: Request,
        options: RequestOptions | None = None,
        resources: Iterable[BinaryIO] = (),
    ) -> HTTPResponse:
        """
        Send the request and store the response as the current one.

        Args:
            request: The pending request
            options: Options for the transport (basic auth, ...)
            resources: Open files attached to the request, closed once the
                send is over

        Returns:
            The captured response

        Raises:
            TransportError: If the transport failed without a response
        """
        options = options or RequestOptions()

        with ExitStack() as stack:
            for resource in resources:
                stack.callback(resource.close)

            prepared = prepare_request(request)
            logger.info(f"Sending {prepared.method} {prepared.uri}")
            result = self._attempt(prepared, options)

        if result.error is not None:
            if result.error.response is None:
                raise result.error
            logger.warning(
                f"Transport error for {prepared.method} {prepared.uri}, "
                f"using the response it carried: {result.error.message}"
            )
            self.response = result.error.response
        else:
            self.response = result.response

        logger.info(f"Received {self.response.status_line} for {prepared.method} {prepared.uri}")
        return self.response
