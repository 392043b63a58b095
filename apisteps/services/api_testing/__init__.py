"""API test-step service package: request building, sending and response assertions."""

from apisteps.services.api_testing.context import ApiContext
from apisteps.services.api_testing.request_builder import RequestBuilder, Request, RequestOptions
from apisteps.services.api_testing.dispatcher import RequestDispatcher
from apisteps.services.api_testing.http_client import APIHttpClient, HTTPResponse, Transport
from apisteps.services.api_testing.assertion_engine import ResponseAssertions
from apisteps.services.api_testing.comparator import ArrayContainsComparator
from apisteps.services.api_testing.headers import HeaderBag
from apisteps.services.api_testing.text import TextBlock

__all__ = [
    "ApiContext",
    "RequestBuilder",
    "Request",
    "RequestOptions",
    "RequestDispatcher",
    "APIHttpClient",
    "HTTPResponse",
    "Transport",
    "ResponseAssertions",
    "ArrayContainsComparator",
    "HeaderBag",
    "TextBlock",
]
