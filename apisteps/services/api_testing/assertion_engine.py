"""Assertions against the last captured HTTP response."""

import json
import re
from typing import Any, Callable

from apisteps.services.api_testing.comparator import ArrayContainsComparator
from apisteps.services.api_testing.errors import AssertionFailure, UsageError, ValidationError
from apisteps.services.api_testing.http_client import HTTPResponse
from apisteps.services.api_testing.text import TextBlock, as_text

# Inclusive status code range for each response code group
CODE_GROUPS: dict[str, tuple[int, int]] = {
    "informational": (100, 199),
    "success": (200, 299),
    "redirection": (300, 399),
    "client error": (400, 499),
    "server error": (500, 599),
}

MIN_RESPONSE_CODE = 100
MAX_RESPONSE_CODE = 599


def entries(count: int) -> str:
    return "entry" if count == 1 else "entries"


class ResponseAssertions:
    """
    Checks against the response captured by the last send.

    Every check first requires a captured response and raises UsageError
    when there is none. Mismatches raise AssertionFailure; malformed
    arguments or response bodies of the wrong shape raise ValidationError.

    Supported checks:
    - status code, status code group, reason phrase and status line
    - header presence and combined header value
    - body equality and regular expression match
    - JSON array length, empty JSON array / object
    - structural containment of a JSON object in the body
    """

    def __init__(
        self,
        response_provider: Callable[[], HTTPResponse | None],
        comparator: ArrayContainsComparator | None = None,
        preview_length: int = 500,
    ):
        self.response_provider = response_provider
        self.comparator = comparator or ArrayContainsComparator()
        self.preview_length = preview_length

    def require_response(self) -> HTTPResponse:
        response = self.response_provider()
        if response is None:
            raise UsageError("The request has not been made yet, so no response object exists.")
        return response

    # Status code

    @staticmethod
    def validate_response_code(code: int | str) -> int:
        """
        Normalize an expected response code.

        Raises:
            ValidationError: If the code is not an integer in [100, 599]
        """
        try:
            normalized = int(code)
        except (TypeError, ValueError):
            raise ValidationError(f"Response code must be an integer, got {code!r}.", value=code)

        if not MIN_RESPONSE_CODE <= normalized <= MAX_RESPONSE_CODE:
            raise ValidationError(
                f"Response code must be between {MIN_RESPONSE_CODE} and {MAX_RESPONSE_CODE}, got {normalized}.",
                value=normalized,
            )
        return normalized

    def status_code_is(self, expected: int | str) -> None:
        actual = self.require_response().status_code
        expected = self.validate_response_code(expected)

        if actual != expected:
            raise AssertionFailure(
                f"Expected response code {expected}, got {actual}.",
                expected=expected,
                actual=actual,
            )

    def status_code_is_not(self, expected: int | str) -> None:
        actual = self.require_response().status_code
        expected = self.validate_response_code(expected)

        if actual == expected:
            raise AssertionFailure(f"Did not expect response code {actual}.", expected=expected, actual=actual)

    # Status code groups

    @staticmethod
    def code_group(group: str) -> tuple[int, int]:
        """
        Inclusive (min, max) code range of a response code group.

        Raises:
            ValidationError: For an unknown group name
        """
        try:
            return CODE_GROUPS[group]
        except KeyError:
            raise ValidationError(f"invalid response code group: {group}", value=group)

    @staticmethod
    def group_of(code: int) -> str | None:
        """Name of the group ``code`` belongs to."""
        for name, (low, high) in CODE_GROUPS.items():
            if low <= code <= high:
                return name
        return None

    def response_is_in_group(self, group: str) -> None:
        code = self.require_response().status_code
        low, high = self.code_group(group)

        if not low <= code <= high:
            actual_group = self.group_of(code)
            raise AssertionFailure(
                f'Expected response group "{group}", got "{actual_group}" (response code: {code}).',
                expected=group,
                actual=actual_group,
            )

    def response_is_not_in_group(self, group: str) -> None:
        """
        Passes when the response is outside ``group``.

        Only an AssertionFailure from the positive check counts as a pass;
        any other error it raises propagates.
        """
        code = self.require_response().status_code

        try:
            self.response_is_in_group(group)
        except AssertionFailure:
            return

        raise AssertionFailure(
            f'Did not expect response to be in the "{group}" group (response code: {code}).',
            expected=group,
            actual=group,
        )

    # Headers

    def header_exists(self, name: str) -> None:
        if not self.require_response().headers.has(name):
            raise AssertionFailure(f'The "{name}" response header does not exist', expected=name)

    def header_does_not_exist(self, name: str) -> None:
        if self.require_response().headers.has(name):
            raise AssertionFailure(f'The "{name}" response header should not exist', actual=name)

    def header_is(self, name: str, value: str) -> None:
        actual = self.require_response().headers.line(name)

        if actual != value:
            raise AssertionFailure(
                f'Expected the "{name}" response header to be "{value}", got "{actual}".',
                expected=value,
                actual=actual,
            )

    def header_is_not(self, name: str, value: str) -> None:
        actual = self.require_response().headers.line(name)

        if actual == value:
            raise AssertionFailure(
                f'Did not expect the "{name}" response header to be "{value}".',
                expected=value,
                actual=actual,
            )

    def header_matches(self, name: str, pattern: str | TextBlock) -> None:
        actual = self.require_response().headers.line(name)
        pattern = as_text(pattern)

        if not self._search(pattern, actual):
            raise AssertionFailure(
                f'Expected the "{name}" response header to match the regular expression "{pattern}", got "{actual}".',
                expected=pattern,
                actual=actual,
            )

    # Reason phrase and status line

    def reason_phrase_is(self, phrase: str) -> None:
        actual = self.require_response().reason_phrase

        if actual != phrase:
            raise AssertionFailure(
                f'Expected response reason phrase "{phrase}", got "{actual}".',
                expected=phrase,
                actual=actual,
            )

    def reason_phrase_is_not(self, phrase: str) -> None:
        actual = self.require_response().reason_phrase

        if actual == phrase:
            raise AssertionFailure(f'Did not expect response reason phrase "{phrase}".', expected=phrase, actual=actual)

    def reason_phrase_matches(self, pattern: str | TextBlock) -> None:
        actual = self.require_response().reason_phrase
        pattern = as_text(pattern)

        if not self._search(pattern, actual):
            raise AssertionFailure(
                f'Expected the response reason phrase to match the regular expression "{pattern}", got "{actual}".',
                expected=pattern,
                actual=actual,
            )

    def status_line_is(self, line: str) -> None:
        """
        Compare the status line ("<code> <reason phrase>").

        A mismatch in either half is reported once, naming both full lines.
        """
        response = self.require_response()

        parts = line.split(" ", 1)
        if len(parts) != 2:
            raise ValidationError(
                f'Invalid status line: "{line}". Must consist of a status code and a text, for instance "200 OK".',
                value=line,
            )

        try:
            self.status_code_is(parts[0])
            self.reason_phrase_is(parts[1])
        except AssertionFailure:
            raise AssertionFailure(
                f'Expected response status line "{line}", got "{response.status_line}".',
                expected=line,
                actual=response.status_line,
            ) from None

    def status_line_is_not(self, line: str) -> None:
        actual = self.require_response().status_line

        if actual == line:
            raise AssertionFailure(f'Did not expect response status line "{line}".', expected=line, actual=actual)

    def status_line_matches(self, pattern: str | TextBlock) -> None:
        actual = self.require_response().status_line
        pattern = as_text(pattern)

        if not self._search(pattern, actual):
            raise AssertionFailure(
                f'Expected the response status line to match the regular expression "{pattern}", got "{actual}".',
                expected=pattern,
                actual=actual,
            )

    # Body

    @staticmethod
    def validate_length(length: int | str) -> int:
        """
        Normalize an expected array length.

        Raises:
            ValidationError: If the length is not a non-negative integer
        """
        try:
            normalized = int(length)
        except (TypeError, ValueError):
            raise ValidationError(f"Array length must be an integer, got {length!r}.", value=length)

        if normalized < 0:
            raise ValidationError(f"Array length must not be negative, got {normalized}.", value=length)
        return normalized

    def body_is(self, content: str | TextBlock) -> None:
        response = self.require_response()
        expected = as_text(content)

        if response.body != expected.encode("utf-8"):
            raise AssertionFailure(
                f'Expected response body "{expected}", got "{response.text}".',
                expected=expected,
                actual=response.text,
            )

    def body_matches(self, pattern: str | TextBlock) -> None:
        actual = self.require_response().text
        pattern = as_text(pattern)

        if not self._search(pattern, actual):
            raise AssertionFailure(
                f'Expected response body to match regular expression "{pattern}", got "{actual}".',
                expected=pattern,
                actual=actual,
            )

    def body_is_empty_array(self) -> None:
        body = self._body_array(self.require_response())

        if body != []:
            raise AssertionFailure(
                f'Expected response body to be an empty JSON array, got "{self._preview(body)}".',
                expected=[],
                actual=body,
            )

    def body_is_array_of_length(self, length: int | str) -> None:
        response = self.require_response()
        expected = self.validate_length(length)
        body = self._body_array(response)
        actual = len(body)

        if actual != expected:
            raise AssertionFailure(
                f"Expected response body to be a JSON array with {expected} {entries(expected)}, "
                f'got {actual} {entries(expected)}: "{self._preview(body)}".',
                expected=expected,
                actual=actual,
            )

    def body_is_array_with_min_length(self, length: int | str) -> None:
        response = self.require_response()
        expected = self.validate_length(length)
        body = self._body_array(response)
        actual = len(body)

        if actual < expected:
            raise AssertionFailure(
                f"Expected response body to be a JSON array with at least {expected} {entries(expected)}, "
                f'got {actual} {entries(expected)}: "{self._preview(body)}".',
                expected=expected,
                actual=actual,
            )

    def body_is_array_with_max_length(self, length: int | str) -> None:
        response = self.require_response()
        expected = self.validate_length(length)
        body = self._body_array(response)
        actual = len(body)

        if actual > expected:
            raise AssertionFailure(
                f"Expected response body to be a JSON array with at most {expected} {entries(expected)}, "
                f'got {actual} {entries(expected)}: "{self._preview(body)}".',
                expected=expected,
                actual=actual,
            )

    def body_is_empty_object(self) -> None:
        body = self._decode(self.require_response())

        if not isinstance(body, dict):
            raise ValidationError("The response body is not a JSON object.", value=body)

        if body:
            raise AssertionFailure(
                f'Expected response body to be an empty JSON object, got "{self._preview(body)}".',
                expected={},
                actual=body,
            )

    def body_contains_json(self, fragment: str | TextBlock) -> None:
        """
        Check that every key / value of a JSON object is present in the body.

        Args:
            fragment: JSON object text the body must structurally contain

        Raises:
            ValidationError: If the body is not a JSON array / object or the
                fragment is not a JSON object
            AssertionFailure: If the comparator reports a missing key or a
                mismatching value, or returns anything but True
        """
        body = self._body_json(self.require_response())

        try:
            needle = json.loads(as_text(fragment))
        except ValueError:
            needle = None

        if not isinstance(needle, dict):
            raise ValidationError("The supplied parameter is not a valid JSON object.", value=as_text(fragment))

        result = self.comparator.compare(body, needle)
        if result is not True:
            raise AssertionFailure(f'Value "{result!r}" is not True.', expected=True, actual=result)

    # Helpers

    @staticmethod
    def _search(pattern: str, value: str) -> bool:
        try:
            return re.search(pattern, value) is not None
        except re.error as e:
            raise ValidationError(f'Invalid regular expression "{pattern}": {e}', value=pattern)

    def _preview(self, value: Any) -> str:
        text = json.dumps(value, indent=2)
        if len(text) > self.preview_length:
            return text[:self.preview_length] + "..."
        return text

    @staticmethod
    def _decode(response: HTTPResponse) -> Any:
        try:
            return response.json()
        except ValueError:
            raise ValidationError("The response body does not contain valid JSON data.", value=response.text)

    @classmethod
    def _body_json(cls, response: HTTPResponse) -> list | dict:
        """Decode the body, which must be a JSON array or object."""
        body = cls._decode(response)
        if not isinstance(body, (list, dict)):
            raise ValidationError("The response body does not contain a valid JSON array / object.", value=body)
        return body

    @staticmethod
    def _body_array(response: HTTPResponse) -> list:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, list):
            raise ValidationError("The response body is not a valid JSON array.", value=response.text)
        return body
