import re

import pytest
from conftest import make_response

from apisteps.services.api_testing.assertion_engine import CODE_GROUPS, ResponseAssertions
from apisteps.services.api_testing.errors import AssertionFailure, UsageError, ValidationError
from apisteps.services.api_testing.http_client import HTTPResponse
from apisteps.services.api_testing.text import TextBlock

NO_RESPONSE = "The request has not been made yet, so no response object exists."


def checks(response: HTTPResponse, **kwargs) -> ResponseAssertions:
    return ResponseAssertions(lambda: response, **kwargs)


ALL_CHECKS = [
    ("status_code_is", (200,)),
    ("status_code_is_not", (200,)),
    ("response_is_in_group", ("success",)),
    ("response_is_not_in_group", ("success",)),
    ("response_is_in_group", ("foobar",)),
    ("response_is_not_in_group", ("foobar",)),
    ("status_code_is", (600,)),
    ("header_exists", ("Content-Type",)),
    ("header_does_not_exist", ("Content-Type",)),
    ("header_is", ("Content-Type", "application/json")),
    ("header_is_not", ("Content-Type", "application/json")),
    ("header_matches", ("Content-Type", "json")),
    ("body_is", ("body",)),
    ("body_matches", ("body",)),
    ("reason_phrase_is", ("OK",)),
    ("reason_phrase_is_not", ("OK",)),
    ("reason_phrase_matches", ("OK",)),
    ("status_line_is", ("200 OK",)),
    ("status_line_is_not", ("200 OK",)),
    ("status_line_matches", ("200 OK",)),
    ("body_is_empty_array", ()),
    ("body_is_array_of_length", (1,)),
    ("body_is_array_with_min_length", (1,)),
    ("body_is_array_with_max_length", (1,)),
    ("body_is_empty_object", ()),
    ("body_contains_json", ('{"foo": "bar"}',)),
]


@pytest.mark.parametrize("name, args", ALL_CHECKS)
def test_every_check_requires_a_response(name: str, args: tuple) -> None:
    assertions = ResponseAssertions(lambda: None)

    with pytest.raises(UsageError, match=re.escape(NO_RESPONSE)):
        getattr(assertions, name)(*args)


# Status codes


@pytest.mark.parametrize("code", [100, 200, 404, 599, "302"])
def test_validate_response_code(code) -> None:
    assert ResponseAssertions.validate_response_code(code) == int(code)


@pytest.mark.parametrize("code", [99, 600, -1])
def test_validate_response_code_out_of_range(code: int) -> None:
    with pytest.raises(ValidationError, match=f"Response code must be between 100 and 599, got {code}.") as exc_info:
        ResponseAssertions.validate_response_code(code)

    assert exc_info.value.value == code


def test_status_code_is() -> None:
    checks(make_response(200)).status_code_is(200)

    with pytest.raises(AssertionFailure, match="Expected response code 400, got 200.") as exc_info:
        checks(make_response(200)).status_code_is(400)

    assert exc_info.value.expected == 400
    assert exc_info.value.actual == 200


@pytest.mark.parametrize("code, others", [
    (200, [300, 400, 500]),
    (300, [200, 400, 500]),
    (400, [200, 300, 500]),
    (500, [200, 300, 400]),
])
def test_status_code_is_not(code: int, others: list[int]) -> None:
    assertions = checks(make_response(code))
    for other in others:
        assertions.status_code_is_not(other)

    with pytest.raises(AssertionFailure, match=f"Did not expect response code {code}"):
        assertions.status_code_is_not(code)


def test_status_code_is_with_invalid_expected_code() -> None:
    with pytest.raises(ValidationError):
        checks(make_response(200)).status_code_is(600)


# Groups


@pytest.mark.parametrize("group", list(CODE_GROUPS))
def test_response_is_in_group_over_whole_range(group: str) -> None:
    low, high = CODE_GROUPS[group]
    others = [g for g in CODE_GROUPS if g != group]

    for code in range(low, high + 1):
        assertions = checks(make_response(code))
        assertions.response_is_in_group(group)
        for other in others:
            assertions.response_is_not_in_group(other)


@pytest.mark.parametrize("code, actual_group, expected_group", [
    (100, "informational", "success"),
    (200, "success", "informational"),
    (300, "redirection", "success"),
    (400, "client error", "success"),
    (500, "server error", "success"),
])
def test_response_is_in_group_failure(code: int, actual_group: str, expected_group: str) -> None:
    message = f'Expected response group "{expected_group}", got "{actual_group}" (response code: {code}).'

    with pytest.raises(AssertionFailure, match=re.escape(message)):
        checks(make_response(code)).response_is_in_group(expected_group)


def test_response_is_not_in_group_when_it_is() -> None:
    message = 'Did not expect response to be in the "success" group (response code: 200).'

    with pytest.raises(AssertionFailure, match=re.escape(message)):
        checks(make_response(200)).response_is_not_in_group("success")


@pytest.mark.parametrize("name", ["response_is_in_group", "response_is_not_in_group"])
def test_invalid_group_propagates(name: str) -> None:
    with pytest.raises(ValidationError, match="invalid response code group: foobar") as exc_info:
        getattr(checks(make_response(200)), name)("foobar")

    assert not isinstance(exc_info.value, AssertionFailure)


def test_code_group_and_reverse_lookup() -> None:
    assert ResponseAssertions.code_group("client error") == (400, 499)
    assert ResponseAssertions.group_of(451) == "client error"


# Headers


def test_header_exists() -> None:
    assertions = checks(make_response(headers={"Content-Type": "application/json"}))
    assertions.header_exists("content-type")
    assertions.header_does_not_exist("Content-Length")

    with pytest.raises(AssertionFailure, match='The "Content-Length" response header does not exist'):
        assertions.header_exists("Content-Length")

    with pytest.raises(AssertionFailure, match='The "Content-Type" response header should not exist'):
        assertions.header_does_not_exist("Content-Type")


def test_header_is_uses_combined_value() -> None:
    assertions = checks(make_response(headers={"X-Foo": ["a", "b"], "Content-Type": "application/json"}))
    assertions.header_is("x-foo", "a, b")
    assertions.header_is_not("x-foo", "a")

    message = 'Expected the "Content-Type" response header to be "application/xml", got "application/json".'
    with pytest.raises(AssertionFailure, match=re.escape(message)):
        assertions.header_is("Content-Type", "application/xml")


def test_header_is_not_failure() -> None:
    assertions = checks(make_response(headers={"Content-Type": "123"}))

    with pytest.raises(AssertionFailure, match=re.escape('Did not expect the "content-type" response header to be "123".')):
        assertions.header_is_not("content-type", "123")


def test_header_matches() -> None:
    assertions = checks(make_response(headers={"Content-Type": "application/json"}))
    assertions.header_matches("Content-Type", r"^application/(json|xml)$")

    message = (
        'Expected the "Content-Type" response header to match the regular expression '
        '"^application/xml$", got "application/json".'
    )
    with pytest.raises(AssertionFailure, match=re.escape(message)):
        assertions.header_matches("Content-Type", "^application/xml$")


def test_invalid_pattern_is_a_validation_error() -> None:
    with pytest.raises(ValidationError, match="Invalid regular expression"):
        checks(make_response(body="foo")).body_matches("(")


# Reason phrase and status line


@pytest.mark.parametrize("code, phrase", [
    (200, "OK"),
    (300, "Multiple Choices"),
    (400, "Bad Request"),
    (500, "Internal Server Error"),
])
def test_reason_phrase_and_status_line(code: int, phrase: str) -> None:
    assertions = checks(make_response(code, reason_phrase=phrase))

    assertions.reason_phrase_is(phrase)
    assertions.status_line_is(f"{code} {phrase}")
    assertions.status_line_matches(f"^{code} ")


def test_reason_phrase_failures() -> None:
    assertions = checks(make_response(200))

    with pytest.raises(AssertionFailure, match=re.escape('Expected response reason phrase "ok", got "OK".')):
        assertions.reason_phrase_is("ok")

    assertions.reason_phrase_is_not("Not Modified")
    with pytest.raises(AssertionFailure, match=re.escape('Did not expect response reason phrase "OK".')):
        assertions.reason_phrase_is_not("OK")

    assertions.reason_phrase_matches("OK")
    message = 'Expected the response reason phrase to match the regular expression "ok", got "OK".'
    with pytest.raises(AssertionFailure, match=re.escape(message)):
        assertions.reason_phrase_matches("ok")


@pytest.mark.parametrize("line", ["200 Foobar", "201 OK", "404 Not Found"])
def test_status_line_is_reports_one_combined_failure(line: str) -> None:
    message = f'Expected response status line "{line}", got "200 OK".'

    with pytest.raises(AssertionFailure, match=re.escape(message)) as exc_info:
        checks(make_response(200)).status_line_is(line)

    assert exc_info.value.expected == line
    assert exc_info.value.actual == "200 OK"


def test_status_line_without_phrase_is_invalid() -> None:
    with pytest.raises(ValidationError, match="Invalid status line"):
        checks(make_response(200)).status_line_is("200")


def test_status_line_is_not_and_matches() -> None:
    assertions = checks(make_response(200))
    assertions.status_line_is_not("304 Not Modified")

    with pytest.raises(AssertionFailure, match=re.escape('Did not expect response status line "200 OK".')):
        assertions.status_line_is_not("200 OK")

    message = 'Expected the response status line to match the regular expression "200 ok", got "200 OK".'
    with pytest.raises(AssertionFailure, match=re.escape(message)):
        assertions.status_line_matches("200 ok")


# Body


def test_body_is() -> None:
    assertions = checks(make_response(body="response body"))
    assertions.body_is("response body")
    assertions.body_is(TextBlock(["response body"]))

    with pytest.raises(AssertionFailure, match=re.escape('Expected response body "foo", got "response body".')):
        assertions.body_is("foo")


def test_body_is_multi_line() -> None:
    checks(make_response(body='{\n  "foo": "bar"\n}')).body_is(TextBlock(["{", '  "foo": "bar"', "}"]))


def test_body_matches() -> None:
    assertions = checks(make_response(body='{"foo":"bar"}'))
    assertions.body_matches(r'^{"foo":"bar"}$')

    message = 'Expected response body to match regular expression "^{"FOO": "BAR"}$", got "{"foo":"bar"}".'
    with pytest.raises(AssertionFailure, match=re.escape(message)):
        assertions.body_matches('^{"FOO": "BAR"}$')


@pytest.mark.parametrize("body, length, fails", [
    ([1, 2, 3], 3, False),
    ([1, 2, 3], 2, True),
    ([], 0, False),
    ([], 1, True),
])
def test_body_is_array_of_length(body: list, length: int, fails: bool) -> None:
    assertions = checks(make_response(body=body))

    if not fails:
        assertions.body_is_array_of_length(length)
        return

    noun = "entry" if length == 1 else "entries"
    with pytest.raises(AssertionFailure, match=re.escape(
        f"Expected response body to be a JSON array with {length} {noun}, got {len(body)}"
    )) as exc_info:
        assertions.body_is_array_of_length(length)

    assert exc_info.value.actual == len(body)
    assert '"[' in str(exc_info.value)


def test_array_length_messages_pluralize() -> None:
    with pytest.raises(AssertionFailure) as exc_info:
        checks(make_response(body=[1, 2, 3])).body_is_array_of_length(2)
    assert "2 entries" in str(exc_info.value)
    assert "3 entries" in str(exc_info.value)

    with pytest.raises(AssertionFailure) as exc_info:
        checks(make_response(body=[])).body_is_array_of_length(1)
    assert "1 entry," in str(exc_info.value)


@pytest.mark.parametrize("name, body", [
    ("body_is_array_of_length", [1]),
    ("body_is_array_with_min_length", [1]),
    ("body_is_array_with_max_length", [1, 2, 3, 4]),
])
def test_noun_follows_expected_length(name: str, body: list) -> None:
    with pytest.raises(AssertionFailure) as exc_info:
        getattr(checks(make_response(body=body)), name)(3)

    message = str(exc_info.value)
    assert "3 entries, got " in message
    assert " entry" not in message


@pytest.mark.parametrize("name", [
    "body_is_array_of_length",
    "body_is_array_with_min_length",
    "body_is_array_with_max_length",
])
@pytest.mark.parametrize("length", ["three", None, -1])
def test_array_length_must_be_a_non_negative_integer(name: str, length) -> None:
    with pytest.raises(ValidationError, match="Array length must") as exc_info:
        getattr(checks(make_response(body=[1, 2, 3])), name)(length)

    assert exc_info.value.value == length


def test_array_length_accepts_numeric_strings() -> None:
    checks(make_response(body=[1, 2, 3])).body_is_array_of_length("3")


@pytest.mark.parametrize("body, length, fails", [
    ([1, 2, 3], 3, False),
    ([1, 2, 3], 4, True),
    ([], 2, True),
    ([1], 1, False),
])
def test_body_is_array_with_min_length(body: list, length: int, fails: bool) -> None:
    assertions = checks(make_response(body=body))

    if not fails:
        assertions.body_is_array_with_min_length(length)
        return

    with pytest.raises(AssertionFailure, match=re.escape(
        f"Expected response body to be a JSON array with at least {length} entries, got {len(body)}"
    )):
        assertions.body_is_array_with_min_length(length)


@pytest.mark.parametrize("body, length, fails", [
    ([1, 2, 3], 3, False),
    ([1, 2, 3], 4, False),
    ([], 4, False),
    ([1, 2, 3, 4], 3, True),
    ([1, 2], 1, True),
])
def test_body_is_array_with_max_length(body: list, length: int, fails: bool) -> None:
    assertions = checks(make_response(body=body))

    if not fails:
        assertions.body_is_array_with_max_length(length)
        return

    noun = "entry" if length == 1 else "entries"
    with pytest.raises(AssertionFailure, match=re.escape(
        f"Expected response body to be a JSON array with at most {length} {noun}, got {len(body)}"
    )):
        assertions.body_is_array_with_max_length(length)


@pytest.mark.parametrize("name, args", [
    ("body_is_empty_array", ()),
    ("body_is_array_of_length", (1,)),
    ("body_is_array_with_min_length", (2,)),
    ("body_is_array_with_max_length", (2,)),
])
@pytest.mark.parametrize("body", [{"foo": "bar"}, b"not json", 123])
def test_array_checks_require_a_json_array(name: str, args: tuple, body) -> None:
    with pytest.raises(ValidationError, match="not a valid JSON array"):
        getattr(checks(make_response(body=body)), name)(*args)


def test_body_is_empty_array() -> None:
    checks(make_response(body=[])).body_is_empty_array()

    with pytest.raises(AssertionFailure, match=re.escape('Expected response body to be an empty JSON array, got "[')):
        checks(make_response(body=[1, 2, 3])).body_is_empty_array()


def test_preview_is_truncated() -> None:
    assertions = checks(make_response(body=list(range(100))), preview_length=20)

    with pytest.raises(AssertionFailure) as exc_info:
        assertions.body_is_empty_array()

    assert '..."' in str(exc_info.value)
    assert "99" not in str(exc_info.value)


def test_body_is_empty_object() -> None:
    checks(make_response(body={})).body_is_empty_object()

    with pytest.raises(AssertionFailure, match=re.escape('Expected response body to be an empty JSON object, got "{')):
        checks(make_response(body={"foo": "bar"})).body_is_empty_object()


@pytest.mark.parametrize("body", [[], [1], 123, b'"string"'])
def test_body_is_empty_object_with_non_object(body) -> None:
    with pytest.raises(ValidationError, match="not a JSON object"):
        checks(make_response(body=body)).body_is_empty_object()


def test_body_is_empty_object_with_invalid_json() -> None:
    with pytest.raises(ValidationError, match="does not contain valid JSON data"):
        checks(make_response(body=b"{'foo': 'bar'}")).body_is_empty_object()


def test_body_contains_json() -> None:
    checks(make_response(body='{"foo":"bar","bar":"foo"}')).body_contains_json('{"bar":"foo","foo":"bar"}')
    checks(make_response(body='{"foo":"bar","bar":"foo"}')).body_contains_json(TextBlock(['{"bar":"foo"}']))


def test_body_contains_json_missing_key() -> None:
    with pytest.raises(AssertionFailure, match="missing key: bar"):
        checks(make_response(body='{"foo":"bar"}')).body_contains_json('{"bar":"foo"}')


def test_body_contains_json_with_invalid_body() -> None:
    with pytest.raises(ValidationError, match="does not contain valid JSON data"):
        checks(make_response(body=b"{'foo':'bar'}")).body_contains_json('{"foo":"bar"}')


def test_body_contains_json_with_scalar_body() -> None:
    with pytest.raises(ValidationError, match=re.escape("does not contain a valid JSON array / object")):
        checks(make_response(body=b"123")).body_contains_json('{"foo":"bar"}')


@pytest.mark.parametrize("fragment", ["{'foo':'bar'}", "[1, 2]", '"foo"'])
def test_body_contains_json_requires_object_fragment(fragment: str) -> None:
    with pytest.raises(ValidationError, match="The supplied parameter is not a valid JSON object."):
        checks(make_response(body='{"foo":"bar"}')).body_contains_json(fragment)


def test_body_contains_json_when_comparator_does_not_return_true() -> None:
    class NoneComparator:
        def compare(self, haystack, needle):
            return None

    assertions = checks(make_response(body='{"foo":"bar","bar":"foo"}'), comparator=NoneComparator())

    with pytest.raises(AssertionFailure, match=re.escape('Value "None" is not True.')) as exc_info:
        assertions.body_contains_json('{"bar":"foo","foo":"bar"}')

    assert exc_info.value.actual is None
