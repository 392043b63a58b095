"""Recursive containment check for decoded JSON values."""

from typing import Any

from apisteps.services.api_testing.errors import MissingKeyError, ValueMismatchError


def _strict_equal(a: Any, b: Any) -> bool:
    # JSON true/false must not compare equal to 1/0
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_strict_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_strict_equal(x, y) for x, y in zip(a, b))
    return a == b


class ArrayContainsComparator:
    """
    Checks that a needle is structurally contained in a haystack.

    Every key of a needle mapping must be present in the matching haystack
    mapping with a recursively matching value. Lists and scalars in the
    needle must equal the haystack value exactly.
    """

    def compare(self, haystack: Any, needle: Any) -> bool:
        """
        Compare ``needle`` against ``haystack``.

        Returns:
            True when the needle is contained in the haystack

        Raises:
            MissingKeyError: A needle key is absent from the haystack
            ValueMismatchError: A key is present but its value differs
        """
        self._compare(haystack, needle, "")
        return True

    def _compare(self, haystack: Any, needle: Any, path: str) -> None:
        if isinstance(needle, dict):
            if isinstance(haystack, list) and needle:
                # Lists have no keys: report the first needle key as missing
                first = next(iter(needle))
                raise MissingKeyError(f"{path}.{first}" if path else str(first))
            if not isinstance(haystack, dict):
                raise ValueMismatchError(path or "$", needle, haystack)

            for key, value in needle.items():
                key_path = f"{path}.{key}" if path else str(key)
                if key not in haystack:
                    raise MissingKeyError(key_path)
                self._compare(haystack[key], value, key_path)
            return

        if not _strict_equal(haystack, needle):
            raise ValueMismatchError(path or "$", needle, haystack)
