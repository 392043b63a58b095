"""Case-insensitive, order-preserving, multi-valued header storage."""

from typing import Iterable, Iterator, Mapping


class HeaderBag:
    """
    Header container keyed by the lower-cased header name.

    Each name keeps the spelling it was first written with and an ordered
    list of values. ``line()`` gives the combined value: all values joined
    with ", " in the order they were added.
    """

    def __init__(self, headers: Mapping[str, str | Iterable[str]] | Iterable[tuple[str, str]] | None = None):
        self._names: dict[str, str] = {}
        self._values: dict[str, list[str]] = {}

        if headers is None:
            return

        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in items:
            if isinstance(value, (list, tuple)):
                for v in value:
                    self.add(name, v)
            else:
                self.add(name, value)

    @staticmethod
    def _key(name: str) -> str:
        return name.lower()

    def set(self, name: str, value: str) -> None:
        """Replace every value recorded for ``name`` with ``value``."""
        key = self._key(name)
        self._names[key] = name
        self._values[key] = [str(value)]

    def add(self, name: str, value: str) -> None:
        """Append ``value`` to the values recorded for ``name``."""
        key = self._key(name)
        self._names.setdefault(key, name)
        self._values.setdefault(key, []).append(str(value))

    def has(self, name: str) -> bool:
        return self._key(name) in self._values

    def line(self, name: str) -> str:
        """Combined value for ``name``, or "" when the header is absent."""
        return ", ".join(self._values.get(self._key(name), []))

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield (name, value) pairs, one per recorded value."""
        for key, values in self._values.items():
            for value in values:
                yield self._names[key], value

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names[key] for key in self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderBag):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"HeaderBag({list(self.items())!r})"


class ReadOnlyHeaderBag(HeaderBag):
    """HeaderBag that rejects changes once it is built. Used for captured responses."""

    def __init__(self, headers: Mapping[str, str | Iterable[str]] | Iterable[tuple[str, str]] | None = None):
        self._locked = False
        super().__init__(headers)
        self._locked = True

    def _check_unlocked(self) -> None:
        if self._locked:
            raise TypeError("Response headers are read-only")

    def set(self, name: str, value: str) -> None:
        self._check_unlocked()
        super().set(name, value)

    def add(self, name: str, value: str) -> None:
        self._check_unlocked()
        super().add(name, value)
