"""Multi-line text literals passed to body and pattern steps."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextBlock:
    """A block of text lines, e.g. the doc-string argument of a step."""
    lines: tuple[str, ...] = ()

    def __post_init__(self):
        if isinstance(self.lines, str):
            object.__setattr__(self, "lines", tuple(self.lines.splitlines()))
        else:
            object.__setattr__(self, "lines", tuple(self.lines))

    def __str__(self) -> str:
        return "\n".join(self.lines)


def as_text(value: "str | TextBlock | bytes") -> str:
    """Materialize a step argument to its string value."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
