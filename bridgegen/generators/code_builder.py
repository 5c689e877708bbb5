"""Composable line builder used by every renderer.

Renderers append lines and open indented blocks instead of substituting into
text templates, so per-field and per-export code is always produced through
the same escaping and naming helpers.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager

GENERATED_BANNER = "AUTO-GENERATED by bridgegen - DO NOT EDIT"


class CodeBuilder:
    """Accumulates indented source lines."""

    def __init__(self, indent: str = "    "):
        self.indent = indent
        self._lines: list[str] = []
        self._level = 0

    def line(self, text: str = "") -> CodeBuilder:
        self._lines.append(f"{self.indent * self._level}{text}" if text else "")
        return self

    def blank(self, count: int = 1) -> CodeBuilder:
        """Pad the output to ``count`` trailing empty lines, never adding more."""
        if not self._lines:
            return self
        trailing = 0
        while trailing < len(self._lines) and self._lines[-1 - trailing] == "":
            trailing += 1
        self._lines.extend([""] * (count - trailing))
        return self

    @contextmanager
    def block(self, opener: str, closer: str | None = "}") -> Iterator[CodeBuilder]:
        """Emit ``opener``, indent the body, then emit ``closer``.

        C++ callers pass an opener ending in ``{``; Python callers pass an
        opener ending in ``:`` and ``closer=None``.
        """
        self.line(opener)
        self._level += 1
        try:
            yield self
        finally:
            self._level -= 1
        if closer is not None:
            self.line(closer)

    @contextmanager
    def indented(self) -> Iterator[CodeBuilder]:
        self._level += 1
        try:
            yield self
        finally:
            self._level -= 1

    def render(self) -> str:
        lines = list(self._lines)
        while lines and lines[-1] == "":
            lines.pop()
        return "\n".join(lines) + "\n"


def cpp_string(text: str) -> str:
    """A C++ string literal for ``text``."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def py_string(text: str) -> str:
    """A Python string literal for ``text`` (double-quoted)."""
    return json.dumps(text)
