"""
Diagnostic schema - compiler-reported issues.

Diagnostics are produced by the compilation engine and are read-only here:
they are printed, carried on errors, never retried or filtered by severity.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Optional, Union

LINE_BREAKS = ("\r", "\n", "\u2028", "\u2029")


def compute_line_starts(text: str) -> list[int]:
    """
    Return the offset at which every line of `text` starts.

    \\r\\n counts as a single break.
    """
    starts = [0]
    pos = 0
    length = len(text)
    while pos < length:
        ch = text[pos]
        pos += 1
        if ch in LINE_BREAKS:
            if ch == "\r" and pos < length and text[pos] == "\n":
                pos += 1
            starts.append(pos)
    return starts


@dataclass
class SourceFile:
    """A source file as seen by the compilation engine."""
    file_name: str
    text: str = ""
    _line_starts: Optional[list[int]] = field(default=None, repr=False, compare=False)

    def get_line_starts(self) -> list[int]:
        if self._line_starts is None:
            self._line_starts = compute_line_starts(self.text)
        return self._line_starts

    def get_line_and_character_of_position(self, pos: int) -> tuple[int, int]:
        """Translate an offset into a 0-based (line, character) pair."""
        starts = self.get_line_starts()
        line = bisect_right(starts, pos) - 1
        return line, pos - starts[line]

    def get_position_of_line_and_character(self, line: int, character: int) -> int:
        """Translate a 0-based (line, character) pair into an offset."""
        starts = self.get_line_starts()
        if line < 0 or line >= len(starts):
            raise ValueError(f"Line {line} out of range for {self.file_name}")
        return starts[line] + character


@dataclass
class DiagnosticMessageChain:
    """A message with nested elaborations (e.g. assignability details)."""
    message_text: str
    next: list["DiagnosticMessageChain"] = field(default_factory=list)


def flatten_diagnostic_message_text(
    message: Union[str, DiagnosticMessageChain, None],
    new_line: str = "\n",
    indent: int = 0,
) -> str:
    """
    Flatten a message chain into a single string.

    Each nested level goes on its own line, indented two spaces deeper.
    """
    if message is None:
        return ""
    if isinstance(message, str):
        return message

    result = ""
    if indent:
        result += new_line + "  " * indent
    result += message.message_text
    for child in message.next:
        result += flatten_diagnostic_message_text(child, new_line, indent + 1)
    return result


@dataclass(frozen=True)
class Diagnostic:
    """
    One compiler-detected issue.

    Attributes:
        message_text: Plain message or message chain
        file: Source file, absent for global diagnostics
        start: Offset into file.text, absent for global diagnostics
        length: Span length
        category: "error", "warning", "suggestion" or "message"
        code: Compiler diagnostic code (e.g. 2322)
    """
    message_text: Union[str, DiagnosticMessageChain]
    file: Optional[SourceFile] = None
    start: Optional[int] = None
    length: Optional[int] = None
    category: str = "error"
    code: int = 0

    @property
    def message(self) -> str:
        return flatten_diagnostic_message_text(self.message_text, "\n")

    def location(self) -> Optional[tuple[int, int]]:
        """1-based (line, column), or None when not tied to a position."""
        if self.file is None or self.start is None:
            return None
        line, character = self.file.get_line_and_character_of_position(self.start)
        return line + 1, character + 1

    def __str__(self) -> str:
        loc = self.location()
        if loc is None:
            return f"{self.category} TS{self.code}: {self.message}"
        return f"{self.file.file_name} ({loc[0]},{loc[1]}): {self.message}"
