from __future__ import annotations

"""Offset <-> (line, column) translation over an immutable text.

Only ``\\n`` ends a line. A ``\\r`` before it is an ordinary column of the line
it ends, so CRLF text indexes the same number of lines as LF text.
"""

from bisect import bisect_right

from .errors import InvalidPositionError, OutOfRangeError


class PositionIndex:
    __slots__ = ("_length", "_line_starts")

    def __init__(self, text: str) -> None:
        self._length = len(text)
        starts = [0]
        find = text.find
        pos = find("\n")
        while pos != -1:
            starts.append(pos + 1)
            pos = find("\n", pos + 1)
        self._line_starts = tuple(starts)

    @property
    def length(self) -> int:
        return self._length

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_start_offsets(self) -> tuple[int, ...]:
        return self._line_starts

    def line_length(self, line: int) -> int:
        """Number of columns on ``line``, excluding its terminating newline."""

        if line < 0 or line >= len(self._line_starts):
            raise InvalidPositionError(f"Line {line} out of range (0..{len(self._line_starts) - 1})")
        start = self._line_starts[line]
        if line + 1 < len(self._line_starts):
            return self._line_starts[line + 1] - 1 - start
        return self._length - start

    def offset_to_line_column(self, offset: int) -> tuple[int, int]:
        if offset < 0 or offset > self._length:
            raise OutOfRangeError(f"Offset {offset} out of range (0..{self._length})")
        line = bisect_right(self._line_starts, offset) - 1
        return line, offset - self._line_starts[line]

    def line_column_to_offset(self, line: int, column: int) -> int:
        if column < 0 or column > self.line_length(line):
            raise InvalidPositionError(f"Column {column} out of range for line {line}")
        return self._line_starts[line] + column
