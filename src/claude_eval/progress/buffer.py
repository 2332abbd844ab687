"""Per-task output buffer, flushed to the terminal exactly once."""

from __future__ import annotations


class BufferFlushedError(RuntimeError):
    """Raised when a flushed buffer is written to or flushed again."""


class OutputBuffer:
    """Append-only list of lines owned by a single task."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._flushed = False

    def add(self, line: str) -> None:
        if self._flushed:
            msg = "Cannot append to a flushed output buffer"
            raise BufferFlushedError(msg)
        self._lines.append(line)

    def add_empty(self) -> None:
        self.add("")

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    @property
    def flushed(self) -> bool:
        return self._flushed

    def is_empty(self) -> bool:
        return not self._lines

    def render(self) -> str:
        return "\n".join(self._lines)

    def flush(self) -> list[str]:
        """Hand over every line and seal the buffer."""
        if self._flushed:
            msg = "Output buffer already flushed"
            raise BufferFlushedError(msg)
        self._flushed = True
        return list(self._lines)
