"""Progress sinks: how one task reports its own lifecycle.

Two implementations share one protocol: ``DirectProgressSink`` prints
straight to the console (a single task, nothing to interleave with) and
``BufferedProgressSink`` records lines privately until the coordinator
drains them in one block. The runner picks the variant when it builds
the sink; nothing downstream inspects the type.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Protocol

from rich.console import Console

from claude_eval.constants import (
    PARTIAL_DEFAULT_CHARS,
    ProgressLevel,
    StepStatus,
)
from claude_eval.progress.buffer import OutputBuffer
from claude_eval.progress.formatting import (
    format_debug,
    format_error,
    format_header,
    format_partial,
    format_preview,
    format_step,
)
from claude_eval.resilience.errors import EvalError, render_error
from claude_eval.results import EvaluationResult


class ProgressSink(Protocol):
    def start(self, label: str) -> None: ...
    def step_started(self, label: str) -> None: ...
    def step_completed(
        self, label: str, duration: float | None = None
    ) -> None: ...
    def criteria_completed(
        self,
        label: str,
        result: EvaluationResult,
        duration: float | None = None,
    ) -> None: ...
    def step_failed(
        self, label: str, error: str | None = None
    ) -> None: ...
    def partial(
        self, text: str, max_len: int = PARTIAL_DEFAULT_CHARS
    ) -> None: ...
    def debug(self, text: str) -> None: ...
    def info(self, text: str) -> None: ...
    def error(self, text: str) -> None: ...
    def preview(self, title: str, content: str) -> None: ...
    def diagnostics(self, error: EvalError) -> None: ...
    def done(
        self, result: EvaluationResult, duration: float | None = None
    ) -> None: ...
    def drain(self) -> list[str]: ...


class BaseProgressSink(ABC):
    """Level gating and line formatting shared by both sinks.

    ``quiet`` turns every operation into a no-op; ``normal`` records
    lifecycle events; ``verbose`` adds partial output, debug lines,
    content previews and error diagnostics.
    """

    def __init__(
        self,
        level: ProgressLevel = ProgressLevel.NORMAL,
        *,
        index: int = 1,
        total: int = 1,
    ) -> None:
        self.level = level
        self.index = index
        self.total = total
        self.label = ""
        self._start_time = time.monotonic()

    @abstractmethod
    def _output(self, line: str) -> None: ...

    @property
    def _quiet(self) -> bool:
        return self.level == ProgressLevel.QUIET

    @property
    def _verbose(self) -> bool:
        return self.level == ProgressLevel.VERBOSE

    def start(self, label: str) -> None:
        self.label = label
        self._start_time = time.monotonic()
        if self._quiet:
            return
        if self.total > 1:
            header = (
                f"Running evaluation {self.index} of "
                f"{self.total}: {label}"
            )
        else:
            header = f"Evaluating: {label}"
        self._output(format_header(header))

    def step_started(self, label: str) -> None:
        if self._quiet:
            return
        self._output(format_step(label, StepStatus.PROGRESS))

    def step_completed(
        self, label: str, duration: float | None = None
    ) -> None:
        if self._quiet:
            return
        self._output(format_step(label, StepStatus.SUCCESS, duration))

    def criteria_completed(
        self,
        label: str,
        result: EvaluationResult,
        duration: float | None = None,
    ) -> None:
        if self._quiet:
            return
        self._output(format_step(label, StepStatus.SUCCESS, duration))
        for c in result.criteria:
            icon = "✓" if c.passed else "✗"
            reason = f": {c.reason}" if c.reason else ""
            self._output(f"    {icon} {c.criterion}{reason}")

    def step_failed(
        self, label: str, error: str | None = None
    ) -> None:
        if self._quiet:
            return
        if error and "\n" in error:
            self._output(
                format_step(f"{label} failed:", StepStatus.ERROR)
            )
            for line in error.splitlines():
                if line.strip():
                    self._output(f"     {line}")
            return
        error_text = f": {error}" if error else ""
        self._output(
            format_step(f"{label} failed{error_text}", StepStatus.ERROR)
        )

    def partial(
        self, text: str, max_len: int = PARTIAL_DEFAULT_CHARS
    ) -> None:
        if not self._verbose:
            return
        self._output(format_partial(text, max_len))

    def debug(self, text: str) -> None:
        if not self._verbose:
            return
        self._output(format_debug(text))

    def info(self, text: str) -> None:
        if self._quiet:
            return
        self._output(f"ℹ️  {text}")

    def error(self, text: str) -> None:
        if self._quiet:
            return
        first, *rest = text.splitlines() or [""]
        self._output(format_error(f"Error: {first}"))
        for line in rest:
            if line.strip():
                self._output(f"   {line}")

    def preview(self, title: str, content: str) -> None:
        if not self._verbose:
            return
        for line in format_preview(title, content):
            self._output(line)

    def diagnostics(self, error: EvalError) -> None:
        if not self._verbose or not error.has_diagnostics:
            return
        # First rendered line repeats the message already shown
        _, *details = render_error(error, verbose=True).splitlines()
        for line in details:
            if line.strip():
                self._output(f"     {line}")

    def done(
        self, result: EvaluationResult, duration: float | None = None
    ) -> None:
        if self._quiet:
            return
        if duration is None:
            duration = time.monotonic() - self._start_time
        status = "PASSED" if result.overall else "FAILED"
        self._output(
            format_step(
                status,
                StepStatus.SUCCESS if result.overall else StepStatus.ERROR,
                duration,
            )
        )
        self._output("")

    def drain(self) -> list[str]:
        return []


class NullProgressSink(BaseProgressSink):
    """Silent sink for library callers that pass no sink at all."""

    def __init__(self, *, index: int = 1, total: int = 1) -> None:
        super().__init__(ProgressLevel.QUIET, index=index, total=total)

    def _output(self, line: str) -> None:
        pass


class DirectProgressSink(BaseProgressSink):
    """Writes every line to the console immediately."""

    def __init__(
        self,
        level: ProgressLevel = ProgressLevel.NORMAL,
        *,
        console: Console | None = None,
        index: int = 1,
        total: int = 1,
    ) -> None:
        super().__init__(level, index=index, total=total)
        self._console = console or Console()

    def _output(self, line: str) -> None:
        self._console.print(
            line,
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )


class BufferedProgressSink(BaseProgressSink):
    """Collects lines in a private ``OutputBuffer`` until drained.

    Streaming previews re-render from the full text on every call, so
    only the newest partial line is kept pending; it is committed to
    the buffer when the next event arrives or on drain.
    """

    def __init__(
        self,
        level: ProgressLevel = ProgressLevel.NORMAL,
        *,
        index: int = 1,
        total: int = 1,
    ) -> None:
        super().__init__(level, index=index, total=total)
        self.buffer = OutputBuffer()
        self._pending_partial: str | None = None

    def _commit_partial(self) -> None:
        if self._pending_partial is not None:
            self.buffer.add(self._pending_partial)
            self._pending_partial = None

    def _output(self, line: str) -> None:
        self._commit_partial()
        self.buffer.add(line)

    def partial(
        self, text: str, max_len: int = PARTIAL_DEFAULT_CHARS
    ) -> None:
        if not self._verbose:
            return
        self._pending_partial = format_partial(text, max_len)

    def drain(self) -> list[str]:
        self._commit_partial()
        return self.buffer.flush()
