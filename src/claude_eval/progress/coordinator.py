"""Terminal coordinator, the single owner of stdout during a batch.

Tasks never print while a multi-task batch is running. Each one fills
its own buffered sink; when it finishes the runner calls
``task_completed`` and the coordinator hides the live indicator, prints
that task's block in one piece, and brings the indicator back with a
recomputed count. All of this happens synchronously between awaits, so
two blocks can never interleave on the event loop.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from rich.console import Console
from rich.status import Status

from claude_eval.constants import SPINNER_NAME, BatchPhase, ProgressLevel
from claude_eval.progress.formatting import (
    format_batch_summary,
    format_debug,
    format_error,
    format_success,
)
from claude_eval.progress.sinks import ProgressSink
from claude_eval.results import TaskRef

logger = logging.getLogger(__name__)


class ProgressIndicator(Protocol):
    def start(self, message: str) -> None: ...
    def update(self, message: str) -> None: ...
    def stop(self) -> None: ...


class RichStatusIndicator:
    """Spinner line backed by ``rich.status.Status``.

    A fresh ``Status`` is created on every start so a stopped spinner
    leaves nothing behind on the terminal.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._status: Status | None = None

    @property
    def active(self) -> bool:
        return self._status is not None

    def start(self, message: str) -> None:
        if self._status is not None:
            self._status.update(message)
            return
        self._status = self._console.status(
            message, spinner=SPINNER_NAME
        )
        self._status.start()

    def update(self, message: str) -> None:
        if self._status is not None:
            self._status.update(message)

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


@dataclass(frozen=True)
class TaskCompletion:
    """One finished task, in the order it finished."""

    task: TaskRef
    success: bool
    finished_at: float


class TerminalProgressManager:
    """Serializes terminal output across concurrently running tasks."""

    def __init__(
        self,
        level: ProgressLevel = ProgressLevel.NORMAL,
        *,
        console: Console | None = None,
        indicator: ProgressIndicator | None = None,
    ) -> None:
        self.level = level
        self._console = console or Console()
        self._indicator = indicator or RichStatusIndicator(self._console)
        self.phase = BatchPhase.IDLE
        self.total = 0
        self.concurrency = 1
        self._completions: list[TaskCompletion] = []
        self._batch_start = 0.0
        self._show_indicator = False

    @property
    def _quiet(self) -> bool:
        return self.level == ProgressLevel.QUIET

    @property
    def completions(self) -> tuple[TaskCompletion, ...]:
        return tuple(self._completions)

    @property
    def remaining(self) -> int:
        return self.total - len(self._completions)

    @property
    def passed_count(self) -> int:
        return sum(1 for c in self._completions if c.success)

    def indicator_message(self) -> str:
        running = min(self.concurrency, self.remaining)
        plural = "s" if running != 1 else ""
        return f"Running {running} evaluation{plural}"

    def start_batch(self, total: int, concurrency: int) -> None:
        """Enter ``running`` and show the live indicator."""
        if total < 1:
            msg = "A batch needs at least one task"
            raise ValueError(msg)
        if concurrency < 1:
            msg = f"concurrency must be at least 1, got {concurrency}"
            raise ValueError(msg)
        if self.phase in (BatchPhase.RUNNING, BatchPhase.DRAINING):
            msg = "A batch is already running"
            raise RuntimeError(msg)

        self.total = total
        self.concurrency = concurrency
        self._completions = []
        self._batch_start = time.monotonic()
        self.phase = BatchPhase.RUNNING

        # Single-task batches print through a direct sink, without a spinner
        self._show_indicator = not self._quiet and total > 1
        if self._show_indicator:
            self._indicator.start(self.indicator_message())
        logger.debug(
            "event=batch_started total=%d concurrency=%d",
            total,
            concurrency,
        )

    def task_completed(
        self, task: TaskRef, success: bool, sink: ProgressSink
    ) -> None:
        """Flush one finished task's output as a single block."""
        if self.phase != BatchPhase.RUNNING:
            msg = f"No batch accepting completions (phase={self.phase})"
            raise RuntimeError(msg)
        if any(c.task == task for c in self._completions):
            msg = f"Task already completed: {task.label}"
            raise RuntimeError(msg)

        self.phase = BatchPhase.DRAINING
        self._completions.append(
            TaskCompletion(
                task=task, success=success, finished_at=time.monotonic()
            )
        )
        try:
            lines = sink.drain()
            if self._show_indicator:
                self._indicator.stop()
            if not self._quiet and lines:
                self._print("\n".join(lines))
        finally:
            # A failed flush must not leave the batch stuck in draining
            if self.remaining > 0:
                if self._show_indicator:
                    self._indicator.start(self.indicator_message())
                self.phase = BatchPhase.RUNNING
            else:
                self._complete_batch()

    def debug(self, text: str) -> None:
        if self.level != ProgressLevel.VERBOSE:
            return
        active = self._show_indicator and self.phase == BatchPhase.RUNNING
        if active:
            self._indicator.stop()
        self._print(format_debug(text))
        if active:
            self._indicator.start(self.indicator_message())

    def _complete_batch(self) -> None:
        # The final task_completed already stopped the indicator
        self.phase = BatchPhase.DONE
        self._show_indicator = False

        duration = time.monotonic() - self._batch_start
        logger.debug(
            "event=batch_completed passed=%d total=%d duration_s=%.1f",
            self.passed_count,
            self.total,
            duration,
        )
        if self._quiet:
            return

        self._print(
            format_batch_summary(self.passed_count, self.total, duration)
        )
        if self.total > 1:
            self._print("\n📊 Results summary:")
            for completion in self._completions:
                label = completion.task.label
                self._print(
                    format_success(label)
                    if completion.success
                    else format_error(label)
                )
            self._print("")

    def _print(self, text: str) -> None:
        self._console.print(
            text,
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )
