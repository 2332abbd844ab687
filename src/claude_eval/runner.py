"""Eval runner: single evaluations and bounded-concurrency batches."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import TypeAlias
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from claude_eval.config import Settings
from claude_eval.constants import ProgressLevel
from claude_eval.llm.client import ClaudeClient
from claude_eval.llm.judge import JudgeEvaluator
from claude_eval.llm.service import ClaudeModelService, ModelService
from claude_eval.progress.coordinator import TerminalProgressManager
from claude_eval.progress.sinks import (
    BufferedProgressSink,
    DirectProgressSink,
    NullProgressSink,
    ProgressSink,
)
from claude_eval.resilience.errors import (
    ErrorKind,
    classify_error,
    render_error,
)
from claude_eval.results import BatchResult, EvaluationResult, TaskRef
from claude_eval.specs.loader import load_eval_spec

logger = logging.getLogger(__name__)

TaskInput: TypeAlias = str | os.PathLike[str] | TaskRef


def _as_task(item: TaskInput, index: int) -> TaskRef:
    if isinstance(item, TaskRef):
        return TaskRef(path=item.path, index=index)
    return TaskRef(path=Path(item), index=index)


class EvalRunner:
    """Runs eval files: model call, then judge, per file.

    ``run_single`` raises on failure; ``run_batch`` converts each
    task's failure into a failing result and only raises for batch
    setup errors.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        service: ModelService | None = None,
        level: ProgressLevel = ProgressLevel.NORMAL,
        console: Console | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.level = level
        self._console = console or Console()
        service = service or ClaudeModelService()
        self._client = ClaudeClient(self.settings, service)
        self._judge = JudgeEvaluator(self.settings, service)

    async def run_single(
        self,
        task: TaskInput,
        sink: ProgressSink | None = None,
    ) -> EvaluationResult:
        """Evaluate one file.

        The spec is loaded before any model call, so a malformed file
        never reaches the model. On failure the sink gets a failing
        step and a "File processing" result before the structured
        ``EvalError`` is raised.
        """
        ref = task if isinstance(task, TaskRef) else _as_task(task, 1)
        sink = sink or NullProgressSink()
        start = time.monotonic()

        try:
            sink.start(ref.label)
            spec = load_eval_spec(ref.path)
            sink.debug(
                f"Found {spec.criteria_count} criteria to evaluate"
            )

            # Eval prompts run relative to the file that defines them
            cwd = ref.path.resolve().parent
            response = await self._client.execute(
                spec.prompt, sink=sink, cwd=cwd
            )
            result = await self._judge.evaluate(
                response, spec.expected_behavior, sink
            )
            sink.done(result, time.monotonic() - start)
            return result
        except Exception as exc:
            err = classify_error(
                exc, default=ErrorKind.UNKNOWN, file_path=ref.path
            )
            message = render_error(err)
            logger.warning(
                "event=task_failed file=%s kind=%s error=%s",
                ref.label,
                err.kind.value,
                err.message,
            )
            sink.step_failed("Evaluation", message)
            sink.done(
                EvaluationResult.failure(message),
                time.monotonic() - start,
            )
            if err is exc:
                raise
            raise err from exc

    def _create_sink(self, task: TaskRef, total: int) -> ProgressSink:
        """Direct output for a lone task, private buffer otherwise."""
        if total == 1:
            return DirectProgressSink(
                self.level,
                console=self._console,
                index=task.index,
                total=total,
            )
        return BufferedProgressSink(
            self.level, index=task.index, total=total
        )

    async def run_batch(
        self,
        tasks: Sequence[TaskInput],
        concurrency: int | None = None,
        progress: TerminalProgressManager | None = None,
    ) -> list[BatchResult]:
        """Evaluate ``tasks`` with at most ``concurrency`` in flight.

        Results come back in input order. Raises ``ValueError`` for an
        empty task list or a concurrency below 1; individual task
        failures never propagate.
        """
        if not tasks:
            msg = "No evaluation files to run"
            raise ValueError(msg)
        limit = (
            self.settings.concurrency
            if concurrency is None
            else concurrency
        )
        if limit < 1:
            msg = f"concurrency must be at least 1, got {limit}"
            raise ValueError(msg)

        refs = [_as_task(item, i) for i, item in enumerate(tasks, 1)]
        total = len(refs)
        progress = progress or TerminalProgressManager(
            self.level, console=self._console
        )
        progress.start_batch(total, limit)
        progress.debug(f"Using concurrency limit of {limit}")

        semaphore = asyncio.Semaphore(limit)
        results: list[BatchResult | None] = [None] * total

        async def _run_task(ref: TaskRef) -> None:
            sink = self._create_sink(ref, total)
            async with semaphore:
                try:
                    result = await self.run_single(ref, sink)
                except Exception as exc:  # noqa: BLE001
                    err = classify_error(exc, file_path=ref.path)
                    result = EvaluationResult.failure(render_error(err))
            results[ref.index - 1] = BatchResult(task=ref, result=result)
            progress.task_completed(ref, result.overall, sink)

        outcomes = await asyncio.gather(
            *(_run_task(ref) for ref in refs), return_exceptions=True
        )
        for ref, outcome in zip(refs, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "event=task_report_failed file=%s error=%s",
                    ref.label,
                    outcome,
                )

        logger.info(
            "event=batch_finished total=%d passed=%d",
            total,
            sum(1 for r in results if r is not None and r.result.overall),
        )
        return [r for r in results if r is not None]
