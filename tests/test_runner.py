"""Tests for EvalRunner: single runs and bounded-concurrency batches."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

import pytest
from claude_agent_sdk import CLINotFoundError
from rich.console import Console

from claude_eval.config import Settings
from claude_eval.constants import BatchPhase, ProgressLevel
from claude_eval.fakes import FakeModelService
from claude_eval.progress.coordinator import TerminalProgressManager
from claude_eval.progress.sinks import (
    BufferedProgressSink,
    DirectProgressSink,
    ProgressSink,
)
from claude_eval.resilience.errors import ErrorKind, EvalError
from claude_eval.results import TaskRef
from claude_eval.runner import EvalRunner
from tests.conftest import JUDGE_KEY, RecordingIndicator, console_text

WriteEval = Callable[..., Path]


def _runner(
    settings: Settings,
    service: FakeModelService,
    console: Console,
    level: ProgressLevel = ProgressLevel.NORMAL,
) -> EvalRunner:
    return EvalRunner(
        settings, service=service, level=level, console=console
    )


def _progress(
    console: Console,
    indicator: RecordingIndicator,
    level: ProgressLevel = ProgressLevel.NORMAL,
) -> TerminalProgressManager:
    return TerminalProgressManager(
        level, console=console, indicator=indicator
    )


def _evals(write_eval: WriteEval, count: int) -> list[Path]:
    return [
        write_eval(f"eval{i}.yaml", prompt=f"Question {i}")
        for i in range(1, count + 1)
    ]


# ── run_single ───────────────────────────────────────────────


class TestRunSingle:
    @pytest.mark.asyncio
    async def test_scores_response(
        self,
        settings: Settings,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ Defined\n✅ Two params\n❌ No return"},
            default="def add(a, b): pass",
        )
        path = write_eval(
            prompt="Write an add function",
            expected_behavior=[
                "Creates a function named add",
                "Function takes two parameters",
                "Returns the sum",
            ],
        )
        result = await _runner(settings, service, console).run_single(path)
        assert [c.passed for c in result.criteria] == [True, True, False]
        assert not result.overall
        assert len(service.calls) == 2

    @pytest.mark.asyncio
    async def test_add_scenario_passes(
        self,
        settings: Settings,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ defines function\n✅ returns sum"},
            default="function add(a,b){return a+b}",
        )
        path = write_eval(
            prompt="Write add(a,b)",
            expected_behavior=[
                "Should define a function",
                "Should return the sum",
            ],
        )
        result = await _runner(settings, service, console).run_single(path)
        assert result.overall
        assert [c.reason for c in result.criteria] == [
            "defines function",
            "returns sum",
        ]
        judge_prompt = service.prompts_containing(JUDGE_KEY)[0]
        assert "function add(a,b){return a+b}" in judge_prompt

    @pytest.mark.asyncio
    async def test_model_runs_in_eval_file_directory(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        path = write_eval()
        await _runner(settings, fake_service, console).run_single(path)
        primary, judge = fake_service.calls
        assert primary.options.cwd == path.resolve().parent
        assert primary.options.model == settings.model
        assert judge.options.model == settings.judge_model

    @pytest.mark.asyncio
    async def test_invalid_spec_never_calls_model(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        path = write_eval(prompt=None)
        sink = BufferedProgressSink()
        with pytest.raises(EvalError) as exc_info:
            await _runner(settings, fake_service, console).run_single(
                path, sink
            )
        assert exc_info.value.kind is ErrorKind.SPEC
        assert fake_service.calls == []
        text = "\n".join(sink.drain())
        assert "Evaluation failed: Invalid eval spec" in text
        assert "FAILED" in text

    @pytest.mark.asyncio
    async def test_transport_error_propagates_as_eval_error(
        self,
        settings: Settings,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        service = FakeModelService(default=CLINotFoundError())
        with pytest.raises(EvalError) as exc_info:
            await _runner(settings, service, console).run_single(
                write_eval()
            )
        assert exc_info.value.kind is ErrorKind.TRANSPORT
        assert exc_info.value.file_path is not None

    @pytest.mark.asyncio
    async def test_judge_failure_is_a_result_not_an_error(
        self,
        settings: Settings,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        service = FakeModelService(
            replies={JUDGE_KEY: CLINotFoundError()}, default="answer"
        )
        result = await _runner(settings, service, console).run_single(
            write_eval(expected_behavior=["a", "b"])
        )
        assert not result.overall
        assert [c.reason for c in result.criteria] == [
            "Evaluation error",
            "Evaluation error",
        ]

    @pytest.mark.asyncio
    async def test_direct_sink_prints_to_console(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        console: Console,
        write_eval: WriteEval,
    ) -> None:
        path = write_eval()
        runner = _runner(settings, fake_service, console)
        await runner.run_single(path, DirectProgressSink(console=console))
        text = console_text(console)
        assert f"📋 Evaluating: {path}" in text
        assert "PASSED" in text


# ── run_batch ────────────────────────────────────────────────


class TestRunBatch:
    @pytest.mark.asyncio
    async def test_results_in_input_order(
        self,
        settings: Settings,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        """Later files finish first; results still follow input order."""
        paths = _evals(write_eval, 3)
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"},
            default="answer",
            delays={"Question 1": 0.15, "Question 2": 0.05},
        )
        progress = _progress(console, indicator)
        batch = await _runner(settings, service, console).run_batch(
            paths, 3, progress
        )
        assert [b.task.path for b in batch] == paths
        assert [b.task.index for b in batch] == [1, 2, 3]
        assert [c.task.index for c in progress.completions] == [3, 2, 1]

    @pytest.mark.asyncio
    async def test_concurrency_bound(
        self,
        settings: Settings,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"}, default="answer", delay=0.02
        )
        await _runner(settings, service, console).run_batch(
            _evals(write_eval, 6), 2, _progress(console, indicator)
        )
        assert service.max_in_flight == 2
        assert len(service.calls) == 12

    @pytest.mark.asyncio
    async def test_five_tasks_at_concurrency_two_take_three_rounds(
        self,
        settings: Settings,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        delay = 0.05  # per model call; two calls per task
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"}, default="answer", delay=delay
        )
        start = time.monotonic()
        await _runner(settings, service, console).run_batch(
            _evals(write_eval, 5), 2, _progress(console, indicator)
        )
        elapsed = time.monotonic() - start
        per_task = 2 * delay
        assert service.max_in_flight <= 2
        assert elapsed >= 3 * per_task * 0.95
        assert elapsed < 5 * per_task

    @pytest.mark.asyncio
    async def test_failed_task_does_not_affect_others(
        self,
        settings: Settings,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        """CLI missing for one prompt: that task fails, the other passes."""
        paths = [
            write_eval("good.yaml", prompt="Good question"),
            write_eval("bad.yaml", prompt="Broken question"),
        ]
        service = FakeModelService(
            replies={
                JUDGE_KEY: "✅ ok",
                "Broken question": CLINotFoundError(),
            },
            default="answer",
        )
        batch = await _runner(settings, service, console).run_batch(
            paths, 2, _progress(console, indicator)
        )
        good, bad = batch
        assert good.result.overall
        assert not bad.result.overall
        only = bad.result.criteria[0]
        assert only.criterion == "File processing"
        assert "transport" in only.reason.lower()

    @pytest.mark.asyncio
    async def test_invalid_spec_in_batch(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        paths = [
            write_eval("ok.yaml"),
            write_eval("broken.yaml", raw="prompt: [unclosed\n"),
        ]
        batch = await _runner(settings, fake_service, console).run_batch(
            paths, 2, _progress(console, indicator)
        )
        assert batch[0].result.overall
        reason = batch[1].result.criteria[0].reason
        assert reason.startswith("Invalid eval spec: Invalid YAML")
        # Only the valid file reached the model (primary + judge)
        assert len(fake_service.calls) == 2

    @pytest.mark.asyncio
    async def test_missing_file_in_batch(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
        tmp_path: Path,
    ) -> None:
        paths = [write_eval(), tmp_path / "missing.yaml"]
        batch = await _runner(settings, fake_service, console).run_batch(
            paths, 2, _progress(console, indicator)
        )
        assert "Eval file not found" in batch[1].result.criteria[0].reason

    @pytest.mark.asyncio
    async def test_timeout_frees_slot(
        self,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        settings = Settings(timeout_seconds=0.1)
        paths = [
            write_eval("slow.yaml", prompt="Slow question"),
            write_eval("fast.yaml", prompt="Fast question"),
        ]
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"},
            default="answer",
            delays={"Slow question": 5.0},
        )
        batch = await _runner(settings, service, console).run_batch(
            paths, 1, _progress(console, indicator)
        )
        assert "timed out" in batch[0].result.criteria[0].reason
        assert batch[1].result.overall

    @pytest.mark.asyncio
    async def test_output_blocks_not_interleaved(
        self,
        settings: Settings,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        paths = _evals(write_eval, 3)
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"}, default="answer", delay=0.01
        )
        await _runner(settings, service, console).run_batch(
            paths, 3, _progress(console, indicator)
        )
        text = console_text(console)
        blocks = text.split("📋 ")[1:]
        assert len(blocks) == 3
        for block in blocks:
            assert block.count("Executing prompt with Claude Code") == 1
            assert block.count("PASSED") == 1
        assert "3/3 evaluations passed" in text

    @pytest.mark.asyncio
    async def test_uses_settings_concurrency_by_default(
        self,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        settings = Settings(concurrency=1)
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"}, default="answer", delay=0.01
        )
        progress = _progress(console, indicator)
        await _runner(settings, service, console).run_batch(
            _evals(write_eval, 3), progress=progress
        )
        assert service.max_in_flight == 1
        assert progress.concurrency == 1

    @pytest.mark.asyncio
    async def test_single_file_batch_has_no_indicator(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
    ) -> None:
        await _runner(settings, fake_service, console).run_batch(
            [write_eval()], 5, _progress(console, indicator)
        )
        assert indicator.events == []
        assert "1/1 evaluations passed" in console_text(console)

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(
        self, settings: Settings, fake_service: FakeModelService
    ) -> None:
        runner = EvalRunner(settings, service=fake_service)
        with pytest.raises(ValueError, match="No evaluation files"):
            await runner.run_batch([])

    @pytest.mark.parametrize("concurrency", [0, -3])
    @pytest.mark.asyncio
    async def test_non_positive_concurrency_rejected(
        self,
        settings: Settings,
        fake_service: FakeModelService,
        write_eval: WriteEval,
        concurrency: int,
    ) -> None:
        runner = EvalRunner(settings, service=fake_service)
        with pytest.raises(ValueError, match="at least 1"):
            await runner.run_batch([write_eval()], concurrency)
        assert fake_service.calls == []

    @pytest.mark.asyncio
    async def test_failed_progress_report_keeps_sibling_results(
        self,
        settings: Settings,
        console: Console,
        indicator: RecordingIndicator,
        write_eval: WriteEval,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A completion that cannot be reported does not lose the batch."""

        class _BrokenReport(TerminalProgressManager):
            def task_completed(
                self, task: TaskRef, success: bool, sink: ProgressSink
            ) -> None:
                super().task_completed(task, success, sink)
                if task.index == 2:
                    raise OSError("console closed")

        paths = _evals(write_eval, 3)
        service = FakeModelService(
            replies={JUDGE_KEY: "✅ ok"},
            default="answer",
            delays={"Question 1": 0.05, "Question 3": 0.1},
        )
        progress = _BrokenReport(
            ProgressLevel.NORMAL, console=console, indicator=indicator
        )
        with caplog.at_level(logging.ERROR, logger="claude_eval.runner"):
            batch = await _runner(settings, service, console).run_batch(
                paths, 3, progress
            )

        assert [b.task.path for b in batch] == paths
        assert all(b.result.overall for b in batch)
        assert progress.phase == BatchPhase.DONE
        assert len(progress.completions) == 3
        assert "event=task_report_failed" in caplog.text
        assert "console closed" in caplog.text
