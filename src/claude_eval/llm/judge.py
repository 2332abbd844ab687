"""LLM-as-judge: score a response against expected behaviors.

The judge is asked for one ``✅``/``❌`` line per criterion. Parsing is
positional: the i-th line that carries a verdict belongs to the i-th
criterion, whatever its text says. If the judge reorders or skips
lines the verdicts shift with them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from claude_eval.config import Settings
from claude_eval.constants import (
    EVALUATION_ERROR,
    FAIL_MARKER,
    JUDGE_PARTIAL_CHARS,
    NO_CLEAR_EVALUATION,
    PASS_MARKER,
)
from claude_eval.llm.prompts import build_judge_prompt
from claude_eval.llm.service import (
    ClaudeModelService,
    ModelService,
    QueryOptions,
    collect_result_text,
)
from claude_eval.progress.sinks import NullProgressSink, ProgressSink
from claude_eval.resilience.errors import (
    ErrorKind,
    EvalError,
    classify_error,
    render_error,
)
from claude_eval.results import CriterionResult, EvaluationResult

logger = logging.getLogger(__name__)

JUDGE_PERMISSION_MODE = "default"


def _is_verdict_line(line: str) -> bool:
    lower = line.lower()
    return (
        PASS_MARKER in line
        or FAIL_MARKER in line
        or "pass" in lower
        or "fail" in lower
    )


def parse_judge_response(
    judge_response: str, criteria: Sequence[str]
) -> list[CriterionResult]:
    """Match verdict lines to criteria by position.

    A line passes if it has the pass marker or the word "pass" (so
    "❌ does not pass" counts as a pass). Criteria beyond the last
    verdict line fail with ``NO_CLEAR_EVALUATION``.
    """
    lines = [ln for ln in judge_response.split("\n") if ln.strip()]
    verdicts = [ln for ln in lines if _is_verdict_line(ln)]

    results: list[CriterionResult] = []
    for index, criterion in enumerate(criteria):
        if index >= len(verdicts):
            results.append(
                CriterionResult(
                    criterion=criterion,
                    passed=False,
                    reason=NO_CLEAR_EVALUATION,
                )
            )
            continue
        line = verdicts[index]
        passed = PASS_MARKER in line or "pass" in line.lower()
        marker = PASS_MARKER if passed else FAIL_MARKER
        results.append(
            CriterionResult(
                criterion=criterion,
                passed=passed,
                reason=line.replace(marker, "").strip(),
            )
        )
    return results


def failed_evaluation(criteria: Sequence[str]) -> EvaluationResult:
    """Every criterion failing with ``EVALUATION_ERROR``."""
    return EvaluationResult.from_criteria(
        CriterionResult(criterion=c, passed=False, reason=EVALUATION_ERROR)
        for c in criteria
    )


class JudgeEvaluator:
    """Scores responses with a second model call. Never raises."""

    def __init__(
        self,
        settings: Settings,
        service: ModelService | None = None,
    ) -> None:
        self._settings = settings
        self._service = service or ClaudeModelService()

    async def evaluate(
        self,
        response: str,
        criteria: Sequence[str],
        sink: ProgressSink | None = None,
    ) -> EvaluationResult:
        sink = sink or NullProgressSink()
        criteria = list(criteria)
        start = time.monotonic()

        sink.step_started(
            f"Evaluating response against {len(criteria)} criteria"
        )
        sink.debug(f"Response length: {len(response)} characters")

        prompt = build_judge_prompt(response, criteria)
        sink.preview("⚖️  Judge evaluation prompt:", prompt)

        options = QueryOptions(
            model=self._settings.judge_model,
            permission_mode=JUDGE_PERMISSION_MODE,
        )
        try:
            judge_text = await collect_result_text(
                self._service,
                prompt,
                options,
                timeout=self._settings.timeout_seconds,
                on_partial=lambda text: sink.partial(
                    text, JUDGE_PARTIAL_CHARS
                ),
            )
        except Exception as exc:  # noqa: BLE001
            cause = classify_error(exc)
            err = EvalError(
                ErrorKind.JUDGE,
                render_error(cause),
                exit_code=cause.exit_code,
                stderr=cause.stderr,
                stdout=cause.stdout,
                details=cause.details,
            )
            logger.warning(
                "event=judge_failed cause=%s error=%s",
                cause.kind.value,
                cause.message,
            )
            sink.step_failed("Judge evaluation", render_error(err))
            sink.diagnostics(err)
            return failed_evaluation(criteria)

        sink.preview("🔍 Judge response:", judge_text)

        result = EvaluationResult.from_criteria(
            parse_judge_response(judge_text, criteria)
        )
        duration = time.monotonic() - start
        sink.criteria_completed(
            f"Evaluation complete ({result.passed_count}/"
            f"{len(criteria)} criteria passed)",
            result,
            duration,
        )
        return result
