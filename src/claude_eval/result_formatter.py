"""Render evaluation results for the console or as JSON."""

from __future__ import annotations

import json
from collections.abc import Sequence

from claude_eval.constants import FAIL_MARKER, PASS_MARKER
from claude_eval.results import BatchResult, EvaluationResult


def _icon(passed: bool) -> str:
    return PASS_MARKER if passed else FAIL_MARKER


def format_console(result: EvaluationResult) -> str:
    lines: list[str] = []
    for c in result.criteria:
        lines.append(f"{_icon(c.passed)} {c.criterion}")
        if c.reason:
            lines.append(f"   {c.reason}")

    summary = f"{result.passed_count}/{len(result.criteria)} passed"
    lines.append("")
    if result.overall:
        lines.append(f"{PASS_MARKER} PASSED ({summary})")
    else:
        lines.append(f"{FAIL_MARKER} FAILED ({summary})")
    return "\n".join(lines)


def format_json(result: EvaluationResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


def format_batch_results(batch: Sequence[BatchResult]) -> str:
    """Compact one-line-per-file summary in input order."""
    lines = [f"{_icon(b.result.overall)} {b.task.label}" for b in batch]
    passed = sum(1 for b in batch if b.result.overall)
    lines.append("")
    lines.append(f"{passed}/{len(batch)} evaluations passed")
    return "\n".join(lines)


def format_batch_json(batch: Sequence[BatchResult]) -> str:
    return json.dumps(
        [b.to_dict() for b in batch], indent=2, ensure_ascii=False
    )
