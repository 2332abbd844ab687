"""Frozen dataclasses for tasks and their evaluation outcomes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from claude_eval.constants import FILE_PROCESSING_CRITERION


@dataclass(frozen=True)
class TaskRef:
    """One eval file plus its 1-based position in the batch."""

    path: Path
    index: int = 1

    @property
    def label(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class CriterionResult:
    """Verdict for a single expected behavior."""

    criterion: str
    passed: bool
    reason: str


@dataclass(frozen=True)
class EvaluationResult:
    """All criterion verdicts for one task.

    Build through ``from_criteria`` so ``overall`` is always the AND
    of the criteria (vacuously true when there are none).
    """

    overall: bool
    criteria: tuple[CriterionResult, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.overall != all(c.passed for c in self.criteria):
            msg = "overall must equal the AND of all criteria"
            raise ValueError(msg)

    @classmethod
    def from_criteria(
        cls, criteria: Iterable[CriterionResult]
    ) -> EvaluationResult:
        items = tuple(criteria)
        return cls(
            overall=all(c.passed for c in items), criteria=items
        )

    @classmethod
    def failure(cls, reason: str) -> EvaluationResult:
        """Single failing "File processing" criterion."""
        return cls.from_criteria([
            CriterionResult(
                criterion=FILE_PROCESSING_CRITERION,
                passed=False,
                reason=reason,
            )
        ])

    @property
    def passed_count(self) -> int:
        return sum(1 for c in self.criteria if c.passed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "criteria": [
                {
                    "criterion": c.criterion,
                    "passed": c.passed,
                    "reason": c.reason,
                }
                for c in self.criteria
            ],
        }


@dataclass(frozen=True)
class BatchResult:
    """Pairs a dispatched task with its outcome."""

    task: TaskRef
    result: EvaluationResult

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.task.label, "result": self.result.to_dict()}
