"""Shared constants, the single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so CLI choices and JSON output
work unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class ProgressLevel(StrEnum):
    """How much progress narration a sink or coordinator emits."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


class StepStatus(StrEnum):
    """Display status of a single progress line."""

    PENDING = "pending"
    PROGRESS = "progress"
    SUCCESS = "success"
    ERROR = "error"


class BatchPhase(StrEnum):
    """Coordinator lifecycle for one batch run."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class OutputFormat(StrEnum):
    """CLI result output formats."""

    CONSOLE = "console"
    JSON = "json"


# ── Judge markers and fixed reasons ──────────────────────

PASS_MARKER = "✅"
FAIL_MARKER = "❌"

FILE_PROCESSING_CRITERION = "File processing"
NO_CLEAR_EVALUATION = "No clear evaluation found"
EVALUATION_ERROR = "Evaluation error"

# ── Model message types ──────────────────────────────────

RESULT_MESSAGE = "result"
ASSISTANT_MESSAGE = "assistant"
OTHER_MESSAGE = "other"

# ── Preview limits (characters) ──────────────────────────

PREVIEW_MAX_CHARS = 500
PARTIAL_DEFAULT_CHARS = 100
RESPONSE_PARTIAL_CHARS = 200
JUDGE_PARTIAL_CHARS = 150
DIAGNOSTIC_EXCERPT_CHARS = 500

# Natural break points must land past these fractions of the limit
NEWLINE_BREAK_RATIO = 0.7
SENTENCE_BREAK_RATIO = 0.7
WORD_BREAK_RATIO = 0.8

# ── Concurrency ──────────────────────────────────────────

DEFAULT_CONCURRENCY = 5
DEFAULT_TIMEOUT_SECONDS = 180

SPINNER_NAME = "dots"
