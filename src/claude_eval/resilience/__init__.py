"""Structured error taxonomy for evaluation failures."""

from claude_eval.resilience.errors import (
    ErrorKind,
    EvalError,
    SpecError,
    classify_error,
    render_error,
)

__all__ = [
    "ErrorKind",
    "EvalError",
    "SpecError",
    "classify_error",
    "render_error",
]
