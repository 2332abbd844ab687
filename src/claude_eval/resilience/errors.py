"""Structured evaluation errors.

Every failure inside a task is folded into one ``EvalError`` carrying
its kind plus optional process context. ``render_error`` is the only
place that turns one into user-facing text.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import yaml
from claude_agent_sdk import (
    CLIConnectionError,
    CLINotFoundError,
)
from claude_agent_sdk import ProcessError as SDKProcessError

from claude_eval.constants import DIAGNOSTIC_EXCERPT_CHARS


class ErrorKind(Enum):
    SPEC = "spec"  # malformed or missing eval spec fields
    TRANSPORT = "transport"  # model CLI missing or not launchable
    PROCESS = "process"  # model process exited non-zero / in-band error
    TIMEOUT = "timeout"  # model call exceeded its deadline
    JUDGE = "judge"  # judging call failed
    UNKNOWN = "unknown"  # unclassified


_KIND_TITLES: dict[ErrorKind, str] = {
    ErrorKind.SPEC: "Invalid eval spec",
    ErrorKind.TRANSPORT: "Model transport error",
    ErrorKind.PROCESS: "Model process error",
    ErrorKind.TIMEOUT: "Model call timed out",
    ErrorKind.JUDGE: "Judge evaluation error",
    ErrorKind.UNKNOWN: "Evaluation failed",
}


class EvalError(Exception):
    """Evaluation failure with kind and optional process context."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str | None = None,
        stdout: str | None = None,
        details: str | None = None,
        file_path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        self.details = details
        self.file_path = file_path

    @property
    def title(self) -> str:
        return _KIND_TITLES[self.kind]

    @property
    def has_diagnostics(self) -> bool:
        return any(
            v is not None
            for v in (self.exit_code, self.stderr, self.stdout, self.details)
        )


class SpecError(EvalError):
    """Eval spec could not be read or failed validation."""

    def __init__(
        self, message: str, *, file_path: str | None = None
    ) -> None:
        super().__init__(
            ErrorKind.SPEC, message, file_path=file_path
        )


def classify_error(
    error: BaseException,
    *,
    default: ErrorKind = ErrorKind.UNKNOWN,
    file_path: str | Path | None = None,
) -> EvalError:
    """Convert any exception into an ``EvalError``.

    Existing ``EvalError`` instances pass through (gaining ``file_path``
    when they lack one). Structured attributes (``exit_code``,
    ``stderr``) are read from SDK errors when present.
    """
    path = str(file_path) if file_path is not None else None

    if isinstance(error, EvalError):
        if error.file_path is None:
            error.file_path = path
        return error

    # 1. Model transport: CLI missing or connection failure
    if isinstance(error, (CLINotFoundError, CLIConnectionError)):
        return EvalError(
            ErrorKind.TRANSPORT,
            str(error) or "Claude Code CLI not available",
            details=(
                "Install with: npm install -g @anthropic-ai/claude-code"
                if isinstance(error, CLINotFoundError)
                else None
            ),
            file_path=path,
        )

    # 2. Model process ran but failed
    if isinstance(error, SDKProcessError):
        exit_code = getattr(error, "exit_code", None)
        return EvalError(
            ErrorKind.PROCESS,
            str(error),
            exit_code=exit_code if isinstance(exit_code, int) else None,
            stderr=getattr(error, "stderr", None),
            file_path=path,
        )

    # 3. Deadlines
    if isinstance(error, TimeoutError):
        return EvalError(
            ErrorKind.TIMEOUT,
            str(error) or "Timed out waiting for model response",
            file_path=path,
        )

    # 4. Spec file problems
    if isinstance(error, yaml.YAMLError):
        return EvalError(
            ErrorKind.SPEC,
            f"Invalid YAML: {error}",
            file_path=path,
        )
    if isinstance(error, FileNotFoundError) and default is ErrorKind.SPEC:
        return EvalError(
            ErrorKind.SPEC,
            f"Eval file not found: {error.filename or error}",
            file_path=path,
        )

    # 5. OS-level launch failures
    if isinstance(error, OSError) and default is not ErrorKind.SPEC:
        return EvalError(
            ErrorKind.TRANSPORT,
            f"Failed to start model process: {error}",
            file_path=path,
        )

    return EvalError(
        default,
        str(error) or type(error).__name__,
        file_path=path,
    )


def _excerpt(text: str) -> str:
    """Keep the tail of long process output."""
    text = text.strip()
    if len(text) <= DIAGNOSTIC_EXCERPT_CHARS:
        return text
    return (
        f"... ({len(text)} total characters)\n"
        f"{text[-DIAGNOSTIC_EXCERPT_CHARS:]}"
    )


def render_error(error: EvalError, *, verbose: bool = False) -> str:
    """Render an error for display.

    The first line is always ``<title>: <message>``. Verbose mode adds
    exit code, stderr/stdout excerpts and details on following lines.
    """
    lines = [f"{error.title}: {error.message}"]
    if not verbose:
        return lines[0]
    if error.exit_code is not None:
        lines.append(f"Exit code: {error.exit_code}")
    if error.stderr:
        lines.append(f"stderr: {_excerpt(error.stderr)}")
    if error.stdout:
        lines.append(f"stdout: {_excerpt(error.stdout)}")
    if error.details:
        lines.append(error.details)
    return "\n".join(lines)
