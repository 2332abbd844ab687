"""Plain-text line formatting for progress output.

Every function returns text without styling markup; sinks and the
coordinator print it with ``markup=False`` so eval content containing
square brackets is never interpreted by rich.
"""

from __future__ import annotations

from claude_eval.constants import (
    FAIL_MARKER,
    NEWLINE_BREAK_RATIO,
    PARTIAL_DEFAULT_CHARS,
    PASS_MARKER,
    PREVIEW_MAX_CHARS,
    SENTENCE_BREAK_RATIO,
    WORD_BREAK_RATIO,
    StepStatus,
)


def format_duration(duration: float | None, *, suffix: str = "") -> str:
    """`` (1.2s)`` for a positive duration in seconds, else empty."""
    if not duration:
        return ""
    return f" ({duration:.1f}s{suffix})"


def format_header(text: str) -> str:
    return f"\n📋 {text}"


def format_success(text: str, duration: float | None = None) -> str:
    return f"{PASS_MARKER} {text}{format_duration(duration)}"


def format_error(text: str) -> str:
    return f"{FAIL_MARKER} {text}"


def format_step(
    text: str,
    status: StepStatus,
    duration: float | None = None,
) -> str:
    match status:
        case StepStatus.PENDING | StepStatus.PROGRESS:
            return f"  ⏳ {text}..."
        case StepStatus.SUCCESS:
            return f"  ✓ {text}{format_duration(duration)}"
        case StepStatus.ERROR:
            return f"  {FAIL_MARKER} {text}{format_duration(duration)}"


def format_debug(text: str) -> str:
    return f"🔍 {text}"


def format_partial(
    response: str, max_length: int = PARTIAL_DEFAULT_CHARS
) -> str:
    """One-line preview of streamed text: hard cut, newlines flattened.

    Partials are transient and superseded by the next one, so a cut
    partial only ends with ``...`` and carries no "(N total characters)"
    marker. The final response is shown through ``format_preview``,
    which does append the marker when it truncates.
    """
    truncated = (
        response[:max_length] + "..."
        if len(response) > max_length
        else response
    )
    return f"    → {truncated.replace(chr(10), ' ')}"


def format_batch_summary(
    passed: int, total: int, duration: float
) -> str:
    summary = f"{passed}/{total} evaluations passed"
    duration_text = f" ({duration:.1f}s total)"
    if passed == total:
        return f"🎉 All evaluations completed! {summary}{duration_text}"
    return f"⚠️  Batch completed: {summary}{duration_text}"


def truncate_content(content: str, max_length: int) -> str:
    """Cut ``content`` to about ``max_length`` at a natural break.

    Prefers, in order, the last newline past 70% of the limit, the last
    sentence end past 70%, and the last space past 80%; otherwise cuts
    hard at the limit. Truncated text ends with ``...``.
    """
    if len(content) <= max_length:
        return content

    truncated = content[:max_length]
    last_newline = truncated.rfind("\n")
    last_sentence = max(
        truncated.rfind("."),
        truncated.rfind("!"),
        truncated.rfind("?"),
    )
    last_space = truncated.rfind(" ")

    break_point = max_length
    if last_newline > max_length * NEWLINE_BREAK_RATIO:
        break_point = last_newline
    elif last_sentence > max_length * SENTENCE_BREAK_RATIO:
        break_point = last_sentence + 1
    elif last_space > max_length * WORD_BREAK_RATIO:
        break_point = last_space

    return content[:break_point] + "..."


def format_preview(
    title: str,
    content: str,
    max_length: int = PREVIEW_MAX_CHARS,
) -> list[str]:
    """Title line, truncated body, and a length marker when cut."""
    lines = [title, truncate_content(content, max_length)]
    if len(content) > max_length:
        lines.append(f"    ... ({len(content)} total characters)")
    return lines
