"""CLI entry point: ``claude-eval FILES...``."""

from __future__ import annotations

# Logging first so module-level loggers inherit the root config
from claude_eval.logging_config import set_level, setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import glob  # noqa: E402
import sys  # noqa: E402
import traceback  # noqa: E402
from collections.abc import Sequence  # noqa: E402

from rich.console import Console  # noqa: E402

from claude_eval import __version__  # noqa: E402
from claude_eval.config import Settings  # noqa: E402
from claude_eval.constants import OutputFormat, ProgressLevel  # noqa: E402
from claude_eval.progress.coordinator import (  # noqa: E402
    TerminalProgressManager,
)
from claude_eval.progress.sinks import DirectProgressSink  # noqa: E402
from claude_eval.resilience.errors import (  # noqa: E402
    EvalError,
    render_error,
)
from claude_eval.result_formatter import (  # noqa: E402
    format_batch_json,
    format_batch_results,
    format_console,
    format_json,
)
from claude_eval.runner import EvalRunner  # noqa: E402


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"claude-eval {__version__}")
        return

    if not args.files:
        parser.error("at least one eval file is required")

    sys.exit(_run(args))


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        msg = f"invalid integer: {value!r}"
        raise argparse.ArgumentTypeError(msg) from None
    if number < 1:
        msg = f"must be at least 1, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="claude-eval",
        description=(
            "Evaluation system for AI agent responses "
            "using LLM-as-a-judge methodology"
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="YAML evaluation files or glob patterns",
    )
    parser.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.CONSOLE.value,
        help="Output format (default: console)",
    )
    parser.add_argument(
        "--concurrency",
        "-c",
        type=_positive_int,
        default=None,
        help=(
            "Number of concurrent evaluations "
            "(default: CLAUDE_EVAL_CONCURRENCY or 5)"
        ),
    )
    level = parser.add_mutually_exclusive_group()
    level.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show detailed progress including partial responses",
    )
    level.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress progress output",
    )
    return parser


def _progress_level(args: argparse.Namespace) -> ProgressLevel:
    if args.quiet:
        return ProgressLevel.QUIET
    if args.verbose:
        return ProgressLevel.VERBOSE
    return ProgressLevel.NORMAL


def expand_patterns(patterns: Sequence[str]) -> list[str]:
    """Expand ``*`` patterns; plain paths pass through untouched."""
    files: list[str] = []
    for pattern in patterns:
        if "*" in pattern:
            files.extend(sorted(glob.glob(pattern, recursive=True)))
        else:
            files.append(pattern)
    return files


def _run(args: argparse.Namespace) -> int:
    """Execute the evaluations and return the process exit code."""
    level = _progress_level(args)
    output_format = OutputFormat(args.format)

    try:
        settings = Settings()
        set_level(settings.log_level)

        files = expand_patterns(args.files)
        if not files:
            print("No evaluation files found", file=sys.stderr)
            return 1

        console = Console()
        runner = EvalRunner(settings, level=level, console=console)

        if len(files) == 1:
            return asyncio.run(
                _run_single(
                    runner, files[0], level, output_format, console
                )
            )
        return asyncio.run(
            _run_batch(
                runner,
                files,
                args.concurrency,
                level,
                output_format,
                console,
            )
        )
    except Exception as exc:  # noqa: BLE001
        _report_error(exc, level)
        return 1


async def _run_single(
    runner: EvalRunner,
    file: str,
    level: ProgressLevel,
    output_format: OutputFormat,
    console: Console,
) -> int:
    sink = DirectProgressSink(level, console=console)
    result = await runner.run_single(file, sink)

    if output_format == OutputFormat.JSON:
        print(format_json(result))
    elif level == ProgressLevel.QUIET:
        # The sink printed nothing; give the caller a verdict
        print(format_console(result))
    return 0 if result.overall else 1


async def _run_batch(
    runner: EvalRunner,
    files: list[str],
    concurrency: int | None,
    level: ProgressLevel,
    output_format: OutputFormat,
    console: Console,
) -> int:
    progress = TerminalProgressManager(level, console=console)
    batch = await runner.run_batch(files, concurrency, progress)

    if output_format == OutputFormat.JSON:
        print(format_batch_json(batch))
    elif level == ProgressLevel.QUIET:
        print(format_batch_results(batch))
    return 0 if all(b.result.overall for b in batch) else 1


def _report_error(exc: Exception, level: ProgressLevel) -> None:
    verbose = level == ProgressLevel.VERBOSE
    if isinstance(exc, EvalError):
        message = render_error(exc, verbose=verbose)
    else:
        message = str(exc) or type(exc).__name__
    print(f"\nError: {message}", file=sys.stderr)
    if verbose:
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exception(exc, file=sys.stderr)


if __name__ == "__main__":
    main()
