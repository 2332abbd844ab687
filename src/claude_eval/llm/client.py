"""Primary model call: run an eval prompt and return the answer text."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from claude_eval.config import Settings
from claude_eval.constants import RESPONSE_PARTIAL_CHARS
from claude_eval.llm.prompts import build_response_prompt
from claude_eval.llm.service import (
    ClaudeModelService,
    ModelService,
    QueryOptions,
    collect_result_text,
)
from claude_eval.progress.sinks import NullProgressSink, ProgressSink
from claude_eval.resilience.errors import EvalError, render_error

logger = logging.getLogger(__name__)


class ClaudeClient:
    """Executes eval prompts against the configured primary model."""

    def __init__(
        self,
        settings: Settings,
        service: ModelService | None = None,
    ) -> None:
        self._settings = settings
        self._service = service or ClaudeModelService()

    async def execute(
        self,
        prompt: str,
        *,
        sink: ProgressSink | None = None,
        cwd: Path | None = None,
    ) -> str:
        """Send ``prompt`` (wrapped in the text-only envelope).

        Raises ``EvalError`` after narrating the failure to ``sink``.
        """
        sink = sink or NullProgressSink()
        start = time.monotonic()

        sink.step_started("Executing prompt with Claude Code")
        sink.debug(f"Prompt length: {len(prompt)} characters")

        wrapped = build_response_prompt(prompt)
        options = QueryOptions(
            model=self._settings.model,
            permission_mode=self._settings.permission_mode,
            cwd=cwd,
        )
        sink.debug(
            "Starting Claude Code query with working directory: "
            f"{cwd or Path.cwd()}"
        )
        sink.debug(
            f"Query options: model={options.model} "
            f"permission_mode={options.permission_mode}"
        )
        sink.preview("📝 Prompt sent to Claude:", wrapped)

        try:
            response = await collect_result_text(
                self._service,
                wrapped,
                options,
                timeout=self._settings.timeout_seconds,
                on_partial=lambda text: sink.partial(
                    text, RESPONSE_PARTIAL_CHARS
                ),
            )
        except EvalError as err:
            logger.warning(
                "event=model_call_failed kind=%s error=%s",
                err.kind.value,
                err.message,
            )
            sink.step_failed("Claude API call", render_error(err))
            sink.diagnostics(err)
            raise

        duration = time.monotonic() - start
        sink.step_completed("Received response from Claude", duration)
        sink.debug(f"Response length: {len(response)} characters")
        sink.preview("📄 Response received:", response)
        return response
