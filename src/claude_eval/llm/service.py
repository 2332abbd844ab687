"""Model query transport behind the ``ModelService`` protocol.

The runner and judge only depend on the ``ModelService`` protocol: an
async iterator of ``ModelMessage`` events for a prompt. The default
implementation adapts ``claude_agent_sdk.query``, which spawns the
Claude Code CLI. Test doubles live in ``claude_eval.fakes``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    TextBlock,
)
from claude_agent_sdk import query as sdk_query

from claude_eval.constants import (
    ASSISTANT_MESSAGE,
    OTHER_MESSAGE,
    RESULT_MESSAGE,
)
from claude_eval.resilience.errors import (
    ErrorKind,
    EvalError,
    classify_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryOptions:
    """Per-call model options."""

    model: str
    permission_mode: str = "default"
    cwd: Path | None = None


@dataclass(frozen=True)
class ModelMessage:
    """One streamed event. Only ``result`` events carry the answer."""

    type: str
    text: str = ""
    is_error: bool = False


class ModelService(Protocol):
    def query(
        self, prompt: str, options: QueryOptions
    ) -> AsyncGenerator[ModelMessage, None]: ...


def _to_model_message(message: Any) -> ModelMessage:
    if isinstance(message, ResultMessage):
        return ModelMessage(
            type=RESULT_MESSAGE,
            text=message.result or "",
            is_error=bool(message.is_error),
        )
    if isinstance(message, AssistantMessage):
        text = "".join(
            block.text
            for block in message.content
            if isinstance(block, TextBlock)
        )
        return ModelMessage(type=ASSISTANT_MESSAGE, text=text)
    return ModelMessage(type=OTHER_MESSAGE)


class ClaudeModelService:
    """``ModelService`` backed by the Claude Agent SDK."""

    async def query(
        self, prompt: str, options: QueryOptions
    ) -> AsyncGenerator[ModelMessage, None]:
        sdk_options = ClaudeAgentOptions(
            model=options.model,
            permission_mode=options.permission_mode,  # type: ignore[arg-type]
            cwd=options.cwd,
        )
        logger.debug(
            "event=model_query_start model=%s cwd=%s prompt_chars=%d",
            options.model,
            options.cwd,
            len(prompt),
        )
        async for message in sdk_query(prompt=prompt, options=sdk_options):
            yield _to_model_message(message)


async def collect_result_text(
    service: ModelService,
    prompt: str,
    options: QueryOptions,
    *,
    timeout: float,
    on_partial: Callable[[str], None] | None = None,
) -> str:
    """Run one query under a deadline and join its result text.

    ``on_partial`` receives the full accumulated text after every
    non-empty result event. Every failure surfaces as ``EvalError``:
    the deadline as ``TIMEOUT``, an in-band error result as
    ``PROCESS``, and transport failures as classified by
    ``classify_error``. The stream is closed in the calling task before
    any error propagates.
    """
    parts: list[str] = []
    try:
        async with (
            asyncio.timeout(timeout),
            contextlib.aclosing(service.query(prompt, options)) as stream,
        ):
            async for message in stream:
                if message.type != RESULT_MESSAGE:
                    continue
                if message.is_error:
                    raise EvalError(
                        ErrorKind.PROCESS,
                        message.text or "Model returned an error result",
                        stdout=message.text or None,
                    )
                if message.text:
                    parts.append(message.text)
                    if on_partial is not None:
                        on_partial("".join(parts))
    except EvalError:
        raise
    except TimeoutError as exc:
        raise EvalError(
            ErrorKind.TIMEOUT,
            f"Timeout after {timeout:g}s",
            details=f"model={options.model}",
        ) from exc
    except Exception as exc:
        raise classify_error(exc) from exc
    return "".join(parts)
