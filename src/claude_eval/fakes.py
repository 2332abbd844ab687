"""In-memory ``ModelService`` double for tests and dry runs.

Replies are looked up by substring of the prompt (first match wins),
falling back to ``default``. A reply may be text or an exception to
raise. The fake records every prompt and the peak number of queries
in flight at once.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import TypeAlias

from claude_eval.constants import ASSISTANT_MESSAGE, RESULT_MESSAGE
from claude_eval.llm.service import ModelMessage, QueryOptions

FakeReply: TypeAlias = str | BaseException


@dataclass
class RecordedQuery:
    prompt: str
    options: QueryOptions


@dataclass
class FakeModelService:
    """Scripted replies, optional latency, in-flight accounting."""

    replies: dict[str, FakeReply] = field(default_factory=dict)
    default: FakeReply = ""
    delay: float = 0.0
    delays: dict[str, float] = field(default_factory=dict)
    chunks: int = 1
    error_result: bool = False
    calls: list[RecordedQuery] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0

    def _reply_for(self, prompt: str) -> FakeReply:
        for needle, reply in self.replies.items():
            if needle in prompt:
                return reply
        return self.default

    def _delay_for(self, prompt: str) -> float:
        for needle, delay in self.delays.items():
            if needle in prompt:
                return delay
        return self.delay

    async def query(
        self, prompt: str, options: QueryOptions
    ) -> AsyncGenerator[ModelMessage, None]:
        self.calls.append(RecordedQuery(prompt=prompt, options=options))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self._delay_for(prompt)
            if delay:
                await asyncio.sleep(delay)
            reply = self._reply_for(prompt)
            if isinstance(reply, BaseException):
                raise reply
            yield ModelMessage(type=ASSISTANT_MESSAGE, text=reply)
            for part in _split(reply, self.chunks):
                yield ModelMessage(
                    type=RESULT_MESSAGE,
                    text=part,
                    is_error=self.error_result,
                )
        finally:
            self.in_flight -= 1

    def prompts_containing(self, needle: str) -> list[str]:
        return [c.prompt for c in self.calls if needle in c.prompt]


def _split(text: str, chunks: int) -> list[str]:
    if chunks <= 1 or len(text) < chunks:
        return [text]
    size = -(-len(text) // chunks)
    return [text[i : i + size] for i in range(0, len(text), size)]
