"""Prompt templates for the evaluated call and the judge call."""

from __future__ import annotations

from collections.abc import Sequence

RESPONSE_PROMPT_TEMPLATE = """\
Respond to the following prompt with text only. Do NOT use any tools, \
create/modify/delete files, or execute commands. Just provide a direct \
text response.

User prompt: {prompt}

REMEMBER: Text response only, no file operations or tool usage."""

JUDGE_PROMPT_TEMPLATE = """\
You are an evaluation judge. Evaluate the following response against \
the given criteria.

Response to evaluate:
{response}

Criteria to evaluate against:
{criteria}

For each criterion, respond with either:
- ✅ [Brief reason why it passes]
- ❌ [Brief reason why it fails]

Format your response clearly with one line per criterion."""


def build_response_prompt(prompt: str) -> str:
    return RESPONSE_PROMPT_TEMPLATE.format(prompt=prompt)


def build_judge_prompt(response: str, criteria: Sequence[str]) -> str:
    numbered = "\n".join(
        f"{i}. {c}" for i, c in enumerate(criteria, 1)
    )
    return JUDGE_PROMPT_TEMPLATE.format(
        response=response, criteria=numbered
    )
