"""Model calls: primary eval prompt and LLM-as-judge scoring."""

from claude_eval.llm.client import ClaudeClient
from claude_eval.llm.judge import (
    JudgeEvaluator,
    failed_evaluation,
    parse_judge_response,
)
from claude_eval.llm.service import (
    ClaudeModelService,
    ModelMessage,
    ModelService,
    QueryOptions,
    collect_result_text,
)

__all__ = [
    "ClaudeClient",
    "ClaudeModelService",
    "JudgeEvaluator",
    "ModelMessage",
    "ModelService",
    "QueryOptions",
    "collect_result_text",
    "failed_evaluation",
    "parse_judge_response",
]
