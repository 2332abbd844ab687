"""Eval spec loading from YAML files with a prompt and expected behaviors."""

from claude_eval.specs.loader import load_eval_spec, parse_eval_spec
from claude_eval.specs.schemas import EvalSpec

__all__ = [
    "EvalSpec",
    "load_eval_spec",
    "parse_eval_spec",
]
