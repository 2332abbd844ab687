"""Run LLM-as-judge evaluations of Claude Code responses."""

__version__ = "1.0.0"
