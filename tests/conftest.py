"""Shared test fixtures: settings, fake model service, captured console."""

import os

# Tests never read real model configuration from the shell.
for _key in [k for k in os.environ if k.startswith("CLAUDE_EVAL_")]:
    del os.environ[_key]

import io
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml
from rich.console import Console

from claude_eval.config import Settings
from claude_eval.fakes import FakeModelService

JUDGE_KEY = "evaluation judge"


def make_console() -> Console:
    """Plain, wide, non-terminal console writing to a StringIO."""
    return Console(
        file=io.StringIO(),
        force_terminal=False,
        color_system=None,
        width=200,
    )


def console_text(console: Console) -> str:
    file = console.file
    assert isinstance(file, io.StringIO)
    return file.getvalue()


class RecordingIndicator:
    """ProgressIndicator double that records every call."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str | None]] = []
        self.active = False

    def start(self, message: str) -> None:
        self.events.append(("start", message))
        self.active = True

    def update(self, message: str) -> None:
        self.events.append(("update", message))

    def stop(self) -> None:
        self.events.append(("stop", None))
        self.active = False

    @property
    def messages(self) -> list[str]:
        return [m for kind, m in self.events if kind == "start" and m]


@pytest.fixture
def settings() -> Settings:
    return Settings(timeout_seconds=5, concurrency=5)


@pytest.fixture
def console() -> Console:
    return make_console()


@pytest.fixture
def indicator() -> RecordingIndicator:
    return RecordingIndicator()


@pytest.fixture
def fake_service() -> FakeModelService:
    """Judge prompts embed the response, so the judge key goes first."""
    return FakeModelService(
        replies={
            JUDGE_KEY: "✅ Looks right",
        },
        default="The answer is 42.",
    )


@pytest.fixture
def write_eval(tmp_path: Path) -> Callable[..., Path]:
    """Write an eval YAML file under tmp_path and return its path."""

    def _write(
        name: str = "eval.yaml",
        *,
        prompt: str | None = "What is 6 * 7?",
        expected_behavior: list[str] | None = None,
        raw: str | None = None,
    ) -> Path:
        path = tmp_path / name
        if raw is not None:
            path.write_text(raw, encoding="utf-8")
            return path
        doc: dict[str, object] = {}
        if prompt is not None:
            doc["prompt"] = prompt
        doc["expected_behavior"] = (
            expected_behavior
            if expected_behavior is not None
            else ["Answers 42"]
        )
        path.write_text(yaml.safe_dump(doc), encoding="utf-8")
        return path

    return _write
