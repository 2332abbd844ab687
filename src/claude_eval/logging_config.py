"""Singleton logging configuration.

setup_logging() configures the root logger once and pins noisy
third-party loggers to WARNING. Log records go to stderr so they never
mix with the progress output the terminal coordinator owns on stdout.

Idempotent via a module-level flag.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "claude_agent_sdk",
    "asyncio",
    "markdown_it",
)

_setup_done = False


def setup_logging(level: str = "WARNING") -> None:
    """Configure root logger and quiet third-party loggers.

    Idempotent. A second call is a no-op, so the CLI can call it
    before and after Settings are loaded without stacking handlers.
    """
    global _setup_done  # noqa: PLW0603
    if _setup_done:
        return
    _setup_done = True

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)


def set_level(level: str) -> None:
    """Adjust the root level after setup (e.g. once Settings load)."""
    logging.getLogger().setLevel(getattr(logging, level.upper()))
