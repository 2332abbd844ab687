"""Progress reporting: per-task sinks and the terminal coordinator."""

from claude_eval.progress.buffer import BufferFlushedError, OutputBuffer
from claude_eval.progress.coordinator import (
    ProgressIndicator,
    RichStatusIndicator,
    TaskCompletion,
    TerminalProgressManager,
)
from claude_eval.progress.sinks import (
    BaseProgressSink,
    BufferedProgressSink,
    DirectProgressSink,
    NullProgressSink,
    ProgressSink,
)

__all__ = [
    "BaseProgressSink",
    "BufferFlushedError",
    "BufferedProgressSink",
    "DirectProgressSink",
    "NullProgressSink",
    "OutputBuffer",
    "ProgressIndicator",
    "ProgressSink",
    "RichStatusIndicator",
    "TaskCompletion",
    "TerminalProgressManager",
]
