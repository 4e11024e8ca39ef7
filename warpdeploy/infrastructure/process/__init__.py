"""Process execution adapters for Warpdeploy.

This package spawns the external ``hyperlane`` CLI and captures its output.
"""

from .manager import (
    AsyncioProcessManager,
    ProcessExecutionError,
    ProcessHandle,
    ProcessManager,
    ProcessTimeoutError,
    summarize_command,
)

__all__ = [
    "AsyncioProcessManager",
    "ProcessExecutionError",
    "ProcessHandle",
    "ProcessManager",
    "ProcessTimeoutError",
    "summarize_command",
]
