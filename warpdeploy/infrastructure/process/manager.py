"""Process execution for external ``hyperlane`` commands.

A process manager starts a named shell command, waits for it to exit and
hands back its captured standard output. Services depend on the
:class:`ProcessManager` protocol so tests and host runtimes can inject their
own implementation; :class:`AsyncioProcessManager` is the production one.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from warpdeploy.infrastructure.observability import get_logger, log_context

_SUMMARY_LIMIT = 120


class ProcessExecutionError(Exception):
    """Raised when a command fails to start or exits with a non-zero status."""

    def __init__(
        self,
        name: str,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name
        self.returncode = returncode
        self.stderr = stderr


class ProcessTimeoutError(ProcessExecutionError):
    """Raised when a command outlives its time budget and is killed."""

    def __init__(self, name: str, timeout_seconds: float) -> None:
        super().__init__(name, f"timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


@dataclass
class ProcessHandle:
    """A started process registered under a step name."""

    name: str
    command: str
    process: asyncio.subprocess.Process | None = field(default=None, repr=False)


class ProcessManager(Protocol):
    async def run(self, name: str, command: str) -> ProcessHandle: ...

    async def focus_to_completion(self, handle: ProcessHandle) -> str: ...


def summarize_command(command: str, limit: int = _SUMMARY_LIMIT) -> str:
    """Shorten a command line for logging.

    Apply steps embed an entire serialized config in their arguments; logs
    only need the head of it.
    """
    flat = " ".join(command.split())
    if len(flat) <= limit:
        return flat
    return f"{flat[:limit]}... ({len(command)} chars)"


class AsyncioProcessManager:
    """Runs commands through the shell with :mod:`asyncio` subprocesses.

    ``env`` is overlaid on the current process environment for every child,
    which is how the deployer credential reaches the ``hyperlane`` CLI.
    """

    def __init__(
        self,
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout_seconds: float | None = None,
        inherit_env: bool = True,
    ) -> None:
        base = dict(os.environ) if inherit_env else {}
        self._env = {**base, **dict(env or {})}
        self._cwd = cwd
        self._timeout_seconds = timeout_seconds
        self._logger = get_logger(__name__)

    async def run(self, name: str, command: str) -> ProcessHandle:
        """Start ``command`` and return a handle without waiting for it."""
        with log_context(step=name):
            self._logger.info("Starting %s", summarize_command(command))
            try:
                process = await asyncio.create_subprocess_shell(
                    command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=self._env,
                    cwd=self._cwd,
                )
            except OSError as exc:
                raise ProcessExecutionError(name, f"failed to start: {exc}") from exc
        return ProcessHandle(name=name, command=command, process=process)

    async def focus_to_completion(self, handle: ProcessHandle) -> str:
        """Wait for the process behind ``handle`` and return its stdout.

        The child is killed if the wait times out or the calling task is
        cancelled.
        """
        process = handle.process
        if process is None:
            raise ProcessExecutionError(handle.name, "process was never started")

        with log_context(step=handle.name):
            try:
                if self._timeout_seconds is None:
                    stdout, stderr = await process.communicate()
                else:
                    stdout, stderr = await asyncio.wait_for(
                        process.communicate(), timeout=self._timeout_seconds
                    )
            except asyncio.TimeoutError:
                await self._kill(process)
                self._logger.error("Killed after %ss", self._timeout_seconds)
                raise ProcessTimeoutError(handle.name, self._timeout_seconds or 0.0)
            except asyncio.CancelledError:
                await self._kill(process)
                self._logger.warning("Killed after cancellation")
                raise

            out = stdout.decode("utf-8", errors="replace")
            err = stderr.decode("utf-8", errors="replace")
            if process.returncode != 0:
                self._logger.error(
                    "Exited with status %s: %s", process.returncode, err.strip()[-500:]
                )
                raise ProcessExecutionError(
                    handle.name,
                    f"exited with status {process.returncode}",
                    returncode=process.returncode,
                    stderr=err,
                )
            self._logger.info("Finished (%d bytes of output)", len(out))
            return out

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


__all__ = [
    "AsyncioProcessManager",
    "ProcessExecutionError",
    "ProcessHandle",
    "ProcessManager",
    "ProcessTimeoutError",
    "summarize_command",
]
