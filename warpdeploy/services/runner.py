"""Sequential execution of named command batches.

A batch is an ordered list of ``(name, command)`` pairs executed one after
the other. The caller either gets the stdout of every command keyed by name
or a :class:`CommandFailedError` naming the step that broke; outputs captured
before the failure are dropped with the batch.
"""

from __future__ import annotations

from collections.abc import Iterable

from warpdeploy.infrastructure.observability import (
    Timer,
    get_logger,
    log_context,
    log_exception,
    record_command_run,
)
from warpdeploy.infrastructure.process import (
    ProcessExecutionError,
    ProcessManager,
    ProcessTimeoutError,
)

Command = tuple[str, str]
CommandOutput = dict[str, str]


class CommandFailedError(Exception):
    """Raised when a command in a batch fails; carries the step name."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f"Command '{name}' failed: {cause}")
        self.name = name
        self.cause = cause

    @property
    def timed_out(self) -> bool:
        return isinstance(self.cause, ProcessTimeoutError)


class CommandRunner:
    """Runs command batches through a :class:`ProcessManager`.

    Names within a batch are expected to be unique. A repeated name is not
    rejected; the later command's output replaces the earlier one.
    """

    def __init__(self, manager: ProcessManager) -> None:
        self._manager = manager
        self._logger = get_logger(__name__)

    async def run_batch(self, commands: Iterable[Command]) -> CommandOutput:
        outputs: CommandOutput = {}
        for name, command in commands:
            outputs[name] = await self._run_one(name, command)
        return outputs

    async def run_one(self, name: str, command: str) -> str:
        """Run a single-command batch and return its output."""
        return (await self.run_batch([(name, command)]))[name]

    async def _run_one(self, name: str, command: str) -> str:
        with log_context(step=name), Timer() as timer:
            try:
                handle = await self._manager.run(name, command)
                output = await self._manager.focus_to_completion(handle)
            except ProcessExecutionError as exc:
                status = "timeout" if isinstance(exc, ProcessTimeoutError) else "failed"
                record_command_run(name, status, timer.elapsed_so_far())
                log_exception(self._logger, "Step failed", exc)
                raise CommandFailedError(name, exc) from exc
            except OSError as exc:
                record_command_run(name, "failed", timer.elapsed_so_far())
                log_exception(self._logger, "Step could not be started", exc)
                raise CommandFailedError(name, exc) from exc
        record_command_run(name, "success", timer.elapsed)
        return output


async def run_and_focus_multiple(
    manager: ProcessManager, commands: Iterable[Command]
) -> CommandOutput:
    """Run ``commands`` in order on ``manager`` and collect their output.

    Example::

        manager = AsyncioProcessManager()
        outputs = await run_and_focus_multiple(
            manager,
            [("greet", "echo hello"), ("list", "ls -l")],
        )
        outputs["greet"]  # "hello\\n"
    """
    return await CommandRunner(manager).run_batch(commands)


__all__ = [
    "Command",
    "CommandFailedError",
    "CommandOutput",
    "CommandRunner",
    "run_and_focus_multiple",
]
