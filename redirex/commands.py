"""Commands, composite commands, a command queue and exception routing."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable


class CommandError(RuntimeError):
    """Raised when a command, or a command composed of others, fails."""


class Command(ABC):
    """A unit of work that can be executed."""

    @abstractmethod
    def execute(self) -> None:
        """Carry out the command."""


class Handler(ABC):
    """Reacts to a command that failed."""

    @abstractmethod
    def handle(self, command: Command) -> None:
        """Deal with the failed command."""


class MacroCommand(Command):
    """Runs commands in order, stopping at the first failure."""

    def __init__(self, commands: Iterable[Command]) -> None:
        self._commands = list(commands)

    def execute(self) -> None:
        for command in self._commands:
            try:
                command.execute()
            except Exception as error:
                raise CommandError(str(error)) from error


class FallbackCommand(Command):
    """Runs commands in order until one of them succeeds."""

    def __init__(self, commands: Iterable[Command]) -> None:
        self._commands = list(commands)

    def execute(self) -> None:
        for command in self._commands:
            try:
                command.execute()
            except Exception:
                continue
            return
        raise CommandError("FallbackCommand: all commands failed")


class ExceptionManager:
    """Routes a failed command to a handler chosen by command and error type."""

    def __init__(self) -> None:
        self._handlers: dict[tuple[type, type], Handler] = {}

    def handle(self, error: BaseException, command: Command) -> None:
        """Pass the command to the handler registered for it, if any."""
        handler = self._handlers.get((type(command), type(error)))
        if handler is not None:
            handler.handle(command)

    def register_handler(
        self, command_type: type, error_type: type, handler: Handler
    ) -> None:
        """Register a handler; the first registration for a pair is kept."""
        self._handlers.setdefault((command_type, error_type), handler)

    def clear(self) -> None:
        """Forget all registered handlers."""
        self._handlers.clear()


class CommandQueue:
    """A double-ended queue of commands executed one at a time."""

    def __init__(
        self,
        exception_manager: ExceptionManager | None = None,
        commands: Iterable[Command] = (),
    ) -> None:
        self._exception_manager = exception_manager
        self._commands: deque[Command] = deque(commands)

    def push_back(self, command: Command) -> None:
        self._commands.append(command)

    def push_front(self, command: Command) -> None:
        self._commands.appendleft(command)

    def next(self) -> None:
        """Execute the command at the front; do nothing when empty.

        A failure goes to the exception manager when there is one and is
        raised otherwise.
        """
        if not self._commands:
            return
        command = self._commands.popleft()
        try:
            command.execute()
        except Exception as error:
            if self._exception_manager is None:
                raise
            self._exception_manager.handle(error, command)

    def __len__(self) -> int:
        return len(self._commands)