"""
Ports (interfaces) consumed by the engine.

The engine never talks to a screen, a dialog or a notification centre
directly; front ends inject implementations of these Protocols into
TodoManager. Tests use the fakes in tests/fakes.py.
"""

from typing import Awaitable, List, Optional, Protocol

from .schema import Task, TaskStats


class RenderCallback(Protocol):
    """Receives the visible task sequence and aggregate statistics after every change"""

    def __call__(self, tasks: List[Task], stats: TaskStats) -> None: ...


class Confirmer(Protocol):
    """Asks the user to confirm a destructive action"""

    def confirm(self, title: str, message: str) -> Awaitable[bool]: ...


class Notifier(Protocol):
    """Displays a due-date alert"""

    def notify(self, title: str, body: str, tag: Optional[str] = None) -> None: ...


class AutoConfirm:
    """Confirmer that answers every request with a fixed value"""

    def __init__(self, answer: bool = True):
        self.answer = answer

    async def confirm(self, title: str, message: str) -> bool:
        return self.answer
