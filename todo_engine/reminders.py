"""
Due-date reminders.

A read-only scan for incomplete tasks due today, and a small polling loop
that runs it on a fixed interval. The scan never mutates task state, so it
is safe to interleave with user-triggered mutations.
"""

import asyncio
import logging
from datetime import date
from typing import Callable, Iterable, List, Optional

from .filters import is_due_today
from .ports import Notifier
from .schema import Task

logger = logging.getLogger("todo_engine.reminders")

DUE_TODAY_TITLE = "Task due today!"
NEW_DUE_TODAY_TITLE = "New task due today!"


def find_due_today(tasks: Iterable[Task], today: Optional[date] = None) -> List[Task]:
    """Incomplete tasks due today, in total order"""
    due = [t for t in tasks if not t.completed and is_due_today(t, today)]
    due.sort(key=lambda t: t.order)
    return due


def notify_due_today(tasks: Iterable[Task], notifier: Notifier, today: Optional[date] = None) -> List[Task]:
    """Send one notification per task due today; returns the tasks notified"""
    due = find_due_today(tasks, today)
    for task in due:
        notifier.notify(DUE_TODAY_TITLE, task.text, tag=f"task-{task.id}")
    if due:
        logger.info(f"🔔 {len(due)} task(s) due today")
    return due


async def run_due_date_checker(
    check: Callable[[], object],
    *,
    interval_seconds: float = 60.0,
    max_runs: Optional[int] = None,
) -> None:
    """
    Call `check` now and then every interval_seconds.

    Failures are logged and the loop keeps going. To stop it, cancel the
    task, or pass max_runs.
    """
    sleep_s = max(0.01, float(interval_seconds))
    runs = 0

    while True:
        try:
            check()
        except Exception:
            logger.exception("due-date check failed")

        runs += 1
        if max_runs is not None and runs >= max_runs:
            return
        await asyncio.sleep(sleep_s)
