"""
TODO ENGINE - Filter Engine
===========================
Pure functions deriving the visible view and display helpers from a task
collection. Nothing here holds state; pass `today` to pin the calendar day.
"""

from datetime import date
from typing import Iterable, List, Optional

from .schema import ALL_CATEGORIES, FilterSpec, StatusFilter, Task, TaskStats


def is_overdue(task: Task, today: Optional[date] = None) -> bool:
    """Due strictly before today and not completed"""
    if task.due_date is None or task.completed:
        return False
    return task.due_date < (today or date.today())


def is_due_today(task: Task, today: Optional[date] = None) -> bool:
    return task.due_date is not None and task.due_date == (today or date.today())


def visible_tasks(
    tasks: Iterable[Task],
    spec: FilterSpec,
    today: Optional[date] = None,
) -> List[Task]:
    """Tasks matching spec, sorted by order"""
    today = today or date.today()
    filtered = list(tasks)

    if spec.category != ALL_CATEGORIES:
        filtered = [t for t in filtered if t.category == spec.category]

    if spec.status == StatusFilter.ACTIVE:
        filtered = [t for t in filtered if not t.completed]
    elif spec.status == StatusFilter.COMPLETED:
        filtered = [t for t in filtered if t.completed]
    elif spec.status == StatusFilter.OVERDUE:
        filtered = [t for t in filtered if is_overdue(t, today)]

    if spec.search:
        needle = spec.search.lower()
        filtered = [t for t in filtered if needle in t.text.lower()]

    filtered.sort(key=lambda t: t.order)
    return filtered


def calculate_stats(tasks: Iterable[Task]) -> TaskStats:
    tasks = list(tasks)
    completed = sum(1 for t in tasks if t.completed)
    return TaskStats(total=len(tasks), completed=completed, remaining=len(tasks) - completed)


def calculate_progress(tasks: Iterable[Task]) -> int:
    """Completion percentage, rounded"""
    return calculate_stats(tasks).progress_pct


def format_due_date(due: Optional[date], today: Optional[date] = None) -> str:
    """
    Relative label for a due date.

    Today / Tomorrow / Yesterday, "N days overdue" further back, otherwise
    "Mon D" with the year appended when it is not the current year.
    """
    if due is None:
        return ""
    today = today or date.today()
    diff = (due - today).days

    if diff == 0:
        return "Today"
    if diff == 1:
        return "Tomorrow"
    if diff == -1:
        return "Yesterday"
    if diff < -1:
        return f"{abs(diff)} days overdue"

    label = f"{due.strftime('%b')} {due.day}"
    if due.year != today.year:
        label += f", {due.year}"
    return label
