"""
TODO ENGINE - Task Store
========================
Owns the authoritative task collection. Every mutation is applied in memory
first and then persisted; if the save fails the in-memory state stays
authoritative and the storage error propagates to the caller.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from .errors import ValidationError
from .filters import calculate_stats
from .reorder import reorder_tasks
from .schema import FALLBACK_CATEGORY, Task, TaskStats, generate_id, parse_due_date
from .storage import Storage

logger = logging.getLogger("todo_engine.store")

UPDATABLE_FIELDS = ("text", "completed", "category", "due_date")


class TaskStore:
    """
    In-memory task collection backed by Storage.

    category_validator, when given, is consulted whenever a task is assigned
    a category; TodoManager wires it to CategoryRegistry.is_valid.
    """

    def __init__(
        self,
        storage: Storage,
        tasks: Optional[Iterable[Task]] = None,
        category_validator: Optional[Callable[[str], bool]] = None,
    ):
        self.storage = storage
        self.category_validator = category_validator
        self._tasks: List[Task] = list(tasks or [])
        self._normalize_order()

    # ========================================
    # QUERIES
    # ========================================

    def __len__(self) -> int:
        return len(self._tasks)

    def size(self) -> int:
        return len(self._tasks)

    def all(self) -> List[Task]:
        """Snapshot of the collection in total order"""
        return list(self._tasks)

    def get(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def count_by_category(self, category: str) -> int:
        return sum(1 for t in self._tasks if t.category == category)

    def stats(self) -> TaskStats:
        return calculate_stats(self._tasks)

    # ========================================
    # MUTATIONS
    # ========================================

    def add(self, text: str, category: str = FALLBACK_CATEGORY, due_date: Optional[date] = None) -> Task:
        """Create a task at the end of the total order"""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Task text must not be empty")
        self._check_category(category)

        task = Task(
            id=self._new_id(),
            text=text,
            category=category,
            due_date=due_date,
            order=len(self._tasks),
        )
        task.updated_at = task.created_at
        self._tasks.append(task)
        self.save()

        logger.info(f"➕ Added task {task.id}: {task.text}")
        return task

    def update(self, task_id: str, **changes: Any) -> None:
        """
        Apply a partial update (text, completed, category, due_date).

        Unknown ids are ignored. Invalid values raise ValidationError before
        anything changes.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        task = self.get(task_id)
        if task is None:
            logger.debug(f"Update ignored, no task {task_id}")
            return

        clean: Dict[str, Any] = {}
        if "text" in changes:
            text = (changes["text"] or "").strip()
            if not text:
                raise ValidationError("Task text must not be empty")
            clean["text"] = text
        if "completed" in changes:
            clean["completed"] = bool(changes["completed"])
        if "category" in changes:
            self._check_category(changes["category"])
            clean["category"] = changes["category"]
        if "due_date" in changes:
            due = changes["due_date"]
            if due is not None and not isinstance(due, date):
                parsed = parse_due_date(due)
                if parsed is None:
                    raise ValidationError(f"Invalid due date: {due!r}")
                due = parsed
            clean["due_date"] = due

        for field, value in clean.items():
            setattr(task, field, value)
        task.touch()
        self.save()
        logger.debug(f"✏️ Updated task {task_id}: {sorted(clean)}")

    def toggle_completion(self, task_id: str) -> None:
        task = self.get(task_id)
        if task is None:
            return
        task.completed = not task.completed
        task.touch()
        self.save()
        logger.debug(f"{'✅' if task.completed else '⬜'} Toggled task {task_id}")

    def remove(self, task_id: str) -> Optional[Task]:
        """Remove a task; returns it, or None if there was no such task"""
        task = self.get(task_id)
        if task is None:
            return None
        self._tasks.remove(task)
        self._normalize_order()
        self.save()
        logger.info(f"🗑️ Removed task {task_id}")
        return task

    def clear_all(self) -> None:
        count = len(self._tasks)
        self._tasks = []
        self.save()
        logger.info(f"🧹 Cleared {count} tasks")

    def reorder(self, new_order: Iterable[str]) -> List[Task]:
        """Apply a drag-and-drop permutation of visible ids"""
        self._tasks = reorder_tasks(self._tasks, new_order)
        self.save()
        return self.all()

    def reassign_category(self, old: str, new: str = FALLBACK_CATEGORY) -> int:
        """Move every task in `old` to `new`; returns how many moved"""
        moved = 0
        for task in self._tasks:
            if task.category == old:
                task.category = new
                task.touch()
                moved += 1
        if moved:
            self.save()
            logger.info(f"🔀 Reassigned {moved} tasks from '{old}' to '{new}'")
        return moved

    def reassign_invalid(self, is_valid: Callable[[str], bool], new: str = FALLBACK_CATEGORY) -> int:
        """Move tasks whose category no longer exists to `new`"""
        moved = 0
        for task in self._tasks:
            if not is_valid(task.category):
                task.category = new
                task.touch()
                moved += 1
        if moved:
            self.save()
            logger.warning(f"⚠️ Reassigned {moved} tasks with unknown categories to '{new}'")
        return moved

    def replace_all(self, tasks: Iterable[Task]) -> None:
        """Swap in a new collection (import)"""
        self._tasks = list(tasks)
        self._normalize_order()
        self.save()

    def restore(self, tasks: Iterable[Task]) -> None:
        """Put a snapshot back in memory without saving"""
        self._tasks = list(tasks)
        self._normalize_order()

    def save(self) -> None:
        self.storage.save_tasks(self._tasks)

    # ========================================
    # HELPER METHODS
    # ========================================

    def _check_category(self, category: Any) -> None:
        if not isinstance(category, str) or not category:
            raise ValidationError("Category is required")
        if self.category_validator is not None and not self.category_validator(category):
            raise ValidationError(f"Unknown category: {category}")

    def _new_id(self) -> str:
        existing = {t.id for t in self._tasks}
        task_id = generate_id()
        while task_id in existing:
            task_id = generate_id()
        return task_id

    def _normalize_order(self) -> None:
        """Sort by order and renumber densely 0..n-1"""
        indexed = sorted(enumerate(self._tasks), key=lambda pair: (pair[1].order, pair[0]))
        self._tasks = [task for _, task in indexed]
        for index, task in enumerate(self._tasks):
            task.order = index
