"""
TODO ENGINE - Personal Task Tracking Engine
===========================================

Task/category model, filtered views, drag-reorder reconciliation and a
versioned JSON persistence layer with export/import.

Usage:
    from todo_engine import Storage, TodoManager

    manager = TodoManager(Storage(".todo"))
    task = manager.add_task("Buy milk", category="shopping")
    manager.set_filter(status="active")

    # Drag completed in the UI: reorder what is visible
    manager.reorder([t.id for t in reversed(manager.visible_tasks())])

    backup = manager.export_data()
"""

from .categories import CategoryRegistry
from .errors import (
    CategoryNotFoundError,
    DuplicateError,
    MalformedDataError,
    ProtectedCategoryError,
    QuotaExceededError,
    StorageError,
    TodoError,
    ValidationError,
)
from .filters import calculate_stats, format_due_date, is_due_today, is_overdue, visible_tasks
from .manager import TodoManager
from .reorder import reorder_tasks
from .schema import (
    DATA_VERSION,
    DEFAULT_CATEGORIES,
    FALLBACK_CATEGORY,
    Category,
    FilterSpec,
    Settings,
    StatusFilter,
    Task,
    TaskStats,
    Theme,
)
from .storage import ImportResult, Storage
from .store import TaskStore

__version__ = "1.0.0"
__all__ = [
    "TodoManager",
    "TaskStore",
    "CategoryRegistry",
    "Storage",
    "ImportResult",
    "Task",
    "Category",
    "Settings",
    "FilterSpec",
    "StatusFilter",
    "TaskStats",
    "Theme",
    "DATA_VERSION",
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY",
    "visible_tasks",
    "reorder_tasks",
    "is_overdue",
    "is_due_today",
    "calculate_stats",
    "format_due_date",
    "TodoError",
    "ValidationError",
    "DuplicateError",
    "ProtectedCategoryError",
    "CategoryNotFoundError",
    "StorageError",
    "QuotaExceededError",
    "MalformedDataError",
]
