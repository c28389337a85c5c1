"""
TODO ENGINE - Todo Manager
==========================
Coordinates the task store, category registry and persistence layer for
one front end.

Control flow:
    Storage hydrates TaskStore and CategoryRegistry at construction
    -> user actions call the mutators here
    -> every mutation persists, then the render callback receives the
       recomputed visible view and statistics.

Destructive actions (delete, clear, category removal) ask the injected
Confirmer first. Each TodoManager is independent; tests build as many as
they need.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Any, List, Optional, Union

from .categories import CategoryRegistry
from .errors import MalformedDataError, StorageError, ValidationError
from .filters import calculate_stats, format_due_date, is_due_today, visible_tasks
from .ports import AutoConfirm, Confirmer, Notifier, RenderCallback
from .reminders import NEW_DUE_TODAY_TITLE, notify_due_today, run_due_date_checker
from .schema import (
    ALL_CATEGORIES,
    Category,
    FALLBACK_CATEGORY,
    FilterSpec,
    Settings,
    StatusFilter,
    Task,
    TaskStats,
    Theme,
    category_display_name,
)
from .storage import ImportResult, Storage, export_filename
from .store import TaskStore

logger = logging.getLogger("todo_engine.manager")


class TodoManager:
    """
    Personal task tracker.

    Primary storage: {data_dir}/tasks.json and {data_dir}/settings.json

    Key features:
    - Filtered, ordered views (category / status / search)
    - Drag-and-drop reordering that never reshuffles hidden tasks
    - Custom categories with reassignment on removal
    - Export / import of the whole state
    """

    def __init__(
        self,
        storage: Storage,
        render: Optional[RenderCallback] = None,
        confirmer: Optional[Confirmer] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.storage = storage
        self.render_callback = render
        self.confirmer = confirmer or AutoConfirm()
        self.notifier = notifier
        self.filters = FilterSpec()

        tasks, settings = storage.load()
        self.tasks = TaskStore(storage, tasks)
        self.categories = CategoryRegistry(storage, settings, self.tasks)
        self.tasks.category_validator = self.categories.is_valid

        # Stored tasks may reference categories that no longer exist
        self.tasks.reassign_invalid(self.categories.is_valid)

    @property
    def settings(self) -> Settings:
        return self.categories.settings

    # ========================================
    # VIEW
    # ========================================

    def visible_tasks(self, today: Optional[date] = None) -> List[Task]:
        return visible_tasks(self.tasks.all(), self.filters, today)

    def stats(self) -> TaskStats:
        return calculate_stats(self.tasks.all())

    def render(self) -> None:
        """Push the current view to the render callback, if any"""
        if self.render_callback is None:
            return
        self.render_callback(self.visible_tasks(), self.stats())

    def set_filter(
        self,
        category: Optional[str] = None,
        status: Optional[Union[StatusFilter, str]] = None,
        search: Optional[str] = None,
    ) -> List[Task]:
        """Change any part of the active filter; returns the new view"""
        if category is not None:
            if category != ALL_CATEGORIES and not self.categories.is_valid(category):
                logger.warning(f"Ignoring filter on unknown category '{category}'")
            else:
                self.filters.category = category
        if status is not None:
            try:
                self.filters.status = StatusFilter(status)
            except ValueError as e:
                raise ValidationError(f"Unknown status filter: {status}") from e
        if search is not None:
            self.filters.search = search
        self.render()
        return self.visible_tasks()

    # ========================================
    # TASK OPERATIONS
    # ========================================

    def add_task(self, text: str, category: str = FALLBACK_CATEGORY, due_date: Optional[date] = None) -> Task:
        """Create a task; alerts if it is due today"""
        try:
            task = self.tasks.add(text, category, due_date)
        finally:
            self.render()

        if self.notifier is not None and self.settings.notifications and is_due_today(task):
            self.notifier.notify(NEW_DUE_TODAY_TITLE, task.text, tag=f"task-{task.id}")
        return task

    def update_task(self, task_id: str, **changes: Any) -> None:
        try:
            self.tasks.update(task_id, **changes)
        finally:
            self.render()

    def toggle_task(self, task_id: str) -> None:
        try:
            self.tasks.toggle_completion(task_id)
        finally:
            self.render()

    async def delete_task(self, task_id: str) -> Optional[Task]:
        """Delete after confirmation; returns the removed task"""
        task = self.tasks.get(task_id)
        if task is None:
            return None

        confirmed = await self.confirmer.confirm(
            "Delete Task",
            f'Are you sure you want to delete "{task.text}"?',
        )
        if not confirmed:
            return None

        try:
            return self.tasks.remove(task_id)
        finally:
            self.render()

    async def clear_all(self) -> bool:
        confirmed = await self.confirmer.confirm(
            "Clear All Tasks",
            "Are you sure you want to delete all tasks? This action cannot be undone.",
        )
        if not confirmed:
            return False

        try:
            self.tasks.clear_all()
        finally:
            self.render()
        return True

    def reorder(self, new_order: List[str]) -> List[Task]:
        """
        Apply a drag-and-drop result.

        new_order is the desired sequence of the tasks visible under the
        active filter; tasks hidden by the filter keep their relative order
        behind the reordered block.
        """
        try:
            self.tasks.reorder(new_order)
        finally:
            self.render()
        return self.visible_tasks()

    # ========================================
    # CATEGORY OPERATIONS
    # ========================================

    def add_category(self, name: str, color: Optional[str] = None) -> Category:
        try:
            return self.categories.add(name, color)
        finally:
            self.render()

    async def remove_category(self, name: str) -> bool:
        """
        Remove a custom category after confirmation.

        Tasks using it are reassigned to the fallback category. Returns False
        if the user declined.
        """
        self.categories.check_removable(name)

        in_use = self.tasks.count_by_category(name)
        if in_use:
            message = (
                f"This category is used by {in_use} task(s). "
                f'Tasks will be reassigned to "{category_display_name(FALLBACK_CATEGORY)}". '
                "Do you want to continue?"
            )
        else:
            message = f'Are you sure you want to delete the category "{category_display_name(name)}"?'

        if not await self.confirmer.confirm("Delete Category", message):
            return False

        try:
            self.categories.remove(name)
        finally:
            if self.filters.category == name:
                self.filters.category = ALL_CATEGORIES
            self.render()
        return True

    # ========================================
    # SETTINGS
    # ========================================

    def set_theme(self, theme: Union[Theme, str]) -> Theme:
        try:
            theme = Theme(theme)
        except ValueError as e:
            raise ValidationError(f"Unknown theme: {theme}") from e
        self.categories.set_theme(theme)
        logger.info(f"🎨 Theme set to {self.settings.theme.value}")
        return self.settings.theme

    def toggle_theme(self) -> Theme:
        current = self.settings.theme
        return self.set_theme(Theme.DARK if current == Theme.LIGHT else Theme.LIGHT)

    def set_notifications(self, enabled: bool) -> None:
        self.categories.set_notifications(enabled)

    # ========================================
    # EXPORT / IMPORT
    # ========================================

    def export_data(self) -> str:
        """Serialize the in-memory state (authoritative even if a save failed)"""
        return self.storage.export_data(self.tasks.all(), self.settings)

    def export_to_file(self, path: Optional[Union[str, Path]] = None) -> Path:
        target = Path(path) if path else Path(export_filename())
        target.write_text(self.export_data(), encoding="utf-8")
        logger.info(f"📤 Export written to {target}")
        return target

    def import_data(self, text: str) -> ImportResult:
        """
        Replace state with an interchange payload.

        MalformedDataError leaves everything untouched. Imported settings are
        applied before imported tasks so their categories validate.

        All or nothing: if a save fails part way, the previous tasks,
        settings and filter are put back in memory and re-written, and the
        storage error propagates.
        """
        result = self.storage.import_data(text, self.settings)

        previous_settings = self.settings.model_copy(deep=True)
        previous_tasks = [task.model_copy() for task in self.tasks.all()]
        previous_category = self.filters.category

        try:
            if result.settings is not None:
                self.categories.replace_settings(result.settings)
                if self.filters.category != ALL_CATEGORIES and not self.categories.is_valid(self.filters.category):
                    self.filters.category = ALL_CATEGORIES
            if result.tasks is not None:
                self.tasks.replace_all(result.tasks)
            self.tasks.reassign_invalid(self.categories.is_valid)
        except StorageError:
            self._rollback(previous_settings, previous_tasks)
            self.filters.category = previous_category
            raise
        finally:
            self.render()

        logger.info(f"📥 Imported {len(result.tasks or [])} tasks ({result.dropped} dropped)")
        return result

    def _rollback(self, settings: Settings, tasks: List[Task]) -> None:
        """Reinstate a snapshot in memory, then try to put it back on disk"""
        self.categories.restore(settings)
        self.tasks.restore(tasks)
        # Settings first: the tasks may only fit the quota once the imported settings are gone
        for save in (self.categories.save, self.tasks.save):
            try:
                save()
            except StorageError as e:
                logger.warning(f"⚠️ Could not restore record after failed import: {e}")
        logger.warning("↩️ Import rolled back")

    async def import_file(self, path: Union[str, Path]) -> ImportResult:
        """Read a file off the event loop, then import it"""
        try:
            text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDataError(f"Not a UTF-8 text file: {path}") from e
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e.strerror or e}") from e
        return self.import_data(text)

    # ========================================
    # REMINDERS
    # ========================================

    def check_due_dates(self, today: Optional[date] = None) -> List[Task]:
        """Notify about incomplete tasks due today (read-only)"""
        if self.notifier is None or not self.settings.notifications:
            return []
        return notify_due_today(self.tasks.all(), self.notifier, today)

    async def run_reminders(self, interval_seconds: float = 60.0, max_runs: Optional[int] = None) -> None:
        await run_due_date_checker(self.check_due_dates, interval_seconds=interval_seconds, max_runs=max_runs)

    # ========================================
    # REPORTING
    # ========================================

    def get_status_report(self, today: Optional[date] = None) -> str:
        """Human-readable view of the visible tasks"""
        stats = self.stats()
        pct = stats.progress_pct
        lines = [
            f"📋 Tasks ({self.filters.category} / {self.filters.status.value}"
            + (f" / '{self.filters.search}'" if self.filters.search else "") + ")",
            f"Progress: {'█' * (pct // 10)}{'░' * (10 - pct // 10)} {pct}%",
            f"Total: {stats.total} | Completed: {stats.completed} | Remaining: {stats.remaining}",
            "",
        ]

        shown = self.visible_tasks(today)
        if not shown:
            lines.append("  (no tasks)")
        for task in shown:
            icon = "✅" if task.completed else "⬜"
            due = f" (due {format_due_date(task.due_date, today)})" if task.due_date else ""
            label = self.categories.display_name(task.category)
            lines.append(f"  {icon} [{task.id[:8]}] {task.text} #{label}{due}")

        return "\n".join(lines)
