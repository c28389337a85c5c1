"""
TODO ENGINE - Category Registry
===============================
Default categories are fixed and protected; custom categories are created
and removed by the user. Both live in Settings, which this registry owns
together with the other user preferences (theme, notifications).

Invariant: the fallback category ("personal") is always a default category,
since removal of a custom category reassigns its tasks there.
"""

import logging
from typing import List, Optional

from .errors import CategoryNotFoundError, DuplicateError, ProtectedCategoryError, ValidationError
from .schema import (
    DEFAULT_CUSTOM_COLOR,
    FALLBACK_CATEGORY,
    HEX_COLOR_RE,
    Category,
    Settings,
    Theme,
)
from .storage import Storage
from .store import TaskStore

logger = logging.getLogger("todo_engine.categories")


class CategoryRegistry:
    """Category definitions and preferences, persisted as the settings record"""

    def __init__(self, storage: Storage, settings: Settings, task_store: TaskStore):
        self.storage = storage
        self.task_store = task_store
        self.settings = self._ensure_fallback(settings)

    @staticmethod
    def _ensure_fallback(settings: Settings) -> Settings:
        if FALLBACK_CATEGORY not in settings.categories:
            logger.warning(f"⚠️ Fallback category '{FALLBACK_CATEGORY}' missing from defaults; restoring it")
            settings.categories.append(FALLBACK_CATEGORY)
        # A custom entry cannot shadow a protected name
        settings.custom_categories = [
            c for c in settings.custom_categories if c.name not in settings.categories
        ]
        return settings

    # ========================================
    # QUERIES
    # ========================================

    def defaults(self) -> List[Category]:
        return [Category(name=name, is_default=True) for name in self.settings.categories]

    def custom(self) -> List[Category]:
        return [Category(name=c.name, color=c.color) for c in self.settings.custom_categories]

    def all(self) -> List[Category]:
        """Defaults first, then custom categories, in stored order"""
        return self.defaults() + self.custom()

    def names(self) -> List[str]:
        return [c.name for c in self.all()]

    def get(self, name: str) -> Optional[Category]:
        for category in self.all():
            if category.name == name:
                return category
        return None

    def is_valid(self, name: str) -> bool:
        """Exact (case-sensitive) match against stored names"""
        return name in self.settings.categories or any(
            c.name == name for c in self.settings.custom_categories
        )

    def is_default(self, name: str) -> bool:
        return name in self.settings.categories

    def display_name(self, name: str) -> str:
        category = self.get(name)
        return category.display_name if category else Category(name=name).display_name

    def color_for(self, name: str) -> str:
        category = self.get(name) or Category(name=name, is_default=True)
        return category.display_color

    # ========================================
    # MUTATIONS
    # ========================================

    def add(self, name: str, color: Optional[str] = None) -> Category:
        """Create a custom category; the name is trimmed and lowercased"""
        key = (name or "").strip().lower()
        if not key:
            raise ValidationError("Please enter a category name")
        if key == "all":
            raise ValidationError("'all' is reserved")
        if self.is_valid(key) or any(n.lower() == key for n in self.names()):
            raise DuplicateError(f"Category already exists: {key}")

        color = color or DEFAULT_CUSTOM_COLOR
        if not HEX_COLOR_RE.match(color):
            raise ValidationError(f"Invalid color: {color}")

        category = Category(name=key, color=color)
        self.settings.custom_categories.append(category)
        self.save()
        logger.info(f"🏷️ Added category '{key}' ({color})")
        return category

    def check_removable(self, name: str) -> None:
        """Raise if `name` cannot be removed"""
        if self.is_default(name):
            raise ProtectedCategoryError("Default categories cannot be removed.")
        if not any(c.name == name for c in self.settings.custom_categories):
            raise CategoryNotFoundError(f"No custom category named '{name}'")

    def remove(self, name: str) -> int:
        """
        Remove a custom category.

        Tasks referencing it are first moved to the fallback category (a
        destructive reassignment the caller is expected to have confirmed).
        Returns how many tasks were reassigned.
        """
        self.check_removable(name)

        reassigned = self.task_store.reassign_category(name, FALLBACK_CATEGORY)
        self.settings.custom_categories = [
            c for c in self.settings.custom_categories if c.name != name
        ]
        self.save()
        logger.info(f"🗑️ Removed category '{name}' ({reassigned} tasks reassigned)")
        return reassigned

    def set_theme(self, theme: Theme) -> None:
        self.settings.theme = Theme(theme)
        self.save()

    def set_notifications(self, enabled: bool) -> None:
        self.settings.notifications = bool(enabled)
        self.save()

    def replace_settings(self, settings: Settings) -> None:
        """Adopt imported settings"""
        self.settings = self._ensure_fallback(settings)
        self.save()

    def restore(self, settings: Settings) -> None:
        self.settings = self._ensure_fallback(settings)

    def save(self) -> None:
        self.storage.save_settings(self.settings)
