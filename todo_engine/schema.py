"""
TODO ENGINE - Schema Definition
===============================
Task, category and settings models plus the lenient sanitiser used when
reading data the engine did not write itself (older records, imports).

Wire names are camelCase (dueDate, createdAt, customCategories...) so the
durable records stay compatible with exports made by the browser app.
"""

import re
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError


DATA_VERSION = 1

ALL_CATEGORIES = "all"
DEFAULT_CATEGORIES = ("work", "personal", "school", "shopping")
FALLBACK_CATEGORY = "personal"  # target of reassignment on category removal

CATEGORY_COLORS: Dict[str, str] = {
    "work": "#2196F3",
    "personal": "#4CAF50",
    "school": "#FF9800",
    "shopping": "#9C27B0",
}
DEFAULT_CATEGORY_COLOR = "#757575"
DEFAULT_CUSTOM_COLOR = "#4CAF50"

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Opaque unique task id"""
    return uuid.uuid4().hex


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Theme(str, Enum):
    """Display theme"""
    LIGHT = "light"
    DARK = "dark"


class StatusFilter(str, Enum):
    """Completion-state filter for the visible view"""
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"   # due before today and not completed


class Task(BaseModel):
    """Individual to-do item"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    text: str
    completed: bool = False
    category: str = FALLBACK_CATEGORY
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")
    order: int = 0  # position in the global total order

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("task text must not be empty")
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _day_only(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return value.strip()[:10]
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _updated_not_before_created(self) -> "Task":
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at
        return self

    def touch(self) -> None:
        """Refresh updated_at without ever moving it backwards"""
        self.updated_at = max(utcnow(), self.updated_at)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def category_display_name(name: str) -> str:
    """'work' -> 'Work'"""
    return name[:1].upper() + name[1:]


class Category(BaseModel):
    """
    A named task grouping.

    Default categories carry no stored color (they use CATEGORY_COLORS);
    custom categories always carry one. is_default is never persisted: the
    settings record keeps defaults and customs in separate lists.
    """
    name: str
    color: Optional[str] = None
    is_default: bool = Field(default=False, exclude=True)

    @property
    def display_name(self) -> str:
        return category_display_name(self.name)

    @property
    def display_color(self) -> str:
        if not self.is_default and self.color:
            return self.color
        return CATEGORY_COLORS.get(self.name, DEFAULT_CATEGORY_COLOR)


class Settings(BaseModel):
    """Process-wide configuration persisted as the settings record"""
    model_config = ConfigDict(populate_by_name=True)

    theme: Theme = Theme.LIGHT
    categories: List[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    custom_categories: List[Category] = Field(default_factory=list, alias="customCategories")
    notifications: bool = True

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_raw(cls, raw: Any) -> "Settings":
        """Build settings from an untrusted mapping, defaulting anything unusable"""
        if not isinstance(raw, dict):
            return cls()

        try:
            theme = Theme(raw.get("theme", Theme.LIGHT.value))
        except ValueError:
            theme = Theme.LIGHT

        categories = raw.get("categories")
        if isinstance(categories, list):
            names: List[str] = []
            for name in categories:
                if isinstance(name, str) and name.strip() and name.strip() not in names:
                    names.append(name.strip())
        else:
            names = list(DEFAULT_CATEGORIES)

        custom: List[Category] = []
        raw_custom = raw.get("customCategories")
        if isinstance(raw_custom, list):
            for entry in raw_custom:
                # Legacy records stored bare names
                if isinstance(entry, str):
                    entry = {"name": entry}
                if not isinstance(entry, dict):
                    continue
                name = entry.get("name")
                if not isinstance(name, str) or not name.strip():
                    continue
                color = entry.get("color")
                if not isinstance(color, str) or not HEX_COLOR_RE.match(color):
                    color = DEFAULT_CUSTOM_COLOR
                if any(c.name == name.strip() for c in custom):
                    continue
                custom.append(Category(name=name.strip(), color=color))

        notifications = raw.get("notifications", True)
        return cls(
            theme=theme,
            categories=names,
            custom_categories=custom,
            notifications=bool(notifications),
        )


class FilterSpec(BaseModel):
    """Transient view criteria, never persisted"""
    category: str = ALL_CATEGORIES
    status: StatusFilter = StatusFilter.ALL
    search: str = ""


class TaskStats(BaseModel):
    """Aggregate counts over the whole collection"""
    total: int = 0
    completed: int = 0
    remaining: int = 0

    @property
    def progress_pct(self) -> int:
        if not self.total:
            return 0
        return int(self.completed * 100 / self.total + 0.5)


# ============================================================
# LENIENT PARSING (imports, old records)
# ============================================================

_DATETIME = TypeAdapter(datetime)
_DATE = TypeAdapter(date)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp, or None if absent or unparsable"""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return _as_utc(_DATETIME.validate_python(value))
    except PydanticValidationError:
        return None


def parse_due_date(value: Any) -> Optional[date]:
    """Parse a due date at day granularity, or None"""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()[:10]
    try:
        return _DATE.validate_python(value)
    except PydanticValidationError:
        return None


def _coerce_order(value: Any, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return fallback


def sanitize_task(raw: Any, *, fallback_order: int = 0) -> Optional[Task]:
    """
    Turn one untrusted task entry into a Task.

    Missing fields get defaults (completed=False, category=personal, fresh
    id/timestamps). Returns None for entries that cannot be a task at all:
    non-objects and entries without usable text.
    """
    if not isinstance(raw, dict):
        return None

    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    raw_id = raw.get("id")
    if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) and str(raw_id).strip():
        task_id = str(raw_id).strip()
    else:
        task_id = generate_id()

    category = raw.get("category")
    if not isinstance(category, str) or not category.strip():
        category = FALLBACK_CATEGORY

    now = utcnow()
    try:
        return Task(
            id=task_id,
            text=text,
            completed=bool(raw.get("completed")),
            category=category.strip(),
            due_date=parse_due_date(raw.get("dueDate")),
            created_at=parse_timestamp(raw.get("createdAt")) or now,
            updated_at=parse_timestamp(raw.get("updatedAt")) or now,
            order=_coerce_order(raw.get("order"), fallback_order),
        )
    except PydanticValidationError:
        return None
