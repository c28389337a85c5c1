"""
TODO ENGINE - Persistence Layer
===============================
Owns the durable representation of tasks and settings.

Two independent JSON records live in the data directory:
    tasks.json     {tasks, version, lastUpdated}
    settings.json  {theme, categories, customCategories, notifications}

Writes go to a temporary file that replaces the record in one step, so a
failed save leaves the previous record intact. Reads never fail: a missing
or unparsable record degrades to an empty/default one.
"""

import contextlib
import errno
import json
import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel

from .errors import MalformedDataError, QuotaExceededError, StorageError
from .schema import (
    DATA_VERSION,
    FALLBACK_CATEGORY,
    Settings,
    Task,
    generate_id,
    sanitize_task,
    utcnow,
)

logger = logging.getLogger("todo_engine.storage")

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def export_filename(today: Optional[date] = None) -> str:
    """Default file name for an export bundle"""
    today = today or date.today()
    return f"todo-app-backup-{today.isoformat()}.json"


class ImportResult(BaseModel):
    """Sanitized content of an import payload, ready to be applied"""
    tasks: Optional[List[Task]] = None      # None: payload had no tasks
    settings: Optional[Settings] = None     # None: payload had no settings
    dropped: int = 0
    reassigned: int = 0
    message: str = ""


def _dedupe_ids(tasks: Iterable[Task]) -> List[Task]:
    """Give every repeated id after the first a fresh one"""
    seen: Set[str] = set()
    out: List[Task] = []
    for task in tasks:
        if task.id in seen:
            new_id = generate_id()
            logger.warning(f"Duplicate task id {task.id} replaced with {new_id}")
            task.id = new_id
        seen.add(task.id)
        out.append(task)
    return out


class Storage:
    """
    File-based record store.

    quota_bytes caps the combined size of both records; a save that would
    exceed it raises QuotaExceededError, as does a full disk.
    """

    TASKS_FILE = "tasks.json"
    SETTINGS_FILE = "settings.json"

    def __init__(self, data_dir: str = ".todo", quota_bytes: Optional[int] = None):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes or None

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / self.TASKS_FILE

    @property
    def settings_path(self) -> Path:
        return self.data_dir / self.SETTINGS_FILE

    # ========================================
    # LOW-LEVEL RECORD I/O
    # ========================================

    def _read_json(self, path: Path) -> Any:
        """Parsed JSON content, or None when the file is absent or unreadable"""
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Unreadable record {path.name}: {e}")
            return None

    def _check_quota(self, path: Path, size: int) -> None:
        if not self.quota_bytes:
            return
        used = size
        for other in (self.tasks_path, self.settings_path):
            if other != path and other.exists():
                used += other.stat().st_size
        if used > self.quota_bytes:
            raise QuotaExceededError(
                f"Storage quota exceeded ({used} > {self.quota_bytes} bytes). "
                "Delete some tasks or export your data."
            )

    def _write_record(self, path: Path, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        self._check_quota(path, len(data))

        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            if e.errno in _QUOTA_ERRNOS:
                raise QuotaExceededError(f"No space left writing {path.name}") from e
            raise StorageError(f"Could not write {path.name}: {e}") from e

    # ========================================
    # TASK RECORD
    # ========================================

    @staticmethod
    def empty_record() -> Dict[str, Any]:
        return {"tasks": [], "version": DATA_VERSION, "lastUpdated": _iso(utcnow())}

    def load_record(self) -> Dict[str, Any]:
        """Raw task record; empty current-version record if missing or unparsable"""
        data = self._read_json(self.tasks_path)
        if data is None:
            return self.empty_record()
        if not isinstance(data, dict):
            logger.warning("⚠️ Task record is not an object; starting empty")
            return self.empty_record()
        return data

    def migrate(self, old_record: Any) -> Dict[str, Any]:
        """
        Bring a task record to DATA_VERSION.

        Fills missing id/createdAt/updatedAt per task and stamps the version.
        Only absent values are filled, so migrating migrated data changes
        nothing.
        """
        tasks = old_record.get("tasks") if isinstance(old_record, dict) else None
        if not isinstance(tasks, list):
            tasks = []

        now = _iso(utcnow())
        migrated = []
        for task in tasks:
            if not isinstance(task, dict):
                continue
            migrated.append({
                **task,
                "id": task.get("id") or generate_id(),
                "createdAt": task.get("createdAt") or now,
                "updatedAt": task.get("updatedAt") or now,
            })

        last_updated = old_record.get("lastUpdated") if isinstance(old_record, dict) else None
        return {
            "tasks": migrated,
            "version": DATA_VERSION,
            "lastUpdated": last_updated or now,
        }

    def load_tasks(self) -> List[Task]:
        """Load tasks, migrating the stored record first if its version is stale"""
        record = self.load_record()

        if record.get("version") != DATA_VERSION:
            old_version = record.get("version")
            record = self.migrate(record)
            logger.info(f"🔧 Migrated task record v{old_version} -> v{DATA_VERSION}")
            try:
                self._write_record(self.tasks_path, record)
            except StorageError as e:
                logger.warning(f"⚠️ Migrated record not written back: {e}")

        raw_tasks = record.get("tasks")
        if not isinstance(raw_tasks, list):
            raw_tasks = []

        tasks: List[Task] = []
        for index, raw in enumerate(raw_tasks):
            task = sanitize_task(raw, fallback_order=index)
            if task is not None:
                tasks.append(task)

        dropped = len(raw_tasks) - len(tasks)
        if dropped:
            logger.warning(f"⚠️ Dropped {dropped} malformed task entries on load")
        return _dedupe_ids(tasks)

    def save_tasks(self, tasks: Iterable[Task]) -> None:
        """Overwrite the task record"""
        records = [task.to_record() for task in tasks]
        self._write_record(self.tasks_path, {
            "tasks": records,
            "version": DATA_VERSION,
            "lastUpdated": _iso(utcnow()),
        })
        logger.debug(f"💾 Saved {len(records)} tasks")

    # ========================================
    # SETTINGS RECORD
    # ========================================

    def load_settings(self) -> Settings:
        """Stored settings, or defaults when missing or unparsable"""
        data = self._read_json(self.settings_path)
        if data is None:
            return Settings()
        return Settings.from_raw(data)

    def save_settings(self, settings: Settings) -> None:
        """Overwrite the settings record"""
        self._write_record(self.settings_path, settings.to_record())
        logger.debug("💾 Saved settings")

    def load(self) -> Tuple[List[Task], Settings]:
        """Hydrate both records"""
        tasks = self.load_tasks()
        settings = self.load_settings()
        logger.info(f"📂 Loaded {len(tasks)} tasks from {self.data_dir}")
        return tasks, settings

    # ========================================
    # EXPORT / IMPORT
    # ========================================

    def export_data(self, tasks: Iterable[Task], settings: Settings) -> str:
        """Serialize tasks and settings into the interchange format"""
        records = [task.to_record() for task in tasks]
        bundle = {
            "tasks": records,
            "settings": settings.to_record(),
            "version": DATA_VERSION,
            "exportDate": _iso(utcnow()),
        }
        logger.info(f"📤 Exported {len(records)} tasks")
        return json.dumps(bundle, indent=2, ensure_ascii=False)

    def import_data(self, text: str, current_settings: Settings) -> ImportResult:
        """
        Parse and sanitize an interchange payload.

        Raises MalformedDataError when the payload is not a JSON object or its
        tasks/settings have the wrong shape; nothing is applied in that case.
        Task entries are sanitized one by one: non-objects and entries without
        text are dropped, missing fields are defaulted. Settings are
        shallow-merged onto current_settings. Tasks that reference a category
        unknown to the resulting settings move to the fallback category.

        The result is not persisted here; TodoManager applies it through the
        task store and category registry.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedDataError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedDataError("Invalid data format: expected an object")

        raw_tasks = data.get("tasks")
        raw_settings = data.get("settings")
        if raw_tasks is not None and not isinstance(raw_tasks, list):
            raise MalformedDataError("Invalid data format: 'tasks' must be a list")
        if raw_settings is not None and not isinstance(raw_settings, dict):
            raise MalformedDataError("Invalid data format: 'settings' must be an object")

        result = ImportResult()

        effective = current_settings
        if raw_settings is not None:
            effective = Settings.from_raw({**current_settings.to_record(), **raw_settings})
            result.settings = effective

        if raw_tasks is not None:
            known = set(effective.categories)
            known.update(c.name for c in effective.custom_categories)
            known.add(FALLBACK_CATEGORY)

            tasks: List[Task] = []
            for index, raw in enumerate(raw_tasks):
                task = sanitize_task(raw, fallback_order=index)
                if task is None:
                    result.dropped += 1
                    continue
                if task.category not in known:
                    task.category = FALLBACK_CATEGORY
                    result.reassigned += 1
                tasks.append(task)
            result.tasks = _dedupe_ids(tasks)

        if result.tasks is None and result.settings is None:
            result.message = "Nothing to import"
        else:
            result.message = "Data imported successfully"
        if result.dropped:
            logger.warning(f"⚠️ Import dropped {result.dropped} malformed task entries")
        logger.info(
            f"📥 Parsed import: {len(result.tasks or [])} tasks, "
            f"settings={'yes' if result.settings else 'no'}"
        )
        return result
