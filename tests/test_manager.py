# tests/test_manager.py

from __future__ import annotations

import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from todo_engine.errors import (
    MalformedDataError,
    ProtectedCategoryError,
    QuotaExceededError,
    StorageError,
    ValidationError,
)
from todo_engine.manager import TodoManager
from todo_engine.reminders import DUE_TODAY_TITLE, NEW_DUE_TODAY_TITLE
from todo_engine.schema import StatusFilter, Theme
from todo_engine.storage import Storage

from .fakes import FakeConfirmer, FakeNotifier, RenderRecorder


def _ids(tasks) -> list[str]:
    return [t.id for t in tasks]


# ------------------------------------------------------------
# rendering and filters
# ------------------------------------------------------------

def test_every_mutation_renders(manager: TodoManager, recorder: RenderRecorder) -> None:
    task = manager.add_task("Write report", category="work")
    assert recorder.last[0] == [task.id]
    assert recorder.last[1].total == 1

    manager.toggle_task(task.id)
    assert recorder.last[1].completed == 1

    manager.update_task(task.id, text="Write final report")
    assert len(recorder.frames) == 3


def test_failed_mutation_still_renders(manager: TodoManager, recorder: RenderRecorder) -> None:
    with pytest.raises(ValidationError):
        manager.add_task("   ")
    assert len(recorder.frames) == 1
    assert recorder.last[0] == []


def test_set_filter_updates_view(manager: TodoManager, recorder: RenderRecorder) -> None:
    work = manager.add_task("Report", category="work")
    manager.add_task("Milk", category="shopping")

    shown = manager.set_filter(category="work")
    assert _ids(shown) == [work.id]
    assert recorder.last[0] == [work.id]
    assert recorder.last[1].total == 2

    manager.set_filter(category="all", status="completed")
    assert manager.visible_tasks() == []
    assert manager.filters.status == StatusFilter.COMPLETED


def test_set_filter_ignores_unknown_category(manager: TodoManager) -> None:
    manager.set_filter(category="ghost")
    assert manager.filters.category == "all"


def test_reorder_under_filter(manager: TodoManager) -> None:
    a = manager.add_task("A", category="work")
    b = manager.add_task("B", category="shopping")
    c = manager.add_task("C", category="work")

    manager.set_filter(category="work")
    shown = manager.reorder([c.id, a.id])

    assert _ids(shown) == [c.id, a.id]
    assert _ids(manager.tasks.all()) == [c.id, a.id, b.id]


def test_add_task_rejects_unknown_category(manager: TodoManager) -> None:
    with pytest.raises(ValidationError):
        manager.add_task("x", category="ghost")


# ------------------------------------------------------------
# destructive actions
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_asks_for_confirmation(manager: TodoManager, confirmer: FakeConfirmer) -> None:
    task = manager.add_task("Buy milk")

    removed = await manager.delete_task(task.id)

    assert removed is task
    assert confirmer.requests == [("Delete Task", 'Are you sure you want to delete "Buy milk"?')]
    assert manager.tasks.size() == 0


@pytest.mark.asyncio
async def test_declined_delete_keeps_task(storage: Storage) -> None:
    manager = TodoManager(storage, confirmer=FakeConfirmer(answer=False))
    task = manager.add_task("Keep")

    assert await manager.delete_task(task.id) is None
    assert manager.tasks.get(task.id) is task


@pytest.mark.asyncio
async def test_delete_unknown_does_not_prompt(manager: TodoManager, confirmer: FakeConfirmer) -> None:
    assert await manager.delete_task("missing") is None
    assert confirmer.requests == []


@pytest.mark.asyncio
async def test_clear_all(manager: TodoManager, storage: Storage) -> None:
    manager.add_task("a")
    manager.add_task("b")

    assert await manager.clear_all() is True
    assert storage.load_tasks() == []


@pytest.mark.asyncio
async def test_declined_clear_all(storage: Storage) -> None:
    manager = TodoManager(storage, confirmer=FakeConfirmer(answer=False))
    manager.add_task("a")

    assert await manager.clear_all() is False
    assert manager.tasks.size() == 1


@pytest.mark.asyncio
async def test_remove_category_reassigns_and_resets_filter(
    manager: TodoManager, confirmer: FakeConfirmer
) -> None:
    manager.add_category("gym", "#FF5722")
    a = manager.add_task("Leg day", category="gym")
    b = manager.add_task("Cardio", category="gym")
    manager.set_filter(category="gym")

    assert await manager.remove_category("gym") is True

    assert (a.category, b.category) == ("personal", "personal")
    assert manager.filters.category == "all"
    assert not manager.categories.is_valid("gym")
    title, message = confirmer.requests[-1]
    assert title == "Delete Category"
    assert "used by 2 task(s)" in message
    assert '"Personal"' in message


@pytest.mark.asyncio
async def test_remove_unused_category_message(manager: TodoManager, confirmer: FakeConfirmer) -> None:
    manager.add_category("travel")
    await manager.remove_category("travel")
    assert confirmer.requests[-1][1] == 'Are you sure you want to delete the category "Travel"?'


@pytest.mark.asyncio
async def test_remove_default_category_never_prompts(manager: TodoManager, confirmer: FakeConfirmer) -> None:
    with pytest.raises(ProtectedCategoryError):
        await manager.remove_category("work")
    assert confirmer.requests == []


# ------------------------------------------------------------
# settings
# ------------------------------------------------------------

def test_theme_persists(manager: TodoManager, storage: Storage) -> None:
    assert manager.toggle_theme() == Theme.DARK
    assert storage.load_settings().theme == Theme.DARK
    assert manager.set_theme("light") == Theme.LIGHT


def test_state_rehydrates(manager: TodoManager, storage: Storage) -> None:
    manager.add_category("gym")
    a = manager.add_task("Leg day", category="gym", due_date=date(2026, 11, 5))
    b = manager.add_task("Report", category="work")
    manager.toggle_task(b.id)
    manager.reorder([b.id, a.id])

    fresh = TodoManager(storage)

    assert _ids(fresh.tasks.all()) == [b.id, a.id]
    assert fresh.tasks.get(a.id).due_date == date(2026, 11, 5)
    assert fresh.tasks.get(b.id).completed is True
    assert fresh.categories.is_valid("gym")


def test_load_reassigns_tasks_with_unknown_categories(storage: Storage) -> None:
    storage.tasks_path.write_text(json.dumps({
        "version": 1,
        "tasks": [{"id": "x", "text": "orphan", "category": "deleted-cat"}],
    }), encoding="utf-8")

    manager = TodoManager(storage)

    assert manager.tasks.get("x").category == "personal"


# ------------------------------------------------------------
# export / import
# ------------------------------------------------------------

def test_export_then_import_restores_state(manager: TodoManager, tmp_path: Path) -> None:
    manager.add_category("gym", "#FF5722")
    manager.add_task("Leg day", category="gym")
    manager.add_task("Report", category="work")
    bundle = manager.export_data()

    other = TodoManager(Storage(tmp_path / "other"))
    result = other.import_data(bundle)

    assert [t.text for t in other.tasks.all()] == ["Leg day", "Report"]
    assert other.categories.is_valid("gym")
    assert result.message == "Data imported successfully"


def test_malformed_import_leaves_state(manager: TodoManager) -> None:
    task = manager.add_task("Keep me")

    with pytest.raises(MalformedDataError):
        manager.import_data('{"tasks": "not-an-array"}')

    assert _ids(manager.tasks.all()) == [task.id]


def test_import_resets_filter_on_vanished_category(manager: TodoManager) -> None:
    manager.add_category("gym")
    manager.set_filter(category="gym")

    manager.import_data(json.dumps({"settings": {"customCategories": []}}))

    assert manager.filters.category == "all"


def test_export_to_file(manager: TodoManager, tmp_path: Path) -> None:
    manager.add_task("a")
    path = manager.export_to_file(tmp_path / "backup.json")
    assert json.loads(path.read_text(encoding="utf-8"))["tasks"][0]["text"] == "a"


@pytest.mark.asyncio
async def test_import_file(manager: TodoManager, tmp_path: Path) -> None:
    source = tmp_path / "in.json"
    source.write_text(json.dumps({"tasks": [{"text": "From file"}]}), encoding="utf-8")

    result = await manager.import_file(source)

    assert [t.text for t in manager.tasks.all()] == ["From file"]
    assert result.dropped == 0


# ------------------------------------------------------------
# reminders
# ------------------------------------------------------------

def test_new_task_due_today_alerts(manager: TodoManager, notifier: FakeNotifier) -> None:
    task = manager.add_task("Pay rent", due_date=date.today())
    manager.add_task("Later", due_date=date.today() + timedelta(days=2))

    assert [(n.title, n.body, n.tag) for n in notifier.sent] == [
        (NEW_DUE_TODAY_TITLE, "Pay rent", f"task-{task.id}"),
    ]


def test_check_due_dates(manager: TodoManager, notifier: FakeNotifier) -> None:
    today = date(2026, 10, 19)
    due = manager.add_task("Due", due_date=today)
    done = manager.add_task("Done", due_date=today)
    manager.toggle_task(done.id)
    manager.add_task("Tomorrow", due_date=today + timedelta(days=1))
    notifier.sent.clear()

    assert _ids(manager.check_due_dates(today)) == [due.id]
    assert [(n.title, n.tag) for n in notifier.sent] == [(DUE_TODAY_TITLE, f"task-{due.id}")]


def test_check_due_dates_respects_setting(manager: TodoManager, notifier: FakeNotifier) -> None:
    manager.set_notifications(False)
    manager.add_task("Due", due_date=date.today())

    assert manager.check_due_dates() == []
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_run_reminders_bounded(manager: TodoManager, notifier: FakeNotifier) -> None:
    manager.add_task("Due", due_date=date.today())
    notifier.sent.clear()

    await manager.run_reminders(interval_seconds=0.01, max_runs=3)

    assert len(notifier.sent) == 3


def test_status_report(manager: TodoManager) -> None:
    manager.add_task("Report", category="work")
    report = manager.get_status_report()

    assert "Report" in report
    assert "#Work" in report
    assert "Total: 1 | Completed: 0 | Remaining: 1" in report


def test_set_filter_rejects_unknown_status(manager: TodoManager) -> None:
    with pytest.raises(ValidationError):
        manager.set_filter(status="bogus")
    assert manager.filters.status == StatusFilter.ALL


def test_set_theme_rejects_unknown_theme(manager: TodoManager, storage: Storage) -> None:
    with pytest.raises(ValidationError):
        manager.set_theme("neon")
    assert storage.load_settings().theme == Theme.LIGHT


# ------------------------------------------------------------
# failed imports roll back
# ------------------------------------------------------------

def _gym_manager(tmp_path: Path) -> TodoManager:
    manager = TodoManager(Storage(tmp_path / "small", quota_bytes=1500))
    manager.add_category("gym")
    manager.add_task("Leg day", category="gym")
    manager.set_filter(category="gym")
    return manager


def _assert_gym_state(manager: TodoManager) -> None:
    assert [c.name for c in manager.categories.custom()] == ["gym"]
    assert [(t.text, t.category) for t in manager.tasks.all()] == [("Leg day", "gym")]
    assert manager.filters.category == "gym"

    on_disk = manager.storage
    assert [c.name for c in on_disk.load_settings().custom_categories] == ["gym"]
    assert [(t.text, t.category) for t in on_disk.load_tasks()] == [("Leg day", "gym")]


def test_import_settings_over_quota_changes_nothing(tmp_path: Path) -> None:
    manager = _gym_manager(tmp_path)
    payload = json.dumps({"settings": {
        "customCategories": [{"name": f"c{i}", "color": "#123456"} for i in range(60)],
    }})

    with pytest.raises(QuotaExceededError):
        manager.import_data(payload)

    _assert_gym_state(manager)


def test_import_tasks_over_quota_restores_saved_settings(tmp_path: Path) -> None:
    manager = _gym_manager(tmp_path)
    payload = json.dumps({
        "settings": {"customCategories": []},
        "tasks": [{"text": "x" * 2000}],
    })

    with pytest.raises(QuotaExceededError):
        manager.import_data(payload)

    _assert_gym_state(manager)


@pytest.mark.asyncio
async def test_import_missing_file(manager: TodoManager, tmp_path: Path) -> None:
    task = manager.add_task("Keep")

    with pytest.raises(StorageError):
        await manager.import_file(tmp_path / "nope.json")

    assert _ids(manager.tasks.all()) == [task.id]


@pytest.mark.asyncio
async def test_import_binary_file(manager: TodoManager, tmp_path: Path) -> None:
    source = tmp_path / "blob.json"
    source.write_bytes(b"\xff\xfe\x00\x81garbage")

    with pytest.raises(MalformedDataError):
        await manager.import_file(source)
