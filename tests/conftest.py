# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from todo_engine.categories import CategoryRegistry
from todo_engine.manager import TodoManager
from todo_engine.schema import Settings
from todo_engine.storage import Storage
from todo_engine.store import TaskStore

from .fakes import FakeConfirmer, FakeNotifier, RenderRecorder


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture()
def storage(data_dir: Path) -> Storage:
    return Storage(data_dir)


@pytest.fixture()
def store(storage: Storage) -> TaskStore:
    return TaskStore(storage)


@pytest.fixture()
def registry(storage: Storage, store: TaskStore) -> CategoryRegistry:
    """Registry with default settings; also validates categories for `store`"""
    reg = CategoryRegistry(storage, Settings(), store)
    store.category_validator = reg.is_valid
    return reg


@pytest.fixture()
def confirmer() -> FakeConfirmer:
    return FakeConfirmer(answer=True)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def recorder() -> RenderRecorder:
    return RenderRecorder()


@pytest.fixture()
def manager(
    storage: Storage,
    recorder: RenderRecorder,
    confirmer: FakeConfirmer,
    notifier: FakeNotifier,
) -> TodoManager:
    return TodoManager(storage, render=recorder, confirmer=confirmer, notifier=notifier)
