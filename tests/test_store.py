import json

import pytest

from lumin.db import SqlStore
from lumin.errors import ValidationError
from lumin.schemas import LessonDocument, UserRecord
from lumin.store import JsonFileStore


def _lesson(lesson, lesson_id, owner_id):
    return lesson.model_copy(update={"id": lesson_id, "owner_id": owner_id})


@pytest.fixture(params=["json", "sql"])
def any_store(request, tmp_path):
    if request.param == "json":
        return JsonFileStore(tmp_path / "database.json")
    return SqlStore(f"sqlite:///{tmp_path / 'lumin.db'}")


def test_users(any_store):
    assert any_store.get_user("alice") is None
    any_store.add_user(UserRecord(id="u1", username="alice", password_hash="h"))
    assert any_store.get_user("alice") == UserRecord(id="u1", username="alice", password_hash="h")
    with pytest.raises(ValidationError):
        any_store.add_user(UserRecord(id="u2", username="alice", password_hash="other"))


def test_lessons_are_owner_scoped(any_store, lesson):
    mine = _lesson(lesson, "l1", "alice")
    theirs = _lesson(lesson, "l2", "bob")
    any_store.put_lesson(mine)
    any_store.put_lesson(theirs)

    assert any_store.list_lessons("alice") == [mine]
    assert any_store.list_lessons("bob") == [theirs]
    assert any_store.list_lessons("carol") == []
    assert any_store.get_lesson("l1", "alice") == mine
    assert any_store.get_lesson("l1", "bob") is None
    assert any_store.get_lesson("nope", "alice") is None


def test_delete_only_on_owner_match(any_store, lesson):
    any_store.put_lesson(_lesson(lesson, "l1", "alice"))

    assert any_store.delete_lesson("l1", "bob") is False
    assert any_store.delete_lesson("missing", "alice") is False
    assert len(any_store.list_lessons("alice")) == 1

    assert any_store.delete_lesson("l1", "alice") is True
    assert any_store.list_lessons("alice") == []
    assert any_store.delete_lesson("l1", "alice") is False


def test_lesson_ids_unique_across_owners(any_store, lesson):
    any_store.put_lesson(_lesson(lesson, "l1", "alice"))
    with pytest.raises(ValidationError):
        any_store.put_lesson(_lesson(lesson, "l1", "bob"))


def test_json_file_layout_and_reopen(tmp_path, lesson):
    path = tmp_path / "nested" / "database.json"
    store = JsonFileStore(path)
    store.add_user(UserRecord(id="u1", username="alice", password_hash="h"))
    store.put_lesson(_lesson(lesson, "l1", "u1"))

    data = json.loads(path.read_text())
    assert set(data) == {"users", "lessons"}
    assert data["users"] == [{"id": "u1", "username": "alice", "passwordHash": "h"}]
    stored = data["lessons"][0]
    assert stored["ownerId"] == "u1"
    assert stored["sections"][2]["diagramType"] == "mermaid"
    assert stored["sections"][6]["starterCode"].startswith("def fib")

    reopened = JsonFileStore(path)
    assert reopened.get_user("alice").id == "u1"
    assert reopened.list_lessons("u1") == [LessonDocument.model_validate(stored)]


def test_json_noop_delete_leaves_file_untouched(tmp_path, lesson):
    path = tmp_path / "database.json"
    store = JsonFileStore(path)
    store.put_lesson(_lesson(lesson, "l1", "alice"))
    before = path.read_bytes()

    store.delete_lesson("l1", "mallory")
    assert path.read_bytes() == before


def test_json_store_missing_file_reads_empty(tmp_path):
    store = JsonFileStore(tmp_path / "absent.json")
    assert store.list_lessons("anyone") == []
    assert store.get_user("anyone") is None
    assert not (tmp_path / "absent.json").exists()
