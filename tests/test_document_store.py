from datetime import datetime, timedelta, timezone

import pytest

from inkwell.infra.document_store import (
    DuplicateKeyError,
    MemoryDocumentStore,
    StoreError,
    YamlDocumentStore,
)


def test_insert_assigns_id_and_returns_copies():
    col = MemoryDocumentStore().collection("things")
    doc = {"name": "a", "tags": ["x"]}
    doc_id = col.insert_one(doc)
    assert doc_id and "_id" not in doc

    found = col.find_one({"_id": doc_id})
    found["tags"].append("mutated")
    assert col.find_one({"_id": doc_id})["tags"] == ["x"]


def test_operator_filters():
    col = MemoryDocumentStore().collection("things")
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    col.insert_one({"name": "old", "at": now - timedelta(hours=1)})
    col.insert_one({"name": "new", "at": now + timedelta(hours=1)})
    col.insert_one({"name": "none", "at": None})

    assert [d["name"] for d in col.find({"at": {"$gt": now}})] == ["new"]
    assert [d["name"] for d in col.find({"at": {"$lte": now}})] == ["old"]
    assert {d["name"] for d in col.find({"name": {"$in": ["old", "none"]}})} == {"old", "none"}
    assert col.count({"name": {"$ne": "old"}}) == 2


def test_unsupported_operator_is_rejected():
    col = MemoryDocumentStore().collection("things")
    col.insert_one({"n": 1})
    with pytest.raises(StoreError):
        col.find_one({"n": {"$regex": "1"}})
    with pytest.raises(StoreError):
        col.update_one({"n": 1}, {"$inc": {"n": 1}})


def test_unique_index_rejects_insert_and_update():
    col = MemoryDocumentStore().collection("users")
    col.create_index("email", unique=True)
    a = col.insert_one({"email": "a@x.com"})
    col.insert_one({"email": "b@x.com"})

    with pytest.raises(DuplicateKeyError):
        col.insert_one({"email": "a@x.com"})
    with pytest.raises(DuplicateKeyError):
        col.update_one({"_id": a}, {"$set": {"email": "b@x.com"}})
    assert col.count() == 2


def test_conditional_update_acts_as_compare_and_set():
    col = MemoryDocumentStore().collection("users")
    uid = col.insert_one({"token": "t1"})

    first = col.update_one({"_id": uid, "token": "t1"}, {"$set": {"token": None}})
    second = col.update_one({"_id": uid, "token": "t1"}, {"$set": {"token": None}})
    assert first.matched_count == 1
    assert second.matched_count == 0


def test_sort_and_delete():
    col = MemoryDocumentStore().collection("things")
    for n in (3, 1, 2):
        col.insert_one({"n": n})
    assert [d["n"] for d in col.find(sort=[("n", 1)])] == [1, 2, 3]
    assert [d["n"] for d in col.find(sort=[("n", -1)])] == [3, 2, 1]
    assert col.delete_one({"n": 2}).deleted_count == 1
    assert col.delete_one({"n": 2}).deleted_count == 0


def test_yaml_store_persists_between_instances(tmp_path):
    path = tmp_path / "data" / "inkwell.yml"
    expiry = datetime(2026, 1, 1, 13, 0, tzinfo=timezone.utc)

    s1 = YamlDocumentStore(path)
    s1.collection("users").create_index("email", unique=True)
    uid = s1.collection("users").insert_one({"email": "a@x.com", "resetTokenExpiry": expiry})
    assert path.exists()

    s2 = YamlDocumentStore(path)
    doc = s2.collection("users").find_one({"_id": uid})
    assert doc["email"] == "a@x.com"
    assert doc["resetTokenExpiry"] == expiry
    assert s2.collection("users").find_one({"resetTokenExpiry": {"$gt": expiry - timedelta(minutes=1)}})


def test_yaml_store_unreadable_file_is_store_error(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text("collections: [unclosed", encoding="utf-8")
    with pytest.raises(StoreError):
        YamlDocumentStore(path)


def test_yaml_store_failed_write_leaves_memory_untouched(tmp_path, monkeypatch):
    path = tmp_path / "inkwell.yml"
    store = YamlDocumentStore(path)
    col = store.collection("users")
    uid = col.insert_one({"email": "a@x.com", "password": "old"})
    gone = col.insert_one({"email": "b@x.com"})

    def _disk_full(self, target):
        raise OSError("disk full")

    monkeypatch.setattr(type(path), "replace", _disk_full)

    with pytest.raises(StoreError):
        col.update_one({"_id": uid}, {"$set": {"password": "new"}})
    with pytest.raises(StoreError):
        col.insert_one({"email": "c@x.com"})
    with pytest.raises(StoreError):
        col.delete_one({"_id": gone})

    assert col.find_one({"_id": uid})["password"] == "old"
    assert col.find_one({"email": "c@x.com"}) is None
    assert col.find_one({"_id": gone}) is not None
    assert col.count() == 2

    monkeypatch.undo()
    assert YamlDocumentStore(path).collection("users").find_one({"_id": uid})["password"] == "old"
