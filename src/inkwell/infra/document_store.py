# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Document store used by the whole application.

Collections hold plain dict documents keyed by ``_id``. The API mirrors the
subset of a MongoDB collection the app needs:

- ``find_one`` / ``find`` with equality filters and ``$gt``, ``$gte``,
  ``$lt``, ``$lte``, ``$ne``, ``$in`` operators
- ``insert_one`` (assigns ``_id``), ``update_one`` with ``$set`` / ``$unset``,
  ``delete_one``
- unique indexes (``create_index(field, unique=True)``)

Every single-document operation is atomic: the filter is evaluated and the
write applied under the store lock, so ``update_one`` doubles as a
compare-and-set.
"""

from __future__ import annotations

import copy
import logging
import operator
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import yaml

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Filter = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]


class StoreError(Exception):
    """Store unavailable or operation rejected."""


class DuplicateKeyError(StoreError):
    def __init__(self, collection: str, field: str, value: Any):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Duplicate key in '{collection}': {field}={value!r}")


@dataclass(frozen=True)
class UpdateResult:
    matched_count: int
    modified_count: int


@dataclass(frozen=True)
class DeleteResult:
    deleted_count: int


def _cmp(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def _apply(value: Any, arg: Any) -> bool:
        if value is None or arg is None:
            return False
        try:
            return bool(op(value, arg))
        except TypeError:
            return False

    return _apply


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$gt": _cmp(operator.gt),
    "$gte": _cmp(operator.ge),
    "$lt": _cmp(operator.lt),
    "$lte": _cmp(operator.le),
    "$ne": lambda value, arg: value != arg,
    "$in": lambda value, arg: value in (arg or ()),
}


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, dict) and bool(cond) and all(str(k).startswith("$") for k in cond)


def matches(doc: Document, flt: Optional[Filter]) -> bool:
    for key, cond in (flt or {}).items():
        value = doc.get(key)
        if _is_operator_dict(cond):
            for op_name, arg in cond.items():
                op = _OPERATORS.get(op_name)
                if op is None:
                    raise StoreError(f"Unsupported filter operator: {op_name}")
                if not op(value, arg):
                    return False
        elif value != cond:
            return False
    return True


def apply_update(doc: Document, update: Dict[str, Any]) -> Document:
    """Return a new document with ``$set`` / ``$unset`` applied."""
    unknown = [k for k in update if k not in ("$set", "$unset")]
    if unknown:
        raise StoreError(f"Unsupported update operator(s): {', '.join(unknown)}")
    out = dict(doc)
    for key, value in (update.get("$set") or {}).items():
        if key == "_id":
            raise StoreError("_id is immutable")
        out[key] = copy.deepcopy(value)
    for key in update.get("$unset") or {}:
        out.pop(key, None)
    return out


def _sort_key(field: str):
    def _key(doc: Document):
        v = doc.get(field)
        return (v is not None, v)

    return _key


class Collection:
    """Collection-scoped view over a store."""

    def __init__(self, store: "MemoryDocumentStore", name: str):
        self._store = store
        self.name = name

    def create_index(self, field: str, *, unique: bool = False) -> None:
        self._store._create_index(self.name, field, unique=unique)

    def find_one(self, flt: Optional[Filter] = None) -> Optional[Document]:
        return self._store._find_one(self.name, flt)

    def find(self, flt: Optional[Filter] = None, *, sort: Optional[SortSpec] = None) -> List[Document]:
        return self._store._find(self.name, flt, sort)

    def count(self, flt: Optional[Filter] = None) -> int:
        return len(self._store._find(self.name, flt, None))

    def insert_one(self, doc: Document) -> str:
        return self._store._insert_one(self.name, doc)

    def update_one(self, flt: Filter, update: Dict[str, Any]) -> UpdateResult:
        return self._store._update_one(self.name, flt, update)

    def delete_one(self, flt: Filter) -> DeleteResult:
        return self._store._delete_one(self.name, flt)


class MemoryDocumentStore:
    """In-process store. Documents are copied in and out; callers never alias."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Document]] = {}
        self._unique: Dict[str, set] = {}

    def collection(self, name: str) -> Collection:
        return Collection(self, name)

    def ping(self) -> bool:
        return True

    # --- hooks ---

    def _persist(self) -> None:
        """Called after every successful write (inside the lock)."""

    # --- internals (all under lock) ---

    def _docs(self, name: str) -> Dict[str, Document]:
        return self._data.setdefault(name, {})

    def _create_index(self, name: str, field: str, *, unique: bool) -> None:
        if not unique:
            return
        with self._lock:
            seen = set()
            for doc in self._docs(name).values():
                v = doc.get(field)
                if v is None:
                    continue
                if v in seen:
                    raise DuplicateKeyError(name, field, v)
                seen.add(v)
            self._unique.setdefault(name, set()).add(field)

    def _check_unique(self, name: str, doc: Document, *, skip_id: Optional[str] = None) -> None:
        for field in self._unique.get(name, ()):
            v = doc.get(field)
            if v is None:
                continue
            for other_id, other in self._docs(name).items():
                if other_id != skip_id and other.get(field) == v:
                    raise DuplicateKeyError(name, field, v)

    def _find_one(self, name: str, flt: Optional[Filter]) -> Optional[Document]:
        with self._lock:
            for doc in self._docs(name).values():
                if matches(doc, flt):
                    return copy.deepcopy(doc)
        return None

    def _find(self, name: str, flt: Optional[Filter], sort: Optional[SortSpec]) -> List[Document]:
        with self._lock:
            out = [copy.deepcopy(d) for d in self._docs(name).values() if matches(d, flt)]
        # Stable sorts applied from the least significant key.
        for field, direction in reversed(list(sort or [])):
            out.sort(key=_sort_key(field), reverse=direction < 0)
        return out

    def _insert_one(self, name: str, doc: Document) -> str:
        new = copy.deepcopy(doc)
        with self._lock:
            doc_id = str(new.get("_id") or uuid.uuid4().hex)
            new["_id"] = doc_id
            docs = self._docs(name)
            if doc_id in docs:
                raise DuplicateKeyError(name, "_id", doc_id)
            self._check_unique(name, new)
            docs[doc_id] = new
            try:
                self._persist()
            except StoreError:
                del docs[doc_id]
                raise
        return doc_id

    def _update_one(self, name: str, flt: Filter, update: Dict[str, Any]) -> UpdateResult:
        with self._lock:
            docs = self._docs(name)
            for doc_id, doc in docs.items():
                if not matches(doc, flt):
                    continue
                new = apply_update(doc, update)
                if new == doc:
                    return UpdateResult(matched_count=1, modified_count=0)
                self._check_unique(name, new, skip_id=doc_id)
                docs[doc_id] = new
                try:
                    self._persist()
                except StoreError:
                    docs[doc_id] = doc
                    raise
                return UpdateResult(matched_count=1, modified_count=1)
        return UpdateResult(matched_count=0, modified_count=0)

    def _delete_one(self, name: str, flt: Filter) -> DeleteResult:
        with self._lock:
            docs = self._docs(name)
            for doc_id, doc in docs.items():
                if matches(doc, flt):
                    del docs[doc_id]
                    try:
                        self._persist()
                    except StoreError:
                        docs[doc_id] = doc
                        raise
                    return DeleteResult(deleted_count=1)
        return DeleteResult(deleted_count=0)


class YamlDocumentStore(MemoryDocumentStore):
    """Store persisted to a single YAML file, rewritten after every write."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot read store file {self.path}") from e
        collections = (raw.get("collections") or {}) if isinstance(raw, dict) else {}
        for name, docs in collections.items():
            if not isinstance(docs, list):
                continue
            bucket = self._docs(str(name))
            for doc in docs:
                if isinstance(doc, dict) and doc.get("_id"):
                    bucket[str(doc["_id"])] = doc
        logger.info("Loaded document store from %s", self.path)

    def ping(self) -> bool:
        return self.path.parent.exists()

    def _persist(self) -> None:
        raw = {
            "version": 1,
            "collections": {name: list(docs.values()) for name, docs in self._data.items()},
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StoreError(f"Cannot write store file {self.path}") from e
