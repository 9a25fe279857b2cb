"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths, required settings for import-time
    config, and an in-memory stand-in for the Mongo collections the odds
    cache uses.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

os.environ.setdefault("ODDS_API_KEY", "test-key")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")

from bson import ObjectId  # noqa: E402
from pymongo.errors import PyMongoError  # noqa: E402

import oddscache.database as _db  # noqa: E402


class _Result:
    def __init__(self, **fields) -> None:
        self.__dict__.update(fields)


class _FakeCollection:
    """Enough of motor's collection API for the cache services."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict] = []
        self.calls: list[tuple[str, dict]] = []
        self.fail_with: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches(doc: dict, query: dict | None) -> bool:
        for key, expected in (query or {}).items():
            actual = doc.get(key)
            if isinstance(expected, dict) and any(k.startswith("$") for k in expected):
                for op, value in expected.items():
                    if op == "$in" and actual not in value:
                        return False
                    if op == "$ne" and actual == value:
                        return False
                    if op in ("$gt", "$gte", "$lt", "$lte") and actual is None:
                        return False
                    if op == "$gt" and not actual > value:
                        return False
                    if op == "$gte" and not actual >= value:
                        return False
                    if op == "$lt" and not actual < value:
                        return False
                    if op == "$lte" and not actual <= value:
                        return False
                continue
            if actual != expected:
                return False
        return True

    async def create_index(self, *_args, **_kwargs):
        return "ok"

    async def insert_one(self, doc: dict):
        self.calls.append(("insert_one", doc))
        self._maybe_fail()
        row = dict(doc)
        row.setdefault("_id", ObjectId())
        self.docs.append(row)
        doc["_id"] = row["_id"]
        return _Result(inserted_id=row["_id"])

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        self.calls.append(("update_one", {"query": query, "update": update, "upsert": upsert}))
        self._maybe_fail()
        for row in self.docs:
            if self._matches(row, query):
                before = dict(row)
                row.update(update.get("$set", {}))
                return _Result(
                    matched_count=1,
                    modified_count=int(before != row),
                    upserted_id=None,
                )
        if not upsert:
            return _Result(matched_count=0, modified_count=0, upserted_id=None)
        row = {k: v for k, v in query.items() if not isinstance(v, dict)}
        row.update(update.get("$setOnInsert", {}))
        row.update(update.get("$set", {}))
        row["_id"] = ObjectId()
        self.docs.append(row)
        return _Result(matched_count=0, modified_count=0, upserted_id=row["_id"])

    async def delete_many(self, query: dict):
        self.calls.append(("delete_many", query))
        self._maybe_fail()
        keep = [row for row in self.docs if not self._matches(row, query)]
        deleted = len(self.docs) - len(keep)
        self.docs = keep
        return _Result(deleted_count=deleted)

    async def find_one(self, query: dict | None = None, _projection=None):
        for row in self.docs:
            if self._matches(row, query):
                return dict(row)
        return None

    def find(self, query: dict | None = None, projection: dict | None = None):
        rows = [dict(row) for row in self.docs if self._matches(row, query)]
        if projection and projection.get("_id") == 0:
            for row in rows:
                row.pop("_id", None)
        return _FakeCursor(rows, self)


class _FakeCursor:
    def __init__(self, rows: list[dict], collection: _FakeCollection) -> None:
        self._rows = rows
        self._collection = collection
        self._limit: int | None = None

    def sort(self, key, direction: int = 1):
        if isinstance(key, list):
            key, direction = key[0]
        self._rows.sort(key=lambda row: row.get(key), reverse=int(direction) < 0)
        return self

    def limit(self, value: int):
        self._limit = int(value)
        return self

    async def to_list(self, length: int | None = None):
        self._collection._maybe_fail()
        rows = self._rows
        if self._limit is not None:
            rows = rows[: self._limit]
        if length is not None:
            rows = rows[: int(length)]
        return list(rows)


class _FakeDB:
    def __init__(self) -> None:
        self._collections: dict[str, _FakeCollection] = {}

    def __getattr__(self, name: str) -> _FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        if name not in self._collections:
            self._collections[name] = _FakeCollection(name)
        return self._collections[name]


@pytest.fixture
def fake_db(monkeypatch) -> _FakeDB:
    db = _FakeDB()
    monkeypatch.setattr(_db, "db", db)
    return db


@pytest.fixture
def db_error() -> PyMongoError:
    return PyMongoError("connection reset by peer")
