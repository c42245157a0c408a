import copy
import os
import sys
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Settings
from main import create_app


def _matches(doc, flt):
    for key, cond in (flt or {}).items():
        value = doc.get(key)
        if isinstance(cond, dict):
            if "$in" in cond and value not in cond["$in"]:
                return False
            if cond.get("$type") == "string" and not isinstance(value, str):
                return False
        elif key not in doc or value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs.sort(key=lambda d: d.get(key), reverse=direction == -1)
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:
    """Just enough of pymongo's Collection for the queries this app makes"""

    def __init__(self):
        self.docs = []

    def find(self, flt=None, projection=None):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, flt)])

    def find_one(self, flt=None):
        for d in self.docs:
            if _matches(d, flt):
                return copy.deepcopy(d)
        return None

    def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def update_one(self, flt, update):
        for d in self.docs:
            if _matches(d, flt):
                d.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def delete_one(self, flt):
        for i, d in enumerate(self.docs):
            if _matches(d, flt):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def count_documents(self, flt):
        return sum(1 for d in self.docs if _matches(d, flt))


class FakeDatabase:
    name = "course_content_test"

    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        return self._collections.setdefault(name, FakeCollection())

    def list_collection_names(self):
        return list(self._collections)

    def add(self, collection_name, **fields):
        """Insert a raw document and return its id as stored in child references"""
        return str(self[collection_name].insert_one(fields).inserted_id)


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def settings():
    return Settings(_env_file=None, admin_username="admin", admin_password="s3cret")


@pytest.fixture
def client(settings, db):
    with TestClient(create_app(settings, db=db)) as c:
        yield c


@pytest.fixture
def admin_client(client):
    client.cookies.set("admin-session", "authenticated")
    return client
