"""
Shared pytest fixtures.

The Firestore-backed modules are exercised against a small in-memory
stand-in for the google-cloud-firestore client. It covers only the calls
this code base makes: collection/document navigation, set, update, get,
delete and stream.
"""

import copy
import uuid

import pytest

from config import firebase_config


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, store, path):
        self._store = store
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def collection(self, name):
        return FakeCollection(self._store, f"{self.path}/{name}")

    def set(self, data):
        self._store[self.path] = copy.deepcopy(data)

    def update(self, changes):
        if self.path not in self._store:
            raise KeyError(f"No document to update: {self.path}")
        self._store[self.path].update(copy.deepcopy(changes))

    def get(self):
        return FakeSnapshot(self.id, self._store.get(self.path))

    def delete(self):
        self._store.pop(self.path, None)


class FakeCollection:
    def __init__(self, store, path):
        self._store = store
        self.path = path

    def document(self, doc_id=None):
        if doc_id is None:
            doc_id = uuid.uuid4().hex[:20]
        return FakeDocument(self._store, f"{self.path}/{doc_id}")

    def stream(self):
        prefix = self.path + "/"
        for path in sorted(self._store):
            rest = path[len(prefix):]
            if path.startswith(prefix) and "/" not in rest:
                yield FakeSnapshot(rest, copy.deepcopy(self._store[path]))


class FakeFirestore:
    def __init__(self):
        self.store = {}

    def collection(self, name):
        return FakeCollection(self.store, name)


@pytest.fixture
def fake_db(monkeypatch):
    """Route every get_db() call to a fresh in-memory Firestore."""
    db = FakeFirestore()
    monkeypatch.setattr(firebase_config, "_db", db)
    return db


@pytest.fixture
def no_db(monkeypatch):
    """Simulate Firestore being unavailable."""
    def _fail():
        raise ValueError("no credentials")

    monkeypatch.setattr(firebase_config, "_db", None)
    monkeypatch.setattr(firebase_config, "_initialize_app", _fail)


@pytest.fixture
def trip_group(fake_db):
    """A group with three members: Alice (M001), Bob (M002), Chitra (M003)."""
    from groups import add_member, create_group

    group = create_group("Goa Trip", created_by="u1")
    for name in ("Alice", "Bob", "Chitra"):
        add_member(group.group_id, name)
    return group
