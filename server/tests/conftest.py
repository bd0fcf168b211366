"""
Pytest configuration: an in-memory record store standing in for MongoDB, and
helpers to sign a user in without going through OAuth.
"""
import asyncio
import copy
import itertools
import os

import pytest

os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("OAUTH_CLIENT_ID", "test-client")
os.environ.setdefault("OAUTH_CLIENT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fastapi.testclient import TestClient

from main import app
from database.errors import StoreUnavailableError
from helpers.DocumentSerializer import DocumentSerializerVisitor
from routes.dependencies import get_current_user


def _matches(document, query):
    for field, expected in (query or {}).items():
        actual = document.get(field)
        if isinstance(expected, dict):
            for operator, operand in expected.items():
                if operator == "$ne" and actual == operand:
                    return False
                if operator == "$in" and actual not in operand:
                    return False
        elif actual != expected:
            return False
    return True


class FakeDatabase:
    """
    Implements the Database interface over dicts.

    Each operation yields to the event loop once before touching data, then
    reads and writes without awaiting, which mirrors the server-side atomicity
    of MongoDB single-document updates.
    """

    def __init__(self):
        self.collections = {}
        self.failing = set()
        self.subscribers = {}
        self._ids = itertools.count(1)
        self._serializer = DocumentSerializerVisitor()

    # Test helpers

    def seed(self, collection_name, *documents):
        for document in documents:
            stored = copy.deepcopy(document)
            stored.setdefault("_id", f"oid-{next(self._ids)}")
            self.collections.setdefault(collection_name, []).append(stored)

    def documents(self, collection_name):
        return self.collections.get(collection_name, [])

    def fail(self, *operations):
        self.failing.update(operations)

    def subscriber_count(self, collection_name):
        return len(self.subscribers.get(collection_name, []))

    async def _enter(self, operation, collection_name):
        await asyncio.sleep(0)
        if operation in self.failing:
            raise StoreUnavailableError(operation, collection_name, RuntimeError("injected failure"))

    def _out(self, document):
        return self._serializer.visit(copy.deepcopy(document))

    def _changed(self, collection_name):
        for queue in self.subscribers.get(collection_name, []):
            queue.put_nowait(True)

    # Database interface

    async def ensure_indexes(self):
        return None

    def close(self):
        return None

    async def add(self, collection_name, data):
        await self._enter("insert", collection_name)
        self.seed(collection_name, data)
        self._changed(collection_name)
        return {"status": 200, "data": self._out(self.documents(collection_name)[-1]), "message": "Document added successfully"}

    async def find_many(self, collection_name, query=None, projection=None, sort=None, limit=None):
        await self._enter("find", collection_name)
        found = [doc for doc in self.documents(collection_name) if _matches(doc, query)]
        for field, direction in reversed(sort or []):
            found = sorted(found, key=lambda doc: doc.get(field), reverse=direction < 0)
        if limit:
            found = found[:limit]
        return {"status": 200, "data": [self._out(doc) for doc in found], "message": "Documents retrieved successfully"}

    async def get_all(self, collection_name, sort=None):
        return (await self.find_many(collection_name, {}, sort=sort))["data"]

    async def get_where(self, collection_name, field, value, sort=None):
        return (await self.find_many(collection_name, {field: value}, sort=sort))["data"]

    async def find_one(self, collection_name, query):
        await self._enter("find_one", collection_name)
        for doc in self.documents(collection_name):
            if _matches(doc, query):
                return self._out(doc)
        return None

    async def update(self, collection_name, query, update_string, upsert=False):
        await self._enter("update", collection_name)
        target = next((doc for doc in self.documents(collection_name) if _matches(doc, query)), None)
        upserted_id = None
        if target is None:
            if not upsert:
                return {"status": 404, "matched_count": 0, "modified_count": 0, "upserted_id": None, "message": "Document not found or no changes made"}
            target = {k: v for k, v in query.items() if not isinstance(v, dict)}
            target.update(update_string.get("$setOnInsert", {}))
            self.seed(collection_name, target)
            target = self.documents(collection_name)[-1]
            upserted_id = target["_id"]
            matched = 0
        else:
            matched = 1

        before = copy.deepcopy(target)
        target.update(update_string.get("$set", {}))
        for field, delta in update_string.get("$inc", {}).items():
            target[field] = target.get(field, 0) + delta
        modified = 1 if matched and target != before else 0
        self._changed(collection_name)
        changed = modified > 0 or upserted_id is not None
        return {
            "status": 200 if changed else 404,
            "matched_count": matched,
            "modified_count": modified,
            "upserted_id": upserted_id,
            "message": "Document updated successfully" if changed else "Document not found or no changes made",
        }

    async def increment(self, collection_name, query, field, delta):
        await self._enter("increment", collection_name)
        for doc in self.documents(collection_name):
            if _matches(doc, query):
                doc[field] = doc.get(field, 0) + delta
                self._changed(collection_name)
                return 1
        return 0

    async def delete(self, collection_name, query):
        await self._enter("delete", collection_name)
        docs = self.documents(collection_name)
        for index, doc in enumerate(docs):
            if _matches(doc, query):
                del docs[index]
                self._changed(collection_name)
                return {"status": 200, "deleted_count": 1, "message": "Document deleted successfully"}
        return {"status": 404, "deleted_count": 0, "message": "Document not found"}

    async def delete_many(self, collection_name, query):
        await self._enter("delete", collection_name)
        docs = self.documents(collection_name)
        kept = [doc for doc in docs if not _matches(doc, query)]
        deleted = len(docs) - len(kept)
        self.collections[collection_name] = kept
        if deleted:
            self._changed(collection_name)
        return {"status": 200, "deleted_count": deleted, "message": f"Deleted {deleted} documents"}

    async def subscribe(self, collection_name, sort=None):
        await self._enter("subscribe", collection_name)
        queue = asyncio.Queue()
        self.subscribers.setdefault(collection_name, []).append(queue)
        try:
            yield await self.get_all(collection_name, sort=sort)
            while True:
                await queue.get()
                yield await self.get_all(collection_name, sort=sort)
        finally:
            self.subscribers[collection_name].remove(queue)


@pytest.fixture
def store():
    return FakeDatabase()


@pytest.fixture
def client(store):
    """Create a test client backed by the in-memory store"""
    app.state.db = store
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        if hasattr(app.state, "db"):
            del app.state.db


@pytest.fixture
def login_as():
    """Sign a user into every request the test client makes"""
    def _login(role, email="someone@society.org", name="Someone", user_id="user-1"):
        user = {"id": user_id, "email": email.lower(), "name": name, "role": role}
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    yield _login
    app.dependency_overrides.pop(get_current_user, None)


def make_user(user_id, email, role="Member", points=None, name=None, **extra):
    user = {"id": user_id, "email": email, "name": name or user_id, "role": role, **extra}
    if points is not None:
        user["points"] = points
    return user


@pytest.fixture
def user_factory():
    return make_user
