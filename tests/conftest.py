import pytest
from fastapi.testclient import TestClient
from posts_api.main import create_app
from posts_api.store import InMemoryPostStore, StoreError


# In-memory store raising StoreError for the operations listed in `failing`
class FailingStore(InMemoryPostStore):

    def __init__(self):
        super().__init__()
        self.failing = set()

    def _check(self, operation):
        if operation in self.failing:
            raise StoreError(f"{operation} unavailable")

    def find_all(self):
        self._check("find_all")
        return super().find_all()

    def find_by_id(self, post_id):
        self._check("find_by_id")
        return super().find_by_id(post_id)

    def insert(self, record):
        self._check("insert")
        return super().insert(record)

    def update(self, post_id, record):
        self._check("update")
        return super().update(post_id, record)

    def remove(self, post_id):
        self._check("remove")
        return super().remove(post_id)

    def find_post_comments(self, post_id):
        self._check("find_post_comments")
        return super().find_post_comments(post_id)


@pytest.fixture
def store():
    return InMemoryPostStore()


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


@pytest.fixture
def seeded(store):
    first = store.insert({"title": "A", "contents": "a"})["id"]
    second = store.insert({"title": "B", "contents": "b"})["id"]
    store.insert_comment({"text": "first!", "post_id": first})
    store.insert_comment({"text": "nice", "post_id": first})
    return first, second


@pytest.fixture
def failing_store():
    store = FailingStore()
    store.insert({"title": "A", "contents": "a"})
    return store


@pytest.fixture
def failing_client(failing_store):
    return TestClient(create_app(failing_store))
