import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from lending.main import app, get_db
from lending.crud import create_book
from lending.models import Genre
from lending.schemas import BookCreate
from lending.storage import ensure_indexes

# mongomock-motor stands in for a MongoDB server; every fixture gets a fresh
# client, so no state leaks between tests.


@pytest.fixture(scope="function")
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture(scope="function")
async def test_db(mongo_client):
    db = mongo_client["test_db"]
    await ensure_indexes(db)
    return db


@pytest.fixture(scope="function")
async def test_book(test_db):
    book_data = BookCreate(
        title="Test Book",
        author="Test Author",
        genre=Genre.FICTION,
        isbn="1234567890",
        description="Test Description",
        copies=5,
    )
    return await create_book(test_db, book_data)


@pytest.fixture(scope="function")
def api_db():
    return AsyncMongoMockClient()["api_test_db"]


@pytest.fixture(scope="function")
def client(api_db):
    app.state.testing = True
    app.dependency_overrides[get_db] = lambda: api_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.testing = False


class FailingCollection:
    """Collection wrapper whose listed methods are replaced by mocks."""

    def __init__(self, collection, overrides):
        self._collection = collection
        self._overrides = overrides

    def __getattr__(self, name):
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self._collection, name)


class FailingDatabase:
    def __init__(self, db, overrides):
        self._db = db
        self._overrides = overrides

    def __getattr__(self, name):
        return FailingCollection(getattr(self._db, name), self._overrides.get(name, {}))


@pytest.fixture(scope="function")
def failing_db(test_db):
    """Build a view of test_db where e.g. books={"update_one": AsyncMock(...)}."""

    def build(**overrides):
        return FailingDatabase(test_db, overrides)

    return build
