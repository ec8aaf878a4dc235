import pytest
from fastapi.testclient import TestClient

from database import ProgressStore
from lessons import LessonResolver
from main import app


@pytest.fixture
def store():
    return ProgressStore()


@pytest.fixture
def client(store):
    saved = app.state.store, app.state.resolver
    app.state.store = store
    app.state.resolver = LessonResolver()
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        app.state.store, app.state.resolver = saved
