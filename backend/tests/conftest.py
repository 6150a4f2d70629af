"""Shared fixtures for the workspace tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.schemas.workspace import User
from app.services.auth import AuthSession
from fakes import FakeRunner, pragma


@pytest.fixture
def user():
    return User(id="user_1", email="dev@example.com", display_name="Dev")


@pytest.fixture
def auth(user):
    return AuthSession(user=user)


@pytest.fixture
def store():
    store = MagicMock()
    store.create_message = AsyncMock()
    store.list_messages = AsyncMock(return_value=[])
    return store


@pytest.fixture
def todos_runner():
    return FakeRunner(
        {
            "todos": {
                "columns": [
                    pragma("id", "TEXT", pk=1),
                    pragma("title", "TEXT", notnull=1),
                    pragma("completed", "INTEGER"),
                ],
                "rows": [
                    {"id": "todo_1", "title": "Build app", "completed": 0},
                    {"id": "todo_2", "title": "Ship it", "completed": 1},
                ],
            }
        }
    )
