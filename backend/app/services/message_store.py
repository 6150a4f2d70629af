"""Persistence collaborator for conversation messages."""

from typing import List, Protocol

import databases

from app.db.queries import chat_messages
from app.schemas.workspace import ConversationMessage


class MessageStore(Protocol):
    async def create_message(self, message: ConversationMessage) -> None:
        ...

    async def list_messages(self, project_id: str, limit: int = 100) -> List[ConversationMessage]:
        ...


class DatabaseMessageStore:
    """MessageStore backed by the ChatMessage table."""

    def __init__(self, db: databases.Database):
        self.db = db

    async def create_message(self, message: ConversationMessage) -> None:
        await chat_messages.create_message(self.db, message)

    async def list_messages(self, project_id: str, limit: int = 100) -> List[ConversationMessage]:
        return await chat_messages.list_messages(self.db, project_id, limit)
