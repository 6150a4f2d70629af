"""Chat message database queries."""

from typing import List
import databases

from app.schemas.workspace import ConversationMessage


async def create_message(db: databases.Database, message: ConversationMessage) -> None:
    """Persist a finalized message. The streaming flag is never stored."""
    query = """
        INSERT OR REPLACE INTO ChatMessage (id, projectId, userId, role, content, timestamp)
        VALUES (:id, :project_id, :user_id, :role, :content, :timestamp)
    """

    await db.execute(
        query,
        {
            "id": message.id,
            "project_id": message.project_id,
            "user_id": message.user_id,
            "role": message.role,
            "content": message.content,
            "timestamp": message.timestamp
        }
    )


async def list_messages(
    db: databases.Database,
    project_id: str,
    limit: int = 100
) -> List[ConversationMessage]:
    """List a project's messages, oldest first."""
    query = """
        SELECT * FROM ChatMessage
        WHERE projectId = :project_id
        ORDER BY timestamp ASC
        LIMIT :limit
    """
    rows = await db.fetch_all(query, {"project_id": project_id, "limit": limit})

    return [
        ConversationMessage(
            id=row["id"],
            role=row["role"],
            content=row["content"],
            timestamp=row["timestamp"],
            project_id=row["projectId"],
            user_id=row["userId"]
        )
        for row in rows
    ]
