"""Database connection and lifecycle management for the conversation store."""

from pathlib import Path
import databases

from app.core.config import settings

DATABASE_URL = settings.database_url

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS ChatMessage (
    id TEXT PRIMARY KEY,
    projectId TEXT NOT NULL,
    userId TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp INTEGER NOT NULL
)
"""

INDEX_SQL = "CREATE INDEX IF NOT EXISTS idx_chatmessage_project ON ChatMessage(projectId, timestamp)"

# Create database connection
database = databases.Database(DATABASE_URL)


async def init_schema(db: databases.Database) -> None:
    """Create the message table if it does not exist yet."""
    await db.execute(SCHEMA_SQL)
    await db.execute(INDEX_SQL)


async def connect_db():
    """Connect to database on startup."""
    Path(settings.database_path).parent.mkdir(parents=True, exist_ok=True)
    if not database.is_connected:
        await database.connect()
    await init_schema(database)


async def disconnect_db():
    """Disconnect from database on shutdown."""
    if database.is_connected:
        await database.disconnect()
