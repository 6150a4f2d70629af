from enum import Enum
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
import uuid


class EventType(str, Enum):
    MESSAGE_APPENDED = "message_appended"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_REMOVED = "message_removed"
    ARTIFACT_EXTRACTED = "artifact_extracted"
    FILE_WRITTEN = "file_written"
    TABLES_REFRESHED = "tables_refreshed"
    QUERY_EXECUTED = "query_executed"


class WorkspaceEvent(BaseModel):
    id: str
    type: EventType
    timestamp: datetime
    project_id: str
    source: str  # "conversation" | "workspace" | "schema"
    data: dict
    parent_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        event_type: EventType,
        project_id: str,
        source: str,
        data: dict,
        parent_id: Optional[str] = None
    ) -> "WorkspaceEvent":
        return cls(
            id=str(uuid.uuid4()),
            type=event_type,
            timestamp=datetime.utcnow(),
            project_id=project_id,
            source=source,
            data=data,
            parent_id=parent_id
        )
