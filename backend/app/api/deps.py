"""Dependency injection for API routes."""
from fastapi import Depends, HTTPException

from app.agents.openai_agent import get_inference_agent
from app.core.errors import TransportError, ValidationError
from app.db.database import database
from app.services.auth import auth_session
from app.services.event_bus import event_bus
from app.services.message_store import DatabaseMessageStore
from app.services.workspace import Workspace, WorkspaceRegistry, project_runner

registry = WorkspaceRegistry(
    auth_session,
    store_factory=lambda: DatabaseMessageStore(database),
    agent_factory=get_inference_agent,
    runner_factory=project_runner,
    on_event=event_bus.publish,
)


def get_registry() -> WorkspaceRegistry:
    return registry


async def get_workspace(project_id: str, registry: WorkspaceRegistry = Depends(get_registry)) -> Workspace:
    """Open (or reuse) the workspace of the project in the path."""
    try:
        return await registry.open(project_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def to_http_error(error: Exception) -> HTTPException:
    """Map workspace failures onto HTTP status codes."""
    if isinstance(error, ValidationError):
        status = 409 if error.reason == "busy" else 401 if error.reason == "unauthenticated" else 400
        return HTTPException(status_code=status, detail=str(error))
    if isinstance(error, TransportError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
