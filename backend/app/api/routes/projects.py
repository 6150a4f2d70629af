"""Project routes: creation from a landing prompt and the chat turn."""

import logging
import secrets
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.api.deps import get_registry, get_workspace, to_http_error
from app.core.config import settings
from app.core.errors import TransportError, ValidationError
from app.schemas.workspace import Artifact, ConversationMessage
from app.services.conversation import StagedPrompt
from app.services.workspace import Workspace, WorkspaceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

limiter = Limiter(key_func=get_remote_address)


class CreateProjectRequest(BaseModel):
    prompt: Optional[str] = None
    template: Optional[str] = None


class ChatRequest(BaseModel):
    prompt: str
    template: Optional[str] = None


class ChatResponse(BaseModel):
    message: Optional[ConversationMessage] = None
    messages: List[ConversationMessage]
    artifacts: List[Artifact]


@router.post("")
async def create_project(body: CreateProjectRequest, registry: WorkspaceRegistry = Depends(get_registry)):
    """Create a workspace; an initial prompt is sent once a user is signed in."""
    project_id = f"project_{secrets.token_urlsafe(8)}"
    staged = StagedPrompt(body.prompt, body.template) if body.prompt else None
    workspace = await registry.open(project_id, staged=staged)
    return {
        "id": project_id,
        "stagedPrompt": staged is not None,
        "messages": [m.model_dump() for m in workspace.conversation.messages],
    }


@router.delete("/{project_id}")
async def close_project(project_id: str, registry: WorkspaceRegistry = Depends(get_registry)):
    """Unmount a workspace; replies still in flight are discarded."""
    if registry.get(project_id) is None:
        raise HTTPException(status_code=404, detail="Project not open")
    registry.close(project_id)
    return {"closed": project_id}


@router.post("/{project_id}/chat", response_model=ChatResponse)
@limiter.limit(settings.chat_rate_limit)
async def chat(request: Request, project_id: str, body: ChatRequest, workspace: Workspace = Depends(get_workspace)):
    """Run one conversation turn and apply the generated artifacts."""
    try:
        message = await workspace.conversation.send(body.prompt, body.template)
    except (ValidationError, TransportError) as e:
        logger.warning("Chat turn rejected for %s: %s", project_id, e)
        raise to_http_error(e)

    return ChatResponse(
        message=message,
        messages=workspace.conversation.messages,
        artifacts=workspace.last_artifacts if message is not None else [],
    )


@router.get("/{project_id}/messages", response_model=List[ConversationMessage])
async def list_messages(project_id: str, workspace: Workspace = Depends(get_workspace)):
    """Reload and return the persisted conversation."""
    return await workspace.conversation.load_history()
