"""File tree and editor view routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.api.deps import get_workspace
from app.schemas.workspace import FileNode, WorkspaceViewState
from app.services.workspace import Workspace

router = APIRouter(prefix="/projects/{project_id}", tags=["files"])


class PathRequest(BaseModel):
    path: str


class BufferUpdate(BaseModel):
    path: str
    content: str


class FileWrite(BaseModel):
    path: str
    content: str
    language: Optional[str] = None


@router.get("/files", response_model=List[FileNode])
async def get_files(workspace: Workspace = Depends(get_workspace)):
    return workspace.tree.snapshot()


@router.put("/files", response_model=FileNode)
async def write_file(body: FileWrite, workspace: Workspace = Depends(get_workspace)):
    """Create or replace a file directly (e.g. from the explorer's new-file action)."""
    existing = workspace.tree.find(body.path)
    previous = existing.content if existing is not None else None
    try:
        node = workspace.tree.upsert_file(body.path, body.content, body.language)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    workspace.view.sync_written_file(node.path, previous)
    return node


@router.get("/view", response_model=WorkspaceViewState)
async def get_view(workspace: Workspace = Depends(get_workspace)):
    return workspace.view.state()


@router.post("/tabs/open", response_model=WorkspaceViewState)
async def open_tab(body: PathRequest, workspace: Workspace = Depends(get_workspace)):
    try:
        workspace.view.open_tab(body.path)
    except (KeyError, ValueError):
        raise HTTPException(status_code=404, detail=f"File not found: {body.path}")
    return workspace.view.state()


@router.post("/tabs/close", response_model=WorkspaceViewState)
async def close_tab(body: PathRequest, workspace: Workspace = Depends(get_workspace)):
    workspace.view.close_tab(body.path)
    return workspace.view.state()


@router.post("/tabs/activate", response_model=WorkspaceViewState)
async def activate_tab(body: PathRequest, workspace: Workspace = Depends(get_workspace)):
    try:
        workspace.view.activate_tab(body.path)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Tab not open: {body.path}")
    return workspace.view.state()


@router.post("/directories/toggle", response_model=WorkspaceViewState)
async def toggle_directory(body: PathRequest, workspace: Workspace = Depends(get_workspace)):
    workspace.view.toggle_directory(body.path)
    return workspace.view.state()


@router.put("/buffer", response_model=WorkspaceViewState)
async def edit_buffer(body: BufferUpdate, workspace: Workspace = Depends(get_workspace)):
    """Store unsaved editor content; the tree is untouched until save."""
    workspace.view.edit(body.path, body.content)
    return workspace.view.state()


@router.post("/save", response_model=FileNode)
async def save_buffer(body: PathRequest, workspace: Workspace = Depends(get_workspace)):
    try:
        return workspace.view.save(body.path)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Nothing buffered for {body.path}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
