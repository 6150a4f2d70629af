"""Session routes feeding the push-based auth state."""

from fastapi import APIRouter

from app.schemas.workspace import AuthState, User
from app.services.auth import auth_session

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/session", response_model=AuthState)
async def get_session():
    return auth_session.state


@router.post("/session", response_model=AuthState)
async def sign_in(user: User):
    """Sign a user in; mounted workspaces are notified."""
    auth_session.sign_in(user)
    return auth_session.state


@router.delete("/session", response_model=AuthState)
async def sign_out():
    auth_session.sign_out()
    return auth_session.state
