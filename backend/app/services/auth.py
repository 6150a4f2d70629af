"""Push-based authentication state shared by the workspace sessions."""

import logging
from typing import Callable, List, Optional

from app.schemas.workspace import AuthState, User

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthState], None]


class AuthSession:
    """Holds the signed-in user and notifies listeners on every change."""

    def __init__(self, user: Optional[User] = None, is_loading: bool = False):
        self._state = AuthState(user=user, is_loading=is_loading)
        self._listeners: List[AuthListener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        """Subscribe; the current state is pushed right away. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        listener(self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: AuthState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Auth listener failed")

    def sign_in(self, user: User) -> None:
        logger.info("User signed in: %s", user.id)
        self._publish(AuthState(user=user, is_loading=False))

    def sign_out(self) -> None:
        self._publish(AuthState(user=None, is_loading=False))


# Singleton instance
auth_session = AuthSession()
