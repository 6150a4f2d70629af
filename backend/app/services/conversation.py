"""Conversation engine: message lifecycle, context windowing and persistence.

A turn is optimistic. The user message is appended before anything touches
the network, then a provisional assistant message (``is_streaming=True``)
stands in until the single inference response arrives. On failure the
provisional message is removed so the log never keeps an empty assistant
turn. Only one turn may be outstanding at a time.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Tuple

from app.agents.base import InferenceAgent
from app.core.errors import TransportError, ValidationError
from app.core.events import EventType, WorkspaceEvent
from app.schemas.workspace import AuthState, ConversationMessage, User
from app.services.auth import AuthSession
from app.services.message_store import MessageStore

logger = logging.getLogger(__name__)

EventCallback = Callable[[WorkspaceEvent], Awaitable[None]]
ResponseHandler = Callable[[str, Optional[str]], Awaitable[None]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _message_id(role: str, timestamp: int) -> str:
    return f"msg_{timestamp}_{role}_{uuid.uuid4().hex[:6]}"


@dataclass
class StagedPrompt:
    """A prompt handed over by another entry point, to be sent once on mount."""

    prompt: Optional[str]
    template: Optional[str] = None
    _consumed: bool = False

    @property
    def pending(self) -> bool:
        return not self._consumed and bool(self.prompt and self.prompt.strip())

    def consume(self) -> Optional[Tuple[str, Optional[str]]]:
        """Return (prompt, template) the first time only, clearing both."""
        if self._consumed:
            return None
        self._consumed = True
        prompt, template = self.prompt, self.template
        self.prompt = None
        self.template = None
        if not prompt or not prompt.strip():
            return None
        return prompt, template


class ConversationEngine:
    """Owns the ordered message log of one project conversation."""

    def __init__(
        self,
        project_id: str,
        auth: AuthSession,
        store: MessageStore,
        agent: InferenceAgent,
        on_event: Optional[EventCallback] = None,
        on_response: Optional[ResponseHandler] = None,
        staged: Optional[StagedPrompt] = None,
        context_window: int = 5,
        history_limit: int = 100,
    ):
        self.project_id = project_id
        self.auth = auth
        self.store = store
        self.agent = agent
        self.on_event = on_event
        self.on_response = on_response
        self.staged = staged
        self.context_window = context_window
        self.history_limit = history_limit

        self.user: Optional[User] = None
        self._messages: List[ConversationMessage] = []
        self._outstanding = False
        self._mounted = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.bootstrap_task: Optional[asyncio.Task] = None

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def messages(self) -> List[ConversationMessage]:
        return list(self._messages)

    @property
    def is_busy(self) -> bool:
        return self._outstanding

    @property
    def mounted(self) -> bool:
        return self._mounted

    async def mount(self, load_history: bool = True) -> None:
        """Load the persisted log, then start following auth state."""
        if self._mounted:
            return
        self._mounted = True
        if load_history:
            await self.load_history()
        if self._mounted:
            self._unsubscribe = self.auth.on_auth_state_changed(self._handle_auth_state)

    def unmount(self) -> None:
        """Detach from auth; turns still in flight complete inertly."""
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_auth_state(self, state: AuthState) -> None:
        self.user = state.user
        if self.user is None or self.staged is None or not self.staged.pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run the turn on yet; the next auth push retries
            return
        self.bootstrap_task = loop.create_task(self._bootstrap())

    async def _bootstrap(self) -> None:
        if self.staged is None or not self._mounted:
            return
        if self.is_busy:
            # Left pending; the next auth push retries
            logger.warning("Deferring staged prompt for %s: a turn is in flight", self.project_id)
            return
        staged = self.staged.consume()
        if staged is None:
            return
        prompt, template = staged
        logger.info("Sending staged prompt for project %s", self.project_id)
        try:
            await self.send(prompt, template)
        except (ValidationError, TransportError) as e:
            logger.warning("Staged prompt for %s was not sent: %s", self.project_id, e)

    # ── History ──────────────────────────────────────────────────────

    async def load_history(self) -> List[ConversationMessage]:
        """Replace the local log with the persisted conversation."""
        try:
            stored = await self.store.list_messages(self.project_id, self.history_limit)
        except Exception as e:
            logger.error("Failed to load messages for %s: %s", self.project_id, e)
            return self.messages

        if not self._mounted:
            return self.messages
        if self._outstanding:
            logger.warning("Skipping history reload for %s: a turn is in flight", self.project_id)
            return self.messages

        self._messages = sorted(stored, key=lambda m: m.timestamp)
        return self.messages

    def context_for(self, message: ConversationMessage) -> List[dict]:
        """The last ``context_window`` settled messages plus ``message``, as {role, content}."""
        prior = [m for m in self._messages if not m.is_streaming and m.id != message.id]
        window = prior[-self.context_window:] if self.context_window > 0 else []
        return [m.to_context() for m in [*window, message]]

    # ── Turns ────────────────────────────────────────────────────────

    async def send(self, prompt: str, template: Optional[str] = None) -> Optional[ConversationMessage]:
        """
        Run one user→assistant turn.

        Returns:
            The finalized assistant message, or None if the engine was
            unmounted before the reply arrived.

        Raises:
            ValidationError: empty prompt, no signed-in user, or a turn already
                in flight. Nothing has changed when this is raised.
            TransportError: inference failed; the provisional assistant message
                has been removed and the user message kept.
        """
        content = (prompt or "").strip()
        if not content:
            raise ValidationError("Prompt is empty", reason="empty_prompt")
        user = self.user
        if user is None:
            raise ValidationError("No authenticated user", reason="unauthenticated")
        if self._outstanding:
            raise ValidationError("A request is already in flight", reason="busy")

        self._outstanding = True
        try:
            return await self._run_turn(content, template, user)
        finally:
            self._outstanding = False

    async def _run_turn(
        self, content: str, template: Optional[str], user: User
    ) -> Optional[ConversationMessage]:
        timestamp = _now_ms()
        user_message = ConversationMessage(
            id=_message_id("user", timestamp),
            role="user",
            content=content,
            timestamp=timestamp,
            project_id=self.project_id,
            user_id=user.id,
        )
        context = self.context_for(user_message)
        self._messages.append(user_message)
        await self._emit(EventType.MESSAGE_APPENDED, user_message)

        try:
            await self.store.create_message(user_message)
        except Exception as e:
            logger.warning("Failed to persist user message %s: %s", user_message.id, e)

        assistant_ts = max(_now_ms(), timestamp + 1)
        provisional = ConversationMessage(
            id=_message_id("assistant", assistant_ts),
            role="assistant",
            content="",
            timestamp=assistant_ts,
            project_id=self.project_id,
            user_id=user.id,
            is_streaming=True,
        )
        self._messages.append(provisional)
        await self._emit(EventType.MESSAGE_APPENDED, provisional)

        logger.info("Dispatching turn for %s with %d context messages", self.project_id, len(context))
        try:
            reply = await self.agent.complete(context, template)
            if reply.error:
                raise TransportError(reply.error)
        except TransportError:
            await self._rollback(provisional)
            raise
        except Exception as e:
            await self._rollback(provisional)
            raise TransportError(str(e) or "Inference request failed") from e

        if not self._mounted:
            self._drop(provisional.id)
            return None

        finalized = provisional.model_copy(update={"content": reply.response, "is_streaming": False})
        self._replace(finalized)
        await self._emit(EventType.MESSAGE_UPDATED, finalized)

        try:
            await self.store.create_message(finalized)
        except Exception as e:
            logger.warning("Failed to persist assistant message %s: %s", finalized.id, e)

        if self.on_response is not None and self._mounted:
            await self.on_response(reply.response, reply.html)
        return finalized

    async def _rollback(self, provisional: ConversationMessage) -> None:
        self._drop(provisional.id)
        await self._emit(EventType.MESSAGE_REMOVED, provisional)

    def _drop(self, message_id: str) -> None:
        self._messages = [m for m in self._messages if m.id != message_id]

    def _replace(self, message: ConversationMessage) -> None:
        self._messages = [message if m.id == message.id else m for m in self._messages]

    async def _emit(self, event_type: EventType, message: ConversationMessage) -> None:
        if self.on_event is None or not self._mounted:
            return
        await self.on_event(
            WorkspaceEvent.create(event_type, self.project_id, "conversation", message.model_dump())
        )
