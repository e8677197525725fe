"""Conversation controller.

Owns the single conversation of a running instance: message history, the
sources of the latest answer, the in-flight flag and the typing indicator.
At most one request is outstanding at a time.  The guard is a plain flag:
everything runs on one event loop and the outbound query is the only
suspension point, so a second ``submit`` always sees ``pending`` set.

Transitions::

    idle --submit--> pending --response_received--> idle
                             --response_failed----> idle

Collaborators are injected as ports so the controller runs without a UI:
``transport`` sends the question, ``notify`` shows a transient message and
``play_cue`` makes the send/receive sounds.  State changes are published to
listeners registered with ``subscribe``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple

from .client import ChatTransportError
from .types import ChatResponse, CueKind, Message, Notification, Source

logger = logging.getLogger(__name__)

FAILURE_NOTIFICATION = Notification(
    title="Error",
    description="Failed to get response. Please try again.",
    variant="destructive",
)


class ChatTransport(Protocol):
    async def send(self, message: str) -> ChatResponse: ...


@dataclass(frozen=True)
class ConversationState:
    """Snapshot of the conversation; replaced wholesale on every transition."""

    messages: Tuple[Message, ...] = ()
    current_sources: Tuple[Source, ...] = ()
    pending: bool = False
    typing_indicator: bool = False
    sound_enabled: bool = True
    draft: str = ""

    @property
    def is_empty(self) -> bool:
        return len(self.messages) == 0

    @property
    def phase(self) -> str:
        return "pending" if self.pending else "idle"


StateListener = Callable[[ConversationState], None]


def _ignore_notification(notification: Notification) -> None:
    logger.warning("%s: %s", notification.title, notification.description)


def _silent(kind: CueKind) -> None:
    del kind


class ConversationController:
    """Drives one request/response cycle at a time."""

    def __init__(
        self,
        transport: ChatTransport,
        notify: Callable[[Notification], None] = _ignore_notification,
        play_cue: Callable[[CueKind], None] = _silent,
        display_delay: float = 0.5,
        sound_enabled: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._notify = notify
        self._play_cue = play_cue
        self._sleep = sleep
        self.display_delay = display_delay
        self._state = ConversationState(sound_enabled=sound_enabled)
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ConversationState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)  # type: ignore[arg-type]
        for listener in list(self._listeners):
            listener(self._state)

    def _cue(self, kind: CueKind) -> None:
        if not self._state.sound_enabled:
            return
        try:
            self._play_cue(kind)
        except Exception:  # sound is best effort
            logger.debug("Could not play %s cue", kind, exc_info=True)

    def update_draft(self, text: str) -> None:
        """Edit the input box; allowed while a request is pending."""
        self._transition(draft=text)

    def toggle_sound(self) -> bool:
        self._transition(sound_enabled=not self._state.sound_enabled)
        return self._state.sound_enabled

    async def submit(self, text: Optional[str] = None) -> bool:
        """Send ``text`` (or the current draft).

        Returns False without touching any state when the text is blank or a
        request is already pending.
        """
        question = (self._state.draft if text is None else text).strip()
        if not question or self._state.pending:
            return False

        self._transition(
            messages=self._state.messages + (Message(role="user", content=question),),
            draft="",
            pending=True,
            typing_indicator=True,
        )
        self._cue("send")

        try:
            response = await self._transport.send(question)
        except ChatTransportError as exc:
            self.response_failed(exc)
            return False

        await self.response_received(response)
        return True

    async def response_received(self, response: ChatResponse) -> None:
        if not self._state.pending:
            logger.warning("Ignoring response that arrived with no request pending")
            return
        self._transition(typing_indicator=False)
        await self._sleep(self.display_delay)
        self._transition(
            messages=self._state.messages + (Message(role="assistant", content=response["answer"]),),
            current_sources=tuple(response.get("sources") or ()),
        )
        self._cue("receive")
        self._transition(pending=False)

    def response_failed(self, error: Exception) -> None:
        logger.error("Chat error: %s", error)
        self._transition(typing_indicator=False, pending=False)
        self._notify(FAILURE_NOTIFICATION)
