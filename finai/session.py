"""
User Session

DESIGN DECISION: Every piece of work started on behalf of the user (a chat
turn, a recording, a playback request) runs as a task owned by the
session. Closing the session:
1. Cancels whatever is still in flight
2. Waits for the cancellations to settle
3. Releases the microphone and the audio output

so nothing outlives the session and no audio keeps playing after it.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from finai.audio import AudioIOController, PlaybackState
from finai.audit import get_logger
from finai.models import ChatMessage
from finai.orchestrator import ConversationFlow, LedgerFlow


logger = get_logger(__name__)

T = TypeVar("T")


class SessionClosedError(RuntimeError):
    """Work was submitted to a session after aclose()."""
    pass


class Session:
    """Lifetime scope for one user's conversation and audio."""

    def __init__(
        self,
        conversation: ConversationFlow,
        audio: AudioIOController,
        ledger: Optional[LedgerFlow] = None,
    ):
        self.conversation = conversation
        self.audio = audio
        self.ledger = ledger
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_processing(self) -> bool:
        return self.conversation.is_processing

    @property
    def pending_input(self) -> Optional[str]:
        return self.audio.capture.pending_input

    def _spawn(self, coro: Awaitable[T]) -> "asyncio.Task[T]":
        if self._closed:
            if asyncio.iscoroutine(coro):
                coro.close()
            raise SessionClosedError("Session is closed")
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def submit(self, text: str) -> "asyncio.Task[Optional[list[ChatMessage]]]":
        """
        Schedule a chat turn.

        The task resolves to the turn's messages, or None if the text was
        blank or capture is busy.
        """
        return self._spawn(
            self.audio.submit(text, self.conversation.handle_message)
        )

    async def start_recording(self) -> bool:
        return await self._spawn(self.audio.start_recording())

    async def stop_recording(self) -> Optional[str]:
        return await self._spawn(self.audio.stop_recording())

    async def play(self, message_id: str, text: str) -> PlaybackState:
        return await self._spawn(self.audio.play(message_id, text))

    async def stop_playback(self) -> None:
        await self._spawn(self.audio.stop_playback())

    async def aclose(self) -> None:
        """Cancel outstanding work and release audio. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("session_tasks_cancelled", count=len(pending))

        await self.audio.close()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
