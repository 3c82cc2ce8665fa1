"""Answer streamer: republish generation fragments with coalesced updates.

Fragments are appended to the in-progress ChatMessage as they arrive. The
``on_update`` callback (the UI repaint) runs at most once per
``frame_interval`` seconds, scheduled on the event loop like an animation
frame, plus one mandatory flush when the stream ends so no trailing text is
lost.

If the generation stream fails mid-way the message content is *replaced*
with an ``Error: ...`` marker: a truncated answer must not look complete.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field

from codelens.errors import GenerationError

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 1 / 60


@dataclass
class ChatMessage:
    role: str  # user | ai
    content: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class AnswerStreamer:
    """Drive one answer stream into a ChatMessage. Single pass, not restartable.

    Args:
        on_update: Called with the message whenever the UI should repaint.
        frame_interval: Minimum seconds between two coalesced updates.
    """

    def __init__(
        self,
        on_update: Callable[[ChatMessage], None],
        frame_interval: float = FRAME_INTERVAL,
    ) -> None:
        self._on_update = on_update
        self._frame_interval = frame_interval
        self._pending: asyncio.TimerHandle | None = None
        self._started = False
        self._cancelled = False
        self._task: asyncio.Future[None] | None = None
        self.updates = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop consuming the stream, even while waiting on a stalled provider."""
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()

    async def stream(self, fragments: AsyncIterator[str], message: ChatMessage) -> str:
        """Consume *fragments* into *message* and return the final content.

        After ``cancel()`` the text received so far is kept and flushed.
        """
        if self._started:
            raise RuntimeError("AnswerStreamer.stream() can only be called once")
        self._started = True

        try:
            if not self._cancelled:
                self._task = asyncio.ensure_future(self._consume(fragments, message))
                try:
                    await self._task
                except asyncio.CancelledError:
                    if not self._cancelled:
                        raise
                    logger.debug("Answer stream cancelled after %d chars", len(message.content))
        finally:
            self._task = None
            aclose = getattr(fragments, "aclose", None)
            if aclose is not None:
                await aclose()
            self._flush(message)

        return message.content

    async def _consume(self, fragments: AsyncIterator[str], message: ChatMessage) -> None:
        loop = asyncio.get_running_loop()
        try:
            async for fragment in fragments:
                if self._cancelled:
                    break
                message.content += fragment
                if self._pending is None:
                    self._pending = loop.call_later(
                        self._frame_interval, self._flush, message
                    )
        except GenerationError as exc:
            logger.warning("Answer stream failed: %s", exc)
            message.content = f"Error: {exc}"

    def _flush(self, message: ChatMessage) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.updates += 1
        self._on_update(message)
