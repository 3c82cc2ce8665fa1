"""Chat session: question in, streamed answer out, transcript kept.

Each ``send()`` appends a user message and an empty ai message, then fills
the ai message from the answer stream. Errors raised before streaming
starts (retrieval, embedding) are shown in the ai message the same way a
mid-stream failure is.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from codelens.errors import CodelensError
from codelens.rag.assembler import HistoryTurn
from codelens.rag.streamer import FRAME_INTERVAL, AnswerStreamer, ChatMessage
from codelens.service import ProjectService
from codelens.workspace.workspace import Workspace

logger = logging.getLogger(__name__)


def _noop_update(message: ChatMessage) -> None:
    pass


class ChatSession:
    """Conversation about one workspace's project."""

    def __init__(
        self,
        service: ProjectService,
        workspace: Workspace,
        on_update: Callable[[ChatMessage], None] | None = None,
        frame_interval: float = FRAME_INTERVAL,
    ) -> None:
        self._service = service
        self._ws = workspace
        self._on_update = on_update or _noop_update
        self._frame_interval = frame_interval
        self.messages: list[ChatMessage] = []
        self.loading = False
        self._streamer: AnswerStreamer | None = None
        self._cancel_requested = False

    def history(self) -> list[HistoryTurn]:
        return [
            HistoryTurn(role="assistant" if m.role == "ai" else "user", content=m.content)
            for m in self.messages
        ]

    def last_answer(self) -> ChatMessage | None:
        for message in reversed(self.messages):
            if message.role == "ai":
                return message
        return None

    async def send(self, question: str) -> ChatMessage | None:
        """Ask *question*; returns the ai message, or None if nothing was sent."""
        question = question.strip()
        if not question or self._ws.project_id is None or self.loading:
            return None

        history = self.history()
        answer = ChatMessage(role="ai")
        self.messages.append(ChatMessage(role="user", content=question))
        self.messages.append(answer)
        self.loading = True
        self._cancel_requested = False
        try:
            try:
                fragments = await self._service.ask(
                    self._ws.project_id,
                    question,
                    history=history,
                    current_file=self._ws.current_file(),
                )
            except CodelensError as exc:
                logger.warning("Question could not be answered: %s", exc)
                answer.content = f"Error: {exc}"
                self._on_update(answer)
                return answer

            self._streamer = AnswerStreamer(self._on_update, self._frame_interval)
            if self._cancel_requested:
                self._streamer.cancel()
            await self._streamer.stream(fragments, answer)
            return answer
        finally:
            self._streamer = None
            self.loading = False

    def cancel(self) -> None:
        """Abandon the answer in progress, if any. Text received so far is kept.

        A cancel issued while retrieval is still running stops the answer
        before its first fragment is consumed.
        """
        if self._streamer is not None:
            self._streamer.cancel()
        elif self.loading:
            self._cancel_requested = True
