"""Manager-prompt flow: chat history, backend reply, article mutations."""

from __future__ import annotations

import logging

from ..actions.composer import client_actions
from ..actions.dispatcher import ActionDispatcher
from ..backend.client import ReasoningBackendClient
from . import schemas
from .handlers import ArticleActionHandlers
from .repository import KnowledgeRepository

logger = logging.getLogger(__name__)


class ManagerPromptService:
    """Answer a manager prompt and apply the resulting knowledge-base actions.

    Backend failures are not recovered here; they propagate to the caller
    and fail the request.
    """

    def __init__(
        self,
        repository: KnowledgeRepository,
        backend: ReasoningBackendClient,
        *,
        bot_id: str,
        timeout: float,
    ) -> None:
        self._repository = repository
        self._backend = backend
        self._bot_id = bot_id
        self._timeout = timeout

    def build_transcript(
        self, request: schemas.ManagerPromptRequest
    ) -> list[schemas.ChatHistoryEntry]:
        history = self._repository.list_chat_history(
            request.conversation_id, exclude_prompt_id=request.prompt_id
        )
        history.append(
            schemas.ChatHistoryEntry(
                message=request.prompt,
                is_system_message=False,
                created_at=request.created_at,
            )
        )
        return history

    def handle(self, request: schemas.ManagerPromptRequest) -> schemas.ManagerPromptResponse:
        transcript = self.build_transcript(request)
        body = {
            **request.model_dump(mode="json"),
            "chat_history": [entry.to_backend() for entry in transcript],
        }
        reply = self._backend.send_manager_prompt(body, timeout=self._timeout)

        self._repository.record_response(request.prompt_id, reply.text)

        handlers = ArticleActionHandlers(self._repository, bot_id=self._bot_id)
        ActionDispatcher(handlers.handlers(), flow="manager-prompt").dispatch(reply.actions)

        return schemas.ManagerPromptResponse(
            success=True, response=reply.text, actions=client_actions(reply.actions)
        )
