"""User-message flow: transcript, backend reply, escalation guard, dispatch."""

from __future__ import annotations

import logging

from ..actions.composer import client_actions
from ..actions.dispatcher import ActionDispatcher
from ..actions.guard import FALLBACK_MESSAGE, apply_escalation_guard, fallback_actions
from ..actions.models import Action
from ..backend.client import BackendError, ReasoningBackendClient
from . import schemas
from .handlers import TicketActionHandlers
from .repository import TicketRepository

logger = logging.getLogger(__name__)


class TicketMessageService:
    """Answer one customer message on a ticket and apply the backend's actions."""

    def __init__(
        self,
        repository: TicketRepository,
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
        self, request: schemas.UserMessageRequest
    ) -> list[schemas.TicketMessage]:
        """Stored turns oldest first, followed by the inbound customer message."""

        history = self._repository.list_messages(
            request.ticket_id, exclude_message_id=request.message_id
        )
        history.append(
            schemas.TicketMessage(
                id=request.message_id,
                ticket_id=request.ticket_id,
                message=request.message,
                created_by=request.user_id,
                bot_id=None,
                sender_type="customer",
                is_system_message=False,
            )
        )
        return history

    def request_reply(
        self, transcript: list[schemas.TicketMessage]
    ) -> tuple[str, list[Action]]:
        """Ask the backend for a reply; never raises for backend failures."""

        try:
            reply = self._backend.send_user_message(
                [entry.to_backend() for entry in transcript], timeout=self._timeout
            )
        except BackendError as exc:
            logger.error("Error calling API: %s", exc)
            return FALLBACK_MESSAGE, fallback_actions(exc)
        return reply.text, apply_escalation_guard(reply)

    def handle(self, request: schemas.UserMessageRequest) -> schemas.UserMessageResponse:
        transcript = self.build_transcript(request)
        text, actions = self.request_reply(transcript)

        handlers = TicketActionHandlers(
            self._repository, ticket_id=request.ticket_id, bot_id=self._bot_id
        )
        ActionDispatcher(handlers.handlers(), flow="user-message").dispatch(actions)

        self._repository.add_system_message(request.ticket_id, text, self._bot_id)
        return schemas.UserMessageResponse(
            success=True, message=text, actions=client_actions(actions)
        )
