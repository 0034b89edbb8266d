"""Mutation handlers for the ticket action vocabulary."""

from __future__ import annotations

import logging

from ..actions.dispatcher import SEARCH_HANDLERS, Handler
from ..actions.models import (
    AddNoteAction,
    EscalateAction,
    TicketRequestAction,
    UpdateNameAction,
    UpdateStatusAction,
    as_text,
)
from . import schemas
from .repository import TicketRepository

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "fresh"
DEFAULT_CATEGORY = "general"
NEW_TICKET_PRIORITY = "low"
ESCALATION_PRIORITY = "high"
TICKET_NAME_LIMIT = 100
UNKNOWN_TICKET_NAME = "Unknown"


class TicketActionHandlers:
    """Apply ticket actions on behalf of one owning ticket.

    Every update targets the ticket the inbound message belongs to, never a
    ticket created earlier in the same action list.
    """

    def __init__(
        self,
        repository: TicketRepository,
        *,
        ticket_id: schemas.Identifier,
        bot_id: str,
    ) -> None:
        self._repository = repository
        self._ticket_id = ticket_id
        self._bot_id = bot_id

    def handlers(self) -> dict[str, Handler]:
        return {
            "feature_request": self.create_ticket,
            "feedback": self.create_ticket,
            "escalate": self.escalate,
            "update_status": self.update_status,
            "add_note": self.add_note,
            "update_name": self.update_name,
            **SEARCH_HANDLERS,
        }

    def create_ticket(self, action: TicketRequestAction) -> None:
        meta = action.meta
        name = (as_text(action.message) or "")[:TICKET_NAME_LIMIT] or UNKNOWN_TICKET_NAME
        ticket_id = self._repository.create_ticket(
            name=name,
            status=as_text(meta.status) or DEFAULT_STATUS,
            category=as_text(meta.category) or DEFAULT_CATEGORY,
            priority=as_text(meta.priority) or NEW_TICKET_PRIORITY,
            assigned_to=self._bot_id,
        )
        logger.info("Created %s ticket %s", action.kind, ticket_id)

    def escalate(self, action: EscalateAction) -> None:
        meta = action.meta
        self._repository.escalate_ticket(
            self._ticket_id,
            priority=as_text(meta.priority) or ESCALATION_PRIORITY,
            status=as_text(meta.status) or DEFAULT_STATUS,
            category=as_text(meta.category) or DEFAULT_CATEGORY,
        )
        logger.info("Escalated ticket %s: %s", self._ticket_id, action.reason)

    def update_status(self, action: UpdateStatusAction) -> None:
        status = as_text(action.status)
        if not status:
            logger.warning("update_status action without a status ignored")
            return
        self._repository.update_status(self._ticket_id, status)

    def add_note(self, action: AddNoteAction) -> None:
        note = as_text(action.note)
        if not note:
            logger.warning("add_note action without a note ignored")
            return
        self._repository.add_note(self._ticket_id, note, self._bot_id)

    def update_name(self, action: UpdateNameAction) -> None:
        name = as_text(action.name)
        if not name:
            logger.warning("update_name action without a name ignored")
            return
        self._repository.update_name(self._ticket_id, name)
