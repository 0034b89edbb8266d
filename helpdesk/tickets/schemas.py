"""Pydantic schemas for the user-message flow."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

Identifier = UUID | int | str


class UserMessageRequest(BaseModel):
    message_id: Identifier | None = None
    ticket_id: Identifier
    message: str
    user_id: Identifier | None = None


class TicketMessage(BaseModel):
    """One transcript entry, either stored or the new inbound message."""

    id: Identifier | None = None
    ticket_id: Identifier
    message: str | None = None
    created_by: Identifier | None = None
    bot_id: Identifier | None = None
    sender_type: str | None = None
    is_system_message: bool = False
    created_at: datetime | None = None

    def to_backend(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"created_at"})


class UserMessageResponse(BaseModel):
    success: bool = True
    message: str
    actions: list[dict[str, Any]] = Field(default_factory=list)
