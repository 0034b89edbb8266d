"""Ticket flow: customer messages answered by the reasoning backend."""

from . import schemas
from .repository import (
    InMemoryTicketRepository,
    PostgresTicketRepository,
    TicketNotFoundError,
)
from .service import TicketMessageService

__all__ = [
    "InMemoryTicketRepository",
    "PostgresTicketRepository",
    "TicketMessageService",
    "TicketNotFoundError",
    "schemas",
]
