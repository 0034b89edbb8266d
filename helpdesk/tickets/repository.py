"""Database repository for tickets, their messages and notes."""
from __future__ import annotations

from datetime import datetime, timezone
from itertools import count
from typing import Any, Dict, List, Optional, Protocol

import psycopg
from psycopg.rows import dict_row

from ..actions.dispatcher import TargetNotFoundError
from . import schemas


class TicketNotFoundError(TargetNotFoundError):
    """Raised when an update matches no ticket."""

    def __init__(self, ticket_id: Any) -> None:
        super().__init__(f"Ticket not found with ID: {ticket_id}")
        self.ticket_id = ticket_id


class TicketRepository(Protocol):
    """Persistence abstraction used by the user-message flow."""

    def list_messages(
        self, ticket_id: schemas.Identifier, *, exclude_message_id: Optional[schemas.Identifier] = None
    ) -> List[schemas.TicketMessage]: ...

    def create_ticket(
        self, *, name: str, status: str, category: str, priority: str, assigned_to: str
    ) -> Any: ...

    def escalate_ticket(
        self, ticket_id: schemas.Identifier, *, priority: str, status: str, category: str
    ) -> None: ...

    def update_status(self, ticket_id: schemas.Identifier, status: str) -> None: ...

    def add_note(self, ticket_id: schemas.Identifier, content: str, created_by: str) -> None: ...

    def update_name(self, ticket_id: schemas.Identifier, name: str) -> None: ...

    def add_system_message(self, ticket_id: schemas.Identifier, message: str, bot_id: str) -> None: ...


class PostgresTicketRepository:
    """PostgreSQL implementation of :class:`TicketRepository`."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def _cursor(self):
        return self._conn.cursor(row_factory=dict_row)

    # History -------------------------------------------------------------------
    def list_messages(
        self, ticket_id: schemas.Identifier, *, exclude_message_id: Optional[schemas.Identifier] = None
    ) -> List[schemas.TicketMessage]:
        conditions = ["ticket_id = %s"]
        params: List[Any] = [ticket_id]
        if exclude_message_id is not None:
            conditions.append("id <> %s")
            params.append(exclude_message_id)
        query = (
            "SELECT id, ticket_id, message, created_by, bot_id, sender_type, "
            "is_system_message, created_at FROM messages "
            f"WHERE {' AND '.join(conditions)} ORDER BY created_at ASC"
        )
        with self._cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [schemas.TicketMessage(**row) for row in rows]

    # Mutations -----------------------------------------------------------------
    def create_ticket(
        self, *, name: str, status: str, category: str, priority: str, assigned_to: str
    ) -> Any:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO tickets (name, status, category, priority, assigned_to)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (name, status, category, priority, assigned_to),
            )
            row = cur.fetchone()
        return row["id"] if row else None

    def escalate_ticket(
        self, ticket_id: schemas.Identifier, *, priority: str, status: str, category: str
    ) -> None:
        self._update_ticket(
            ticket_id,
            "priority = %s, status = %s, category = %s, assigned_to = NULL",
            [priority, status, category],
        )

    def update_status(self, ticket_id: schemas.Identifier, status: str) -> None:
        self._update_ticket(
            ticket_id, "status = %s, resolved = %s", [status, status == "closed"]
        )

    def add_note(self, ticket_id: schemas.Identifier, content: str, created_by: str) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO ticket_notes (ticket_id, content, created_by)
                VALUES (%s, %s, %s)
                """,
                (ticket_id, content, created_by),
            )

    def update_name(self, ticket_id: schemas.Identifier, name: str) -> None:
        self._update_ticket(ticket_id, "name = %s", [name])

    def add_system_message(self, ticket_id: schemas.Identifier, message: str, bot_id: str) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO messages (ticket_id, message, bot_id, is_system_message, sender_type)
                VALUES (%s, %s, %s, true, 'employee')
                """,
                (ticket_id, message, bot_id),
            )

    # Helpers -------------------------------------------------------------------
    def _update_ticket(
        self, ticket_id: schemas.Identifier, set_clause: str, params: List[Any]
    ) -> None:
        # set_clause is always one of the fixed fragments above
        query = (
            f"UPDATE tickets SET {set_clause}, updated_at = now() "
            "WHERE id = %s RETURNING id"
        )
        with self._cursor() as cur:
            cur.execute(query, [*params, ticket_id])
            row = cur.fetchone()
        if not row:
            raise TicketNotFoundError(ticket_id)


class InMemoryTicketRepository:
    """Dictionary-backed repository used by tests and local experiments."""

    def __init__(self, tickets: Optional[Dict[Any, Dict[str, Any]]] = None) -> None:
        self.tickets: Dict[Any, Dict[str, Any]] = {
            key: dict(value) for key, value in (tickets or {}).items()
        }
        self.messages: List[Dict[str, Any]] = []
        self.notes: List[Dict[str, Any]] = []
        self._ids = count(1)

    def seed_message(self, **fields: Any) -> None:
        fields.setdefault("created_at", datetime.now(timezone.utc))
        fields.setdefault("is_system_message", False)
        self.messages.append(fields)

    def list_messages(
        self, ticket_id: schemas.Identifier, *, exclude_message_id: Optional[schemas.Identifier] = None
    ) -> List[schemas.TicketMessage]:
        rows = [
            row
            for row in self.messages
            if row["ticket_id"] == ticket_id
            and (exclude_message_id is None or row.get("id") != exclude_message_id)
        ]
        rows.sort(key=lambda row: row["created_at"])
        return [schemas.TicketMessage(**row) for row in rows]

    def create_ticket(
        self, *, name: str, status: str, category: str, priority: str, assigned_to: str
    ) -> Any:
        ticket_id = f"ticket-{next(self._ids)}"
        self.tickets[ticket_id] = {
            "name": name,
            "status": status,
            "category": category,
            "priority": priority,
            "assigned_to": assigned_to,
            "resolved": False,
        }
        return ticket_id

    def escalate_ticket(
        self, ticket_id: schemas.Identifier, *, priority: str, status: str, category: str
    ) -> None:
        self._touch(
            ticket_id,
            priority=priority,
            status=status,
            category=category,
            assigned_to=None,
        )

    def update_status(self, ticket_id: schemas.Identifier, status: str) -> None:
        self._touch(ticket_id, status=status, resolved=status == "closed")

    def add_note(self, ticket_id: schemas.Identifier, content: str, created_by: str) -> None:
        self.notes.append(
            {"ticket_id": ticket_id, "content": content, "created_by": created_by}
        )

    def update_name(self, ticket_id: schemas.Identifier, name: str) -> None:
        self._touch(ticket_id, name=name)

    def add_system_message(self, ticket_id: schemas.Identifier, message: str, bot_id: str) -> None:
        self.messages.append(
            {
                "id": f"message-{next(self._ids)}",
                "ticket_id": ticket_id,
                "message": message,
                "created_by": None,
                "bot_id": bot_id,
                "sender_type": "employee",
                "is_system_message": True,
                "created_at": datetime.now(timezone.utc),
            }
        )

    def _touch(self, ticket_id: schemas.Identifier, **changes: Any) -> None:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        ticket.update(changes)
        ticket["updated_at"] = datetime.now(timezone.utc)
