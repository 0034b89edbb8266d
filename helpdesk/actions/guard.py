"""Escalation safety net for the user-message flow.

Guarantees that a request for human help is never lost: a backend failure
always yields a ``technical`` escalation, and a reply that talks about
escalating (or sets the ``escalate`` flag) without emitting the action gets
one appended.
"""

from __future__ import annotations

from ..backend.client import BackendReply
from .models import Action, EscalateAction

ESCALATION_KEYWORDS = (
    "escalate",
    "escalated",
    "human agent",
    "support representative",
    "real person",
)

FALLBACK_MESSAGE = (
    "I'm having trouble processing your request. "
    "A human agent will assist you shortly."
)
AUTO_ESCALATION_REASON = "Auto-escalation from system message or API response"


def _escalation(reason: str, category: str) -> EscalateAction:
    return EscalateAction(
        kind="escalate",
        reason=reason,
        metadata={"priority": "high", "status": "fresh", "category": category},
    )


def should_escalate(text: str, escalate_flag: bool = False) -> bool:
    lowered = text.lower()
    return escalate_flag or any(word in lowered for word in ESCALATION_KEYWORDS)


def apply_escalation_guard(reply: BackendReply) -> list[Action]:
    """Return the reply's actions, plus a synthetic escalation when needed."""

    actions = list(reply.actions)
    if not should_escalate(reply.text, reply.escalate):
        return actions
    if not any(action.kind == "escalate" for action in actions):
        actions.append(_escalation(AUTO_ESCALATION_REASON, "general"))
    return actions


def fallback_actions(error: BaseException) -> list[Action]:
    """Replacement action list used when the backend call failed."""

    return [_escalation(f"API error: {error}", "technical")]
