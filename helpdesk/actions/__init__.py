"""Backend actions: parsing, escalation safety net and dispatch."""

from .composer import client_actions
from .dispatcher import ActionDispatcher, TargetNotFoundError
from .models import Action, parse_actions

__all__ = [
    "Action",
    "ActionDispatcher",
    "TargetNotFoundError",
    "client_actions",
    "parse_actions",
]
