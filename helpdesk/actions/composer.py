"""Shape dispatched actions for the HTTP response body."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .models import Action

# Informational signals for the pipeline only; never returned to clients.
INTERNAL_ACTION_KINDS = frozenset({"search_kb", "search_info"})


def is_internal(action: Action) -> bool:
    return isinstance(action.kind, str) and action.kind in INTERNAL_ACTION_KINDS


def client_actions(actions: Iterable[Action]) -> list[dict[str, Any]]:
    return [action.to_payload() for action in actions if not is_internal(action)]
