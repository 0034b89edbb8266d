import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from helpdesk.backend.client import BackendReply, parse_reply
from helpdesk.core.settings import reset_settings_cache

BOT_ID = "bot-0001"


@dataclass
class FakeBackend:
    """Stands in for :class:`ReasoningBackendClient`; records every call."""

    reply: BackendReply | None = None
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "FakeBackend":
        return cls(reply=parse_reply(body))

    def _answer(self, path: str, body: Any, timeout: float) -> BackendReply:
        self.calls.append({"path": path, "body": body, "timeout": timeout})
        if self.error is not None:
            raise self.error
        assert self.reply is not None, "FakeBackend needs a reply or an error"
        return self.reply

    def send_user_message(self, messages, *, timeout):
        return self._answer("/api/v1/user-message", {"messages": messages}, timeout)

    def send_manager_prompt(self, body, *, timeout):
        return self._answer("/api/v1/manager-prompt", body, timeout)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for name in (
        "BACKEND_URL",
        "DATABASE_URL",
        "FRONTEND_URL",
        "DB_POOL_SIZE",
        "DEFAULT_BOT_ID",
        "USER_MESSAGE_TIMEOUT",
        "MANAGER_PROMPT_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()

