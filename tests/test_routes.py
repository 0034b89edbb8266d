"""HTTP-level tests for the two request handlers."""

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from helpdesk.core import db
from helpdesk.knowledge.repository import InMemoryKnowledgeRepository
from helpdesk.knowledge.service import ManagerPromptService
from helpdesk.main import app
from helpdesk.routers import manager, messages
from helpdesk.tickets.repository import InMemoryTicketRepository
from helpdesk.tickets.service import TicketMessageService

from conftest import BOT_ID, FakeBackend

MESSAGE_BODY = {"message_id": "m-1", "ticket_id": "t-1", "message": "Help", "user_id": "u-1"}
PROMPT_BODY = {"prompt_id": "p-1", "conversation_id": "c-1", "prompt": "Write an FAQ"}


@pytest.fixture
def client():
    # no context manager: the lifespan (and its database pool) stays closed
    return TestClient(app)


def _use_ticket_service(monkeypatch, repository, backend):
    @contextmanager
    def _context():
        yield TicketMessageService(repository, backend, bot_id=BOT_ID, timeout=30)

    monkeypatch.setattr(messages, "_service_context", _context)


def _use_manager_service(monkeypatch, repository, backend):
    @contextmanager
    def _context():
        yield ManagerPromptService(repository, backend, bot_id=BOT_ID, timeout=50)

    monkeypatch.setattr(manager, "_service_context", _context)


@pytest.mark.parametrize(
    "path", [messages.HANDLE_MESSAGE_PATH, manager.HANDLE_MANAGER_PROMPT_PATH]
)
def test_preflight_answers_ok_with_cors_headers(client, monkeypatch, path):
    monkeypatch.setenv("FRONTEND_URL", "https://desk.example.com")

    resp = client.options(path)

    assert resp.status_code == 200
    assert resp.text == "ok"
    assert resp.headers["access-control-allow-origin"] == "https://desk.example.com"
    assert resp.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert "apikey" in resp.headers["access-control-allow-headers"]


def test_handle_message_returns_reply_and_client_actions(client, monkeypatch):
    repository = InMemoryTicketRepository({"t-1": {"status": "open"}})
    backend = FakeBackend.from_body(
        {
            "response": "Closing this.",
            "actions": [
                {"action": "search_kb", "results": []},
                {"action": "update_status", "status": "closed"},
            ],
        }
    )
    _use_ticket_service(monkeypatch, repository, backend)

    resp = client.post(messages.HANDLE_MESSAGE_PATH, json=MESSAGE_BODY)

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Closing this.",
        "actions": [{"action": "update_status", "status": "closed"}],
    }
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert repository.tickets["t-1"]["resolved"] is True


def test_handle_message_failure_reports_stack(client, monkeypatch):
    backend = FakeBackend.from_body(
        {"response": "Renaming.", "actions": [{"action": "update_name", "name": "x"}]}
    )
    _use_ticket_service(monkeypatch, InMemoryTicketRepository(), backend)

    resp = client.post(messages.HANDLE_MESSAGE_PATH, json=MESSAGE_BODY)

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Ticket not found with ID: t-1"
    assert body["details"] == "Fatal error in edge function"
    assert "TicketNotFoundError" in body["stack"]
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_handle_manager_prompt_returns_response(client, monkeypatch):
    repository = InMemoryKnowledgeRepository()
    backend = FakeBackend.from_body(
        {"response": "Drafted.", "actions": [{"action": "write_article", "article": {"title": "FAQ"}}]}
    )
    _use_manager_service(monkeypatch, repository, backend)

    resp = client.post(manager.HANDLE_MANAGER_PROMPT_PATH, json=PROMPT_BODY)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["response"] == "Drafted."
    assert body["actions"] == [{"action": "write_article", "article": {"title": "FAQ"}}]
    (article,) = repository.articles.values()
    assert article["title"] == "FAQ"


def test_handle_manager_prompt_failure_has_no_stack(client, monkeypatch):
    backend = FakeBackend(error=RuntimeError("backend down"))
    _use_manager_service(monkeypatch, InMemoryKnowledgeRepository(), backend)

    resp = client.post(manager.HANDLE_MANAGER_PROMPT_PATH, json=PROMPT_BODY)

    assert resp.status_code == 500
    assert resp.json() == {"error": "backend down", "details": "Error processing request"}


class _Cursor:
    def __init__(self, conn):
        self._conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self._conn.statements.append(" ".join(sql.split()))

    def fetchone(self):
        return None

    def fetchall(self):
        return []


class _Conn:
    def __init__(self):
        self.statements = []

    def cursor(self, row_factory=None):
        return _Cursor(self)


class _Pool:
    def __init__(self):
        self.conn = _Conn()
        self.outcomes = []

    @contextmanager
    def connection(self):
        try:
            yield self.conn
        except Exception:
            self.outcomes.append("rollback")
            raise
        self.outcomes.append("commit")


def test_failed_request_rolls_back_its_transaction(client, monkeypatch):
    pool = _Pool()
    monkeypatch.setattr(db, "_pool", pool)
    backend = FakeBackend.from_body(
        {
            "response": "Done.",
            "actions": [{"action": "add_note", "note": "n"}, {"action": "update_name", "name": "x"}],
        }
    )
    monkeypatch.setattr(messages, "get_backend_client", lambda: backend)

    resp = client.post(messages.HANDLE_MESSAGE_PATH, json=MESSAGE_BODY)

    assert resp.status_code == 500
    assert pool.outcomes == ["rollback"]
    assert not any(sql.startswith("INSERT INTO messages") for sql in pool.conn.statements)


def test_successful_request_commits_once(client, monkeypatch):
    pool = _Pool()
    monkeypatch.setattr(db, "_pool", pool)
    backend = FakeBackend.from_body({"response": "Hi."})
    monkeypatch.setattr(messages, "get_backend_client", lambda: backend)

    resp = client.post(messages.HANDLE_MESSAGE_PATH, json=MESSAGE_BODY)

    assert resp.status_code == 200
    assert pool.outcomes == ["commit"]
    assert pool.conn.statements[-1].startswith("INSERT INTO messages")


def test_health_and_version(client):
    assert client.get("/api/health").json() == {"status": "ok"}
    assert "version" in client.get("/api/version").json()
