from contextlib import contextmanager

import pytest

from helpdesk.core import db
from helpdesk.core.settings import DEFAULT_BOT_ID, get_settings, reset_settings_cache


def test_settings_defaults():
    settings = get_settings()

    assert settings.db_pool_size == 3
    assert settings.user_message_timeout == 30
    assert settings.manager_prompt_timeout == 50
    assert settings.default_bot_id == DEFAULT_BOT_ID


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "http://reasoner:8000/")
    monkeypatch.setenv("FRONTEND_URL", "https://desk.example.com")
    monkeypatch.setenv("USER_MESSAGE_TIMEOUT", "12.5")
    monkeypatch.setenv("DEFAULT_BOT_ID", "bot-7")
    reset_settings_cache()

    settings = get_settings()

    assert settings.backend_url == "http://reasoner:8000"
    assert settings.user_message_timeout == 12.5
    assert settings.default_bot_id == "bot-7"
    assert settings.cors_headers()["Access-Control-Allow-Origin"] == "https://desk.example.com"
    assert settings.cors_headers()["Access-Control-Max-Age"] == "86400"


def test_settings_are_cached_until_reset(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("DEFAULT_BOT_ID", "bot-8")

    assert get_settings() is first
    reset_settings_cache()
    assert get_settings().default_bot_id == "bot-8"


def test_get_pool_requires_initialisation(monkeypatch):
    monkeypatch.setattr(db, "_pool", None)

    with pytest.raises(RuntimeError):
        db.get_pool()


def test_connection_checks_out_from_pool(monkeypatch):
    events = []

    class _Pool:
        @contextmanager
        def connection(self):
            events.append("checkout")
            yield "conn"
            events.append("return")

    monkeypatch.setattr(db, "_pool", _Pool())

    with db.connection() as conn:
        assert conn == "conn"

    assert events == ["checkout", "return"]


def test_init_pool_sizes_pool_from_settings(monkeypatch):
    created = {}

    class _Pool:
        def __init__(self, conninfo, **kwargs):
            created.update(conninfo=conninfo, **kwargs)
            self.opened = self.closed = False

        def open(self):
            self.opened = True

        def close(self):
            self.closed = True

    monkeypatch.setattr(db, "_pool", None)
    monkeypatch.setattr(db, "ConnectionPool", _Pool)
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/helpdesk")
    monkeypatch.setenv("DB_POOL_SIZE", "3")
    reset_settings_cache()

    pool = db.init_pool()

    assert pool.opened
    assert created["conninfo"] == "postgresql://u:p@db/helpdesk"
    assert created["min_size"] == created["max_size"] == 3
    assert db.init_pool() is pool

    db.close_pool()
    assert pool.closed
    assert db._pool is None
