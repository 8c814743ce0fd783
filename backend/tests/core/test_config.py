"""Settings — environment overrides and URL normalization."""

from marketplace.config import Settings


def test_postgres_url_gets_asyncpg_driver():
    settings = Settings(database_url="postgresql://u:p@host/db")
    assert settings.database_url == "postgresql+asyncpg://u:p@host/db"


def test_sqlite_url_untouched():
    settings = Settings(database_url="sqlite+aiosqlite:///x.db")
    assert settings.database_url == "sqlite+aiosqlite:///x.db"


def test_caller_header_from_environment(monkeypatch):
    monkeypatch.setenv("CALLER_ID_HEADER", "X-Forwarded-User")
    assert Settings().caller_id_header == "X-Forwarded-User"
