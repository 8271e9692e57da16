import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool

_CREATE_VERIFIED_DOCUMENTS = """
CREATE TABLE IF NOT EXISTS verified_documents (
    user_id TEXT PRIMARY KEY,
    "documentoRgUrl" TEXT NOT NULL,
    "idadeVerificada" BOOLEAN NOT NULL,
    "dataNascimentoExtraida" VARCHAR(10) NOT NULL,
    verified_at TIMESTAMPTZ NOT NULL
)
"""


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "knowyourfan_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(_CREATE_VERIFIED_DOCUMENTS)
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def user_id(db_conn: psycopg.Connection[Any]) -> Generator[str, None, None]:
    """Unique user id whose verified_documents row is removed afterwards."""
    value = f"it-{uuid.uuid4()}"
    yield value
    db_conn.execute("DELETE FROM verified_documents WHERE user_id = %s", (value,))
    db_conn.commit()
