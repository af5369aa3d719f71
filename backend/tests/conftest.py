# Test Configuration
import base64
import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Settings are read at import time, so the environment is prepared first.
# The console registry lives in a throwaway SQLite file.
TEST_DATA_DIR = tempfile.mkdtemp(prefix="pgconsole-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DATA_DIR}/registry.db"
os.environ["ENCRYPTION_KEY"] = base64.urlsafe_b64encode(b"0" * 32).decode()
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CONF_DIR"] = os.path.join(TEST_DATA_DIR, "config")

from pgconsole.connections import pool_manager, TargetCredentials  # noqa: E402
from pgconsole.database import Base, app_engine, AppSessionLocal  # noqa: E402
import pgconsole.models  # noqa: E402,F401


ITEMS_DDL = """
CREATE TABLE items (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    sku VARCHAR(50) UNIQUE,
    qty INTEGER DEFAULT 0
)
"""

USERS_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    username VARCHAR(100) NOT NULL UNIQUE,
    password_hash VARCHAR(255) NOT NULL,
    email VARCHAR(255) UNIQUE,
    full_name VARCHAR(255),
    role VARCHAR(50) DEFAULT 'viewer',
    is_active BOOLEAN DEFAULT 1,
    last_login TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""


@pytest.fixture
def target_dir(tmp_path):
    """Directory holding the SQLite files that stand in for target databases."""
    return tmp_path


@pytest.fixture(autouse=True)
def sqlite_targets(target_dir, monkeypatch):
    """Point the pool manager at one SQLite file per target database."""
    def factory(credentials, database=None):
        return create_engine(f"sqlite:///{target_dir}/{database or credentials.database}.db")

    monkeypatch.setattr(pool_manager, "engine_factory", factory)
    return factory


@pytest.fixture
def credentials():
    return TargetCredentials(
        host="localhost",
        database="shop",
        user="tester",
        password="s3cret-pass",
    )


@pytest.fixture
def run_sql(sqlite_targets, credentials):
    """Execute raw SQL against the test target database."""
    def _run(sql, params=None):
        engine = sqlite_targets(credentials)
        try:
            with engine.begin() as conn:
                result = conn.execute(text(sql), params or {})
                return result.fetchall() if result.returns_rows else result.rowcount
        finally:
            engine.dispose()
    return _run


@pytest.fixture
def items_table(run_sql):
    run_sql(ITEMS_DDL)
    return "items"


@pytest.fixture
def users_table(run_sql):
    run_sql(USERS_DDL)
    return "users"


@pytest.fixture
def registry_db():
    """Fresh registry schema and a session on it."""
    Base.metadata.create_all(bind=app_engine)
    db = AppSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=app_engine)


@pytest.fixture
def client(registry_db):
    """Create test client"""
    from fastapi.testclient import TestClient
    from pgconsole.main import app
    return TestClient(app)
