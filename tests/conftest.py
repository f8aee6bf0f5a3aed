from __future__ import annotations

import sqlite3
import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))


@pytest.fixture
def make_db(tmp_path):
    """Create a SQLite file from a DDL/DML script and return its path."""

    def _make(name: str, script: str) -> Path:
        path = tmp_path / name
        conn = sqlite3.connect(path)
        try:
            conn.executescript(script)
            conn.commit()
        finally:
            conn.close()
        return path

    return _make


APP_V1 = """
CREATE TABLE orgs (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT,
    legacy TEXT DEFAULT 'x',
    org_id INTEGER REFERENCES orgs(id) ON DELETE CASCADE
);
CREATE INDEX ix_users_name ON users (name);
INSERT INTO orgs VALUES (1, 'acme');
INSERT INTO users VALUES (1, 'a', NULL, 1), (2, 'b', NULL, 1);
"""

APP_V2 = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name VARCHAR(50),
    age INTEGER NOT NULL DEFAULT 0
);
CREATE UNIQUE INDEX ix_users_name ON users (name);
INSERT INTO users VALUES (2, 'b2', 30), (3, 'c', 40);
CREATE TABLE notes (body TEXT);
"""


@pytest.fixture
def app_dbs(make_db):
    """Two versions of the same application database."""
    return make_db("v1.db", APP_V1), make_db("v2.db", APP_V2)
