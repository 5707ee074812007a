"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)

Every helper takes the database file explicitly; the path comes from
``config.AppConfig.db_file``.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from models import MONTH_KEYS

logger = logging.getLogger(__name__)


@contextmanager
def get_conn(db_file: Path):
    conn = sqlite3.connect(db_file, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(db_file: Path, sql: str, params: tuple = ()) -> int:
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def executemany(db_file: Path, sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn(db_file) as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(db_file: Path, sql: str, params: tuple = ()):
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(db_file: Path, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables(db_file: Path) -> None:
    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            full_name TEXT,
            role TEXT NOT NULL DEFAULT 'membre',
            created_at TEXT NOT NULL
        )
        """,
    )

    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS widows (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            full_name TEXT NOT NULL,
            id_number TEXT,
            deceased_husband TEXT,
            phone TEXT,
            city TEXT,
            address TEXT,
            housing_type TEXT,
            employment_status TEXT,
            monthly_income REAL,
            direct_support INTEGER NOT NULL DEFAULT 0,
            support_amount REAL
        )
        """,
    )

    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS orphans (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            mother_id INTEGER NOT NULL,
            full_name TEXT NOT NULL,
            birth_date TEXT,
            gender TEXT,
            city TEXT,
            school_level TEXT,
            chronic_illness INTEGER NOT NULL DEFAULT 0,
            disability INTEGER NOT NULL DEFAULT 0,
            notes TEXT,
            FOREIGN KEY(mother_id) REFERENCES widows(id) ON DELETE CASCADE
        )
        """,
    )

    month_cols = ",\n".join(f"month_{k} INTEGER NOT NULL DEFAULT 0" for k in MONTH_KEYS)
    execute(
        db_file,
        f"""
        CREATE TABLE IF NOT EXISTS donations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            donor_name TEXT,
            amount REAL NOT NULL,
            currency TEXT NOT NULL DEFAULT 'DH',
            nature TEXT,
            year INTEGER,
            annual INTEGER NOT NULL DEFAULT 0,
            donation_date TEXT,
            country TEXT,
            description TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            {month_cols}
        )
        """,
    )

    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS aid_programs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT
        )
        """,
    )

    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS aids (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            program_id INTEGER NOT NULL,
            beneficiary_type TEXT NOT NULL CHECK(beneficiary_type IN ('widow','orphan')),
            beneficiary_id INTEGER NOT NULL,
            amount REAL,
            aid_date TEXT NOT NULL,
            notes TEXT,
            FOREIGN KEY(program_id) REFERENCES aid_programs(id) ON DELETE CASCADE
        )
        """,
    )

    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL,
            action_type TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id INTEGER,
            details TEXT,
            created_at TEXT NOT NULL
        )
        """,
    )

    # Small settings table (used to force password change on first login)
    execute(
        db_file,
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """,
    )


def _get_setting(db_file: Path, key: str, default: str | None = None) -> str | None:
    row = fetch_one(db_file, "SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(db_file: Path, key: str, value: str) -> None:
    execute(
        db_file,
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(db_file: Path, default_admin_username: str, default_admin_hash: str) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default admin if no user exists
    - Force password change on first login
    """
    db_file.parent.mkdir(parents=True, exist_ok=True)
    _create_tables(db_file)

    user = fetch_one(db_file, "SELECT id FROM users LIMIT 1")
    if not user:
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        execute(
            db_file,
            "INSERT INTO users(username, password_hash, full_name, role, created_at) VALUES(?,?,?,?,?)",
            (default_admin_username, default_admin_hash, "Administrator", "admin", now),
        )
        _set_setting(db_file, "force_password_change", "1")
        logger.info("Created default admin account '%s'", default_admin_username)
    elif _get_setting(db_file, "force_password_change") is None:
        _set_setting(db_file, "force_password_change", "0")


def is_force_password_change(db_file: Path) -> bool:
    return _get_setting(db_file, "force_password_change") == "1"


def clear_force_password_change(db_file: Path) -> None:
    _set_setting(db_file, "force_password_change", "0")
