"""
audit.py
Audit trail of user actions, stored in the audit_logs table.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import db

logger = logging.getLogger(__name__)

ACTION_TYPES = ("CREATE", "UPDATE", "DELETE", "EXPORT", "LOGIN", "LOGOUT")


def log_action(db_file: Path, username: str | None, action_type: str, entity_type: str, details: dict | None = None) -> None:
    """Record one action. Storage failures are logged, not raised."""
    if not username:
        logger.warning("Cannot log %s on %s: no user session", action_type, entity_type)
        return
    details = details or {}
    try:
        db.execute(
            db_file,
            """
            INSERT INTO audit_logs(username, action_type, entity_type, entity_id, details, created_at)
            VALUES(?,?,?,?,?,?)
            """,
            (
                username,
                action_type,
                entity_type,
                details.get("id"),
                json.dumps(details, default=str, ensure_ascii=False),
                datetime.now(timezone.utc).isoformat(timespec="seconds"),
            ),
        )
    except sqlite3.Error:
        logger.exception("Audit logging failed for %s %s", action_type, entity_type)


def log_create(db_file: Path, username: str | None, entity_type: str, details: dict | None = None) -> None:
    log_action(db_file, username, "CREATE", entity_type, details)


def log_update(db_file: Path, username: str | None, entity_type: str, details: dict | None = None) -> None:
    log_action(db_file, username, "UPDATE", entity_type, details)


def log_delete(db_file: Path, username: str | None, entity_type: str, details: dict | None = None) -> None:
    log_action(db_file, username, "DELETE", entity_type, details)


def log_export(db_file: Path, username: str | None, entity_type: str, details: dict | None = None) -> None:
    log_action(db_file, username, "EXPORT", entity_type, details)


def log_login(db_file: Path, username: str | None) -> None:
    log_action(db_file, username, "LOGIN", "auth")


def log_logout(db_file: Path, username: str | None) -> None:
    log_action(db_file, username, "LOGOUT", "auth")


def recent_actions(db_file: Path, limit: int = 100) -> list[dict]:
    rows = db.fetch_all(
        db_file,
        "SELECT * FROM audit_logs ORDER BY id DESC LIMIT ?",
        (limit,),
    )
    actions = []
    for r in rows:
        entry = dict(r)
        entry["details"] = json.loads(entry["details"]) if entry["details"] else {}
        actions.append(entry)
    return actions
