"""
auth.py
Authentication utilities (bcrypt hashing, verify, login, change password) and role checks.

This avoids passlib's bcrypt backend auto-detection issues on some Python 3.13 Windows setups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import bcrypt

import db
from errors import PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

ROLES = (
    "admin",
    "président",
    "vice-président",
    "secrétaire",
    "trésorier",
    "conseiller",
    "gestionnaire",
    "membre",
)
READ_ONLY_ROLES = {"membre"}
MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against stored bcrypt hash.
    """
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def normalize_login(identifier: str) -> str:
    # Accounts are stored by username; an email-style login keeps only the local part.
    identifier = identifier.strip()
    return identifier.split("@", 1)[0] if "@" in identifier else identifier


def get_user(db_file: Path, username: str):
    return db.fetch_one(db_file, "SELECT * FROM users WHERE username = ?", (normalize_login(username),))


def login(db_file: Path, username: str, password: str):
    """Return the user row on success, None otherwise."""
    user = get_user(db_file, username)
    if not user or not verify_password(password, user["password_hash"]):
        logger.warning("Failed login for '%s'", username)
        return None
    return user


def validate_new_password(new1: str, new2: str) -> list[str]:
    errors: list[str] = []
    if len(new1) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if new1 != new2:
        errors.append("Passwords do not match.")
    return errors


def change_password(db_file: Path, username: str, new_password: str) -> None:
    new_hash = hash_password(new_password)
    db.execute(
        db_file,
        "UPDATE users SET password_hash = ? WHERE username = ?",
        (new_hash, username),
    )
    db.clear_force_password_change(db_file)


# ---------- roles ----------

@dataclass(frozen=True)
class Actor:
    """The signed-in user behind a write: username for the audit trail, role for permissions."""

    username: str | None
    role: str | None


def is_admin(role: str | None) -> bool:
    return role == "admin"


def can_write(role: str | None) -> bool:
    return role in ROLES and role not in READ_ONLY_ROLES


def require_admin(role: str | None) -> None:
    if not is_admin(role):
        raise PermissionDenied("Accès réservé aux administrateurs")


def require_write(role: str | None) -> None:
    if not can_write(role):
        raise PermissionDenied("Action non autorisée")


def create_user(
    db_file: Path,
    acting_role: str | None,
    username: str,
    password: str,
    full_name: str,
    role: str,
) -> int:
    """Admins only. Raises ValidationError on bad input or a taken username."""
    require_admin(acting_role)
    username = normalize_login(username)
    errors: list[str] = []
    if not username:
        errors.append("Username is required.")
    if role not in ROLES:
        errors.append(f"Unknown role '{role}'.")
    errors.extend(validate_new_password(password, password))
    if username and get_user(db_file, username):
        errors.append(f"User '{username}' already exists.")
    if errors:
        raise ValidationError(errors)

    now = datetime.now(timezone.utc).isoformat(timespec="seconds")
    user_id = db.execute(
        db_file,
        "INSERT INTO users(username, password_hash, full_name, role, created_at) VALUES(?,?,?,?,?)",
        (username, hash_password(password), full_name.strip() or None, role, now),
    )
    logger.info("Created user '%s' with role '%s'", username, role)
    return user_id


def list_users(db_file: Path):
    return db.fetch_all(db_file, "SELECT id, username, full_name, role, created_at FROM users ORDER BY username")
