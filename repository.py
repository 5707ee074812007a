"""
repository.py
Queries and CRUD over widows, orphans, donations and aid, returning typed records.

Filters are explicit values passed by the caller; nothing here keeps state
between calls.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import audit
import db
from auth import Actor, require_write
from errors import RecordNotFound
from models import (
    MONTH_KEYS,
    BeneficiaryRecord,
    DependentRecord,
    ScoredWidow,
    TransactionRecord,
)
from scoring import compute_score

WIDOW_COLUMNS = (
    "full_name", "id_number", "deceased_husband", "phone", "city", "address",
    "housing_type", "employment_status", "monthly_income", "direct_support", "support_amount",
)
ORPHAN_COLUMNS = (
    "mother_id", "full_name", "birth_date", "gender", "city", "school_level",
    "chronic_illness", "disability", "notes",
)
DONATION_COLUMNS = (
    "donor_name", "amount", "currency", "nature", "year", "annual", "donation_date",
    "country", "description",
) + tuple(f"month_{k}" for k in MONTH_KEYS)


@dataclass(frozen=True)
class WidowFilters:
    search: str = ""
    city: str = ""
    sort_by: str = "score"
    sort_order: str = "desc"


@dataclass(frozen=True)
class OrphanFilters:
    search: str = ""
    city: str = ""


def _like(search: str) -> str:
    return f"%{search.strip()}%"


# ---------- widows ----------

def orphans_by_mother(db_file: Path) -> dict[int, list[DependentRecord]]:
    grouped: dict[int, list[DependentRecord]] = defaultdict(list)
    for r in db.fetch_all(db_file, "SELECT * FROM orphans ORDER BY id"):
        dependent = DependentRecord.from_row(r)
        if dependent.mother_id is not None:
            grouped[dependent.mother_id].append(dependent)
    return grouped


def _sort_value(item: ScoredWidow, field: str) -> Any:
    if field == "score":
        return item.score
    if field == "orphan_count":
        return item.orphan_count
    value = getattr(item.widow, field, None)
    if field == "monthly_income":
        return float(value or 0)
    if isinstance(value, bool):
        return int(value)
    if hasattr(value, "value"):
        value = value.value
    return "" if value is None else str(value).lower()


def list_widows(db_file: Path, filters: WidowFilters = WidowFilters()) -> list[ScoredWidow]:
    sql = "SELECT * FROM widows WHERE 1=1"
    params: list[Any] = []

    if filters.search.strip():
        sql += " AND (full_name LIKE ? OR id_number LIKE ? OR phone LIKE ?)"
        like = _like(filters.search)
        params.extend([like, like, like])

    if filters.city:
        sql += " AND city = ?"
        params.append(filters.city)

    rows = db.fetch_all(db_file, sql, tuple(params))
    dependents = orphans_by_mother(db_file)

    scored = []
    for r in rows:
        widow = BeneficiaryRecord.from_row(r)
        kids = tuple(dependents.get(widow.id, ()))
        scored.append(ScoredWidow(widow=widow, dependents=kids, score=compute_score(widow, kids)))

    scored.sort(
        key=lambda item: _sort_value(item, filters.sort_by),
        reverse=filters.sort_order == "desc",
    )
    return scored


def list_cities(db_file: Path) -> list[str]:
    rows = db.fetch_all(
        db_file,
        "SELECT DISTINCT city FROM widows WHERE city IS NOT NULL AND city != '' ORDER BY city",
    )
    return [r["city"] for r in rows]


def get_widow(db_file: Path, widow_id: int) -> BeneficiaryRecord:
    row = db.fetch_one(db_file, "SELECT * FROM widows WHERE id = ?", (widow_id,))
    if not row:
        raise RecordNotFound(f"Widow {widow_id} not found")
    return BeneficiaryRecord.from_row(row)


def get_widow_row(db_file: Path, widow_id: int):
    return db.fetch_one(db_file, "SELECT * FROM widows WHERE id = ?", (widow_id,))


def _save(db_file: Path, table: str, columns: tuple[str, ...], values: dict, record_id: int | None) -> int:
    # Only the supplied columns are written; the rest keep their defaults
    columns = tuple(c for c in columns if c in values)
    params = tuple(values[c] for c in columns)
    if record_id is None:
        placeholders = ",".join("?" * len(columns))
        return db.execute(
            db_file,
            f"INSERT INTO {table}({', '.join(columns)}) VALUES({placeholders})",
            params,
        )
    assignments = ", ".join(f"{c}=?" for c in columns)
    db.execute(db_file, f"UPDATE {table} SET {assignments} WHERE id=?", params + (record_id,))
    return record_id


def _save_audited(
    db_file: Path, actor: Actor, table: str, entity: str,
    columns: tuple[str, ...], values: dict, record_id: int | None,
) -> int:
    require_write(actor.role)
    saved_id = _save(db_file, table, columns, values, record_id)
    details = {"id": saved_id, **{k: values.get(k) for k in columns if k in values}}
    if record_id is None:
        audit.log_create(db_file, actor.username, entity, details)
    else:
        audit.log_update(db_file, actor.username, entity, details)
    return saved_id


def _delete_audited(db_file: Path, actor: Actor, table: str, entity: str, record_id: int, name: str | None = None) -> None:
    require_write(actor.role)
    db.execute(db_file, f"DELETE FROM {table} WHERE id = ?", (record_id,))
    audit.log_delete(db_file, actor.username, entity, {"id": record_id, "name": name})


def save_widow(db_file: Path, actor: Actor, values: dict, widow_id: int | None = None) -> int:
    return _save_audited(db_file, actor, "widows", "widow", WIDOW_COLUMNS, values, widow_id)


def delete_widow(db_file: Path, actor: Actor, widow_id: int, name: str | None = None) -> None:
    _delete_audited(db_file, actor, "widows", "widow", widow_id, name)


# ---------- orphans ----------

def list_orphans(db_file: Path, filters: OrphanFilters = OrphanFilters()) -> list[dict]:
    sql = """
        SELECT o.*, w.full_name AS mother_name
        FROM orphans o
        LEFT JOIN widows w ON w.id = o.mother_id
        WHERE 1=1
    """
    params: list[Any] = []
    if filters.search.strip():
        sql += " AND (o.full_name LIKE ? OR w.full_name LIKE ?)"
        like = _like(filters.search)
        params.extend([like, like])
    if filters.city:
        sql += " AND o.city = ?"
        params.append(filters.city)
    sql += " ORDER BY o.full_name ASC"
    return [dict(r) for r in db.fetch_all(db_file, sql, tuple(params))]


def get_orphan_row(db_file: Path, orphan_id: int):
    return db.fetch_one(db_file, "SELECT * FROM orphans WHERE id = ?", (orphan_id,))


def save_orphan(db_file: Path, actor: Actor, values: dict, orphan_id: int | None = None) -> int:
    return _save_audited(db_file, actor, "orphans", "orphan", ORPHAN_COLUMNS, values, orphan_id)


def delete_orphan(db_file: Path, actor: Actor, orphan_id: int, name: str | None = None) -> None:
    _delete_audited(db_file, actor, "orphans", "orphan", orphan_id, name)


# ---------- donations ----------

def list_donations(db_file: Path) -> list[TransactionRecord]:
    rows = db.fetch_all(db_file, "SELECT * FROM donations ORDER BY created_at DESC, id DESC")
    return [TransactionRecord.from_row(r) for r in rows]


def get_donation_row(db_file: Path, donation_id: int):
    return db.fetch_one(db_file, "SELECT * FROM donations WHERE id = ?", (donation_id,))


def save_donation(db_file: Path, actor: Actor, values: dict, donation_id: int | None = None) -> int:
    return _save_audited(db_file, actor, "donations", "donation", DONATION_COLUMNS, values, donation_id)


def delete_donation(db_file: Path, actor: Actor, donation_id: int) -> None:
    _delete_audited(db_file, actor, "donations", "donation", donation_id)


# ---------- aid ----------

def list_programs(db_file: Path) -> list[dict]:
    return [dict(r) for r in db.fetch_all(db_file, "SELECT * FROM aid_programs ORDER BY name")]


def save_program(db_file: Path, actor: Actor, name: str, description: str | None = None) -> int:
    values = {"name": name.strip(), "description": description}
    return _save_audited(db_file, actor, "aid_programs", "aid_program", ("name", "description"), values, None)


def delete_program(db_file: Path, actor: Actor, program_id: int) -> None:
    _delete_audited(db_file, actor, "aid_programs", "aid_program", program_id)


_AIDS_SQL = """
    SELECT a.*, p.name AS program_name,
        CASE a.beneficiary_type
            WHEN 'widow' THEN (SELECT full_name FROM widows WHERE id = a.beneficiary_id)
            ELSE (SELECT full_name FROM orphans WHERE id = a.beneficiary_id)
        END AS beneficiary_name
    FROM aids a
    JOIN aid_programs p ON p.id = a.program_id
"""


def list_aids(db_file: Path) -> list[dict]:
    rows = db.fetch_all(db_file, _AIDS_SQL + " ORDER BY a.aid_date DESC, a.id DESC")
    return [dict(r) for r in rows]


def aids_for_beneficiary(db_file: Path, beneficiary_type: str, beneficiary_id: int) -> list[dict]:
    """Aid history of one widow or orphan, newest first."""
    rows = db.fetch_all(
        db_file,
        _AIDS_SQL + " WHERE a.beneficiary_type = ? AND a.beneficiary_id = ? ORDER BY a.aid_date DESC, a.id DESC",
        (beneficiary_type, beneficiary_id),
    )
    return [dict(r) for r in rows]


def save_aid(db_file: Path, actor: Actor, values: dict) -> int:
    columns = ("program_id", "beneficiary_type", "beneficiary_id", "amount", "aid_date", "notes")
    return _save_audited(db_file, actor, "aids", "aid", columns, values, None)


def delete_aid(db_file: Path, actor: Actor, aid_id: int) -> None:
    _delete_audited(db_file, actor, "aids", "aid", aid_id)


def dashboard_counts(db_file: Path) -> dict[str, int]:
    counts = {}
    for table in ("widows", "orphans", "donations", "aids"):
        counts[table] = int(db.fetch_one(db_file, f"SELECT COUNT(*) AS c FROM {table}")["c"])
    return counts
