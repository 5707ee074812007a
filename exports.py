"""
exports.py
Table shaping for downloads, plus CSV (pandas) and PDF (reportlab) encoders.

Every export is a list of rows whose first row is the header.
"""

from __future__ import annotations

import io
from datetime import date
from typing import Iterable, Mapping, Sequence

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from matrix import ContributionMatrix
from models import MONTH_LABELS, Currency, ScoredWidow, TransactionRecord
from utils import calculate_age, convert_amount, format_currency, format_date, format_share

Rows = list[list]

CURRENCY_SYMBOLS = {Currency.DH: "DH", Currency.EUR: "€"}


def widows_export_rows(widows: Iterable[ScoredWidow]) -> Rows:
    rows: Rows = [[
        "#", "Nom", "CIN", "Mari", "Téléphone", "Ville", "Adresse",
        "Logement", "Soutien", "Orphelins", "Note", "Revenu",
    ]]
    for index, item in enumerate(widows, start=1):
        w = item.widow
        rows.append([
            index,
            w.full_name,
            w.id_number or "-",
            w.deceased_husband or "-",
            w.phone or "-",
            w.city or "-",
            w.address or "-",
            w.housing.value,
            "Oui" if w.direct_support else "Non",
            item.orphan_count,
            item.score,
            f"{format_share(w.monthly_income, 2)} DH",
        ])
    return rows


def donations_export_rows(
    transactions: Iterable[TransactionRecord],
    nature: str | None = None,
    currency: Currency = Currency.EUR,
) -> Rows:
    rows: Rows = [["Donateur", "Pays", "Montant", "Date", "Nature"]]
    for t in transactions:
        if nature and t.nature != nature:
            continue
        rows.append([
            t.donor_name or "",
            t.country or "-",
            format_currency(convert_amount(t.amount, t.currency, currency), currency),
            format_date(t.donation_date),
            t.nature or "-",
        ])
    return rows


def orphans_export_rows(orphans: Iterable[Mapping], today: date | None = None) -> Rows:
    """Orphans grouped by mother: rows are sorted on the mother's name."""
    rows: Rows = [["Ville", "#", "Mère", "Nom", "Sexe", "Âge", "Niveau"]]
    ordered = sorted(orphans, key=lambda o: (o.get("mother_name") or "").casefold())
    for index, o in enumerate(ordered, start=1):
        age = calculate_age(o.get("birth_date"), today)
        rows.append([
            o.get("city") or "",
            index,
            o.get("mother_name") or "-",
            o.get("full_name") or "",
            o.get("gender") or "-",
            "-" if age is None else age,
            o.get("school_level") or "-",
        ])
    return rows


def aids_export_rows(aids: Iterable[Mapping]) -> Rows:
    rows: Rows = [["#", "Date", "Bénéficiaire", "Programme", "Montant"]]
    for index, a in enumerate(aids, start=1):
        rows.append([
            index,
            format_date(a.get("aid_date")),
            a.get("beneficiary_name") or "-",
            a.get("program_name") or "-",
            format_currency(a.get("amount") or 0),
        ])
    return rows


def matrix_export_rows(matrix: ContributionMatrix) -> Rows:
    """
    Month cells are blank when empty, whole numbers print without decimals
    and fractional shares with one; totals keep two decimals.
    """
    rows: Rows = [["#", "Donateur", *MONTH_LABELS, "Total"]]
    for index, donor in enumerate(matrix.rows, start=1):
        cells = []
        for bucket in donor.months:
            cells.append(f"{format_share(bucket.value)} {CURRENCY_SYMBOLS[bucket.currency]}" if bucket.value > 0 else "")
        total = f"{format_share(donor.total, 2)} {CURRENCY_SYMBOLS[donor.currency]}"
        rows.append([index, donor.donor_name, *cells, total])
    return rows


def matrix_filename(year: int, today: date | None = None) -> str:
    today = today or date.today()
    return f"Bienfaiteurs_{year}_{today.strftime('%d-%m-%Y')}"


def rows_to_dataframe(rows: Rows) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows[1:], columns=rows[0])


def rows_to_csv_bytes(rows: Rows) -> bytes:
    return rows_to_dataframe(rows).to_csv(index=False).encode("utf-8")


def rows_to_pdf_bytes(rows: Sequence[Sequence], title: str, landscape_mode: bool = True, subtitle: str | None = None) -> bytes:
    buffer = io.BytesIO()
    pagesize = landscape(A4) if landscape_mode else A4
    doc = SimpleDocTemplate(buffer, pagesize=pagesize, leftMargin=20, rightMargin=20, topMargin=20, bottomMargin=20)
    styles = getSampleStyleSheet()

    elements = [Paragraph(title, styles["Title"])]
    if subtitle:
        elements.append(Paragraph(subtitle, styles["Normal"]))
    elements.append(Spacer(1, 12))

    table = Table([[str(cell) for cell in row] for row in rows], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#d4edda")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e0e0e0")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f0f9f4")]),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    elements.append(table)

    doc.build(elements)
    return buffer.getvalue()
