"""
app.py
Streamlit charity management dashboard (widows, orphans, donations, aid).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date

import pandas as pd
import streamlit as st

import audit
import auth
import db
import exports
import repository
import stats
import utils
from config import AppConfig, load_config
from errors import CharityError, ValidationError
from logger import configure_logging, log_event
from matrix import build_matrix
from models import (
    DONATION_NATURES,
    MEMBERSHIP_NATURE,
    MONTH_KEYS,
    MONTH_LABELS,
    Currency,
    EmploymentStatus,
    HousingType,
)
from scoring import priority_band

st.set_page_config(page_title="Charity Management", layout="wide")

logger = logging.getLogger(__name__)

BAND_ICONS = {"high": "🔴", "medium": "🟠", "low": "🔵"}


def init_once(cfg: AppConfig):
    # Initialize logging + DB + default admin once per session
    if st.session_state.get("db_ready"):
        return
    configure_logging(cfg.log_level, cfg.log_dir)
    db.init_db(cfg.db_file, cfg.default_admin_username, auth.hash_password(cfg.default_admin_password))
    st.session_state.db_ready = True


def require_login():
    for key in ("logged_in", "username", "role"):
        if key not in st.session_state:
            st.session_state[key] = None
    if not st.session_state.logged_in:
        st.session_state.logged_in = False


def current_user() -> str | None:
    return st.session_state.username


def current_role() -> str | None:
    return st.session_state.role


def current_actor() -> auth.Actor:
    return auth.Actor(current_user(), current_role())


def logout(cfg: AppConfig):
    audit.log_logout(cfg.db_file, current_user())
    st.session_state.logged_in = False
    st.session_state.username = None
    st.session_state.role = None
    st.success("Logged out.")


def login_screen(cfg: AppConfig):
    st.title("🔐 Connexion")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value=cfg.default_admin_username)
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            user = auth.login(cfg.db_file, username, password)
            if user:
                st.session_state.logged_in = True
                st.session_state.username = user["username"]
                st.session_state.role = user["role"]
                audit.log_login(cfg.db_file, user["username"])
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            f"- username: **{cfg.default_admin_username}**\n\n"
            "You will be forced to change its password on first login."
        )


def password_inputs(key: str) -> tuple[str, str]:
    new1 = st.text_input("New password", type="password", key=f"{key}_1")
    new2 = st.text_input("Confirm new password", type="password", key=f"{key}_2")
    return new1, new2


def force_change_password_screen(cfg: AppConfig):
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1, new2 = password_inputs("force_pw")

    if st.button("Update password", type="primary"):
        errors = auth.validate_new_password(new1, new2)
        for e in errors:
            st.error(e)
        if errors:
            return
        auth.change_password(cfg.db_file, current_user(), new1)
        st.success("Password updated. You can continue.")
        st.rerun()


def show_errors(errors: list[str]) -> None:
    for e in errors:
        st.error(e)


def paginate(key: str, items: list, per_page: int) -> list:
    page = st.session_state.get(key)
    if page is None or page.total_items != len(items) or page.per_page != per_page:
        page = utils.Page(len(items), per_page)
    if page.total_pages > 1:
        choices = [p for p in page.visible_pages() if p is not None]
        chosen = st.selectbox(
            f"Page (1–{page.total_pages})", choices, index=choices.index(page.current), key=f"{key}_select"
        )
        page = page.go_to(chosen)
    st.session_state[key] = page
    return list(page.slice(items))


# ---------- Dashboard ----------

def dashboard_page(cfg: AppConfig):
    st.header("📊 Tableau de bord")

    counts = repository.dashboard_counts(cfg.db_file)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Veuves", counts["widows"])
    c2.metric("Orphelins", counts["orphans"])
    c3.metric("Dons", counts["donations"])
    c4.metric("Aides attribuées", counts["aids"])

    st.divider()

    donation_metrics(cfg)

    st.divider()

    st.subheader("Highest priority widows")
    top = repository.list_widows(cfg.db_file)[:5]
    if top:
        st.dataframe(widows_frame(top), use_container_width=True, hide_index=True)
    else:
        st.caption("No widows registered yet.")


def donation_metrics(cfg: AppConfig):
    figures = stats.donation_stats(repository.list_donations(cfg.db_file), currency=cfg.display_currency)
    c1, c2, c3 = st.columns(3)
    delta = f"{figures.vs_last_year_pct}% vs last year" if figures.vs_last_year_pct is not None else None
    c1.metric("Total this year", utils.format_currency(figures.total_year, cfg.display_currency), delta)
    c2.metric("Active donors", figures.active_donors, f"+{figures.donors_this_month} this month")
    if figures.last_amount is not None:
        ago = f"{figures.days_since_last} days ago" if figures.days_since_last is not None else None
        c3.metric("Last donation", utils.format_currency(figures.last_amount, figures.last_currency), ago, delta_color="off")
    else:
        c3.metric("Last donation", "-")


# ---------- Widows ----------

def widows_frame(scored) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "id": s.widow.id,
            "Nom": s.widow.full_name,
            "CIN": s.widow.id_number or "-",
            "Téléphone": s.widow.phone or "-",
            "Ville": s.widow.city or "-",
            "Logement": s.widow.housing.value,
            "Soutien": "✅" if s.widow.direct_support else "❌",
            "Orphelins": s.orphan_count,
            "Note": f"{BAND_ICONS[priority_band(s.score)]} {s.score}",
            "Revenu": utils.format_currency(s.widow.monthly_income),
        }
        for s in scored
    ])


def widow_form(cfg: AppConfig, existing=None):
    if existing:
        st.subheader(f"✏️ Edit Widow (ID: {existing['id']})")
    else:
        st.subheader("➕ Add Widow")

    housing_options = [h.value for h in HousingType]
    employment_options = [e.value for e in EmploymentStatus]
    key = f"widow_{existing['id'] if existing else 'new'}"

    col1, col2, col3 = st.columns(3)
    with col1:
        full_name = st.text_input("Full name", value=(existing["full_name"] if existing else ""), key=f"{key}_name")
        id_number = st.text_input("ID number", value=(existing["id_number"] or "" if existing else ""), key=f"{key}_cin")
        husband = st.text_input("Deceased husband", value=(existing["deceased_husband"] or "" if existing else ""), key=f"{key}_husband")
        phone = st.text_input("Phone", value=(existing["phone"] or "" if existing else ""), key=f"{key}_phone")

    with col2:
        city = st.text_input("City", value=(existing["city"] or "" if existing else ""), key=f"{key}_city")
        address = st.text_input("Address", value=(existing["address"] or "" if existing else ""), key=f"{key}_address")
        current_housing = HousingType.parse(existing["housing_type"] if existing else None).value
        housing = st.selectbox("Housing", housing_options, index=housing_options.index(current_housing), key=f"{key}_housing")
        current_employment = EmploymentStatus.parse(existing["employment_status"] if existing else None).value
        employment = st.selectbox(
            "Employment", employment_options, index=employment_options.index(current_employment), key=f"{key}_employment"
        )

    with col3:
        income = st.text_input(
            "Monthly income (DH)",
            value=(str(existing["monthly_income"] or 0) if existing else "0"),
            key=f"{key}_income",
        )
        direct_support = st.checkbox(
            "Receives direct social support", value=bool(existing["direct_support"]) if existing else False, key=f"{key}_support"
        )
        support_amount = st.number_input(
            "Support amount (DH)", min_value=0.0,
            value=float(existing["support_amount"] or 0) if existing else 0.0, key=f"{key}_support_amount",
        )

    errors = utils.validate_widow_inputs(full_name, income, phone)
    show_errors(errors)

    if st.button("Save", type="primary", disabled=bool(errors), key=f"{key}_save"):
        values = {
            "full_name": full_name.strip(),
            "id_number": id_number.strip() or None,
            "deceased_husband": husband.strip() or None,
            "phone": phone.strip() or None,
            "city": city.strip() or None,
            "address": address.strip() or None,
            "housing_type": housing,
            "employment_status": employment,
            "monthly_income": float(income or 0),
            "direct_support": int(direct_support),
            "support_amount": support_amount,
        }
        repository.save_widow(cfg.db_file, current_actor(), values, existing["id"] if existing else None)
        st.success("Widow updated." if existing else "Widow added.")
        st.session_state.edit_widow_id = None
        st.rerun()


def widows_page(cfg: AppConfig):
    st.header("👩 Veuves")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name / ID / phone)", key="widow_search")
        city = st.selectbox("City", ["All"] + repository.list_cities(cfg.db_file), key="widow_city")
        sort_labels = {"Note": "score", "Nom": "full_name", "Ville": "city", "Revenu": "monthly_income", "Orphelins": "orphan_count"}
        sort_label = st.selectbox("Sort by", list(sort_labels), key="widow_sort")
        descending = st.checkbox("Descending", value=True, key="widow_desc")

    filters = repository.WidowFilters(
        search=search,
        city="" if city == "All" else city,
        sort_by=sort_labels[sort_label],
        sort_order="desc" if descending else "asc",
    )
    scored = repository.list_widows(cfg.db_file, filters)

    if scored:
        st.dataframe(widows_frame(paginate("widows_page", scored, cfg.page_size)), use_container_width=True, hide_index=True)
        export_buttons(cfg, "widow", exports.widows_export_rows(scored), "liste_veuves", "Liste des Veuves")
    else:
        st.caption("Aucune veuve trouvée.")

    if not auth.can_write(current_role()):
        return

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select widow")
        selected_id = st.selectbox("Widow ID", options=["(none)"] + [str(s.widow.id) for s in scored])

    with colB:
        if selected_id != "(none)":
            w = repository.get_widow(cfg.db_file, int(selected_id))
            st.subheader(f"Actions: {w.full_name}")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Edit"):
                    st.session_state.edit_widow_id = int(selected_id)
                    st.rerun()
            with c2:
                delete_confirm = st.checkbox("Confirm delete (removes her orphans too)", value=False, key="del_widow")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    repository.delete_widow(cfg.db_file, current_actor(), int(selected_id), w.full_name)
                    st.success("Widow deleted.")
                    st.rerun()

    st.divider()

    if st.session_state.get("edit_widow_id"):
        existing = repository.get_widow_row(cfg.db_file, st.session_state.edit_widow_id)
        if existing:
            widow_form(cfg, existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_widow_id = None
            st.rerun()
    else:
        widow_form(cfg)


def export_buttons(cfg: AppConfig, entity: str, rows: list[list], filename: str, title: str, subtitle: str | None = None):
    c1, c2 = st.columns(2)
    with c1:
        if st.download_button(
            "Download CSV",
            data=exports.rows_to_csv_bytes(rows),
            file_name=f"{filename}.csv",
            mime="text/csv",
            key=f"{filename}_csv",
        ):
            audit.log_export(cfg.db_file, current_user(), entity, {"format": "csv", "rows": len(rows) - 1})
    with c2:
        full_subtitle = subtitle or f"{cfg.organisation_name} - {utils.format_date(date.today())}"
        if st.download_button(
            "Download PDF",
            data=exports.rows_to_pdf_bytes(rows, title, subtitle=full_subtitle),
            file_name=f"{filename}.pdf",
            mime="application/pdf",
            key=f"{filename}_pdf",
        ):
            audit.log_export(cfg.db_file, current_user(), entity, {"format": "pdf", "rows": len(rows) - 1})


# ---------- Orphans ----------

def orphan_form(cfg: AppConfig, existing=None):
    if existing:
        st.subheader(f"✏️ Edit Orphan (ID: {existing['id']})")
    else:
        st.subheader("➕ Add Orphan")

    mothers = db.fetch_all(cfg.db_file, "SELECT id, full_name FROM widows ORDER BY full_name ASC")
    if not mothers:
        st.info("No widows yet. Add a widow first.")
        return
    options = {f"{m['full_name']} - ID {m['id']}": m["id"] for m in mothers}
    labels = list(options)
    default_index = 0
    if existing:
        default_index = next((i for i, label in enumerate(labels) if options[label] == existing["mother_id"]), 0)
    key = f"orphan_{existing['id'] if existing else 'new'}"

    col1, col2, col3 = st.columns(3)
    with col1:
        full_name = st.text_input("Full name", value=(existing["full_name"] if existing else ""), key=f"{key}_name")
        mother_label = st.selectbox("Mother", labels, index=default_index, key=f"{key}_mother")
        gender = st.selectbox(
            "Gender", ["F", "M"], index=(1 if existing and existing["gender"] == "M" else 0), key=f"{key}_gender"
        )
    with col2:
        birth_date = st.date_input(
            "Birth date",
            value=(utils.parse_iso(existing["birth_date"]) if existing and existing["birth_date"] else date.today()),
            max_value=date.today(),
            key=f"{key}_birth",
        ).isoformat()
        city = st.text_input("City", value=(existing["city"] or "" if existing else ""), key=f"{key}_city")
        school_level = st.text_input("School level", value=(existing["school_level"] or "" if existing else ""), key=f"{key}_school")
    with col3:
        chronic = st.checkbox("Chronic illness", value=bool(existing["chronic_illness"]) if existing else False, key=f"{key}_chronic")
        disability = st.checkbox("Disability", value=bool(existing["disability"]) if existing else False, key=f"{key}_disability")
        notes = st.text_input("Notes", value=(existing["notes"] or "" if existing else ""), key=f"{key}_notes")

    errors = utils.validate_orphan_inputs(full_name, options[mother_label], birth_date)
    show_errors(errors)

    if st.button("Save", type="primary", disabled=bool(errors), key=f"{key}_save"):
        values = {
            "mother_id": options[mother_label],
            "full_name": full_name.strip(),
            "birth_date": birth_date,
            "gender": gender,
            "city": city.strip() or None,
            "school_level": school_level.strip() or None,
            "chronic_illness": int(chronic),
            "disability": int(disability),
            "notes": notes.strip() or None,
        }
        repository.save_orphan(cfg.db_file, current_actor(), values, existing["id"] if existing else None)
        st.success("Orphan updated." if existing else "Orphan added.")
        st.session_state.edit_orphan_id = None
        st.rerun()


def orphan_aid_history(cfg: AppConfig, orphan_id: int):
    st.subheader("Aides reçues")
    aids = repository.aids_for_beneficiary(cfg.db_file, "orphan", orphan_id)
    if not aids:
        st.caption("Aucune aide reçue.")
        return
    for a in aids:
        st.markdown(
            f"**{a['program_name'] or 'Aide'}** · {utils.format_currency(a['amount'] or 0)} · {utils.format_date(a['aid_date'])}"
        )


def orphans_page(cfg: AppConfig):
    st.header("🧒 Orphelins")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name / mother)", key="orphan_search")
        city = st.text_input("City", key="orphan_city")

    orphans = repository.list_orphans(cfg.db_file, repository.OrphanFilters(search=search, city=city.strip()))
    today = date.today()
    if orphans:
        df = pd.DataFrame([
            {
                "id": o["id"],
                "Nom": o["full_name"],
                "Mère": o["mother_name"] or "-",
                "Né(e) le": utils.format_date(o["birth_date"]),
                "Âge": utils.calculate_age(o["birth_date"], today),
                "Ville": o["city"] or "-",
                "Maladie chronique": "✅" if o["chronic_illness"] else "",
                "Handicap": "✅" if o["disability"] else "",
            }
            for o in paginate("orphans_page", orphans, cfg.page_size)
        ])
        st.dataframe(df, use_container_width=True, hide_index=True)
        export_buttons(
            cfg, "orphan", exports.orphans_export_rows(orphans, today), "liste_orphelins", "Liste des Orphelins"
        )
    else:
        st.caption("Aucun orphelin trouvé.")

    st.divider()

    selected_id = st.selectbox("Orphan ID", options=["(none)"] + [str(o["id"]) for o in orphans])
    if selected_id != "(none)":
        orphan_aid_history(cfg, int(selected_id))

    if not auth.can_write(current_role()):
        return

    if selected_id != "(none)":
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Edit", key="edit_orphan"):
                st.session_state.edit_orphan_id = int(selected_id)
                st.rerun()
        with c2:
            delete_confirm = st.checkbox("Confirm delete", value=False, key="del_orphan")
            if st.button("Delete", type="secondary", disabled=not delete_confirm, key="delete_orphan"):
                row = repository.get_orphan_row(cfg.db_file, int(selected_id))
                repository.delete_orphan(cfg.db_file, current_actor(), int(selected_id), row["full_name"] if row else None)
                st.success("Orphan deleted.")
                st.rerun()

    st.divider()

    if st.session_state.get("edit_orphan_id"):
        existing = repository.get_orphan_row(cfg.db_file, st.session_state.edit_orphan_id)
        if existing:
            orphan_form(cfg, existing=existing)
        if st.button("Cancel edit", key="cancel_orphan"):
            st.session_state.edit_orphan_id = None
            st.rerun()
    else:
        orphan_form(cfg)


# ---------- Donations ----------

def donation_form(cfg: AppConfig, existing=None):
    if existing:
        st.subheader(f"✏️ Edit Donation (ID: {existing['id']})")
    else:
        st.subheader("➕ Add Donation")
    key = f"donation_{existing['id'] if existing else 'new'}"

    natures = list(DONATION_NATURES)
    current_nature = existing["nature"] if existing else MEMBERSHIP_NATURE
    nature_index = natures.index(current_nature) if current_nature in natures else natures.index("Autre")
    currencies = [c.value for c in Currency]

    col1, col2, col3 = st.columns(3)
    with col1:
        donor_name = st.text_input("Donor name", value=(existing["donor_name"] or "" if existing else ""), key=f"{key}_donor")
        country = st.text_input("Country", value=(existing["country"] or "" if existing else ""), key=f"{key}_country")
    with col2:
        amount = st.text_input("Amount", value=(str(existing["amount"]) if existing else ""), key=f"{key}_amount")
        currency = st.selectbox(
            "Currency", currencies,
            index=currencies.index(Currency.parse(existing["currency"] if existing else None).value),
            key=f"{key}_currency",
        )
        year = st.text_input("Year", value=(str(existing["year"] or "") if existing else str(date.today().year)), key=f"{key}_year")
    with col3:
        nature_choice = st.selectbox("Nature", natures, index=nature_index, key=f"{key}_nature")
        other_nature = ""
        if nature_choice == "Autre":
            other_nature = st.text_input(
                "Other nature", value=(current_nature if existing and current_nature not in natures else ""), key=f"{key}_other"
            )
        donation_date = st.date_input(
            "Date",
            value=(utils.parse_iso(existing["donation_date"]) if existing and existing["donation_date"] else date.today()),
            key=f"{key}_date",
        ).isoformat()
        description = st.text_input("Description", value=(existing["description"] or "" if existing else ""), key=f"{key}_desc")

    annual = False
    month_flags = [False] * 12
    if nature_choice == MEMBERSHIP_NATURE:
        annual = st.checkbox("Annual membership", value=bool(existing["annual"]) if existing else False, key=f"{key}_annual")
        month_cols = st.columns(12)
        for idx, (col, month_key) in enumerate(zip(month_cols, MONTH_KEYS)):
            with col:
                month_flags[idx] = st.checkbox(
                    MONTH_LABELS[idx],
                    value=bool(existing[f"month_{month_key}"]) if existing else False,
                    disabled=annual,
                    key=f"{key}_{month_key}",
                )

    errors = utils.validate_donation_inputs(donor_name, amount, year)
    show_errors(errors)

    if st.button("Save", type="primary", disabled=bool(errors), key=f"{key}_save"):
        values = {
            "donor_name": donor_name.strip(),
            "amount": float(amount),
            "currency": currency,
            "nature": other_nature.strip() if nature_choice == "Autre" else nature_choice,
            "year": int(year),
            "annual": int(annual),
            "donation_date": donation_date,
            "country": country.strip() or None,
            "description": description.strip() or None,
        }
        for month_key, flagged in zip(MONTH_KEYS, month_flags):
            values[f"month_{month_key}"] = int(flagged)
        repository.save_donation(cfg.db_file, current_actor(), values, existing["id"] if existing else None)
        st.success("Donation updated." if existing else "Donation recorded.")
        st.session_state.edit_donation_id = None
        st.rerun()


def contribution_matrix_section(cfg: AppConfig, transactions):
    st.subheader("Membership dues matrix")
    year = int(st.number_input("Year", min_value=1900, max_value=2100, value=date.today().year, step=1, key="matrix_year"))
    if st.button("Build matrix"):
        matrix = build_matrix(transactions, year)
        log_event(logger, logging.INFO, "Contribution matrix built", year=year, donors=len(matrix.rows))
        st.session_state.matrix = matrix

    # None means "not built yet"; an empty matrix means "no data for that year"
    matrix = st.session_state.get("matrix")
    if matrix is None:
        return
    if matrix.is_empty:
        st.warning(f"No membership dues found ({matrix.year}).")
        return

    rows = exports.matrix_export_rows(matrix)
    st.dataframe(exports.rows_to_dataframe(rows), use_container_width=True, hide_index=True)
    export_buttons(
        cfg, "donation", rows, exports.matrix_filename(matrix.year),
        f"Montant adhésion {matrix.year}", subtitle=cfg.organisation_name,
    )


def donations_page(cfg: AppConfig):
    st.header("💶 Dons")

    donation_metrics(cfg)
    st.divider()

    transactions = repository.list_donations(cfg.db_file)

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search donor", key="donation_search").strip().lower()
        natures = sorted({t.nature for t in transactions if t.nature})
        nature = st.selectbox("Nature", ["All"] + natures, key="donation_nature")

    filtered = [
        t for t in transactions
        if (not search or search in (t.donor_name or "").lower())
        and (nature == "All" or t.nature == nature)
    ]
    totals = stats.donor_totals(transactions)

    if filtered:
        ordered = stats.sort_by_donor_weight(filtered)
        df = pd.DataFrame([
            {
                "id": t.id,
                "Donateur": t.donor_name or "Inconnu",
                "Cumul": utils.format_currency(
                    stats.donor_total_in(totals[t.donor_name or "Inconnu"], cfg.display_currency), cfg.display_currency
                ),
                "Pays": t.country or "-",
                "Montant": utils.format_currency(
                    utils.convert_amount(t.amount, t.currency, cfg.display_currency), cfg.display_currency
                ),
                "Année": t.year or "-",
                "Nature": t.nature or "-",
            }
            for t in paginate("donations_page", ordered, cfg.page_size)
        ])
        st.dataframe(df, use_container_width=True, hide_index=True)
        export_buttons(
            cfg, "donation",
            exports.donations_export_rows(ordered, currency=cfg.display_currency),
            "liste_dons", "Historique des Transactions",
        )
    else:
        st.caption("Aucun don trouvé.")

    st.divider()
    contribution_matrix_section(cfg, transactions)

    if not auth.can_write(current_role()):
        return

    st.divider()

    selected_id = st.selectbox("Donation ID", options=["(none)"] + [str(t.id) for t in filtered])
    if selected_id != "(none)":
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Edit", key="edit_donation"):
                st.session_state.edit_donation_id = int(selected_id)
                st.rerun()
        with c2:
            delete_confirm = st.checkbox("Confirm delete", value=False, key="del_donation")
            if st.button("Delete", type="secondary", disabled=not delete_confirm, key="delete_donation"):
                repository.delete_donation(cfg.db_file, current_actor(), int(selected_id))
                st.success("Donation deleted.")
                st.rerun()

    if st.session_state.get("edit_donation_id"):
        existing = repository.get_donation_row(cfg.db_file, st.session_state.edit_donation_id)
        if existing:
            donation_form(cfg, existing=existing)
        if st.button("Cancel edit", key="cancel_donation"):
            st.session_state.edit_donation_id = None
            st.rerun()
    else:
        donation_form(cfg)


# ---------- Aid ----------

def aid_page(cfg: AppConfig):
    st.header("🤝 Aides")

    can_write = auth.can_write(current_role())
    programs = repository.list_programs(cfg.db_file)
    aids = repository.list_aids(cfg.db_file)

    figures = stats.aid_stats(aids)
    c1, c2, c3 = st.columns(3)
    c1.metric("Total attribué (année)", utils.format_currency(figures.total_year))
    c2.metric("Bénéficiaires actifs", figures.active_beneficiaries)
    if figures.last_amount is not None:
        c3.metric("Dernière aide", utils.format_currency(figures.last_amount), utils.format_date(figures.last_date), delta_color="off")
    else:
        c3.metric("Dernière aide", "-")

    st.divider()

    st.subheader("Programmes")
    if programs:
        st.dataframe(pd.DataFrame(programs), use_container_width=True, hide_index=True)
    else:
        st.caption("No aid programs yet.")

    if can_write:
        c1, c2, c3 = st.columns([1, 2, 1])
        with c1:
            program_name = st.text_input("Program name")
        with c2:
            program_desc = st.text_input("Description", key="program_desc")
        with c3:
            if st.button("Add program", disabled=not program_name.strip()):
                try:
                    repository.save_program(cfg.db_file, current_actor(), program_name, program_desc.strip() or None)
                except sqlite3.IntegrityError:
                    st.error("A program with this name already exists.")
                else:
                    st.rerun()

    st.divider()

    st.subheader("Attributions")
    if aids:
        rows = exports.aids_export_rows(aids)
        st.dataframe(exports.rows_to_dataframe(rows), use_container_width=True, hide_index=True)
        export_buttons(cfg, "aid", rows, "liste_attributions", "Historique des Attributions")
    else:
        st.caption("No aid attributed yet.")

    if not can_write or not programs:
        return

    program_options = {p["name"]: p["id"] for p in programs}
    c1, c2, c3 = st.columns(3)
    with c1:
        program = st.selectbox("Program", list(program_options))
        beneficiary_type = st.radio("Beneficiary", ["widow", "orphan"], horizontal=True)
    with c2:
        table = "widows" if beneficiary_type == "widow" else "orphans"
        people = db.fetch_all(cfg.db_file, f"SELECT id, full_name FROM {table} ORDER BY full_name")
        people_options = {f"{p['full_name']} - ID {p['id']}": p["id"] for p in people}
        person = st.selectbox("Name", list(people_options) or ["(none)"])
        amount = st.number_input("Amount (DH)", min_value=0.0, value=0.0)
    with c3:
        aid_date = st.date_input("Date", value=date.today(), key="aid_date").isoformat()
        notes = st.text_input("Notes", key="aid_notes")

    if st.button("Attribute aid", type="primary", disabled=not people_options):
        repository.save_aid(cfg.db_file, current_actor(), {
            "program_id": program_options[program],
            "beneficiary_type": beneficiary_type,
            "beneficiary_id": people_options[person],
            "amount": amount or None,
            "aid_date": aid_date,
            "notes": notes.strip() or None,
        })
        st.success("Aid recorded.")
        st.rerun()


# ---------- Admin ----------

def users_page(cfg: AppConfig):
    st.header("👤 Utilisateurs")
    auth.require_admin(current_role())

    st.dataframe(pd.DataFrame([dict(u) for u in auth.list_users(cfg.db_file)]), use_container_width=True, hide_index=True)

    st.divider()
    st.subheader("Create user")
    c1, c2 = st.columns(2)
    with c1:
        username = st.text_input("Username", key="new_username")
        full_name = st.text_input("Full name", key="new_full_name")
        role = st.selectbox("Role", auth.ROLES, index=len(auth.ROLES) - 1)
    with c2:
        password = st.text_input("Password", type="password", key="new_password")

    if st.button("Create", type="primary"):
        try:
            user_id = auth.create_user(cfg.db_file, current_role(), username, password, full_name, role)
        except ValidationError as e:
            show_errors(e.errors)
        else:
            audit.log_create(cfg.db_file, current_user(), "user", {"id": user_id, "username": username, "role": role})
            st.success("User created.")
            st.rerun()


def audit_page(cfg: AppConfig):
    st.header("📜 Journal d'audit")
    auth.require_admin(current_role())

    limit = int(st.number_input("Entries", min_value=10, max_value=1000, value=100, step=10))
    actions = audit.recent_actions(cfg.db_file, limit)
    if actions:
        st.dataframe(pd.DataFrame(actions), use_container_width=True, hide_index=True)
    else:
        st.caption("No recorded actions.")


def settings_page(cfg: AppConfig):
    st.header("⚙️ Settings")

    st.subheader("Change password")
    p1, p2 = password_inputs("settings_pw")
    if st.button("Update password", type="primary"):
        errors = auth.validate_new_password(p1, p2)
        show_errors(errors)
        if not errors:
            auth.change_password(cfg.db_file, current_user(), p1)
            st.success("Password updated.")

    if not auth.is_admin(current_role()):
        return

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert sample widows, orphans and donations for testing (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data(cfg.db_file)
        st.success("Sample data inserted.")
        st.rerun()


PAGES = {
    "Dashboard": dashboard_page,
    "Veuves": widows_page,
    "Orphelins": orphans_page,
    "Dons": donations_page,
    "Aides": aid_page,
    "Utilisateurs": users_page,
    "Audit": audit_page,
    "Settings": settings_page,
}
ADMIN_PAGES = {"Utilisateurs", "Audit"}


def main_app(cfg: AppConfig):
    st.sidebar.title("🤲 Charity")
    st.sidebar.caption(f"Logged in as: {current_user()} ({current_role()})")

    pages = [p for p in PAGES if p not in ADMIN_PAGES or auth.is_admin(current_role())]
    if st.session_state.get("page") not in pages:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout(cfg)
        st.rerun()

    try:
        PAGES[st.session_state.page](cfg)
    except CharityError as e:
        st.error(str(e))
    except Exception:
        logger.exception("Unhandled error on page %s", st.session_state.page)
        raise


# --------- App entry ---------

def run():
    cfg = load_config()
    init_once(cfg)
    require_login()

    if not st.session_state.logged_in:
        login_screen(cfg)
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change(cfg.db_file):
        force_change_password_screen(cfg)
        return

    main_app(cfg)


if __name__ == "__main__":
    run()
