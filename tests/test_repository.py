"""
Tests for database initialization and repository queries.
"""

import sqlite3
from datetime import date

import pytest

import audit
import db
import repository
import utils
from auth import Actor
from errors import PermissionDenied, RecordNotFound
from models import Currency, MONTH_KEYS

ADMIN = Actor("admin", "admin")
SECRETARY = Actor("secretaire", "secrétaire")
MEMBER = Actor("adherent", "membre")


def widow_values(**overrides) -> dict:
    values = {
        "full_name": "Fatima Zahra",
        "id_number": "AB123",
        "phone": "0600000001",
        "city": "Casablanca",
        "housing_type": "Locataire",
        "employment_status": "Sans emploi",
        "monthly_income": 0,
        "direct_support": 0,
        "support_amount": 0,
    }
    values.update(overrides)
    return values


def donation_values(**overrides) -> dict:
    values = {
        "donor_name": "Ali",
        "amount": 120,
        "currency": "EUR",
        "nature": "Adhésion",
        "year": 2024,
        "annual": 1,
        "donation_date": "2024-02-01",
    }
    values.update({f"month_{k}": 0 for k in MONTH_KEYS})
    values.update(overrides)
    return values


class TestInitDb:
    def test_tables_created(self, db_file):
        rows = db.fetch_all(db_file, "SELECT name FROM sqlite_master WHERE type='table'")
        names = {r["name"] for r in rows}
        for table in ("users", "widows", "orphans", "donations", "aid_programs", "aids", "audit_logs", "app_settings"):
            assert table in names

    def test_default_admin_forces_password_change(self, db_file):
        admin = db.fetch_one(db_file, "SELECT * FROM users WHERE username = 'admin'")
        assert admin["role"] == "admin"
        assert db.is_force_password_change(db_file)

    def test_init_is_idempotent(self, db_file, admin_hash):
        db.clear_force_password_change(db_file)
        db.init_db(db_file, "admin", admin_hash)
        assert db.fetch_one(db_file, "SELECT COUNT(*) AS c FROM users")["c"] == 1
        assert not db.is_force_password_change(db_file)


class TestWidows:
    def test_list_widows_sorted_by_score(self, db_file):
        poor = repository.save_widow(db_file, ADMIN, widow_values())
        rich = repository.save_widow(db_file, ADMIN, widow_values(
            full_name="Naima", monthly_income=5000, housing_type="Propriétaire",
            employment_status="Emploi permanent", direct_support=1,
        ))

        scored = repository.list_widows(db_file)
        assert [s.widow.id for s in scored] == [poor, rich]
        assert scored[0].score == 35
        assert scored[1].score == 0

        ascending = repository.list_widows(db_file, repository.WidowFilters(sort_order="asc"))
        assert [s.widow.id for s in ascending] == [rich, poor]

    def test_score_includes_orphans(self, db_file):
        widow_id = repository.save_widow(db_file, ADMIN, widow_values())
        one_year_ago = date.today().replace(year=date.today().year - 1, day=1).isoformat()
        repository.save_orphan(db_file, ADMIN, {
            "mother_id": widow_id, "full_name": "Salma", "birth_date": one_year_ago,
            "chronic_illness": 1, "disability": 0,
        })

        [scored] = repository.list_widows(db_file)
        assert scored.orphan_count == 1
        assert scored.score == 35 + 10 + 2

    def test_search_and_city_filters(self, db_file):
        repository.save_widow(db_file, ADMIN, widow_values())
        repository.save_widow(db_file, ADMIN, widow_values(full_name="Khadija", id_number="ZZ9", city="Rabat"))

        assert [s.widow.full_name for s in repository.list_widows(db_file, repository.WidowFilters(search="khad"))] == ["Khadija"]
        assert [s.widow.full_name for s in repository.list_widows(db_file, repository.WidowFilters(search="ZZ9"))] == ["Khadija"]
        assert [s.widow.city for s in repository.list_widows(db_file, repository.WidowFilters(city="Rabat"))] == ["Rabat"]
        assert repository.list_cities(db_file) == ["Casablanca", "Rabat"]

    def test_sort_by_income_is_numeric(self, db_file):
        repository.save_widow(db_file, ADMIN, widow_values(full_name="A", monthly_income=900))
        repository.save_widow(db_file, ADMIN, widow_values(full_name="B", monthly_income=10000))
        repository.save_widow(db_file, ADMIN, widow_values(full_name="C", monthly_income=None))

        filters = repository.WidowFilters(sort_by="monthly_income", sort_order="asc")
        assert [s.widow.full_name for s in repository.list_widows(db_file, filters)] == ["C", "A", "B"]

    def test_update_and_delete_cascade(self, db_file):
        widow_id = repository.save_widow(db_file, ADMIN, widow_values())
        repository.save_orphan(db_file, ADMIN, {"mother_id": widow_id, "full_name": "Omar", "birth_date": "2015-01-01"})

        repository.save_widow(db_file, ADMIN, widow_values(full_name="Fatima Z."), widow_id)
        assert repository.get_widow(db_file, widow_id).full_name == "Fatima Z."

        repository.delete_widow(db_file, ADMIN, widow_id, "Fatima Z.")
        assert repository.list_orphans(db_file) == []
        with pytest.raises(RecordNotFound):
            repository.get_widow(db_file, widow_id)

    def test_writes_are_audited(self, db_file):
        widow_id = repository.save_widow(db_file, SECRETARY, widow_values())
        repository.delete_widow(db_file, SECRETARY, widow_id, "Fatima Zahra")

        actions = audit.recent_actions(db_file)
        assert [a["action_type"] for a in actions] == ["DELETE", "CREATE"]
        assert actions[1]["entity_id"] == widow_id
        assert actions[1]["details"]["full_name"] == "Fatima Zahra"

    def test_read_only_role_cannot_write(self, db_file):
        with pytest.raises(PermissionDenied):
            repository.save_widow(db_file, MEMBER, widow_values())
        assert repository.list_widows(db_file) == []

        widow_id = repository.save_widow(db_file, ADMIN, widow_values())
        with pytest.raises(PermissionDenied):
            repository.delete_widow(db_file, MEMBER, widow_id)
        assert repository.get_widow(db_file, widow_id).full_name == "Fatima Zahra"

    def test_anonymous_actor_cannot_write(self, db_file):
        with pytest.raises(PermissionDenied):
            repository.save_donation(db_file, Actor(None, None), donation_values())


class TestOrphans:
    def test_list_joins_mother_name(self, db_file):
        widow_id = repository.save_widow(db_file, ADMIN, widow_values())
        repository.save_orphan(db_file, ADMIN, {"mother_id": widow_id, "full_name": "Omar", "birth_date": "2015-01-01", "city": "Fès"})

        [orphan] = repository.list_orphans(db_file)
        assert orphan["mother_name"] == "Fatima Zahra"
        assert repository.list_orphans(db_file, repository.OrphanFilters(search="fatima"))
        assert repository.list_orphans(db_file, repository.OrphanFilters(city="Rabat")) == []

    def test_orphan_requires_existing_mother(self, db_file):
        with pytest.raises(sqlite3.IntegrityError):
            repository.save_orphan(db_file, ADMIN, {"mother_id": 999, "full_name": "Nobody"})


class TestDonations:
    def test_round_trip_to_records(self, db_file):
        repository.save_donation(db_file, ADMIN, donation_values())
        [tx] = repository.list_donations(db_file)
        assert tx.currency is Currency.EUR
        assert tx.annual
        assert tx.year == 2024

    def test_newest_first(self, db_file):
        first = repository.save_donation(db_file, ADMIN, donation_values(donor_name="First"))
        second = repository.save_donation(db_file, ADMIN, donation_values(donor_name="Second"))
        assert [t.id for t in repository.list_donations(db_file)] == [second, first]


class TestAid:
    def test_attribution_resolves_names(self, db_file):
        widow_id = repository.save_widow(db_file, ADMIN, widow_values())
        program_id = repository.save_program(db_file, ADMIN, "Ramadan basket")
        repository.save_aid(db_file, ADMIN, {
            "program_id": program_id, "beneficiary_type": "widow", "beneficiary_id": widow_id,
            "amount": 500, "aid_date": "2024-03-20",
        })

        [aid] = repository.list_aids(db_file)
        assert aid["program_name"] == "Ramadan basket"
        assert aid["beneficiary_name"] == "Fatima Zahra"
        assert repository.dashboard_counts(db_file)["aids"] == 1

    def test_history_per_beneficiary(self, db_file):
        widow_id = repository.save_widow(db_file, ADMIN, widow_values())
        orphan_id = repository.save_orphan(db_file, ADMIN, {"mother_id": widow_id, "full_name": "Omar", "birth_date": "2015-01-01"})
        program_id = repository.save_program(db_file, ADMIN, "School kits")
        for amount, day in ((50, "2024-01-10"), (80, "2024-09-01")):
            repository.save_aid(db_file, ADMIN, {
                "program_id": program_id, "beneficiary_type": "orphan", "beneficiary_id": orphan_id,
                "amount": amount, "aid_date": day,
            })
        repository.save_aid(db_file, ADMIN, {
            "program_id": program_id, "beneficiary_type": "widow", "beneficiary_id": widow_id,
            "amount": 500, "aid_date": "2024-05-05",
        })

        history = repository.aids_for_beneficiary(db_file, "orphan", orphan_id)
        assert [a["amount"] for a in history] == [80, 50]
        assert history[0]["program_name"] == "School kits"
        assert history[0]["beneficiary_name"] == "Omar"

    def test_duplicate_program_name_rejected(self, db_file):
        repository.save_program(db_file, ADMIN, "School kits")
        with pytest.raises(sqlite3.IntegrityError):
            repository.save_program(db_file, ADMIN, "School kits")


class TestSampleData:
    def test_insert_sample_data(self, db_file):
        utils.insert_sample_data(db_file)
        counts = repository.dashboard_counts(db_file)
        assert counts["widows"] == 3
        assert counts["orphans"] == 4
        assert counts["donations"] == 4
