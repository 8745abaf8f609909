import sqlite3
from datetime import date

import pytest

from expense_tracker.core.models import LedgerEntry, RecurringTemplate
from expense_tracker.core.schedule import MonthlySchedule, WeeklySchedule, YearlySchedule
from expense_tracker.database import SQLiteLedgerStore, SQLiteTemplateStore
from expense_tracker.errors import (
    DuplicateOccurrenceError,
    PersistenceError,
    TemplateNotFoundError,
)
from expense_tracker.recurring import MaterializationService, Outcome


def _stores(tmp_path):
    db_path = str(tmp_path / "ledger.db")
    return SQLiteTemplateStore(db_path), SQLiteLedgerStore(db_path), db_path


def _entry(**kwargs):
    fields = dict(
        user_id="u1",
        category="food",
        amount=12.5,
        description="Canteen",
        date=date(2025, 3, 1),
    )
    fields.update(kwargs)
    return LedgerEntry(**fields)


def test_template_round_trip(tmp_path):
    templates, _, db_path = _stores(tmp_path)
    created = templates.create(
        RecurringTemplate(
            user_id="u1",
            category="health",
            amount=900.0,
            description="Insurance",
            schedule=YearlySchedule(3, 15),
        )
    )

    assert created.id is not None
    fetched = templates.get(created.id)
    assert fetched.schedule == YearlySchedule(3, 15)
    assert fetched.active is True
    assert fetched.last_generated is None

    conn = sqlite3.connect(db_path)
    row = conn.execute(
        "SELECT frequency, schedule FROM recurring_templates WHERE id = ?",
        (created.id,),
    ).fetchone()
    conn.close()
    assert row == ("yearly", 315)


def test_list_active_skips_paused_and_other_users(tmp_path):
    templates, _, _ = _stores(tmp_path)
    weekly = templates.create(
        RecurringTemplate("u1", "food", 500.0, "Mess", WeeklySchedule(1))
    )
    paused = templates.create(
        RecurringTemplate("u1", "bills", 300.0, "Phone", MonthlySchedule(5))
    )
    templates.create(RecurringTemplate("u2", "bills", 10.0, "", MonthlySchedule(1)))
    templates.set_active(paused.id, False)

    assert [t.id for t in templates.list_active("u1")] == [weekly.id]
    assert [t.id for t in templates.list_all("u1")] == [weekly.id, paused.id]


def test_update_keeps_last_generated(tmp_path):
    templates, _, _ = _stores(tmp_path)
    created = templates.create(
        RecurringTemplate("u1", "bills", 300.0, "Phone", MonthlySchedule(5))
    )
    templates.update_last_generated(created.id, date(2025, 3, 5))

    created.amount = 350.0
    created.schedule = MonthlySchedule(7)
    updated = templates.update(created)

    assert updated.amount == 350.0
    assert updated.schedule == MonthlySchedule(7)
    assert updated.last_generated == date(2025, 3, 5)


def test_unknown_template_ids_raise(tmp_path):
    templates, _, _ = _stores(tmp_path)
    with pytest.raises(TemplateNotFoundError):
        templates.get(42)
    with pytest.raises(TemplateNotFoundError):
        templates.update_last_generated(42, date(2025, 1, 1))
    with pytest.raises(TemplateNotFoundError):
        templates.set_active(42, False)
    with pytest.raises(TemplateNotFoundError):
        templates.delete(42)


def test_ledger_rejects_repeated_occurrence(tmp_path):
    _, ledger, _ = _stores(tmp_path)
    ledger.insert(_entry(template_id=1, period="2025-03"))

    with pytest.raises(DuplicateOccurrenceError) as excinfo:
        ledger.insert(_entry(template_id=1, period="2025-03", date=date(2025, 3, 2)))
    assert excinfo.value.period == "2025-03"

    ledger.insert(_entry(template_id=1, period="2025-04", date=date(2025, 4, 1)))
    ledger.insert(_entry(template_id=2, period="2025-03"))
    assert len(ledger.list_entries("u1")) == 3


def test_one_off_entries_may_repeat(tmp_path):
    _, ledger, _ = _stores(tmp_path)
    first = ledger.insert(_entry())
    second = ledger.insert(_entry())

    assert first.id != second.id
    assert len(ledger.list_entries("u1")) == 2


def test_list_entries_filters(tmp_path):
    _, ledger, _ = _stores(tmp_path)
    ledger.insert(_entry(date=date(2025, 2, 28), category="food"))
    ledger.insert(_entry(date=date(2025, 3, 2), category="transport"))
    ledger.insert(_entry(date=date(2025, 3, 1), category="food"))
    ledger.insert(_entry(user_id="u2"))

    march = ledger.list_entries("u1", date(2025, 3, 1), date(2025, 3, 31))
    assert [e.date for e in march] == [date(2025, 3, 1), date(2025, 3, 2)]

    food = ledger.list_entries("u1", category="food")
    assert [e.date for e in food] == [date(2025, 2, 28), date(2025, 3, 1)]


def test_deleting_template_keeps_its_entries(tmp_path):
    templates, ledger, _ = _stores(tmp_path)
    created = templates.create(
        RecurringTemplate("u1", "bills", 300.0, "Phone", MonthlySchedule(1))
    )
    service = MaterializationService(templates, ledger)
    service.run_once("u1", date(2025, 3, 5))

    templates.delete(created.id)

    entries = ledger.list_entries("u1")
    assert len(entries) == 1
    assert entries[0].template_id == created.id


def test_template_created_after_delete_gets_its_own_entry(tmp_path):
    templates, ledger, _ = _stores(tmp_path)
    service = MaterializationService(templates, ledger)
    old = templates.create(
        RecurringTemplate("u1", "bills", 300.0, "Phone", MonthlySchedule(1))
    )
    service.run_once("u1", date(2025, 3, 5))
    templates.delete(old.id)

    new = templates.create(
        RecurringTemplate("u1", "food", 800.0, "Mess", MonthlySchedule(1))
    )
    report = service.run_once("u1", date(2025, 3, 6))

    assert new.id != old.id
    assert report.results[0].outcome is Outcome.MATERIALIZED
    assert [e.category for e in ledger.list_entries("u1")] == ["bills", "food"]


def test_deleting_entry_leaves_template_alone(tmp_path):
    templates, ledger, _ = _stores(tmp_path)
    created = templates.create(
        RecurringTemplate("u1", "bills", 300.0, "Phone", MonthlySchedule(1))
    )
    service = MaterializationService(templates, ledger)
    report = service.run_once("u1", date(2025, 3, 5))

    ledger.delete(report.results[0].entry.id)

    assert templates.get(created.id).last_generated == date(2025, 3, 1)
    assert service.run_once("u1", date(2025, 3, 6)).materialized == []


def test_overlapping_sessions_record_one_entry(tmp_path):
    templates, ledger, db_path = _stores(tmp_path)
    templates.create(RecurringTemplate("u1", "food", 500.0, "Mess", WeeklySchedule(1)))
    monday = date(2025, 1, 6)

    # both sessions read the template before either writes
    first_session = MaterializationService(SQLiteTemplateStore(db_path), SQLiteLedgerStore(db_path))
    second_session = MaterializationService(SQLiteTemplateStore(db_path), SQLiteLedgerStore(db_path))
    first_view = first_session.template_store.list_active("u1")
    second_view = second_session.template_store.list_active("u1")

    first = first_session.run(first_view, monday)
    second = second_session.run(second_view, monday)

    assert first.results[0].outcome is Outcome.MATERIALIZED
    assert second.results[0].outcome is Outcome.ALREADY_RECORDED
    assert len(ledger.list_entries("u1")) == 1


def test_empty_database(tmp_path):
    templates, ledger, _ = _stores(tmp_path)
    assert templates.list_all("u1") == []
    assert ledger.list_entries("u1") == []


def test_unopenable_database_raises_persistence_error(tmp_path):
    templates = SQLiteTemplateStore(str(tmp_path))
    service = MaterializationService(templates, SQLiteLedgerStore(str(tmp_path)))
    with pytest.raises(PersistenceError):
        service.run_once("u1", date(2025, 3, 5))
