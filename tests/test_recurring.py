from datetime import datetime

import pytest

from app.services.recurring import due_dates, next_due_date
from models import Transaction
from conftest import NOW


def test_next_due_date_steps():
    start = datetime(2025, 1, 31, 9)
    assert next_due_date(start, "daily") == datetime(2025, 2, 1, 9)
    assert next_due_date(start, "weekly", 2) == datetime(2025, 2, 14, 9)
    assert next_due_date(start, "monthly") == datetime(2025, 2, 28, 9)
    assert next_due_date(start, "yearly") == datetime(2026, 1, 31, 9)


def test_next_due_date_rejects_bad_input():
    with pytest.raises(ValueError):
        next_due_date(NOW, "hourly")
    with pytest.raises(ValueError):
        next_due_date(NOW, "monthly", 0)


def test_due_dates_keep_day_of_month_after_short_months():
    dates = due_dates(datetime(2025, 1, 31), "monthly", 1, as_of=datetime(2025, 5, 31))
    assert dates == [
        datetime(2025, 1, 31),
        datetime(2025, 2, 28),
        datetime(2025, 3, 31),
        datetime(2025, 4, 30),
        datetime(2025, 5, 31),
    ]


def test_due_dates_include_as_of():
    dates = due_dates(datetime(2025, 1, 31), "monthly", 1, as_of=datetime(2025, 4, 30))
    assert dates[-1] == datetime(2025, 4, 30)
    assert due_dates(datetime(2025, 1, 31), "monthly", 1, as_of=datetime(2025, 4, 29))[-1] == datetime(2025, 3, 31)


def test_due_dates_stop_at_end_date():
    dates = due_dates(
        datetime(2025, 1, 1),
        "weekly",
        1,
        as_of=datetime(2025, 3, 1),
        end_date=datetime(2025, 1, 20),
    )
    assert dates == [datetime(2025, 1, 1), datetime(2025, 1, 8), datetime(2025, 1, 15)]


def _template(make_record, **recurring):
    schedule = {"is_recurring": True, "frequency": "monthly"}
    schedule.update(recurring)
    return make_record(
        description="Gym membership",
        amount="-45",
        category={"primary": "Health"},
        date=datetime(2025, 3, 20),
        recurring=schedule,
    )


def test_materialize_creates_each_due_occurrence(store, user, make_record):
    template = store.create(_template(make_record, next_due_date=datetime(2025, 4, 20)))

    created = store.materialize_recurring(user.id)

    assert [t.date for t in created] == [datetime(2025, 4, 20), datetime(2025, 5, 20)]
    for occurrence in created:
        assert occurrence.original_transaction_id == template.id
        assert occurrence.is_recurring is False
        assert occurrence.status == "pending"
        assert occurrence.description == "Gym membership"
        assert occurrence.amount == template.amount
    assert template.recurring_next_due_date == datetime(2025, 6, 20)

    # Nothing more is due until the next occurrence date
    assert store.materialize_recurring(user.id) == []


def test_materialize_respects_end_date_and_interval(store, user, make_record):
    template = store.create(
        _template(
            make_record,
            interval=2,
            next_due_date=datetime(2025, 1, 5),
            end_date=datetime(2025, 4, 1),
        )
    )

    created = store.materialize_recurring(user.id, as_of=NOW)

    assert [t.date for t in created] == [datetime(2025, 1, 5), datetime(2025, 3, 5)]
    assert template.recurring_next_due_date is None


def test_materialize_only_touches_owner(store, make_record, other_user_and_account):
    store.create(_template(make_record, next_due_date=datetime(2025, 6, 1)))
    other_user, _ = other_user_and_account
    assert store.materialize_recurring(other_user.id) == []


def test_failed_materialize_leaves_no_partial_occurrences(store, db, user, make_record, monkeypatch):
    template = store.create(_template(make_record, next_due_date=datetime(2025, 4, 20)))

    def broken_schedule(*args, **kwargs):
        raise RuntimeError("schedule unavailable")

    # Fails after the occurrences were flushed, before the template advances
    monkeypatch.setattr("app.services.transaction_store.next_due_date", broken_schedule)
    with pytest.raises(RuntimeError):
        store.materialize_recurring(user.id)
    monkeypatch.undo()

    assert db.query(Transaction).count() == 1
    assert template.recurring_next_due_date == datetime(2025, 4, 20)

    # A later run creates each occurrence exactly once
    created = store.materialize_recurring(user.id)
    assert [t.date for t in created] == [datetime(2025, 4, 20), datetime(2025, 5, 20)]
