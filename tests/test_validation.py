from datetime import datetime
from decimal import Decimal

import pytest

from app.errors import ValidationError
from app.services.import_helpers import build_transaction_from_dict
from app.services.validation import (
    normalize_amount_sign,
    prepare_transaction,
    stamp_posted_date,
    validate_transaction,
)
from conftest import NOW


def _prepared(record):
    tx = build_transaction_from_dict(record)
    prepare_transaction(tx, NOW)
    return tx


def test_valid_record_has_no_errors(make_record):
    assert validate_transaction(_prepared(make_record())) == []


def test_zero_amount_is_rejected(store, make_record):
    with pytest.raises(ValidationError) as excinfo:
        store.create(make_record(amount=0))
    assert excinfo.value.fields == ["amount"]
    assert "cannot be zero" in str(excinfo.value)


@pytest.mark.parametrize("amount", ["0.001", "-0.004", 0.0049])
def test_sub_cent_amount_is_rejected_as_zero(store, make_record, amount):
    with pytest.raises(ValidationError) as excinfo:
        store.create(make_record(amount=amount, type="expense"))
    assert excinfo.value.fields == ["amount"]


def test_amount_is_rounded_to_cents(store, make_record):
    tx = store.create(make_record(amount="12.345", type="expense"))
    assert tx.amount == Decimal("-12.35")

    prepared = _prepared(make_record(amount="0.005"))
    assert prepared.amount == Decimal("0.01")
    assert validate_transaction(prepared) == []


def test_description_length_limit(store, make_record):
    with pytest.raises(ValidationError) as excinfo:
        store.create(make_record(description="x" * 201))
    assert excinfo.value.fields == ["description"]

    tx = store.create(make_record(description="x" * 200))
    assert len(tx.description) == 200


def test_all_violations_are_collected(store, make_record):
    record = make_record(
        amount=None,
        currency="XYZ",
        type="gift",
        description="",
        notes="n" * 501,
        merchant={"name": "m" * 101},
        status="settled",
    )
    with pytest.raises(ValidationError) as excinfo:
        store.create(record)

    assert set(excinfo.value.fields) == {
        "amount",
        "currency",
        "type",
        "description",
        "notes",
        "merchant_name",
        "status",
    }


def test_missing_required_references_and_category(make_record):
    tx = _prepared(make_record(owner_id=None, account_id=None, category={"secondary": "Coffee"}))
    fields = {e.field for e in validate_transaction(tx)}
    assert fields == {"owner_id", "account_id", "category_primary"}


def test_non_numeric_amount_is_reported(make_record):
    tx = _prepared(make_record(amount="twelve"))
    errors = validate_transaction(tx)
    assert [e.message for e in errors] == ["Amount must be a number"]


def test_prepare_normalizes_case_and_defaults(make_record):
    tx = _prepared(
        make_record(
            currency="eur",
            type="Expense",
            status=None,
            tags=["Food", " food ", "WORK"],
            description="  Lunch  ",
            date=None,
            external_id="",
        )
    )
    assert tx.currency == "EUR"
    assert tx.type == "expense"
    assert tx.status == "pending"
    assert tx.tags == ["food", "work"]
    assert tx.description == "Lunch"
    assert tx.date == NOW
    assert tx.external_id is None
    assert tx.is_reconciled is False
    assert tx.recurring_interval == 1


def test_currency_defaults_to_usd(make_record):
    record = make_record()
    record.pop("currency", None)
    assert _prepared(record).currency == "USD"


def test_recurring_rules(make_record):
    tx = _prepared(make_record(recurring={"is_recurring": True, "interval": 0}))
    fields = {e.field for e in validate_transaction(tx)}
    assert fields == {"recurring_frequency", "recurring_interval"}

    tx = _prepared(
        make_record(
            recurring={
                "is_recurring": True,
                "frequency": "Monthly",
                "next_due_date": "2025-07-01",
                "end_date": "2025-06-01",
            }
        )
    )
    assert tx.recurring_frequency == "monthly"
    assert [e.field for e in validate_transaction(tx)] == ["recurring_end_date"]


def test_split_shares_must_add_up(make_record):
    split = {
        "is_split": True,
        "total_amount": "100",
        "splits": [{"user_id": 1, "amount": "60"}, {"user_id": 2, "amount": "30", "percentage": 130}],
    }
    fields = {e.field for e in validate_transaction(_prepared(make_record(split=split)))}
    assert fields == {"splits", "splits[1].percentage"}

    split["splits"][1] = {"user_id": 2, "amount": "40", "percentage": 40}
    assert validate_transaction(_prepared(make_record(split=split))) == []


def test_split_needs_shares(make_record):
    tx = _prepared(make_record(split={"is_split": True, "splits": []}))
    assert [e.field for e in validate_transaction(tx)] == ["splits"]


def test_location_and_attachment_rules(make_record):
    record = make_record(
        location={"coordinates": {"lat": 95, "lng": 10}},
        attachments=[{"filename": "", "size": -1}],
    )
    fields = {e.field for e in validate_transaction(_prepared(record))}
    assert fields == {"latitude", "attachments[0].filename", "attachments[0].size"}


@pytest.mark.parametrize(
    "tx_type, amount, expected",
    [
        ("income", "-1000", Decimal("1000")),
        ("income", "1000", Decimal("1000")),
        ("expense", "50", Decimal("-50")),
        ("expense", "-50", Decimal("-50")),
        ("transfer", "-75", Decimal("-75")),
        ("transfer", "75", Decimal("75")),
    ],
)
def test_sign_normalization(make_record, tx_type, amount, expected):
    tx = _prepared(make_record(type=tx_type, amount=amount))
    normalize_amount_sign(tx)
    assert tx.amount == expected


def test_posted_date_stamped_only_when_absent(make_record):
    tx = _prepared(make_record(status="posted"))
    assert stamp_posted_date(tx, NOW) is True
    assert tx.posted_date == NOW

    later = datetime(2025, 7, 1)
    assert stamp_posted_date(tx, later) is False
    assert tx.posted_date == NOW
