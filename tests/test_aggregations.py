from datetime import date, datetime
from decimal import Decimal

import pytest

from app.errors import ValidationError
from app.services.aggregations import (
    Aggregate,
    AggregationQuery,
    Filter,
    GroupKey,
    SortKey,
    compile_aggregation,
    run_aggregation,
    spending_by_category_query,
)
from models import Transaction


def test_spending_by_category_excludes_income_and_sums_absolute(store, user, make_record):
    store.create(make_record(amount="-50", date=datetime(2025, 5, 3)))
    store.create(make_record(amount="-30", date=datetime(2025, 5, 20)))
    store.create(make_record(type="income", amount="1000", category={"primary": "Salary"}, date=datetime(2025, 5, 1)))

    rows = store.get_spending_by_category(user.id, date(2025, 5, 1), date(2025, 5, 31))

    assert rows == [{"category": "Food", "total_amount": Decimal("80.00"), "count": 2}]


def test_spending_by_category_orders_by_total_and_respects_range(store, user, make_record, other_user_and_account):
    other_user, other_account = other_user_and_account
    store.create(make_record(amount="-20", category={"primary": "Transport"}, date=datetime(2025, 5, 2)))
    store.create(make_record(amount="-120", category={"primary": "Rent"}, date=datetime(2025, 5, 1)))
    store.create(make_record(amount="-15", category={"primary": "Transport"}, date=datetime(2025, 5, 9)))
    store.create(make_record(amount="-500", category={"primary": "Rent"}, date=datetime(2025, 4, 30)))
    store.create(
        make_record(
            owner_id=other_user.id,
            account_id=other_account.id,
            amount="-999",
            category={"primary": "Transport"},
            date=datetime(2025, 5, 5),
        )
    )

    rows = store.get_spending_by_category(user.id, date(2025, 5, 1), date(2025, 5, 31))

    assert [(r["category"], r["total_amount"], r["count"]) for r in rows] == [
        ("Rent", Decimal("120"), 1),
        ("Transport", Decimal("35"), 2),
    ]


def test_monthly_trends_groups_by_month_and_type(store, user, make_record):
    # clock is 2025-06-15; both months are inside the trailing window
    store.create(make_record(type="income", amount="1000", category={"primary": "Salary"}, date=datetime(2025, 4, 10)))
    store.create(make_record(type="expense", amount="-50", date=datetime(2025, 5, 10)))

    rows = store.get_monthly_trends(user.id, months=12)

    assert rows == [
        {"year": 2025, "month": 4, "type": "income", "total_amount": Decimal("1000.00")},
        {"year": 2025, "month": 5, "type": "expense", "total_amount": Decimal("-50.00")},
    ]


def test_monthly_trends_sums_signed_amounts_and_trims_window(store, user, make_record):
    store.create(make_record(type="income", amount="200", category={"primary": "Salary"}, date=datetime(2025, 5, 1)))
    store.create(make_record(type="expense", amount="-80", date=datetime(2025, 5, 2)))
    store.create(make_record(type="expense", amount="-20", date=datetime(2025, 5, 28)))
    store.create(make_record(type="expense", amount="-70", date=datetime(2024, 12, 24)))

    rows = store.get_monthly_trends(user.id, months=3)

    assert [(r["year"], r["month"], r["type"], r["total_amount"]) for r in rows] == [
        (2025, 5, "expense", Decimal("-100")),
        (2025, 5, "income", Decimal("200")),
    ]


def test_monthly_trends_rejects_non_positive_window(store, user):
    with pytest.raises(ValidationError):
        store.get_monthly_trends(user.id, months=0)


def test_custom_query_description(db, store, user, make_record):
    store.create(make_record(amount="-10", merchant={"name": "Cafe"}))
    store.create(make_record(amount="-5", merchant={"name": "Cafe"}))
    store.create(make_record(amount="-40", merchant={"name": "Market"}))

    query = AggregationQuery(
        filters=(Filter("owner_id", "eq", user.id),),
        group_by=(GroupKey("merchant", "merchant_name"),),
        aggregates=(Aggregate("spent", "sum", "amount", absolute=True), Aggregate("n", "count")),
        sort=(SortKey("n", descending=True),),
        limit=1,
    )

    assert run_aggregation(db, Transaction, query) == [
        {"merchant": "Cafe", "spent": Decimal("15.00"), "n": 2},
    ]


def test_compile_rejects_unknown_fields():
    bad_field = AggregationQuery(group_by=(GroupKey("x", "no_such_column"),))
    with pytest.raises(ValueError):
        compile_aggregation(Transaction, bad_field)

    bad_sort = spending_by_category_query(1, datetime(2025, 1, 1), datetime(2025, 2, 1))
    bad_sort = AggregationQuery(
        filters=bad_sort.filters,
        group_by=bad_sort.group_by,
        aggregates=bad_sort.aggregates,
        sort=(SortKey("nope"),),
    )
    with pytest.raises(ValueError):
        compile_aggregation(Transaction, bad_sort)
