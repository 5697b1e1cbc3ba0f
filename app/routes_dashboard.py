# app/routes_dashboard.py
"""
Analytics endpoints feeding the dashboard charts: spending by category and
monthly income/expense trends. Rendering the charts is the UI's job; these
routes only return the aggregated numbers.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

import config
from .deps import get_store
from .schemas import CategorySpendingOut, MonthlyTrendOut
from .services.import_helpers import get_month_range
from .services.transaction_store import TransactionStore

router = APIRouter(tags=["analytics"])


@router.get(
    "/users/{user_id}/analytics/spending-by-category",
    response_model=List[CategorySpendingOut],
)
def spending_by_category(
    user_id: int,
    month: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    store: TransactionStore = Depends(get_store),
):
    # Explicit range wins; otherwise a month (default: previous month)
    if start_date and end_date:
        range_start, range_end = start_date, end_date
    else:
        range_start, range_end, _ = get_month_range(month)

    return store.get_spending_by_category(user_id, range_start, range_end)


@router.get(
    "/users/{user_id}/analytics/monthly-trends",
    response_model=List[MonthlyTrendOut],
)
def monthly_trends(
    user_id: int,
    months: int = Query(config.DEFAULT_TREND_MONTHS, ge=1, le=120),
    store: TransactionStore = Depends(get_store),
):
    return store.get_monthly_trends(user_id, months=months)
