# app/services/aggregations.py
#
# Aggregation Queries
# Group-by queries are described as plain data (filters, group keys,
# aggregate functions, sort keys) and compiled to SQLAlchemy at execution
# time. Any engine with equivalent group-by semantics can run the same
# description.

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Numeric, extract, func, select
from sqlalchemy.orm import Session

DATE_PARTS = ("year", "month", "day")


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class GroupKey:
    """Output column `name` grouped on `field`, optionally on a date `part` of it."""

    name: str
    field: str
    part: Optional[str] = None


@dataclass(frozen=True)
class Aggregate:
    name: str
    func: str
    field: Optional[str] = None
    absolute: bool = False


@dataclass(frozen=True)
class SortKey:
    name: str
    descending: bool = False


@dataclass(frozen=True)
class AggregationQuery:
    filters: Tuple[Filter, ...] = ()
    group_by: Tuple[GroupKey, ...] = ()
    aggregates: Tuple[Aggregate, ...] = ()
    sort: Tuple[SortKey, ...] = ()
    limit: Optional[int] = None


# ---- Query descriptions used by the transaction store ----

def spending_by_category_query(owner_id: int, start: datetime, end: datetime) -> AggregationQuery:
    """Expenses in [start, end] grouped by primary category, biggest spend first."""
    return AggregationQuery(
        filters=(
            Filter("owner_id", "eq", owner_id),
            Filter("type", "eq", "expense"),
            Filter("date", "gte", start),
            Filter("date", "lte", end),
        ),
        group_by=(GroupKey("category", "category_primary"),),
        aggregates=(
            Aggregate("total_amount", "sum", "amount", absolute=True),
            Aggregate("count", "count"),
        ),
        sort=(SortKey("total_amount", descending=True), SortKey("category")),
    )


def monthly_trends_query(owner_id: int, since: datetime) -> AggregationQuery:
    """Signed totals per (year, month, type) since the given timestamp, oldest first."""
    return AggregationQuery(
        filters=(
            Filter("owner_id", "eq", owner_id),
            Filter("date", "gte", since),
        ),
        group_by=(
            GroupKey("year", "date", part="year"),
            GroupKey("month", "date", part="month"),
            GroupKey("type", "type"),
        ),
        aggregates=(Aggregate("total_amount", "sum", "amount"),),
        sort=(SortKey("year"), SortKey("month"), SortKey("type")),
    )


# ---- SQLAlchemy compiler ----

def _column(model, name: str):
    col = getattr(model, name, None)
    if col is None:
        raise ValueError(f"{model.__name__} has no field {name!r}")
    return col


def _filter_clause(model, flt: Filter):
    col = _column(model, flt.field)
    if flt.op == "eq":
        return col == flt.value
    if flt.op == "gte":
        return col >= flt.value
    if flt.op == "lte":
        return col <= flt.value
    if flt.op == "gt":
        return col > flt.value
    if flt.op == "lt":
        return col < flt.value
    raise ValueError(f"Unsupported filter op: {flt.op!r}")


def _group_expr(model, key: GroupKey):
    col = _column(model, key.field)
    if key.part is None:
        return col
    if key.part not in DATE_PARTS:
        raise ValueError(f"Unsupported date part: {key.part!r}")
    return extract(key.part, col)


def _aggregate_expr(model, agg: Aggregate):
    if agg.func == "count":
        return func.count(_column(model, agg.field or "id"))
    if agg.func == "sum":
        col = _column(model, agg.field)
        if agg.absolute:
            col = func.abs(col, type_=Numeric(14, 2))
        return func.sum(col)
    raise ValueError(f"Unsupported aggregate: {agg.func!r}")


def compile_aggregation(model, query: AggregationQuery):
    """Translate an AggregationQuery into a SQLAlchemy Select over `model`."""
    group_exprs = [_group_expr(model, g).label(g.name) for g in query.group_by]
    agg_exprs = [_aggregate_expr(model, a).label(a.name) for a in query.aggregates]
    labelled = {e.name: e for e in group_exprs + agg_exprs}

    stmt = select(*group_exprs, *agg_exprs).select_from(model)
    for flt in query.filters:
        stmt = stmt.where(_filter_clause(model, flt))
    if group_exprs:
        stmt = stmt.group_by(*[_group_expr(model, g) for g in query.group_by])

    order = []
    for key in query.sort:
        if key.name not in labelled:
            raise ValueError(f"Cannot sort on unknown output {key.name!r}")
        expr = labelled[key.name]
        order.append(expr.desc() if key.descending else expr.asc())
    if order:
        stmt = stmt.order_by(*order)
    if query.limit is not None:
        stmt = stmt.limit(query.limit)
    return stmt


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"))


def run_aggregation(db: Session, model, query: AggregationQuery) -> List[Dict[str, Any]]:
    """Execute the query and return one plain dict per group."""
    sums = {a.name for a in query.aggregates if a.func == "sum"}
    counts = {a.name for a in query.aggregates if a.func == "count"}
    parts = {g.name for g in query.group_by if g.part is not None}

    rows: List[Dict[str, Any]] = []
    for row in db.execute(compile_aggregation(model, query)).mappings():
        item = dict(row)
        for name in sums:
            item[name] = _to_decimal(item[name])
        for name in counts | parts:
            item[name] = int(item[name])
        rows.append(item)
    return rows

