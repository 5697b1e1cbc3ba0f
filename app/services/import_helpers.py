# app/services/import_helpers.py
#
# Import Helper Functions
# Converts Transaction-shaped dicts (manual entry from the API, or payloads
# produced by the bank-sync importer) into ORM models, and computes the
# date ranges used by monthly views.
#
# Both snake_case and camelCase keys are accepted, so a bank-sync payload
# ({"externalId": ..., "category": {"externalCategoryId": ...}}) can be
# passed through unchanged.

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from models import Transaction, TransactionAttachment, TransactionSplit

_MISSING = object()


# ---- Value parsing ----

def _get(data: Mapping[str, Any], *keys: str) -> Any:
    """First present key wins; returns _MISSING when none is present."""
    for key in keys:
        if key in data:
            return data[key]
    return _MISSING


def parse_decimal(value: Any) -> Any:
    """
    Convert numbers and numeric strings to Decimal.

    Anything unparseable is returned unchanged so validation can report it.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            return value
    return value


def parse_datetime(value: Any) -> Any:
    """
    Convert ISO strings, dates and aware datetimes to naive UTC datetimes.

    Unparseable values are returned unchanged so validation can report them.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return parse_datetime(datetime.fromisoformat(raw))
        except ValueError:
            return value
    return value


# ---- Nested documents -> flat columns ----

def _flatten_category(category: Any, out: Dict[str, Any]) -> None:
    if isinstance(category, str) or category is None:
        out["category_primary"] = category
        return
    mapping = {
        "category_primary": ("primary",),
        "category_secondary": ("secondary",),
        "external_category_id": ("external_category_id", "externalCategoryId"),
    }
    for column, keys in mapping.items():
        value = _get(category, *keys)
        if value is not _MISSING:
            out[column] = value


def _flatten_merchant(merchant: Any, out: Dict[str, Any]) -> None:
    if isinstance(merchant, str) or merchant is None:
        out["merchant_name"] = merchant
        return
    for key in ("name", "id", "website", "logo"):
        if key in merchant:
            out[f"merchant_{key}"] = merchant[key]


def _flatten_recurring(recurring: Mapping[str, Any], out: Dict[str, Any]) -> None:
    mapping = {
        "is_recurring": ("is_recurring", "isRecurring"),
        "recurring_frequency": ("frequency",),
        "recurring_interval": ("interval",),
        "recurring_next_due_date": ("next_due_date", "nextDueDate"),
        "recurring_end_date": ("end_date", "endDate"),
        "original_transaction_id": ("original_transaction_id", "originalTransactionId"),
    }
    for column, keys in mapping.items():
        value = _get(recurring, *keys)
        if value is _MISSING:
            continue
        if column in ("recurring_next_due_date", "recurring_end_date"):
            value = parse_datetime(value)
        out[column] = value


def _flatten_split(split: Mapping[str, Any], out: Dict[str, Any]) -> None:
    is_split = _get(split, "is_split", "isSplit")
    if is_split is not _MISSING:
        out["is_split"] = is_split
    total = _get(split, "total_amount", "totalAmount")
    if total is not _MISSING:
        out["split_total_amount"] = parse_decimal(total)
    shares = _get(split, "splits", "shares")
    if shares is not _MISSING:
        out["splits"] = [build_split_share(s) for s in shares or []]


def _flatten_location(location: Mapping[str, Any], out: Dict[str, Any]) -> None:
    address = location.get("address") or {}
    mapping = {
        "address_street": ("street",),
        "address_city": ("city",),
        "address_state": ("state",),
        "address_zip_code": ("zip_code", "zipCode"),
        "address_country": ("country",),
    }
    for column, keys in mapping.items():
        value = _get(address, *keys)
        if value is not _MISSING:
            out[column] = value
    coordinates = location.get("coordinates") or {}
    for column, keys in (("latitude", ("latitude", "lat")), ("longitude", ("longitude", "lng"))):
        value = _get(coordinates, *keys)
        if value is not _MISSING:
            out[column] = value


def _flatten_metadata(metadata: Mapping[str, Any], out: Dict[str, Any]) -> None:
    mapping = {
        "import_source": ("import_source", "importSource"),
        "import_date": ("import_date", "importDate"),
        "external_data": ("external_data", "externalData"),
        "custom_fields": ("custom_fields", "customFields"),
    }
    for column, keys in mapping.items():
        value = _get(metadata, *keys)
        if value is _MISSING:
            continue
        out[column] = parse_datetime(value) if column == "import_date" else value


# ---- Child rows ----

def build_attachment(data: Mapping[str, Any]) -> TransactionAttachment:
    uploaded_at = _get(data, "uploaded_at", "uploadedAt")
    original_name = _get(data, "original_name", "originalName")
    mime_type = _get(data, "mime_type", "mimeType")
    return TransactionAttachment(
        filename=data.get("filename"),
        original_name=None if original_name is _MISSING else original_name,
        mime_type=None if mime_type is _MISSING else mime_type,
        size=data.get("size"),
        url=data.get("url"),
        uploaded_at=None if uploaded_at is _MISSING else parse_datetime(uploaded_at),
    )


def build_split_share(data: Mapping[str, Any]) -> TransactionSplit:
    return TransactionSplit(
        user_id=data.get("user_id", data.get("user")),
        amount=parse_decimal(data.get("amount")),
        percentage=data.get("percentage"),
        description=data.get("description"),
    )


# ---- Transaction conversion ----

_SCALAR_FIELDS = {
    "owner_id": ("owner_id", "owner", "user_id", "user"),
    "account_id": ("account_id", "account"),
    "external_id": ("external_id", "externalId"),
    "amount": ("amount",),
    "currency": ("currency",),
    "type": ("type",),
    "description": ("description",),
    "date": ("date",),
    "posted_date": ("posted_date", "postedDate"),
    "status": ("status",),
    "tags": ("tags",),
    "notes": ("notes",),
    "is_reconciled": ("is_reconciled", "isReconciled"),
    "reconciliation_date": ("reconciliation_date", "reconciliationDate"),
    "is_hidden": ("is_hidden", "isHidden"),
    "is_archived": ("is_archived", "isArchived"),
}

_DATETIME_FIELDS = ("date", "posted_date", "reconciliation_date")


def transaction_fields_from_dict(tx: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map a Transaction-shaped dict onto Transaction attribute names.

    Only keys present in `tx` are returned, so the result can be used both
    to build a new record and to apply a partial update.
    """
    out: Dict[str, Any] = {}

    for column, keys in _SCALAR_FIELDS.items():
        value = _get(tx, *keys)
        if value is _MISSING:
            continue
        if column == "amount":
            value = parse_decimal(value)
        elif column in _DATETIME_FIELDS:
            value = parse_datetime(value)
        elif column == "tags":
            value = list(value or [])
        out[column] = value

    nested = (
        ("category", _flatten_category),
        ("merchant", _flatten_merchant),
        ("recurring", _flatten_recurring),
        ("split", _flatten_split),
        ("location", _flatten_location),
        ("metadata", _flatten_metadata),
    )
    for key, flatten in nested:
        if key in tx:
            value = tx[key]
            if value is None and key not in ("category", "merchant"):
                continue
            flatten(value, out)

    if "attachments" in tx:
        out["attachments"] = [build_attachment(a) for a in tx["attachments"] or []]

    return out


def build_transaction_from_dict(tx: Mapping[str, Any]) -> Transaction:
    """
    Convert one Transaction-shaped dict into an (unsaved) Transaction ORM object.

    No validation happens here; the transaction store validates before
    every persist.
    """
    return Transaction(**transaction_fields_from_dict(tx))


def apply_changes(transaction: Transaction, changes: Mapping[str, Any]) -> Transaction:
    """Apply a partial Transaction-shaped dict onto an existing record."""
    for name, value in transaction_fields_from_dict(changes).items():
        setattr(transaction, name, value)
    return transaction


# ---- Date Range Utilities ----

def get_month_range(month_str: Optional[str], today: Optional[date] = None) -> Tuple[datetime, datetime, str]:
    """
    month_str: 'YYYY-MM' or None.
    Returns (start, end_inclusive, normalized_month_str) as datetimes.
    If month_str is None or invalid, uses the PREVIOUS month.
    """

    def previous_month_from_today():
        ref = today or date.today()
        if ref.month == 1:
            return ref.year - 1, 12
        return ref.year, ref.month - 1

    if month_str:
        try:
            year_str, month_only_str = month_str.split("-")
            year = int(year_str)
            month = int(month_only_str)
            if not (1 <= month <= 12):
                raise ValueError
        except ValueError:
            year, month = previous_month_from_today()
    else:
        year, month = previous_month_from_today()

    start = datetime(year, month, 1)
    if month == 12:
        next_start = datetime(year + 1, 1, 1)
    else:
        next_start = datetime(year, month + 1, 1)

    normalized = f"{year:04d}-{month:02d}"
    return start, next_start - timedelta(microseconds=1), normalized


def serialize_transaction(tx: Transaction) -> Dict[str, Any]:
    """Nested dict view of a transaction, including derived values."""
    return {
        "id": tx.id,
        "owner_id": tx.owner_id,
        "account_id": tx.account_id,
        "external_id": tx.external_id,
        "amount": tx.amount,
        "currency": tx.currency,
        "type": tx.type,
        "category": {
            "primary": tx.category_primary,
            "secondary": tx.category_secondary,
            "external_category_id": tx.external_category_id,
        },
        "description": tx.description,
        "merchant": {
            "name": tx.merchant_name,
            "id": tx.merchant_id,
            "website": tx.merchant_website,
            "logo": tx.merchant_logo,
        },
        "date": tx.date,
        "posted_date": tx.posted_date,
        "status": tx.status,
        "tags": list(tx.tags or []),
        "notes": tx.notes,
        "attachments": [
            {
                "filename": a.filename,
                "original_name": a.original_name,
                "mime_type": a.mime_type,
                "size": a.size,
                "url": a.url,
                "uploaded_at": a.uploaded_at,
            }
            for a in tx.attachments
        ],
        "recurring": {
            "is_recurring": tx.is_recurring,
            "frequency": tx.recurring_frequency,
            "interval": tx.recurring_interval,
            "next_due_date": tx.recurring_next_due_date,
            "end_date": tx.recurring_end_date,
            "original_transaction_id": tx.original_transaction_id,
        },
        "split": {
            "is_split": tx.is_split,
            "total_amount": tx.split_total_amount,
            "splits": [
                {
                    "user_id": s.user_id,
                    "amount": s.amount,
                    "percentage": s.percentage,
                    "description": s.description,
                }
                for s in tx.splits
            ],
        },
        "location": {
            "address": {
                "street": tx.address_street,
                "city": tx.address_city,
                "state": tx.address_state,
                "zip_code": tx.address_zip_code,
                "country": tx.address_country,
            },
            "coordinates": {"latitude": tx.latitude, "longitude": tx.longitude},
        },
        "metadata": {
            "import_source": tx.import_source,
            "import_date": tx.import_date,
            "external_data": tx.external_data,
            "custom_fields": tx.custom_fields,
        },
        "is_reconciled": tx.is_reconciled,
        "reconciliation_date": tx.reconciliation_date,
        "is_hidden": tx.is_hidden,
        "is_archived": tx.is_archived,
        "created_at": tx.created_at,
        "updated_at": tx.updated_at,
        "absolute_amount": tx.absolute_amount,
        "formatted_amount": tx.formatted_amount,
        "age": tx.age,
        "category_display": tx.category_display,
    }
