# app/services/validation.py
#
# Transaction Validation
# Runs before every persist of a Transaction:
#   1) prepare_transaction: trim strings, fold case, fill defaults
#   2) validate_transaction: collect every violated constraint
# Both work on the ORM object in place and never touch the database.

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional

from app.errors import FieldError
from models import (
    CURRENCIES,
    RECURRING_FREQUENCIES,
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
)

DESCRIPTION_MAX_LENGTH = 200
MERCHANT_NAME_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500

# Money columns keep two decimal places
CENT = Decimal("0.01")

# String columns that are trimmed on input (empty -> None)
_TRIMMED_FIELDS = (
    "category_secondary",
    "merchant_name",
    "notes",
    "external_id",
)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def normalize_tag(tag: Any) -> str:
    return str(tag or "").strip().lower()


def quantize_money(value: Any) -> Any:
    """Round a finite number to cents; anything else is left for validation."""
    if not _is_number(value):
        return value
    amount = Decimal(str(value))
    if not amount.is_finite():
        return value
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def prepare_transaction(tx, now: datetime, default_currency: str = "USD") -> None:
    """
    Normalize a transaction in place before validation.

    Mirrors what a schema layer does on assignment: trims text, upper-cases
    the currency, lower-cases enums and tags, and fills the defaults that
    must be visible before the row is flushed.
    """
    tx.description = _strip(tx.description)
    tx.category_primary = _strip(tx.category_primary)
    for name in _TRIMMED_FIELDS:
        value = _strip(getattr(tx, name))
        setattr(tx, name, value if value != "" else None)

    tx.currency = (_strip(tx.currency) or default_currency)
    if isinstance(tx.currency, str):
        tx.currency = tx.currency.upper()
    tx.type = _strip(tx.type)
    if isinstance(tx.type, str):
        tx.type = tx.type.lower()
    tx.status = _strip(tx.status) or "pending"
    if isinstance(tx.status, str):
        tx.status = tx.status.lower()
    if isinstance(tx.recurring_frequency, str):
        tx.recurring_frequency = tx.recurring_frequency.strip().lower() or None

    # Rounded before validation so the zero check sees the stored value
    tx.amount = quantize_money(tx.amount)
    tx.split_total_amount = quantize_money(tx.split_total_amount)
    for share in tx.splits:
        share.amount = quantize_money(share.amount)

    if tx.date is None:
        tx.date = now

    # Tags: lower-cased set, first occurrence order kept
    tags: List[str] = []
    for tag in tx.tags or []:
        tag = normalize_tag(tag)
        if tag not in tags:
            tags.append(tag)
    tx.tags = tags

    for flag in ("is_recurring", "is_split", "is_reconciled", "is_hidden", "is_archived"):
        if getattr(tx, flag) is None:
            setattr(tx, flag, False)
    if tx.recurring_interval is None:
        tx.recurring_interval = 1

    for attachment in tx.attachments:
        if attachment.uploaded_at is None:
            attachment.uploaded_at = now


def _check_max_length(errors: List[FieldError], field: str, value: Any, limit: int, label: str) -> None:
    if isinstance(value, str) and len(value) > limit:
        errors.append(FieldError(field, f"{label} cannot exceed {limit} characters"))


def _check_timestamp(errors: List[FieldError], field: str, value: Any, required: bool = False) -> None:
    if value is None:
        if required:
            errors.append(FieldError(field, "Transaction date is required"))
        return
    if not isinstance(value, datetime):
        errors.append(FieldError(field, "Must be a timestamp"))


def _validate_recurring(tx, errors: List[FieldError]) -> None:
    frequency = tx.recurring_frequency
    if frequency is not None and frequency not in RECURRING_FREQUENCIES:
        errors.append(
            FieldError("recurring_frequency", f"Frequency must be one of {', '.join(RECURRING_FREQUENCIES)}")
        )
    if tx.is_recurring and frequency is None:
        errors.append(FieldError("recurring_frequency", "Frequency is required for recurring transactions"))

    interval = tx.recurring_interval
    if not isinstance(interval, int) or isinstance(interval, bool) or interval < 1:
        errors.append(FieldError("recurring_interval", "Interval must be an integer of at least 1"))

    _check_timestamp(errors, "recurring_next_due_date", tx.recurring_next_due_date)
    _check_timestamp(errors, "recurring_end_date", tx.recurring_end_date)
    next_due, end = tx.recurring_next_due_date, tx.recurring_end_date
    if isinstance(next_due, datetime) and isinstance(end, datetime) and end < next_due:
        errors.append(FieldError("recurring_end_date", "End date cannot be before the next due date"))


def _validate_split(tx, errors: List[FieldError]) -> None:
    total = tx.split_total_amount
    if total is not None and not _is_number(total):
        errors.append(FieldError("split_total_amount", "Split total must be a number"))
        total = None

    if tx.is_split and not tx.splits:
        errors.append(FieldError("splits", "A split transaction needs at least one share"))

    share_sum = Decimal("0")
    shares_numeric = True
    for i, share in enumerate(tx.splits):
        if share.amount is not None:
            if _is_number(share.amount):
                share_sum += abs(Decimal(str(share.amount)))
            else:
                errors.append(FieldError(f"splits[{i}].amount", "Share amount must be a number"))
                shares_numeric = False
        if share.percentage is not None:
            if not _is_number(share.percentage) or not 0 <= share.percentage <= 100:
                errors.append(FieldError(f"splits[{i}].percentage", "Percentage must be between 0 and 100"))
        _check_max_length(errors, f"splits[{i}].description", share.description, DESCRIPTION_MAX_LENGTH, "Description")

    has_amounts = any(share.amount is not None for share in tx.splits)
    if tx.is_split and total is not None and has_amounts and shares_numeric:
        if share_sum != abs(Decimal(str(total))):
            errors.append(FieldError("splits", "Share amounts must add up to the split total"))


def _validate_location(tx, errors: List[FieldError]) -> None:
    for field, low, high in (("latitude", -90, 90), ("longitude", -180, 180)):
        value = getattr(tx, field)
        if value is None:
            continue
        if not _is_number(value) or not low <= value <= high:
            errors.append(FieldError(field, f"{field.capitalize()} must be between {low} and {high}"))


def _validate_attachments(tx, errors: List[FieldError]) -> None:
    for i, attachment in enumerate(tx.attachments):
        if not attachment.filename:
            errors.append(FieldError(f"attachments[{i}].filename", "Filename is required"))
        size = attachment.size
        if size is not None and (not isinstance(size, int) or size < 0):
            errors.append(FieldError(f"attachments[{i}].size", "Size must be a non-negative integer"))


def validate_transaction(tx) -> List[FieldError]:
    """
    Check every constraint of a (prepared) transaction.

    Returns the full list of violations; an empty list means the record
    can be persisted.
    """
    errors: List[FieldError] = []

    if tx.owner_id is None:
        errors.append(FieldError("owner_id", "User ID is required"))
    if tx.account_id is None:
        errors.append(FieldError("account_id", "Account ID is required"))

    amount = tx.amount
    if amount is None:
        errors.append(FieldError("amount", "Amount is required"))
    elif not _is_number(amount) or not Decimal(str(amount)).is_finite():
        errors.append(FieldError("amount", "Amount must be a number"))
    elif amount == 0:
        errors.append(FieldError("amount", "Amount cannot be zero"))

    if tx.currency not in CURRENCIES:
        errors.append(FieldError("currency", f"Currency must be one of {', '.join(CURRENCIES)}"))

    if not tx.type:
        errors.append(FieldError("type", "Transaction type is required"))
    elif tx.type not in TRANSACTION_TYPES:
        errors.append(FieldError("type", f"Type must be one of {', '.join(TRANSACTION_TYPES)}"))

    if not tx.category_primary:
        errors.append(FieldError("category_primary", "Primary category is required"))

    if not tx.description:
        errors.append(FieldError("description", "Description is required"))
    else:
        _check_max_length(errors, "description", tx.description, DESCRIPTION_MAX_LENGTH, "Description")

    _check_max_length(errors, "merchant_name", tx.merchant_name, MERCHANT_NAME_MAX_LENGTH, "Merchant name")
    _check_max_length(errors, "notes", tx.notes, NOTES_MAX_LENGTH, "Notes")

    _check_timestamp(errors, "date", tx.date, required=True)
    _check_timestamp(errors, "posted_date", tx.posted_date)
    _check_timestamp(errors, "reconciliation_date", tx.reconciliation_date)

    if tx.status not in TRANSACTION_STATUSES:
        errors.append(FieldError("status", f"Status must be one of {', '.join(TRANSACTION_STATUSES)}"))

    if any(not tag for tag in tx.tags):
        errors.append(FieldError("tags", "Tags cannot be empty"))

    _validate_recurring(tx, errors)
    _validate_split(tx, errors)
    _validate_location(tx, errors)
    _validate_attachments(tx, errors)

    return errors


def normalize_amount_sign(tx) -> Optional[Decimal]:
    """
    Force the amount sign to agree with the type.

    income -> non-negative, expense -> non-positive, transfer untouched.
    Returns the previous amount when it was rewritten, else None.
    """
    amount = Decimal(str(tx.amount))
    if tx.type == "income" and amount < 0:
        tx.amount = abs(amount)
        return amount
    if tx.type == "expense" and amount > 0:
        tx.amount = -amount
        return amount
    return None


def stamp_posted_date(tx, now: datetime) -> bool:
    """Set posted_date when the transaction is posted and has none yet."""
    if tx.status == "posted" and tx.posted_date is None:
        tx.posted_date = now
        return True
    return False
