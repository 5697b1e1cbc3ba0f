# app/services/derived.py
#
# Derived Transaction Values
# Pure functions computed on read from a stored transaction. Nothing here is
# ever persisted, so the stored row stays canonical.

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional


def absolute_amount(tx: Any) -> Decimal:
    return abs(Decimal(str(tx.amount)))


def formatted_amount(tx: Any) -> str:
    """
    Sign-prefixed amount string, e.g. "+USD 1000.00" or "-EUR 12.50".

    Income is always "+" and expense always "-"; a transfer shows the sign
    of its stored amount.
    """
    if tx.type == "income":
        sign = "+"
    elif tx.type == "expense":
        sign = "-"
    else:
        sign = "-" if Decimal(str(tx.amount)) < 0 else "+"
    return f"{sign}{tx.currency} {absolute_amount(tx):.2f}"


def age_in_days(tx: Any, now: Optional[datetime] = None) -> int:
    """Whole days elapsed since the transaction date (floored)."""
    if now is None:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
    return (now - tx.date).days


def category_display(tx: Any) -> str:
    if tx.category_secondary:
        return f"{tx.category_primary} > {tx.category_secondary}"
    return tx.category_primary
