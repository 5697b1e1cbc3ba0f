# app/services/transaction_store.py
#
# Transaction Store
# The write and read contract over Transaction rows, always scoped to one
# owning user. Every persist goes through save(), which runs, in order:
#   prepare -> validate -> reference checks -> external id dedup
#   -> sign normalization -> posted-date stamping -> commit

import copy
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from dateutil.relativedelta import relativedelta
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from app.errors import (
    DuplicateExternalIdError,
    FieldError,
    NotFoundError,
    TransactionStoreError,
    ValidationError,
)
from app.logger import get_logger
from app.services import aggregations
from app.services.import_helpers import apply_changes, build_transaction_from_dict, parse_datetime
from app.services.recurring import due_dates, next_due_date
from app.services.validation import (
    normalize_amount_sign,
    normalize_tag,
    prepare_transaction,
    stamp_posted_date,
    validate_transaction,
)
from models import Account, Transaction, TransactionSplit, User, utcnow

logger = get_logger(__name__)

# Columns never copied by duplicate()
_DUPLICATE_RESET = (
    "id",
    "external_id",
    "date",
    "posted_date",
    "status",
    "notes",
    "is_reconciled",
    "reconciliation_date",
    "created_at",
    "updated_at",
)

# Columns never copied from a recurring template into its occurrences
_OCCURRENCE_RESET = _DUPLICATE_RESET + (
    "is_recurring",
    "recurring_frequency",
    "recurring_interval",
    "recurring_next_due_date",
    "recurring_end_date",
    "original_transaction_id",
    "import_source",
    "import_date",
    "external_data",
)

DateLike = Union[date, datetime]


def _start_bound(value: DateLike) -> datetime:
    """Aware datetimes are converted to naive UTC, like the stored column."""
    if isinstance(value, datetime):
        return parse_datetime(value)
    return datetime.combine(value, time.min)


def _end_bound(value: DateLike) -> datetime:
    """A plain date as range end covers that whole day."""
    if isinstance(value, datetime):
        return parse_datetime(value)
    return datetime.combine(value, time.max)


class TransactionStore:
    """
    Validated persistence and queries for transactions.

    One store wraps one SQLAlchemy session (one request). `clock` supplies
    "now" for defaults, posted-date stamping, reconciliation and trends.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        default_currency: str = config.DEFAULT_CURRENCY,
    ):
        self.db = db
        self.clock = clock
        self.default_currency = default_currency

    # -------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------

    def create(self, record: Union[Mapping[str, Any], Transaction]) -> Transaction:
        """Validate and insert a new transaction (manual entry or bank-sync import)."""
        tx = record if isinstance(record, Transaction) else build_transaction_from_dict(record)
        if tx.id is not None:
            raise ValidationError([FieldError("id", "A new transaction cannot carry an id")])
        tx = self.save(tx)
        logger.info(f"Created {tx.type} transaction #{tx.id} for user {tx.owner_id}")
        return tx

    def save(self, tx: Transaction, commit: bool = True) -> Transaction:
        """
        Persist a new or modified transaction.

        With commit=False the row is only flushed; the caller commits.

        Raises ValidationError with every violated constraint, or
        NotFoundError when owner or account do not exist. A rejected change
        to an already stored transaction is rolled back.
        """
        now = self.clock()
        try:
            prepare_transaction(tx, now, self.default_currency)
            errors = validate_transaction(tx)
            if errors:
                raise ValidationError(errors)
            self._check_references(tx)
            self._check_external_id(tx)
        except TransactionStoreError:
            if inspect(tx).persistent:
                self.db.rollback()
            raise

        previous = normalize_amount_sign(tx)
        if previous is not None:
            logger.warning(
                f"Amount of {tx.type} transaction {tx.id or '(new)'} rewritten from {previous} to {tx.amount}"
            )
        stamp_posted_date(tx, now)

        if tx.created_at is None:
            tx.created_at = now
        tx.updated_at = now

        external_id = tx.external_id
        self.db.add(tx)
        try:
            if commit:
                self.db.commit()
            else:
                self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            if external_id is not None:
                logger.warning(f"Rejected duplicate external id {external_id!r}")
                raise DuplicateExternalIdError(external_id) from e
            raise
        self.db.refresh(tx)
        return tx

    def update(self, tx: Transaction, changes: Mapping[str, Any]) -> Transaction:
        """Apply a partial Transaction-shaped dict and save."""
        if "id" in changes and changes["id"] != tx.id:
            raise ValidationError([FieldError("id", "Transaction id cannot be changed")])
        apply_changes(tx, changes)
        tx = self.save(tx)
        logger.info(f"Updated transaction #{tx.id} for user {tx.owner_id}")
        return tx

    def duplicate(self, tx: Transaction) -> Transaction:
        """
        Return a new, unsaved copy of `tx`.

        The copy gets a fresh identity, today's date, pending status and a
        "Copy of " description. Attachments, notes, reconciliation state,
        the posted date and the bank-sync external id are not carried over.
        """
        dup = self._copy(tx, _DUPLICATE_RESET)
        dup.date = self.clock()
        dup.status = "pending"
        dup.description = f"Copy of {tx.description}"
        dup.notes = None
        dup.is_reconciled = False
        dup.reconciliation_date = None
        dup.attachments = []
        return dup

    def mark_reconciled(self, tx: Transaction) -> Transaction:
        tx.is_reconciled = True
        tx.reconciliation_date = self.clock()
        return self.save(tx)

    def add_tag(self, tx: Transaction, tag: str) -> Transaction:
        """Add a tag (lower-cased); adding an existing tag changes nothing."""
        tag = normalize_tag(tag)
        if not tag:
            raise ValidationError([FieldError("tags", "Tags cannot be empty")])
        tags = list(tx.tags or [])
        if tag not in tags:
            tags.append(tag)
        tx.tags = tags
        return self.save(tx)

    def remove_tag(self, tx: Transaction, tag: str) -> Transaction:
        """Remove a tag (case-insensitive); removing an absent tag changes nothing."""
        tag = normalize_tag(tag)
        tx.tags = [t for t in tx.tags or [] if t != tag]
        return self.save(tx)

    def archive(self, tx: Transaction) -> Transaction:
        tx.is_archived = True
        return self.save(tx)

    def hide(self, tx: Transaction) -> Transaction:
        tx.is_hidden = True
        return self.save(tx)

    def restore(self, tx: Transaction) -> Transaction:
        tx.is_archived = False
        tx.is_hidden = False
        return self.save(tx)

    def materialize_recurring(self, owner_id: int, as_of: Optional[datetime] = None) -> List[Transaction]:
        """
        Create the pending occurrences of every recurring template that is due.

        Each template yields one occurrence per due date up to `as_of` (and
        its end date), then its next due date moves past `as_of`.
All occurrences and template updates are committed together.
        """
        as_of = parse_datetime(as_of) if as_of else self.clock()
        templates = (
            self.db.query(Transaction)
            .filter(
                Transaction.owner_id == owner_id,
                Transaction.is_recurring.is_(True),
                Transaction.is_archived.is_(False),
                Transaction.recurring_next_due_date.isnot(None),
                Transaction.recurring_next_due_date <= as_of,
            )
            .order_by(Transaction.recurring_next_due_date, Transaction.id)
            .all()
        )

        created: List[Transaction] = []
        try:
            for template in templates:
                start = template.recurring_next_due_date
                frequency = template.recurring_frequency
                interval = template.recurring_interval or 1
                dates = due_dates(start, frequency, interval, as_of, template.recurring_end_date)
                if not dates:
                    continue

                for due in dates:
                    occurrence = self._copy(template, _OCCURRENCE_RESET)
                    occurrence.date = due
                    occurrence.status = "pending"
                    occurrence.original_transaction_id = template.id
                    created.append(self.save(occurrence, commit=False))

                upcoming = next_due_date(start, frequency, interval * len(dates))
                end_date = template.recurring_end_date
                # Schedule exhausted: no next due date past the end date
                template.recurring_next_due_date = None if end_date and upcoming > end_date else upcoming
                self.save(template, commit=False)
                logger.debug(f"Recurring transaction #{template.id}: {len(dates)} occurrence(s) due")

            # Occurrences and advanced templates land together or not at all
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if created:
            logger.info(f"Materialized {len(created)} recurring occurrence(s) for user {owner_id}")
        return created

    # -------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------

    def get(self, owner_id: int, transaction_id: int) -> Transaction:
        tx = (
            self.db.query(Transaction)
            .filter(Transaction.id == transaction_id, Transaction.owner_id == owner_id)
            .one_or_none()
        )
        if tx is None:
            raise NotFoundError("Transaction", transaction_id)
        return tx

    def find_by_user_and_date_range(self, owner_id: int, start: DateLike, end: DateLike) -> List[Transaction]:
        """All of the owner's transactions dated within [start, end], newest first."""
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.owner_id == owner_id,
                Transaction.date >= _start_bound(start),
                Transaction.date <= _end_bound(end),
            )
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .all()
        )

    def find_by_category(
        self, owner_id: int, category_primary: str, limit: int = config.DEFAULT_QUERY_LIMIT
    ) -> List[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.owner_id == owner_id,
                Transaction.category_primary == category_primary,
            )
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
            .all()
        )

    def find_by_account(
        self, owner_id: int, account_id: int, limit: int = config.DEFAULT_QUERY_LIMIT
    ) -> List[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.owner_id == owner_id,
                Transaction.account_id == account_id,
            )
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
            .all()
        )

    def get_spending_by_category(self, owner_id: int, start: DateLike, end: DateLike) -> List[Dict[str, Any]]:
        """
        Expense totals per primary category within [start, end].

        Rows look like {"category": "Food", "total_amount": Decimal("80.00"), "count": 2},
        ordered by total_amount descending. Amounts are absolute values.
        """
        query = aggregations.spending_by_category_query(owner_id, _start_bound(start), _end_bound(end))
        return aggregations.run_aggregation(self.db, Transaction, query)

    def get_monthly_trends(self, owner_id: int, months: int = config.DEFAULT_TREND_MONTHS) -> List[Dict[str, Any]]:
        """
        Signed totals per (year, month, type) over the trailing `months` months,
        oldest month first.
        """
        if months < 1:
            raise ValidationError([FieldError("months", "Months must be at least 1")])
        since = self.clock() - relativedelta(months=months)
        query = aggregations.monthly_trends_query(owner_id, since)
        return aggregations.run_aggregation(self.db, Transaction, query)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _check_references(self, tx: Transaction) -> None:
        if self.db.get(User, tx.owner_id) is None:
            raise NotFoundError("User", tx.owner_id)
        account = self.db.get(Account, tx.account_id)
        if account is None or account.owner_id != tx.owner_id:
            raise NotFoundError("Account", tx.account_id)

    def _check_external_id(self, tx: Transaction) -> None:
        if tx.external_id is None:
            return
        stmt = select(Transaction.id).where(Transaction.external_id == tx.external_id)
        if tx.id is not None:
            stmt = stmt.where(Transaction.id != tx.id)
        if self.db.execute(stmt.limit(1)).first() is not None:
            logger.warning(f"Rejected duplicate external id {tx.external_id!r}")
            raise DuplicateExternalIdError(tx.external_id)

    @staticmethod
    def _copy(tx: Transaction, skip) -> Transaction:
        """Copy column values (and split shares) of `tx` into a new transient row."""
        new = Transaction()
        for attr in inspect(Transaction).column_attrs:
            if attr.key in skip or attr.key == "tags":
                continue
            setattr(new, attr.key, copy.deepcopy(getattr(tx, attr.key)))
        new.tags = list(tx.tags or [])
        new.splits = [
            TransactionSplit(
                user_id=share.user_id,
                amount=share.amount,
                percentage=share.percentage,
                description=share.description,
            )
            for share in tx.splits
        ]
        return new
