# models.py
# Role: SQLAlchemy ORM models for the finance tracker domain.
#       Defines users, linked bank accounts, and the Transaction model
#       with its ordered attachments and split shares.

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from db import Base
from app.services import derived

# -------------------------------------------------------------------
# Enumerations (stored as plain strings)
# -------------------------------------------------------------------

CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CHF")
TRANSACTION_TYPES = ("income", "expense", "transfer")
TRANSACTION_STATUSES = ("pending", "posted", "cancelled", "failed")
RECURRING_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")

# Money columns: signed, two decimal places
Money = Numeric(14, 2, asdecimal=True)


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Owner of accounts and transactions. Referenced by identity only."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    accounts = relationship("Account", back_populates="owner")


class Account(Base):
    """A linked bank account (or a manual one) belonging to a single user."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False, default="Main")
    institution = Column(String(100), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    # Identifier of the account at the bank-aggregation provider
    external_account_id = Column(String(100), nullable=True)

    owner = relationship("User", back_populates="accounts")


class Transaction(Base):
    """
    ORM model representing a single financial transaction.

    Each row is either entered manually or imported by the bank-sync
    importer (then `external_id` carries the provider's id and is unique).
    Nested documents of the transaction (category, merchant, recurring
    schedule, split header, location, import metadata) are flattened into
    prefixed columns; attachments and split shares are child rows.

    The stored representation is canonical: `amount` sign already matches
    `type`, and derived values (absolute amount, formatted amount, age,
    category display) are computed on read, see app/services/derived.py.
    """

    __tablename__ = "transactions"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Tenant scope
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    # Bank-sync dedup key (NULL for manual entries; NULLs never collide)
    external_id = Column(String(100), nullable=True, unique=True)

    # Signed amount (income >= 0, expense <= 0, transfer unconstrained)
    amount = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    type = Column(String(16), nullable=False)

    # Category
    category_primary = Column(String(100), nullable=False)
    category_secondary = Column(String(100), nullable=True)
    external_category_id = Column(String(100), nullable=True)

    description = Column(String(200), nullable=False)

    # Merchant
    merchant_name = Column(String(100), nullable=True)
    merchant_id = Column(String(100), nullable=True)
    merchant_website = Column(String(255), nullable=True)
    merchant_logo = Column(String(255), nullable=True)

    # Dates & status
    date = Column(DateTime, nullable=False, default=utcnow)
    posted_date = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False, default="pending")

    tags = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    notes = Column(Text, nullable=True)

    # Recurring schedule (this row acts as the template when is_recurring)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String(16), nullable=True)
    recurring_interval = Column(Integer, nullable=False, default=1)
    recurring_next_due_date = Column(DateTime, nullable=True)
    recurring_end_date = Column(DateTime, nullable=True)
    original_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)

    # Split header (shares live in TransactionSplit)
    is_split = Column(Boolean, nullable=False, default=False)
    split_total_amount = Column(Money, nullable=True)

    # Location
    address_street = Column(String(255), nullable=True)
    address_city = Column(String(100), nullable=True)
    address_state = Column(String(100), nullable=True)
    address_zip_code = Column(String(20), nullable=True)
    address_country = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Import metadata
    import_source = Column(String(50), nullable=True)
    import_date = Column(DateTime, nullable=True)
    external_data = Column(JSON, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    # Reconciliation & soft removal
    is_reconciled = Column(Boolean, nullable=False, default=False)
    reconciliation_date = Column(DateTime, nullable=True)
    is_hidden = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    attachments = relationship(
        "TransactionAttachment",
        order_by="TransactionAttachment.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        back_populates="transaction",
    )
    splits = relationship(
        "TransactionSplit",
        order_by="TransactionSplit.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        back_populates="transaction",
    )
    original_transaction = relationship("Transaction", remote_side=[id])

    __table_args__ = (
        Index("ix_transactions_owner_date", "owner_id", "date"),
        Index("ix_transactions_owner_account_date", "owner_id", "account_id", "date"),
        Index("ix_transactions_owner_category_date", "owner_id", "category_primary", "date"),
        Index("ix_transactions_owner_type_date", "owner_id", "type", "date"),
        Index("ix_transactions_owner_amount", "owner_id", "amount"),
        Index("ix_transactions_owner_merchant", "owner_id", "merchant_name"),
    )

    # ---- Derived values (computed on read, never stored) ----

    @property
    def absolute_amount(self):
        return derived.absolute_amount(self)

    @property
    def formatted_amount(self) -> str:
        return derived.formatted_amount(self)

    @property
    def age(self) -> int:
        return derived.age_in_days(self)

    @property
    def category_display(self) -> str:
        return derived.category_display(self)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} owner={self.owner_id} {self.type} {self.amount} {self.currency}>"


class TransactionAttachment(Base):
    """Metadata of one file attached to a transaction (bytes are stored elsewhere)."""

    __tablename__ = "transaction_attachments"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    size = Column(Integer, nullable=True)
    url = Column(String(500), nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)

    transaction = relationship("Transaction", back_populates="attachments")


class TransactionSplit(Base):
    """One share of a split transaction."""

    __tablename__ = "transaction_splits"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    amount = Column(Money, nullable=True)
    percentage = Column(Float, nullable=True)
    description = Column(String(200), nullable=True)

    transaction = relationship("Transaction", back_populates="splits")
