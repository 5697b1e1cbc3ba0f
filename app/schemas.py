# app/schemas.py
# Role: Pydantic request/response models for the JSON API.
#       Shape checks only; every business constraint is enforced by the
#       transaction store so the same rules apply to bank-sync imports.

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---- Nested documents ----

class Category(BaseModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    external_category_id: Optional[str] = None


class Merchant(BaseModel):
    name: Optional[str] = None
    id: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None


class Attachment(BaseModel):
    filename: Optional[str] = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class Recurring(BaseModel):
    is_recurring: bool = False
    frequency: Optional[str] = None
    interval: Optional[int] = None
    next_due_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    original_transaction_id: Optional[int] = None


class SplitShareIn(BaseModel):
    user_id: Optional[int] = None
    amount: Optional[Decimal] = None
    percentage: Optional[float] = None
    description: Optional[str] = None


class SplitIn(BaseModel):
    is_split: bool = False
    total_amount: Optional[Decimal] = None
    splits: List[SplitShareIn] = Field(default_factory=list)


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class Coordinates(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Location(BaseModel):
    address: Optional[Address] = None
    coordinates: Optional[Coordinates] = None


class Metadata(BaseModel):
    import_source: Optional[str] = None
    import_date: Optional[datetime] = None
    external_data: Optional[Dict[str, Any]] = None
    custom_fields: Optional[Dict[str, Any]] = None


# ---- Requests ----

class TransactionCreate(BaseModel):
    """Body of POST /users/{user_id}/transactions (owner comes from the path)."""

    account_id: Optional[int] = None
    external_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    type: Optional[str] = None
    category: Optional[Category] = None
    description: Optional[str] = None
    merchant: Optional[Merchant] = None
    date: Optional[datetime] = None
    status: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    recurring: Optional[Recurring] = None
    split: Optional[SplitIn] = None
    location: Optional[Location] = None
    metadata: Optional[Metadata] = None


class TransactionUpdate(BaseModel):
    """Body of PATCH: only the fields sent are changed."""

    account_id: Optional[int] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    type: Optional[str] = None
    category: Optional[Category] = None
    description: Optional[str] = None
    merchant: Optional[Merchant] = None
    date: Optional[datetime] = None
    status: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    recurring: Optional[Recurring] = None
    split: Optional[SplitIn] = None
    location: Optional[Location] = None
    is_hidden: Optional[bool] = None
    is_archived: Optional[bool] = None


class TagIn(BaseModel):
    tag: str


class MaterializeIn(BaseModel):
    as_of: Optional[datetime] = None


# ---- Responses ----

class SplitShareOut(BaseModel):
    user_id: Optional[int] = None
    amount: Optional[float] = None
    percentage: Optional[float] = None
    description: Optional[str] = None


class SplitOut(BaseModel):
    is_split: bool
    total_amount: Optional[float] = None
    splits: List[SplitShareOut]


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    account_id: int
    external_id: Optional[str] = None
    amount: float
    currency: str
    type: str
    category: Category
    description: str
    merchant: Merchant
    date: datetime
    posted_date: Optional[datetime] = None
    status: str
    tags: List[str]
    notes: Optional[str] = None
    attachments: List[Attachment]
    recurring: Recurring
    split: SplitOut
    location: Location
    metadata: Metadata
    is_reconciled: bool
    reconciliation_date: Optional[datetime] = None
    is_hidden: bool
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    # Derived on read
    absolute_amount: float
    formatted_amount: str
    age: int
    category_display: str


class CategorySpendingOut(BaseModel):
    category: str
    total_amount: float
    count: int


class MonthlyTrendOut(BaseModel):
    year: int
    month: int
    type: str
    total_amount: float
