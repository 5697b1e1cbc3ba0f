import os

# Point the app's own engine at a throwaway in-memory DB before anything imports db.py
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import Base
from models import Account, User
from app.services.transaction_store import TransactionStore

NOW = datetime(2025, 6, 15, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def store(db, clock):
    return TransactionStore(db, clock=clock)


def _add_user_with_account(db, email):
    user = User(email=email, name=email.split("@")[0])
    db.add(user)
    db.commit()
    account = Account(owner_id=user.id, name="Checking", institution="First Bank", currency="USD")
    db.add(account)
    db.commit()
    db.refresh(user)
    db.refresh(account)
    return user, account


@pytest.fixture
def user_and_account(db):
    return _add_user_with_account(db, "ada@example.com")


@pytest.fixture
def user(user_and_account):
    return user_and_account[0]


@pytest.fixture
def account(user_and_account):
    return user_and_account[1]


@pytest.fixture
def other_user_and_account(db):
    return _add_user_with_account(db, "grace@example.com")


@pytest.fixture
def make_record(user, account):
    """Factory for a valid Transaction-shaped dict owned by `user`."""

    def _make(**overrides):
        record = {
            "owner_id": user.id,
            "account_id": account.id,
            "amount": "-12.50",
            "type": "expense",
            "category": {"primary": "Food"},
            "description": "Lunch",
            "date": NOW - timedelta(days=1),
        }
        record.update(overrides)
        return record

    return _make
