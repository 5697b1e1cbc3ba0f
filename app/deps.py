# app/deps.py
# Role: Shared FastAPI dependencies.
#       Provides the standard SQLAlchemy database session dependency and
#       the TransactionStore bound to that session.

"""
Shared dependencies for the finance tracker API.
"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from db import SessionLocal
from app.services.transaction_store import TransactionStore

# -------------------------------------------------------------------
# Database dependency
# -------------------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a database session and ensures it is closed.

    Typical usage in routes:
        db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# -------------------------------------------------------------------
# Transaction store dependency
# -------------------------------------------------------------------

def get_store(db: Session = Depends(get_db)) -> TransactionStore:
    """One TransactionStore per request, sharing the request's session."""
    return TransactionStore(db)
