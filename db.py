# db.py
# Role: Database bootstrap for the finance tracker backend.
#       Builds the SQLAlchemy engine from config.DATABASE_URL, the session
#       factory, and the declarative Base shared by all ORM models.

"""
Database setup for the finance tracker.

- Uses DATABASE_URL from config (SQLite file under <project_root>/database by default)
- Ensures the 'database' folder exists when the default SQLite file is used.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

import config

DATABASE_URL = config.DATABASE_URL

# Folder for the default SQLite DB (created on startup if missing)
if DATABASE_URL.startswith("sqlite:///") and DATABASE_URL != "sqlite:///:memory:":
    db_dir = os.path.dirname(DATABASE_URL[len("sqlite:///"):])
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

# For SQLite, we need check_same_thread=False for FastAPI (threaded request handling)
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args=connect_args,
)

# Standard session factory used via dependency injection (see app/deps.py:get_db)
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Declarative base class for ORM models
Base = declarative_base()
