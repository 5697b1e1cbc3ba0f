# config.py
# Role: Central configuration for the finance tracker backend.
#       Loads environment variables (optionally from a .env file)
#       and exposes them as typed module-level constants.

"""
Configuration for the finance tracker.

Every value can be overridden through the environment or a local .env file.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Base directory of the project (where this module lives)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# -------------------------------------------------------------------
# Database
# -------------------------------------------------------------------

# Default: SQLite file at <project_root>/database/finance.db
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "database", "finance.db")
DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")

# Echo SQL statements (debugging only)
SQL_ECHO: bool = os.getenv("SQL_ECHO", "0").strip().lower() in ("1", "true", "yes", "on")

# -------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# -------------------------------------------------------------------
# Transactions
# -------------------------------------------------------------------

DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD").upper()
DEFAULT_QUERY_LIMIT: int = int(os.getenv("DEFAULT_QUERY_LIMIT", "50"))
DEFAULT_TREND_MONTHS: int = int(os.getenv("DEFAULT_TREND_MONTHS", "12"))
