# main.py
# Role: Application entry point for the finance tracker backend.
#       Initializes the FastAPI app, creates database tables,
#       registers error handlers and all route modules.

"""
Main FastAPI app for the personal finance tracker.

Here we only:
- create the FastAPI app
- create DB tables
- translate transaction store errors into HTTP responses
- include route modules
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from db import Base, engine
from app.errors import DuplicateExternalIdError, NotFoundError, ValidationError
from app.logger import configure_logging, get_logger
from app.routes_root import router as root_router
from app.routes_transactions import router as transactions_router
from app.routes_dashboard import router as dashboard_router

configure_logging()
logger = get_logger(__name__)

# -------------------------------------------------------------------
# App & DB setup
# -------------------------------------------------------------------

# Create database tables (only if they don't exist yet).
# This is safe to run on startup for SQLite and development usage.
Base.metadata.create_all(bind=engine)

# FastAPI application instance
app = FastAPI(title="Finance Tracker")

# -------------------------------------------------------------------
# Error handlers
# -------------------------------------------------------------------

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(DuplicateExternalIdError)
async def duplicate_error_handler(request: Request, exc: DuplicateExternalIdError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=409, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

# -------------------------------------------------------------------
# Include routers
# -------------------------------------------------------------------

# Root / health routes
app.include_router(root_router)

# Transactions CRUD, tags, reconciliation, recurring
app.include_router(transactions_router)

# Dashboard analytics (category breakdown, monthly trends)
app.include_router(dashboard_router)
