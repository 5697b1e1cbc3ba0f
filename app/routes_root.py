# routes_root.py
"""
Root / basic endpoints (health, landing).
"""

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

router = APIRouter()


@router.get("/")
def read_root():
    """
    Landing endpoint: the API has no UI of its own, so send people to the docs.
    """
    return RedirectResponse(url="/docs", status_code=302)


@router.get("/health")
def health():
    """Simple health check."""
    return {"status": "ok"}
