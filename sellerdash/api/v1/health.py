"""Health check endpoint."""

from fastapi import APIRouter

from sellerdash import __version__
from sellerdash.config import get_settings

router = APIRouter()


@router.get("")
async def health_check() -> dict:
    """Liveness probe."""
    return {"status": "ok", "app": get_settings().APP_NAME, "version": __version__}
