"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
credential store answers.
"""

from fastapi import APIRouter, Depends

from chatgate import __version__
from chatgate.auth.dependencies import get_user_store
from chatgate.services.user_store import UserStore

router = APIRouter()


@router.get("/health")
async def health_check(store: UserStore = Depends(get_user_store)):
    """Check server health and store connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await store.count()
        checks["user_store"] = "ok"
    except Exception as e:
        checks["user_store"] = f"error: {type(e).__name__}"

    status = "healthy" if checks["user_store"] == "ok" else "degraded"
    return {"status": status, **checks}
