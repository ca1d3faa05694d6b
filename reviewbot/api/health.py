from fastapi import APIRouter, Request, status
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", status_code=status.HTTP_200_OK)
async def root():
    """Root endpoint, also used as a health check by load balancers."""
    return {"name": "pr-review-bot", "status": "ok"}


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """Health check endpoint."""
    # Quick DB ping to report the settings store state; never fails the check
    store = getattr(request.app.state, "store", None)
    try:
        await store.ping()
        db_status = "connected"
    except Exception as e:
        logger.warning(f"DB health check failed: {e}")
        db_status = "disconnected"

    return {
        "status": "ok",
        "database": db_status,
    }
