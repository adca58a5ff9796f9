import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.settings import Settings, get_settings
from app.dependencies import get_checkout_store
from app.services.checkout_store import CheckoutStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
def root_health_check(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "running", "service": settings.app_name}


@router.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def readiness_check(store: CheckoutStore = Depends(get_checkout_store)):
    """Ready when the checkout hand-off database answers."""
    try:
        store.ping()
    except Exception:
        logger.exception("Checkout database is not reachable")
        return JSONResponse(
            status_code=503, content={"ready": False, "checks": {"checkout_db": False}}
        )
    return {"ready": True, "checks": {"checkout_db": True}}
