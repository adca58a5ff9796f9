import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_checkout_store
from app.services.checkout_store import CheckoutStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/checkouts/{checkout_id}")
def get_pending_checkout(
    checkout_id: int,
    consume: bool = True,
    store: CheckoutStore = Depends(get_checkout_store),
) -> dict[str, Any]:
    """
    Hand a submitted campaign payload to the payment step.

    By default the payload is removed as it is read; pass ``consume=false``
    to look at it without taking it.
    """
    try:
        payload = store.take(checkout_id) if consume else store.peek(checkout_id)
    except Exception as e:
        logger.exception("Checkout endpoint failed")
        raise HTTPException(status_code=500, detail=f"Internal server error: {e}")

    if payload is None:
        raise HTTPException(
            status_code=404, detail=f"Checkout {checkout_id} not found"
        )
    return payload
