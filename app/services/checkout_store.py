from __future__ import annotations

import asyncio
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from app.db.models import PendingCheckout
from app.models.campaign import CampaignPayload

logger = logging.getLogger(__name__)


class CheckoutStore:
    """Transient hand-off between campaign submission and the payment step."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def put(self, payload: CampaignPayload) -> int:
        """
        Persist a submitted payload in a single transaction.

        Returns:
            The checkout id the payment step uses to pick the payload up.
        """
        with self._session_factory.begin() as db:
            checkout = PendingCheckout(
                campaign_type=payload.type.value,
                payload=payload.to_wire(),
            )
            db.add(checkout)
            db.flush()
            checkout_id = checkout.id

        logger.info(f"Stored pending checkout {checkout_id} ({payload.type.value})")
        return checkout_id

    def peek(self, checkout_id: int) -> dict[str, Any] | None:
        with self._session_factory() as db:
            checkout = db.get(PendingCheckout, checkout_id)
            return dict(checkout.payload) if checkout else None

    def take(self, checkout_id: int) -> dict[str, Any] | None:
        """Return the payload and remove it; a checkout can be taken once."""
        with self._session_factory.begin() as db:
            checkout = db.get(PendingCheckout, checkout_id)
            if checkout is None:
                return None
            payload = dict(checkout.payload)
            db.delete(checkout)

        logger.info(f"Pending checkout {checkout_id} handed to payment")
        return payload

    def ping(self) -> None:
        with self._session_factory() as db:
            db.execute(text("SELECT 1"))

    async def hand_off(self, payload: CampaignPayload) -> str:
        checkout_id = await asyncio.to_thread(self.put, payload)
        return str(checkout_id)
