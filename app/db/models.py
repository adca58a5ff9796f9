from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PendingCheckout(Base):
    """A submitted campaign waiting for the payment step to pick it up.

    Rows are transient: the payment step takes (reads and deletes) them.
    """

    __tablename__ = "pending_checkouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    campaign_type: Mapped[str] = mapped_column(Text, nullable=False)

    # CampaignPayload.to_wire(): camelCase keys, decimals and dates as strings
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
