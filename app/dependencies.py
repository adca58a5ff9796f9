from __future__ import annotations

from functools import lru_cache

from app.core.settings import get_settings
from app.db.session import get_sessionmaker
from app.services.checkout_store import CheckoutStore
from app.services.draft_service import CampaignDraftService
from app.services.marketplace_client import MarketplaceClient


@lru_cache
def get_marketplace_client() -> MarketplaceClient:
    return MarketplaceClient(settings=get_settings())


@lru_cache
def get_checkout_store() -> CheckoutStore:
    return CheckoutStore(get_sessionmaker())


@lru_cache
def get_draft_service() -> CampaignDraftService:
    return CampaignDraftService(
        client=get_marketplace_client(),
        checkout_store=get_checkout_store(),
        settings=get_settings(),
    )
