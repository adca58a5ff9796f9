"""
Marketplace API Client

Async client for the marketplace backend: advertising base prices, price
quotes, the operator's services and profile, cities, and stored campaign
records.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import httpx

from app.core.errors import MarketplaceError
from app.core.settings import Settings, get_settings
from app.models.campaign import CampaignPayload, CampaignRecord
from app.models.reference import City, CurrencyEntry, Profile, ServiceRef

logger = logging.getLogger(__name__)


class MarketplaceClient:
    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or get_settings()
        self.base_url = self._settings.marketplace_api_url.rstrip("/")
        self.timeout = self._settings.http_timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        token = self._settings.marketplace_api_token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, params=params, json=json)
                response.raise_for_status()
                body = response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"{method} {path} failed with status {status}")
            raise MarketplaceError(
                f"{method} {path} returned {status}", status_code=status
            ) from e

        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise MarketplaceError(f"{method} {path} failed: {e}") from e

        # Responses come wrapped as {"success": ..., "data": ...}
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def get_base_prices(self, currency: str | None = None) -> list[CurrencyEntry]:
        params = {"currency": currency} if currency else None
        data = await self._request(
            "GET", "/repairman/advertisements/fetch/base", params=params
        )
        return [CurrencyEntry.model_validate(item) for item in data or []]

    async def get_price_quote(self, total_days: int, currency: str) -> Decimal:
        data = await self._request(
            "GET",
            "/repairman/advertisements/price-quote",
            params={"totalDays": total_days, "currency": currency},
        )
        try:
            return Decimal(str(data["totalPrice"]))
        except (KeyError, TypeError, ArithmeticError) as e:
            raise MarketplaceError(f"Malformed price quote: {data!r}") from e

    async def get_services(self) -> list[ServiceRef]:
        data = await self._request("GET", "/repairman/services")
        return [ServiceRef.model_validate(item) for item in data or []]

    async def get_cities(self) -> list[City]:
        data = await self._request("GET", "/public/cities")
        return [City.model_validate(item) for item in data or []]

    async def get_profile(self) -> Profile:
        data = await self._request("GET", "/user/profile")
        return Profile.model_validate(data)

    async def get_campaign_record(self, campaign_id: str) -> CampaignRecord:
        data = await self._request("GET", f"/repairman/advertisements/{campaign_id}")
        return CampaignRecord.model_validate(data)

    async def update_campaign_record(
        self, campaign_id: str, payload: CampaignPayload
    ) -> dict[str, Any]:
        data = await self._request(
            "PUT",
            f"/repairman/advertisements/{campaign_id}",
            json=payload.to_wire(),
        )
        logger.info(f"Resubmitted campaign {campaign_id} for moderation")
        return data if isinstance(data, dict) else {}
