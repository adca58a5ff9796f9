from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.errors import MarketplaceError
from app.core.settings import Settings
from app.db.init_db import init_db
from app.models.campaign import CampaignRecord
from app.models.reference import City, CurrencyEntry, Profile, ServiceRef
from app.services.campaign_form import CampaignForm
from app.services.catalog import CityCatalog, CurrencyCatalog, ReferenceData, ServiceCatalog
from app.services.checkout_store import CheckoutStore
from app.services.price_estimator import PriceEstimator

# Two days before the first allowed start date used throughout the tests.
TODAY = date(2025, 1, 8)

CURRENCIES = [
    CurrencyEntry(code="USD", base_price_per_day=Decimal("10")),
    CurrencyEntry(code="EUR", base_price_per_day=Decimal("9")),
    CurrencyEntry(code="PKR", base_price_per_day=Decimal("2800")),
]

SERVICES = [
    ServiceRef(id="svc-screen", title="Screen replacement", price=Decimal("20"), currency="USD"),
    ServiceRef(id="svc-battery", title="Battery swap", price=Decimal("5600"), currency="PKR"),
    ServiceRef(id="svc-gbp", title="Water damage", price=Decimal("5"), currency="GBP"),
]

CITIES = [City(id="city-khi", name="Karachi"), City(id="city-lhe", name="Lahore")]

PROFILE = Profile(id="prof-1", name="Quick Fix Mobiles", city={"_id": "city-khi"})

VALID_SERVICE_FIELDS = {
    "title": "iPhone screen repair",
    "description": "Original parts, same-day repair with warranty.",
    "city": "city-khi",
    "image": "uploads/ads/screen.jpg",
}


class FakeQuotes:
    """Stands in for the remote price quote: base price times days."""

    def __init__(self):
        self.calls: list[tuple[int, str]] = []
        self.fail = False
        self.gate: asyncio.Event | None = None

    async def __call__(self, total_days: int, currency: str) -> Decimal:
        self.calls.append((total_days, currency))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise MarketplaceError("pricing unavailable", status_code=503)
        base = {c.code: c.base_price_per_day for c in CURRENCIES}[currency]
        return base * total_days


class FakeMarketplaceClient:
    def __init__(self, record: dict | None = None):
        self.quotes = FakeQuotes()
        self.record = record
        self.calls: list[str] = []
        self.failing: set[str] = set()
        self.updated: list[tuple[str, dict]] = []

    def _call(self, name: str):
        self.calls.append(name)
        if name in self.failing:
            raise MarketplaceError(f"{name} failed", status_code=500)

    async def get_base_prices(self, currency=None):
        self._call("base_prices")
        return list(CURRENCIES)

    async def get_services(self):
        self._call("services")
        return list(SERVICES)

    async def get_cities(self):
        self._call("cities")
        return list(CITIES)

    async def get_profile(self):
        self._call("profile")
        return PROFILE

    async def get_price_quote(self, total_days, currency):
        return await self.quotes(total_days, currency)

    async def get_campaign_record(self, campaign_id):
        self._call("record")
        if self.record is None:
            raise MarketplaceError("not found", status_code=404)
        return CampaignRecord.model_validate(self.record)

    async def update_campaign_record(self, campaign_id, payload):
        self._call("update")
        self.updated.append((campaign_id, payload.to_wire()))
        return {"_id": campaign_id, "status": "pending"}


def stored_record(**overrides) -> dict:
    record = {
        "_id": "ad-42",
        "type": "service",
        "status": "rejected",
        "rejectionReason": "Image quality does not meet requirements.",
        "title": "Laptop keyboard repair",
        "description": "All brands, keys and full keyboards replaced.",
        "city": {"_id": "city-lhe", "name": "Lahore"},
        "image": "https://cdn.example.com/ads/keyboard.jpg",
        "serviceList": [
            {"_id": "svc-screen", "title": "Screen replacement",
             "pricing": {"total": 20, "currency": "USD"}},
        ],
        "duration": {
            "startDate": "2025-02-01T00:00:00.000Z",
            "endDate": "2025-02-08T00:00:00.000Z",
            "totalDays": 7,
        },
        "currency": "EUR",
        "budget": {"totalPrice": 83, "currencyCode": "EUR"},
    }
    record.update(overrides)
    return record


@pytest.fixture
def reference() -> ReferenceData:
    return ReferenceData(
        currencies=CurrencyCatalog(CURRENCIES),
        services=ServiceCatalog(SERVICES),
        cities=CityCatalog(CITIES),
    )


@pytest.fixture
def quotes() -> FakeQuotes:
    return FakeQuotes()


@pytest.fixture
def make_form(reference, quotes):
    def _make(debounce_window: float = 0, profile: Profile | None = PROFILE):
        estimator = PriceEstimator(quotes, debounce_window=debounce_window)
        return CampaignForm(
            reference,
            estimator,
            default_currency="USD",
            min_lead_days=2,
            today=lambda: TODAY,
            profile=profile,
        )

    return _make


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        PRICE_DEBOUNCE_MS=0,
        MIN_LEAD_DAYS=2,
        DEFAULT_CURRENCY="USD",
        BLOCK_SUBMIT_ON_PRICE_FAILURE=True,
        DRAFT_SESSION_TTL=60,
        DATABASE_URL="sqlite://",
    )


@pytest.fixture
def checkout_store() -> CheckoutStore:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return CheckoutStore(sessionmaker(bind=engine, expire_on_commit=False))
