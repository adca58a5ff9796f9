import asyncio
from datetime import date
from decimal import Decimal

import pytest

from app.core.errors import DraftNotFound, MarketplaceError, TerminalStateViolation
from app.models.campaign import CampaignStatus, CampaignType
from app.services.draft_service import CampaignDraftService
from conftest import TODAY, VALID_SERVICE_FIELDS, FakeMarketplaceClient, stored_record


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _service(client, checkout_store, test_settings, clock=None) -> CampaignDraftService:
    return CampaignDraftService(
        client,
        checkout_store,
        settings=test_settings,
        today=lambda: TODAY,
        clock=clock or _FakeClock(),
    )


def test_create_flow_loads_reference_and_profile(checkout_store, test_settings):
    client = FakeMarketplaceClient()
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_create()
        await session.form.estimator.settle()
        return service.describe(session)

    state = asyncio.run(scenario())

    assert client.calls == ["base_prices", "services", "cities", "profile"]
    assert state.status is CampaignStatus.DRAFT
    assert state.currency == "USD"
    assert state.total_days == 1
    assert state.min_start_date == date(2025, 1, 10)
    assert state.price.total_price == Decimal("10.00")
    assert state.notices == []


def test_failed_catalog_is_a_notice_not_an_error(checkout_store, test_settings):
    client = FakeMarketplaceClient()
    client.failing = {"cities", "profile"}
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_create()
        session.form.update(start_date=date(2025, 1, 12), **VALID_SERVICE_FIELDS)
        return service.describe(session)

    state = asyncio.run(scenario())

    assert state.notices == ["Failed to load cities", "Failed to load profile"]
    # Nothing can satisfy the city check while the catalog is empty.
    assert state.errors == {"city": "Select a city from the list"}


def test_approved_campaign_is_refused_before_catalogs(checkout_store, test_settings):
    client = FakeMarketplaceClient(record=stored_record(status="approved"))
    service = _service(client, checkout_store, test_settings)

    with pytest.raises(TerminalStateViolation):
        asyncio.run(service.open_edit("ad-42"))

    assert client.calls == ["record"]


def test_unknown_campaign(checkout_store, test_settings):
    service = _service(FakeMarketplaceClient(), checkout_store, test_settings)

    with pytest.raises(MarketplaceError) as exc:
        asyncio.run(service.open_edit("missing"))

    assert exc.value.status_code == 404


def test_edit_flow_populates_from_record(checkout_store, test_settings):
    client = FakeMarketplaceClient(record=stored_record())
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_edit("ad-42")
        await session.form.estimator.settle()
        return service.describe(session)

    state = asyncio.run(scenario())

    # Service campaigns never need the operator profile.
    assert client.calls == ["record", "base_prices", "services", "cities"]
    assert state.campaign_id == "ad-42"
    assert state.status is CampaignStatus.REJECTED
    assert state.rejection_reason.startswith("Image quality")
    assert state.target.city == "city-lhe"
    assert state.end_date == date(2025, 2, 8)
    # 7 days at 9 EUR plus 20 USD converted at 9/10
    assert state.price.total_price == Decimal("81.00")
    assert state.errors == {}


def test_edit_with_retired_currency_adds_notice(checkout_store, test_settings):
    client = FakeMarketplaceClient(record=stored_record(currency="AED", budget={}))
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_edit("ad-42")
        await session.form.estimator.settle()
        return service.describe(session)

    state = asyncio.run(scenario())

    assert state.notices == ["Saved currency AED is no longer offered"]
    assert "currency" in state.errors


def test_edit_submit_resubmits_record(checkout_store, test_settings):
    client = FakeMarketplaceClient(record=stored_record())
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_edit("ad-42")
        session.form.update(title="Laptop keyboard and trackpad repair")
        await session.form.estimator.settle()
        return session.id, await service.submit(session.id)

    session_id, (reference, payload) = asyncio.run(scenario())

    assert reference == "ad-42"
    assert [campaign_id for campaign_id, _ in client.updated] == ["ad-42"]
    assert client.updated[0][1]["title"] == "Laptop keyboard and trackpad repair"
    assert payload.total_price == Decimal("81.00")
    with pytest.raises(DraftNotFound):
        service.get(session_id)


def test_create_submit_stores_checkout(checkout_store, test_settings):
    client = FakeMarketplaceClient()
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_create()
        session.form.update(type="profile", start_date=date(2025, 1, 10), total_days=5)
        await session.form.estimator.settle()
        return await service.submit(session.id)

    reference, payload = asyncio.run(scenario())

    assert payload.type is CampaignType.PROFILE
    stored = checkout_store.peek(int(reference))
    assert stored == payload.to_wire()
    assert client.updated == []


def test_discard_forgets_session(checkout_store, test_settings):
    service = _service(FakeMarketplaceClient(), checkout_store, test_settings)

    async def scenario():
        session = await service.open_create()
        service.discard(session.id)
        service.discard(session.id)
        return session

    session = asyncio.run(scenario())

    assert session.form.estimator.loading is False
    with pytest.raises(DraftNotFound):
        service.get(session.id)


def test_edit_submit_of_pending_campaign(checkout_store, test_settings):
    client = FakeMarketplaceClient(record=stored_record(status="pending"))
    service = _service(client, checkout_store, test_settings)

    async def scenario():
        session = await service.open_edit("ad-42")
        await session.form.estimator.settle()
        return session.id, await service.submit(session.id)

    session_id, (reference, _) = asyncio.run(scenario())

    assert reference == "ad-42"
    assert client.calls.count("update") == 1
    with pytest.raises(DraftNotFound):
        service.get(session_id)


def test_abandoned_session_expires(checkout_store, test_settings):
    clock = _FakeClock()
    service = _service(FakeMarketplaceClient(), checkout_store, test_settings, clock)

    async def scenario():
        old = await service.open_create()
        clock.now = 30.0
        assert service.get(old.id) is old

        clock.now = 61.0
        fresh = await service.open_create()
        return old, fresh

    old, fresh = asyncio.run(scenario())

    assert old.form.estimator.loading is False
    with pytest.raises(DraftNotFound):
        service.get(old.id)
    assert service.get(fresh.id) is fresh

    clock.now = 200.0
    with pytest.raises(DraftNotFound):
        service.get(fresh.id)
