from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from app.core.errors import UnknownCurrency
from app.models.reference import City, CurrencyEntry, ServiceRef

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "PKR": "₨",
    "TRY": "₺",
}

CENT = Decimal("0.01")


def currency_symbol(code: str | None) -> str | None:
    if code is None:
        return None
    return CURRENCY_SYMBOLS.get(code, code)


def format_price(amount: Decimal, code: str | None) -> str:
    return f"{currency_symbol(code) or ''}{amount.quantize(CENT)}"


class CurrencyCatalog:
    """Currencies on offer and their per-day advertising base price."""

    def __init__(self, entries: Iterable[CurrencyEntry] = ()):
        self._entries = MappingProxyType({e.code: e for e in entries})

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def codes(self) -> frozenset[str]:
        return frozenset(self._entries)

    def get(self, code: str | None) -> CurrencyEntry | None:
        if code is None:
            return None
        return self._entries.get(code)

    def base_price(self, code: str) -> Decimal:
        entry = self._entries.get(code)
        if entry is None:
            raise UnknownCurrency(code)
        return entry.base_price_per_day

    def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        """Convert ``amount`` using the ratio of the two per-day base prices.

        Base prices are set by the admin per currency for the same day of
        advertising, so their ratio is the rate the marketplace charges at.
        """
        if from_code == to_code:
            return amount
        source = self.base_price(from_code)
        target = self.base_price(to_code)
        if source == 0:
            raise UnknownCurrency(from_code)
        return amount * target / source


class ServiceCatalog:
    def __init__(self, services: Iterable[ServiceRef] = ()):
        self._services = MappingProxyType({s.id: s for s in services})

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._services

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self):
        return iter(self._services.values())

    def get(self, service_id: str) -> ServiceRef | None:
        return self._services.get(service_id)


class CityCatalog:
    def __init__(self, cities: Iterable[City] = ()):
        self._cities = MappingProxyType({c.id: c for c in cities})

    def __contains__(self, city_id: object) -> bool:
        return city_id in self._cities

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._cities)


@dataclass(frozen=True)
class ReferenceData:
    currencies: CurrencyCatalog = field(default_factory=CurrencyCatalog)
    services: ServiceCatalog = field(default_factory=ServiceCatalog)
    cities: CityCatalog = field(default_factory=CityCatalog)
    # Non-blocking notices for sources that failed to load.
    notices: tuple[str, ...] = ()


class ReferenceDataLoader:
    """Loads the read-only catalogs a draft session works against."""

    def __init__(self, client):
        self._client = client

    async def load(self) -> ReferenceData:
        notices: list[str] = []

        currencies = await self._fetch(
            "currencies", self._client.get_base_prices, notices
        )
        services = await self._fetch("services", self._client.get_services, notices)
        cities = await self._fetch("cities", self._client.get_cities, notices)

        return ReferenceData(
            currencies=CurrencyCatalog(currencies),
            services=ServiceCatalog(services),
            cities=CityCatalog(cities),
            notices=tuple(notices),
        )

    @staticmethod
    async def _fetch(name: str, fetch, notices: list[str]) -> list:
        try:
            return await fetch()
        except Exception as e:
            logger.warning(f"Failed to load {name}: {e}")
            notices.append(f"Failed to load {name}")
            return []
