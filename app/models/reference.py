from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator


def unwrap_ref(value: Any) -> Any:
    # The marketplace populates references as nested documents.
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


def date_part(value: Any) -> Any:
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


class CurrencyEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = Field(validation_alias=AliasChoices("code", "currency"))
    base_price_per_day: Decimal = Field(
        ge=0,
        validation_alias=AliasChoices(
            "base_price_per_day", "basePricePerDay", "basePrice", "price"
        ),
    )


class ServiceRef(BaseModel):
    """Snapshot of one of the operator's services, taken at selection time."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: str
    price: Decimal = Field(
        ge=0,
        validation_alias=AliasChoices("price", AliasPath("pricing", "total")),
    )
    currency: str = Field(
        validation_alias=AliasChoices("currency", AliasPath("pricing", "currency"))
    )


class City(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    profile_image: str | None = Field(
        default=None, validation_alias=AliasChoices("profile_image", "profileImage")
    )

    @field_validator("city", mode="before")
    @classmethod
    def _unwrap_city(cls, value: Any) -> Any:
        return unwrap_ref(value)


class RecordDates(BaseModel):
    """``duration`` block of a stored advertisement."""

    start_date: date | None = Field(
        default=None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: date | None = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )
    total_days: int | None = Field(
        default=None, validation_alias=AliasChoices("total_days", "totalDays")
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        return date_part(value)
