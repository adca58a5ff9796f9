from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from app.models.reference import RecordDates, ServiceRef, unwrap_ref
from app.services.schedule import (
    MAX_TOTAL_DAYS,
    MIN_LEAD_DAYS,
    MIN_TOTAL_DAYS,
    compute_min_start_date,
    is_valid_start_date,
)

DESCRIPTION_MIN_LENGTH = 20


class CampaignType(str, Enum):
    SERVICE = "service"
    PROFILE = "profile"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    REJECTED = "rejected"
    APPROVED = "approved"

    @property
    def is_terminal(self) -> bool:
        return self is CampaignStatus.APPROVED


# --- Draft (mutable, partially filled) ---


class ServiceTarget(BaseModel):
    type: Literal[CampaignType.SERVICE] = CampaignType.SERVICE

    title: str | None = None
    description: str | None = None
    city: str | None = None
    image: str | None = None

    # Ordered by first selection; ids are unique.
    bundled_services: list[ServiceRef] = Field(default_factory=list)


class ProfileTarget(BaseModel):
    type: Literal[CampaignType.PROFILE] = CampaignType.PROFILE

    # Filled from the operator's own profile, never typed in.
    profile_ref: str | None = None


CampaignTarget = Annotated[ServiceTarget | ProfileTarget, Field(discriminator="type")]

SERVICE_FIELDS = frozenset({"title", "description", "city", "image"})


class CampaignDraft(BaseModel):
    target: CampaignTarget = Field(default_factory=ServiceTarget)

    start_date: date | None = None
    # Raw user input; validation decides whether it is a usable duration.
    total_days: int | float | str | None = 1
    currency: str | None = None

    @property
    def type(self) -> CampaignType:
        return self.target.type


# --- Validation schemas (strict, one per campaign type) ---


class _ScheduleSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    start_date: date
    total_days: StrictInt = Field(ge=MIN_TOTAL_DAYS, le=MAX_TOTAL_DAYS)
    currency: str = Field(min_length=1)

    @field_validator("start_date")
    @classmethod
    def _lead_time(cls, value: date, info: ValidationInfo) -> date:
        context = info.context or {}
        today = context.get("today")
        lead_days = context.get("lead_days", MIN_LEAD_DAYS)
        if today is not None and not is_valid_start_date(value, today, lead_days):
            min_start = compute_min_start_date(today, lead_days)
            raise PydanticCustomError(
                "start_date_too_early",
                "Start date must be on or after {min_start}",
                {"min_start": min_start.isoformat()},
            )
        return value

    @field_validator("currency")
    @classmethod
    def _known_currency(cls, value: str, info: ValidationInfo) -> str:
        codes = (info.context or {}).get("currency_codes")
        if codes is not None and value not in codes:
            raise PydanticCustomError(
                "unknown_currency", "Currency {code} is not available", {"code": value}
            )
        return value


class ServiceCampaignSchema(_ScheduleSchema):
    type: Literal[CampaignType.SERVICE]
    title: str = Field(min_length=1)
    description: str = Field(min_length=DESCRIPTION_MIN_LENGTH)
    city: str = Field(min_length=1)
    image: str | None = Field(default=None, validate_default=True)

    @field_validator("city")
    @classmethod
    def _known_city(cls, value: str, info: ValidationInfo) -> str:
        city_ids = (info.context or {}).get("city_ids")
        if city_ids is not None and value not in city_ids:
            raise PydanticCustomError("unknown_city", "Select a city from the list")
        return value

    @field_validator("image")
    @classmethod
    def _image_present(cls, value: str | None, info: ValidationInfo) -> str | None:
        if not value and (info.context or {}).get("image_required", True):
            raise PydanticCustomError("missing", "Image is required")
        return value


class ProfileCampaignSchema(_ScheduleSchema):
    type: Literal[CampaignType.PROFILE]
    profile_ref: str

    @field_validator("profile_ref")
    @classmethod
    def _loaded_profile(cls, value: str, info: ValidationInfo) -> str:
        profile_id = (info.context or {}).get("profile_id")
        if profile_id != value:
            raise PydanticCustomError("profile_not_loaded", "Profile is not loaded")
        return value


CAMPAIGN_SCHEMAS: dict[CampaignType, type[_ScheduleSchema]] = {
    CampaignType.SERVICE: ServiceCampaignSchema,
    CampaignType.PROFILE: ProfileCampaignSchema,
}


# --- Submission payload (immutable) ---


class CampaignPayload(BaseModel):
    """Everything the payment step needs, keyed the way the dashboard posts it."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    type: CampaignType
    start_date: date
    end_date: date
    total_days: int
    currency: str
    total_price: Decimal

    title: str | None = None
    description: str | None = None
    city: str | None = None
    image: str | None = None
    service_list: tuple[ServiceRef, ...] = ()

    profile_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Stored record (edit flow) ---


class CampaignRecord(BaseModel):
    """An existing advertisement as the marketplace returns it."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    type: CampaignType
    status: CampaignStatus = CampaignStatus.DRAFT
    rejection_reason: str | None = Field(
        default=None,
        validation_alias=AliasChoices("rejection_reason", "rejectionReason"),
    )

    title: str | None = None
    description: str | None = None
    city: str | None = None
    image: str | None = None
    profile_ref: str | None = Field(
        default=None, validation_alias=AliasChoices("profile_ref", "profileId")
    )
    bundled_services: list[ServiceRef] = Field(
        default_factory=list,
        validation_alias=AliasChoices("bundled_services", "serviceList"),
    )

    duration: RecordDates = Field(default_factory=RecordDates)
    currency: str | None = Field(
        default=None,
        validation_alias=AliasChoices("currency", AliasPath("budget", "currencyCode")),
    )
    total_price: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("total_price", AliasPath("budget", "totalPrice")),
    )

    @field_validator("city", "profile_ref", mode="before")
    @classmethod
    def _unwrap(cls, value: Any) -> Any:
        return unwrap_ref(value)


# --- API ---


class DraftOpenRequest(BaseModel):
    campaign_id: str | None = None


class DraftUpdateRequest(BaseModel):
    type: CampaignType | None = None
    title: str | None = None
    description: str | None = None
    city: str | None = None
    image: str | None = None
    start_date: date | None = None
    total_days: int | float | str | None = None
    currency: str | None = None


class PriceSummary(BaseModel):
    currency: str | None
    symbol: str | None
    base_price_per_day: Decimal | None
    total_days: int | None
    estimate: Decimal
    bundled_total: Decimal
    total_price: Decimal
    display: str | None
    loading: bool
    failed: bool


class DraftState(BaseModel):
    session_id: str
    campaign_id: str | None = None
    status: CampaignStatus
    rejection_reason: str | None = None

    target: CampaignTarget
    start_date: date | None
    min_start_date: date
    total_days: int | float | str | None
    end_date: date | None
    currency: str | None

    price: PriceSummary
    errors: dict[str, str] = Field(default_factory=dict)
    notices: list[str] = Field(default_factory=list)


class SubmitResponse(BaseModel):
    reference: str
    payload: dict[str, Any]


class ScheduleResponse(BaseModel):
    start_date: date
    total_days: int
    end_date: date
    min_start_date: date
