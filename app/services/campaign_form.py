from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from app.core.errors import CampaignValidationError, TerminalStateViolation, UnknownCurrency
from app.models.campaign import (
    CAMPAIGN_SCHEMAS,
    DESCRIPTION_MIN_LENGTH,
    SERVICE_FIELDS,
    CampaignDraft,
    CampaignRecord,
    CampaignStatus,
    CampaignType,
    PriceSummary,
    ProfileTarget,
    ServiceTarget,
)
from app.models.reference import Profile
from app.services.catalog import CENT, ReferenceData, currency_symbol, format_price
from app.services.price_estimator import ZERO, PriceEstimator
from app.services.schedule import (
    MAX_TOTAL_DAYS,
    MIN_LEAD_DAYS,
    MIN_TOTAL_DAYS,
    compute_end_date,
    compute_min_start_date,
    is_valid_total_days,
)

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = frozenset({"start_date", "total_days", "currency"})
PRICED_FIELDS = frozenset({"total_days", "currency"})

FIELD_MESSAGES: dict[tuple[str, str], str] = {
    ("title", "missing"): "Title is required",
    ("title", "string_too_short"): "Title is required",
    ("description", "missing"): "Description is required",
    ("description", "string_too_short"): (
        f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters"
    ),
    ("city", "missing"): "City is required",
    ("city", "string_too_short"): "City is required",
    ("start_date", "missing"): "Start date is required",
    ("total_days", "missing"): "Total days is required",
    ("total_days", "int_type"): "Days must be a whole number",
    ("total_days", "greater_than_equal"): f"Minimum {MIN_TOTAL_DAYS} day",
    ("total_days", "less_than_equal"): f"Maximum {MAX_TOTAL_DAYS} days",
    ("currency", "missing"): "Currency is required",
    ("currency", "string_too_short"): "Currency is required",
    ("profile_ref", "missing"): "Profile is not loaded",
}


class CampaignForm:
    """The single mutable campaign draft of one dashboard session.

    Holds the user's input, derives the end date and total price from it and
    validates it against the loaded reference data. Validation never mutates
    anything; it runs after every change and once more on submit.
    """

    def __init__(
        self,
        reference: ReferenceData,
        estimator: PriceEstimator,
        *,
        default_currency: str,
        min_lead_days: int = MIN_LEAD_DAYS,
        today: Callable[[], date] = date.today,
        profile: Profile | None = None,
    ):
        self.reference = reference
        self.estimator = estimator
        self.profile = profile
        self.min_lead_days = min_lead_days
        self._today = today

        self.campaign_id: str | None = None
        self.status = CampaignStatus.DRAFT
        self.rejection_reason: str | None = None
        self._stored_image = False

        self.draft = CampaignDraft(currency=default_currency)

    # -- lifecycle --

    def load_record(self, record: CampaignRecord) -> None:
        """Overwrite local defaults with a stored campaign (edit flow)."""
        self.campaign_id = record.id
        self.status = record.status
        self.rejection_reason = record.rejection_reason

        if record.type is CampaignType.SERVICE:
            target: ServiceTarget | ProfileTarget = ServiceTarget(
                title=record.title,
                description=record.description,
                city=record.city,
                image=record.image,
                bundled_services=list(record.bundled_services),
            )
            self._stored_image = bool(record.image)
        else:
            target = ProfileTarget(profile_ref=record.profile_ref)

        currency = record.currency or self.draft.currency
        if currency not in self.reference.currencies:
            logger.warning(
                f"Campaign {record.id} uses currency {currency} "
                "which is not in the loaded catalog"
            )

        self.draft = CampaignDraft(
            target=target,
            start_date=record.duration.start_date,
            total_days=record.duration.total_days or 1,
            currency=currency,
        )

        stored_end = record.duration.end_date
        if stored_end is not None and stored_end != self.end_date:
            logger.info(
                f"Campaign {record.id} stored end date {stored_end} "
                f"recomputed as {self.end_date}"
            )

    @property
    def is_existing(self) -> bool:
        return self.campaign_id is not None

    def ensure_editable(self) -> None:
        if self.status.is_terminal:
            raise TerminalStateViolation(
                "This advertisement has been approved and can no longer be edited"
            )

    # -- mutation --

    def update(self, **changes: Any) -> dict[str, str]:
        self.ensure_editable()

        if "type" in changes:
            self._set_type(changes.pop("type"))

        target = self.draft.target
        for name, value in changes.items():
            if name in SERVICE_FIELDS:
                if isinstance(target, ServiceTarget):
                    setattr(target, name, value)
                else:
                    logger.debug(f"Ignoring {name} on a profile campaign")
            elif name in SCHEDULE_FIELDS:
                setattr(self.draft, name, value)
            else:
                raise ValueError(f"Unknown campaign field: {name}")

        if PRICED_FIELDS & changes.keys():
            self.request_price()

        return self.validate()

    def request_price(self) -> None:
        self.estimator.request(self.draft.total_days, self.draft.currency)

    def toggle_service(self, service_id: str) -> list[str]:
        """Add the service to the bundle, or remove it if already there."""
        self.ensure_editable()

        target = self.draft.target
        if not isinstance(target, ServiceTarget):
            raise CampaignValidationError(
                {"bundled_services": "Only service campaigns can bundle services"}
            )

        remaining = [s for s in target.bundled_services if s.id != service_id]
        if len(remaining) == len(target.bundled_services):
            service = self.reference.services.get(service_id)
            if service is None:
                raise CampaignValidationError(
                    {"bundled_services": f"Unknown service {service_id}"}
                )
            remaining.append(service)

        target.bundled_services = remaining
        return [s.id for s in remaining]

    def _set_type(self, value: Any) -> None:
        new_type = CampaignType(value)
        if new_type is self.draft.type:
            return
        if self.is_existing:
            raise CampaignValidationError(
                {"type": "Campaign type cannot be changed once created"}
            )
        if new_type is CampaignType.PROFILE:
            profile_ref = self.profile.id if self.profile else None
            self.draft.target = ProfileTarget(profile_ref=profile_ref)
        else:
            self.draft.target = ServiceTarget()

    # -- derived values --

    @property
    def min_start_date(self) -> date:
        return compute_min_start_date(self._today(), self.min_lead_days)

    @property
    def end_date(self) -> date | None:
        draft = self.draft
        if draft.start_date is None or not is_valid_total_days(draft.total_days):
            return None
        return compute_end_date(draft.start_date, draft.total_days)

    def bundled_total(self) -> Decimal:
        target = self.draft.target
        currency = self.draft.currency
        if not isinstance(target, ServiceTarget) or not currency:
            return ZERO
        return sum(
            (
                self.reference.currencies.convert(s.price, s.currency, currency)
                for s in target.bundled_services
            ),
            ZERO,
        )

    @property
    def total_price(self) -> Decimal:
        try:
            bundled = self.bundled_total()
        except UnknownCurrency:
            bundled = ZERO
        return max(self.estimator.total_price + bundled, ZERO).quantize(CENT)

    def price_summary(self) -> PriceSummary:
        currency = self.draft.currency
        entry = self.reference.currencies.get(currency)
        try:
            bundled = self.bundled_total().quantize(CENT)
        except UnknownCurrency:
            bundled = ZERO
        total = self.total_price
        days = self.draft.total_days
        return PriceSummary(
            currency=currency,
            symbol=currency_symbol(currency),
            base_price_per_day=entry.base_price_per_day if entry else None,
            total_days=days if is_valid_total_days(days) else None,
            estimate=self.estimator.total_price,
            bundled_total=bundled,
            total_price=total,
            display=format_price(total, currency) if currency else None,
            loading=self.estimator.loading,
            failed=self.estimator.failed,
        )

    # -- validation --

    def validate(self) -> dict[str, str]:
        draft = self.draft
        data: dict[str, Any] = {
            "type": draft.type,
            "start_date": draft.start_date,
            "total_days": draft.total_days,
            "currency": draft.currency,
        }
        data.update(draft.target.model_dump(exclude={"type", "bundled_services"}))
        data = {k: v for k, v in data.items() if v is not None}

        errors: dict[str, str] = {}
        try:
            CAMPAIGN_SCHEMAS[draft.type].model_validate(data, context=self._context())
        except ValidationError as e:
            for err in e.errors():
                field = str(err["loc"][0]) if err["loc"] else "draft"
                errors.setdefault(
                    field, FIELD_MESSAGES.get((field, err["type"]), err["msg"])
                )

        try:
            self.bundled_total()
        except UnknownCurrency as e:
            errors["bundled_services"] = f"No base price for currency {e.args[0]}"

        return errors

    def _context(self) -> dict[str, Any]:
        return {
            "today": self._today(),
            "lead_days": self.min_lead_days,
            "currency_codes": self.reference.currencies.codes,
            "city_ids": self.reference.cities.ids,
            "profile_id": self.profile.id if self.profile else None,
            "image_required": not self._stored_image,
        }
