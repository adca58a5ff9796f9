from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from app.core.errors import (
    CampaignValidationError,
    PriceUnavailable,
    SubmissionRejected,
    TerminalStateViolation,
)
from app.models.campaign import CampaignPayload, CampaignStatus, ServiceTarget
from app.services.campaign_form import CampaignForm

logger = logging.getLogger(__name__)

# Receives the finished payload and returns a reference for it.
Handoff = Callable[[CampaignPayload], Awaitable[str]]

_TRANSITIONS: dict[tuple[CampaignStatus, str], CampaignStatus] = {
    (CampaignStatus.DRAFT, "submit"): CampaignStatus.PENDING,
    # Editing a campaign still in moderation resubmits it.
    (CampaignStatus.PENDING, "submit"): CampaignStatus.PENDING,
    (CampaignStatus.REJECTED, "submit"): CampaignStatus.PENDING,
    (CampaignStatus.PENDING, "approve"): CampaignStatus.APPROVED,
    (CampaignStatus.PENDING, "reject"): CampaignStatus.REJECTED,
}


def next_status(current: CampaignStatus, event: str) -> CampaignStatus:
    """Moderation lifecycle as the dashboard sees it."""
    if current.is_terminal:
        raise TerminalStateViolation(f"Campaign is {current.value}; no further changes")
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise ValueError(f"Cannot {event} a {current.value} campaign") from None


def build_payload(form: CampaignForm) -> CampaignPayload:
    draft = form.draft
    common = dict(
        type=draft.type,
        start_date=draft.start_date,
        end_date=form.end_date,
        total_days=draft.total_days,
        currency=draft.currency,
        total_price=form.total_price,
    )
    target = draft.target
    if isinstance(target, ServiceTarget):
        return CampaignPayload(
            **common,
            title=target.title,
            description=target.description,
            city=target.city,
            image=target.image,
            service_list=tuple(target.bundled_services),
        )
    return CampaignPayload(**common, profile_id=target.profile_ref)


class CampaignSubmitter:
    def __init__(self, handoff: Handoff, block_on_price_failure: bool = True):
        self._handoff = handoff
        self._block_on_price_failure = block_on_price_failure

    async def submit(self, form: CampaignForm) -> tuple[str, CampaignPayload]:
        """Check the draft and pass one immutable payload to the next stage.

        Checks run in a fixed order and the first failure is raised; nothing
        is handed off unless every check passes and the payload is complete.
        """
        form.ensure_editable()

        errors = form.validate()
        if errors:
            raise CampaignValidationError(errors)

        target = form.draft.target
        if isinstance(target, ServiceTarget) and not target.bundled_services:
            raise CampaignValidationError(
                {"bundled_services": "Select at least one service to promote"}
            )

        estimator = form.estimator
        if estimator.loading:
            raise SubmissionRejected("Price is still being calculated")
        if estimator.failed and self._block_on_price_failure:
            raise PriceUnavailable("Price could not be calculated; try again")

        new_status = next_status(form.status, "submit")
        payload = build_payload(form)
        reference = await self._handoff(payload)

        form.status = new_status
        logger.info(
            f"Submitted {payload.type.value} campaign "
            f"({payload.total_days} days, {payload.total_price} {payload.currency}) "
            f"as {reference}"
        )
        return reference, payload
