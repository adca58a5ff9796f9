from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from app.core.errors import DraftNotFound, TerminalStateViolation
from app.core.settings import Settings, get_settings
from app.models.campaign import CampaignPayload, CampaignType, DraftState
from app.models.reference import Profile
from app.services.campaign_form import CampaignForm
from app.services.campaign_submitter import CampaignSubmitter, Handoff
from app.services.catalog import ReferenceData, ReferenceDataLoader
from app.services.checkout_store import CheckoutStore
from app.services.marketplace_client import MarketplaceClient
from app.services.price_estimator import PriceEstimator

logger = logging.getLogger(__name__)


@dataclass
class DraftSession:
    id: str
    form: CampaignForm
    notices: list[str] = field(default_factory=list)
    created_at: float = 0.0


class CampaignDraftService:
    """Opens, holds and submits campaign drafts, one per dashboard session."""

    def __init__(
        self,
        client: MarketplaceClient,
        checkout_store: CheckoutStore,
        settings: Settings | None = None,
        today: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._checkout_store = checkout_store
        self._settings = settings or get_settings()
        self._today = today
        self._clock = clock
        self._sessions: dict[str, DraftSession] = {}

    async def open_create(self) -> DraftSession:
        reference = await ReferenceDataLoader(self._client).load()
        notices = list(reference.notices)
        profile = await self._load_profile(notices)

        form = self._new_form(reference, profile)
        form.request_price()
        return self._register(form, notices)

    async def open_edit(self, campaign_id: str) -> DraftSession:
        """
        Open a stored campaign for editing.

        The record is loaded before the catalogs it is matched against, and an
        approved campaign is refused before any form exists.
        """
        record = await self._client.get_campaign_record(campaign_id)
        if record.status.is_terminal:
            raise TerminalStateViolation(
                "This advertisement has been approved and can no longer be edited"
            )

        reference = await ReferenceDataLoader(self._client).load()
        notices = list(reference.notices)
        profile = None
        if record.type is CampaignType.PROFILE:
            profile = await self._load_profile(notices)

        form = self._new_form(reference, profile)
        form.load_record(record)
        if form.draft.currency not in reference.currencies:
            notices.append(f"Saved currency {form.draft.currency} is no longer offered")
        form.request_price()
        return self._register(form, notices)

    def get(self, session_id: str) -> DraftSession:
        self._evict_expired()
        try:
            return self._sessions[session_id]
        except KeyError:
            raise DraftNotFound(session_id) from None

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.form.estimator.cancel()

    async def submit(self, session_id: str) -> tuple[str, CampaignPayload]:
        session = self.get(session_id)
        form = session.form

        submitter = CampaignSubmitter(
            self._handoff_for(form),
            block_on_price_failure=self._settings.block_submit_on_price_failure,
        )
        reference, payload = await submitter.submit(form)

        self._sessions.pop(session_id, None)
        return reference, payload

    def describe(self, session: DraftSession) -> DraftState:
        form = session.form
        draft = form.draft
        return DraftState(
            session_id=session.id,
            campaign_id=form.campaign_id,
            status=form.status,
            rejection_reason=form.rejection_reason,
            target=draft.target,
            start_date=draft.start_date,
            min_start_date=form.min_start_date,
            total_days=draft.total_days,
            end_date=form.end_date,
            currency=draft.currency,
            price=form.price_summary(),
            errors=form.validate(),
            notices=list(session.notices),
        )

    def _handoff_for(self, form: CampaignForm) -> Handoff:
        if not form.is_existing:
            return self._checkout_store.hand_off

        campaign_id = form.campaign_id

        async def resubmit(payload: CampaignPayload) -> str:
            await self._client.update_campaign_record(campaign_id, payload)
            return campaign_id

        return resubmit

    def _new_form(self, reference: ReferenceData, profile: Profile | None) -> CampaignForm:
        estimator = PriceEstimator(
            self._client.get_price_quote,
            debounce_window=self._settings.price_debounce_window,
        )
        return CampaignForm(
            reference,
            estimator,
            default_currency=self._settings.default_currency,
            min_lead_days=self._settings.min_lead_days,
            today=self._today,
            profile=profile,
        )

    async def _load_profile(self, notices: list[str]) -> Profile | None:
        try:
            return await self._client.get_profile()
        except Exception as e:
            logger.warning(f"Failed to load operator profile: {e}")
            notices.append("Failed to load profile")
            return None

    def _register(self, form: CampaignForm, notices: list[str]) -> DraftSession:
        self._evict_expired()
        session = DraftSession(
            id=uuid.uuid4().hex, form=form, notices=notices, created_at=self._clock()
        )
        self._sessions[session.id] = session
        logger.info(
            f"Opened draft {session.id} "
            f"({'edit ' + form.campaign_id if form.is_existing else 'create'})"
        )
        return session

    def _evict_expired(self) -> None:
        """Drop sessions the dashboard abandoned without discarding them."""
        cutoff = self._clock() - self._settings.draft_session_ttl
        expired = [s for s in self._sessions.values() if s.created_at <= cutoff]
        for session in expired:
            del self._sessions[session.id]
            session.form.estimator.cancel()
        if expired:
            logger.info(f"Evicted {len(expired)} expired draft session(s)")
