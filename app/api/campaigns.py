import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.core.errors import (
    CampaignError,
    CampaignValidationError,
    DraftNotFound,
    MarketplaceError,
    TerminalStateViolation,
)
from app.core.settings import Settings, get_settings
from app.dependencies import get_draft_service
from app.models.campaign import (
    DraftOpenRequest,
    DraftState,
    DraftUpdateRequest,
    PriceSummary,
    ScheduleResponse,
    SubmitResponse,
)
from app.services.draft_service import CampaignDraftService
from app.services.schedule import (
    MAX_TOTAL_DAYS,
    MIN_TOTAL_DAYS,
    compute_end_date,
    compute_min_start_date,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, DraftNotFound):
        return HTTPException(status_code=404, detail=f"Draft {e.args[0]} not found")
    if isinstance(e, CampaignValidationError):
        return HTTPException(
            status_code=422, detail={"code": e.code, "errors": e.errors}
        )
    if isinstance(e, TerminalStateViolation):
        return HTTPException(
            status_code=409, detail={"code": e.code, "message": e.message}
        )
    if isinstance(e, CampaignError):
        return HTTPException(
            status_code=409, detail={"code": e.code, "message": e.message}
        )
    if isinstance(e, MarketplaceError):
        status = 404 if e.status_code == 404 else 502
        return HTTPException(status_code=status, detail=str(e))

    logger.exception("Campaign draft endpoint failed")
    return HTTPException(status_code=500, detail=f"Internal server error: {e}")


@router.post("/campaign-drafts", response_model=DraftState, status_code=201)
async def open_draft(
    request: DraftOpenRequest | None = None,
    service: CampaignDraftService = Depends(get_draft_service),
) -> DraftState:
    """
    Start a draft session.

    Without ``campaign_id`` an empty service campaign is created; with it the
    stored campaign is loaded for editing (approved campaigns are refused).
    """
    try:
        if request is not None and request.campaign_id:
            session = await service.open_edit(request.campaign_id)
        else:
            session = await service.open_create()
        return service.describe(session)
    except Exception as e:
        raise _to_http(e)


@router.get("/campaign-drafts/{session_id}", response_model=DraftState)
async def get_draft(
    session_id: str,
    service: CampaignDraftService = Depends(get_draft_service),
) -> DraftState:
    try:
        return service.describe(service.get(session_id))
    except Exception as e:
        raise _to_http(e)


@router.patch("/campaign-drafts/{session_id}", response_model=DraftState)
async def update_draft(
    session_id: str,
    request: DraftUpdateRequest,
    service: CampaignDraftService = Depends(get_draft_service),
) -> DraftState:
    try:
        session = service.get(session_id)
        session.form.update(**request.model_dump(exclude_unset=True))
        return service.describe(session)
    except Exception as e:
        raise _to_http(e)


@router.post(
    "/campaign-drafts/{session_id}/services/{service_id}",
    response_model=DraftState,
)
async def toggle_bundled_service(
    session_id: str,
    service_id: str,
    service: CampaignDraftService = Depends(get_draft_service),
) -> DraftState:
    try:
        session = service.get(session_id)
        session.form.toggle_service(service_id)
        return service.describe(session)
    except Exception as e:
        raise _to_http(e)


@router.get("/campaign-drafts/{session_id}/price", response_model=PriceSummary)
async def get_price(
    session_id: str,
    wait: bool = False,
    service: CampaignDraftService = Depends(get_draft_service),
) -> PriceSummary:
    try:
        form = service.get(session_id).form
        if wait:
            await form.estimator.settle()
        return form.price_summary()
    except Exception as e:
        raise _to_http(e)


@router.post("/campaign-drafts/{session_id}/submit", response_model=SubmitResponse)
async def submit_draft(
    session_id: str,
    service: CampaignDraftService = Depends(get_draft_service),
) -> SubmitResponse:
    try:
        reference, payload = await service.submit(session_id)
        return SubmitResponse(reference=reference, payload=payload.to_wire())
    except Exception as e:
        raise _to_http(e)


@router.delete("/campaign-drafts/{session_id}", status_code=204)
async def discard_draft(
    session_id: str,
    service: CampaignDraftService = Depends(get_draft_service),
) -> Response:
    service.discard(session_id)
    return Response(status_code=204)


@router.get("/schedule/end-date", response_model=ScheduleResponse)
def schedule_preview(
    start_date: date,
    total_days: int = Query(ge=MIN_TOTAL_DAYS, le=MAX_TOTAL_DAYS),
    settings: Settings = Depends(get_settings),
) -> ScheduleResponse:
    return ScheduleResponse(
        start_date=start_date,
        total_days=total_days,
        end_date=compute_end_date(start_date, total_days),
        min_start_date=compute_min_start_date(date.today(), settings.min_lead_days),
    )
