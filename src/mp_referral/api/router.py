"""mp_referral REST API — referrer binding and referral statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, failure_json, success_response, with_request_id
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.models import UserAccount
from src.mp_referral.application.schemas import (
    BindReferralRequest,
    BindReferralResponse,
    ReferralStatsResponse,
)
from src.mp_referral.application.service import ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])

_service = ReferralService()


@router.post("/bind", response_model=None)
async def bind_referrer(
    body: BindReferralRequest,
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    result = await _service.set_referral_binding(db, current_user.id, str(body.referrer_id))
    if not result.ok:
        return failure_json(result, request)
    # an already-verified user is eligible right away
    bonus_paid = await _service.grant_referral_bonus_if_eligible(db, current_user.id)
    data = BindReferralResponse.from_domain(result.unwrap(), bonus_paid)
    return with_request_id(success_response(data.model_dump()), request)


@router.get("/stats")
async def referral_stats(
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    stats = await _service.get_referral_stats(db, current_user.id)
    data = ReferralStatsResponse.from_domain(stats)
    return with_request_id(success_response(data.model_dump()), request)
