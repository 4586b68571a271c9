"""mp_entitlement REST API — purchase and listing of entitlements."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, failure_json, success_response, with_request_id
from src.mp_entitlement.application.schemas import (
    EntitlementsByTypeResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from src.mp_entitlement.application.service import EntitlementService
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.models import UserAccount
from src.mp_rules.domain.gate import assert_verified

router = APIRouter(prefix="/entitlements", tags=["entitlements"])

_service = EntitlementService()


@router.post("/purchase", response_model=None)
async def purchase(
    body: PurchaseRequest,
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    assert_verified(current_user)
    result = await _service.purchase_entitlement(
        db, current_user.id, body.type, body.idempotency_key
    )
    if not result.ok:
        return failure_json(result, request)
    data = PurchaseResponse.from_domain(result.unwrap(), result.replayed)
    return with_request_id(success_response(data.model_dump(), result.message), request)


@router.get("")
async def list_available(
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    entitlements = await _service.get_available_entitlements(db, current_user.id)
    data = EntitlementsByTypeResponse.from_domain(entitlements)
    return with_request_id(success_response(data.model_dump()), request)
