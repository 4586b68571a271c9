"""mp_codes REST API — admin issuance, slot redemption, paid activation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_codes.application.schemas import (
    ActivateCodeRequest,
    CodeItem,
    CodeListResponse,
    CreateCodesRequest,
    IssueActivationCodeRequest,
    RedeemCodeRequest,
)
from src.mp_codes.application.service import CodeService
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, failure_json, success_response, with_request_id
from src.mp_gateway.auth.dependencies import get_current_user, require_admin
from src.mp_gateway.user.models import UserAccount
from src.mp_rules.domain.gate import assert_verified

router = APIRouter(prefix="/codes", tags=["codes"])

_service = CodeService()


@router.post("")
async def create_codes(
    body: CreateCodesRequest,
    admin: Annotated[UserAccount, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    codes = await _service.create_codes(
        db, body.count, body.kind.value, body.type.value, body.expires_at, created_by=admin.id
    )
    data = CodeListResponse(items=[CodeItem.from_domain(c) for c in codes])
    return with_request_id(success_response(data.model_dump()), request)


@router.get("")
async def list_codes(
    _admin: Annotated[UserAccount, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(100, ge=1, le=100),
) -> ApiResponse:
    codes = await _service.list_codes(db, limit)
    data = CodeListResponse(items=[CodeItem.from_domain(c) for c in codes])
    return with_request_id(success_response(data.model_dump()), request)


@router.post("/redeem", response_model=None)
async def redeem_slot_code(
    body: RedeemCodeRequest,
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    assert_verified(current_user)
    result = await _service.redeem_slot_code(
        db,
        current_user,
        body.code,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    if not result.ok:
        return failure_json(result, request)
    data = CodeItem.from_domain(result.unwrap())
    return with_request_id(success_response(data.model_dump()), request)


@router.post("/activation")
async def issue_activation_code(
    body: IssueActivationCodeRequest,
    admin: Annotated[UserAccount, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    code = await _service.issue_payment_activation_code(
        db,
        body.user_id,
        body.card_type.value,
        body.card_id,
        created_by=admin.id,
        expires_at=body.expires_at,
    )
    data = CodeItem.from_domain(code)
    return with_request_id(success_response(data.model_dump()), request)


@router.post("/activate", response_model=None)
async def activate_paid(
    body: ActivateCodeRequest,
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    assert_verified(current_user)
    result = await _service.consume_payment_activation_code(
        db, current_user.id, body.activation_code
    )
    if not result.ok:
        return failure_json(result, request)
    data = CodeItem.from_domain(result.unwrap())
    return with_request_id(success_response(data.model_dump()), request)
