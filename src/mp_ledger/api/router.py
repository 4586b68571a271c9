"""mp_ledger REST API — balance, history, admin grant/deduct, reconciliation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, failure_json, success_response, with_request_id
from src.mp_gateway.auth.dependencies import get_current_user, require_admin
from src.mp_gateway.user.models import UserAccount
from src.mp_ledger.application.schemas import (
    BalanceResponse,
    DeductRequest,
    GrantRequest,
    ReconcileResponse,
    TransactionItem,
    TransactionListResponse,
)
from src.mp_ledger.application.service import LedgerService

router = APIRouter(prefix="/alba", tags=["alba"])

_service = LedgerService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    request: Request,
) -> ApiResponse:
    data = BalanceResponse.from_domain(current_user)
    return with_request_id(success_response(data.model_dump()), request)


@router.get("/transactions")
async def list_transactions(
    current_user: Annotated[UserAccount, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(100, ge=1, le=100, description="Items (newest first)"),
) -> ApiResponse:
    txs = await _service.list_transactions(db, current_user.id, limit)
    data = TransactionListResponse(items=[TransactionItem.from_domain(t) for t in txs])
    return with_request_id(success_response(data.model_dump()), request)


@router.post("/grant", response_model=None)
async def grant(
    body: GrantRequest,
    admin: Annotated[UserAccount, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    meta = {"comment": body.comment} if body.comment else None
    result = await _service.grant_alba(
        db, body.user_id, body.amount, body.reason, actor_id=admin.id, meta=meta
    )
    if not result.ok:
        return failure_json(result, request)
    data = BalanceResponse.from_domain(result.unwrap())
    return with_request_id(success_response(data.model_dump()), request)


@router.post("/deduct", response_model=None)
async def deduct(
    body: DeductRequest,
    admin: Annotated[UserAccount, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    meta = {"comment": body.comment} if body.comment else None
    result = await _service.spend_alba(
        db, body.user_id, body.amount, body.reason, actor_id=admin.id, meta=meta
    )
    if not result.ok:
        return failure_json(result, request)
    data = BalanceResponse.from_domain(result.unwrap())
    return with_request_id(success_response(data.model_dump()), request)


@router.get("/reconcile/{user_id}", response_model=None)
async def reconcile(
    user_id: str,
    _admin: Annotated[UserAccount, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse | JSONResponse:
    result = await _service.reconcile(db, user_id)
    if not result.ok:
        return failure_json(result, request)
    data = ReconcileResponse.from_domain(result.unwrap())
    return with_request_id(success_response(data.model_dump()), request)
