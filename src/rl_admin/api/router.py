"""Admin RipLimit REST API. Every endpoint requires the admin role."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request

from src.rl_admin.application.schemas import AdjustRequest, UnpaidAuctionRequest
from src.rl_admin.application.service import AdminService
from src.rl_common.auth import Principal
from src.rl_common.response import ApiResponse, success_response
from src.rl_gateway.auth.dependencies import get_current_principal
from src.rl_ledger.domain.repository import LedgerStoreProtocol
from src.rl_ledger.infrastructure.store_factory import get_ledger_store

router = APIRouter(prefix="/admin/riplimit", tags=["admin"])

UserId = Annotated[str, Path(min_length=1, max_length=64)]

# Ten years
MAX_STALE_MINUTES = 10 * 365 * 24 * 60


def _service(
    store: Annotated[LedgerStoreProtocol, Depends(get_ledger_store)],
) -> AdminService:
    return AdminService(store)


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/stats")
async def get_stats(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_stats(principal)
    return _respond(request, data.model_dump())


@router.get("/holds")
async def list_stale_holds(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
    older_than_minutes: int = Query(
        0, ge=0, le=MAX_STALE_MINUTES, description="Only holds older than this"
    ),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    data = await service.list_stale_holds(principal, older_than_minutes, limit)
    return _respond(request, data.model_dump())


@router.get("/users/{user_id}")
async def get_account_detail(
    user_id: UserId,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_account_detail(principal, user_id)
    return _respond(request, data.model_dump())


@router.get("/users/{user_id}/transactions")
async def list_user_transactions(
    user_id: UserId,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
    tx_type: str | None = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await service.list_user_transactions(principal, user_id, tx_type, page, page_size)
    return _respond(request, data.model_dump())


@router.get("/users/{user_id}/verify")
async def verify_account(
    user_id: UserId,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.verify_account(principal, user_id)
    return _respond(request, data.model_dump())


@router.post("/users/{user_id}/adjust")
async def adjust_balance(
    user_id: UserId,
    body: AdjustRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.adjust(principal, user_id, body.delta, body.reason)
    return _respond(request, data.model_dump())


@router.post("/users/{user_id}/unpaid-auctions")
async def mark_auction_unpaid(
    user_id: UserId,
    body: UnpaidAuctionRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.mark_auction_unpaid(principal, user_id, body.auction_id)
    return _respond(request, data.model_dump())


@router.post("/users/{user_id}/strikes")
async def add_strike(
    user_id: UserId,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[AdminService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.add_strike(principal, user_id)
    return _respond(request, data.model_dump())
