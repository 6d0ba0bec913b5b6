"""rl_ledger REST API — balance, history and holds. All require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.rl_common.auth import Principal
from src.rl_common.response import ApiResponse, success_response
from src.rl_gateway.auth.dependencies import get_current_principal
from src.rl_ledger.application.schemas import (
    PlaceHoldRequest,
    PurchaseRequest,
    ResolveHoldRequest,
)
from src.rl_ledger.application.service import LedgerApplicationService
from src.rl_ledger.domain.repository import LedgerStoreProtocol
from src.rl_ledger.infrastructure.store_factory import get_ledger_store

router = APIRouter(prefix="/riplimit", tags=["riplimit"])
purchase_router = APIRouter(prefix="/admin/riplimit", tags=["admin"])


def _service(
    store: Annotated[LedgerStoreProtocol, Depends(get_ledger_store)],
) -> LedgerApplicationService:
    return LedgerApplicationService(store)


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/balance")
async def get_balance(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[LedgerApplicationService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_balance_details(principal.user_id)
    return _respond(request, data.model_dump())


@router.get("/transactions")
async def list_transactions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[LedgerApplicationService, Depends(_service)],
    request: Request,
    tx_type: str | None = Query(None, alias="type", description="Filter by transaction type"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await service.list_transactions(principal.user_id, tx_type, page, page_size)
    return _respond(request, data.model_dump())


@router.get("/holds")
async def list_holds(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[LedgerApplicationService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.list_open_holds(principal.user_id)
    return _respond(request, data.model_dump())


@router.post("/holds")
async def place_hold(
    body: PlaceHoldRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[LedgerApplicationService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.place_hold(
        principal.user_id, body.bid_id, body.amount, body.auction_id
    )
    return _respond(request, data.model_dump())


@router.post("/holds/{bid_id}/resolve")
async def resolve_hold(
    bid_id: str,
    body: ResolveHoldRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[LedgerApplicationService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.resolve_hold(principal, bid_id, body.outcome)
    return _respond(request, data.model_dump())


@purchase_router.post("/purchases")
async def credit_purchase(
    body: PurchaseRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[LedgerApplicationService, Depends(_service)],
    request: Request,
) -> ApiResponse:
    data = await service.credit_purchase(
        principal, body.user_id, body.amount, body.reference_id, body.description
    )
    return _respond(request, data.model_dump())
