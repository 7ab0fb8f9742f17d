# chefscript/app/routers/tokens.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from chefscript.app.deps import (
    CurrentUser,
    get_current_user,
    get_token_ledger,
    get_token_purchase_service,
)
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.domain.pricing import TOKEN_PACKAGES
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.tokens import (
    BalanceResponse,
    CaptureResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    PackageOut,
)
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.app.services.token_purchase import TokenPurchaseService
from chefscript.services.errors import ServiceError

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: CurrentUser = Depends(get_current_user),
    ledger: TokenLedger = Depends(get_token_ledger),
) -> BalanceResponse:
    try:
        balance = await run_in_threadpool(ledger.get_balance, user.id)
    except ChefScriptError as exc:
        raise to_http_exception(exc) from exc
    return BalanceResponse(tokens=balance)


@router.get("/packages", response_model=list[PackageOut])
async def list_packages() -> list[PackageOut]:
    return [
        PackageOut(tokens=package.tokens, price=package.price, description=package.description)
        for package in TOKEN_PACKAGES
    ]


@router.post("/orders", response_model=CreateOrderResponse)
async def create_order(
    body: CreateOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    purchases: TokenPurchaseService = Depends(get_token_purchase_service),
) -> CreateOrderResponse:
    try:
        order_id, package = await purchases.create_order(user.id, body.tokens)
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return CreateOrderResponse(
        orderId=order_id,
        package=PackageOut(tokens=package.tokens, price=package.price, description=package.description),
    )


@router.post("/orders/{order_id}/capture", response_model=CaptureResponse)
async def capture_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    purchases: TokenPurchaseService = Depends(get_token_purchase_service),
) -> CaptureResponse:
    try:
        package, balance = await purchases.capture(user.id, order_id)
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return CaptureResponse(orderId=order_id, tokensAdded=package.tokens, balance=balance)
