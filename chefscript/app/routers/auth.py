# chefscript/app/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from chefscript.app.deps import CurrentUser, get_current_user, get_token_ledger
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.tokens import AccountResponse
from chefscript.app.services.token_ledger import TokenLedger

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=AccountResponse)
async def me(
    user: CurrentUser = Depends(get_current_user),
    ledger: TokenLedger = Depends(get_token_ledger),
) -> AccountResponse:
    """The signed-in account with its current token balance."""
    try:
        tokens = await run_in_threadpool(ledger.get_balance, user.id)
    except ChefScriptError as exc:
        raise to_http_exception(exc) from exc
    return AccountResponse(id=user.id, email=user.email, name=user.name, tokens=tokens)
