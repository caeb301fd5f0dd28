"""
Admin endpoints (login, account management, withdraw settlement, switches)
"""

from fastapi import APIRouter, Depends, Header
from typing import Optional

from .deps import LedgerSystem, get_ledger_system, require_admin
from .responses import failure_response
from .schemas import (
    AdjustBalanceRequest, CanRateRequest, LoginRequest, ProcessWithdrawRequest
)


router = APIRouter()


@router.post("/login")
async def login(
    request: LoginRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Authenticate the admin and return a token for the X-Admin-Token header"""
    token = system.authenticator.login(request.username, request.password)
    return {"success": True, "token": token}


@router.post("/logout")
async def logout(
    x_admin_token: Optional[str] = Header(None),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Invalidate the current admin token"""
    system.authenticator.logout(x_admin_token)
    return {"success": True}


@router.get("/users", dependencies=[Depends(require_admin)])
async def list_users(system: LedgerSystem = Depends(get_ledger_system)):
    """All accounts keyed by user id"""
    accounts = system.ledger.list_accounts()
    return {
        "success": True,
        "users": {account.user_id: account.to_dict() for account in accounts}
    }


@router.post("/balance", dependencies=[Depends(require_admin)])
async def adjust_balance(
    request: AdjustBalanceRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Add to or cut from an account balance"""
    result = system.ledger.admin_adjust_balance(
        request.user_id, request.amount, request.direction
    )
    if not result.success:
        return failure_response(result)
    return {"success": True, "user": result.account.to_dict()}


@router.post("/can-rate", dependencies=[Depends(require_admin)])
async def set_can_rate(
    request: CanRateRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Enable or disable rating for one account"""
    result = system.ledger.set_can_rate(request.user_id, request.can_rate)
    return {"success": True, "user": result.account.to_dict()}


@router.post("/reset-ratings", dependencies=[Depends(require_admin)])
async def reset_ratings(system: LedgerSystem = Depends(get_ledger_system)):
    """Reset the daily rating counter of every account"""
    count = system.ledger.reset_all_rating_counts()
    return {"success": True, "accountsReset": count}


@router.get("/ratings", dependencies=[Depends(require_admin)])
async def list_ratings(system: LedgerSystem = Depends(get_ledger_system)):
    """Ratings and admin credits across all accounts"""
    items = system.ledger.list_rating_history()
    return {"success": True, "ratings": [item.to_dict() for item in items]}


@router.get("/withdrawals", dependencies=[Depends(require_admin)])
async def list_withdrawals(system: LedgerSystem = Depends(get_ledger_system)):
    """Accounts with an unsettled withdraw request"""
    pending = system.ledger.list_pending_withdraws()
    return {
        "success": True,
        "withdraws": [
            {
                "userId": item.user_id,
                "pendingWithdraw": item.amount,
                "bank": item.bank_details.to_dict() if item.bank_details else None
            }
            for item in pending
        ]
    }


@router.post("/withdrawals/process", dependencies=[Depends(require_admin)])
async def process_withdrawal(
    request: ProcessWithdrawRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Mark an account's pending withdraw as paid out"""
    result = system.ledger.process_withdraw(request.user_id)
    if not result.success:
        return failure_response(result)
    return {"success": True, "user": result.account.to_dict()}


@router.get("/settings", dependencies=[Depends(require_admin)])
async def get_settings(system: LedgerSystem = Depends(get_ledger_system)):
    """Current global switches"""
    return {"success": True, **system.ledger.get_settings().to_dict()}


@router.post("/settings/toggle-rating", dependencies=[Depends(require_admin)])
async def toggle_rating(system: LedgerSystem = Depends(get_ledger_system)):
    """Flip the global rating switch"""
    return {"success": True, **system.ledger.toggle_rating_enabled().to_dict()}


@router.post("/settings/toggle-withdraw", dependencies=[Depends(require_admin)])
async def toggle_withdraw(system: LedgerSystem = Depends(get_ledger_system)):
    """Flip the global withdraw switch"""
    return {"success": True, **system.ledger.toggle_withdraw_enabled().to_dict()}


@router.get("/stats", dependencies=[Depends(require_admin)])
async def get_stats(system: LedgerSystem = Depends(get_ledger_system)):
    """Platform totals for the dashboard"""
    return {"success": True, **system.ledger.get_stats()}
