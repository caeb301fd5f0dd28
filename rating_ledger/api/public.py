"""
Public endpoints: account load, ratings, withdraw requests, bank details
"""

from fastapi import APIRouter, Depends

from .deps import LedgerSystem, get_ledger_system
from .responses import failure_response
from .schemas import BankDetailsRequest, RatingRequest, WithdrawRequest


router = APIRouter()


@router.get("/users/{user_id}")
async def load_user(
    user_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get an account, creating it on first reference"""
    account = system.ledger.get_or_create_account(user_id)
    return {"success": True, "data": account.to_dict()}


@router.post("/ratings")
async def submit_rating(
    request: RatingRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Submit a rating and credit its commission"""
    result = system.ledger.submit_rating(
        request.user_id,
        commission=request.commission,
        stars=request.stars,
        hotel=request.hotel
    )
    if not result.success:
        return failure_response(result)

    account = result.account
    return {
        "success": True,
        "newTotalEarned": account.total_earned,
        "newRatingsDone": account.ratings_done,
        "data": account.to_dict()
    }


@router.post("/withdrawals")
async def request_withdraw(
    request: WithdrawRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Request a payout of earned commission"""
    result = system.ledger.request_withdraw(request.user_id, request.amount)
    if not result.success:
        return failure_response(result)
    return {"success": True, "data": result.account.to_dict()}


@router.post("/bank")
async def save_bank_details(
    request: BankDetailsRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Save payout bank details"""
    system.ledger.save_bank_details(
        request.user_id,
        bank_name=request.bank_name,
        account_holder=request.account_holder,
        account_number=request.account_number,
        ifsc=request.ifsc
    )
    return {"success": True}
