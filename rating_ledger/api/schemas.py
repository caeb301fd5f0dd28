"""
Pydantic schemas for API requests

Request bodies use the camelCase field names of the public JSON schema.
Numeric fields are left loosely typed; the ledger coerces them.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class LedgerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RatingRequest(LedgerRequest):
    user_id: str = Field(..., alias="userId", min_length=1)
    commission: Any = None
    stars: Any = None
    hotel: Any = None


class WithdrawRequest(LedgerRequest):
    user_id: str = Field(..., alias="userId", min_length=1)
    amount: Any = Field(..., description="Whole currency units")


class BankDetailsRequest(LedgerRequest):
    user_id: str = Field(..., alias="userId", min_length=1)
    bank_name: Optional[str] = Field(None, alias="bankName")
    account_holder: Optional[str] = Field(None, alias="accountHolder")
    account_number: Optional[str] = Field(None, alias="accountNumber")
    ifsc: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class AdjustBalanceRequest(LedgerRequest):
    user_id: str = Field(..., alias="userId", min_length=1)
    amount: Any = Field(..., description="Whole currency units")
    direction: str = Field("add", description="add or cut")


class CanRateRequest(LedgerRequest):
    user_id: str = Field(..., alias="userId", min_length=1)
    can_rate: bool = Field(..., alias="canRate")


class ProcessWithdrawRequest(LedgerRequest):
    user_id: str = Field(..., alias="userId", min_length=1)
