"""
Error Taxonomy Module

Business-rule rejections are reported as values (see LedgerResult in the
ledger module); only storage faults and admin authentication failures are
raised.
"""

from enum import Enum


class LedgerErrorKind(Enum):
    """Recoverable business-rule rejections"""
    RATINGS_DISABLED_GLOBALLY = "ratings_disabled_globally"
    RATINGS_DISABLED_FOR_USER = "ratings_disabled_for_user"
    DAILY_CAP_REACHED = "daily_cap_reached"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_EARNINGS = "insufficient_earnings"
    WITHDRAW_DISABLED_GLOBALLY = "withdraw_disabled_globally"
    NO_PENDING_WITHDRAW = "no_pending_withdraw"
    ACCOUNT_NOT_FOUND = "account_not_found"
    INVALID_DIRECTION = "invalid_direction"

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_DEFAULT_MESSAGES = {
    LedgerErrorKind.RATINGS_DISABLED_GLOBALLY: "Rating is currently disabled",
    LedgerErrorKind.RATINGS_DISABLED_FOR_USER: "Rating disabled by admin",
    LedgerErrorKind.DAILY_CAP_REACHED: "Max {cap} ratings done today",
    LedgerErrorKind.INSUFFICIENT_BALANCE: "Balance must be at least {floor} to give ratings",
    LedgerErrorKind.INVALID_AMOUNT: "Invalid amount",
    LedgerErrorKind.INSUFFICIENT_EARNINGS: "Not enough earnings",
    LedgerErrorKind.WITHDRAW_DISABLED_GLOBALLY: "Withdrawals are currently disabled",
    LedgerErrorKind.NO_PENDING_WITHDRAW: "No pending withdraw for user",
    LedgerErrorKind.ACCOUNT_NOT_FOUND: "User not found",
    LedgerErrorKind.INVALID_DIRECTION: "Direction must be 'add' or 'cut'",
}


class StorageUnavailable(Exception):
    """Raised when the storage backend cannot be read or written"""


class AuthenticationError(ValueError):
    """Raised for invalid admin credentials or tokens"""
