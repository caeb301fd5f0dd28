"""
Account Records Module

User accounts, their append-only ledger history, payout bank details and the
platform-wide feature switches. Records serialize to the camelCase JSON layout
used by the stored state and the REST responses.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import math
import re


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_int(value: Any) -> int:
    """
    Permissive integer parsing for loosely-typed input.

    Ints pass through, floats truncate toward zero, strings yield their
    leading integer ("12abc" -> 12). Anything else, including booleans, None
    and non-numeric strings, becomes 0. Stored records go through the same
    rule since older data files hold null where a number was expected.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else 0
    return 0


class LedgerEntryType(Enum):
    """Kinds of balance-affecting events"""
    RATING = "rating"
    WITHDRAW_REQUEST = "withdraw_request"
    WITHDRAW_PROCESSED = "withdraw_processed"
    ADMIN_ADD = "admin_add"
    ADMIN_CUT = "admin_cut"


class AdjustDirection(Enum):
    """Direction of an admin balance adjustment"""
    ADD = "add"
    CUT = "cut"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class LedgerEntry:
    """
    Immutable audit record of one balance-affecting event
    """
    entry_type: LedgerEntryType
    amount: int
    time: str = field(default_factory=utc_timestamp)
    hotel: Optional[str] = None   # rating only
    stars: Optional[int] = None   # rating only
    note: Optional[str] = None    # admin-initiated entries

    @classmethod
    def rating(cls, amount: int, hotel: str, stars: int) -> 'LedgerEntry':
        return cls(LedgerEntryType.RATING, amount, hotel=hotel, stars=stars)

    @classmethod
    def withdraw_request(cls, amount: int) -> 'LedgerEntry':
        return cls(LedgerEntryType.WITHDRAW_REQUEST, amount)

    @classmethod
    def withdraw_processed(cls, amount: int) -> 'LedgerEntry':
        return cls(LedgerEntryType.WITHDRAW_PROCESSED, amount, note="Processed by admin")

    @classmethod
    def admin_add(cls, amount: int) -> 'LedgerEntry':
        return cls(LedgerEntryType.ADMIN_ADD, amount, note="Added by admin")

    @classmethod
    def admin_cut(cls, amount: int) -> 'LedgerEntry':
        return cls(LedgerEntryType.ADMIN_CUT, amount, note="Cut by admin")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting fields that don't apply to this kind"""
        result = {
            "time": self.time,
            "type": self.entry_type.value,
            "amount": self.amount,
        }
        if self.entry_type == LedgerEntryType.RATING:
            result["hotel"] = self.hotel
            result["stars"] = self.stars
        if self.note is not None:
            result["note"] = self.note
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerEntry':
        return cls(
            entry_type=LedgerEntryType(data["type"]),
            amount=coerce_int(data.get("amount")),
            time=data.get("time", ""),
            hotel=data.get("hotel"),
            stars=coerce_int(data["stars"]) if "stars" in data else None,
            note=data.get("note"),
        )


@dataclass
class BankDetails:
    """Payout destination for withdrawals"""
    bank_name: Optional[str] = None
    account_holder: Optional[str] = None
    account_number: Optional[str] = None
    ifsc: Optional[str] = None  # Routing code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bankName": self.bank_name,
            "accountHolder": self.account_holder,
            "accountNumber": self.account_number,
            "ifsc": self.ifsc,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['BankDetails']:
        # Older stores saved an empty object for "no details"
        if not data or not any(data.values()):
            return None
        return cls(
            bank_name=data.get("bankName"),
            account_holder=data.get("accountHolder"),
            account_number=data.get("accountNumber"),
            ifsc=data.get("ifsc"),
        )


@dataclass
class UserAccount:
    """
    Per-user earnings account, created lazily on first reference
    """
    user_id: str
    balance: int
    total_earned: int = 0
    ratings_done: int = 0
    pending_withdraw: int = 0
    can_rate: bool = True
    bank_details: Optional[BankDetails] = None
    history: List[LedgerEntry] = field(default_factory=list)

    @classmethod
    def new(cls, user_id: str, starting_balance: int) -> 'UserAccount':
        return cls(user_id=user_id, balance=starting_balance)

    def record(self, entry: LedgerEntry) -> None:
        """Append an entry to the history"""
        self.history.append(entry)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balance": self.balance,
            "totalEarned": self.total_earned,
            "ratingsDone": self.ratings_done,
            "pendingWithdraw": self.pending_withdraw,
            "canRate": self.can_rate,
            "bankDetails": self.bank_details.to_dict() if self.bank_details else None,
            "history": [entry.to_dict() for entry in self.history],
        }

    @classmethod
    def from_dict(cls, user_id: str, data: Dict[str, Any], starting_balance: int = 0) -> 'UserAccount':
        # "ratingCount" is the legacy name of the counter
        ratings_done = data.get("ratingsDone", data.get("ratingCount"))
        balance = data.get("balance", starting_balance)
        return cls(
            user_id=user_id,
            balance=coerce_int(balance),
            total_earned=coerce_int(data.get("totalEarned")),
            ratings_done=coerce_int(ratings_done),
            pending_withdraw=coerce_int(data.get("pendingWithdraw")),
            can_rate=bool(data.get("canRate", True)),
            bank_details=BankDetails.from_dict(data.get("bankDetails")),
            history=[LedgerEntry.from_dict(h) for h in data.get("history") or []],
        )


@dataclass
class PlatformSettings:
    """Global feature switches, independent of per-user can_rate"""
    rating_enabled: bool = True
    withdraw_enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ratingEnabled": self.rating_enabled,
            "withdrawEnabled": self.withdraw_enabled,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PlatformSettings':
        data = data or {}
        return cls(
            rating_enabled=bool(data.get("ratingEnabled", True)),
            withdraw_enabled=bool(data.get("withdrawEnabled", True)),
        )
