"""
Account Ledger Module

Applies the platform's business rules to user accounts: rating commission,
withdraw requests and settlement, admin balance adjustments and the global
feature switches. Every operation is a single read-modify-write of the stored
state, serialized by the storage lock so concurrent requests behave as if
dispatched one at a time.

Rule violations never raise: they come back as a failed LedgerResult carrying
a LedgerErrorKind. Only StorageUnavailable propagates.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .config import RatingLedgerConfig, get_config
from .errors import LedgerErrorKind
from .models import (
    AdjustDirection, BankDetails, LedgerEntry, LedgerEntryType,
    PlatformSettings, UserAccount, coerce_int
)
from .storage import StorageInterface
from .logging_config import get_logger, log_action


logger = get_logger(__name__)


@dataclass
class LedgerResult:
    """Outcome of a ledger operation"""
    success: bool
    account: Optional[UserAccount] = None
    error: Optional[LedgerErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, account: Optional[UserAccount] = None) -> 'LedgerResult':
        return cls(success=True, account=account)

    @classmethod
    def fail(cls, error: LedgerErrorKind, message: Optional[str] = None,
             account: Optional[UserAccount] = None) -> 'LedgerResult':
        return cls(success=False, account=account, error=error,
                   message=message or error.default_message)


@dataclass(frozen=True)
class PendingWithdraw:
    """An account with an unsettled withdraw request"""
    user_id: str
    amount: int
    bank_details: Optional[BankDetails]


@dataclass(frozen=True)
class RatingHistoryItem:
    """A rating or admin credit tagged with its owning account"""
    user_id: str
    entry: LedgerEntry

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, **self.entry.to_dict()}


class AccountLedger:
    """
    Business-rule engine over a storage backend
    """

    def __init__(self, storage: StorageInterface, config: Optional[RatingLedgerConfig] = None):
        self.storage = storage
        self.config = config or get_config()

    # Account access

    def get_or_create_account(self, user_id: str) -> UserAccount:
        """Return the account for user_id, creating and persisting it if missing"""
        with self.storage.atomic():
            state = self.storage.load()
            account, created = self._account(state, user_id)
            if created:
                self._commit(state, account)
            return account

    def get_account(self, user_id: str) -> Optional[UserAccount]:
        """Return the account for user_id without creating it"""
        with self.storage.atomic():
            data = self.storage.load()["accounts"].get(user_id)
            if data is None:
                return None
            return UserAccount.from_dict(user_id, data, self.config.starting_balance)

    def list_accounts(self) -> List[UserAccount]:
        """All known accounts in iteration order"""
        with self.storage.atomic():
            return self._all_accounts(self.storage.load())

    # Public operations

    def submit_rating(self, user_id: str, commission: Any, stars: Any = None,
                      hotel: Any = None) -> LedgerResult:
        """
        Credit commission for one rating.

        Preconditions are checked in order and the first failure wins:
        global rating switch, per-user can_rate, daily cap, balance floor.
        A negative commission is then rejected as INVALID_AMOUNT; a
        non-numeric one coerces to 0 and still counts as a rating.
        """
        with self.storage.atomic():
            state = self.storage.load()
            account, created = self._account(state, user_id)
            settings = PlatformSettings.from_dict(state["settings"])
            amount = coerce_int(commission)

            error = None
            message = None
            if not settings.rating_enabled:
                error = LedgerErrorKind.RATINGS_DISABLED_GLOBALLY
            elif not account.can_rate:
                error = LedgerErrorKind.RATINGS_DISABLED_FOR_USER
            elif account.ratings_done >= self.config.daily_rating_cap:
                error = LedgerErrorKind.DAILY_CAP_REACHED
                message = error.default_message.format(cap=self.config.daily_rating_cap)
            elif account.balance < self.config.rating_balance_floor:
                error = LedgerErrorKind.INSUFFICIENT_BALANCE
                message = error.default_message.format(floor=self.config.rating_balance_floor)
            elif amount < 0:
                error = LedgerErrorKind.INVALID_AMOUNT

            if error:
                return self._reject(state, account, created, error, message, "rating")

            account.total_earned += amount
            account.balance += amount
            account.ratings_done += 1
            label = "Unknown" if hotel is None or hotel == "" else str(hotel)
            account.record(LedgerEntry.rating(amount, label, coerce_int(stars)))
            self._commit(state, account)

            log_action(
                logger, "info", "Rating recorded",
                user_id=user_id, action="rating", resource="account",
                amount=amount, balance=account.balance,
                details={"ratings_done": account.ratings_done}
            )
            return LedgerResult.ok(account)

    def request_withdraw(self, user_id: str, amount: Any) -> LedgerResult:
        """Move earnings into the pending-withdraw bucket for admin settlement"""
        with self.storage.atomic():
            state = self.storage.load()
            account, created = self._account(state, user_id)
            settings = PlatformSettings.from_dict(state["settings"])
            value = coerce_int(amount)

            error = None
            if value <= 0:
                error = LedgerErrorKind.INVALID_AMOUNT
            elif value > account.total_earned:
                error = LedgerErrorKind.INSUFFICIENT_EARNINGS
            elif self.config.enforce_withdraw_toggle and not settings.withdraw_enabled:
                error = LedgerErrorKind.WITHDRAW_DISABLED_GLOBALLY

            if error:
                return self._reject(state, account, created, error, None, "withdraw_request")

            account.total_earned -= value
            account.pending_withdraw += value
            account.record(LedgerEntry.withdraw_request(value))
            self._commit(state, account)

            log_action(
                logger, "info", "Withdraw requested",
                user_id=user_id, action="withdraw_request", resource="account",
                amount=value, details={"pending_withdraw": account.pending_withdraw}
            )
            return LedgerResult.ok(account)

    def save_bank_details(self, user_id: str, bank_name: Optional[str] = None,
                          account_holder: Optional[str] = None,
                          account_number: Optional[str] = None,
                          ifsc: Optional[str] = None) -> LedgerResult:
        """Replace the payout destination for an account"""
        with self.storage.atomic():
            state = self.storage.load()
            account, _ = self._account(state, user_id)
            account.bank_details = BankDetails(
                bank_name=bank_name,
                account_holder=account_holder,
                account_number=account_number,
                ifsc=ifsc,
            )
            self._commit(state, account)
            log_action(logger, "info", "Bank details saved",
                       user_id=user_id, action="bank_details", resource="account")
            return LedgerResult.ok(account)

    # Admin operations

    def process_withdraw(self, user_id: str) -> LedgerResult:
        """Settle the whole pending amount of an existing account"""
        with self.storage.atomic():
            state = self.storage.load()
            if user_id not in state["accounts"]:
                return LedgerResult.fail(LedgerErrorKind.ACCOUNT_NOT_FOUND)

            account, _ = self._account(state, user_id)
            amount = account.pending_withdraw
            if amount <= 0:
                return LedgerResult.fail(LedgerErrorKind.NO_PENDING_WITHDRAW, account=account)

            account.record(LedgerEntry.withdraw_processed(amount))
            account.pending_withdraw = 0
            self._commit(state, account)

            log_action(
                logger, "info", "Withdraw processed",
                user_id=user_id, action="withdraw_processed", resource="account",
                amount=amount
            )
            return LedgerResult.ok(account)

    def admin_adjust_balance(self, user_id: str, amount: Any, direction: Any) -> LedgerResult:
        """
        Credit or debit an account on behalf of an admin.

        "add" raises both balance and total earned; "cut" lowers balance only,
        clamped at zero, and records the amount actually removed.
        """
        with self.storage.atomic():
            state = self.storage.load()
            account, created = self._account(state, user_id)
            value = coerce_int(amount)
            try:
                adjust = AdjustDirection(direction)
            except ValueError:
                return self._reject(state, account, created,
                                    LedgerErrorKind.INVALID_DIRECTION, None, "admin_adjust")
            if value <= 0:
                return self._reject(state, account, created,
                                    LedgerErrorKind.INVALID_AMOUNT, None, "admin_adjust")

            if adjust == AdjustDirection.ADD:
                account.balance += value
                account.total_earned += value
                account.record(LedgerEntry.admin_add(value))
            else:
                removed = min(value, account.balance)
                account.balance -= removed
                account.record(LedgerEntry.admin_cut(removed))
            self._commit(state, account)

            log_action(
                logger, "info", "Balance adjusted by admin",
                user_id=user_id, action=f"admin_{adjust.value}", resource="account",
                amount=value, balance=account.balance
            )
            return LedgerResult.ok(account)

    def set_can_rate(self, user_id: str, can_rate: bool) -> LedgerResult:
        """Enable or disable rating for a single account"""
        with self.storage.atomic():
            state = self.storage.load()
            account, _ = self._account(state, user_id)
            account.can_rate = bool(can_rate)
            self._commit(state, account)
            log_action(logger, "info", "Per-user rating switch changed",
                       user_id=user_id, action="set_can_rate", resource="account",
                       details={"can_rate": account.can_rate})
            return LedgerResult.ok(account)

    def get_settings(self) -> PlatformSettings:
        with self.storage.atomic():
            return PlatformSettings.from_dict(self.storage.load()["settings"])

    def toggle_rating_enabled(self) -> PlatformSettings:
        """Flip the global rating switch"""
        return self._toggle("rating_enabled")

    def toggle_withdraw_enabled(self) -> PlatformSettings:
        """Flip the global withdraw switch"""
        return self._toggle("withdraw_enabled")

    def reset_all_rating_counts(self) -> int:
        """Zero ratings_done on every account; returns the number of accounts touched"""
        with self.storage.atomic():
            state = self.storage.load()
            for data in state["accounts"].values():
                data["ratingsDone"] = 0
                data.pop("ratingCount", None)
            self.storage.save(state)
            count = len(state["accounts"])
            log_action(logger, "info", "Rating counts reset",
                       action="reset_ratings", resource="accounts",
                       details={"accounts": count})
            return count

    def list_pending_withdraws(self) -> List[PendingWithdraw]:
        with self.storage.atomic():
            return [
                PendingWithdraw(account.user_id, account.pending_withdraw, account.bank_details)
                for account in self._all_accounts(self.storage.load())
                if account.pending_withdraw > 0
            ]

    def list_rating_history(self) -> List[RatingHistoryItem]:
        """
        Rating and admin-credit entries across all accounts.

        Ordered by account iteration order, then append order within each
        account; entries are not re-sorted by timestamp.
        """
        kinds = (LedgerEntryType.RATING, LedgerEntryType.ADMIN_ADD)
        with self.storage.atomic():
            return [
                RatingHistoryItem(account.user_id, entry)
                for account in self._all_accounts(self.storage.load())
                for entry in account.history
                if entry.entry_type in kinds
            ]

    def get_stats(self) -> Dict[str, int]:
        """Platform-wide totals for the admin dashboard"""
        accounts = self.list_accounts()
        ratings = [
            entry for account in accounts for entry in account.history
            if entry.entry_type == LedgerEntryType.RATING
        ]
        return {
            "totalUsers": len(accounts),
            "totalRatings": len(ratings),
            "totalEarnings": sum(entry.amount for entry in ratings),
            "totalPendingWithdraw": sum(a.pending_withdraw for a in accounts),
        }

    # Internals

    def _account(self, state: Dict[str, Any], user_id: str) -> Tuple[UserAccount, bool]:
        """Account from a loaded state, plus whether it had to be created"""
        data = state["accounts"].get(user_id)
        if data is None:
            return UserAccount.new(user_id, self.config.starting_balance), True
        return UserAccount.from_dict(user_id, data, self.config.starting_balance), False

    def _all_accounts(self, state: Dict[str, Any]) -> List[UserAccount]:
        return [
            UserAccount.from_dict(user_id, data, self.config.starting_balance)
            for user_id, data in state["accounts"].items()
        ]

    def _commit(self, state: Dict[str, Any], account: UserAccount) -> None:
        state["accounts"][account.user_id] = account.to_dict()
        self.storage.save(state)

    def _reject(self, state: Dict[str, Any], account: UserAccount, created: bool,
                error: LedgerErrorKind, message: Optional[str], action: str) -> LedgerResult:
        # A rejected request still materializes a first-seen account
        if created:
            self._commit(state, account)
        result = LedgerResult.fail(error, message, account)
        log_action(
            logger, "warning", result.message,
            user_id=account.user_id, action=action, resource="account",
            error=error
        )
        return result

    def _toggle(self, attribute: str) -> PlatformSettings:
        with self.storage.atomic():
            state = self.storage.load()
            settings = PlatformSettings.from_dict(state["settings"])
            setattr(settings, attribute, not getattr(settings, attribute))
            state["settings"] = settings.to_dict()
            self.storage.save(state)
            log_action(logger, "info", "Platform switch toggled",
                       action=f"toggle_{attribute}", resource="settings",
                       details=settings.to_dict())
            return settings
