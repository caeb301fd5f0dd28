"""
Test suite for the account ledger engine

Tests rating eligibility, withdraw request and settlement, admin adjustments,
global switches and the cross-account listings.
"""

import pytest

from rating_ledger.config import RatingLedgerConfig
from rating_ledger.errors import LedgerErrorKind, StorageUnavailable
from rating_ledger.ledger import AccountLedger, coerce_int
from rating_ledger.models import LedgerEntryType
from rating_ledger.storage import InMemoryStorage, StorageInterface


@pytest.fixture
def config():
    return RatingLedgerConfig(
        storage_backend="memory",
        starting_balance=9000,
        daily_rating_cap=25,
        rating_balance_floor=8500,
        enforce_withdraw_toggle=True,
    )


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def ledger(storage, config):
    return AccountLedger(storage, config)


def set_account_fields(storage, user_id, **fields):
    """Write raw fields straight into the stored account"""
    state = storage.load()
    state["accounts"][user_id].update(fields)
    storage.save(state)


class TestCoerceInt:
    """Test permissive numeric parsing"""

    def test_ints_and_numeric_strings(self):
        """Test ints pass through and strings parse their leading integer"""
        assert coerce_int(50) == 50
        assert coerce_int("50") == 50
        assert coerce_int(" 42 ") == 42
        assert coerce_int("12abc") == 12
        assert coerce_int("-7") == -7

    def test_floats_truncate(self):
        """Test floats truncate toward zero"""
        assert coerce_int(12.9) == 12
        assert coerce_int(-3.5) == -3
        assert coerce_int(float("nan")) == 0
        assert coerce_int(float("inf")) == 0

    def test_non_numeric_becomes_zero(self):
        """Test anything non-numeric coerces to zero"""
        assert coerce_int(None) == 0
        assert coerce_int("abc") == 0
        assert coerce_int("") == 0
        assert coerce_int(True) == 0
        assert coerce_int([5]) == 0
        assert coerce_int({"amount": 5}) == 0


class TestGetOrCreateAccount:
    """Test lazy account creation"""

    def test_creates_account_with_defaults(self, ledger, storage):
        """Test a first reference creates and persists a default account"""
        account = ledger.get_or_create_account("u1")

        assert account.user_id == "u1"
        assert account.balance == 9000
        assert account.total_earned == 0
        assert account.ratings_done == 0
        assert account.pending_withdraw == 0
        assert account.can_rate is True
        assert account.bank_details is None
        assert account.history == []
        assert "u1" in storage.load()["accounts"]

    def test_idempotent(self, ledger, storage):
        """Test two calls with an unseen id create exactly one account"""
        first = ledger.get_or_create_account("u1")
        second = ledger.get_or_create_account("u1")

        assert first == second
        assert list(storage.load()["accounts"]) == ["u1"]

    def test_existing_account_not_reset(self, ledger):
        """Test an existing account is returned unchanged"""
        ledger.get_or_create_account("u1")
        ledger.submit_rating("u1", commission=50)

        account = ledger.get_or_create_account("u1")
        assert account.total_earned == 50
        assert account.ratings_done == 1

    def test_starting_balance_is_configurable(self, storage):
        """Test new accounts use the configured starting balance"""
        ledger = AccountLedger(storage, RatingLedgerConfig(starting_balance=100))
        assert ledger.get_or_create_account("u1").balance == 100

    def test_get_account_does_not_create(self, ledger, storage):
        """Test plain lookup returns None for unknown ids"""
        assert ledger.get_account("ghost") is None
        assert storage.load()["accounts"] == {}


class TestSubmitRating:
    """Test rating eligibility and commission credit"""

    def test_successful_rating(self, ledger):
        """Test a rating on a new account credits commission"""
        result = ledger.submit_rating("u1", commission=50, stars=5, hotel="Plaza")

        assert result.success
        assert result.error is None
        account = result.account
        assert account.total_earned == 50
        assert account.balance == 9050
        assert account.ratings_done == 1
        assert len(account.history) == 1

        entry = account.history[0]
        assert entry.entry_type == LedgerEntryType.RATING
        assert entry.hotel == "Plaza"
        assert entry.stars == 5
        assert entry.amount == 50
        assert entry.time

    def test_rating_is_persisted(self, ledger):
        """Test the updated account is saved"""
        ledger.submit_rating("u1", commission=50, stars=5, hotel="Plaza")
        stored = ledger.get_account("u1")

        assert stored.total_earned == 50
        assert stored.history[0].hotel == "Plaza"

    def test_defaults_for_missing_hotel_and_stars(self, ledger):
        """Test hotel defaults to Unknown and stars to 0"""
        result = ledger.submit_rating("u1", commission=10)
        entry = result.account.history[0]

        assert entry.hotel == "Unknown"
        assert entry.stars == 0

    def test_loose_numeric_input(self, ledger):
        """Test commission and stars are coerced from strings"""
        result = ledger.submit_rating("u1", commission="30", stars="4", hotel="Inn")

        assert result.success
        assert result.account.total_earned == 30
        assert result.account.history[0].stars == 4

    @pytest.mark.parametrize("commission", [-10000, "-10000", -0.5e6])
    def test_negative_commission_rejected(self, ledger, commission):
        """Test a negative commission cannot drive balance or earnings below zero"""
        result = ledger.submit_rating("u1", commission=commission)

        assert not result.success
        assert result.error == LedgerErrorKind.INVALID_AMOUNT
        account = ledger.get_account("u1")
        assert account.balance == 9000
        assert account.total_earned == 0
        assert account.ratings_done == 0
        assert account.history == []

    def test_eligibility_checked_before_commission(self, ledger):
        """Test the global switch still wins over a negative commission"""
        ledger.toggle_rating_enabled()
        result = ledger.submit_rating("u1", commission=-5)
        assert result.error == LedgerErrorKind.RATINGS_DISABLED_GLOBALLY

    def test_non_string_hotel_label(self, ledger):
        """Test a numeric hotel label is stored as text"""
        result = ledger.submit_rating("u1", commission=10, hotel=404)
        assert result.account.history[0].hotel == "404"

    def test_non_numeric_commission_counts_as_zero(self, ledger):
        """Test a non-numeric commission credits nothing but still counts the rating"""
        result = ledger.submit_rating("u1", commission="lots")

        assert result.success
        assert result.account.total_earned == 0
        assert result.account.balance == 9000
        assert result.account.ratings_done == 1

    def test_disabled_globally(self, ledger):
        """Test the global switch rejects ratings"""
        ledger.toggle_rating_enabled()
        result = ledger.submit_rating("u1", commission=50)

        assert not result.success
        assert result.error == LedgerErrorKind.RATINGS_DISABLED_GLOBALLY
        assert result.message

    def test_disabled_for_user(self, ledger):
        """Test the per-user switch rejects ratings"""
        ledger.set_can_rate("u1", False)
        result = ledger.submit_rating("u1", commission=50)

        assert not result.success
        assert result.error == LedgerErrorKind.RATINGS_DISABLED_FOR_USER
        assert result.message == "Rating disabled by admin"

    def test_daily_cap_reached(self, ledger, storage):
        """Test an account at the cap is rejected and left unchanged"""
        ledger.get_or_create_account("u1")
        set_account_fields(storage, "u1", ratingsDone=25)
        before = storage.load()["accounts"]["u1"]

        result = ledger.submit_rating("u1", commission=50)

        assert not result.success
        assert result.error == LedgerErrorKind.DAILY_CAP_REACHED
        assert result.message == "Max 25 ratings done today"
        assert storage.load()["accounts"]["u1"] == before

    def test_cap_allows_last_rating(self, ledger, storage):
        """Test the rating that reaches the cap is still accepted"""
        ledger.get_or_create_account("u1")
        set_account_fields(storage, "u1", ratingsDone=24)

        result = ledger.submit_rating("u1", commission=5)
        assert result.success
        assert result.account.ratings_done == 25

        assert ledger.submit_rating("u1", commission=5).error == LedgerErrorKind.DAILY_CAP_REACHED

    def test_insufficient_balance(self, ledger, storage):
        """Test a balance just under the floor is rejected"""
        ledger.get_or_create_account("u1")
        set_account_fields(storage, "u1", balance=8499)

        result = ledger.submit_rating("u1", commission=50)

        assert not result.success
        assert result.error == LedgerErrorKind.INSUFFICIENT_BALANCE
        assert "8500" in result.message
        assert ledger.get_account("u1").balance == 8499

    def test_balance_at_floor_is_allowed(self, ledger, storage):
        """Test a balance exactly at the floor is accepted"""
        ledger.get_or_create_account("u1")
        set_account_fields(storage, "u1", balance=8500)

        assert ledger.submit_rating("u1", commission=1).success

    def test_first_failure_wins(self, ledger, storage):
        """Test precondition order: global, per-user, cap, balance"""
        ledger.get_or_create_account("u1")
        set_account_fields(storage, "u1", canRate=False, ratingsDone=25, balance=0)
        ledger.toggle_rating_enabled()

        assert ledger.submit_rating("u1", 1).error == LedgerErrorKind.RATINGS_DISABLED_GLOBALLY
        ledger.toggle_rating_enabled()
        assert ledger.submit_rating("u1", 1).error == LedgerErrorKind.RATINGS_DISABLED_FOR_USER
        ledger.set_can_rate("u1", True)
        assert ledger.submit_rating("u1", 1).error == LedgerErrorKind.DAILY_CAP_REACHED
        ledger.reset_all_rating_counts()
        assert ledger.submit_rating("u1", 1).error == LedgerErrorKind.INSUFFICIENT_BALANCE

    def test_rejection_materializes_new_account(self, ledger):
        """Test a rejected rating for an unseen id still creates the account"""
        ledger.toggle_rating_enabled()
        result = ledger.submit_rating("fresh", commission=50)

        assert not result.success
        stored = ledger.get_account("fresh")
        assert stored is not None
        assert stored.history == []


class TestRequestWithdraw:
    """Test withdraw requests"""

    def test_successful_request(self, ledger):
        """Test earnings move into pending withdraw"""
        ledger.submit_rating("u1", commission=300)
        result = ledger.request_withdraw("u1", 100)

        assert result.success
        account = result.account
        assert account.total_earned == 200
        assert account.pending_withdraw == 100
        assert account.balance == 9300
        assert account.history[-1].entry_type == LedgerEntryType.WITHDRAW_REQUEST
        assert account.history[-1].amount == 100

    def test_requests_accumulate(self, ledger):
        """Test multiple requests add up in pending withdraw"""
        ledger.submit_rating("u1", commission=300)
        ledger.request_withdraw("u1", 100)
        result = ledger.request_withdraw("u1", "50")

        assert result.account.pending_withdraw == 150
        assert result.account.total_earned == 150

    @pytest.mark.parametrize("amount", [0, -5, "abc", None])
    def test_invalid_amount(self, ledger, amount):
        """Test non-positive or non-numeric amounts are rejected"""
        ledger.submit_rating("u1", commission=300)
        result = ledger.request_withdraw("u1", amount)

        assert not result.success
        assert result.error == LedgerErrorKind.INVALID_AMOUNT
        assert ledger.get_account("u1").pending_withdraw == 0

    def test_insufficient_earnings(self, ledger):
        """Test requesting more than total earned is rejected"""
        ledger.submit_rating("u1", commission=50)
        result = ledger.request_withdraw("u1", 51)

        assert not result.success
        assert result.error == LedgerErrorKind.INSUFFICIENT_EARNINGS
        assert result.message == "Not enough earnings"

    def test_withdraw_of_full_earnings(self, ledger):
        """Test the whole total earned can be requested"""
        ledger.submit_rating("u1", commission=50)
        result = ledger.request_withdraw("u1", 50)

        assert result.success
        assert result.account.total_earned == 0

    def test_disabled_globally(self, ledger):
        """Test the global withdraw switch rejects requests"""
        ledger.submit_rating("u1", commission=50)
        ledger.toggle_withdraw_enabled()
        result = ledger.request_withdraw("u1", 10)

        assert not result.success
        assert result.error == LedgerErrorKind.WITHDRAW_DISABLED_GLOBALLY
        assert ledger.get_account("u1").total_earned == 50

    def test_switch_not_enforced_when_configured_off(self, storage):
        """Test the withdraw switch can be left advisory"""
        ledger = AccountLedger(storage, RatingLedgerConfig(enforce_withdraw_toggle=False))
        ledger.submit_rating("u1", commission=50)
        ledger.toggle_withdraw_enabled()

        assert ledger.request_withdraw("u1", 10).success

    def test_amount_never_zeroes_unrelated_earnings(self, ledger):
        """Test only the requested amount is deducted"""
        ledger.submit_rating("u1", commission=500)
        result = ledger.request_withdraw("u1", 1)

        assert result.account.total_earned == 499


class TestProcessWithdraw:
    """Test admin settlement of withdraw requests"""

    def test_round_trip(self, ledger):
        """Test request then process clears pending with matching entries"""
        ledger.submit_rating("u1", commission=300)
        ledger.request_withdraw("u1", 100)
        result = ledger.process_withdraw("u1")

        assert result.success
        account = result.account
        assert account.pending_withdraw == 0
        kinds = [entry.entry_type for entry in account.history]
        assert kinds == [
            LedgerEntryType.RATING,
            LedgerEntryType.WITHDRAW_REQUEST,
            LedgerEntryType.WITHDRAW_PROCESSED,
        ]
        assert account.history[1].amount == account.history[2].amount == 100
        assert account.history[2].note == "Processed by admin"

    def test_settles_accumulated_requests(self, ledger):
        """Test processing settles the sum of outstanding requests"""
        ledger.submit_rating("u1", commission=300)
        ledger.request_withdraw("u1", 100)
        ledger.request_withdraw("u1", 50)
        result = ledger.process_withdraw("u1")

        assert result.account.history[-1].amount == 150

    def test_no_pending_withdraw(self, ledger):
        """Test processing with nothing pending fails"""
        ledger.get_or_create_account("u1")
        result = ledger.process_withdraw("u1")

        assert not result.success
        assert result.error == LedgerErrorKind.NO_PENDING_WITHDRAW
        assert ledger.get_account("u1").history == []

    def test_unknown_account(self, ledger, storage):
        """Test processing for an unknown id fails without creating it"""
        result = ledger.process_withdraw("ghost")

        assert not result.success
        assert result.error == LedgerErrorKind.ACCOUNT_NOT_FOUND
        assert "ghost" not in storage.load()["accounts"]


class TestAdminAdjustBalance:
    """Test admin balance adjustments"""

    def test_add(self, ledger):
        """Test add raises balance and total earned"""
        result = ledger.admin_adjust_balance("u1", 500, "add")

        assert result.success
        assert result.account.balance == 9500
        assert result.account.total_earned == 500
        entry = result.account.history[-1]
        assert entry.entry_type == LedgerEntryType.ADMIN_ADD
        assert entry.note == "Added by admin"

    def test_cut(self, ledger):
        """Test cut lowers balance only"""
        ledger.admin_adjust_balance("u1", 100, "add")
        result = ledger.admin_adjust_balance("u1", 600, "cut")

        assert result.account.balance == 8500
        assert result.account.total_earned == 100
        assert result.account.history[-1].entry_type == LedgerEntryType.ADMIN_CUT

    def test_cut_clamps_at_zero(self, ledger, storage):
        """Test cutting more than the balance leaves zero, not a negative"""
        ledger.get_or_create_account("u1")
        set_account_fields(storage, "u1", balance=200)

        result = ledger.admin_adjust_balance("u1", 500, "cut")

        assert result.success
        assert result.account.balance == 0
        assert result.account.history[-1].amount == 200

    def test_creates_missing_account(self, ledger):
        """Test adjustments lazily create the account"""
        result = ledger.admin_adjust_balance("new", "25", "add")

        assert result.success
        assert ledger.get_account("new").balance == 9025

    def test_invalid_direction(self, ledger):
        """Test unknown directions are rejected and leave the balance alone"""
        ledger.get_or_create_account("u1")
        result = ledger.admin_adjust_balance("u1", 10, "steal")

        assert result.error == LedgerErrorKind.INVALID_DIRECTION
        account = ledger.get_account("u1")
        assert account.balance == 9000
        assert account.history == []

    def test_rejection_materializes_new_account(self, ledger):
        """Test a rejected adjustment for an unseen id still creates the account"""
        assert ledger.admin_adjust_balance("fresh", 10, "steal").error == LedgerErrorKind.INVALID_DIRECTION
        assert ledger.admin_adjust_balance("other", 0, "add").error == LedgerErrorKind.INVALID_AMOUNT

        assert ledger.get_account("fresh").balance == 9000
        assert ledger.get_account("other").history == []

    @pytest.mark.parametrize("amount", [0, -10, "x"])
    def test_invalid_amount(self, ledger, amount):
        """Test non-positive adjustment amounts are rejected"""
        result = ledger.admin_adjust_balance("u1", amount, "add")
        assert result.error == LedgerErrorKind.INVALID_AMOUNT


class TestSettingsAndSwitches:
    """Test per-user and global switches"""

    def test_default_settings(self, ledger):
        """Test both global switches start enabled"""
        settings = ledger.get_settings()
        assert settings.rating_enabled
        assert settings.withdraw_enabled

    def test_toggles_flip_independently(self, ledger):
        """Test each toggle only flips its own switch"""
        settings = ledger.toggle_rating_enabled()
        assert not settings.rating_enabled
        assert settings.withdraw_enabled

        settings = ledger.toggle_withdraw_enabled()
        assert not settings.withdraw_enabled

        settings = ledger.toggle_rating_enabled()
        assert settings.rating_enabled
        assert ledger.get_settings() == settings

    def test_set_can_rate(self, ledger):
        """Test the per-user switch is stored"""
        ledger.set_can_rate("u1", False)
        assert ledger.get_account("u1").can_rate is False

        ledger.set_can_rate("u1", True)
        assert ledger.get_account("u1").can_rate is True


class TestResetAllRatingCounts:
    """Test the admin daily reset"""

    def test_zeroes_counts_only(self, ledger):
        """Test reset clears ratings_done and leaves other fields untouched"""
        for user_id in ("a", "b"):
            ledger.submit_rating(user_id, commission=40, hotel="H")
            ledger.submit_rating(user_id, commission=60, hotel="H")
        ledger.request_withdraw("a", 30)
        before = {a.user_id: a for a in ledger.list_accounts()}

        count = ledger.reset_all_rating_counts()

        assert count == 2
        for account in ledger.list_accounts():
            old = before[account.user_id]
            assert account.ratings_done == 0
            assert account.balance == old.balance
            assert account.total_earned == old.total_earned
            assert account.pending_withdraw == old.pending_withdraw
            assert account.history == old.history

    def test_reset_with_no_accounts(self, ledger):
        """Test reset on an empty store is a no-op"""
        assert ledger.reset_all_rating_counts() == 0


class TestListings:
    """Test cross-account listings and stats"""

    def test_list_pending_withdraws(self, ledger):
        """Test only accounts with pending amounts are listed with bank details"""
        ledger.submit_rating("a", commission=100)
        ledger.submit_rating("b", commission=100)
        ledger.request_withdraw("a", 40)
        ledger.save_bank_details("a", bank_name="SBI", account_holder="A",
                                 account_number="123", ifsc="SBIN0001")

        pending = ledger.list_pending_withdraws()

        assert len(pending) == 1
        assert pending[0].user_id == "a"
        assert pending[0].amount == 40
        assert pending[0].bank_details.bank_name == "SBI"

    def test_pending_without_bank_details(self, ledger):
        """Test pending accounts without bank details report None"""
        ledger.submit_rating("a", commission=100)
        ledger.request_withdraw("a", 40)

        assert ledger.list_pending_withdraws()[0].bank_details is None

    def test_rating_history_order(self, ledger):
        """Test history lists account order then append order, ratings and credits only"""
        ledger.submit_rating("a", commission=1, hotel="A1")
        ledger.submit_rating("b", commission=2, hotel="B1")
        ledger.admin_adjust_balance("a", 5, "add")
        ledger.admin_adjust_balance("a", 5, "cut")
        ledger.submit_rating("a", commission=3, hotel="A2")
        ledger.request_withdraw("a", 1)

        items = ledger.list_rating_history()

        assert [(i.user_id, i.entry.entry_type, i.entry.amount) for i in items] == [
            ("a", LedgerEntryType.RATING, 1),
            ("a", LedgerEntryType.ADMIN_ADD, 5),
            ("a", LedgerEntryType.RATING, 3),
            ("b", LedgerEntryType.RATING, 2),
        ]
        assert items[0].to_dict()["userId"] == "a"
        assert items[0].to_dict()["hotel"] == "A1"

    def test_stats(self, ledger):
        """Test platform totals"""
        ledger.submit_rating("a", commission=10)
        ledger.submit_rating("a", commission=20)
        ledger.submit_rating("b", commission=5)
        ledger.admin_adjust_balance("b", 100, "add")
        ledger.request_withdraw("b", 50)

        assert ledger.get_stats() == {
            "totalUsers": 2,
            "totalRatings": 3,
            "totalEarnings": 35,
            "totalPendingWithdraw": 50,
        }


class TestInvariants:
    """Test invariants over mixed operation sequences"""

    def test_balance_never_negative_and_history_only_grows(self, ledger):
        """Test balance >= 0 and history length is monotonic"""
        operations = [
            lambda: ledger.submit_rating("u", 50),
            lambda: ledger.admin_adjust_balance("u", 20000, "cut"),
            lambda: ledger.submit_rating("u", 50),
            lambda: ledger.admin_adjust_balance("u", 9000, "add"),
            lambda: ledger.request_withdraw("u", 30),
            lambda: ledger.admin_adjust_balance("u", 1, "cut"),
            lambda: ledger.process_withdraw("u"),
            lambda: ledger.process_withdraw("u"),
            lambda: ledger.admin_adjust_balance("u", 99999, "cut"),
        ]
        previous_history = []
        for operation in operations:
            operation()
            account = ledger.get_account("u")
            assert account.balance >= 0
            assert len(account.history) >= len(previous_history)
            assert account.history[:len(previous_history)] == previous_history
            previous_history = account.history

    def test_pending_matches_unsettled_requests(self, ledger):
        """Test pending withdraw equals requested minus processed"""
        ledger.submit_rating("u", 500)
        ledger.request_withdraw("u", 100)
        ledger.process_withdraw("u")
        ledger.request_withdraw("u", 70)
        ledger.request_withdraw("u", 30)

        history = ledger.get_account("u").history
        requested = sum(e.amount for e in history if e.entry_type == LedgerEntryType.WITHDRAW_REQUEST)
        processed = sum(e.amount for e in history if e.entry_type == LedgerEntryType.WITHDRAW_PROCESSED)
        assert ledger.get_account("u").pending_withdraw == requested - processed == 100


class FailingStorage(StorageInterface):
    """Storage that is always down"""

    def load(self):
        raise StorageUnavailable("disk gone")

    def save(self, state):
        raise StorageUnavailable("disk gone")


class TestStorageFaults:
    """Test storage faults propagate instead of becoming results"""

    def test_fault_propagates(self, config):
        """Test StorageUnavailable reaches the caller"""
        ledger = AccountLedger(FailingStorage(), config)

        with pytest.raises(StorageUnavailable):
            ledger.submit_rating("u1", commission=50)
        with pytest.raises(StorageUnavailable):
            ledger.get_or_create_account("u1")
