"""
Tests for the signal use cases.

Publishing, editing, listing with entitlements, trending, outcome refresh,
the provider leaderboard and transaction history, against an in-memory
database and a fake price oracle.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from signalmarket.application.marketplace.dtos import (
    CreateSignalCommand,
    DeleteSignalCommand,
    DepositChannel,
    GetPurchasedSignalsQuery,
    GetSignalQuery,
    GetTransactionHistoryQuery,
    GetTrendingSignalsQuery,
    ListDepositsQuery,
    ListSignalsQuery,
    ListUserTransactionsQuery,
    RefreshSignalOutcomesCommand,
    SubmitDepositCommand,
    UnlockSignalCommand,
    UpdateSignalCommand,
)
from signalmarket.application.marketplace.get_deposit_info import GetDepositInfoUseCase
from signalmarket.application.marketplace.get_leaderboard import GetLeaderboardUseCase
from signalmarket.application.marketplace.get_transaction_history import (
    GetTransactionHistoryUseCase,
    ListDepositsUseCase,
    ListUserTransactionsUseCase,
)
from signalmarket.application.marketplace.list_signals import (
    GetPurchasedSignalsUseCase,
    GetSignalUseCase,
    GetTrendingSignalsUseCase,
    ListSignalsUseCase,
)
from signalmarket.application.marketplace.manage_signals import (
    CreateSignalUseCase,
    DeleteSignalUseCase,
    UpdateSignalUseCase,
)
from signalmarket.application.marketplace.refresh_signal_outcomes import (
    RefreshSignalOutcomesUseCase,
)
from signalmarket.application.marketplace.submit_deposit import SubmitDepositUseCase
from signalmarket.application.marketplace.unlock_signal import UnlockSignalUseCase
from signalmarket.domain.marketplace.entitlement import AccessReason
from signalmarket.domain.marketplace.entities import (
    Direction,
    InstrumentCategory,
    MonetizationType,
    SignalStatus,
    TransactionType,
    UserRole,
)
from signalmarket.domain.marketplace.errors import (
    AdminRequiredError,
    InvalidAmountError,
    MissingFieldError,
    NotOwnerError,
    SellerRequiredError,
    SignalNotFoundError,
    UpstreamUnavailableError,
    UserNotFoundError,
    ValidationError,
)
from signalmarket.domain.marketplace.ports import PriceOraclePort


# ══════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def seller(make_user):
    return make_user(UserRole.SELLER, name="Alpha Desk")


@pytest.fixture
def buyer(make_user):
    return make_user(UserRole.BUYER, balance="100")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


def _create_command(provider_id, **overrides) -> CreateSignalCommand:
    fields = {
        "provider_id": provider_id,
        "coin_pair": "eth/usdt",
        "category": InstrumentCategory.CRYPTO,
        "direction": Direction.SELL,
        "entry_zone": "2000-2020",
        "take_profits": ["1900", " 1850 "],
        "stop_loss": "2100",
        "confidence": 70,
        "reasoning": "Rejection at resistance",
    }
    fields.update(overrides)
    return CreateSignalCommand(**fields)


# ══════════════════════════════════════════════════════════════════════
# Publishing and editing
# ══════════════════════════════════════════════════════════════════════


class TestCreateSignalUseCase:
    """Tests for publishing signals."""

    def test_seller_publishes_normalized_signal(self, uow_factory, seller) -> None:
        signal = CreateSignalUseCase(uow_factory).execute(_create_command(seller.id))

        assert signal.coin_pair == "ETH/USDT"
        assert signal.take_profits == ["1900", "1850"]
        assert signal.valid_from is not None
        with uow_factory() as uow:
            stored = uow.signals.get(signal.id)
        assert stored.provider_id == seller.id
        assert stored.status is SignalStatus.ACTIVE

    def test_buyer_cannot_publish(self, uow_factory, buyer) -> None:
        with pytest.raises(SellerRequiredError):
            CreateSignalUseCase(uow_factory).execute(_create_command(buyer.id))

    def test_paid_signal_needs_price(self, uow_factory, seller) -> None:
        with pytest.raises(InvalidAmountError):
            CreateSignalUseCase(uow_factory).execute(
                _create_command(
                    seller.id, monetization_type=MonetizationType.PAY_PER_SIGNAL
                )
            )

    def test_unparseable_level_rejected(self, uow_factory, seller) -> None:
        with pytest.raises(ValidationError) as excinfo:
            CreateSignalUseCase(uow_factory).execute(
                _create_command(seller.id, stop_loss="around 2100")
            )
        assert excinfo.value.code == "invalid_level"

    def test_targets_required(self, uow_factory, seller) -> None:
        with pytest.raises(MissingFieldError):
            CreateSignalUseCase(uow_factory).execute(
                _create_command(seller.id, take_profits=[])
            )

    def test_window_must_not_be_reversed(self, uow_factory, seller) -> None:
        start = datetime(2026, 5, 2, tzinfo=timezone.utc)
        with pytest.raises(ValidationError) as excinfo:
            CreateSignalUseCase(uow_factory).execute(
                _create_command(
                    seller.id, valid_from=start, valid_to=start - timedelta(hours=1)
                )
            )
        assert excinfo.value.code == "invalid_window"


class TestUpdateAndDeleteSignal:
    """Only the provider may edit or remove a signal."""

    def test_owner_edits_levels(self, uow_factory, make_signal, seller) -> None:
        signal = make_signal(seller.id)
        other = uuid4()
        updated = UpdateSignalUseCase(uow_factory).execute(
            UpdateSignalCommand(
                signal.id,
                seller.id,
                {"stop_loss": "98", "provider_id": other, "confidence": None},
            )
        )
        assert updated.stop_loss == "98"
        assert updated.provider_id == seller.id
        assert updated.confidence == 80
        with uow_factory() as uow:
            assert uow.signals.get(signal.id).stop_loss == "98"

    def test_other_user_cannot_edit(self, uow_factory, make_signal, seller, buyer) -> None:
        signal = make_signal(seller.id)
        with pytest.raises(NotOwnerError):
            UpdateSignalUseCase(uow_factory).execute(
                UpdateSignalCommand(signal.id, buyer.id, {"stop_loss": "1"})
            )

    def test_edit_unknown_signal(self, uow_factory, seller) -> None:
        with pytest.raises(SignalNotFoundError):
            UpdateSignalUseCase(uow_factory).execute(
                UpdateSignalCommand(uuid4(), seller.id, {})
            )

    def test_owner_deletes(self, uow_factory, make_signal, seller, buyer) -> None:
        signal = make_signal(seller.id)
        delete = DeleteSignalUseCase(uow_factory)
        with pytest.raises(NotOwnerError):
            delete.execute(DeleteSignalCommand(signal.id, buyer.id))
        delete.execute(DeleteSignalCommand(signal.id, seller.id))
        with uow_factory() as uow:
            assert uow.signals.get(signal.id) is None


# ══════════════════════════════════════════════════════════════════════
# Read path
# ══════════════════════════════════════════════════════════════════════


class TestSignalListing:
    """Listing, detail, purchased and trending views."""

    def test_guest_sees_teasers_with_prices(
        self, uow_factory, price_oracle, make_signal, seller
    ) -> None:
        make_signal(seller.id)
        make_signal(seller.id, coin_pair="ETH/USDT")

        projections = ListSignalsUseCase(uow_factory, price_oracle).execute(
            ListSignalsQuery()
        )

        assert len(projections) == 2
        assert all(p.reason is AccessReason.ANONYMOUS for p in projections)
        prices = {p.fields["coin_pair"]: p.fields["current_price"] for p in projections}
        assert prices == {"BTC/USDT": Decimal("105"), "ETH/USDT": Decimal("2000")}
        assert price_oracle.calls == [["BTC/USDT", "ETH/USDT"]]

    def test_filter_by_provider(
        self, uow_factory, price_oracle, make_user, make_signal, seller
    ) -> None:
        other = make_user(UserRole.SELLER)
        make_signal(seller.id)
        mine = make_signal(other.id)
        projections = ListSignalsUseCase(uow_factory, price_oracle).execute(
            ListSignalsQuery(provider_id=other.id)
        )
        assert [p.signal_id for p in projections] == [mine.id]

    def test_detail_unlocks_after_purchase(
        self, uow_factory, price_oracle, make_signal, seller, buyer
    ) -> None:
        signal = make_signal(
            seller.id,
            monetization_type=MonetizationType.PAY_PER_SIGNAL,
            price=Decimal("10"),
        )
        get_signal = GetSignalUseCase(uow_factory, price_oracle)
        assert get_signal.execute(GetSignalQuery(signal.id, buyer.id)).is_locked

        UnlockSignalUseCase(uow_factory).execute(UnlockSignalCommand(signal.id, buyer.id))
        projection = get_signal.execute(GetSignalQuery(signal.id, buyer.id))
        assert not projection.is_locked
        assert projection.fields["stop_loss"] == "100"
        assert projection.fields["current_price"] == Decimal("105")

    def test_detail_unknown_signal(self, uow_factory, price_oracle, buyer) -> None:
        with pytest.raises(SignalNotFoundError):
            GetSignalUseCase(uow_factory, price_oracle).execute(
                GetSignalQuery(uuid4(), buyer.id)
            )

    def test_purchased_skips_expired(
        self, uow_factory, price_oracle, make_signal, seller, buyer
    ) -> None:
        live = make_signal(seller.id)
        stale = make_signal(seller.id, expired=True)
        unlock = UnlockSignalUseCase(uow_factory)
        unlock.execute(UnlockSignalCommand(live.id, buyer.id))
        unlock.execute(UnlockSignalCommand(stale.id, buyer.id))

        projections = GetPurchasedSignalsUseCase(uow_factory, price_oracle).execute(
            GetPurchasedSignalsQuery(buyer.id)
        )
        assert [p.signal_id for p in projections] == [live.id]

    def test_trending_orders_by_purchases(
        self, uow_factory, price_oracle, make_signal, seller
    ) -> None:
        quiet = make_signal(seller.id, purchased_count=1)
        hot = make_signal(seller.id, purchased_count=9)
        make_signal(seller.id, purchased_count=0)

        results = GetTrendingSignalsUseCase(uow_factory, price_oracle).execute(
            GetTrendingSignalsQuery(limit=2)
        )
        assert [r.id for r in results] == [hot.id, quiet.id]
        assert results[0].direction == "BUY"
        assert results[0].current_price == Decimal("105")


# ══════════════════════════════════════════════════════════════════════
# Outcome refresh
# ══════════════════════════════════════════════════════════════════════


class TestRefreshSignalOutcomesUseCase:
    """Batch evaluation and persistence of signal outcomes."""

    def test_refresh_resolves_and_persists(
        self, uow_factory, price_oracle, make_signal, seller
    ) -> None:
        price_oracle.prices["BTC/USDT"] = Decimal("112")
        winner = make_signal(seller.id)
        loser = make_signal(
            seller.id, coin_pair="ETH/USDT", stop_loss="2100", take_profits=["2500"]
        )
        make_signal(seller.id, coin_pair="FOO/USDT")

        result = RefreshSignalOutcomesUseCase(uow_factory, price_oracle).execute()

        assert (result.evaluated, result.unpriced) == (2, 1)
        assert (result.updated, result.failed, result.succeeded) == (2, 1, 1)
        assert price_oracle.calls == [["BTC/USDT", "ETH/USDT", "FOO/USDT"]]
        with uow_factory() as uow:
            stored_winner = uow.signals.get(winner.id)
            stored_loser = uow.signals.get(loser.id)
        assert stored_winner.status is SignalStatus.SUCCESS
        assert stored_winner.hit_targets == [0]
        assert stored_winner.last_price == Decimal("112")
        assert stored_loser.status is SignalStatus.FAILURE
        assert stored_loser.hit_stop_loss

    def test_second_run_skips_failed_and_unchanged(
        self, uow_factory, price_oracle, make_signal, seller
    ) -> None:
        make_signal(seller.id)
        make_signal(seller.id, status=SignalStatus.FAILURE, hit_stop_loss=True)
        refresh = RefreshSignalOutcomesUseCase(uow_factory, price_oracle)

        first = refresh.execute()
        second = refresh.execute()

        assert first.evaluated == 1
        assert first.updated == 1
        assert second.evaluated == 1
        assert second.updated == 0

    def test_missing_prices_are_not_errors(
        self, uow_factory, price_oracle, make_signal, seller
    ) -> None:
        price_oracle.prices.clear()
        make_signal(seller.id)
        result = RefreshSignalOutcomesUseCase(uow_factory, price_oracle).execute()
        assert (result.evaluated, result.unpriced, result.updated) == (0, 1, 0)

    def test_admin_check_when_requested_by_user(
        self, uow_factory, price_oracle, buyer, admin
    ) -> None:
        refresh = RefreshSignalOutcomesUseCase(uow_factory, price_oracle)
        with pytest.raises(AdminRequiredError):
            refresh.execute(RefreshSignalOutcomesCommand(admin_id=buyer.id))
        assert refresh.execute(RefreshSignalOutcomesCommand(admin_id=admin.id)).evaluated == 0

    def test_nothing_to_evaluate_skips_writes(self, uow_factory) -> None:
        oracle = MagicMock(spec=PriceOraclePort)
        oracle.get_many_prices.return_value = {}

        result = RefreshSignalOutcomesUseCase(uow_factory, oracle).execute()

        oracle.get_many_prices.assert_called_once_with(set())
        assert result.evaluated == 0

    def test_oracle_outage_leaves_signals_active(
        self, uow_factory, make_signal, seller
    ) -> None:
        """An oracle that raises aborts the pass before anything is saved."""
        signal = make_signal(seller.id)
        oracle = MagicMock(spec=PriceOraclePort)
        oracle.get_many_prices.side_effect = UpstreamUnavailableError("CoinGecko", "timeout")

        with pytest.raises(UpstreamUnavailableError):
            RefreshSignalOutcomesUseCase(uow_factory, oracle).execute()

        with uow_factory() as uow:
            stored = uow.signals.get(signal.id)
        assert stored.status is SignalStatus.ACTIVE
        assert stored.last_price is None

    def _interleaved(self, uow_factory, outer_price: str, inner_price: str):
        """Run a pass whose price fetch lets a second pass commit first."""
        inner = MagicMock(spec=PriceOraclePort)
        inner.get_many_prices.return_value = {"BTC/USDT": Decimal(inner_price)}

        def fetch_after_inner_pass(pairs):
            RefreshSignalOutcomesUseCase(uow_factory, inner).execute()
            return {"BTC/USDT": Decimal(outer_price)}

        outer = MagicMock(spec=PriceOraclePort)
        outer.get_many_prices.side_effect = fetch_after_inner_pass
        return RefreshSignalOutcomesUseCase(uow_factory, outer).execute()

    def test_overlapping_passes_keep_every_hit(
        self, uow_factory, make_signal, seller
    ) -> None:
        signal = make_signal(seller.id)

        result = self._interleaved(uow_factory, outer_price="115", inner_price="125")

        with uow_factory() as uow:
            stored = uow.signals.get(signal.id)
        assert stored.status is SignalStatus.SUCCESS
        assert stored.hit_targets == [0, 1]
        assert stored.last_price == Decimal("115")
        assert (result.updated, result.succeeded) == (1, 0)

    def test_stale_pass_cannot_fail_a_success(
        self, uow_factory, make_signal, seller
    ) -> None:
        """A pass that read the signal before another pass succeeded it."""
        signal = make_signal(seller.id)

        result = self._interleaved(uow_factory, outer_price="95", inner_price="115")

        with uow_factory() as uow:
            stored = uow.signals.get(signal.id)
        assert stored.status is SignalStatus.SUCCESS
        assert not stored.hit_stop_loss
        assert stored.hit_targets == [0]
        assert result.failed == 0


# ══════════════════════════════════════════════════════════════════════
# Leaderboard and history
# ══════════════════════════════════════════════════════════════════════


class TestGetLeaderboardUseCase:
    """Providers ranked by win rate, then by volume."""

    def test_ranking(self, uow_factory, make_user, make_signal, seller) -> None:
        rookie = make_user(UserRole.SELLER, name="  ")
        idle = make_user(UserRole.SELLER, name="Idle")
        for status in (SignalStatus.SUCCESS, SignalStatus.SUCCESS, SignalStatus.FAILURE):
            make_signal(seller.id, status=status)
        make_signal(rookie.id, status=SignalStatus.SUCCESS)

        board = GetLeaderboardUseCase(uow_factory).execute()

        assert [e.provider_id for e in board] == [rookie.id, seller.id, idle.id]
        assert [e.rank for e in board] == [1, 2, 3]
        assert board[0].name == "Anonymous"
        assert board[1].win_rate == 67
        assert (board[1].signals, board[1].success_count, board[1].failure_count) == (
            3,
            2,
            1,
        )
        assert board[2].win_rate == 0

    def test_buyers_are_not_ranked(self, uow_factory, buyer) -> None:
        assert GetLeaderboardUseCase(uow_factory).execute() == []


class TestTransactionHistory:
    """History is newest first and includes entries received."""

    def test_history_for_payer_and_payee(
        self, uow_factory, make_signal, seller, buyer
    ) -> None:
        signal = make_signal(
            seller.id,
            monetization_type=MonetizationType.PAY_PER_SIGNAL,
            price=Decimal("10"),
        )
        UnlockSignalUseCase(uow_factory).execute(UnlockSignalCommand(signal.id, buyer.id))
        history = GetTransactionHistoryUseCase(uow_factory)

        mine = history.execute(GetTransactionHistoryQuery(buyer.id))
        theirs = history.execute(GetTransactionHistoryQuery(seller.id))

        assert [t.type for t in mine] == ["SignalPurchase"]
        assert [t.id for t in theirs] == [mine[0].id]

    def test_history_limit(self, uow_factory, buyer) -> None:
        submit = SubmitDepositUseCase(uow_factory)
        for n in range(3):
            submit.execute(SubmitDepositCommand(buyer.id, Decimal("1"), f"0x{n}", "TRC20"))
        history = GetTransactionHistoryUseCase(uow_factory).execute(
            GetTransactionHistoryQuery(buyer.id, limit=2)
        )
        assert len(history) == 2

    def test_pending_deposit_queue(self, uow_factory, buyer, admin) -> None:
        SubmitDepositUseCase(uow_factory).execute(
            SubmitDepositCommand(buyer.id, Decimal("5"), "0xq1", "TRC20")
        )
        queue = ListDepositsUseCase(uow_factory).execute(
            ListDepositsQuery(admin.id, pending_only=True)
        )
        assert [t.tx_hash for t in queue] == ["0xq1"]

    def test_admin_lookup_of_one_user(
        self, uow_factory, make_signal, seller, buyer, admin
    ) -> None:
        signal = make_signal(
            seller.id,
            monetization_type=MonetizationType.PAY_PER_SIGNAL,
            price=Decimal("10"),
        )
        UnlockSignalUseCase(uow_factory).execute(UnlockSignalCommand(signal.id, buyer.id))
        SubmitDepositUseCase(uow_factory).execute(
            SubmitDepositCommand(buyer.id, Decimal("5"), "0xu1", "TRC20")
        )
        lookup = ListUserTransactionsUseCase(uow_factory)

        everything = lookup.execute(ListUserTransactionsQuery(admin.id, buyer.id))
        deposits = lookup.execute(
            ListUserTransactionsQuery(admin.id, buyer.id, TransactionType.DEPOSIT)
        )

        assert [t.type for t in everything] == ["Deposit", "SignalPurchase"]
        assert [t.tx_hash for t in deposits] == ["0xu1"]

    def test_admin_lookup_guards(self, uow_factory, buyer, admin) -> None:
        lookup = ListUserTransactionsUseCase(uow_factory)
        with pytest.raises(AdminRequiredError):
            lookup.execute(ListUserTransactionsQuery(buyer.id, buyer.id))
        with pytest.raises(UserNotFoundError):
            lookup.execute(ListUserTransactionsQuery(admin.id, uuid4()))


class TestGetDepositInfoUseCase:
    def test_only_configured_wallets_are_offered(self) -> None:
        channels = GetDepositInfoUseCase(
            wallet_addresses={"TRC20": "TWalletAddress", "ERC20": ""},
            currency="USDT",
        ).execute()

        assert channels == [
            DepositChannel(
                network="TRC20", address="TWalletAddress", currency="USDT", confirmations=1
            )
        ]

    def test_erc20_waits_for_more_confirmations(self) -> None:
        channels = GetDepositInfoUseCase({"ERC20": "0xWallet"}, "USDT").execute()
        assert channels[0].confirmations == 12
