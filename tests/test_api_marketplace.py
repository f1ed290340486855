"""
Tests for the marketplace API endpoints.

Exercises FastAPI routes end to end with an in-memory database and fake
oracles. Validates authentication, status codes, the error body shape,
security headers and rate limiting.
"""

from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from signalmarket.application.marketplace.get_deposit_info import GetDepositInfoUseCase
from signalmarket.domain.marketplace.entities import MonetizationType, UserRole
from signalmarket.domain.marketplace.errors import UpstreamUnavailableError
from signalmarket.interfaces.marketplace.dependencies import get_deposit_info_use_case

API = "/api/v1"


# ══════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def seller(make_user, pro_plan):
    return make_user(UserRole.SELLER, name="Alpha Desk", plans=(pro_plan,))


@pytest.fixture
def buyer(make_user):
    return make_user(UserRole.BUYER, balance="100")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def paid_signal(make_signal, seller):
    return make_signal(
        seller.id,
        monetization_type=MonetizationType.PAY_PER_SIGNAL,
        price=Decimal("10"),
    )


SIGNAL_BODY = {
    "coin_pair": "SOL/USDT",
    "category": "Crypto",
    "direction": "BUY",
    "entry_zone": "140-142",
    "take_profits": ["150", "160"],
    "stop_loss": "132",
    "confidence": 65,
    "reasoning": "Higher low on the daily",
    "monetization_type": "PayPerSignal",
    "price": "7.5",
}


# ══════════════════════════════════════════════════════════════════════
# Health and cross-cutting concerns
# ══════════════════════════════════════════════════════════════════════


class TestHealthEndpoint:
    """Tests for GET /api/v1/health."""

    def test_health_reports_database(self, client) -> None:
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"


class TestSecurityHeaders:
    """Tests for security headers on responses."""

    def test_security_headers_present(self, client) -> None:
        """All security headers must be present on every response."""
        response = client.get(f"{API}/signals")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"
        assert "Content-Security-Policy" in response.headers

    def test_headers_on_errors_too(self, client) -> None:
        response = client.get(f"{API}/payments/history")
        assert response.status_code == 401
        assert response.headers["X-Frame-Options"] == "DENY"


class TestAuthentication:
    """Bearer token handling."""

    def test_missing_token(self, client) -> None:
        response = client.get(f"{API}/payments/history")
        assert response.json() == {
            "error": "Authentication required",
            "code": "authentication_required",
        }

    def test_forged_token_rejected_on_private_route(self, client) -> None:
        response = client.get(
            f"{API}/payments/history", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_forged_token_browses_as_guest(self, client, paid_signal) -> None:
        """Public listings fall back to the locked guest view."""
        response = client.get(
            f"{API}/signals", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 200
        [item] = response.json()
        assert item["is_locked"] is True
        assert item["reasoning"] == "Login to view"


# ══════════════════════════════════════════════════════════════════════
# Signals
# ══════════════════════════════════════════════════════════════════════


class TestSignalEndpoints:
    """Tests for /api/v1/signals."""

    def test_anonymous_listing_is_locked(self, client, paid_signal) -> None:
        response = client.get(f"{API}/signals")
        assert response.status_code == 200
        [item] = response.json()
        assert item["id"] == str(paid_signal.id)
        assert item["is_locked"] is True
        assert item["stop_loss"] == "***"
        assert item["reasoning"] == "Login to view"

    def test_category_filter(self, client, paid_signal) -> None:
        response = client.get(f"{API}/signals", params={"category": "Forex"})
        assert response.json() == []

    def test_seller_publishes(self, client, seller, auth_headers) -> None:
        response = client.post(
            f"{API}/signals", json=SIGNAL_BODY, headers=auth_headers(seller)
        )
        assert response.status_code == 201
        body = response.json()
        assert body["provider_id"] == str(seller.id)
        assert body["is_locked"] is False
        assert body["take_profits"] == ["150", "160"]
        assert Decimal(body["price"]) == Decimal("7.5")

    def test_buyer_cannot_publish(self, client, buyer, auth_headers) -> None:
        response = client.post(
            f"{API}/signals", json=SIGNAL_BODY, headers=auth_headers(buyer)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "seller_required"

    def test_schema_validation_error_shape(self, client, seller, auth_headers) -> None:
        response = client.post(
            f"{API}/signals",
            json={**SIGNAL_BODY, "coin_pair": "SOLUSDT"},
            headers=auth_headers(seller),
        )
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "invalid_request"
        assert body["error"].startswith("coin_pair")

    def test_domain_validation_error(self, client, seller, auth_headers) -> None:
        response = client.post(
            f"{API}/signals",
            json={**SIGNAL_BODY, "stop_loss": "soon"},
            headers=auth_headers(seller),
        )
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_level"

    def test_owner_updates_and_deletes(
        self, client, paid_signal, seller, buyer, auth_headers
    ) -> None:
        url = f"{API}/signals/{paid_signal.id}"
        assert client.put(url, json={"stop_loss": "97"}, headers=auth_headers(buyer)).status_code == 403

        updated = client.put(url, json={"stop_loss": "97"}, headers=auth_headers(seller))
        assert updated.status_code == 200
        assert updated.json()["stop_loss"] == "97"

        assert client.delete(url, headers=auth_headers(seller)).status_code == 204
        missing = client.get(url, headers=auth_headers(seller))
        assert missing.status_code == 404
        assert missing.json()["code"] == "signal_not_found"

    def test_purchased_and_trending(
        self, client, paid_signal, buyer, auth_headers
    ) -> None:
        client.post(
            f"{API}/payments/unlock-signal",
            json={"signal_id": str(paid_signal.id)},
            headers=auth_headers(buyer),
        )
        purchased = client.get(f"{API}/signals/purchased", headers=auth_headers(buyer))
        trending = client.get(f"{API}/signals/trending")

        assert [s["id"] for s in purchased.json()] == [str(paid_signal.id)]
        assert purchased.json()[0]["is_locked"] is False
        assert trending.json()[0]["purchased_count"] == 1

    def test_refresh_requires_admin(
        self, client, paid_signal, buyer, admin, auth_headers
    ) -> None:
        url = f"{API}/signals/refresh-outcomes"
        assert client.post(url, headers=auth_headers(buyer)).status_code == 403
        response = client.post(url, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["evaluated"] == 1


class TestRateLimiting:
    """Tests for rate limiting behavior."""

    def test_rate_limit_returns_429(self, client, admin, auth_headers) -> None:
        """The outcome refresh is throttled after ten calls a minute."""
        headers = auth_headers(admin)
        statuses = [
            client.post(f"{API}/signals/refresh-outcomes", headers=headers).status_code
            for _ in range(11)
        ]
        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429

    def test_settlement_uses_default_limit(
        self, client, paid_signal, buyer, auth_headers
    ) -> None:
        body = {"signal_id": str(paid_signal.id)}
        statuses = [
            client.post(
                f"{API}/payments/unlock-signal", json=body, headers=auth_headers(buyer)
            ).status_code
            for _ in range(11)
        ]
        assert statuses == [200] + [409] * 10


# ══════════════════════════════════════════════════════════════════════
# Payments
# ══════════════════════════════════════════════════════════════════════


class TestPaymentEndpoints:
    """Tests for /api/v1/payments."""

    def test_unlock_flow(self, client, paid_signal, buyer, auth_headers) -> None:
        url = f"{API}/payments/unlock-signal"
        body = {"signal_id": str(paid_signal.id)}

        first = client.post(url, json=body, headers=auth_headers(buyer))
        second = client.post(url, json=body, headers=auth_headers(buyer))

        assert first.status_code == 200
        assert Decimal(first.json()["price_paid"]) == Decimal("10")
        assert second.status_code == 409
        assert second.json()["code"] == "already_purchased"

    def test_unlock_without_funds(
        self, client, paid_signal, make_user, auth_headers
    ) -> None:
        poor = make_user(balance="1")
        response = client.post(
            f"{API}/payments/unlock-signal",
            json={"signal_id": str(paid_signal.id)},
            headers=auth_headers(poor),
        )
        assert response.status_code == 402
        assert response.json() == {
            "error": "Insufficient wallet balance",
            "code": "insufficient_funds",
        }

    def test_unlock_unknown_signal(self, client, buyer, auth_headers) -> None:
        response = client.post(
            f"{API}/payments/unlock-signal",
            json={"signal_id": str(uuid4())},
            headers=auth_headers(buyer),
        )
        assert response.status_code == 404

    def test_subscribe_and_follow(self, client, seller, buyer, make_user, auth_headers) -> None:
        subscribed = client.post(
            f"{API}/payments/subscribe",
            json={"provider_id": str(seller.id), "plan_name": "Pro"},
            headers=auth_headers(buyer),
        )
        fan = make_user()
        followed = client.post(
            f"{API}/payments/follow",
            json={"provider_id": str(seller.id)},
            headers=auth_headers(fan),
        )
        assert subscribed.status_code == 200
        assert subscribed.json()["plan_name"] == "Pro"
        assert followed.status_code == 200
        assert Decimal(followed.json()["price_paid"]) == Decimal("0")

    def test_self_subscription_forbidden(self, client, seller, auth_headers) -> None:
        response = client.post(
            f"{API}/payments/subscribe",
            json={"provider_id": str(seller.id), "plan_name": "Pro"},
            headers=auth_headers(seller),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "self_trade"

    def test_withdraw_and_history(self, client, buyer, auth_headers, balance_of) -> None:
        response = client.post(
            f"{API}/payments/withdraw",
            json={"amount": "30", "destination_address": "TXdest"},
            headers=auth_headers(buyer),
        )
        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert balance_of(buyer.id) == Decimal("70")

        history = client.get(f"{API}/payments/history", headers=auth_headers(buyer))
        assert [t["type"] for t in history.json()] == ["Withdrawal"]

    def test_withdraw_rejects_non_positive(self, client, buyer, auth_headers) -> None:
        response = client.post(
            f"{API}/payments/withdraw",
            json={"amount": "0", "destination_address": "TXdest"},
            headers=auth_headers(buyer),
        )
        assert response.status_code == 422

    def test_duplicate_deposit_hash(self, client, buyer, auth_headers) -> None:
        url = f"{API}/payments/deposit"
        body = {"amount": "50", "tx_hash": "0xAAA", "network": "TRC20"}
        assert client.post(url, json=body, headers=auth_headers(buyer)).status_code == 201
        again = client.post(
            url, json={**body, "tx_hash": "0xaaa"}, headers=auth_headers(buyer)
        )
        assert again.status_code == 409
        assert again.json()["code"] == "duplicate_tx_hash"


class TestDepositInfoEndpoint:
    """Tests for GET /api/v1/payments/deposit-info."""

    def test_lists_configured_wallets(self, client, buyer, auth_headers) -> None:
        client.app.dependency_overrides[get_deposit_info_use_case] = lambda: (
            GetDepositInfoUseCase({"TRC20": "TWallet", "ERC20": "0xWallet"}, "USDT")
        )
        response = client.get(f"{API}/payments/deposit-info", headers=auth_headers(buyer))

        assert response.status_code == 200
        assert response.json() == [
            {"network": "TRC20", "address": "TWallet", "currency": "USDT", "confirmations": 1},
            {"network": "ERC20", "address": "0xWallet", "currency": "USDT", "confirmations": 12},
        ]

    def test_requires_login(self, client) -> None:
        assert client.get(f"{API}/payments/deposit-info").status_code == 401


class TestLeaderboardEndpoint:
    def test_leaderboard(self, client, seller) -> None:
        response = client.get(f"{API}/providers/leaderboard")
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Alpha Desk"
        assert response.json()[0]["rank"] == 1


# ══════════════════════════════════════════════════════════════════════
# Admin
# ══════════════════════════════════════════════════════════════════════


class TestAdminEndpoints:
    """Tests for /api/v1/admin."""

    def _withdrawal(self, client, buyer, auth_headers) -> str:
        response = client.post(
            f"{API}/payments/withdraw",
            json={"amount": "40", "destination_address": "TXdest"},
            headers=auth_headers(buyer),
        )
        return response.json()["id"]

    def _deposit(self, client, buyer, auth_headers) -> str:
        response = client.post(
            f"{API}/payments/deposit",
            json={"amount": "50", "tx_hash": "0xD3P", "network": "TRC20"},
            headers=auth_headers(buyer),
        )
        return response.json()["id"]

    def test_non_admin_forbidden(self, client, buyer, auth_headers) -> None:
        response = client.get(f"{API}/admin/withdrawals", headers=auth_headers(buyer))
        assert response.status_code == 403
        assert response.json()["code"] == "admin_required"

    def test_withdrawal_review(self, client, buyer, admin, auth_headers, balance_of) -> None:
        tx_id = self._withdrawal(client, buyer, auth_headers)
        headers = auth_headers(admin)

        listed = client.get(f"{API}/admin/withdrawals", headers=headers)
        approved = client.post(f"{API}/admin/withdrawals/{tx_id}/approve", headers=headers)
        completed = client.post(
            f"{API}/admin/withdrawals/{tx_id}/complete",
            json={"tx_hash": "0xOUT"},
            headers=headers,
        )
        rejected = client.post(f"{API}/admin/withdrawals/{tx_id}/reject", headers=headers)

        assert [t["id"] for t in listed.json()] == [tx_id]
        assert approved.json()["status"] == "approved"
        assert completed.json()["status"] == "completed"
        assert rejected.status_code == 409
        assert rejected.json()["code"] == "invalid_transition"
        assert balance_of(buyer.id) == Decimal("60")

    def test_withdrawal_rejection_refunds(
        self, client, buyer, admin, auth_headers, balance_of
    ) -> None:
        tx_id = self._withdrawal(client, buyer, auth_headers)
        response = client.post(
            f"{API}/admin/withdrawals/{tx_id}/reject",
            json={"reason": "Address blacklisted"},
            headers=auth_headers(admin),
        )
        assert response.json()["rejection_reason"] == "Address blacklisted"
        assert balance_of(buyer.id) == Decimal("100")

    def test_deposit_review(self, client, buyer, admin, auth_headers, balance_of) -> None:
        tx_id = self._deposit(client, buyer, auth_headers)
        headers = auth_headers(admin)

        pending = client.get(
            f"{API}/admin/deposits", params={"pending_only": "true"}, headers=headers
        )
        verified = client.post(f"{API}/admin/deposits/{tx_id}/verify", headers=headers)
        approved = client.post(f"{API}/admin/deposits/{tx_id}/approve", headers=headers)
        still_pending = client.get(
            f"{API}/admin/deposits", params={"pending_only": "true"}, headers=headers
        )

        assert [t["id"] for t in pending.json()] == [tx_id]
        assert verified.json()["valid"] is True
        assert verified.json()["details"]["sender"] == "TSenderAddress"
        assert approved.json()["status"] == "completed"
        assert still_pending.json() == []
        assert balance_of(buyer.id) == Decimal("150")

    def test_verify_with_explorer_down(
        self, client, buyer, admin, auth_headers, verifier, balance_of
    ) -> None:
        tx_id = self._deposit(client, buyer, auth_headers)
        verifier.verify = MagicMock(
            side_effect=UpstreamUnavailableError("TronScan", "connect timeout")
        )

        response = client.post(
            f"{API}/admin/deposits/{tx_id}/verify", headers=auth_headers(admin)
        )

        assert response.status_code == 503
        assert response.json() == {
            "error": "TronScan unavailable",
            "code": "upstream_unavailable",
        }
        assert balance_of(buyer.id) == Decimal("100")

    def test_deposit_rejection(self, client, buyer, admin, auth_headers, balance_of) -> None:
        tx_id = self._deposit(client, buyer, auth_headers)
        response = client.post(
            f"{API}/admin/deposits/{tx_id}/reject", headers=auth_headers(admin)
        )
        assert response.json()["status"] == "failed"
        assert balance_of(buyer.id) == Decimal("100")

    def test_unknown_transaction(self, client, admin, auth_headers) -> None:
        response = client.post(
            f"{API}/admin/deposits/{uuid4()}/approve", headers=auth_headers(admin)
        )
        assert response.status_code == 404
        assert response.json()["code"] == "transaction_not_found"

    def test_transactions_of_one_user(self, client, buyer, admin, auth_headers) -> None:
        deposit_id = self._deposit(client, buyer, auth_headers)
        withdrawal_id = self._withdrawal(client, buyer, auth_headers)
        url = f"{API}/admin/transactions/{buyer.id}"

        everything = client.get(url, headers=auth_headers(admin))
        deposits = client.get(url, params={"type": "Deposit"}, headers=auth_headers(admin))

        assert {t["id"] for t in everything.json()} == {deposit_id, withdrawal_id}
        assert [t["id"] for t in deposits.json()] == [deposit_id]

    def test_transactions_of_unknown_user(self, client, admin, auth_headers) -> None:
        response = client.get(
            f"{API}/admin/transactions/{uuid4()}", headers=auth_headers(admin)
        )
        assert response.status_code == 404
        assert response.json()["code"] == "user_not_found"

    def test_unknown_transaction_type(self, client, buyer, admin, auth_headers) -> None:
        response = client.get(
            f"{API}/admin/transactions/{buyer.id}",
            params={"type": "Gift"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422
