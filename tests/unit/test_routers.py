"""HTTP adapter tests: dependency overrides + services backed by the in-memory store."""

import uuid
from collections.abc import Iterator

import pytest
from fakes import FakeSession, InMemoryStore
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from src.main import app
from src.mp_codes.api import router as codes_api
from src.mp_codes.application.service import CodeService
from src.mp_common.database import get_db_session
from src.mp_entitlement.api import router as entitlement_api
from src.mp_entitlement.application.service import EntitlementService
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.models import UserAccount
from src.mp_ledger.api import router as ledger_api
from src.mp_ledger.application.service import LedgerService
from src.mp_referral.api import router as referral_api
from src.mp_referral.application.service import ReferralService

USER_ID = str(uuid.UUID(int=1))
ADMIN_ID = str(uuid.UUID(int=2))
REFERRER_ID = str(uuid.UUID(int=3))


@pytest.fixture
def wired(store: InMemoryStore, monkeypatch: pytest.MonkeyPatch) -> Iterator[InMemoryStore]:
    ledger = LedgerService(repo=store, page_limit=100)
    monkeypatch.setattr(ledger_api, "_service", ledger)
    monkeypatch.setattr(codes_api, "_service", CodeService(repo=store, base_slots=2))
    monkeypatch.setattr(
        entitlement_api, "_service", EntitlementService(ledger=ledger, repo=store, price=30)
    )
    monkeypatch.setattr(
        referral_api,
        "_service",
        ReferralService(ledger=ledger, repo=store, referrer_bonus=10, referred_bonus=5),
    )
    store.add_user(USER_ID, email_verified=True)
    store.add_user(ADMIN_ID, role="admin", email_verified=True)
    store.add_user(REFERRER_ID, email_verified=True)
    app.dependency_overrides[get_db_session] = FakeSession
    yield store
    app.dependency_overrides.clear()


def _login_as(store: InMemoryStore, user_id: str) -> None:
    async def _current_user() -> UserAccount:
        return store.users[user_id]

    app.dependency_overrides[get_current_user] = _current_user


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_missing_token_is_401(client: AsyncClient, wired: InMemoryStore) -> None:
    resp = await client.get("/api/v1/alba/balance")
    assert resp.status_code == 401


class TestAlbaRoutes:
    async def test_balance_and_history(self, client: AsyncClient, wired: InMemoryStore) -> None:
        wired.users[USER_ID].alba_balance = 0
        await wired.credit(FakeSession(), USER_ID, 12, "grant", "admin_grant")
        _login_as(wired, USER_ID)

        balance = await client.get("/api/v1/alba/balance")
        history = await client.get("/api/v1/alba/transactions", params={"limit": 5})

        assert balance.json()["data"] == {"user_id": USER_ID, "alba_balance": 12}
        assert balance.headers["X-Request-ID"] == balance.json()["request_id"]
        assert [t["amount"] for t in history.json()["data"]["items"]] == [12]

    async def test_grant_requires_admin(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, USER_ID)
        resp = await client.post("/api/v1/alba/grant", json={"user_id": USER_ID, "amount": 5})
        assert resp.status_code == 403
        assert resp.json()["code"] == 1005

    async def test_admin_grant_and_deduct(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, ADMIN_ID)

        grant = await client.post("/api/v1/alba/grant", json={"user_id": USER_ID, "amount": 40})
        deduct = await client.post(
            "/api/v1/alba/deduct", json={"user_id": USER_ID, "amount": 50}
        )
        reconcile = await client.get(f"/api/v1/alba/reconcile/{USER_ID}")

        assert grant.json()["data"]["alba_balance"] == 40
        assert deduct.status_code == 400 and deduct.json()["code"] == 2001
        assert reconcile.json()["data"]["consistent"] is True
        assert wired.audit_logs[0].admin_id == ADMIN_ID

    async def test_grant_rejects_earn_reasons(
        self, client: AsyncClient, wired: InMemoryStore
    ) -> None:
        _login_as(wired, ADMIN_ID)
        body = {"user_id": USER_ID, "amount": 5, "reason": "referral_bonus"}

        first = await client.post("/api/v1/alba/grant", json=body)
        second = await client.post("/api/v1/alba/grant", json=body)

        assert (first.status_code, second.status_code) == (422, 422)
        assert wired.transactions == []

    async def test_deduct_rejects_user_reasons(
        self, client: AsyncClient, wired: InMemoryStore
    ) -> None:
        _login_as(wired, ADMIN_ID)
        resp = await client.post(
            "/api/v1/alba/deduct",
            json={"user_id": USER_ID, "amount": 5, "reason": "card_entitlement_purchase"},
        )
        assert resp.status_code == 422


class TestCodeRoutes:
    async def test_create_and_redeem(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, ADMIN_ID)
        created = await client.post(
            "/api/v1/codes", json={"count": 2, "kind": "slot", "type": "product"}
        )
        token = created.json()["data"]["items"][0]["code"]

        _login_as(wired, USER_ID)
        redeemed = await client.post(
            "/api/v1/codes/redeem", json={"code": token}, headers={"user-agent": "pytest"}
        )
        again = await client.post("/api/v1/codes/redeem", json={"code": token})

        assert redeemed.status_code == 200
        assert redeemed.json()["data"]["used_by"] == USER_ID
        assert wired.usages[0].user_agent == "pytest"
        assert again.status_code == 400 and again.json()["code"] == 3004

    async def test_unverified_user_cannot_redeem(
        self, client: AsyncClient, wired: InMemoryStore
    ) -> None:
        wired.users[USER_ID].email_verified = False
        _login_as(wired, USER_ID)

        resp = await client.post("/api/v1/codes/redeem", json={"code": "SLOT-X"})

        assert resp.status_code == 403
        assert resp.json()["code"] == 1002

    async def test_unknown_code(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, USER_ID)
        resp = await client.post("/api/v1/codes/redeem", json={"code": "SLOT-NOPE"})
        assert resp.status_code == 404
        assert resp.json()["data"] is None

    async def test_activation_flow(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, ADMIN_ID)
        issued = await client.post(
            "/api/v1/codes/activation",
            json={"user_id": USER_ID, "card_type": "service", "card_id": "card-3"},
        )
        token = issued.json()["data"]["code"]

        _login_as(wired, USER_ID)
        resp = await client.post("/api/v1/codes/activate", json={"activation_code": token})

        assert resp.status_code == 200
        assert wired.users[USER_ID].tier == "paid"

    async def test_activation_for_unknown_user_is_404(
        self, client: AsyncClient, wired: InMemoryStore
    ) -> None:
        _login_as(wired, ADMIN_ID)
        resp = await client.post(
            "/api/v1/codes/activation",
            json={"user_id": str(uuid.UUID(int=99)), "card_type": "product", "card_id": "card-1"},
        )

        assert resp.status_code == 404
        assert resp.json()["code"] == 1003
        assert wired.codes == {}


class TestEntitlementRoutes:
    async def test_purchase_replay_and_listing(
        self, client: AsyncClient, wired: InMemoryStore
    ) -> None:
        wired.users[USER_ID].alba_balance = 30
        _login_as(wired, USER_ID)
        body = {"type": "product", "idempotency_key": "key-1"}

        first = await client.post("/api/v1/entitlements/purchase", json=body)
        replay = await client.post("/api/v1/entitlements/purchase", json=body)
        broke = await client.post(
            "/api/v1/entitlements/purchase", json={"type": "product", "idempotency_key": "key-2"}
        )
        listing = await client.get("/api/v1/entitlements")

        assert first.json()["data"]["transaction"]["amount"] == -30
        assert replay.status_code == 200
        assert replay.json()["message"] == "idempotent replay"
        assert replay.json()["data"]["replayed"] is True
        assert broke.status_code == 400
        assert len(listing.json()["data"]["product"]) == 1
        assert listing.json()["data"]["service"] == []

    async def test_invalid_type(self, client: AsyncClient, wired: InMemoryStore) -> None:
        wired.users[USER_ID].alba_balance = 30
        _login_as(wired, USER_ID)
        resp = await client.post("/api/v1/entitlements/purchase", json={"type": "banner"})
        assert resp.status_code == 400
        assert resp.json()["code"] == 4001


class TestReferralRoutes:
    async def test_bind_pays_verified_user_and_stats(
        self, client: AsyncClient, wired: InMemoryStore
    ) -> None:
        _login_as(wired, USER_ID)
        bound = await client.post("/api/v1/referrals/bind", json={"referrer_id": REFERRER_ID})

        _login_as(wired, REFERRER_ID)
        stats = await client.get("/api/v1/referrals/stats")

        assert bound.json()["data"] == {
            "user_id": USER_ID, "referred_by": REFERRER_ID, "bonus_paid": True
        }
        assert stats.json()["data"] == {
            "successful_referrals": 1,
            "total_alba_from_referrals": 10,
            "referral_bonus_amount": 10,
        }

    async def test_self_referral(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, USER_ID)
        resp = await client.post("/api/v1/referrals/bind", json={"referrer_id": USER_ID})
        assert resp.status_code == 400
        assert resp.json()["code"] == 5001

    async def test_rebind_conflicts(self, client: AsyncClient, wired: InMemoryStore) -> None:
        _login_as(wired, USER_ID)
        await client.post("/api/v1/referrals/bind", json={"referrer_id": REFERRER_ID})
        resp = await client.post("/api/v1/referrals/bind", json={"referrer_id": ADMIN_ID})
        assert resp.status_code == 409


class TestErrorHandlers:
    async def test_store_outage_maps_to_503(
        self, client: AsyncClient, wired: InMemoryStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def _down(*args: object, **kwargs: object) -> None:
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(wired, "list_transactions", _down)
        _login_as(wired, USER_ID)

        resp = await client.get("/api/v1/alba/transactions")

        assert resp.status_code == 503
        assert resp.json()["code"] == 9003

    async def test_unexpected_error_is_generic_500(
        self, wired: InMemoryStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def _boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("secret internals")

        monkeypatch.setattr(wired, "list_transactions", _boom)
        _login_as(wired, USER_ID)
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/api/v1/alba/transactions")

        assert resp.status_code == 500
        assert "secret" not in resp.text
        assert resp.json()["code"] == 9002
