"""Unit tests for CodeService: issuance, lazy expiry and single redemption."""

import asyncio
from datetime import timedelta

import pytest
from fakes import FakeSession, InMemoryStore

from src.mp_codes.application.service import CodeService
from src.mp_common.datetime_utils import utc_now
from src.mp_common.errors import InvalidCodeRequestError, UserNotFoundError
from src.mp_gateway.user.models import UserAccount


def _verified(user_id: str) -> UserAccount:
    return UserAccount(id=user_id, email_verified=True)


class TestCreateCodes:
    async def test_creates_active_prefixed_codes(
        self, codes: CodeService, db: FakeSession
    ) -> None:
        created = await codes.create_codes(db, 3, "slot", "product", created_by="admin")

        assert len(created) == 3
        assert all(c.status == "active" for c in created)
        assert all(c.code.startswith("SLOT-") and len(c.code) == 37 for c in created)
        assert len({c.code for c in created}) == 3
        assert db.commits == 1

    async def test_activation_kind_uses_act_prefix(
        self, codes: CodeService, db: FakeSession
    ) -> None:
        (code,) = await codes.create_codes(db, 1, "payment_activation", "service")
        assert code.code.startswith("ACT-")

    @pytest.mark.parametrize(
        "count,kind,code_type",
        [(0, "slot", "product"), (501, "slot", "product"), (1, "coupon", "product"), (1, "slot", "car")],
    )
    async def test_rejects_bad_requests(
        self, codes: CodeService, db: FakeSession, count: int, kind: str, code_type: str
    ) -> None:
        with pytest.raises(InvalidCodeRequestError):
            await codes.create_codes(db, count, kind, code_type)

    async def test_list_codes_is_capped(
        self, store: InMemoryStore, db: FakeSession
    ) -> None:
        svc = CodeService(repo=store, list_limit=2)
        await svc.create_codes(db, 5, "slot", "banner")
        assert len(await svc.list_codes(db, limit=10)) == 2


class TestRedeemSlotCode:
    async def test_success_marks_used_records_usage_and_adds_slot(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1", email_verified=True)
        store.add_code("SLOT-AAA", "slot")

        result = await codes.redeem_slot_code(db, _verified("u1"), " SLOT-AAA ", ip="1.2.3.4", user_agent="ua")

        assert result.ok
        code = store.code_by_value("SLOT-AAA")
        assert (code.status, code.used_by) == ("used", "u1")
        assert code.used_at is not None
        (usage,) = store.usages
        assert (usage.user_id, usage.ip, usage.user_agent) == ("u1", "1.2.3.4", "ua")
        assert store.users["u1"].slots_total == 3

    async def test_unknown_code_is_404(self, codes: CodeService, db: FakeSession) -> None:
        result = await codes.redeem_slot_code(db, _verified("u1"), "SLOT-NOPE")
        assert (result.status, result.code) == (404, 3001)

    async def test_expired_code_transitions_lazily(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        store.add_code("SLOT-OLD", "slot", expires_at=utc_now() - timedelta(seconds=1))

        first = await codes.redeem_slot_code(db, _verified("u1"), "SLOT-OLD")
        second = await codes.redeem_slot_code(db, _verified("u1"), "SLOT-OLD")

        assert (first.status, first.code) == (400, 3002)
        assert second.code == 3002
        assert store.code_by_value("SLOT-OLD").status == "expired"
        assert store.usages == []

    async def test_used_code_is_never_rewritten_to_expired(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_code(
            "SLOT-USED", "slot", status="used", used_by="u0", used_at=utc_now(),
            expires_at=utc_now() - timedelta(days=1),
        )

        result = await codes.redeem_slot_code(db, _verified("u1"), "SLOT-USED")

        assert result.code == 3002
        assert store.code_by_value("SLOT-USED").status == "used"

    async def test_wrong_kind_and_wrong_state(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_code("ACT-1", "payment_activation")
        store.add_code("SLOT-USED", "slot", status="used", used_by="u0", used_at=utc_now())

        wrong_kind = await codes.redeem_slot_code(db, _verified("u1"), "ACT-1")
        wrong_state = await codes.redeem_slot_code(db, _verified("u1"), "SLOT-USED")

        assert (wrong_kind.status, wrong_kind.code) == (400, 3003)
        assert (wrong_state.status, wrong_state.code) == (400, 3004)

    async def test_concurrent_redeems_have_exactly_one_winner(
        self, store: InMemoryStore, codes: CodeService
    ) -> None:
        users = [f"u{i}" for i in range(8)]
        for uid in users:
            store.add_user(uid, email_verified=True)
        store.add_code("SLOT-RACE", "slot")

        results = await asyncio.gather(*[
            codes.redeem_slot_code(FakeSession(), _verified(uid), "SLOT-RACE") for uid in users
        ])

        winners = [uid for uid, r in zip(users, results) if r.ok]
        assert len(winners) == 1
        assert all(r.status == 409 and r.code == 3005 for r in results if not r.ok)
        assert store.code_by_value("SLOT-RACE").used_by == winners[0]
        assert len(store.usages) == 1
        assert sum((store.users[u].slots_total or 2) - 2 for u in users) == 1

    async def test_duplicate_usage_rolls_back_the_whole_unit(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        code = store.add_code("SLOT-DUP", "slot")
        await store.insert_usage(FakeSession(), "u1", code, None, None, utc_now())

        result = await codes.redeem_slot_code(db, _verified("u1"), "SLOT-DUP")

        assert result.code == 3005
        assert store.code_by_value("SLOT-DUP").status == "active"
        assert store.users["u1"].slots_total is None
        assert db.rollbacks == 1


class TestPaymentActivation:
    async def test_issue_and_consume_sets_paid_tier(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        issued = await codes.issue_payment_activation_code(db, "u1", "product", "card-7", created_by="admin")

        result = await codes.consume_payment_activation_code(db, "u1", issued.code)

        assert result.ok
        assert result.unwrap().card_id == "card-7"
        assert store.users["u1"].tier == "paid"
        assert store.usages[0].card_id == "card-7"

    async def test_reserved_for_someone_else_is_forbidden(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        store.add_user("u2")
        issued = await codes.issue_payment_activation_code(db, "u1", "service", "card-1")

        result = await codes.consume_payment_activation_code(db, "u2", issued.code)

        assert (result.status, result.code) == (403, 3006)
        assert store.code_by_value(issued.code).status == "active"
        assert store.users["u2"].tier == "free"

    async def test_unbound_code_is_invalid_state(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_code("ACT-LOOSE", "payment_activation", reserved_for_user_id="u1")

        result = await codes.consume_payment_activation_code(db, "u1", "ACT-LOOSE")

        assert (result.status, result.code) == (400, 3004)

    async def test_second_consume_fails(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        issued = await codes.issue_payment_activation_code(db, "u1", "product", "card-7")

        await codes.consume_payment_activation_code(db, "u1", issued.code)
        again = await codes.consume_payment_activation_code(db, "u1", issued.code)

        assert again.code == 3004

    async def test_issue_requires_known_card_type(
        self, codes: CodeService, db: FakeSession
    ) -> None:
        with pytest.raises(InvalidCodeRequestError):
            await codes.issue_payment_activation_code(db, "u1", "vehicle", "card-1")

    async def test_issue_for_unknown_user_is_404(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        with pytest.raises(UserNotFoundError) as exc:
            await codes.issue_payment_activation_code(db, "ghost", "product", "card-1")

        assert (exc.value.http_status, exc.value.code) == (404, 1003)
        assert store.codes == {}

    async def test_expired_activation_code_transitions_lazily(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        store.add_code(
            "ACT-OLD", "payment_activation", reserved_for_user_id="u1", card_id="card-1",
            expires_at=utc_now() - timedelta(seconds=1),
        )

        result = await codes.consume_payment_activation_code(db, "u1", "ACT-OLD")

        assert (result.status, result.code) == (400, 3002)
        assert store.code_by_value("ACT-OLD").status == "expired"
        assert store.users["u1"].tier == "free"
        assert store.usages == []

    async def test_concurrent_consumes_have_exactly_one_winner(
        self, store: InMemoryStore, codes: CodeService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        issued = await codes.issue_payment_activation_code(db, "u1", "product", "card-7")

        results = await asyncio.gather(*[
            codes.consume_payment_activation_code(FakeSession(), "u1", issued.code)
            for _ in range(6)
        ])

        assert sum(r.ok for r in results) == 1
        assert all(r.status == 409 and r.code == 3005 for r in results if not r.ok)
        assert store.code_by_value(issued.code).used_by == "u1"
        assert len(store.usages) == 1
        assert store.users["u1"].tier == "paid"
