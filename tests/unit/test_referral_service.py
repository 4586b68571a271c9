"""Unit tests for ReferralService: write-once binding and the one-time bonus."""

import asyncio

from fakes import FakeSession, InMemoryStore

from src.mp_ledger.application.service import LedgerService
from src.mp_referral.application.service import ReferralService


class TestSetReferralBinding:
    async def test_binds_once(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        store.add_user("ref")

        result = await referrals.set_referral_binding(db, "u1", "ref")

        assert result.ok
        assert store.users["u1"].referred_by == "ref"

    async def test_self_referral_is_400_even_for_unknown_user(
        self, referrals: ReferralService, db: FakeSession
    ) -> None:
        result = await referrals.set_referral_binding(db, "ghost", "ghost")
        assert (result.status, result.code) == (400, 5001)

    async def test_binding_is_immutable(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        store.add_user("a")
        store.add_user("b")
        await referrals.set_referral_binding(db, "u1", "a")

        again = await referrals.set_referral_binding(db, "u1", "b")

        assert (again.status, again.code) == (409, 5002)
        assert store.users["u1"].referred_by == "a"

    async def test_unknown_user_and_unknown_referrer(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("u1")
        missing_user = await referrals.set_referral_binding(db, "ghost", "u1")
        missing_referrer = await referrals.set_referral_binding(db, "u1", "ghost")
        assert missing_user.code == 1003
        assert (missing_referrer.status, missing_referrer.code) == (404, 5003)
        assert store.users["u1"].referred_by is None

    async def test_concurrent_bindings_keep_first_writer(
        self, store: InMemoryStore, referrals: ReferralService
    ) -> None:
        store.add_user("u1")
        for rid in ("a", "b", "c"):
            store.add_user(rid)

        results = await asyncio.gather(*[
            referrals.set_referral_binding(FakeSession(), "u1", rid) for rid in ("a", "b", "c")
        ])

        assert sum(r.ok for r in results) == 1
        assert all(r.code == 5002 for r in results if not r.ok)
        winner = next(r.unwrap() for r in results if r.ok)
        assert store.users["u1"].referred_by == winner.referred_by


class TestReferralBonus:
    async def test_pays_both_parties_with_shared_event(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("ref")
        store.add_user("u1", email_verified=True, referred_by="ref")

        paid = await referrals.grant_referral_bonus_if_eligible(db, "u1")

        assert paid is True
        assert store.balance("ref") == 10
        assert store.balance("u1") == 5
        referrer_tx, referred_tx = store.transactions
        assert (referrer_tx.type, referrer_tx.reason, referrer_tx.related_user_id) == (
            "earn", "referral_bonus", "u1"
        )
        assert referred_tx.reason == "referred_user_bonus"
        assert referrer_tx.meta["event_id"] == referred_tx.meta["event_id"]
        assert store.users["u1"].ref_bonus_granted

    async def test_second_call_is_a_no_op(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("ref")
        store.add_user("u1", email_verified=True, referred_by="ref")

        await referrals.grant_referral_bonus_if_eligible(db, "u1")
        again = await referrals.grant_referral_bonus_if_eligible(db, "u1")

        assert again is False
        assert len(store.transactions) == 2

    async def test_ineligible_users_get_nothing(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("ref")
        store.add_user("unverified", referred_by="ref")
        store.add_user("orphan", email_verified=True)
        store.add_user("selfie", email_verified=True, referred_by="selfie")

        for uid in ("unverified", "orphan", "selfie", "ghost"):
            assert await referrals.grant_referral_bonus_if_eligible(db, uid) is False
        assert store.transactions == []

    async def test_existing_bonus_only_repairs_flag(
        self,
        store: InMemoryStore,
        referrals: ReferralService,
        db: FakeSession,
    ) -> None:
        store.add_user("ref")
        store.add_user("u1", email_verified=True, referred_by="ref")
        await store.credit(FakeSession(), "ref", 10, "earn", "referral_bonus", related_user_id="u1")

        paid = await referrals.grant_referral_bonus_if_eligible(db, "u1")

        assert paid is False
        assert store.users["u1"].ref_bonus_granted
        assert len(store.transactions) == 1

    async def test_concurrent_calls_pay_exactly_once(
        self, store: InMemoryStore, referrals: ReferralService
    ) -> None:
        store.add_user("ref")
        store.add_user("u1", email_verified=True, referred_by="ref")

        results = await asyncio.gather(*[
            referrals.grant_referral_bonus_if_eligible(FakeSession(), "u1") for _ in range(6)
        ])

        assert results.count(True) == 1
        assert store.balance("ref") == 10
        assert store.balance("u1") == 5
        assert len(store.transactions) == 2

    async def test_missing_referrer_rolls_back_flag(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("u1", email_verified=True, referred_by="deleted")

        assert await referrals.grant_referral_bonus_if_eligible(db, "u1") is False
        assert not store.users["u1"].ref_bonus_granted
        assert store.transactions == []

    async def test_stats_count_referral_bonuses(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("ref")
        for uid in ("u1", "u2"):
            store.add_user(uid, email_verified=True, referred_by="ref")
            await referrals.grant_referral_bonus_if_eligible(db, uid)

        stats = await referrals.get_referral_stats(db, "ref")

        assert stats.successful_referrals == 2
        assert stats.total_alba_from_referrals == 20
        assert stats.referral_bonus_amount == 10

    async def test_admin_grant_cannot_take_the_bonus_slot(
        self,
        store: InMemoryStore,
        ledger: LedgerService,
        referrals: ReferralService,
        db: FakeSession,
    ) -> None:
        store.add_user("ref")
        store.add_user("u9")
        store.add_user("admin", role="admin", email_verified=True, referred_by="ref")

        rejected = await ledger.grant_alba(db, "u9", 5, "referral_bonus", actor_id="admin")
        paid = await referrals.grant_referral_bonus_if_eligible(db, "admin")

        assert rejected.code == 2002
        assert paid is True
        assert store.balance("ref") == 10
        assert store.users["admin"].ref_bonus_granted
        assert (await referrals.get_referral_stats(db, "u9")).successful_referrals == 0

    async def test_only_earn_rows_count_as_referral_bonus(
        self, store: InMemoryStore, referrals: ReferralService, db: FakeSession
    ) -> None:
        store.add_user("ref")
        store.add_user("u1", email_verified=True, referred_by="ref")
        await store.credit(FakeSession(), "ref", 7, "grant", "referral_bonus", related_user_id="u1")

        paid = await referrals.grant_referral_bonus_if_eligible(db, "u1")
        stats = await referrals.get_referral_stats(db, "ref")

        assert paid is True
        assert (stats.successful_referrals, stats.total_alba_from_referrals) == (1, 10)
