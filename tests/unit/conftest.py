"""Fixtures wiring services to the in-memory store."""

import pytest
from fakes import FakeSession, InMemoryStore

from src.mp_codes.application.service import CodeService
from src.mp_entitlement.application.service import EntitlementService
from src.mp_ledger.application.service import LedgerService
from src.mp_referral.application.service import ReferralService
from src.mp_rules.application.service import RulesService


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def db() -> FakeSession:
    return FakeSession()


@pytest.fixture
def ledger(store: InMemoryStore) -> LedgerService:
    return LedgerService(repo=store, page_limit=100)


@pytest.fixture
def codes(store: InMemoryStore) -> CodeService:
    return CodeService(repo=store, base_slots=2, max_batch=500, list_limit=100)


@pytest.fixture
def entitlements(store: InMemoryStore, ledger: LedgerService) -> EntitlementService:
    return EntitlementService(ledger=ledger, repo=store, price=30)


@pytest.fixture
def referrals(store: InMemoryStore, ledger: LedgerService) -> ReferralService:
    return ReferralService(ledger=ledger, repo=store, referrer_bonus=10, referred_bonus=5)


@pytest.fixture
def rules(store: InMemoryStore) -> RulesService:
    return RulesService(repo=store, base_slots=2)
