"""Cross-cutting guards shared by the ALBA services and listing code.

These raise AppError subclasses: they are preconditions checked before a
use case starts, not outcomes of one.
"""

from config.settings import settings
from src.mp_common.enums import Tier
from src.mp_common.errors import EditLimitReachedError, NotVerifiedError, UnauthorizedError
from src.mp_gateway.user.models import UserAccount
from src.mp_rules.domain.models import Card


def assert_verified(user: UserAccount | None) -> None:
    if user is None:
        raise UnauthorizedError()
    if user.email_verified is not True:
        raise NotVerifiedError()


def edit_limit_for_tier(
    tier: str | None,
    free_limit: int | None = None,
    paid_limit: int | None = None,
) -> int:
    if tier == Tier.PAID.value:
        return settings.PAID_TIER_EDIT_LIMIT if paid_limit is None else paid_limit
    return settings.FREE_TIER_EDIT_LIMIT if free_limit is None else free_limit


def assert_edit_allowed(
    card: Card,
    free_limit: int | None = None,
    paid_limit: int | None = None,
) -> None:
    limit = edit_limit_for_tier(card.tier or Tier.FREE.value, free_limit, paid_limit)
    if card.edit_count >= limit:
        raise EditLimitReachedError(limit)
