"""Global enums — must match DB CHECK constraints exactly.

See alembic/versions for the corresponding CHECK clauses.
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Tier(str, Enum):
    FREE = "free"
    PAID = "paid"


class TransactionType(str, Enum):
    EARN = "earn"
    SPEND = "spend"
    GRANT = "grant"


class TransactionReason(str, Enum):
    REFERRAL_BONUS = "referral_bonus"
    REFERRED_USER_BONUS = "referred_user_bonus"
    CARD_PAYMENT = "card_payment"
    ADMIN_GRANT = "admin_grant"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    UPGRADE_TO_PAID = "upgrade_to_paid"
    CARD_ENTITLEMENT_PURCHASE = "card_entitlement_purchase"


# Fixed, not caller-extensible
SPEND_REASON_ALLOW_LIST: frozenset[str] = frozenset({
    TransactionReason.CARD_ENTITLEMENT_PURCHASE.value,  # user-initiated
    TransactionReason.ADMIN_GRANT.value,                # admin-initiated
    TransactionReason.MANUAL_ADJUSTMENT.value,          # admin-initiated
})

ADMIN_SPEND_REASONS: frozenset[str] = frozenset({
    TransactionReason.ADMIN_GRANT.value,
    TransactionReason.MANUAL_ADJUSTMENT.value,
})

# Reasons a manual grant may carry; earn reasons belong to their own flows
ADMIN_GRANT_REASONS: frozenset[str] = frozenset({
    TransactionReason.ADMIN_GRANT.value,
    TransactionReason.MANUAL_ADJUSTMENT.value,
})


class CardType(str, Enum):
    PRODUCT = "product"
    SERVICE = "service"
    BANNER = "banner"


class CodeKind(str, Enum):
    SLOT = "slot"
    PAYMENT_ACTIVATION = "payment_activation"


class CodeStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class EntitlementType(str, Enum):
    PRODUCT = "product"
    SERVICE = "service"


class EntitlementStatus(str, Enum):
    AVAILABLE = "available"
    CONSUMED = "consumed"


class EntitlementSource(str, Enum):
    PURCHASE = "purchase"
    REFERRAL_MIGRATION = "referral_migration"
    ADMIN_MIGRATION = "admin_migration"
    LEGACY_MIGRATION = "legacy_migration"


class AuditAction(str, Enum):
    ALBA_GRANT = "alba_grant"
    ALBA_DEDUCT = "alba_deduct"
