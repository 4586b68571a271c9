"""Domain view of a marketplace user — pure dataclass, no SQLAlchemy dependency.

Only the columns the ALBA subsystem reads or owns are mapped here.
"""

from dataclasses import dataclass

from src.mp_common.enums import Tier, UserRole


@dataclass
class UserAccount:
    id: str
    role: str = UserRole.USER.value
    email_verified: bool = False
    alba_balance: int = 0             # whole ALBA units, never negative
    slots_total: int | None = None    # None → settings.BASE_SLOTS
    slots_used: int = 0
    referred_by: str | None = None    # write-once
    ref_bonus_granted: bool = False   # write-once
    tier: str = Tier.FREE.value
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def effective_slots_total(self, base_slots: int) -> int:
        return self.slots_total if self.slots_total is not None else base_slots
