"""Domain models for mp_rules."""

from dataclasses import dataclass

from src.mp_common.enums import Tier


@dataclass
class Card:
    """The slice of a listing the edit-limit rule needs."""

    id: str
    tier: str = Tier.FREE.value
    edit_count: int = 0
