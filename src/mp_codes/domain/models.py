"""Domain models for mp_codes — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class NewCode:
    """Insert payload; status always starts ``active``."""

    code: str
    kind: str                         # CodeKind value
    type: str                         # CardType value
    expires_at: datetime | None = None
    created_by: str | None = None
    reserved_for_user_id: str | None = None
    card_id: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class Code:
    id: str
    code: str
    kind: str
    type: str
    status: str                       # CodeStatus value
    expires_at: datetime | None = None
    created_by: str | None = None
    used_by: str | None = None
    used_at: datetime | None = None
    reserved_for_user_id: str | None = None
    card_id: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class CodeUsage:
    id: int
    user_id: str
    code_id: str
    kind: str
    type: str
    ip: str | None = None
    user_agent: str | None = None
    card_id: str | None = None
    used_at: datetime | None = None
