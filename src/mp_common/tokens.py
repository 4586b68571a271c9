"""Opaque single-use tokens and event identifiers.

Possession of a code token is the only redemption credential, so tokens
come from ``secrets`` (16 random bytes = 128 bits), never from a
predictable generator.
"""

import secrets
import uuid

from src.mp_common.enums import CodeKind

TOKEN_BYTES = 16

_PREFIXES: dict[str, str] = {
    CodeKind.SLOT.value: "SLOT-",
    CodeKind.PAYMENT_ACTIVATION.value: "ACT-",
}


def generate_code_token(kind: str) -> str:
    """SLOT-3F9A... / ACT-0B1C... — prefix + 32 upper-case hex chars."""
    return f"{_PREFIXES[kind]}{secrets.token_hex(TOKEN_BYTES).upper()}"


def generate_event_id(prefix: str) -> str:
    """Globally unique event identifier, e.g. ``ent_5d41...``."""
    return f"{prefix}_{uuid.uuid4().hex}"
