"""Structured operation result.

Every fallible service operation returns either a success value or a
failure carrying an HTTP-equivalent status, a stable error code and a
message. Callers map it to a transport response without inspecting
exception types.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from src.mp_common.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class OpResult(Generic[T]):
    ok: bool
    value: T | None = None
    status: int = 200
    code: int = 0
    message: str = "success"
    replayed: bool = False  # idempotent replay: success, no new side effect

    @classmethod
    def success(
        cls, value: T, message: str = "success", replayed: bool = False
    ) -> "OpResult[T]":
        return cls(ok=True, value=value, message=message, replayed=replayed)

    @classmethod
    def fail(cls, error: AppError) -> "OpResult[T]":
        return cls(
            ok=False,
            status=error.http_status,
            code=error.code,
            message=error.message,
        )

    @classmethod
    def fail_from(cls, other: "OpResult[Any]") -> "OpResult[T]":
        """Re-type a failure coming from a nested operation."""
        return cls(ok=False, status=other.status, code=other.code, message=other.message)

    def unwrap(self) -> T:
        """Return the value or raise the failure as an AppError."""
        if not self.ok or self.value is None:
            raise AppError(self.code, self.message, self.status)
        return self.value
