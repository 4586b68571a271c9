"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Ledger (ALBA balance)
  3xxx: Code registry
  4xxx: Entitlement
  5xxx: Referral
  6xxx: Rules gate (slots / edits)
  9xxx: System

Routine business failures are wrapped into an OpResult by the services
(see src/mp_common/result.py); only contract errors and guard failures
are raised.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Unauthorized", 401)


class NotVerifiedError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email verification required", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1003, f"User not found: {user_id}", 404)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Admin role required", 403)


# --- 2xxx: Ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient ALBA balance: required {required}, available {available}",
            400,
        )


class ForbiddenReasonError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(2002, f"Reason not allowed: {reason}", 403)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Amount must be positive, got {amount}", 400)


# --- 3xxx: Codes ---

class CodeNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(3001, "Code not found", 404)


class CodeExpiredError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "Code expired", 400)


class InvalidCodeKindError(AppError):
    def __init__(self, expected: str) -> None:
        super().__init__(3003, f"Not a {expected} code", 400)


class InvalidCodeStateError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Code not usable: {detail}", 400)


class CodeConflictError(AppError):
    def __init__(self) -> None:
        super().__init__(3005, "Code already used", 409)


class CodeForbiddenError(AppError):
    def __init__(self) -> None:
        super().__init__(3006, "Code not reserved for this user", 403)


class InvalidCodeRequestError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3007, f"Invalid code request: {detail}", 400)


# --- 4xxx: Entitlement ---

class InvalidEntitlementTypeError(AppError):
    def __init__(self, entitlement_type: str) -> None:
        super().__init__(4001, f"Invalid entitlement type: {entitlement_type}", 400)


class EntitlementNotFoundError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Entitlement not found: {detail}", 404)


class AlreadyConsumedError(AppError):
    def __init__(self, entitlement_id: str) -> None:
        super().__init__(4003, f"Entitlement already consumed: {entitlement_id}", 409)


# --- 5xxx: Referral ---

class SelfReferralError(AppError):
    def __init__(self) -> None:
        super().__init__(5001, "Cannot refer yourself", 400)


class ReferralAlreadySetError(AppError):
    def __init__(self) -> None:
        super().__init__(5002, "Referrer already set", 409)


class ReferrerNotFoundError(AppError):
    def __init__(self, referrer_id: str) -> None:
        super().__init__(5003, f"Referrer not found: {referrer_id}", 404)


# --- 6xxx: Rules ---

class SlotLimitReachedError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "Slot limit reached. Redeem a slot code.", 403)


class EditLimitReachedError(AppError):
    def __init__(self, limit: int) -> None:
        super().__init__(6002, f"Edit limit reached ({limit}).", 403)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ServiceUnavailableError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "Service temporarily unavailable", 503)
