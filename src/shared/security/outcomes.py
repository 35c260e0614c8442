"""Typed outcomes returned by the anti-abuse checks and the submission pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class RouteClass(str, Enum):
    """Protected public write route. Selects the rate-limit bucket and the checks that apply."""
    CONTACT = "contact"
    TESTIMONIAL = "testimonial"
    CHAT = "chat"
    LOGIN = "login"  # Rate limited only, no submission checks


class RejectionCategory(str, Enum):
    """Caller-facing error taxonomy."""
    QUOTA_EXCEEDED = "quota_exceeded"
    VALIDATION_REJECTED = "validation_rejected"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL_ERROR = "internal_error"


class VerificationReason(str, Enum):
    SUCCESS = "success"
    TOKEN_MISSING = "token_missing"
    TOKEN_INVALID = "token_invalid"
    SERVICE_UNAVAILABLE = "service_unavailable"


@dataclass(frozen=True)
class CheckResult:
    """Pass/fail result of a local heuristic. `reason` is for logs only."""
    passed: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "CheckResult":
        return cls(passed=True)

    @classmethod
    def fail(cls, reason: str) -> "CheckResult":
        return cls(passed=False, reason=reason)


@dataclass(frozen=True)
class VerificationOutcome:
    verified: bool
    reason: VerificationReason
    error_codes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Accepted:
    """Submission passed every check; `payload` has the control fields removed."""
    payload: Dict[str, Any]

    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    """
    Submission refused.

    `message` is safe to show the caller. `detail` names the check that fired and
    must only ever be logged.
    """
    category: RejectionCategory
    message: str
    detail: str
    verification_reason: Optional[VerificationReason] = None

    @property
    def accepted(self) -> bool:
        return False
