"""
Submission pipeline for public write endpoints.

Runs the anti-abuse checks for a route class in a fixed order, stops at the
first failure, and maps every outcome to a caller-safe rejection. On success
the internal control fields are removed so they never reach storage.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from fastapi import HTTPException, status

from src.shared.security.disposable_email import DISPOSABLE_EMAIL_DOMAINS, check_disposable_email
from src.shared.security.honeypot import CONTACT_HONEYPOT_FIELDS, TESTIMONIAL_HONEYPOT_FIELDS, check_honeypot
from src.shared.security.identity import CLIENT_ID_BODY_FIELD
from src.shared.security.outcomes import (
    Accepted,
    Rejected,
    RejectionCategory,
    RouteClass,
    VerificationReason,
)
from src.shared.security.policy import SecurityPolicy
from src.shared.security.rate_limit import RateLimitDecision, rate_limit_headers
from src.shared.security.timing import REASON_INVALID_TOKEN, check_submission_timing
from src.shared.security.verification import ChallengeVerifier

CHALLENGE_TOKEN_FIELDS = ("turnstile_token", "challenge_token", "cf-turnstile-response")
SUBMISSION_TOKEN_FIELDS = ("submission_token", "_t")

# Caller-facing messages. Deliberately silent about which heuristic fired.
MESSAGE_VERIFICATION_FAILED = "Verification failed. Please try again."
MESSAGE_VERIFICATION_REQUIRED = "Please complete the verification challenge and try again."
MESSAGE_SERVICE_UNAVAILABLE = "Verification is temporarily unavailable. Please try again later."
MESSAGE_INTERNAL_ERROR = "An unexpected error occurred. Please try again later."
MESSAGE_QUOTA_EXCEEDED = "Too many requests. Please wait before trying again."

SubmissionResult = Union[Accepted, Rejected]


@dataclass(frozen=True)
class RouteRules:
    """Which checks apply to a route class."""
    honeypot_fields: Tuple[str, ...] = ()
    check_email: bool = False
    check_timing: bool = False


ROUTE_RULES: Dict[RouteClass, RouteRules] = {
    RouteClass.CONTACT: RouteRules(honeypot_fields=CONTACT_HONEYPOT_FIELDS, check_email=True, check_timing=True),
    RouteClass.TESTIMONIAL: RouteRules(honeypot_fields=TESTIMONIAL_HONEYPOT_FIELDS, check_email=True, check_timing=True),
    RouteClass.CHAT: RouteRules(),
}


def _first_value(payload: Mapping[str, Any], names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = payload.get(name)
        if isinstance(value, str) and value.strip():
            return value
    return None


def control_fields_for(route_class: RouteClass) -> FrozenSet[str]:
    """Every field that steers the pipeline and must never be persisted."""
    rules = ROUTE_RULES[route_class]
    return frozenset(
        rules.honeypot_fields
        + CHALLENGE_TOKEN_FIELDS
        + SUBMISSION_TOKEN_FIELDS
        + (CLIENT_ID_BODY_FIELD,)
    )


def strip_control_fields(route_class: RouteClass, payload: Mapping[str, Any]) -> Dict[str, Any]:
    internal = control_fields_for(route_class)
    return {key: value for key, value in payload.items() if key not in internal}


def _validation_rejected(detail: str) -> Rejected:
    return Rejected(
        category=RejectionCategory.VALIDATION_REJECTED,
        message=MESSAGE_VERIFICATION_FAILED,
        detail=detail,
    )


class SubmissionPipeline:
    """Sequences the anti-abuse checks for one public submission."""

    def __init__(
        self,
        policy: SecurityPolicy,
        verifier: ChallengeVerifier,
        disposable_domains: FrozenSet[str] = DISPOSABLE_EMAIL_DOMAINS,
    ):
        self.policy = policy
        self.verifier = verifier
        self.disposable_domains = disposable_domains

    async def process(
        self,
        route_class: RouteClass,
        raw_payload: Mapping[str, Any],
        identity_key: str,
        remote_ip: Optional[str] = None,
    ) -> SubmissionResult:
        """
        Evaluate a submission.

        Contact and testimonial: honeypot, disposable email (when an email is
        present), challenge verification, timing. Chat: challenge verification only.
        Never raises; unexpected errors come back as an INTERNAL_ERROR rejection.
        """
        try:
            result = await self._run_checks(route_class, raw_payload, remote_ip)
        except Exception as e:
            logging.error(
                f"Submission pipeline error for {route_class.value} from {identity_key}: {str(e)}",
                exc_info=True,
            )
            return Rejected(
                category=RejectionCategory.INTERNAL_ERROR,
                message=MESSAGE_INTERNAL_ERROR,
                detail=f"exception:{type(e).__name__}",
            )

        if isinstance(result, Rejected):
            log = logging.error if result.category == RejectionCategory.SERVICE_UNAVAILABLE else logging.warning
            log(f"Rejected {route_class.value} submission from {identity_key}: {result.detail}")
            return result

        logging.info(f"Accepted {route_class.value} submission from {identity_key}")
        return result

    async def _run_checks(
        self,
        route_class: RouteClass,
        payload: Mapping[str, Any],
        remote_ip: Optional[str],
    ) -> SubmissionResult:
        rules = ROUTE_RULES[route_class]

        if rules.honeypot_fields:
            honeypot = check_honeypot(payload, rules.honeypot_fields)
            if not honeypot.passed:
                return _validation_rejected(honeypot.reason)

        if rules.check_email and payload.get("email"):
            disposable = check_disposable_email(payload.get("email"), self.disposable_domains)
            if not disposable.passed:
                return _validation_rejected(disposable.reason)

        outcome = await self.verifier.verify(_first_value(payload, CHALLENGE_TOKEN_FIELDS), remote_ip)
        if not outcome.verified:
            if outcome.reason == VerificationReason.SERVICE_UNAVAILABLE:
                return Rejected(
                    category=RejectionCategory.SERVICE_UNAVAILABLE,
                    message=MESSAGE_SERVICE_UNAVAILABLE,
                    detail=outcome.reason.value,
                    verification_reason=outcome.reason,
                )
            message = (
                MESSAGE_VERIFICATION_REQUIRED
                if outcome.reason == VerificationReason.TOKEN_MISSING
                else MESSAGE_VERIFICATION_FAILED
            )
            return Rejected(
                category=RejectionCategory.VALIDATION_REJECTED,
                message=message,
                detail=outcome.reason.value,
                verification_reason=outcome.reason,
            )

        if rules.check_timing:
            timing = check_submission_timing(
                _first_value(payload, SUBMISSION_TOKEN_FIELDS),
                self.policy.min_submission_ms,
            )
            if not timing.passed:
                if timing.reason == REASON_INVALID_TOKEN and not self.policy.reject_invalid_timing_token:
                    logging.warning(f"Ignoring invalid submission token on {route_class.value} submission")
                else:
                    return _validation_rejected(f"timing:{timing.reason}")

        return Accepted(payload=strip_control_fields(route_class, payload))


def raise_for_rejection(result: Rejected, headers: Optional[Dict[str, str]] = None) -> None:
    """
    Map a pipeline rejection to the HTTP error returned to the caller.

    `headers` carries the RateLimit-* headers of the attempt, which already counted.
    """
    if result.category == RejectionCategory.SERVICE_UNAVAILABLE:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif result.category == RejectionCategory.INTERNAL_ERROR:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    elif result.verification_reason in (VerificationReason.TOKEN_MISSING, VerificationReason.TOKEN_INVALID):
        status_code = status.HTTP_403_FORBIDDEN
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    raise HTTPException(
        status_code=status_code,
        detail={
            "error": result.verification_reason.value if result.verification_reason else result.category.value,
            "message": result.message,
        },
        headers=headers,
    )


def raise_quota_exceeded(decision: RateLimitDecision) -> None:
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": RejectionCategory.QUOTA_EXCEEDED.value,
            "message": MESSAGE_QUOTA_EXCEEDED,
            "retry_after_seconds": decision.retry_after,
        },
        headers=rate_limit_headers(decision),
    )
