"""Wiring of the submission pipeline into FastAPI routes."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from src.shared.security.disposable_email import DISPOSABLE_EMAIL_DOMAINS
from src.shared.security.identity import get_client_ip, resolve_identity
from src.shared.security.outcomes import Rejected, RouteClass
from src.shared.security.pipeline import SubmissionPipeline, raise_for_rejection, raise_quota_exceeded
from src.shared.security.policy import SecuritySettings
from src.shared.security.rate_limit import (
    FixedWindowRateLimiter,
    InMemoryRateLimitStore,
    RateLimitDecision,
    RateLimitStore,
    rate_limit_headers,
)
from src.shared.security.verification import ChallengeVerifier

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass
class SecurityComponents:
    """Everything a protected route needs. Lives on app.state.security."""
    settings: SecuritySettings
    rate_limiter: FixedWindowRateLimiter
    pipeline: SubmissionPipeline


def build_security(
    settings: SecuritySettings,
    store: Optional[RateLimitStore] = None,
    verifier: Optional[ChallengeVerifier] = None,
) -> SecurityComponents:
    """Construct the limiter, verifier and pipeline once from settings."""
    verifier = verifier or ChallengeVerifier(
        policy=settings.policy,
        secret_key=settings.turnstile_secret_key,
        verify_url=settings.turnstile_verify_url,
        timeout_seconds=settings.verification_timeout_seconds,
    )
    pipeline = SubmissionPipeline(
        policy=settings.policy,
        verifier=verifier,
        disposable_domains=DISPOSABLE_EMAIL_DOMAINS | settings.extra_disposable_domains,
    )
    limiter = FixedWindowRateLimiter(store or InMemoryRateLimitStore())
    return SecurityComponents(settings=settings, rate_limiter=limiter, pipeline=pipeline)


def configure_security(app: FastAPI, components: SecurityComponents) -> None:
    app.state.security = components
    policy = components.settings.policy
    logging.info(
        f"Submission security configured (production={components.settings.production}, "
        f"require_verification={policy.require_verification}, "
        f"fail_open_on_service_error={policy.fail_open_on_service_error})"
    )


def get_security(request: Request) -> SecurityComponents:
    components = getattr(request.app.state, "security", None)
    if components is None:
        # Lazily configure from the environment if startup did not
        components = build_security(SecuritySettings.from_env())
        configure_security(request.app, components)
    return components


def _consume_quota(
    request: Request,
    route_class: RouteClass,
    body: Optional[Mapping[str, Any]],
) -> Tuple[str, RateLimitDecision]:
    components = get_security(request)
    identity_key = resolve_identity(request, body)
    decision = components.rate_limiter.check_and_consume(
        route_class,
        identity_key,
        components.settings.rate_limit_for(route_class),
    )
    if not decision.allowed:
        raise_quota_exceeded(decision)
    return identity_key, decision


def enforce_rate_limit(
    request: Request,
    response: Response,
    route_class: RouteClass,
    body: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Count the attempt against the caller's quota. Raises 429 once exhausted.

    Returns the resolved identity key so the caller does not resolve it twice.
    """
    identity_key, decision = _consume_quota(request, route_class, body)
    response.headers.update(rate_limit_headers(decision))
    return identity_key


async def guard_submission(
    request: Request,
    response: Response,
    route_class: RouteClass,
    payload: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Rate limit, then run the submission pipeline for a public write request.

    Returns the payload with control fields stripped, or raises HTTPException
    with a caller-safe message.
    """
    identity_key, decision = _consume_quota(request, route_class, payload)
    quota_headers = rate_limit_headers(decision)
    response.headers.update(quota_headers)
    components = get_security(request)
    result = await components.pipeline.process(
        route_class,
        payload,
        identity_key,
        remote_ip=get_client_ip(request),
    )
    if isinstance(result, Rejected):
        raise_for_rejection(result, headers=quota_headers)
    return result.payload


def parse_submission(schema: Type[SchemaT], payload: Mapping[str, Any]) -> SchemaT:
    """Validate a cleaned payload, reporting errors the same way as FastAPI body validation."""
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))
