"""Security policy and settings for public write endpoints, built once from the environment."""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from src.shared.security.outcomes import RouteClass

# Load environment variables from .env file (for local development)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, skip (fine for production)

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
DEFAULT_MIN_SUBMISSION_MS = 3000
DEFAULT_VERIFICATION_TIMEOUT_SECONDS = 5.0

PRODUCTION_ENVIRONMENTS = {"production", "prod"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logging.warning(f"Invalid integer for {name}={value!r}, using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logging.warning(f"Invalid number for {name}={value!r}, using default {default}")
        return default


def is_production_environment() -> bool:
    """Production when ENVIRONMENT/APP_ENV says so, or when running on Heroku (DYNO is set)."""
    env_name = (os.environ.get("ENVIRONMENT") or os.environ.get("APP_ENV") or "").strip().lower()
    if env_name:
        return env_name in PRODUCTION_ENVIRONMENTS
    return bool(os.environ.get("DYNO"))


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window quota for one route class."""
    window_seconds: int
    max_requests: int


DEFAULT_RATE_LIMITS: Dict[RouteClass, RateLimitConfig] = {
    RouteClass.CONTACT: RateLimitConfig(window_seconds=3600, max_requests=3),
    RouteClass.TESTIMONIAL: RateLimitConfig(window_seconds=3600, max_requests=3),
    RouteClass.CHAT: RateLimitConfig(window_seconds=900, max_requests=15),
    RouteClass.LOGIN: RateLimitConfig(window_seconds=900, max_requests=10),
}


@dataclass(frozen=True)
class SecurityPolicy:
    """
    Environment-conditioned decisions shared by every check.

    Constructed once at startup. Every call site consults this object instead of
    branching on the environment itself.
    """
    require_verification: bool
    fail_open_on_service_error: bool
    reject_invalid_timing_token: bool = True
    min_submission_ms: int = DEFAULT_MIN_SUBMISSION_MS

    @classmethod
    def for_environment(cls, production: bool, **overrides) -> "SecurityPolicy":
        values = {
            "require_verification": production,
            "fail_open_on_service_error": not production,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class SecuritySettings:
    """Everything the submission pipeline needs from configuration."""
    production: bool
    policy: SecurityPolicy
    turnstile_secret_key: Optional[str] = None
    turnstile_verify_url: str = TURNSTILE_VERIFY_URL
    verification_timeout_seconds: float = DEFAULT_VERIFICATION_TIMEOUT_SECONDS
    rate_limits: Dict[RouteClass, RateLimitConfig] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    extra_disposable_domains: FrozenSet[str] = frozenset()

    def rate_limit_for(self, route_class: RouteClass) -> RateLimitConfig:
        return self.rate_limits.get(route_class, DEFAULT_RATE_LIMITS[route_class])

    @classmethod
    def from_env(cls) -> "SecuritySettings":
        """
        Build settings from environment variables.

        Recognized variables:
            ENVIRONMENT / APP_ENV / DYNO: production detection
            TURNSTILE_SECRET_KEY: challenge verification secret
            TURNSTILE_VERIFY_URL, TURNSTILE_TIMEOUT_SECONDS
            REQUIRE_VERIFICATION, VERIFICATION_FAIL_OPEN: override the environment defaults
            REJECT_INVALID_TIMING_TOKEN, MIN_SUBMISSION_MS
            <ROUTE>_RATE_LIMIT_MAX, <ROUTE>_RATE_LIMIT_WINDOW_SECONDS for CONTACT, TESTIMONIAL, CHAT, LOGIN
            DISPOSABLE_EMAIL_DOMAINS_EXTRA: comma separated domains added to the denylist
        """
        production = is_production_environment()
        policy = SecurityPolicy(
            require_verification=_env_bool("REQUIRE_VERIFICATION", production),
            fail_open_on_service_error=_env_bool("VERIFICATION_FAIL_OPEN", not production),
            reject_invalid_timing_token=_env_bool("REJECT_INVALID_TIMING_TOKEN", True),
            min_submission_ms=_env_int("MIN_SUBMISSION_MS", DEFAULT_MIN_SUBMISSION_MS),
        )

        rate_limits = {}
        for route_class, default in DEFAULT_RATE_LIMITS.items():
            prefix = route_class.value.upper()
            rate_limits[route_class] = RateLimitConfig(
                window_seconds=_env_int(f"{prefix}_RATE_LIMIT_WINDOW_SECONDS", default.window_seconds),
                max_requests=_env_int(f"{prefix}_RATE_LIMIT_MAX", default.max_requests),
            )

        extra = os.environ.get("DISPOSABLE_EMAIL_DOMAINS_EXTRA", "")
        extra_domains = frozenset(d.strip().lower() for d in extra.split(",") if d.strip())

        secret = os.environ.get("TURNSTILE_SECRET_KEY") or None
        if policy.require_verification and not secret:
            logging.error(
                "TURNSTILE_SECRET_KEY is not set but verification is required. "
                "Public submissions will be rejected until it is configured."
            )

        return cls(
            production=production,
            policy=policy,
            turnstile_secret_key=secret,
            turnstile_verify_url=os.environ.get("TURNSTILE_VERIFY_URL", TURNSTILE_VERIFY_URL),
            verification_timeout_seconds=_env_float("TURNSTILE_TIMEOUT_SECONDS", DEFAULT_VERIFICATION_TIMEOUT_SECONDS),
            rate_limits=rate_limits,
            extra_disposable_domains=extra_domains,
        )
