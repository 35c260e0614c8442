"""Shared fixtures: in-memory database, fresh security components and a mocked siteverify endpoint."""

import base64
import os
import time

# Must be set before any src module reads them
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("ENVIRONMENT", "development")

import httpx
import pytest
from fastapi.testclient import TestClient

from src.app import app
from src.shared.auth.auth import create_admin_token, hash_password
from src.shared.auth.database import AdminUser, Base, SessionLocal, engine
import src.shared.contact.database  # noqa: F401
import src.shared.testimonials.database  # noqa: F401
from src.shared.chat.service import install_chat_responder
from src.shared.security.dependencies import build_security, configure_security
from src.shared.security.policy import DEFAULT_RATE_LIMITS, SecurityPolicy, SecuritySettings
from src.shared.security.rate_limit import InMemoryRateLimitStore
from src.shared.security.verification import ChallengeVerifier

VERIFY_URL = "https://verify.test/siteverify"


def make_submission_token(age_ms: int = 10_000) -> str:
    """Token as the frontend produces it: base64 of the render time in ms."""
    rendered_at = int(time.time() * 1000) - age_ms
    return base64.b64encode(str(rendered_at).encode()).decode()


class SiteverifyStub:
    """Stands in for the challenge verification service."""

    def __init__(self):
        self.calls = []
        self.success = True
        self.error = None
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        body = {"success": self.success, "error-codes": [] if self.success else ["invalid-input-response"]}
        return httpx.Response(self.status_code, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def siteverify():
    return SiteverifyStub()


@pytest.fixture
def configure_app(siteverify):
    """Install fresh security components on the app. Returns the settings used."""

    def _configure(production=False, rate_limits=None, secret_key="test-turnstile-secret", **policy_overrides):
        policy = SecurityPolicy.for_environment(production, **policy_overrides)
        limits = dict(DEFAULT_RATE_LIMITS)
        limits.update(rate_limits or {})
        settings = SecuritySettings(
            production=production,
            policy=policy,
            turnstile_secret_key=secret_key,
            turnstile_verify_url=VERIFY_URL,
            rate_limits=limits,
        )
        verifier = ChallengeVerifier(
            policy=policy,
            secret_key=secret_key,
            verify_url=VERIFY_URL,
            http_client=siteverify.client(),
        )
        configure_security(app, build_security(settings, store=InMemoryRateLimitStore(), verifier=verifier))
        return settings

    yield _configure
    app.state.security = None
    install_chat_responder(app, None)


@pytest.fixture
def client(configure_app):
    """Development-mode client: verification optional, fail-open."""
    configure_app(production=False)
    return TestClient(app)


@pytest.fixture
def production_client(configure_app):
    configure_app(production=True)
    return TestClient(app)


@pytest.fixture
def contact_payload():
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "subject": "Collaboration",
        "message": "I would love to work together on a project.",
        "submission_token": make_submission_token(),
        "turnstile_token": "valid-token",
        "client_uuid": "visitor-1",
    }


@pytest.fixture
def testimonial_payload():
    return {
        "author": "Grace Hopper",
        "role": "Engineering Manager",
        "content": "Delivered a great product on time and communicated clearly.",
        "submission_token": make_submission_token(),
        "turnstile_token": "valid-token",
        "client_uuid": "visitor-2",
    }


ADMIN_EMAIL = "owner@example.com"
ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture
def admin_headers():
    """Bearer header for a freshly created site owner."""
    db = SessionLocal()
    try:
        admin = AdminUser(email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD))
        db.add(admin)
        db.commit()
        token = create_admin_token(admin.id, admin.email)
    finally:
        db.close()
    return {"Authorization": f"Bearer {token}"}
