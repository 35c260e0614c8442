"""Tests for challenge verification and its fail-open / fail-closed policy."""

from urllib.parse import parse_qs

import httpx
import pytest

from conftest import SiteverifyStub, VERIFY_URL
from src.shared.security.outcomes import VerificationReason
from src.shared.security.policy import SecurityPolicy
from src.shared.security.verification import ChallengeVerifier

PRODUCTION = SecurityPolicy.for_environment(True)
DEVELOPMENT = SecurityPolicy.for_environment(False)


@pytest.fixture
def stub():
    return SiteverifyStub()


def make_verifier(stub, policy, secret_key="secret"):
    return ChallengeVerifier(policy=policy, secret_key=secret_key, verify_url=VERIFY_URL, http_client=stub.client())


class TestMissingToken:

    async def test_production_rejects_missing_token(self, stub):
        outcome = await make_verifier(stub, PRODUCTION).verify(None)
        assert outcome.verified is False
        assert outcome.reason == VerificationReason.TOKEN_MISSING
        assert stub.calls == []

    async def test_blank_token_counts_as_missing(self, stub):
        outcome = await make_verifier(stub, PRODUCTION).verify("   ")
        assert outcome.reason == VerificationReason.TOKEN_MISSING

    async def test_development_allows_missing_token(self, stub):
        outcome = await make_verifier(stub, DEVELOPMENT).verify(None)
        assert outcome.verified is True
        assert stub.calls == []


class TestServiceResponse:

    async def test_success(self, stub):
        outcome = await make_verifier(stub, PRODUCTION).verify("token-123", remote_ip="203.0.113.7")
        assert outcome.verified is True
        assert outcome.reason == VerificationReason.SUCCESS

        sent = parse_qs(stub.calls[0].content.decode())
        assert sent == {"secret": ["secret"], "response": ["token-123"], "remoteip": ["203.0.113.7"]}

    @pytest.mark.parametrize("policy", [PRODUCTION, DEVELOPMENT])
    async def test_service_says_no(self, stub, policy):
        stub.success = False
        outcome = await make_verifier(stub, policy).verify("forged")
        assert outcome.verified is False
        assert outcome.reason == VerificationReason.TOKEN_INVALID
        assert outcome.error_codes == ("invalid-input-response",)

    async def test_oversized_token_is_invalid_without_calling_service(self, stub):
        outcome = await make_verifier(stub, PRODUCTION).verify("x" * 5000)
        assert outcome.reason == VerificationReason.TOKEN_INVALID
        assert stub.calls == []


class TestServiceFailures:

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
    ])
    async def test_production_fails_closed(self, stub, error):
        stub.error = error
        outcome = await make_verifier(stub, PRODUCTION).verify("token")
        assert outcome.verified is False
        assert outcome.reason == VerificationReason.SERVICE_UNAVAILABLE

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
    ])
    async def test_development_fails_open(self, stub, error):
        stub.error = error
        outcome = await make_verifier(stub, DEVELOPMENT).verify("token")
        assert outcome.verified is True

    async def test_server_error_status_follows_policy(self, stub):
        stub.status_code = 502
        assert (await make_verifier(stub, PRODUCTION).verify("token")).reason == VerificationReason.SERVICE_UNAVAILABLE
        assert (await make_verifier(stub, DEVELOPMENT).verify("token")).verified is True

    async def test_malformed_body_follows_policy(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))
        verifier = ChallengeVerifier(policy=PRODUCTION, secret_key="secret", verify_url=VERIFY_URL, http_client=client)
        outcome = await verifier.verify("token")
        assert outcome.reason == VerificationReason.SERVICE_UNAVAILABLE

    async def test_missing_secret_in_production_fails_closed(self, stub):
        outcome = await make_verifier(stub, PRODUCTION, secret_key=None).verify("token")
        assert outcome.reason == VerificationReason.SERVICE_UNAVAILABLE
        assert stub.calls == []

    async def test_missing_secret_in_development_passes(self, stub):
        outcome = await make_verifier(stub, DEVELOPMENT, secret_key=None).verify("token")
        assert outcome.verified is True

    async def test_request_carries_timeout(self, stub):
        verifier = ChallengeVerifier(
            policy=PRODUCTION, secret_key="secret", verify_url=VERIFY_URL,
            timeout_seconds=2.5, http_client=stub.client(),
        )
        await verifier.verify("token")
        assert stub.calls[0].extensions["timeout"]["read"] == 2.5
