"""Cloudflare Turnstile challenge verification."""

import logging
from typing import Optional

import httpx

from src.shared.security.outcomes import VerificationOutcome, VerificationReason
from src.shared.security.policy import (
    DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
    TURNSTILE_VERIFY_URL,
    SecurityPolicy,
)

# Turnstile rejects longer responses, no need to forward them
MAX_CHALLENGE_TOKEN_LENGTH = 2048


class ChallengeVerifier:
    """
    Verifies challenge widget tokens against the siteverify endpoint.

    What happens when the token is missing or the service cannot be reached is
    decided by the SecurityPolicy alone:
    - require_verification: a missing token is rejected (TOKEN_MISSING)
    - fail_open_on_service_error: network errors, timeouts, non-2xx responses and
      malformed bodies are allowed through instead of SERVICE_UNAVAILABLE
    """

    def __init__(
        self,
        policy: SecurityPolicy,
        secret_key: Optional[str],
        verify_url: str = TURNSTILE_VERIFY_URL,
        timeout_seconds: float = DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.policy = policy
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    def _service_error(self, message: str) -> VerificationOutcome:
        if self.policy.fail_open_on_service_error:
            logging.warning(f"Challenge verification unavailable, allowing (fail-open): {message}")
            return VerificationOutcome(verified=True, reason=VerificationReason.SUCCESS)
        logging.error(f"Challenge verification unavailable, rejecting (fail-closed): {message}")
        return VerificationOutcome(verified=False, reason=VerificationReason.SERVICE_UNAVAILABLE)

    async def _post(self, data: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.verify_url, data=data, timeout=self.timeout_seconds)
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await client.post(self.verify_url, data=data)

    async def verify(self, challenge_token: Optional[str], remote_ip: Optional[str] = None) -> VerificationOutcome:
        token = challenge_token.strip() if isinstance(challenge_token, str) else None
        if not token:
            if self.policy.require_verification:
                return VerificationOutcome(verified=False, reason=VerificationReason.TOKEN_MISSING)
            return VerificationOutcome(verified=True, reason=VerificationReason.SUCCESS)

        if len(token) > MAX_CHALLENGE_TOKEN_LENGTH:
            return VerificationOutcome(verified=False, reason=VerificationReason.TOKEN_INVALID)

        if not self.secret_key:
            return self._service_error("TURNSTILE_SECRET_KEY is not configured")

        data = {"secret": self.secret_key, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            response = await self._post(data)
        except httpx.TimeoutException:
            return self._service_error(f"timed out after {self.timeout_seconds}s")
        except httpx.HTTPError as e:
            return self._service_error(f"{type(e).__name__}: {str(e)}")

        if response.status_code >= 400:
            return self._service_error(f"HTTP {response.status_code}")

        try:
            result = response.json()
        except ValueError:
            return self._service_error("response is not valid JSON")
        if not isinstance(result, dict):
            return self._service_error("unexpected response shape")

        error_codes = tuple(str(code) for code in result.get("error-codes") or ())
        if result.get("success") is True:
            return VerificationOutcome(verified=True, reason=VerificationReason.SUCCESS, error_codes=error_codes)

        logging.warning(f"Challenge token rejected by verification service: {', '.join(error_codes) or 'no error codes'}")
        return VerificationOutcome(verified=False, reason=VerificationReason.TOKEN_INVALID, error_codes=error_codes)
