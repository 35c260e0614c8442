"""
Submission timing gate.

The form captures Date.now() when it is first rendered and sends it back
base64-encoded as `submission_token`. Scripts that post immediately after
loading the page show a near-zero elapsed time. The token is not signed, so
this is a speed bump for naive bots only.
"""

import base64
import binascii
import time
from typing import Optional

from src.shared.security.outcomes import CheckResult

# Tokens claiming a render time this far in the future are treated as forged
MAX_CLOCK_SKEW_MS = 5000
MAX_TOKEN_LENGTH = 64

REASON_TOO_FAST = "too_fast"
REASON_INVALID_TOKEN = "invalid_token"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_decimal(value: str) -> bool:
    return value.isascii() and value.isdigit()


def decode_submission_token(token: Optional[str]) -> Optional[int]:
    """
    Decode a submission token into a millisecond timestamp.

    Accepts standard or URL-safe base64 (padding optional) of a decimal string,
    or the bare decimal string. Returns None for anything else.
    """
    if not token or not isinstance(token, str):
        return None
    token = token.strip()
    if not token or len(token) > MAX_TOKEN_LENGTH:
        return None

    if _is_decimal(token):
        return int(token)

    padded = token + "=" * (-len(token) % 4)
    try:
        decoded = base64.b64decode(padded.replace("-", "+").replace("_", "/"), validate=True)
        text = decoded.decode("ascii").strip()
    except (binascii.Error, ValueError, UnicodeDecodeError):
        return None

    if not _is_decimal(text):
        return None
    return int(text)


def check_submission_timing(token: Optional[str], min_elapsed_ms: int, now_ms: Optional[int] = None) -> CheckResult:
    """
    Fail with `too_fast` when less than `min_elapsed_ms` passed since the form was
    rendered, or with `invalid_token` when the token cannot be decoded.

    Whether `invalid_token` actually rejects is decided by the caller's policy.
    """
    rendered_at = decode_submission_token(token)
    if rendered_at is None:
        return CheckResult.fail(REASON_INVALID_TOKEN)

    now_ms = _now_ms() if now_ms is None else now_ms
    elapsed = now_ms - rendered_at
    if elapsed < -MAX_CLOCK_SKEW_MS:
        return CheckResult.fail(REASON_INVALID_TOKEN)
    if elapsed < min_elapsed_ms:
        return CheckResult.fail(REASON_TOO_FAST)
    return CheckResult.ok()
