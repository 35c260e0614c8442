"""Tests for the local bot heuristics: honeypot, disposable email and timing."""

import base64

import pytest

from src.shared.security.disposable_email import check_disposable_email, extract_domain, normalized_domain
from src.shared.security.honeypot import CONTACT_HONEYPOT_FIELDS, check_honeypot
from src.shared.security.timing import (
    REASON_INVALID_TOKEN,
    REASON_TOO_FAST,
    check_submission_timing,
    decode_submission_token,
)

NOW_MS = 1_700_000_000_000


def b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


class TestHoneypot:

    def test_empty_honeypots_pass(self):
        fields = {"name": "Ada", "fax": "", "website_url": "   ", "company_name": None}
        assert check_honeypot(fields, CONTACT_HONEYPOT_FIELDS).passed

    def test_absent_honeypots_pass(self):
        assert check_honeypot({"name": "Ada"}, CONTACT_HONEYPOT_FIELDS).passed

    @pytest.mark.parametrize("field", CONTACT_HONEYPOT_FIELDS)
    def test_any_filled_honeypot_fails(self, field):
        result = check_honeypot({"name": "Ada", field: "http://spam.biz"}, CONTACT_HONEYPOT_FIELDS)
        assert not result.passed
        assert result.reason == f"honeypot:{field}"

    def test_non_string_values_count_as_filled(self):
        assert not check_honeypot({"fax": 5551234}, CONTACT_HONEYPOT_FIELDS).passed
        assert not check_honeypot({"company_name": {"name": "Spam Inc"}}, CONTACT_HONEYPOT_FIELDS).passed
        assert check_honeypot({"company_name": {}}, CONTACT_HONEYPOT_FIELDS).passed

    def test_undeclared_fields_are_ignored(self):
        assert check_honeypot({"fax": "123"}, ()).passed

    def test_idempotent(self):
        fields = {"website_url": "http://spam.biz"}
        assert check_honeypot(fields, CONTACT_HONEYPOT_FIELDS) == check_honeypot(fields, CONTACT_HONEYPOT_FIELDS)


class TestDisposableEmail:

    def test_regular_domain_passes(self):
        assert check_disposable_email("ada@example.com").passed

    def test_listed_domain_fails(self):
        result = check_disposable_email("user@mailinator.com")
        assert not result.passed
        assert result.reason == "disposable_email:mailinator.com"

    def test_domain_match_is_case_insensitive(self):
        assert not check_disposable_email("User@MailInator.COM").passed

    def test_subdomain_of_listed_domain_fails(self):
        assert not check_disposable_email("bot@inbox.yopmail.com").passed

    def test_trailing_dot_is_ignored(self):
        assert not check_disposable_email("bot@guerrillamail.com.").passed

    def test_lookalike_domain_passes(self):
        assert check_disposable_email("ada@notmailinator.com").passed

    def test_missing_email_passes(self):
        assert check_disposable_email(None).passed
        assert check_disposable_email("not-an-email").passed

    def test_custom_denylist(self):
        assert not check_disposable_email("a@spam.example", frozenset({"spam.example"})).passed

    def test_extract_domain_uses_last_at(self):
        assert extract_domain('"weird@local"@Example.org') == "example.org"

    def test_display_name_form_fails(self):
        result = check_disposable_email("Spammer <user@mailinator.com>")
        assert not result.passed
        assert result.reason == "disposable_email:mailinator.com"

    def test_fullwidth_domain_fails(self):
        assert not check_disposable_email("user@\uff4d\uff41\uff49\uff4c\uff49\uff4e\uff41\uff54\uff4f\uff52.com").passed

    def test_normalized_domain_matches_stored_form(self):
        assert normalized_domain("Bot <Bot@MailInator.com>") == "mailinator.com"
        assert normalized_domain("not-an-email") is None


class TestTimingGate:

    def test_decode_standard_base64(self):
        assert decode_submission_token(b64(str(NOW_MS))) == NOW_MS

    def test_decode_unpadded_urlsafe_base64(self):
        token = base64.urlsafe_b64encode(str(NOW_MS).encode()).decode().rstrip("=")
        assert decode_submission_token(token) == NOW_MS

    def test_decode_plain_digits(self):
        assert decode_submission_token(str(NOW_MS)) == NOW_MS

    @pytest.mark.parametrize("token", [None, "", "   ", "!!!not base64", b64("hello"), b64("12.5"), "A" * 100])
    def test_decode_rejects_garbage(self, token):
        assert decode_submission_token(token) is None

    def test_slow_enough_passes(self):
        token = b64(str(NOW_MS - 5000))
        assert check_submission_timing(token, 3000, now_ms=NOW_MS).passed

    def test_exactly_minimum_passes(self):
        token = b64(str(NOW_MS - 3000))
        assert check_submission_timing(token, 3000, now_ms=NOW_MS).passed

    def test_too_fast_fails(self):
        token = b64(str(NOW_MS - 500))
        result = check_submission_timing(token, 3000, now_ms=NOW_MS)
        assert not result.passed
        assert result.reason == REASON_TOO_FAST

    def test_invalid_token_fails_as_invalid(self):
        result = check_submission_timing("garbage!", 3000, now_ms=NOW_MS)
        assert result.reason == REASON_INVALID_TOKEN

    def test_far_future_timestamp_is_invalid(self):
        token = b64(str(NOW_MS + 60_000))
        assert check_submission_timing(token, 3000, now_ms=NOW_MS).reason == REASON_INVALID_TOKEN

    def test_idempotent(self):
        token = b64(str(NOW_MS - 1000))
        first = check_submission_timing(token, 3000, now_ms=NOW_MS)
        assert first == check_submission_timing(token, 3000, now_ms=NOW_MS)
