"""Honeypot detection: fields hidden from humans that only bots fill in."""

from typing import Any, Iterable, Mapping

from src.shared.security.outcomes import CheckResult

# Rendered off-screen / aria-hidden on the public forms
CONTACT_HONEYPOT_FIELDS = ("fax", "website_url", "company_name")
TESTIMONIAL_HONEYPOT_FIELDS = ("fax", "website_url", "company_name")


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    # Numbers, booleans and anything else a browser form would never send
    return True


def check_honeypot(fields: Mapping[str, Any], honeypot_field_names: Iterable[str]) -> CheckResult:
    """
    Fail if any declared honeypot field has a non-empty value.

    Runs on the raw request body, so payloads posted straight to the API
    without the rendered form are caught as well.
    """
    for name in honeypot_field_names:
        if _is_populated(fields.get(name)):
            return CheckResult.fail(f"honeypot:{name}")
    return CheckResult.ok()
