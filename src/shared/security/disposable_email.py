"""
Disposable email domain filter.

A closed denylist of throwaway mailbox providers. It is a cheap first-line
filter, not a guarantee: new providers appear constantly.
"""

from typing import FrozenSet, Iterable, Optional, Set

from pydantic.networks import validate_email as normalize_email_address

from src.shared.security.outcomes import CheckResult

DISPOSABLE_EMAIL_DOMAINS: FrozenSet[str] = frozenset({
    '10minutemail.com', '10minutemail.net', '20minutemail.com',
    '33mail.com', 'anonbox.net', 'burnermail.io',
    'discard.email', 'dispostable.com', 'dropmail.me',
    'emailondeck.com', 'fakeinbox.com', 'fakemail.net',
    'getairmail.com', 'getnada.com', 'guerrillamail.biz',
    'guerrillamail.com', 'guerrillamail.de', 'guerrillamail.info',
    'guerrillamail.net', 'guerrillamail.org', 'guerrillamailblock.com',
    'harakirimail.com', 'inboxbear.com', 'inboxkitten.com',
    'jetable.org', 'mail-temp.com', 'mailcatch.com',
    'maildrop.cc', 'mailinator.com', 'mailinator.net',
    'mailinator2.com', 'mailnesia.com', 'mailpoof.com',
    'mintemail.com', 'mohmal.com', 'moakt.com',
    'mytemp.email', 'mytrashmail.com', 'nada.email',
    'sharklasers.com', 'spam4.me', 'spambox.us',
    'spamgourmet.com', 'temp-mail.io', 'temp-mail.org',
    'tempail.com', 'tempinbox.com', 'tempmail.com',
    'tempmail.dev', 'tempmail.net', 'tempmailo.com',
    'tempr.email', 'throwawaymail.com', 'trashmail.com',
    'trashmail.de', 'trashmail.net', 'yopmail.com',
    'yopmail.fr', 'yopmail.net',
})


def extract_domain(email: Optional[str]) -> Optional[str]:
    """Lowercased domain after the last '@', or None if there is none."""
    if not email or not isinstance(email, str):
        return None
    _, sep, domain = email.strip().rpartition("@")
    if not sep:
        return None
    domain = domain.strip().lower().rstrip(".")
    return domain or None


def is_disposable_domain(domain: str, denylist: Iterable[str] = DISPOSABLE_EMAIL_DOMAINS) -> bool:
    denylist = denylist if isinstance(denylist, (set, frozenset)) else frozenset(denylist)
    if domain in denylist:
        return True
    # Subdomains of a listed provider (e.g. foo.mailinator.com)
    parts = domain.split(".")
    for i in range(1, len(parts) - 1):
        if ".".join(parts[i:]) in denylist:
            return True
    return False


def normalized_domain(email: Optional[str]) -> Optional[str]:
    """
    Domain as the request schema will store it.

    Uses the same normalizer as pydantic's EmailStr, so display-name forms
    ("Name <a@b.com>") and Unicode lookalikes (full-width letters) resolve to
    the ASCII domain that ends up in the database. None if it does not parse.
    """
    if not email or not isinstance(email, str):
        return None
    try:
        _, address = normalize_email_address(email)
    except ValueError:
        return None
    return extract_domain(address)


def candidate_domains(email: Optional[str]) -> Set[str]:
    domains = {extract_domain(email), normalized_domain(email)}
    domains.discard(None)
    return domains


def check_disposable_email(email: Optional[str], denylist: Iterable[str] = DISPOSABLE_EMAIL_DOMAINS) -> CheckResult:
    """
    Fail when the email's domain belongs to a known disposable provider.

    Both the raw and the normalized domain are checked. An address that does not
    parse at all passes here; the request schema rejects its format.
    """
    for domain in sorted(candidate_domains(email)):
        if is_disposable_domain(domain, denylist):
            return CheckResult.fail(f"disposable_email:{domain}")
    return CheckResult.ok()
