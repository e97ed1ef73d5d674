"""Textual sender classification: automated bulk mail vs. sensitive mail."""

import re

_AUTOMATED_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"no-?reply",
        r"do-?not-?reply",
        r"notifications?",
        r"newsletters?",
        r"\bnews\b",
        r"(^|[.@])e?mail\d*\.[^.@]+\.[^.@]+",  # bulk-mail subdomains, not mail.ru or gmail.com
        r"marketing",
        r"promo",
        r"alerts?",
        r"updates?",
        r"mailer",
        r"digest",
        r"bounce",
    )
]

_SENSITIVE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"security",
        r"account",
        r"verif",
        r"password",
        r"reset",
        r"invoice",
        r"billing",
        r"receipt",
        r"shipping",
        r"payment",
        r"support",
    )
]

SENSITIVE_REASON = "Security or transactional sender - review before archiving"
ARCHIVE_REASON = "Automated bulk sender - safe to archive"


def is_automated(address: str, domain: str = "") -> bool:
    """True if the address or its domain looks like a bulk/transactional sender."""
    return any(p.search(address) or p.search(domain) for p in _AUTOMATED_PATTERNS)


def is_sensitive(address: str) -> bool:
    """True if the address looks like account-security or transactional mail."""
    return any(p.search(address) for p in _SENSITIVE_PATTERNS)


def sender_reason(address: str) -> str:
    return SENSITIVE_REASON if is_sensitive(address) else ARCHIVE_REASON
