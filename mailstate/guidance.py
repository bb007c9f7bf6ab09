"""Actionable guidance for well-known webmail credential rejections.

Large webmail providers refuse IMAP logins made with the regular account
password once two-step verification is on; the raw server answer ("Invalid
credentials") does not tell the user what to do. When a credential
rejection comes from one of these providers the message is replaced with
provider-specific instructions.
"""

import re
from typing import NamedTuple

from mailclient import AccountRecord


class WebmailProvider(NamedTuple):
    name: str
    domains: tuple[str, ...]
    guidance: str


WEBMAIL_PROVIDERS: tuple[WebmailProvider, ...] = (
    WebmailProvider(
        name="Gmail",
        domains=("gmail.com", "googlemail.com"),
        guidance=(
            "For Gmail: You need to use an App Password instead of your regular "
            "Gmail password. Enable 2-Factor Authentication and generate an App "
            "Password in your Google Account settings under Security > 2-Step "
            "Verification > App passwords."
        ),
    ),
    WebmailProvider(
        name="Yahoo Mail",
        domains=("yahoo.com", "ymail.com", "rocketmail.com"),
        guidance=(
            "For Yahoo Mail: Generate an app password in Yahoo Account Security "
            "settings and use it instead of your regular password."
        ),
    ),
    WebmailProvider(
        name="Outlook",
        domains=("outlook.com", "hotmail.com", "live.com", "office365.com"),
        guidance=(
            "For Outlook: If two-step verification is enabled, create an app "
            "password in your Microsoft account security settings and use it "
            "instead of your regular password."
        ),
    ),
    WebmailProvider(
        name="iCloud Mail",
        domains=("icloud.com", "me.com", "mac.com"),
        guidance=(
            "For iCloud Mail: Generate an app-specific password at "
            "appleid.apple.com and use it instead of your Apple ID password."
        ),
    ),
)

_CREDENTIAL_REJECTION = re.compile(
    r"invalid credentials"
    r"|authenticationfailed"
    r"|authentication failed"
    r"|invalid login"
    r"|login failed"
    r"|username and password not accepted"
    r"|application-specific password required",
    re.IGNORECASE,
)


def is_credential_rejection(error: str | None) -> bool:
    """Whether ``error`` is a mail server rejecting the supplied credentials."""
    return bool(error) and _CREDENTIAL_REJECTION.search(error) is not None


def _matches_domain(value: str | None, domain: str) -> bool:
    if not value:
        return False
    value = value.lower()
    if "@" in value:
        value = value.rsplit("@", 1)[1]
    return value == domain or value.endswith(f".{domain}")


def find_webmail_provider(account: AccountRecord | None) -> WebmailProvider | None:
    """Return the well-known provider serving ``account``, matched on IMAP host or address."""
    if account is None:
        return None
    candidates = (account.host, account.email)
    for provider in WEBMAIL_PROVIDERS:
        for domain in provider.domains:
            if any(_matches_domain(candidate, domain) for candidate in candidates):
                return provider
    return None


def translate_connection_error(error: str | None, account: AccountRecord | None) -> str:
    """Turn a raw connection failure into the message shown to the user.

    Args:
        error: Failure reason reported by the backend.
        account: The account that failed, used to recognise the provider.

    Returns:
        Provider guidance for credential rejections on known webmail
        services, otherwise the backend's message (or a generic one).
    """
    if is_credential_rejection(error):
        provider = find_webmail_provider(account)
        if provider is not None:
            return provider.guidance
    return error or "Connection test failed"
