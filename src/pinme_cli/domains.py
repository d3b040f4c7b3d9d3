# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/domains.py

"""
Domain classification and DNS syntax validation.

A name with a dot (or any name when --dns is given) is a DNS domain the user
owns; anything else is a label under the service's subdomain suffix.
"""

import re

from pinme_cli.types import DomainDescriptor


SUBDOMAIN_SUFFIX = "pinit.eth.limo"
MAX_LABEL_LENGTH = 63

_SCHEME_RE = re.compile(r"^https?://")
_LABEL_RE = re.compile(r"^[a-zA-Z0-9-]+$")
_DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9][a-zA-Z0-9-]*(\.[a-zA-Z0-9][a-zA-Z0-9-]*)*\.[a-zA-Z]{2,}$"
)


class ValidationError(ValueError):
    """Raised when a DNS domain fails syntax validation."""
    pass


def clean_domain(raw: str) -> str:
    """Strip a leading http(s):// scheme and a single trailing slash."""
    cleaned = _SCHEME_RE.sub("", raw)
    if cleaned.endswith("/"):
        cleaned = cleaned[:-1]
    return cleaned


def classify(raw: str, force_dns: bool = False) -> DomainDescriptor:
    """
    Classify a user-supplied domain argument.

    Args:
        raw: Name as typed (e.g. "my-site", "example.com", "https://example.com/")
        force_dns: Treat the name as a DNS domain even without a dot

    Returns:
        DomainDescriptor with is_dns and display_name fixed for the workflow
    """
    raw = raw.strip()
    return DomainDescriptor(
        raw=raw,
        is_dns=force_dns or "." in raw,
        display_name=clean_domain(raw),
    )


def validate_dns(domain: str) -> None:
    """
    Validate DNS domain syntax.

    Rules are checked in order and the first violation is reported.

    Raises:
        ValidationError: With a human-readable message
    """
    cleaned = clean_domain(domain)
    labels = cleaned.split(".")

    if len(labels) < 2:
        raise ValidationError(
            "Invalid domain format. Please enter a complete domain (e.g., example.com)"
        )

    for label in labels:
        if len(label) == 0:
            raise ValidationError("Invalid domain format. Consecutive dots are not allowed")
        if len(label) > MAX_LABEL_LENGTH:
            raise ValidationError(
                f"Invalid domain format. Each label must be {MAX_LABEL_LENGTH} characters or less"
            )
        if not _LABEL_RE.match(label):
            raise ValidationError(
                "Invalid domain format. Domains can only contain letters, numbers, and hyphens"
            )
        if label.startswith("-") or label.endswith("-"):
            raise ValidationError(
                "Invalid domain format. Labels cannot start or end with hyphens"
            )

    if not _DOMAIN_RE.match(cleaned):
        raise ValidationError("Invalid domain format")


def visit_url(descriptor: DomainDescriptor) -> str:
    """URL where bound content is served for this domain."""
    if descriptor.is_dns:
        return f"https://{descriptor.display_name}"
    return f"https://{descriptor.display_name}.{SUBDOMAIN_SUFFIX}"
