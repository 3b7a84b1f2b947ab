"""
Entity Classifier - Detects entity type from raw input and normalizes it.

Detection order (first match wins):
1. Chain address (SS58, EVM, hex account id, Solana)
2. Email
3. Twitter handle
4. Domain / URL

Normalization must be exact: blacklist and whitelist lookups key on the
normalized value.
"""

import re
from typing import Optional

from risk_check.addresses import parse_address
from risk_check.exceptions import InvalidInputError, UnclassifiableEntityError
from risk_check.models import Entity, EntityType


EMAIL_RE = re.compile(
    r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~.-]+@"
    r"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)+$"
)
TWITTER_HANDLE_RE = re.compile(r"^[A-Za-z0-9_]{1,15}$")
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
DOMAIN_LABEL_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$")


def _extract_host(value: str) -> str:
    """Strip scheme, userinfo, path, query, fragment and port.

    A leading "@" (empty userinfo) stays in the host and fails domain
    validation.
    """
    host = SCHEME_RE.sub("", value)
    host = re.split(r"[/?#]", host, maxsplit=1)[0]
    userinfo, sep, rest = host.rpartition("@")
    if sep and userinfo:
        host = rest
    return host.split(":", 1)[0]


def normalize_domain(value: str) -> Optional[str]:
    """
    Normalize a domain or URL to its bare lowercase host.

    Returns None if the host is not a valid dotted domain name.
    """
    host = _extract_host(value.strip()).lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]

    labels = host.split(".")
    if len(labels) < 2:
        return None
    if not all(DOMAIN_LABEL_RE.match(label) for label in labels):
        return None
    if not TLD_RE.match(labels[-1]):
        return None
    return host


def is_url_shaped(value: str) -> bool:
    """True if the raw value carries a path, query or fragment beyond the host."""
    stripped = SCHEME_RE.sub("", value.strip())
    return bool(re.search(r"[/?#].", stripped))


def _is_email(value: str) -> bool:
    return "@" in value and not value.startswith("@") and bool(EMAIL_RE.match(value))


def _twitter_handle(value: str) -> Optional[str]:
    handle = value[1:] if value.startswith("@") else value
    if "." in handle or not TWITTER_HANDLE_RE.match(handle):
        return None
    return handle.lower()


def classify(raw: str) -> Entity:
    """
    Classify and normalize a raw entity string.

    Args:
        raw: Address, email, Twitter handle, domain or URL

    Returns:
        Entity with type, normalized value and (for addresses) chain

    Raises:
        InvalidInputError: Empty or whitespace-only input
        UnclassifiableEntityError: Input matches no entity shape
    """
    if raw is None or not raw.strip():
        raise InvalidInputError("Entity value must not be empty", raw_value=raw)

    value = raw.strip()

    address = parse_address(value)
    if address:
        return Entity(
            value=value,
            entity_type=EntityType.ADDRESS,
            normalized_value=address.normalized,
            chain=address.chain,
        )

    if _is_email(value):
        return Entity(
            value=value,
            entity_type=EntityType.EMAIL,
            normalized_value=value.lower(),
        )

    handle = _twitter_handle(value)
    if handle:
        return Entity(
            value=value,
            entity_type=EntityType.TWITTER,
            normalized_value=handle,
        )

    domain = normalize_domain(value)
    if domain:
        return Entity(
            value=value,
            entity_type=EntityType.DOMAIN,
            normalized_value=domain,
        )

    raise UnclassifiableEntityError(
        f"Cannot classify entity '{value}'",
        raw_value=raw,
    )


def detect_entity_type(raw: str) -> tuple[EntityType, str]:
    """Return (entity type, normalized value) for a raw string."""
    entity = classify(raw)
    return entity.entity_type, entity.normalized_value
