"""Address canonicalization.

Addresses are stored and compared in lowercase. Every write into the record
store and every query against it goes through these helpers.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

# Query keys whose string values are addresses
ADDRESS_QUERY_KEYS = ("ownerAddress", "approvedAddress", "owner_address", "approved_address")


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Lowercase and strip *address*; empty or missing becomes ``None``."""
    if address is None:
        return None
    address = str(address).strip().lower()
    return address or None


def normalize_addresses(
    addresses: Iterable[Optional[str]],
    exclude: Iterable[Optional[str]] = (),
) -> list[str]:
    """Canonicalize, drop blanks and duplicates, keep first-seen order."""
    skip = {normalize_address(a) for a in exclude}
    skip.discard(None)
    seen: set[str] = set()
    result: list[str] = []
    for raw in addresses:
        address = normalize_address(raw)
        if address is None or address in skip or address in seen:
            continue
        seen.add(address)
        result.append(address)
    return result


def normalize_query(query: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *query* with string address conditions lowercased."""
    normalized = dict(query)
    for key in ADDRESS_QUERY_KEYS:
        if isinstance(normalized.get(key), str):
            normalized[key] = normalized[key].lower()
    return normalized


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Exact case-insensitive equality. Two absent addresses never match."""
    a, b = normalize_address(a), normalize_address(b)
    if a is None or b is None:
        return False
    return a == b
