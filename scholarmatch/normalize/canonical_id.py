from __future__ import annotations

import hashlib
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import urlparse


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).strip().casefold().split())


def normalize_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        normalized = normalize_text(value)
        return [normalized] if normalized else []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [item for item in (normalize_text(v) for v in value) if item]
    return []


def dedup_key(name: Optional[str], provider: Optional[str]) -> str:
    return f"{normalize_text(name)}|{normalize_text(provider)}"


def _normalize_deadline(value: Optional[date | datetime | str]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    cleaned = value.strip()
    try:
        return date.fromisoformat(cleaned[:10]).isoformat()
    except ValueError:
        return cleaned.lower()


def _normalize_website_domain(website: Optional[str]) -> str:
    if not website:
        return ""
    parsed = urlparse(website.strip())
    host = (parsed.netloc or parsed.path).lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def generate_scholarship_id(
    *,
    name: str,
    provider: Optional[str],
    deadline: Optional[date | datetime | str] = None,
    website: Optional[str] = None,
) -> str:
    """Build a deterministic scholarship id from its identity fields."""

    payload = "|".join(
        [
            dedup_key(name, provider),
            _normalize_deadline(deadline),
            _normalize_website_domain(website),
        ]
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
