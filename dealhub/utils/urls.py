from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

ALLOWED_SCHEMES = {"http", "https"}


def is_valid_absolute_url(value: str | None) -> bool:
    if not value or not isinstance(value, str):
        return False
    if any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return False
    try:
        hostname = parts.hostname
        parts.port
    except ValueError:
        return False
    return bool(hostname)


def build_utm_url(
    base_url: str,
    *,
    source: str | None = None,
    medium: str | None = None,
    campaign: str | None = None,
    content: str | None = None,
    term: str | None = None,
) -> str:
    """Return `base_url` with utm_* query params set, replacing existing ones."""
    parts = urlsplit(base_url)
    utm = {
        "utm_source": source,
        "utm_medium": medium,
        "utm_campaign": campaign,
        "utm_content": content,
        "utm_term": term,
    }
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if not (key in utm and utm[key])]
    query.extend((key, value) for key, value in utm.items() if value)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
