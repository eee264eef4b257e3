import base64
import hashlib
import re
from urllib.parse import SplitResult, urlsplit

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def parse_absolute_url(url: str) -> SplitResult | None:
    """Split a URL, returning None unless it has both a scheme and a host."""
    if not url or not isinstance(url, str):
        return None
    try:
        parsed = urlsplit(url.strip())
        # .hostname / .port raise on malformed netlocs
        host = parsed.hostname
        parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None
    return parsed


def extract_domain(url: str) -> str:
    """Return the lowercased hostname of a URL, or "" when it cannot be parsed."""
    parsed = parse_absolute_url(url)
    if parsed is None:
        return ""
    return parsed.hostname or ""


def url_to_id(url: str, max_length: int | None = None) -> str:
    """Derive a stable alphanumeric record ID from a URL.

    The ID is the base64 encoding of the URL with non-alphanumerics removed.
    When ``max_length`` is given and the encoding is longer, the tail is
    replaced by a digest of the full URL so distinct URLs keep distinct IDs.
    """
    if not url or not isinstance(url, str):
        raise ValueError("URL must be a non-empty string")

    encoded = _NON_ALNUM.sub("", base64.b64encode(url.encode("utf-8")).decode("ascii"))
    if max_length is None or len(encoded) <= max_length:
        return encoded

    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
    return encoded[: max_length - len(digest)] + digest


def alnum_only(value: str) -> str:
    """Strip every non-alphanumeric character."""
    return _NON_ALNUM.sub("", value)
