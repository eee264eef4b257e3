import re
from collections.abc import Iterable

import structlog

from src.utils.errors import ConfigurationError
from src.utils.url import parse_absolute_url

log = structlog.get_logger()


def _compile_wildcard(pattern: str) -> re.Pattern[str]:
    """Compile a ``*`` pattern: wildcards match anything, dots are literal."""
    body = pattern.replace(".", r"\.").replace("*", ".*")
    return re.compile(f"^{body}$", re.IGNORECASE)


class URLMatcher:
    """Decides whether a URL is excluded from scraping by blacklist patterns.

    Pattern kinds, checked in this order for each pattern:

    * contains ``*``  -- wildcard against the hostname or the full URL
    * starts with ``http`` -- substring of the full URL
    * starts with ``.`` -- the domain and all of its subdomains
    * starts with ``/`` -- URL path prefix
    * anything else -- substring of the full URL
    """

    def __init__(self, patterns: Iterable[str] = ()):
        self._patterns: list[str] = []
        self._wildcards: dict[str, re.Pattern[str] | None] = {}
        self.update_patterns(patterns)

    @property
    def patterns(self) -> list[str]:
        return list(self._patterns)

    def update_patterns(self, patterns: Iterable[str] | None) -> None:
        """Replace the blacklist. Non-string and blank entries are dropped."""
        if patterns is None:
            patterns = []
        if isinstance(patterns, (str, bytes)) or not isinstance(patterns, Iterable):
            raise ConfigurationError("Patterns must be a list of strings")

        accepted: list[str] = []
        wildcards: dict[str, re.Pattern[str] | None] = {}
        for pattern in patterns:
            if not isinstance(pattern, str):
                log.warning("invalid_blacklist_pattern_type", type=type(pattern).__name__)
                continue
            trimmed = pattern.strip()
            if not trimmed:
                continue
            accepted.append(trimmed)
            if "*" in trimmed and trimmed not in wildcards:
                try:
                    wildcards[trimmed] = _compile_wildcard(trimmed)
                except re.error as e:
                    log.warning("invalid_blacklist_pattern", pattern=trimmed, error=str(e))
                    wildcards[trimmed] = None

        self._patterns = accepted
        self._wildcards = wildcards

    def is_blacklisted(self, url: str) -> bool:
        return self.get_matching_pattern(url) is not None

    def get_matching_pattern(self, url: str) -> str | None:
        """Return the first configured pattern that matches ``url``."""
        if not self._patterns or not url or not isinstance(url, str):
            return None

        parsed = parse_absolute_url(url)
        if parsed is None:
            return None

        hostname = parsed.hostname or ""
        path = parsed.path or "/"

        for pattern in self._patterns:
            if self._matches(pattern, url, hostname, path):
                return pattern
        return None

    def _matches(self, pattern: str, url: str, hostname: str, path: str) -> bool:
        if "*" in pattern:
            regex = self._wildcards.get(pattern)
            if regex is None:
                return False
            if regex.match(hostname) or regex.match(url):
                return True
            return pattern.startswith("/") and regex.match(path) is not None

        if pattern.startswith("http"):
            return pattern in url

        if pattern.startswith("."):
            suffix = pattern.lower()
            return hostname == suffix[1:] or hostname.endswith(suffix)

        if pattern.startswith("/"):
            return path.startswith(pattern)

        return pattern in url

    @staticmethod
    def validate_pattern(pattern: str) -> bool:
        """Only wildcard patterns can be invalid; plain patterns always are valid."""
        if "*" not in pattern:
            return True
        try:
            _compile_wildcard(pattern)
        except re.error:
            return False
        return True
