import re
from collections.abc import Iterable

import structlog

from src.config.constants import DEFAULT_REPLACEMENT

log = structlog.get_logger()

# Applied in order, so the more specific shapes come first
DEFAULT_PATTERNS: tuple[str, ...] = (
    # Email address
    r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
    # API key / token assignment
    r"(api[_-]?key|access[_-]?token|secret[_-]?key)\s*[:=]\s*[^\s]+",
    # Password / secret assignment
    r"(password|pwd|pass|secret|key)\s*[:=]\s*[^\s]+",
    # National ID, 18 chars
    r"\b\d{17}[\dXx]\b",
    # Card number in 4-digit groups
    r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b",
    # Bank card / account number
    r"\b\d{16,19}\b",
    # Mobile phone
    r"\b1[3-9]\d{9}\b",
    # US SSN
    r"\b\d{3}-\d{2}-\d{4}\b",
    # IPv4
    r"\b(?:[0-9]{1,3}\.){3}[0-9]{1,3}\b",
)


class SensitiveFilter:
    """Replaces every occurrence of configured regex patterns with a marker."""

    def __init__(self, patterns: Iterable[str] = (), replacement: str = DEFAULT_REPLACEMENT):
        self._patterns: list[re.Pattern[str]] = []
        self.replacement = replacement
        self.update_patterns(patterns)

    @property
    def patterns(self) -> list[str]:
        return [p.pattern for p in self._patterns]

    def update_patterns(self, patterns: Iterable[str] | None) -> None:
        compiled: list[re.Pattern[str]] = []
        for pattern in patterns or ():
            if not isinstance(pattern, str) or not pattern:
                log.warning("invalid_redaction_pattern", pattern=repr(pattern))
                continue
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                log.warning("invalid_redaction_pattern", pattern=pattern, error=str(e))
        self._patterns = compiled

    def set_replacement(self, replacement: str) -> None:
        self.replacement = replacement

    def filter(self, content: str) -> str:
        if not self._patterns or not content:
            return content

        replacement = self.replacement
        filtered = content
        for pattern in self._patterns:
            # Callable repl so backslashes in the marker are taken literally
            filtered = pattern.sub(lambda _m: replacement, filtered)
        return filtered

    def has_sensitive_info(self, content: str) -> bool:
        if not content:
            return False
        return any(pattern.search(content) for pattern in self._patterns)

    def get_sensitive_matches(self, content: str) -> set[str]:
        if not content:
            return set()
        return {m.group(0) for pattern in self._patterns for m in pattern.finditer(content)}

    @staticmethod
    def get_default_patterns() -> list[str]:
        return list(DEFAULT_PATTERNS)
