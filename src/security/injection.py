"""Best-effort SQL-injection heuristics.

These regexes flag classic injection shapes in raw SQL text. They produce
false positives (legitimate comments) and false negatives (anything more
elaborate) and are no substitute for parameterized queries. Callers depend
only on :class:`InjectionDetector`, so a tokenizer-backed detector can
replace the regex one.
"""

import re
from typing import Optional, Protocol, Sequence, Tuple

INJECTION_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    # '1' OR '1'='1  /  ' OR ''='
    ("quoted_tautology", re.compile(r"'\s*(?:OR|AND)\s*'[^']*'\s*=\s*'", re.IGNORECASE)),
    # OR 1=1  /  ' OR 1=1
    ("numeric_tautology", re.compile(r"\b(?:OR|AND)\s*(\d+)\s*=\s*\1\b", re.IGNORECASE)),
    ("union_select", re.compile(r"\bUNION\s+(?:ALL\s+)?SELECT\b", re.IGNORECASE)),
    ("block_comment", re.compile(r"/\*.*?\*/", re.DOTALL)),
    ("line_comment", re.compile(r"-{2,}")),
    ("stacked_statement", re.compile(r";\s*(?:DROP|DELETE|INSERT)", re.IGNORECASE)),
)


class InjectionDetector(Protocol):
    """Strategy interface for injection detection."""

    def detect(self, query: str) -> Optional[str]:
        """Return the name of the first matching pattern, or None."""
        ...


class RegexInjectionDetector:
    """Injection detector matching a fixed list of named regexes."""

    def __init__(
        self, patterns: Sequence[Tuple[str, "re.Pattern[str]"]] = INJECTION_PATTERNS
    ) -> None:
        """Initialize with named patterns, checked in order."""
        self._patterns = tuple(patterns)

    @property
    def pattern_names(self) -> Tuple[str, ...]:
        """Return the configured pattern names."""
        return tuple(name for name, _ in self._patterns)

    def detect(self, query: str) -> Optional[str]:
        """Return the name of the first matching pattern, or None."""
        if not query:
            return None
        for name, pattern in self._patterns:
            if pattern.search(query):
                return name
        return None
