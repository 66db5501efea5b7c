"""Keyword classification tables and matching.

Single-word keywords match on word boundaries so identifiers such as
``created_at`` or ``dropdown`` never trip the ``CREATE``/``DROP`` rules.
Multi-word keywords (``INTO OUTFILE``) match as a literal, case-insensitive
substring.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional, Tuple

# Schema-definition keywords, gated by ALLOW_DDL_OPERATIONS.
DDL_KEYWORDS: Tuple[str, ...] = ("CREATE", "ALTER", "DROP")

# Keywords blocked while BLOCK_DANGEROUS_KEYWORDS is set.
DANGEROUS_KEYWORDS: Tuple[str, ...] = (
    "GRANT",
    "REVOKE",
    "LOAD_FILE",
    "LOAD DATA",
    "INTO OUTFILE",
    "INTO DUMPFILE",
    "SYSTEM",
    "EXEC",
    "SHUTDOWN",
    "FLUSH",
    "RESET",
    "KILL",
    "SET PASSWORD",
)


@lru_cache(maxsize=256)
def _word_pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


def contains_keyword(query: str, keyword: str) -> bool:
    """Return True when ``keyword`` occurs in ``query`` under the matching rules."""
    if not query or not keyword:
        return False
    if " " in keyword:
        return keyword.upper() in query.upper()
    return _word_pattern(keyword).search(query) is not None


def find_keyword(query: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first keyword of ``keywords`` found in ``query``, in table order."""
    for keyword in keywords:
        if contains_keyword(query, keyword):
            return keyword
    return None


@dataclass(frozen=True)
class KeywordPolicy:
    """Keyword tables for one policy engine instance."""

    ddl_keywords: Tuple[str, ...] = DDL_KEYWORDS
    dangerous_keywords: Tuple[str, ...] = DANGEROUS_KEYWORDS

    @classmethod
    def with_extras(cls, extra_dangerous: Iterable[str] = ()) -> "KeywordPolicy":
        """Build the default tables extended with backend-specific keywords."""
        merged = list(DANGEROUS_KEYWORDS)
        for keyword in extra_dangerous:
            normalized = keyword.strip().upper()
            if normalized and normalized not in merged:
                merged.append(normalized)
        return cls(dangerous_keywords=tuple(merged))

    def find_ddl(self, query: str) -> Optional[str]:
        """Return the first DDL keyword present in the query."""
        return find_keyword(query, self.ddl_keywords)

    def find_dangerous(self, query: str) -> Optional[str]:
        """Return the first dangerous keyword present in the query."""
        return find_keyword(query, self.dangerous_keywords)
