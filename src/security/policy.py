"""Query security policy engine.

Checks run in a fixed order and the first failure raises:

1. empty query
2. operation permission (skipped under ALLOW_ALL_OPERATIONS)
3. keyword permission (skipped under ALLOW_ALL_OPERATIONS)
4. schema allow-list
5. injection heuristics (never skipped)

The super-admin flag grants authorization, not tolerance for malformed
input, so it bypasses steps 2 and 3 only.

Known limitations: matching runs over raw SQL text. A keyword inside a
string literal is still matched, and schema qualifiers are only found
directly after FROM/JOIN/INTO/UPDATE.
"""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Tuple

from common.sanitization.text import preview, redact_sensitive_info
from security.classification import OperationKind, normalize_operation
from security.errors import (
    EmptyQuery,
    ForbiddenKeyword,
    InjectionPatternDetected,
    OperationNotPermitted,
    ResultLimitExceeded,
    SchemaNotAllowed,
)
from security.injection import InjectionDetector, RegexInjectionDetector
from security.keywords import KeywordPolicy

if TYPE_CHECKING:
    from common.config.settings import GatewaySettings

logger = logging.getLogger(__name__)

_SCHEMA_REFERENCE = re.compile(
    r"\b(?:FROM|JOIN|INTO|UPDATE)\s+"
    r"(?:(?:`([^`]+)`|\"([^\"]+)\"|(\w+))\.)?"
    r"(?:`[^`]+`|\"[^\"]+\"|\w+)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SecurityConfig:
    """Immutable snapshot of policy flags for one engine instance."""

    allow_insert: bool = False
    allow_update: bool = False
    allow_delete: bool = False
    allow_truncate: bool = False
    allow_ddl: bool = False
    allow_all_operations: bool = False
    block_dangerous_keywords: bool = True
    allowed_schemas: FrozenSet[str] = frozenset()
    max_results: int = 1000
    extra_dangerous_keywords: Tuple[str, ...] = ()

    @classmethod
    def from_settings(
        cls, settings: "GatewaySettings", extra_dangerous_keywords: Iterable[str] = ()
    ) -> "SecurityConfig":
        """Build the policy snapshot from gateway settings."""
        return cls(
            allow_insert=settings.allow_insert,
            allow_update=settings.allow_update,
            allow_delete=settings.allow_delete,
            allow_truncate=settings.allow_truncate,
            allow_ddl=settings.allow_ddl,
            allow_all_operations=settings.allow_all_operations,
            block_dangerous_keywords=settings.block_dangerous_keywords,
            allowed_schemas=frozenset(settings.allowed_schemas),
            max_results=settings.max_results,
            extra_dangerous_keywords=tuple(extra_dangerous_keywords),
        )

    def is_operation_allowed(self, operation: "str | OperationKind") -> bool:
        """Return whether the operation passes the permission flags."""
        if self.allow_all_operations:
            return True
        flag = {
            "INSERT": self.allow_insert,
            "UPDATE": self.allow_update,
            "DELETE": self.allow_delete,
            "TRUNCATE": self.allow_truncate,
        }.get(normalize_operation(operation))
        return True if flag is None else flag


class SecurityPolicy:
    """Validates queries against a :class:`SecurityConfig` before execution."""

    def __init__(
        self,
        config: SecurityConfig,
        detector: Optional[InjectionDetector] = None,
        keyword_policy: Optional[KeywordPolicy] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Policy flags snapshot.
            detector: Injection detector; defaults to the regex heuristics.
            keyword_policy: Keyword tables; defaults to the standard tables
                extended with ``config.extra_dangerous_keywords``.
        """
        self._config = config
        self._detector = detector or RegexInjectionDetector()
        self._keywords = keyword_policy or KeywordPolicy.with_extras(
            config.extra_dangerous_keywords
        )

    @property
    def config(self) -> SecurityConfig:
        """Return the policy snapshot."""
        return self._config

    @property
    def keyword_policy(self) -> KeywordPolicy:
        """Return the keyword tables in use."""
        return self._keywords

    def validate_query(self, query: str, operation: "str | OperationKind" = "SELECT") -> None:
        """Validate a query for the declared operation.

        Raises:
            SecurityViolation: A subtype describing the first failed check.
        """
        query = (query or "").strip()
        if not query:
            raise EmptyQuery()

        op = normalize_operation(operation)
        self.check_operation_permission(op)
        self.check_keyword_permissions(query)
        self.check_allowed_schemas(query)
        self.check_injection(query)

        logger.info(
            "Query validated",
            extra={
                "operation": op,
                "query_length": len(query),
                "query_preview": preview(query, 100),
            },
        )

    def check_operation_permission(self, operation: "str | OperationKind") -> None:
        """Reject mutating operations whose permission flag is unset."""
        if self._config.is_operation_allowed(operation):
            return
        raise OperationNotPermitted(normalize_operation(operation))

    def check_keyword_permissions(self, query: str) -> None:
        """Reject DDL and dangerous keywords according to the flags."""
        if self._config.allow_all_operations:
            logger.debug("Super-admin mode active; keyword checks skipped")
            return

        if not self._config.allow_ddl:
            keyword = self._keywords.find_ddl(query)
            if keyword:
                logger.warning(
                    "DDL keyword detected without permission",
                    extra={"keyword": keyword, "query_preview": preview(query)},
                )
                raise ForbiddenKeyword(keyword)

        if self._config.block_dangerous_keywords:
            keyword = self._keywords.find_dangerous(query)
            if keyword:
                logger.warning(
                    "Dangerous keyword detected",
                    extra={"keyword": keyword, "query_preview": preview(query)},
                )
                raise ForbiddenKeyword(keyword)

    def referenced_schemas(self, query: str) -> List[str]:
        """Return schema qualifiers found after FROM/JOIN/INTO/UPDATE, in order."""
        schemas: List[str] = []
        for match in _SCHEMA_REFERENCE.finditer(query or ""):
            schema = next((group for group in match.groups() if group), None)
            if schema and schema not in schemas:
                schemas.append(schema)
        return schemas

    def check_allowed_schemas(self, query: str) -> None:
        """Reject references to schemas outside a non-empty allow-list."""
        for schema in self.referenced_schemas(query):
            self.check_schema_name(schema)

    def check_schema_name(self, schema: Optional[str]) -> None:
        """Reject a single schema name outside a non-empty allow-list."""
        allowed = self._config.allowed_schemas
        if allowed and schema and schema not in allowed:
            raise SchemaNotAllowed(schema)

    def check_injection(self, query: str) -> None:
        """Reject queries matching an injection heuristic."""
        pattern = self._detector.detect(query)
        if pattern is None:
            return
        logger.warning(
            "Potential SQL injection detected",
            extra={"pattern": pattern, "query_preview": preview(query)},
        )
        raise InjectionPatternDetected(pattern)

    def check_result_limit(self, row_count: int) -> None:
        """Reject result sets larger than the configured cap."""
        max_results = self._config.max_results
        if row_count > max_results:
            raise ResultLimitExceeded(max_results, row_count)

    @staticmethod
    def sanitize_for_log(value: str) -> str:
        """Mask credentials in a value before it is logged."""
        return redact_sensitive_info(value)
