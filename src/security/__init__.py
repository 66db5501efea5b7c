"""Query security policy: classification, keyword rules and injection heuristics."""

from security.classification import OperationKind, classify_operation
from security.errors import (
    EmptyQuery,
    ForbiddenKeyword,
    InjectionPatternDetected,
    OperationNotPermitted,
    ResultLimitExceeded,
    SchemaNotAllowed,
    SecurityViolation,
    StatementNotRowReturning,
    UnsafeMutation,
)
from security.injection import InjectionDetector, RegexInjectionDetector
from security.keywords import KeywordPolicy
from security.policy import SecurityConfig, SecurityPolicy

__all__ = [
    "EmptyQuery",
    "ForbiddenKeyword",
    "InjectionDetector",
    "InjectionPatternDetected",
    "KeywordPolicy",
    "OperationKind",
    "OperationNotPermitted",
    "RegexInjectionDetector",
    "ResultLimitExceeded",
    "SchemaNotAllowed",
    "SecurityConfig",
    "SecurityPolicy",
    "SecurityViolation",
    "StatementNotRowReturning",
    "UnsafeMutation",
    "classify_operation",
]
