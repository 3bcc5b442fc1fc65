"""Validation rules for a session document."""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from graphql import GraphQLError, GraphQLSchema

from . import parser
from .complexity import ComplexityAnalysis
from .model import QueryState

Severity = Literal["INFO", "WARN", "ERROR"]

LARGE_LIMIT = 1000


@dataclass
class RuleResult:
    """Result from a single rule check."""

    rule_id: str
    message: str
    severity: Severity
    locations: list[tuple[int, int]] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


def schema_validation_findings(errors: list[GraphQLError]) -> list[RuleResult]:
    """
    Convert GraphQL validation errors to rule results.

    Args:
        errors: List of GraphQL validation errors

    Returns:
        List of ERROR-level rule results
    """
    return [
        RuleResult(
            rule_id="schema-validation",
            message=str(e.message),
            severity="ERROR",
            locations=[(loc.line, loc.column) for loc in (e.locations or [])],
            meta={},
        )
        for e in errors
    ]


def rule_not_empty(state: QueryState) -> list[RuleResult]:
    """ERROR if nothing has been selected yet."""
    if state.root.is_leaf:
        return [
            RuleResult(
                rule_id="empty",
                message="Query is empty. Add at least one field to the query.",
                severity="ERROR",
            )
        ]
    return []


def rule_complexity(analysis: ComplexityAnalysis) -> list[RuleResult]:
    """
    Turn a complexity analysis into findings.

    Args:
        analysis: Result of complexity.analyze

    Returns:
        ERROR per breached ceiling, WARN per approaching one
    """
    out = [RuleResult(rule_id="complexity", message=e, severity="ERROR") for e in analysis.errors]
    out.extend(RuleResult(rule_id="complexity", message=w, severity="WARN") for w in analysis.warnings)
    return out


def performance_warning(argument_name: str, value: Any) -> Optional[str]:
    """Warn about very large ``limit`` values."""
    if argument_name != "limit" or isinstance(value, bool):
        return None

    number = None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        number = int(value)

    if number is not None and number > LARGE_LIMIT:
        return (
            f"Large limit value ({number}) may impact performance. Consider using pagination with "
            f"smaller limits and 'page' or 'offset' arguments."
        )
    return None


def check_document(
    state: QueryState,
    query: str,
    analysis: ComplexityAnalysis,
    schema: Optional[GraphQLSchema],
    unavailable_reason: str = "",
) -> list[RuleResult]:
    """
    Run every rule against a rendered document.

    Args:
        state: Session document
        query: Rendered document text
        analysis: Complexity analysis of ``state``
        schema: GraphQL schema, or None when it could not be obtained
        unavailable_reason: Why the schema is missing

    Returns:
        All findings
    """
    empty = rule_not_empty(state)
    if empty:
        return empty

    findings = rule_complexity(analysis)

    if schema is None:
        findings.append(
            RuleResult(
                rule_id="schema-validation",
                message=f"Schema validation failed: {unavailable_reason or 'schema unavailable'}",
                severity="ERROR",
            )
        )
        # Syntax is still checkable offline
        try:
            parser.parse_query(query)
        except GraphQLError as e:
            findings.extend(schema_validation_findings([e]))
        return findings

    findings.extend(schema_validation_findings(parser.validate_source(query, schema)))
    return findings
