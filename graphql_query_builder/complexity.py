"""Complexity scoring and ceilings."""

import math
from dataclasses import dataclass, field

from .config import Config
from .model import Argument, FieldNode, QueryState
from .tree import join_path

DEPTH_FACTOR = 1.2
ARGUMENT_WEIGHT = 0.5
DIRECTIVE_WEIGHT = 0.3
FRAGMENT_SPREAD_WEIGHT = 2
LARGE_PAGE = 100


@dataclass
class ComplexityAnalysis:
    """Result of analysing one operation tree."""

    valid: bool = True
    depth: int = 0
    field_count: int = 0
    complexity_score: float = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_payload(self) -> dict:
        """camelCase summary used in operation results."""
        return {
            "depth": self.depth,
            "fieldCount": self.field_count,
            "complexityScore": round(self.complexity_score, 2),
            "warnings": list(self.warnings),
        }


def _pagination_number(argument: Argument) -> float:
    value = argument.value
    if argument.is_variable or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def field_score(node: FieldNode, depth: int, cfg: Config) -> float:
    """
    Weighted cost of one field.

    Args:
        node: Field to score
        depth: Depth of the field (root selections are depth 1)
        cfg: Configuration with pagination argument names

    Returns:
        Score; deeper fields cost exponentially more
    """
    score = 1 + ARGUMENT_WEIGHT * len(node.arguments)

    pagination = {a.lower() for a in cfg.pagination_args}
    for name, argument in node.arguments.items():
        if name.lower() in pagination:
            n = _pagination_number(argument)
            if n > LARGE_PAGE:
                score += math.log10(n) * 2

    score += DIRECTIVE_WEIGHT * len(node.directives)
    return score * DEPTH_FACTOR**depth


def analyze(state: QueryState, cfg: Config) -> ComplexityAnalysis:
    """
    Compute depth, field count and score and check them against the ceilings.

    Named fragment spreads are expanded in place, so fields selected through a
    fragment count wherever it is spread.

    Args:
        state: Session document
        cfg: Configuration with ceilings

    Returns:
        ComplexityAnalysis
    """
    result = ComplexityAnalysis()

    def visit(node: FieldNode, depth: int, path: str, expanding: frozenset, breached: bool):
        if depth > result.depth:
            result.depth = depth

        if depth > cfg.max_depth and not breached:
            result.errors.append(
                f"Query depth {depth} exceeds maximum allowed depth of {cfg.max_depth} at path: {path}"
            )
            breached = True

        for key, child in node.children.items():
            result.field_count += 1
            result.complexity_score += field_score(child, depth, cfg)
            if not child.is_leaf:
                visit(child, depth + 1, join_path(path, key), expanding, breached)

        for name in node.fragment_spreads:
            result.complexity_score += FRAGMENT_SPREAD_WEIGHT
            fragment = state.fragments.get(name)
            # Cyclic spreads are expanded once
            if fragment is None or name in expanding:
                continue
            inner = FieldNode(children=fragment.selections)
            visit(inner, depth + 1, f"{path}...{name}", expanding | {name}, breached)

        for fragment in node.inline_fragments:
            inner = FieldNode(children=fragment.selections)
            visit(inner, depth + 1, f"{path}... on {fragment.on_type}", expanding, breached)

    if not state.root.is_leaf:
        visit(state.root, 1, "", frozenset(), False)

    if result.field_count > cfg.max_field_count:
        result.errors.append(
            f"Query field count {result.field_count} exceeds maximum allowed field count of {cfg.max_field_count}"
        )

    if result.complexity_score > cfg.max_complexity_score:
        result.errors.append(
            f"Query complexity score {round(result.complexity_score)} exceeds maximum allowed complexity "
            f"of {cfg.max_complexity_score:g}"
        )

    if result.complexity_score > cfg.max_complexity_score * 0.7:
        result.warnings.append(
            f"Query complexity score {round(result.complexity_score)} is approaching the limit of "
            f"{cfg.max_complexity_score:g}. Consider simplifying the query."
        )

    if result.depth > cfg.max_depth * 0.8:
        result.warnings.append(
            f"Query depth {result.depth} is approaching the limit of {cfg.max_depth}. Consider reducing nesting."
        )

    result.valid = not result.errors
    return result


def select_timeout(analysis: ComplexityAnalysis, cfg: Config) -> float:
    """Request timeout for executing an operation with this analysis."""
    if analysis.complexity_score > cfg.expensive_score:
        return cfg.expensive_timeout
    return cfg.default_timeout


def recommendations(analysis: ComplexityAnalysis, cfg: Config) -> list[str]:
    """Human-readable advice for reducing an operation's cost."""
    out = []
    if analysis.depth > cfg.max_depth * 0.6:
        out.append("Consider using fragments or splitting the query to reduce nesting depth.")
    if analysis.field_count > cfg.max_field_count * 0.5:
        out.append("Consider selecting only the fields you need.")
    if analysis.complexity_score > cfg.expensive_score:
        out.append(
            f"Complexity score above {cfg.expensive_score:g}: execution uses the extended "
            f"{cfg.expensive_timeout:g}s timeout."
        )
    if not out:
        out.append("Query complexity is within comfortable limits.")
    return out
