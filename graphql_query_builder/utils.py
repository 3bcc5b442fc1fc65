"""Utility functions shared across the query builder."""

import hashlib
import json
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from graphql import (
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLType,
    get_introspection_query,
)

# Standard GraphQL introspection query
INTROSPECTION_QUERY = get_introspection_query(descriptions=True)


# File system utilities
def ensure_dir(path: str) -> None:
    """Ensure directory exists, creating it if necessary."""
    Path(path).mkdir(parents=True, exist_ok=True)


def exists(path: str) -> bool:
    """Check if file exists."""
    return Path(path).exists()


def dirname(path: str) -> str:
    """Get directory name from path."""
    return str(Path(path).parent)


def join(*parts: str) -> str:
    """Join path components."""
    return str(Path(*parts))


def expand_path(path: str) -> str:
    """Expand ~ and environment variables in path."""
    return str(Path(path).expanduser())


# File I/O
def read_text(path: str) -> str:
    """Read text file."""
    return Path(path).read_text()


def read_json(path: str) -> dict:
    """Read JSON file."""
    with open(path) as f:
        return json.load(f)


def write_json(path: str, data: Any) -> None:
    """Write JSON file with pretty formatting.

    Writes to a sibling temp file first so readers never see a torn file.
    """
    tmp = f"{path}.tmp"
    with open(tmp, "w") as f:
        json.dump(data, f, indent=2)
    Path(tmp).replace(path)


def to_json(data: Any) -> str:
    """Convert data to JSON string."""
    return json.dumps(data, indent=2, default=str)


# Hashing & timestamps
def now_iso() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def sha256(obj: Any) -> str:
    """Calculate SHA-256 hash of object."""
    s = json.dumps(obj, sort_keys=True)
    return hashlib.sha256(s.encode()).hexdigest()[:16]


def sanitize_host(url: str) -> str:
    """Extract sanitized hostname from URL for use in filenames."""
    if url.startswith("file://"):
        return "file"
    parsed = urlparse(url)
    host = parsed.netloc or parsed.path
    # Drop credentials and port
    host = host.rsplit("@", 1)[-1].split(":")[0]
    return host.replace("/", "_").replace(":", "_")


def redact_url(url: str) -> str:
    """Hide userinfo in a URL before logging it."""
    parsed = urlparse(url)
    if parsed.username or parsed.password:
        return url.replace(parsed.netloc, "***:***@" + parsed.netloc.rsplit("@", 1)[-1])
    return url


# GraphQL type helpers
def is_list_type(graphql_type: GraphQLType) -> bool:
    """Check if GraphQL type is a list type."""
    # Unwrap non-null first
    if isinstance(graphql_type, GraphQLNonNull):
        graphql_type = graphql_type.of_type
    return isinstance(graphql_type, GraphQLList)


def named_type(graphql_type: GraphQLType) -> GraphQLNamedType:
    """Unwrap non-null/list wrappers to get the named type."""
    while isinstance(graphql_type, (GraphQLNonNull, GraphQLList)):
        graphql_type = graphql_type.of_type
    return graphql_type


def type_name_str(graphql_type: GraphQLType) -> str:
    """Render a (possibly wrapped) type the way it is written in SDL."""
    if isinstance(graphql_type, GraphQLNonNull):
        return f"{type_name_str(graphql_type.of_type)}!"
    if isinstance(graphql_type, GraphQLList):
        return f"[{type_name_str(graphql_type.of_type)}]"
    return getattr(graphql_type, "name", str(graphql_type))


# Name suggestions
def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + (ca != cb),  # substitution
                )
            )
        previous = current
    return previous[-1]


def find_similar_name(target: str, candidates: Iterable[str]) -> Optional[str]:
    """
    Find the closest candidate name for a "did you mean" hint.

    Only suggests names within 3 edits and within 60% of the target length.

    Args:
        target: Name that was not found
        candidates: Known names

    Returns:
        Best candidate or None
    """
    target_lower = target.lower()
    limit = min(3, math.ceil(len(target) * 0.6))
    best, best_score = None, None

    for candidate in candidates:
        score = levenshtein(target_lower, candidate.lower())
        if score <= limit and (best_score is None or score < best_score):
            best, best_score = candidate, score

    return best


def suggestion_suffix(target: str, candidates: Iterable[str], noun: str = "fields") -> str:
    """Build the trailing hint of a "not found" message."""
    candidates = list(candidates)
    similar = find_similar_name(target, candidates)
    if similar:
        return f" Did you mean '{similar}'?"
    if candidates:
        shown = ", ".join(candidates[:5])
        more = ", ..." if len(candidates) > 5 else ""
        return f" Available {noun}: {shown}{more}."
    return ""


# HTTP response helpers
def safe_json_response(response, context: str = "API request") -> dict:
    """
    Safely parse JSON from HTTP response with helpful error messages.

    Args:
        response: requests.Response object
        context: Description of what operation failed (e.g., "GraphQL introspection")

    Returns:
        Parsed JSON as dict

    Raises:
        RuntimeError: If response is not valid JSON, with detailed diagnostic info
    """
    try:
        return response.json()
    except ValueError as e:
        url = response.url
        status = response.status_code
        content_type = response.headers.get("Content-Type", "unknown")

        # Preview response body (first 300 chars)
        body_preview = response.text[:300]
        if len(response.text) > 300:
            body_preview += "..."

        error_parts = [
            f"{context} failed - server returned non-JSON response",
            "",
            f"  URL: {redact_url(url)}",
            f"  Status: {status}",
            f"  Content-Type: {content_type}",
            "",
            "  Response preview:",
            f"  {body_preview}",
            "",
            "  Suggestions:",
            "  - Verify the URL is correct and points to a GraphQL endpoint",
            "  - Authentication may be required - check the configured headers",
            "",
            f"  Original JSON error: {e}",
        ]

        raise RuntimeError("\n".join(error_parts)) from e
