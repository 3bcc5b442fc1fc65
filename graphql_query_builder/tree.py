"""Path navigation over the selection tree."""

from typing import Iterator, Optional

from .errors import FieldConflict, InvalidPath, PathNotFound
from .model import FieldNode, QueryState


def split_path(path: str) -> list[str]:
    """
    Split a dotted path into selection keys.

    Args:
        path: Dot-separated keys, or "" for the root

    Returns:
        List of keys (empty for the root)

    Raises:
        InvalidPath: If the path has an empty segment
    """
    if not path:
        return []
    parts = path.split(".")
    if any(not p.strip() for p in parts):
        raise InvalidPath(f"Invalid path '{path}': empty path segment.")
    return [p.strip() for p in parts]


def join_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def resolve(root: FieldNode, path: str) -> FieldNode:
    """
    Walk from the root to the node at ``path``.

    Never creates nodes.

    Raises:
        PathNotFound: If any segment is missing
    """
    node = root
    walked = []
    for part in split_path(path):
        walked.append(part)
        child = node.children.get(part)
        if child is None:
            raise PathNotFound(path, ".".join(walked))
        node = child
    return node


def field_names_along(root: FieldNode, path: str) -> list[str]:
    """Schema field names (not aliases) of every node along a path."""
    names = []
    walked = []
    node = root
    for part in split_path(path):
        walked.append(part)
        node = node.children.get(part)
        if node is None:
            raise PathNotFound(path, ".".join(walked))
        names.append(node.field_name)
    return names


def add_field(selections: dict[str, FieldNode], field_name: str, alias: Optional[str] = None) -> FieldNode:
    """
    Add a field to a selection map, merging with an existing selection.

    Re-selecting the same key with the same field name returns the existing
    node unchanged, keeping its arguments, children and directives.

    Raises:
        FieldConflict: If the key is already bound to a different field
    """
    key = alias or field_name
    existing = selections.get(key)
    if existing is not None:
        if existing.field_name != field_name:
            raise FieldConflict(
                f"Selection key '{key}' is already used by field '{existing.field_name}'. "
                f"Use a different alias for '{field_name}'."
            )
        return existing

    node = FieldNode(field_name=field_name, alias=alias)
    selections[key] = node
    return node


def add_path(selections: dict[str, FieldNode], relative_path: str) -> FieldNode:
    """Select a dotted relative path (``author.name``), creating intermediate fields."""
    node = None
    for part in split_path(relative_path):
        node = add_field(selections, part)
        selections = node.children
    if node is None:
        raise InvalidPath("Field path cannot be empty.")
    return node


def walk(node: FieldNode, prefix: str = "") -> Iterator[tuple[str, FieldNode]]:
    """
    Yield ``(path_label, node)`` for every field beneath ``node``.

    Depth first in declaration order. Selections inside inline fragments are
    labelled ``parent... on Type.child``.
    """
    yield from walk_selections(node.children, prefix)
    for fragment in node.inline_fragments:
        yield from walk_selections(fragment.selections, f"{prefix}... on {fragment.on_type}")


def walk_selections(selections: dict[str, FieldNode], prefix: str = "") -> Iterator[tuple[str, FieldNode]]:
    for key, child in selections.items():
        label = join_path(prefix, key)
        yield label, child
        yield from walk(child, label)


def walk_document(state: QueryState) -> Iterator[tuple[str, FieldNode]]:
    """Walk the operation tree and then every fragment definition."""
    yield from walk(state.root)
    for name, fragment in state.fragments.items():
        yield from walk_selections(fragment.selections, f"fragment {name}")
