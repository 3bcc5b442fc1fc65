"""Render the session document model as GraphQL source text."""

import json
from typing import Any

from .model import Argument, DirectiveApplication, EnumLiteral, FieldNode, QueryState

INDENT = "  "


def render_value(value: Any) -> str:
    """Render a value in GraphQL literal syntax; only genuine strings are quoted."""
    if isinstance(value, Argument):
        return render_argument(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, EnumLiteral):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {render_value(v)}" for k, v in value.items()) + "}"
    return json.dumps(str(value))


def render_argument(argument: Argument) -> str:
    if argument.is_variable:
        return argument.value
    return render_value(argument.value)


def render_arguments(arguments: dict[str, Argument]) -> str:
    if not arguments:
        return ""
    return "(" + ", ".join(f"{name}: {render_argument(arg)}" for name, arg in arguments.items()) + ")"


def render_directives(directives: list[DirectiveApplication]) -> str:
    parts = []
    for directive in directives:
        text = f"@{directive.name}"
        if directive.arguments:
            text += "(" + ", ".join(f"{a.name}: {render_argument(a.value)}" for a in directive.arguments) + ")"
        parts.append(text)
    return " ".join(parts)


def _field_head(node: FieldNode) -> str:
    head = f"{node.alias}: {node.field_name}" if node.alias else node.field_name
    head += render_arguments(node.arguments)
    if node.directives:
        head += " " + render_directives(node.directives)
    return head


def _compact_selections(node: FieldNode) -> str:
    items = []
    for child in node.children.values():
        text = _field_head(child)
        if not child.is_leaf:
            text += " " + _compact_selections(child)
        items.append(text)
    items.extend(f"...{name}" for name in node.fragment_spreads)
    for fragment in node.inline_fragments:
        inner = _compact_selections(FieldNode(children=fragment.selections))
        items.append(f"... on {fragment.on_type} {inner}")
    return "{ " + " ".join(items) + " }"


def _pretty_selections(node: FieldNode, depth: int) -> list[str]:
    pad = INDENT * depth
    lines = []
    for child in node.children.values():
        if child.is_leaf:
            lines.append(pad + _field_head(child))
        else:
            lines.append(pad + _field_head(child) + " {")
            lines.extend(_pretty_selections(child, depth + 1))
            lines.append(pad + "}")
    lines.extend(f"{pad}...{name}" for name in node.fragment_spreads)
    for fragment in node.inline_fragments:
        lines.append(f"{pad}... on {fragment.on_type} {{")
        lines.extend(_pretty_selections(FieldNode(children=fragment.selections), depth + 1))
        lines.append(pad + "}")
    return lines


def render_variable_definitions(state: QueryState) -> str:
    if not state.variables_schema:
        return ""
    parts = []
    for name, type_string in state.variables_schema.items():
        text = f"{name}: {type_string}"
        if name in state.variables_defaults:
            text += f" = {render_value(state.variables_defaults[name])}"
        parts.append(text)
    return "(" + ", ".join(parts) + ")"


def render_operation_header(state: QueryState) -> str:
    header = state.operation_type
    if state.operation_name:
        header += f" {state.operation_name}"
    header += render_variable_definitions(state)
    if state.operation_directives:
        header += " " + render_directives(state.operation_directives)
    return header


def render_document(state: QueryState, pretty: bool = False) -> str:
    """
    Render the whole document: operation, then fragment definitions.

    Args:
        state: Session document model
        pretty: Multi-line output with two-space indentation

    Returns:
        GraphQL source, or "" when nothing has been selected yet
    """
    if state.root.is_leaf:
        return ""

    header = render_operation_header(state)
    fragments = [
        (f"fragment {f.name} on {f.on_type}", FieldNode(children=f.selections))
        for f in state.fragments.values()
    ]

    if not pretty:
        parts = [f"{header} {_compact_selections(state.root)}"]
        parts.extend(f"{head} {_compact_selections(node)}" for head, node in fragments)
        return " ".join(parts)

    lines = [header + " {", *_pretty_selections(state.root, 1), "}"]
    for head, node in fragments:
        lines.extend(["", head + " {", *_pretty_selections(node, 1), "}"])
    return "\n".join(lines)
