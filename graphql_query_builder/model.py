"""Session document model: the operation under construction and its persistence encoding."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from . import utils

OPERATION_TYPES = ("query", "mutation", "subscription")


class ArgumentKind(str, Enum):
    """How an argument value was supplied and therefore how it renders."""

    LITERAL = "literal"
    TYPED = "typed"
    VARIABLE = "variable"


class EnumLiteral(str):
    """A string that renders as a bare GraphQL enum value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"EnumLiteral({str.__repr__(self)})"


def encode_value(value: Any) -> Any:
    """Encode a value for JSON storage, tagging enum literals."""
    if isinstance(value, EnumLiteral):
        return {"__enum__": str(value)}
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    """Inverse of :func:`encode_value`."""
    if isinstance(value, dict):
        if set(value) == {"__enum__"}:
            return EnumLiteral(value["__enum__"])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


@dataclass
class Argument:
    """A value bound to a field or directive argument."""

    value: Any
    kind: ArgumentKind = ArgumentKind.LITERAL

    @classmethod
    def literal(cls, value: Any) -> "Argument":
        return cls(value, ArgumentKind.LITERAL)

    @classmethod
    def typed(cls, value: Any) -> "Argument":
        return cls(value, ArgumentKind.TYPED)

    @classmethod
    def variable(cls, name: str) -> "Argument":
        return cls(name, ArgumentKind.VARIABLE)

    @property
    def is_variable(self) -> bool:
        return self.kind is ArgumentKind.VARIABLE

    def references(self, variable_name: str) -> bool:
        """Whether this argument's value is the given variable name, whatever its kind."""
        return isinstance(self.value, str) and self.value == variable_name

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "value": encode_value(self.value)}

    @classmethod
    def from_dict(cls, data: dict) -> "Argument":
        return cls(decode_value(data.get("value")), ArgumentKind(data.get("kind", "literal")))


@dataclass
class DirectiveArgument:
    name: str
    value: Argument

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> "DirectiveArgument":
        return cls(data["name"], Argument.from_dict(data["value"]))


@dataclass
class DirectiveApplication:
    """A directive attached to a field or to the operation."""

    name: str
    arguments: list[DirectiveArgument] = field(default_factory=list)

    def set_argument(self, name: str, value: Argument) -> None:
        """Replace an argument of the same name, or append a new one."""
        for arg in self.arguments:
            if arg.name == name:
                arg.value = value
                return
        self.arguments.append(DirectiveArgument(name, value))

    def references(self, variable_name: str) -> bool:
        return any(arg.value.references(variable_name) for arg in self.arguments)

    def to_dict(self) -> dict:
        return {"name": self.name, "arguments": [a.to_dict() for a in self.arguments]}

    @classmethod
    def from_dict(cls, data: dict) -> "DirectiveApplication":
        return cls(data["name"], [DirectiveArgument.from_dict(a) for a in data.get("arguments", [])])


def find_directive(directives: list[DirectiveApplication], name: str) -> Optional[DirectiveApplication]:
    for directive in directives:
        if directive.name == name:
            return directive
    return None


@dataclass
class InlineFragment:
    """Type-conditioned selections embedded at a field (``... on Type { }``)."""

    on_type: str
    selections: dict[str, "FieldNode"] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"on_type": self.on_type, "selections": selections_to_dict(self.selections)}

    @classmethod
    def from_dict(cls, data: dict) -> "InlineFragment":
        return cls(data["on_type"], selections_from_dict(data.get("selections", {})))


@dataclass
class FieldNode:
    """One selected field; the document root is a FieldNode with an empty field name."""

    field_name: str = ""
    alias: Optional[str] = None
    arguments: dict[str, Argument] = field(default_factory=dict)
    children: dict[str, "FieldNode"] = field(default_factory=dict)
    directives: list[DirectiveApplication] = field(default_factory=list)
    fragment_spreads: list[str] = field(default_factory=list)
    inline_fragments: list[InlineFragment] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Key of this node in its parent's selection map."""
        return self.alias or self.field_name

    @property
    def is_leaf(self) -> bool:
        return not (self.children or self.fragment_spreads or self.inline_fragments)

    def inline_fragment(self, on_type: str) -> Optional[InlineFragment]:
        for fragment in self.inline_fragments:
            if fragment.on_type == on_type:
                return fragment
        return None

    def to_dict(self) -> dict:
        data = {"field_name": self.field_name}
        if self.alias:
            data["alias"] = self.alias
        if self.arguments:
            data["arguments"] = {k: v.to_dict() for k, v in self.arguments.items()}
        if self.children:
            data["children"] = selections_to_dict(self.children)
        if self.directives:
            data["directives"] = [d.to_dict() for d in self.directives]
        if self.fragment_spreads:
            data["fragment_spreads"] = list(self.fragment_spreads)
        if self.inline_fragments:
            data["inline_fragments"] = [f.to_dict() for f in self.inline_fragments]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FieldNode":
        return cls(
            field_name=data.get("field_name", ""),
            alias=data.get("alias"),
            arguments={k: Argument.from_dict(v) for k, v in data.get("arguments", {}).items()},
            children=selections_from_dict(data.get("children", {})),
            directives=[DirectiveApplication.from_dict(d) for d in data.get("directives", [])],
            fragment_spreads=list(data.get("fragment_spreads", [])),
            inline_fragments=[InlineFragment.from_dict(f) for f in data.get("inline_fragments", [])],
        )


def selections_to_dict(selections: dict[str, FieldNode]) -> dict:
    return {key: node.to_dict() for key, node in selections.items()}


def selections_from_dict(data: dict) -> dict[str, FieldNode]:
    return {key: FieldNode.from_dict(node) for key, node in data.items()}


@dataclass
class Fragment:
    """A named fragment definition."""

    name: str
    on_type: str
    selections: dict[str, FieldNode] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "on_type": self.on_type,
            "selections": selections_to_dict(self.selections),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Fragment":
        return cls(data["name"], data["on_type"], selections_from_dict(data.get("selections", {})))


@dataclass
class QueryState:
    """Everything a session knows about the operation it is building.

    Variable mappings are keyed by the variable name including its ``$``.
    """

    operation_type: str = "query"
    operation_type_name: str = "Query"
    operation_name: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    root: FieldNode = field(default_factory=FieldNode)
    fragments: dict[str, Fragment] = field(default_factory=dict)
    variables_schema: dict[str, str] = field(default_factory=dict)
    variables_defaults: dict[str, Any] = field(default_factory=dict)
    variables_values: dict[str, Any] = field(default_factory=dict)
    operation_directives: list[DirectiveApplication] = field(default_factory=list)
    created_at: str = field(default_factory=utils.now_iso)

    def to_dict(self) -> dict:
        return {
            "operation_type": self.operation_type,
            "operation_type_name": self.operation_type_name,
            "operation_name": self.operation_name,
            "headers": dict(self.headers),
            "root": self.root.to_dict(),
            "fragments": {name: f.to_dict() for name, f in self.fragments.items()},
            "variables_schema": dict(self.variables_schema),
            "variables_defaults": encode_value(self.variables_defaults),
            "variables_values": encode_value(self.variables_values),
            "operation_directives": [d.to_dict() for d in self.operation_directives],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QueryState":
        return cls(
            operation_type=data.get("operation_type", "query"),
            operation_type_name=data.get("operation_type_name", "Query"),
            operation_name=data.get("operation_name"),
            headers=dict(data.get("headers") or {}),
            root=FieldNode.from_dict(data.get("root", {})),
            fragments={name: Fragment.from_dict(f) for name, f in data.get("fragments", {}).items()},
            variables_schema=dict(data.get("variables_schema", {})),
            variables_defaults=decode_value(data.get("variables_defaults", {})),
            variables_values=decode_value(data.get("variables_values", {})),
            operation_directives=[
                DirectiveApplication.from_dict(d) for d in data.get("operation_directives", [])
            ],
            created_at=data.get("created_at") or utils.now_iso(),
        )
