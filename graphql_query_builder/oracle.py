"""Type lookups against an optional schema.

Every lookup returns a :class:`Lookup` that keeps "the schema does not define
this" (ABSENT) apart from "there is no schema to ask" (UNAVAILABLE), so callers
decide explicitly which checks degrade and which stay strict.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from graphql import (
    GraphQLInputType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLSchema,
    ListTypeNode,
    NonNullTypeNode,
    TypeNode,
    is_input_type,
    is_type_sub_type_of,
    specified_directives,
    specified_scalar_types,
)

from . import utils
from .errors import SchemaLookupError, SchemaUnavailable


class LookupStatus(Enum):
    FOUND = "found"
    ABSENT = "absent"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Lookup:
    """Outcome of a schema lookup."""

    status: LookupStatus
    value: Any = None
    message: str = ""

    @classmethod
    def found(cls, value: Any) -> "Lookup":
        return cls(LookupStatus.FOUND, value)

    @classmethod
    def absent(cls, message: str) -> "Lookup":
        return cls(LookupStatus.ABSENT, None, message)

    @classmethod
    def unavailable(cls, message: str = "Schema unavailable.") -> "Lookup":
        return cls(LookupStatus.UNAVAILABLE, None, message)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def is_absent(self) -> bool:
        return self.status is LookupStatus.ABSENT

    @property
    def is_unavailable(self) -> bool:
        return self.status is LookupStatus.UNAVAILABLE

    def require(self) -> Any:
        """Return the value or raise the matching error."""
        if self.is_found:
            return self.value
        if self.is_absent:
            raise SchemaLookupError(self.message)
        raise SchemaUnavailable(self.message)


BUILTIN_DIRECTIVES = {d.name: d for d in specified_directives}


class TypeOracle:
    """Answers type questions for one session's schema (or its absence)."""

    def __init__(self, schema: Optional[GraphQLSchema] = None, reason: str = "Schema unavailable."):
        self.schema = schema
        self.reason = reason

    @property
    def available(self) -> bool:
        return self.schema is not None

    def resolve_type(self, name: str) -> Lookup:
        """Resolve a named type; built-in scalars resolve without a schema."""
        if self.schema is None:
            if name in specified_scalar_types:
                return Lookup.found(specified_scalar_types[name])
            return Lookup.unavailable(self.reason)

        gql_type = self.schema.get_type(name)
        if gql_type is None:
            hint = utils.suggestion_suffix(name, _public_type_names(self.schema), "types")
            return Lookup.absent(f"Type '{name}' not found in schema.{hint}")
        return Lookup.found(gql_type)

    def resolve_type_ref(self, type_node: TypeNode) -> Lookup:
        """Resolve a parsed type reference (``[ID!]!``) to an input type."""
        if isinstance(type_node, NonNullTypeNode):
            inner = self.resolve_type_ref(type_node.type)
            return Lookup.found(GraphQLNonNull(inner.value)) if inner.is_found else inner
        if isinstance(type_node, ListTypeNode):
            inner = self.resolve_type_ref(type_node.type)
            return Lookup.found(GraphQLList(inner.value)) if inner.is_found else inner

        lookup = self.resolve_type(type_node.name.value)
        if lookup.is_found and not is_input_type(lookup.value):
            return Lookup.absent(f"Type '{type_node.name.value}' is not an input type.")
        return lookup

    def root_type(self, operation_type: str) -> Lookup:
        if self.schema is None:
            return Lookup.unavailable(self.reason)
        root = {
            "query": self.schema.query_type,
            "mutation": self.schema.mutation_type,
            "subscription": self.schema.subscription_type,
        }.get(operation_type)
        if root is None:
            return Lookup.absent(f"Schema does not support {operation_type} operations.")
        return Lookup.found(root)

    def root_type_name(self, operation_type: str) -> str:
        lookup = self.root_type(operation_type)
        return lookup.value.name if lookup.is_found else operation_type.capitalize()

    def field_definition(self, parent: GraphQLNamedType, field_name: str) -> Lookup:
        if not isinstance(parent, (GraphQLObjectType, GraphQLInterfaceType)):
            return Lookup.absent(f"Type '{parent.name}' has no fields (cannot select '{field_name}').")
        field_def = parent.fields.get(field_name)
        if field_def is None:
            hint = utils.suggestion_suffix(field_name, list(parent.fields))
            return Lookup.absent(f"Field '{field_name}' not found on type '{parent.name}'.{hint}")
        return Lookup.found(field_def)

    def type_at(self, operation_type: str, field_names: list[str]) -> Lookup:
        """Named output type reached by following schema field names from the root."""
        return self.walk_fields(self.root_type(operation_type), field_names)

    def walk_fields(self, start: Lookup, field_names: list[str]) -> Lookup:
        """Follow field names from the type in ``start``; ``__typename`` resolves to String."""
        lookup = start
        for name in field_names:
            if lookup.is_found and name == "__typename":
                lookup = Lookup.found(specified_scalar_types["String"])
                continue
            if not lookup.is_found:
                return lookup
            field_lookup = self.field_definition(lookup.value, name)
            if not field_lookup.is_found:
                return field_lookup
            lookup = Lookup.found(utils.named_type(field_lookup.value.type))
        return lookup

    def field_at(self, operation_type: str, field_names: list[str]) -> Lookup:
        """Field definition of the last name in ``field_names``."""
        parent = self.type_at(operation_type, field_names[:-1])
        if not parent.is_found:
            return parent
        return self.field_definition(parent.value, field_names[-1])

    def argument_type(self, operation_type: str, field_names: list[str], argument_name: str) -> Lookup:
        """Input type of an argument of the field at the end of ``field_names``."""
        field_lookup = self.field_at(operation_type, field_names)
        if not field_lookup.is_found:
            return field_lookup

        arg = field_lookup.value.args.get(argument_name)
        if arg is None:
            available = list(field_lookup.value.args)
            hint = utils.suggestion_suffix(argument_name, available, "arguments")
            if not available:
                hint = " This field takes no arguments."
            return Lookup.absent(
                f"Argument '{argument_name}' not found on field '{'.'.join(field_names)}'.{hint}"
            )
        return Lookup.found(arg.type)

    def directive(self, name: str) -> Lookup:
        if self.schema is None:
            if name in BUILTIN_DIRECTIVES:
                return Lookup.found(BUILTIN_DIRECTIVES[name])
            return Lookup.unavailable(self.reason)
        directive = self.schema.get_directive(name)
        if directive is None:
            names = [d.name for d in self.schema.directives]
            hint = utils.suggestion_suffix(name, names, "directives")
            return Lookup.absent(f"Directive '@{name}' not found in schema.{hint}")
        return Lookup.found(directive)

    def directive_argument_type(self, directive_name: str, argument_name: str) -> Lookup:
        lookup = self.directive(directive_name)
        if not lookup.is_found:
            return lookup
        arg = lookup.value.args.get(argument_name)
        if arg is None:
            hint = utils.suggestion_suffix(argument_name, list(lookup.value.args), "arguments")
            return Lookup.absent(f"Argument '{argument_name}' not found on directive '@{directive_name}'.{hint}")
        return Lookup.found(arg.type)

    def is_usage_allowed(self, variable_type: GraphQLInputType, location_type: GraphQLInputType,
                         has_default: bool = False) -> bool:
        """Whether a variable of ``variable_type`` may be passed where ``location_type`` is expected."""
        if self.schema is None:
            return True
        if isinstance(location_type, GraphQLNonNull) and not isinstance(variable_type, GraphQLNonNull):
            if not has_default:
                return False
            location_type = location_type.of_type
        return is_type_sub_type_of(self.schema, variable_type, location_type)


def _public_type_names(schema: GraphQLSchema) -> list[str]:
    return [name for name in schema.type_map if not name.startswith("__")]
