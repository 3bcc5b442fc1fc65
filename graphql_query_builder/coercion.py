"""Value coercion against GraphQL types and structural input validators."""

import json
import math
import re
from typing import Any, NamedTuple, Optional

from graphql import (
    GraphQLEnumType,
    GraphQLError,
    GraphQLInputObjectType,
    GraphQLInputType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLScalarType,
    TypeNode,
    Undefined,
)

from . import parser, utils
from .config import Config
from .errors import InvalidInput, InvalidName, TypeMismatch
from .model import EnumLiteral

NAME_RE = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")
INT_RE = re.compile(r"^[+-]?\d+$")
FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
CONTROL_CHARS_RE = re.compile("[\u0000-\u001f\u007f-\u009f]")

GRAPHQL_INT_MIN = -(2**31)
GRAPHQL_INT_MAX = 2**31 - 1

BUILTIN_SCALARS = ("Int", "Float", "String", "Boolean", "ID")

# Frequent spellings of built-in scalars
COMMON_TYPE_MISTAKES = {
    "integer": "Int",
    "int": "Int",
    "number": "Int",
    "float": "Float",
    "double": "Float",
    "bool": "Boolean",
    "boolean": "Boolean",
    "string": "String",
    "str": "String",
    "text": "String",
    "id": "ID",
    "identifier": "ID",
}

FORBIDDEN_KEYS = ("__proto__", "constructor", "prototype")


def describe(value: Any) -> str:
    """Short JSON-ish rendering of a value for error messages."""
    try:
        text = json.dumps(value, default=str)
    except ValueError:
        text = repr(value)
    return text if len(text) <= 100 else text[:97] + "..."


# Names
def is_valid_name(name: Any) -> bool:
    return isinstance(name, str) and NAME_RE.match(name) is not None


def validate_name(name: Any, kind: str = "field name") -> str:
    """Raise InvalidName unless ``name`` is a GraphQL name."""
    if not is_valid_name(name):
        raise InvalidName(f'Invalid {kind} "{name}". Must match /^[_A-Za-z][_0-9A-Za-z]*$/')
    return name


def validate_variable_name(name: Any) -> str:
    if not isinstance(name, str) or not name:
        raise InvalidName("Variable name must be a string")
    if not name.startswith("$"):
        raise InvalidName('Variable name must start with "$"')
    if not is_valid_name(name[1:]):
        raise InvalidName(f'Invalid variable name "{name}". Must be $[_A-Za-z][_0-9A-Za-z]*')
    return name


def validate_alias(alias: Optional[str]) -> Optional[str]:
    if alias is None:
        return None
    if not alias.strip():
        raise InvalidName("Field alias cannot be empty")
    return validate_name(alias, "field alias")


def validate_operation_name(name: Optional[str]) -> Optional[str]:
    """Blank names mean an anonymous operation."""
    if name is None or not name.strip():
        return None
    return validate_name(name, "operation name")


# Structural validators
def validate_string_length(value: str, name: str, max_length: int = 8192) -> None:
    if len(value) > max_length:
        raise InvalidInput(f'Input for "{name}" exceeds maximum allowed length of {max_length} characters.')


def validate_no_control_characters(value: str, name: str) -> None:
    if CONTROL_CHARS_RE.search(value):
        raise InvalidInput(f'Input for "{name}" contains disallowed control characters.')


def validate_text_leaves(value: Any, name: str, max_length: int = 8192) -> None:
    """Apply the length and control-character checks to every string in a nested value."""
    if isinstance(value, str):
        validate_string_length(value, name, max_length)
        validate_no_control_characters(value, name)
    elif isinstance(value, dict):
        for key, item in value.items():
            validate_text_leaves(key, name, max_length)
            validate_text_leaves(item, name, max_length)
    elif isinstance(value, (list, tuple)):
        for item in value:
            validate_text_leaves(item, name, max_length)


def validate_pagination_value(
    argument_name: str,
    value: Any,
    max_value: int = 500,
    pagination_args=("first", "last", "limit", "top", "count"),
) -> None:
    """Reject pagination arguments outside ``0..max_value``; other arguments pass."""
    if argument_name.lower() not in pagination_args:
        return

    if isinstance(value, bool):
        return
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and INT_RE.match(value.strip()):
        number = int(value.strip())
    else:
        return

    if number > max_value:
        raise InvalidInput(
            f"Pagination value for '{argument_name}' ({number}) exceeds maximum of {max_value}."
        )
    if number < 0:
        raise InvalidInput(f"Pagination value for '{argument_name}' ({number}) cannot be negative.")


def validate_input_complexity(value: Any, name: str, max_depth: int = 10, max_properties: int = 1000) -> None:
    """Bound the nesting depth and total number of properties/elements of a value."""
    count = 0
    seen = set()

    def check(val, depth):
        nonlocal count
        if not isinstance(val, (dict, list, tuple)):
            return
        if depth > max_depth:
            raise InvalidInput(f'Input for "{name}" exceeds the maximum allowed depth of {max_depth}.')
        if id(val) in seen:
            return
        seen.add(id(val))

        items = val.values() if isinstance(val, dict) else val
        count += len(val)
        for item in items:
            check(item, depth + 1)

        if count > max_properties:
            raise InvalidInput(
                f'Input for "{name}" exceeds the maximum allowed number of properties/elements of {max_properties}.'
            )

    check(value, 1)


def validate_object_key(key: Any) -> str:
    """Reject keys that are not GraphQL names, including prototype-polluting ones."""
    if key in FORBIDDEN_KEYS:
        raise InvalidInput(f"Input key '{key}' is not allowed.")
    return validate_name(key, "input field name")


def validate_object_keys(value: Any) -> None:
    """Check every key of every mapping nested in ``value``."""
    if isinstance(value, dict):
        for key, item in value.items():
            validate_object_key(key)
            validate_object_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            validate_object_keys(item)


def validate_value(name: str, value: Any, cfg: Config) -> None:
    """Run every generic validator an argument value must pass."""
    validate_object_keys(value)
    validate_text_leaves(value, name, cfg.max_string_length)
    validate_pagination_value(name, value, cfg.max_pagination_value, tuple(a.lower() for a in cfg.pagination_args))
    validate_input_complexity(value, name, cfg.max_input_depth, cfg.max_input_properties)


def validate_variable_type(type_string: Any, max_depth: int = 5) -> TypeNode:
    """
    Check the syntax of a variable type string.

    Args:
        type_string: Type reference such as ``[ID!]!``
        max_depth: Maximum list nesting

    Returns:
        Parsed TypeNode

    Raises:
        InvalidInput: If the type is empty, too deeply nested, or unparseable
    """
    if not isinstance(type_string, str) or not type_string.strip():
        raise InvalidInput("Variable type cannot be empty")

    depth = type_string.count("[")
    if depth > max_depth:
        raise InvalidInput(
            f'Variable type nesting depth of {depth} exceeds maximum of {max_depth} in "{type_string}".'
        )

    base = re.sub(r"[!\[\]\s]", "", type_string)
    suggestion = COMMON_TYPE_MISTAKES.get(base.lower())
    if suggestion and suggestion != base:
        raise InvalidInput(f"Invalid type '{type_string}'. Did you mean '{suggestion}'?")

    try:
        return parser.parse_type_ref(type_string)
    except GraphQLError as e:
        raise InvalidInput(f'Invalid variable type "{type_string}": {e.message}') from e


# Scalar coercion
def coerce_to_integer(value: Any) -> int:
    """
    Coerce a native or string value to a GraphQL Int.

    Raises:
        TypeMismatch: For booleans, floats, non-integer strings and out-of-range numbers
    """
    number = None
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and INT_RE.match(value.strip()):
        number = int(value.strip())

    if number is None:
        raise TypeMismatch(
            f"Int cannot represent non-integer value: {describe(value)}", expected="Int", value=value
        )
    if not GRAPHQL_INT_MIN <= number <= GRAPHQL_INT_MAX:
        raise TypeMismatch(
            f"Int cannot represent non 32-bit signed integer value: {describe(value)}",
            expected="Int",
            value=value,
        )
    return number


def coerce_to_float(value: Any):
    """
    Coerce a native or string value to a GraphQL Float.

    Native ints are kept as ints (a valid Float literal).

    Raises:
        TypeMismatch: For booleans, empty/non-numeric strings and non-finite numbers
    """
    result = None
    if isinstance(value, bool):
        result = None
    elif isinstance(value, (int, float)):
        result = value
    elif isinstance(value, str) and FLOAT_RE.match(value.strip()):
        result = float(value.strip())

    if result is None or (isinstance(result, float) and not math.isfinite(result)):
        raise TypeMismatch(
            f"Float cannot represent non numeric value: {describe(value)}", expected="Float", value=value
        )
    return result


def coerce_to_boolean(value: Any) -> bool:
    """
    Coerce a native bool or ``"true"``/``"false"`` (any case) to a GraphQL Boolean.

    Raises:
        TypeMismatch: For numbers, including 0 and 1, and any other token
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise TypeMismatch(
        f"Boolean cannot represent a non boolean value: {describe(value)}", expected="Boolean", value=value
    )


class StringCoercion(NamedTuple):
    coerced: bool
    value: Any
    type_name: Optional[str] = None
    warning: Optional[str] = None


def coerce_string_value(value: str) -> StringCoercion:
    """Guess the intended scalar of a string when no schema type is known."""
    for type_name, coerce in (("Int", coerce_to_integer), ("Float", coerce_to_float), ("Boolean", coerce_to_boolean)):
        try:
            result = coerce(value)
        except TypeMismatch:
            continue
        return StringCoercion(
            True,
            result,
            type_name,
            f'Detected {type_name} value "{value}". Consider using set-typed-argument for better type safety.',
        )
    return StringCoercion(False, value)


# Schema-typed coercion
def coerce_value(value: Any, gql_type: GraphQLInputType, label: str) -> Any:
    """
    Coerce ``value`` to ``gql_type`` or raise.

    Args:
        value: Native value (strings are accepted for Int/Float/Boolean and
            JSON object strings for input objects)
        gql_type: Resolved GraphQL input type
        label: Name used in error messages (argument or variable name)

    Returns:
        Coerced value; enum members become EnumLiteral

    Raises:
        TypeMismatch: With the expected GraphQL type and the rejected value
    """
    if isinstance(gql_type, GraphQLNonNull):
        if value is None:
            raise TypeMismatch(
                f'Invalid value for "{label}": expected non-null {utils.type_name_str(gql_type)}, got null.',
                expected=utils.type_name_str(gql_type),
                value=value,
            )
        return coerce_value(value, gql_type.of_type, label)

    if value is None:
        return None

    if isinstance(gql_type, GraphQLList):
        if isinstance(value, (list, tuple)):
            return [coerce_value(item, gql_type.of_type, f"{label}[{i}]") for i, item in enumerate(value)]
        # A single value is accepted where a list is expected
        return coerce_value(value, gql_type.of_type, label)

    try:
        if isinstance(gql_type, GraphQLScalarType):
            return _coerce_scalar(value, gql_type)
        if isinstance(gql_type, GraphQLEnumType):
            return _coerce_enum(value, gql_type)
        if isinstance(gql_type, GraphQLInputObjectType):
            return _coerce_input_object(value, gql_type, label)
    except TypeMismatch as e:
        if e.message.startswith("Invalid value for"):
            raise
        raise TypeMismatch(f'Invalid value for "{label}": {e.message}', expected=e.expected, value=e.value) from e

    return value


def _coerce_scalar(value: Any, scalar: GraphQLScalarType) -> Any:
    name = scalar.name
    if name == "Int":
        return coerce_to_integer(value)
    if name == "Float":
        return coerce_to_float(value)
    if name == "Boolean":
        return coerce_to_boolean(value)
    if name == "String":
        if not isinstance(value, str):
            raise TypeMismatch(
                f"String cannot represent a non string value: {describe(value)}", expected="String", value=value
            )
        return value
    if name == "ID":
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise TypeMismatch(f"ID cannot represent value: {describe(value)}", expected="ID", value=value)
        return value
    # Custom scalars are opaque
    return value


def _coerce_enum(value: Any, enum_type: GraphQLEnumType) -> EnumLiteral:
    if not isinstance(value, str) or value not in enum_type.values:
        hint = utils.suggestion_suffix(str(value), list(enum_type.values), "values")
        raise TypeMismatch(
            f"Value {describe(value)} does not exist in '{enum_type.name}' enum.{hint}",
            expected=enum_type.name,
            value=value,
        )
    return EnumLiteral(value)


def _coerce_input_object(value: Any, input_type: GraphQLInputObjectType, label: str) -> dict:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            value = None
    if not isinstance(value, dict):
        raise TypeMismatch(
            f"Expected type '{input_type.name}' to be an object, got {describe(value)}.",
            expected=input_type.name,
            value=value,
        )

    fields = input_type.fields
    result = {}
    for key, item in value.items():
        if key in FORBIDDEN_KEYS:
            raise InvalidInput(f"Input key '{key}' is not allowed.")
        if key not in fields:
            hint = utils.suggestion_suffix(key, list(fields))
            raise TypeMismatch(
                f"Field '{key}' is not defined by type '{input_type.name}'.{hint}",
                expected=input_type.name,
                value=value,
            )
        result[key] = coerce_value(item, fields[key].type, f"{label}.{key}")

    for name, input_field in fields.items():
        if name in value or input_field.default_value is not Undefined:
            continue
        if isinstance(input_field.type, GraphQLNonNull):
            expected = utils.type_name_str(input_field.type)
            raise TypeMismatch(
                f"Field '{name}' of required type '{expected}' was not provided for '{label}'.",
                expected=expected,
                value=value,
            )
    return result
