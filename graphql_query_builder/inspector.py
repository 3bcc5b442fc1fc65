"""Schema inspection: type, field and input-object descriptions and available selections."""

import json
from typing import Any, Optional

from graphql import (
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLUnionType,
    Undefined,
    ast_from_value,
    introspection_from_schema,
    print_ast,
    print_schema,
)

from . import utils
from .errors import SchemaLookupError, SchemaTooLarge

MAX_SCHEMA_BYTES = 800 * 1024

EXAMPLE_VALUES = {
    "String": "example_string",
    "Int": 42,
    "Float": 3.14,
    "Boolean": True,
    "ID": "example_id",
}


def type_kind(gql_type: GraphQLNamedType) -> str:
    """Introspection kind name of a named type."""
    if isinstance(gql_type, GraphQLObjectType):
        return "OBJECT"
    if isinstance(gql_type, GraphQLInterfaceType):
        return "INTERFACE"
    if isinstance(gql_type, GraphQLUnionType):
        return "UNION"
    if isinstance(gql_type, GraphQLEnumType):
        return "ENUM"
    if isinstance(gql_type, GraphQLInputObjectType):
        return "INPUT_OBJECT"
    if isinstance(gql_type, GraphQLScalarType):
        return "SCALAR"
    return type(gql_type).__name__


def default_value_str(item) -> Optional[str]:
    """GraphQL literal of an argument or input field default, or None."""
    if item.default_value is Undefined:
        return None
    node = ast_from_value(item.default_value, item.type)
    return print_ast(node) if node else None


def describe_schema(schema: GraphQLSchema, max_bytes: int = MAX_SCHEMA_BYTES) -> dict:
    """
    SDL and introspection JSON of a schema.

    Args:
        schema: GraphQL schema
        max_bytes: Size limit of the combined payload

    Returns:
        Dict with schemaSdl and fullSchemaJson

    Raises:
        SchemaTooLarge: If the payload would exceed ``max_bytes``
    """
    sdl = print_schema(schema)
    full = introspection_from_schema(schema)
    raw = json.dumps(full)
    size = len(sdl) + len(raw)
    if size > max_bytes:
        raise SchemaTooLarge(
            f"Schema is too large to return directly (estimated {round(size / 1024)}KB). "
            f"Use get-root-operation-types and get-type-info for schema exploration.",
            details={
                "characterCountSdl": len(sdl),
                "characterCountJson": len(raw),
                "estimatedTotalKb": round(size / 1024),
                "limitKb": max_bytes // 1024,
            },
        )
    return {"schemaSdl": sdl, "fullSchemaJson": full}


def root_operation_types(schema: GraphQLSchema) -> dict:
    return {
        "queryType": schema.query_type.name if schema.query_type else None,
        "mutationType": schema.mutation_type.name if schema.mutation_type else None,
        "subscriptionType": schema.subscription_type.name if schema.subscription_type else None,
    }


def _argument_info(name: str, arg: GraphQLArgument) -> dict:
    return {
        "name": name,
        "description": arg.description,
        "type": utils.type_name_str(arg.type),
        "defaultValue": default_value_str(arg),
    }


def _input_field_info(name: str, input_field: GraphQLInputField) -> dict:
    return {
        "name": name,
        "description": input_field.description,
        "type": utils.type_name_str(input_field.type),
        "defaultValue": default_value_str(input_field),
    }


def _get_type(schema: GraphQLSchema, type_name: str) -> GraphQLNamedType:
    gql_type = schema.get_type(type_name)
    if gql_type is None:
        names = [n for n in schema.type_map if not n.startswith("__")]
        raise SchemaLookupError(f"Type '{type_name}' not found in schema.{utils.suggestion_suffix(type_name, names, 'types')}")
    return gql_type


def type_info(schema: GraphQLSchema, type_name: str) -> dict:
    """
    Describe a named type.

    Args:
        schema: GraphQL schema
        type_name: Name of the type

    Returns:
        Dict with name, kind, description and the kind-specific members

    Raises:
        SchemaLookupError: If the type does not exist
    """
    gql_type = _get_type(schema, type_name)
    out: dict[str, Any] = {
        "name": gql_type.name,
        "kind": type_kind(gql_type),
        "description": gql_type.description,
    }

    if isinstance(gql_type, (GraphQLObjectType, GraphQLInterfaceType)):
        out["fields"] = [
            {
                "name": name,
                "description": f.description,
                "type": utils.type_name_str(f.type),
                "args": [_argument_info(arg_name, arg) for arg_name, arg in f.args.items()],
            }
            for name, f in gql_type.fields.items()
        ]
        if isinstance(gql_type, GraphQLInterfaceType):
            out["possibleTypes"] = [t.name for t in schema.get_possible_types(gql_type)]
    elif isinstance(gql_type, GraphQLUnionType):
        out["possibleTypes"] = [t.name for t in gql_type.types]
    elif isinstance(gql_type, GraphQLEnumType):
        out["enumValues"] = [
            {"name": name, "description": v.description, "deprecated": v.deprecation_reason is not None}
            for name, v in gql_type.values.items()
        ]
    elif isinstance(gql_type, GraphQLInputObjectType):
        out["inputFields"] = [_input_field_info(name, f) for name, f in gql_type.fields.items()]

    return out


def field_info(schema: GraphQLSchema, type_name: str, field_name: str) -> dict:
    """Describe one field of an object or interface type, including its arguments."""
    gql_type = schema.get_type(type_name)
    if not isinstance(gql_type, (GraphQLObjectType, GraphQLInterfaceType)):
        raise SchemaLookupError(f"Type '{type_name}' not found or not an object/interface type")

    field_def = gql_type.fields.get(field_name)
    if field_def is None:
        hint = utils.suggestion_suffix(field_name, list(gql_type.fields))
        raise SchemaLookupError(f"Field '{field_name}' not found on type '{type_name}'.{hint}")

    return {
        "name": field_name,
        "description": field_def.description,
        "type": utils.type_name_str(field_def.type),
        "args": [_argument_info(name, arg) for name, arg in field_def.args.items()],
    }


def example_value(gql_type) -> Any:
    """Placeholder value for an input field, for usage examples."""
    named = utils.named_type(gql_type)
    if isinstance(named, GraphQLEnumType) and named.values:
        return next(iter(named.values))
    example = EXAMPLE_VALUES.get(named.name, "example_value")
    return [example] if utils.is_list_type(gql_type) else example


def input_object_help(schema: GraphQLSchema, type_name: str) -> dict:
    """
    Field guide for building an input-object argument.

    Args:
        schema: GraphQL schema
        type_name: Input object type name

    Returns:
        Dict with fields, requiredFields and an exampleUsage string

    Raises:
        SchemaLookupError: If the type is missing or not an input object
    """
    input_type = schema.get_type(type_name)
    if not isinstance(input_type, GraphQLInputObjectType):
        raise SchemaLookupError(f"Input type '{type_name}' not found or not an input object type")

    fields = []
    for name, f in input_type.fields.items():
        type_str = utils.type_name_str(f.type)
        fields.append(
            {
                "name": name,
                "type": type_str,
                "description": f.description or f"Field of type {type_str}",
                "required": isinstance(f.type, GraphQLNonNull) and f.default_value is Undefined,
                "defaultValue": default_value_str(f),
                "exampleValue": example_value(f.type),
            }
        )

    required = [f for f in fields if f["required"]]
    shown = (required or fields)[:3]
    example_fields = ", ".join(f"{f['name']}: {json.dumps(f['exampleValue'])}" for f in shown)

    return {
        "inputTypeName": type_name,
        "description": input_type.description or f"Input type for {type_name}",
        "fields": fields,
        "requiredFields": [f["name"] for f in required],
        "exampleUsage": f"{{ {example_fields} }}",
    }


def available_selections(schema: GraphQLSchema, gql_type: GraphQLNamedType) -> list[dict]:
    """
    Fields selectable on a type, plus inline-fragment suggestions for abstract types.

    Args:
        schema: GraphQL schema
        gql_type: Named type at the current position

    Returns:
        List of {name, type, description}
    """
    selections = []

    if isinstance(gql_type, (GraphQLObjectType, GraphQLInterfaceType)):
        for name, f in gql_type.fields.items():
            args = [
                f"{arg_name}: {utils.type_name_str(arg.type)}"
                + (" (optional)" if arg.default_value is not Undefined else "")
                for arg_name, arg in f.args.items()
            ]
            return_type = utils.type_name_str(f.type)
            description = (f.description or "").strip()
            if description and description[-1] not in ".!?":
                description += "."
            description += f" Returns {return_type}."
            if args:
                description += f" (Args: {', '.join(args)})"
            selections.append({"name": name, "type": return_type, "description": description.strip()})

    if isinstance(gql_type, (GraphQLInterfaceType, GraphQLUnionType)):
        for possible in schema.get_possible_types(gql_type):
            selections.append(
                {
                    "name": f"... on {possible.name}",
                    "type": possible.name,
                    "description": f"Select fields specific to {possible.name} type",
                }
            )

    return selections
