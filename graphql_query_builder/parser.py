"""GraphQL schema building, document parsing and validation."""

from graphql import (
    GraphQLError,
    GraphQLSchema,
    TypeNode,
    build_client_schema,
    build_schema,
    parse,
    parse_type,
    validate,
)
from graphql.language import DocumentNode


def schema_from_introspection(schema_json: dict) -> GraphQLSchema:
    """
    Build GraphQL schema from introspection JSON.

    Args:
        schema_json: Introspection result, either {"__schema": {...}} or {"data": {"__schema": {...}}}

    Returns:
        GraphQLSchema object
    """
    # Handle both formats
    if "data" in schema_json and "__schema" in (schema_json["data"] or {}):
        data = schema_json["data"]
    else:
        data = schema_json

    return build_client_schema(data)


def schema_from_sdl(source: str) -> GraphQLSchema:
    """Build GraphQL schema from SDL text."""
    return build_schema(source)


def parse_query(source: str) -> DocumentNode:
    """
    Parse GraphQL query string into AST.

    Args:
        source: GraphQL query string

    Returns:
        DocumentNode AST

    Raises:
        GraphQLError: If query is syntactically invalid
    """
    return parse(source)


def parse_type_ref(type_string: str) -> TypeNode:
    """
    Parse a type reference such as ``[Int!]!``.

    Raises:
        GraphQLError: If the reference is not valid GraphQL type syntax
    """
    return parse_type(type_string)


def validate_query(doc: DocumentNode, schema: GraphQLSchema) -> list[GraphQLError]:
    """
    Validate query against schema.

    Args:
        doc: Parsed query document
        schema: GraphQL schema

    Returns:
        List of validation errors (empty if valid)
    """
    return validate(schema, doc)


def validate_source(source: str, schema: GraphQLSchema) -> list[GraphQLError]:
    """Parse and validate in one step; a syntax error is returned, not raised."""
    try:
        doc = parse_query(source)
    except GraphQLError as e:
        return [e]
    return validate_query(doc, schema)
