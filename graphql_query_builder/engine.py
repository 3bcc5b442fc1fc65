"""Session operations for building GraphQL documents incrementally.

Every public coroutine of :class:`QueryBuilder` takes plain values, returns a
JSON-compatible dict and never raises: failures come back as
``{"error": message, "code": ErrorClassName}``.

Mutations follow load, change, save. There is no locking, so two concurrent
mutations of the same session race and the later save wins.
"""

import asyncio
import copy
import functools
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from graphql import GraphQLEnumType, GraphQLInputObjectType, GraphQLInterfaceType, GraphQLObjectType, GraphQLUnionType

from . import coercion, complexity, inspector, parser, rules, utils
from .config import Config
from .errors import (
    ComplexityExceeded,
    EndpointUnconfigured,
    FragmentAlreadyExists,
    FragmentNotFound,
    InvalidInput,
    InvalidName,
    InvalidPath,
    QueryBuilderError,
    SchemaLookupError,
    SchemaUnavailable,
    SessionNotFound,
    StoreError,
    TypeMismatch,
    UndeclaredVariable,
    VariableConflict,
)
from .executor import ExecutionGateway, RequestsGateway
from .model import (
    OPERATION_TYPES,
    Argument,
    DirectiveApplication,
    EnumLiteral,
    Fragment,
    InlineFragment,
    QueryState,
    encode_value,
    find_directive,
)
from .oracle import Lookup, TypeOracle
from .schema_loader import IntrospectionSchemaProvider, SchemaProvider
from .serializer import render_document
from .store import SessionStore, generate_session_id, normalize_session_id
from .tree import add_field, add_path, field_names_along, join_path, resolve, split_path, walk, walk_document

logger = logging.getLogger(__name__)

STRING_SCALARS = ("String", "ID")


def operation(func):
    """Convert errors into payloads at the operation boundary."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except QueryBuilderError as e:
            logger.debug("%s failed: %s", func.__name__, e.message)
            return e.to_payload()
        except Exception as e:
            logger.exception("Unexpected error in %s", func.__name__)
            return {"error": str(e) or type(e).__name__, "code": "InternalError"}

    return wrapper


def _ok(message: str, warnings: Optional[list[str]] = None, **fields) -> dict:
    result = {"success": True, "message": message, **fields}
    if warnings:
        result["warnings"] = warnings
    return result


def _validate_field_paths(field_names) -> list[str]:
    """Validate a list of field names or dotted relative paths."""
    if isinstance(field_names, str):
        field_names = [field_names]
    if not field_names:
        raise InvalidInput("At least one field name is required.")
    paths = []
    for raw in field_names:
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidName(f'Invalid field name "{raw}".')
        path = raw.strip()
        for part in split_path(path):
            coercion.validate_name(part)
        paths.append(path)
    return paths


class QueryBuilder:
    """
    Builds GraphQL documents across independent calls.

    Args:
        store: Session persistence
        schema_provider: Where schemas for type checks come from
        cfg: Configuration (defaults when omitted)
        gateway: HTTP execution gateway
    """

    def __init__(
        self,
        store: SessionStore,
        schema_provider: Optional[SchemaProvider] = None,
        cfg: Optional[Config] = None,
        gateway: Optional[ExecutionGateway] = None,
    ):
        self.cfg = cfg or Config()
        self.store = store
        self.schema_provider = schema_provider or IntrospectionSchemaProvider(self.cfg)
        self.gateway = gateway or RequestsGateway()

    # Session plumbing

    async def _store_call(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, self.cfg.store_timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(f"Session store timed out ({self.cfg.store_timeout}s)") from e

    async def _load(self, session_id: str) -> QueryState:
        state = await self._store_call(self.store.load(normalize_session_id(session_id)))
        if state is None:
            raise SessionNotFound(session_id)
        return state

    @asynccontextmanager
    async def _session(self, session_id: str):
        """Load a fresh copy, yield it, and save only if the block finishes cleanly."""
        sid = normalize_session_id(session_id)
        state = await self._load(sid)
        yield state
        await self._store_call(self.store.save(sid, state))

    async def _schema(self, headers: Optional[dict[str, str]] = None):
        timeout = self.cfg.introspection_timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.schema_provider.get_schema, headers), timeout)
        except asyncio.TimeoutError as e:
            raise SchemaUnavailable(f"Schema introspection timed out ({timeout}s)") from e

    async def _oracle(self, headers: Optional[dict[str, str]] = None) -> TypeOracle:
        try:
            return TypeOracle(await self._schema(headers))
        except SchemaUnavailable as e:
            logger.warning("Schema unavailable, continuing without schema checks: %s", e.message)
            return TypeOracle(None, e.message)

    @staticmethod
    def _best_effort(lookup: Lookup, what: str) -> Any:
        """Value of a FOUND lookup; ABSENT raises; UNAVAILABLE skips the check."""
        if lookup.is_absent:
            raise SchemaLookupError(lookup.message)
        if lookup.is_unavailable:
            logger.warning("Skipping schema check for %s: %s", what, lookup.message)
            return None
        return lookup.value

    def _check_relative_paths(self, oracle: TypeOracle, start: Lookup, paths: list[str], what: str) -> None:
        """Check that every segment of each relative path names a field, where the schema allows."""
        for path in paths:
            parts = split_path(path)
            for i, part in enumerate(parts):
                if part == "__typename":
                    continue
                parent = oracle.walk_fields(start, parts[:i])
                parent_type = self._best_effort(parent, what)
                if parent_type is None:
                    break
                self._best_effort(oracle.field_definition(parent_type, part), what)

    # Sessions

    @operation
    async def start_query_session(
        self,
        operation_type: str = "query",
        operation_name: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict:
        """Create a new session for a query, mutation or subscription."""
        operation_type = (operation_type or "query").strip().lower()
        if operation_type not in OPERATION_TYPES:
            raise InvalidInput(
                f"Invalid operation type '{operation_type}'. Must be one of: {', '.join(OPERATION_TYPES)}."
            )
        operation_name = coercion.validate_operation_name(operation_name)

        merged = {**self.cfg.headers, **(headers or {})}
        for key, value in merged.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise InvalidInput("Headers must map strings to strings.")
        coercion.validate_input_complexity(merged, "headers", self.cfg.max_input_depth, self.cfg.max_input_properties)
        coercion.validate_text_leaves(merged, "headers", self.cfg.max_string_length)

        oracle = await self._oracle(merged)
        warnings = []
        if oracle.available:
            if oracle.root_type(operation_type).is_absent:
                raise InvalidInput(f"Operation type '{operation_type}' not supported by schema.")
        else:
            warnings.append(f"Schema unavailable; schema checks are skipped: {oracle.reason}")

        session_id = generate_session_id()
        state = QueryState(
            operation_type=operation_type,
            operation_type_name=oracle.root_type_name(operation_type),
            operation_name=operation_name,
            headers=merged,
        )
        await self._store_call(self.store.save(session_id, state))
        logger.info("Started %s session %s", operation_type, session_id)

        return _ok(
            f"Session {session_id} started.",
            warnings,
            sessionId=session_id,
            operationType=state.operation_type,
            operationTypeName=state.operation_type_name,
            operationName=state.operation_name,
            createdAt=state.created_at,
        )

    @operation
    async def end_query_session(self, session_id: str) -> dict:
        """Delete a session."""
        sid = normalize_session_id(session_id)
        state = await self._load(sid)
        if not await self._store_call(self.store.delete(sid)):
            raise StoreError("Failed to delete session state after retrieving it.")
        logger.info("Ended session %s", sid)

        return _ok(
            f"Session {sid} ended successfully",
            sessionInfo={
                "sessionId": sid,
                "operationType": state.operation_type,
                "operationName": state.operation_name,
                "createdAt": state.created_at,
                "endedAt": utils.now_iso(),
            },
        )

    # Field selection

    @operation
    async def select_field(
        self,
        session_id: str,
        field_name: str,
        parent_path: str = "",
        alias: Optional[str] = None,
    ) -> dict:
        """Select a field under ``parent_path`` (root when empty), merging with an existing selection."""
        coercion.validate_name(field_name)
        alias = coercion.validate_alias(alias)

        async with self._session(session_id) as state:
            parent = resolve(state.root, parent_path)
            if self.cfg.validate_selections:
                oracle = await self._oracle(state.headers)
                start = oracle.type_at(state.operation_type, field_names_along(state.root, parent_path))
                self._check_relative_paths(oracle, start, [field_name], f"field '{field_name}'")
            node = add_field(parent.children, field_name, alias)

        field_path = join_path(parent_path, node.key)
        return _ok(
            f"Field '{node.key}' selected at path '{field_path}'.",
            fieldKey=node.key,
            fieldPath=field_path,
            parentPath=parent_path,
        )

    @operation
    async def select_multiple_fields(self, session_id: str, field_names: list[str], parent_path: str = "") -> dict:
        """Select several fields or dotted relative paths under one parent in one call."""
        paths = _validate_field_paths(field_names)

        async with self._session(session_id) as state:
            parent = resolve(state.root, parent_path)
            if self.cfg.validate_selections:
                oracle = await self._oracle(state.headers)
                start = oracle.type_at(state.operation_type, field_names_along(state.root, parent_path))
                self._check_relative_paths(oracle, start, paths, f"fields under '{parent_path or 'root'}'")
            for path in paths:
                add_path(parent.children, path)

        selected = [join_path(parent_path, p) for p in paths]
        return _ok(
            f"Selected {len(selected)} field(s) at '{parent_path or 'root'}'.",
            selectedFields=selected,
            parentPath=parent_path,
        )

    # Variables

    @operation
    async def set_query_variable(
        self,
        session_id: str,
        variable_name: str,
        variable_type: str,
        default_value: Any = None,
    ) -> dict:
        """
        Declare (or redeclare) an operation variable.

        A ``default_value`` of None means no default.
        """
        coercion.validate_variable_name(variable_name)
        type_node = coercion.validate_variable_type(variable_type, self.cfg.max_type_depth)
        variable_type = variable_type.strip()
        if default_value is not None:
            coercion.validate_object_keys(default_value)
            coercion.validate_text_leaves(default_value, variable_name, self.cfg.max_string_length)
            coercion.validate_input_complexity(
                default_value, variable_name, self.cfg.max_input_depth, self.cfg.max_input_properties
            )

        warnings = []
        async with self._session(session_id) as state:
            oracle = await self._oracle(state.headers)
            lookup = oracle.resolve_type_ref(type_node)
            if lookup.is_absent:
                raise SchemaLookupError(lookup.message)
            if variable_name in state.variables_schema and lookup.is_found:
                self._check_redeclaration(
                    state, oracle, variable_name, variable_type, lookup.value, default_value is not None
                )

            if default_value is not None:
                if lookup.is_found:
                    default_value = coercion.coerce_value(default_value, lookup.value, variable_name)
                else:
                    warnings.append(
                        f"Default value for {variable_name} stored without type check: {lookup.message}"
                    )

            state.variables_schema[variable_name] = variable_type
            if default_value is None:
                state.variables_defaults.pop(variable_name, None)
            else:
                state.variables_defaults[variable_name] = default_value

            if variable_name in state.variables_values and lookup.is_found:
                try:
                    state.variables_values[variable_name] = coercion.coerce_value(
                        state.variables_values[variable_name], lookup.value, variable_name
                    )
                except TypeMismatch:
                    del state.variables_values[variable_name]
                    warnings.append(
                        f"Bound value of {variable_name} does not match {variable_type} and was removed."
                    )

        return _ok(
            f"Variable {variable_name} declared as {variable_type}.",
            warnings,
            variableName=variable_name,
            variableType=variable_type,
            defaultValue=encode_value(default_value),
        )

    def _check_redeclaration(self, state: QueryState, oracle: TypeOracle, variable_name: str,
                             variable_type: str, gql_type, has_default: bool) -> None:
        """Raise VariableConflict if an argument bound to the variable cannot take the new type."""
        for path, node in walk(state.root):
            if "... on " in path:
                continue
            for argument_name, argument in node.arguments.items():
                if not (argument.is_variable and argument.references(variable_name)):
                    continue
                location = oracle.argument_type(
                    state.operation_type, field_names_along(state.root, path), argument_name
                )
                if location.is_found and not oracle.is_usage_allowed(gql_type, location.value, has_default):
                    raise VariableConflict(
                        f"Cannot redeclare {variable_name} as {variable_type}: argument '{argument_name}' "
                        f"on '{path}' expects {utils.type_name_str(location.value)}."
                    )

    @operation
    async def set_variable_value(self, session_id: str, variable_name: str, value: Any) -> dict:
        """Bind the runtime value sent with the operation for a declared variable."""
        coercion.validate_variable_name(variable_name)
        coercion.validate_text_leaves(value, variable_name, self.cfg.max_string_length)
        coercion.validate_input_complexity(
            value, variable_name, self.cfg.max_input_depth, self.cfg.max_input_properties
        )

        warnings = []
        async with self._session(session_id) as state:
            if variable_name not in state.variables_schema:
                raise UndeclaredVariable(variable_name)

            oracle = await self._oracle(state.headers)
            type_node = parser.parse_type_ref(state.variables_schema[variable_name])
            lookup = oracle.resolve_type_ref(type_node)
            if lookup.is_absent:
                raise SchemaLookupError(lookup.message)
            if lookup.is_found:
                value = coercion.coerce_value(value, lookup.value, variable_name)
            else:
                warnings.append(f"Value for {variable_name} stored without type check: {lookup.message}")

            state.variables_values[variable_name] = value

        return _ok(
            f"Value bound to {variable_name}.",
            warnings,
            variableName=variable_name,
            value=encode_value(value),
        )

    @staticmethod
    def _cascade_variable_removal(state: QueryState, variable_name: str) -> list[dict]:
        """Remove every argument and directive that references ``variable_name``."""
        removed = []
        for path, node in walk_document(state):
            for arg_name in [n for n, a in node.arguments.items() if a.references(variable_name)]:
                del node.arguments[arg_name]
                removed.append({"path": path, "argument": arg_name})

            kept = []
            for directive in node.directives:
                if directive.references(variable_name):
                    removed.append({"path": path, "directive": directive.name})
                else:
                    kept.append(directive)
            node.directives = kept

        kept = []
        for directive in state.operation_directives:
            if directive.references(variable_name):
                removed.append({"path": "", "directive": directive.name})
            else:
                kept.append(directive)
        state.operation_directives = kept
        return removed

    @operation
    async def remove_query_variable(self, session_id: str, variable_name: str) -> dict:
        """Delete a variable declaration and everything that references it."""
        coercion.validate_variable_name(variable_name)

        async with self._session(session_id) as state:
            if variable_name not in state.variables_schema:
                raise UndeclaredVariable(variable_name)

            del state.variables_schema[variable_name]
            state.variables_defaults.pop(variable_name, None)
            state.variables_values.pop(variable_name, None)
            removed = self._cascade_variable_removal(state, variable_name)

        lines = []
        for item in removed:
            if "argument" in item:
                lines.append(
                    f"Removed field argument '{item['argument']}' from '{item['path']}' "
                    f"(referenced deleted variable {variable_name})"
                )
            elif item["path"]:
                lines.append(
                    f"Removed directive '@{item['directive']}' from '{item['path']}' "
                    f"(referenced deleted variable {variable_name})"
                )
            else:
                lines.append(
                    f"Removed operation directive '@{item['directive']}' "
                    f"(referenced deleted variable {variable_name})"
                )

        message = f"Variable {variable_name} removed."
        if lines:
            message += " " + "; ".join(lines) + "."
        logger.info("Removed %s from session, %d dependent reference(s)", variable_name, len(removed))
        return _ok(message, variableName=variable_name, removed=removed)

    # Arguments

    def _argument_target(self, state: QueryState, field_path: str, argument_name: str):
        coercion.validate_name(argument_name, "argument name")
        if not field_path:
            raise InvalidPath("Field path is required to set an argument.")
        node = resolve(state.root, field_path)
        return node, field_names_along(state.root, field_path)

    @operation
    async def set_string_argument(
        self,
        session_id: str,
        field_path: str,
        argument_name: str,
        value: str,
        is_enum: bool = False,
    ) -> dict:
        """
        Set an argument from a string.

        When the schema knows the argument type the string is coerced to it
        (so ``"10"`` for an Int renders unquoted); without a schema it is kept
        as a string literal, or as an enum value when ``is_enum`` is set.
        """
        if not isinstance(value, str):
            raise InvalidInput(f"Value for '{argument_name}' must be a string; use set-typed-argument for {type(value).__name__} values.")
        if is_enum:
            coercion.validate_name(value, "enum value")
        elif value == "":
            raise InvalidInput(f"Value for '{argument_name}' cannot be empty.")
        coercion.validate_value(argument_name, value, self.cfg)

        warnings = []
        async with self._session(session_id) as state:
            node, names = self._argument_target(state, field_path, argument_name)
            oracle = await self._oracle(state.headers)
            lookup = oracle.argument_type(state.operation_type, names, argument_name)

            if lookup.is_absent:
                raise SchemaLookupError(lookup.message)
            if lookup.is_unavailable:
                logger.warning("Storing '%s' on %s unchecked: %s", argument_name, field_path, lookup.message)
                argument = Argument.typed(EnumLiteral(value)) if is_enum else Argument.literal(value)
            else:
                arg_type = lookup.value
                named = utils.named_type(arg_type)
                if is_enum and not isinstance(named, GraphQLEnumType):
                    raise TypeMismatch(
                        f"Argument '{argument_name}' expects {utils.type_name_str(arg_type)}, not an enum value.",
                        expected=utils.type_name_str(arg_type),
                        value=value,
                    )
                if named.name in STRING_SCALARS:
                    argument = Argument.literal(coercion.coerce_value(value, arg_type, argument_name))
                else:
                    argument = Argument.typed(coercion.coerce_value(value, arg_type, argument_name))

            warning = rules.performance_warning(argument_name, argument.value)
            if warning:
                warnings.append(warning)
            node.arguments[argument_name] = argument

        return _ok(
            f"Argument '{argument_name}' set on '{field_path}'.",
            warnings,
            fieldPath=field_path,
            argumentName=argument_name,
            value=encode_value(argument.value),
        )

    @operation
    async def set_typed_argument(self, session_id: str, field_path: str, argument_name: str, value: Any) -> dict:
        """
        Set an argument from a native value checked against the schema.

        The string ``"null"`` (any case) means null.
        """
        if isinstance(value, str) and value.strip().lower() == "null":
            value = None
        coercion.validate_value(argument_name, value, self.cfg)

        warnings = []
        async with self._session(session_id) as state:
            node, names = self._argument_target(state, field_path, argument_name)
            oracle = await self._oracle(state.headers)
            lookup = oracle.argument_type(state.operation_type, names, argument_name)

            if lookup.is_absent:
                raise SchemaLookupError(lookup.message)
            if lookup.is_unavailable:
                raise TypeMismatch(f"Cannot verify value for argument '{argument_name}': {lookup.message}", value=value)

            coerced = coercion.coerce_value(value, lookup.value, argument_name)
            warning = rules.performance_warning(argument_name, coerced)
            if warning:
                warnings.append(warning)
            node.arguments[argument_name] = Argument.typed(coerced)

        return _ok(
            f"Typed argument '{argument_name}' set on '{field_path}'.",
            warnings,
            fieldPath=field_path,
            argumentName=argument_name,
            value=encode_value(coerced),
        )

    def _check_variable_usage(self, state: QueryState, oracle: TypeOracle, variable_name: str,
                              location: Lookup, label: str) -> None:
        """Raise TypeMismatch if a declared variable cannot be used at a typed location."""
        if not location.is_found:
            return
        var_lookup = oracle.resolve_type_ref(parser.parse_type_ref(state.variables_schema[variable_name]))
        if not var_lookup.is_found:
            return
        if not oracle.is_usage_allowed(var_lookup.value, location.value, variable_name in state.variables_defaults):
            raise TypeMismatch(
                f"Variable {variable_name} of type {state.variables_schema[variable_name]} cannot be used "
                f"for {label} expecting {utils.type_name_str(location.value)}.",
                expected=utils.type_name_str(location.value),
                value=variable_name,
            )

    @operation
    async def set_variable_argument(
        self, session_id: str, field_path: str, argument_name: str, variable_name: str
    ) -> dict:
        """Bind an argument to a declared variable."""
        coercion.validate_variable_name(variable_name)

        async with self._session(session_id) as state:
            node, names = self._argument_target(state, field_path, argument_name)
            if variable_name not in state.variables_schema:
                raise UndeclaredVariable(variable_name)

            oracle = await self._oracle(state.headers)
            lookup = oracle.argument_type(state.operation_type, names, argument_name)
            if lookup.is_absent:
                raise SchemaLookupError(lookup.message)
            self._check_variable_usage(state, oracle, variable_name, lookup, f"argument '{argument_name}'")
            node.arguments[argument_name] = Argument.variable(variable_name)

        return _ok(
            f"Argument '{argument_name}' on '{field_path}' bound to {variable_name}.",
            fieldPath=field_path,
            argumentName=argument_name,
            value=variable_name,
        )

    @operation
    async def set_input_object_argument(
        self,
        session_id: str,
        field_path: str,
        argument_name: str,
        value: Any,
        object_path: Optional[str] = None,
    ) -> dict:
        """
        Set an input-object argument, whole or one nested key at a time.

        Args:
            session_id: Session id
            field_path: Path of the field owning the argument
            argument_name: Argument name
            value: Mapping (or JSON object string); with ``object_path``, any value
            object_path: Dotted key path inside the existing object to set ``value`` at
        """
        if object_path is None:
            if isinstance(value, str):
                try:
                    value = json.loads(value)
                except ValueError:
                    pass
            if not isinstance(value, dict):
                raise InvalidInput(f"Value for input object argument '{argument_name}' must be an object.")
        keys = split_path(object_path) if object_path else []
        for key in keys:
            coercion.validate_object_key(key)
        coercion.validate_value(argument_name, value, self.cfg)

        async with self._session(session_id) as state:
            node, names = self._argument_target(state, field_path, argument_name)
            existing = node.arguments.get(argument_name)
            if existing is not None and existing.is_variable:
                raise InvalidInput(
                    f"Argument '{argument_name}' is bound to variable {existing.value}; "
                    f"remove the variable binding before editing it as an object."
                )

            if keys:
                new_value = copy.deepcopy(existing.value) if existing and isinstance(existing.value, dict) else {}
                target = new_value
                for key in keys[:-1]:
                    child = target.setdefault(key, {})
                    if not isinstance(child, dict):
                        raise InvalidInput(f"Cannot set '{object_path}': '{key}' is not an object.")
                    target = child
                target[keys[-1]] = value
            else:
                new_value = value
            coercion.validate_input_complexity(
                new_value, argument_name, self.cfg.max_input_depth, self.cfg.max_input_properties
            )

            oracle = await self._oracle(state.headers)
            lookup = oracle.argument_type(state.operation_type, names, argument_name)
            if lookup.is_absent:
                raise SchemaLookupError(lookup.message)
            if lookup.is_found:
                if not isinstance(utils.named_type(lookup.value), GraphQLInputObjectType):
                    raise TypeMismatch(
                        f"Argument '{argument_name}' expects {utils.type_name_str(lookup.value)}, "
                        f"which is not an input object type.",
                        expected=utils.type_name_str(lookup.value),
                        value=new_value,
                    )
                new_value = coercion.coerce_value(new_value, lookup.value, argument_name)
            else:
                logger.warning("Storing '%s' on %s unchecked: %s", argument_name, field_path, lookup.message)

            node.arguments[argument_name] = Argument.typed(new_value)

        return _ok(
            f"Input object argument '{argument_name}' set on '{field_path}'.",
            fieldPath=field_path,
            argumentName=argument_name,
            value=encode_value(new_value),
        )

    # Fragments

    @operation
    async def define_named_fragment(
        self, session_id: str, fragment_name: str, on_type: str, field_names: list[str]
    ) -> dict:
        """Define a reusable named fragment."""
        coercion.validate_name(fragment_name, "fragment name")
        if fragment_name == "on":
            raise InvalidName('Fragment name cannot be "on".')
        coercion.validate_name(on_type, "type name")
        paths = _validate_field_paths(field_names)

        async with self._session(session_id) as state:
            if fragment_name in state.fragments:
                raise FragmentAlreadyExists(fragment_name)

            oracle = await self._oracle(state.headers)
            type_lookup = oracle.resolve_type(on_type)
            gql_type = self._best_effort(type_lookup, f"fragment type '{on_type}'")
            if gql_type is not None:
                if not isinstance(gql_type, (GraphQLObjectType, GraphQLInterfaceType, GraphQLUnionType)):
                    raise SchemaLookupError(
                        f"Type '{on_type}' cannot have fragments; use an object, interface or union type."
                    )
                self._check_relative_paths(oracle, type_lookup, paths, f"fragment '{fragment_name}'")

            fragment = Fragment(fragment_name, on_type)
            for path in paths:
                add_path(fragment.selections, path)
            state.fragments[fragment_name] = fragment

        return _ok(
            f"Fragment '{fragment_name}' defined on type '{on_type}'.",
            fragmentName=fragment_name,
            onType=on_type,
            fieldNames=paths,
        )

    @operation
    async def apply_named_fragment(self, session_id: str, parent_path: str, fragment_name: str) -> dict:
        """Spread a defined fragment at ``parent_path``; applying it twice is a no-op."""
        coercion.validate_name(fragment_name, "fragment name")

        async with self._session(session_id) as state:
            if fragment_name not in state.fragments:
                raise FragmentNotFound(fragment_name)
            node = resolve(state.root, parent_path)
            if fragment_name not in node.fragment_spreads:
                node.fragment_spreads.append(fragment_name)

        return _ok(
            f"Fragment '{fragment_name}' applied at '{parent_path or 'root'}'.",
            parentPath=parent_path,
            fragmentName=fragment_name,
        )

    @operation
    async def apply_inline_fragment(
        self,
        session_id: str,
        parent_path: str,
        on_type: Optional[str] = None,
        field_names: Optional[list[str]] = None,
        type_name: Optional[str] = None,
    ) -> dict:
        """Add ``... on Type { fields }`` at ``parent_path``; ``type_name`` is accepted for ``on_type``."""
        on_type = on_type or type_name
        if not on_type:
            raise InvalidName("A type condition (on_type) is required.")
        coercion.validate_name(on_type, "type name")
        paths = _validate_field_paths([n for n in (field_names or []) if isinstance(n, str) and n.strip()])

        async with self._session(session_id) as state:
            node = resolve(state.root, parent_path)
            oracle = await self._oracle(state.headers)
            self._best_effort(oracle.resolve_type(on_type), f"inline fragment type '{on_type}'")

            fragment = node.inline_fragment(on_type)
            if fragment is None:
                fragment = InlineFragment(on_type)
                node.inline_fragments.append(fragment)
            for path in paths:
                add_path(fragment.selections, path)

        return _ok(
            f"Inline fragment on '{on_type}' applied at '{parent_path or 'root'}'.",
            parentPath=parent_path,
            onType=on_type,
            fieldNames=paths,
        )

    # Directives

    def _directive_argument(
        self,
        state: QueryState,
        oracle: TypeOracle,
        directive_name: str,
        argument_name: Optional[str],
        argument_value: Any,
        warnings: list[str],
    ) -> Optional[Argument]:
        self._best_effort(oracle.directive(directive_name), f"directive '@{directive_name}'")
        if argument_name is None:
            return None

        coercion.validate_name(argument_name, "argument name")
        location = oracle.directive_argument_type(directive_name, argument_name)
        if location.is_absent:
            raise SchemaLookupError(location.message)

        if isinstance(argument_value, str) and argument_value.startswith("$"):
            coercion.validate_variable_name(argument_value)
            if argument_value not in state.variables_schema:
                raise UndeclaredVariable(argument_value)
            self._check_variable_usage(
                state, oracle, argument_value, location, f"argument '{argument_name}' of '@{directive_name}'"
            )
            return Argument.variable(argument_value)

        coercion.validate_value(argument_name, argument_value, self.cfg)
        if location.is_found:
            return Argument.typed(coercion.coerce_value(argument_value, location.value, argument_name))
        if isinstance(argument_value, str):
            guess = coercion.coerce_string_value(argument_value)
            if guess.coerced:
                warnings.append(guess.warning)
                return Argument.typed(guess.value)
            return Argument.literal(argument_value)
        return Argument.typed(argument_value)

    @staticmethod
    def _apply_directive(directives: list[DirectiveApplication], name: str,
                         argument_name: Optional[str], argument: Optional[Argument]) -> None:
        directive = find_directive(directives, name)
        if directive is None:
            directive = DirectiveApplication(name)
            directives.append(directive)
        if argument is not None:
            directive.set_argument(argument_name, argument)

    @operation
    async def set_field_directive(
        self,
        session_id: str,
        field_path: str,
        directive_name: str,
        argument_name: Optional[str] = None,
        argument_value: Any = None,
    ) -> dict:
        """Attach a directive to a field, merging arguments into an existing application."""
        name = directive_name[1:] if isinstance(directive_name, str) and directive_name.startswith("@") else directive_name
        coercion.validate_name(name, "directive name")
        if not field_path:
            raise InvalidPath("Field path is required to set a field directive.")

        warnings = []
        async with self._session(session_id) as state:
            node = resolve(state.root, field_path)
            oracle = await self._oracle(state.headers)
            argument = self._directive_argument(state, oracle, name, argument_name, argument_value, warnings)
            self._apply_directive(node.directives, name, argument_name, argument)

        return _ok(
            f"Directive '@{name}' set on '{field_path}'.",
            warnings,
            fieldPath=field_path,
            directiveName=name,
            argumentName=argument_name,
            argumentValue=encode_value(argument.value) if argument else None,
        )

    @operation
    async def set_operation_directive(
        self,
        session_id: str,
        directive_name: str,
        argument_name: Optional[str] = None,
        argument_value: Any = None,
    ) -> dict:
        """Attach a directive to the operation itself."""
        name = directive_name[1:] if isinstance(directive_name, str) and directive_name.startswith("@") else directive_name
        coercion.validate_name(name, "directive name")

        warnings = []
        async with self._session(session_id) as state:
            oracle = await self._oracle(state.headers)
            argument = self._directive_argument(state, oracle, name, argument_name, argument_value, warnings)
            self._apply_directive(state.operation_directives, name, argument_name, argument)

        return _ok(
            f"Operation directive '@{name}' set.",
            warnings,
            directiveName=name,
            argumentName=argument_name,
            argumentValue=encode_value(argument.value) if argument else None,
        )

    # Reading

    @operation
    async def get_current_query(self, session_id: str, pretty: bool = False) -> dict:
        """Render the document built so far."""
        state = await self._load(session_id)
        query = render_document(state, pretty)
        result = {
            "queryString": query,
            "operationType": state.operation_type,
            "operationName": state.operation_name,
            "variablesSchema": dict(state.variables_schema),
            "variablesDefaults": encode_value(state.variables_defaults),
            "variablesValues": encode_value(state.variables_values),
        }
        if not query:
            result["warnings"] = ["Query is empty. Select at least one field."]
        return result

    @operation
    async def get_selections(self, session_id: str, path: str = "") -> dict:
        """List the fields (and inline-fragment types) selectable at ``path``."""
        state = await self._load(session_id)
        node = resolve(state.root, path)
        oracle = await self._oracle(state.headers)
        if not oracle.available:
            raise SchemaUnavailable(oracle.reason)

        gql_type = oracle.type_at(state.operation_type, field_names_along(state.root, path)).require()
        selected = {child.field_name for child in node.children.values()}
        selections = inspector.available_selections(oracle.schema, gql_type)
        for item in selections:
            item["selected"] = item["name"] in selected

        return {"path": path, "typeName": gql_type.name, "selections": selections}

    @operation
    async def validate_query(self, session_id: str) -> dict:
        """Check the document against the schema and the complexity ceilings."""
        state = await self._load(session_id)
        query = render_document(state)
        analysis = complexity.analyze(state, self.cfg)
        oracle = await self._oracle(state.headers)

        findings = rules.check_document(state, query, analysis, oracle.schema, oracle.reason)
        errors = [f.message for f in findings if f.severity == "ERROR"]
        warnings = [f.message for f in findings if f.severity != "ERROR"]

        return {
            "valid": not errors,
            "errors": errors,
            "warnings": warnings,
            "query": query,
            "complexity": analysis.to_payload(),
        }

    @operation
    async def analyze_query_complexity(self, session_id: str) -> dict:
        """Depth, field count and score of the document, with advice."""
        state = await self._load(session_id)
        analysis = complexity.analyze(state, self.cfg)
        return {
            "analysis": {
                "valid": analysis.valid,
                "depth": analysis.depth,
                "fieldCount": analysis.field_count,
                "complexityScore": round(analysis.complexity_score, 2),
                "errors": analysis.errors,
                "warnings": analysis.warnings,
                "timeout": complexity.select_timeout(analysis, self.cfg),
                "recommendations": complexity.recommendations(analysis, self.cfg),
                "limits": {
                    "maxDepth": self.cfg.max_depth,
                    "maxFieldCount": self.cfg.max_field_count,
                    "maxComplexityScore": self.cfg.max_complexity_score,
                },
            }
        }

    # Execution

    @operation
    async def execute_query(self, session_id: str) -> dict:
        """
        Send the document to the configured endpoint.

        Rejected before any request when the complexity analysis is invalid.
        Failures after rendering still report the query string, elapsed time
        and complexity analysis.
        """
        started = time.monotonic()
        state = await self._load(session_id)
        query = render_document(state)
        if not query:
            raise InvalidInput("Query is empty. Select at least one field before executing.")

        analysis = complexity.analyze(state, self.cfg)
        context = {"queryString": query, "complexityAnalysis": analysis.to_payload()}

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            if not analysis.valid:
                raise ComplexityExceeded(analysis.errors)
            if not self.cfg.endpoint:
                raise EndpointUnconfigured()

            payload = {
                "query": query,
                "variables": {name.lstrip("$"): value for name, value in state.variables_values.items()},
                "operationName": state.operation_name,
            }
            result = await self.gateway.post(
                self.cfg.endpoint,
                payload,
                {**self.cfg.headers, **state.headers},
                complexity.select_timeout(analysis, self.cfg),
                self.cfg.parse_timeout,
            )
        except QueryBuilderError as e:
            logger.info("Execution of session %s failed: %s", session_id, e.message)
            return {**e.to_payload(), **context, "executionTime": elapsed_ms()}

        logger.info("Executed session %s in %dms", session_id, elapsed_ms())
        return {
            "data": result.get("data"),
            "errors": result.get("errors"),
            **context,
            "executionTime": elapsed_ms(),
        }

    # Schema inspection

    @operation
    async def introspect_schema(self, headers: Optional[dict[str, str]] = None) -> dict:
        """SDL and introspection JSON of the configured schema."""
        return inspector.describe_schema(await self._schema(headers))

    @operation
    async def get_root_operation_types(self, headers: Optional[dict[str, str]] = None) -> dict:
        return inspector.root_operation_types(await self._schema(headers))

    @operation
    async def get_type_info(self, type_name: str, headers: Optional[dict[str, str]] = None) -> dict:
        return inspector.type_info(await self._schema(headers), type_name)

    @operation
    async def get_field_info(self, type_name: str, field_name: str, headers: Optional[dict[str, str]] = None) -> dict:
        return inspector.field_info(await self._schema(headers), type_name, field_name)

    @operation
    async def get_input_object_help(self, input_type_name: str, headers: Optional[dict[str, str]] = None) -> dict:
        return inspector.input_object_help(await self._schema(headers), input_type_name)
