"""CLI for graphql-query-builder."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import config, schema_loader, utils
from .engine import QueryBuilder
from .errors import QueryBuilderError
from .report import emit, print_kv
from .store import FileSessionStore

app = typer.Typer(help="Build, validate and execute GraphQL queries step by step")
schema_app = typer.Typer(help="Schema inspection")
session_app = typer.Typer(help="Session lifecycle")
var_app = typer.Typer(help="Operation variables")
arg_app = typer.Typer(help="Field arguments")
fragment_app = typer.Typer(help="Named and inline fragments")
directive_app = typer.Typer(help="Field and operation directives")
app.add_typer(schema_app, name="schema")
app.add_typer(session_app, name="session")
app.add_typer(var_app, name="var")
app.add_typer(arg_app, name="arg")
app.add_typer(fragment_app, name="fragment")
app.add_typer(directive_app, name="directive")

console = Console()


@dataclass
class GlobalOptions:
    """Options shared by every command."""

    config_path: Optional[str] = None
    schema_file: Optional[str] = None
    output: Literal["console", "json"] = "console"


def parse_value(raw: Optional[str]) -> Any:
    """JSON-decode a command line value, falling back to the raw string."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_header_options(values: Optional[list[str]]) -> dict[str, str]:
    """Parse repeated ``Name: value`` (or ``Name=value``) options."""
    headers = {}
    for item in values or []:
        sep = ":" if ":" in item else "="
        name, found, value = item.partition(sep)
        if not found or not name.strip():
            raise typer.BadParameter(f"Expected 'Name: value', got {item!r}")
        headers[name.strip()] = value.strip()
    return headers


def build_query_builder(opts: GlobalOptions) -> QueryBuilder:
    cfg = config.load(opts.config_path)
    store = FileSessionStore(cfg.session_dir, cfg.session_ttl)
    if opts.schema_file:
        provider = schema_loader.StaticSchemaProvider.from_file(opts.schema_file)
    else:
        provider = schema_loader.IntrospectionSchemaProvider(cfg, disk_cache=True)
    return QueryBuilder(store, provider, cfg)


def run(ctx: typer.Context, method: str, *args, **kwargs) -> dict:
    """Run one QueryBuilder operation and print its result; exit 1 on error."""
    opts: GlobalOptions = ctx.obj
    try:
        builder = build_query_builder(opts)
    except QueryBuilderError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    result = asyncio.run(getattr(builder, method)(*args, **kwargs))
    emit(result, opts.output)
    if "error" in result:
        raise typer.Exit(1)
    return result


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(None, "--config", help="Config file path"),
    schema_file: Optional[str] = typer.Option(None, help="Schema file (introspection JSON or SDL)"),
    output: str = typer.Option("console", help="Output format (console|json)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )
    ctx.obj = GlobalOptions(config_path=config_path, schema_file=schema_file, output=output)


@app.command("init-config")
def init_config(path: Optional[str] = typer.Option(None, help="Where to write the example config")):
    """Write an example config file."""
    target = path or config.get_default_config_path()
    if utils.exists(target):
        console.print(f"[yellow]Config already exists at {target}[/yellow]")
        raise typer.Exit(1)
    config.create_example_config(target)
    print_kv("Config created", {"path": target})


# Schema


@schema_app.command("pull")
def schema_pull(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, help="GraphQL endpoint URL"),
    out: Optional[str] = typer.Option(None, help="Output file path"),
):
    """Fetch and cache the GraphQL schema."""
    try:
        cfg = config.load(ctx.obj.config_path)
        endpoint = url or cfg.endpoint
        if not endpoint:
            console.print("[red]Error: No endpoint provided. Use --url or set endpoint in config.[/red]")
            raise typer.Exit(1)

        console.print(f"[cyan]Fetching schema from {utils.redact_url(endpoint)}...[/cyan]")
        profile = schema_loader.load_schema(
            url=endpoint, cfg=cfg, allow_cache=True, refresh=True, headers=cfg.headers
        )

        if out:
            utils.write_json(out, profile.schema_json)
            path = out
        else:
            path = schema_loader.cache_path_for(profile.url, cfg, cfg.headers)

        print_kv("Schema pulled", {"url": utils.redact_url(profile.url), "hash": profile.hash, "path": path})
    except QueryBuilderError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)


@schema_app.command("show")
def schema_show(ctx: typer.Context):
    """Print the schema SDL and introspection JSON."""
    run(ctx, "introspect_schema")


@schema_app.command("roots")
def schema_roots(ctx: typer.Context):
    """Show the root operation type names."""
    run(ctx, "get_root_operation_types")


@schema_app.command("type")
def schema_type(ctx: typer.Context, type_name: str = typer.Argument(..., help="Type name")):
    """Describe a named type."""
    run(ctx, "get_type_info", type_name)


@schema_app.command("field")
def schema_field(
    ctx: typer.Context,
    type_name: str = typer.Argument(..., help="Object or interface type"),
    field_name: str = typer.Argument(..., help="Field name"),
):
    """Describe one field and its arguments."""
    run(ctx, "get_field_info", type_name, field_name)


@schema_app.command("input")
def schema_input(ctx: typer.Context, type_name: str = typer.Argument(..., help="Input object type")):
    """Show how to build an input object argument."""
    run(ctx, "get_input_object_help", type_name)


# Sessions


@session_app.command("start")
def session_start(
    ctx: typer.Context,
    operation_type: str = typer.Option("query", "--type", help="query|mutation|subscription"),
    name: Optional[str] = typer.Option(None, help="Operation name"),
    header: Optional[list[str]] = typer.Option(None, help="Request header 'Name: value' (repeatable)"),
):
    """Start a new session."""
    run(ctx, "start_query_session", operation_type, name, parse_header_options(header))


@session_app.command("end")
def session_end(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session id")):
    """End a session and delete its state."""
    run(ctx, "end_query_session", session_id)


@session_app.command("list")
def session_list(ctx: typer.Context):
    """List stored session ids, oldest first."""
    cfg = config.load(ctx.obj.config_path)
    ids = FileSessionStore(cfg.session_dir, cfg.session_ttl).session_ids()
    emit({"sessions": ids}, ctx.obj.output)


# Building


@app.command("select")
def select_cmd(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    fields: list[str] = typer.Argument(..., help="Field names or dotted relative paths"),
    parent: str = typer.Option("", help="Parent field path"),
    alias: Optional[str] = typer.Option(None, help="Alias (single field only)"),
):
    """Select one or more fields."""
    if alias is None:
        run(ctx, "select_multiple_fields", session_id, fields, parent)
        return
    if len(fields) != 1:
        console.print("[red]Error: --alias needs exactly one field.[/red]")
        raise typer.Exit(1)
    run(ctx, "select_field", session_id, fields[0], parent, alias)


@var_app.command("set")
def var_set(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    name: str = typer.Argument(..., help="Variable name including '$'"),
    type_string: str = typer.Argument(..., help="GraphQL type, e.g. Int! or [ID!]"),
    default: Optional[str] = typer.Option(None, help="Default value (JSON)"),
):
    """Declare a variable."""
    run(ctx, "set_query_variable", session_id, name, type_string, parse_value(default))


@var_app.command("value")
def var_value(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    name: str = typer.Argument(..., help="Variable name including '$'"),
    value: str = typer.Argument(..., help="Value (JSON)"),
):
    """Bind a runtime value to a declared variable."""
    run(ctx, "set_variable_value", session_id, name, parse_value(value))


@var_app.command("remove")
def var_remove(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    name: str = typer.Argument(..., help="Variable name including '$'"),
):
    """Remove a variable and everything referencing it."""
    run(ctx, "remove_query_variable", session_id, name)


@arg_app.command("string")
def arg_string(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    field_path: str = typer.Argument(..., help="Field path"),
    name: str = typer.Argument(..., help="Argument name"),
    value: str = typer.Argument(..., help="String value"),
    enum: bool = typer.Option(False, "--enum", help="Render as an enum value"),
):
    """Set an argument from a string."""
    run(ctx, "set_string_argument", session_id, field_path, name, value, enum)


@arg_app.command("typed")
def arg_typed(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    field_path: str = typer.Argument(..., help="Field path"),
    name: str = typer.Argument(..., help="Argument name"),
    value: str = typer.Argument(..., help="Value (JSON)"),
):
    """Set an argument from a typed (JSON) value."""
    run(ctx, "set_typed_argument", session_id, field_path, name, parse_value(value))


@arg_app.command("variable")
def arg_variable(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    field_path: str = typer.Argument(..., help="Field path"),
    name: str = typer.Argument(..., help="Argument name"),
    variable: str = typer.Argument(..., help="Declared variable including '$'"),
):
    """Bind an argument to a variable."""
    run(ctx, "set_variable_argument", session_id, field_path, name, variable)


@arg_app.command("input")
def arg_input(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    field_path: str = typer.Argument(..., help="Field path"),
    name: str = typer.Argument(..., help="Argument name"),
    value: str = typer.Argument(..., help="Object (JSON), or any value with --object-path"),
    object_path: Optional[str] = typer.Option(None, help="Dotted key path inside the object"),
):
    """Set an input object argument."""
    run(ctx, "set_input_object_argument", session_id, field_path, name, parse_value(value), object_path)


@fragment_app.command("define")
def fragment_define(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    name: str = typer.Argument(..., help="Fragment name"),
    on_type: str = typer.Argument(..., help="Type condition"),
    fields: list[str] = typer.Argument(..., help="Field names or dotted relative paths"),
):
    """Define a named fragment."""
    run(ctx, "define_named_fragment", session_id, name, on_type, fields)


@fragment_app.command("apply")
def fragment_apply(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    name: str = typer.Argument(..., help="Fragment name"),
    parent: str = typer.Option("", help="Parent field path"),
):
    """Spread a named fragment at a path."""
    run(ctx, "apply_named_fragment", session_id, parent, name)


@fragment_app.command("inline")
def fragment_inline(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    on_type: str = typer.Argument(..., help="Type condition"),
    fields: list[str] = typer.Argument(..., help="Field names or dotted relative paths"),
    parent: str = typer.Option("", help="Parent field path"),
):
    """Add an inline fragment at a path."""
    run(ctx, "apply_inline_fragment", session_id, parent, on_type, fields)


@directive_app.command("field")
def directive_field(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    field_path: str = typer.Argument(..., help="Field path"),
    name: str = typer.Argument(..., help="Directive name"),
    arg: Optional[str] = typer.Option(None, help="Argument name"),
    value: Optional[str] = typer.Option(None, help="Argument value (JSON, or '$var')"),
):
    """Attach a directive to a field."""
    run(ctx, "set_field_directive", session_id, field_path, name, arg, parse_value(value))


@directive_app.command("operation")
def directive_operation(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    name: str = typer.Argument(..., help="Directive name"),
    arg: Optional[str] = typer.Option(None, help="Argument name"),
    value: Optional[str] = typer.Option(None, help="Argument value (JSON, or '$var')"),
):
    """Attach a directive to the operation."""
    run(ctx, "set_operation_directive", session_id, name, arg, parse_value(value))


# Reading and running


@app.command("show")
def show_cmd(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    pretty: bool = typer.Option(False, help="Multi-line output"),
):
    """Print the current document."""
    run(ctx, "get_current_query", session_id, pretty)


@app.command("selections")
def selections_cmd(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id"),
    path: str = typer.Argument("", help="Field path (root when omitted)"),
):
    """List fields available at a path."""
    run(ctx, "get_selections", session_id, path)


@app.command("validate")
def validate_cmd(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session id")):
    """Validate the document; exit code 2 when invalid."""
    result = run(ctx, "validate_query", session_id)
    if not result["valid"]:
        raise typer.Exit(2)


@app.command("analyze")
def analyze_cmd(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session id")):
    """Show depth, field count and complexity score."""
    run(ctx, "analyze_query_complexity", session_id)


@app.command("execute")
def execute_cmd(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session id")):
    """Execute the document against the configured endpoint."""
    run(ctx, "execute_query", session_id)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
