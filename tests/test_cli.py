import json

import pytest
import yaml
from graphql import print_schema
from typer.testing import CliRunner

from graphql_query_builder.cli import app, parse_header_options, parse_value

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, schema):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"session_dir": str(tmp_path / "sessions"), "schema_cache_dir": str(tmp_path / "schemas")})
    )
    schema_path = tmp_path / "schema.graphql"
    schema_path.write_text(print_schema(schema))

    def invoke(*args):
        base = ["--config", str(config_path), "--schema-file", str(schema_path), "--output", "json"]
        return runner.invoke(app, [*base, *args])

    return invoke


def _json(result):
    return json.loads(result.stdout)


def test_parse_value():
    assert parse_value("7") == 7
    assert parse_value('{"a": [1]}') == {"a": [1]}
    assert parse_value("true") is True
    assert parse_value("hello") == "hello"
    assert parse_value(None) is None


def test_parse_header_options():
    assert parse_header_options(["Authorization: Bearer x", "X-Team=core"]) == {
        "Authorization": "Bearer x",
        "X-Team": "core",
    }


def test_build_and_show_query(cli_env):
    started = cli_env("session", "start", "--name", "Q1")
    assert started.exit_code == 0, started.stdout
    sid = _json(started)["sessionId"]

    assert cli_env("select", sid, "user").exit_code == 0
    assert cli_env("arg", "typed", sid, "user", "id", "7").exit_code == 0
    assert cli_env("select", sid, "name", "email", "--parent", "user").exit_code == 0

    shown = cli_env("show", sid)
    assert _json(shown)["queryString"] == "query Q1 { user(id: 7) { name email } }"

    validated = cli_env("validate", sid)
    assert validated.exit_code == 0
    assert _json(validated)["valid"] is True


def test_variables_and_directives(cli_env):
    sid = _json(cli_env("session", "start"))["sessionId"]
    cli_env("var", "set", sid, "$show", "Boolean!", "--default", "true")
    cli_env("select", sid, "viewer.name")
    result = cli_env("directive", "field", sid, "viewer", "include", "--arg", "if", "--value", "$show")
    assert result.exit_code == 0, result.stdout

    shown = _json(cli_env("show", sid))["queryString"]
    assert shown == "query($show: Boolean! = true) { viewer @include(if: $show) { name } }"

    removed = _json(cli_env("var", "remove", sid, "$show"))
    assert removed["removed"] == [{"path": "viewer", "directive": "include"}]


def test_invalid_query_exit_code(cli_env):
    sid = _json(cli_env("session", "start"))["sessionId"]
    result = cli_env("validate", sid)
    assert result.exit_code == 2


def test_errors_exit_with_one(cli_env):
    result = cli_env("show", "0" * 32)
    assert result.exit_code == 1
    assert _json(result)["code"] == "SessionNotFound"


def test_schema_commands(cli_env):
    roots = cli_env("schema", "roots")
    assert _json(roots)["queryType"] == "Query"

    info = cli_env("schema", "type", "Role")
    assert _json(info)["kind"] == "ENUM"


def test_session_list_and_end(cli_env):
    sid = _json(cli_env("session", "start"))["sessionId"]
    assert sid in _json(cli_env("session", "list"))["sessions"]

    ended = cli_env("session", "end", sid)
    assert ended.exit_code == 0
    assert sid not in _json(cli_env("session", "list"))["sessions"]
