import pytest


@pytest.mark.parametrize(
    "field_name,alias,token",
    [("user", None, "user"), ("viewer", "me", "me: viewer"), ("posts", None, "posts")],
)
async def test_selected_field_appears_in_query(builder, session_id, render, field_name, alias, token):
    result = await builder.select_field(session_id, field_name, alias=alias)
    assert result["success"] is True
    assert token in await render(session_id)


async def test_nested_selection(builder, session_id, render):
    await builder.select_field(session_id, "viewer", alias="me")
    result = await builder.select_field(session_id, "name", parent_path="me")
    assert result["fieldPath"] == "me.name"
    assert await render(session_id) == "query Q1 { me: viewer { name } }"


async def test_reselecting_keeps_existing_subtree(builder, session_id, render):
    await builder.select_multiple_fields(session_id, ["viewer.name", "viewer.email"])
    await builder.select_field(session_id, "viewer")
    assert await render(session_id) == "query Q1 { viewer { name email } }"


async def test_select_multiple_fields(builder, session_id, render):
    result = await builder.select_multiple_fields(session_id, ["id", "title", "author.name"], parent_path="")
    assert result["selectedFields"] == ["id", "title", "author.name"]
    assert await render(session_id) == "query Q1 { id title author { name } }"


async def test_missing_parent_path(builder, session_id):
    result = await builder.select_field(session_id, "name", parent_path="viewer")
    assert result["code"] == "PathNotFound"


async def test_invalid_field_and_alias_names(builder, session_id):
    assert (await builder.select_field(session_id, "bad-name"))["code"] == "InvalidName"
    assert (await builder.select_field(session_id, "user", alias="1st"))["code"] == "InvalidName"
    assert (await builder.select_multiple_fields(session_id, ["ok", ""]))["code"] == "InvalidName"
    assert (await builder.select_multiple_fields(session_id, []))["code"] == "InvalidInput"


async def test_alias_conflict(builder, session_id):
    await builder.select_field(session_id, "viewer", alias="me")
    result = await builder.select_field(session_id, "user", alias="me")
    assert result["code"] == "FieldConflict"


async def test_selection_is_permissive_by_default(builder, session_id, render):
    result = await builder.select_field(session_id, "doesNotExist")
    assert result["success"] is True
    assert "doesNotExist" in await render(session_id)


async def test_selection_checks_when_enabled(builder, session_id, cfg):
    cfg.validate_selections = True
    result = await builder.select_field(session_id, "viewr")
    assert result["code"] == "SchemaLookupError"
    assert "Did you mean 'viewer'?" in result["error"]

    await builder.select_field(session_id, "viewer")
    assert (await builder.select_field(session_id, "name", "viewer"))["success"] is True
    bad = await builder.select_multiple_fields(session_id, ["posts.titel"], parent_path="viewer")
    assert "not found on type 'Post'" in bad["error"]


async def test_failed_operation_leaves_session_unchanged(builder, session_id, render):
    await builder.select_field(session_id, "viewer")
    before = await render(session_id)
    await builder.select_multiple_fields(session_id, ["name", "bad..path"], parent_path="viewer")
    assert await render(session_id) == before


async def test_get_current_query_payload(builder, session_id):
    empty = await builder.get_current_query(session_id)
    assert empty["queryString"] == ""
    assert empty["warnings"]

    await builder.select_multiple_fields(session_id, ["viewer.name"])
    pretty = await builder.get_current_query(session_id, pretty=True)
    assert pretty["queryString"] == "query Q1 {\n  viewer {\n    name\n  }\n}"
    assert pretty["operationType"] == "query"
    assert pretty["variablesSchema"] == {}


async def test_get_selections(builder, session_id):
    await builder.select_field(session_id, "viewer")
    result = await builder.get_selections(session_id)
    assert result["typeName"] == "Query"
    by_name = {s["name"]: s for s in result["selections"]}
    assert by_name["viewer"]["selected"] is True
    assert by_name["user"]["selected"] is False
    assert "(Args: id: Int!)" in by_name["user"]["description"]

    nested = await builder.get_selections(session_id, "viewer")
    assert nested["typeName"] == "User"
    assert {"id", "name", "posts"} <= {s["name"] for s in nested["selections"]}


async def test_get_selections_on_union_suggests_inline_fragments(builder, session_id):
    await builder.select_field(session_id, "search")
    result = await builder.get_selections(session_id, "search")
    names = [s["name"] for s in result["selections"]]
    assert names == ["... on User", "... on Post"]


async def test_get_selections_requires_schema(offline_builder, offline_session_id):
    result = await offline_builder.get_selections(offline_session_id)
    assert result["code"] == "SchemaUnavailable"
