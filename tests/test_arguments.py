from graphql import parse


async def test_scenario_typed_integer_argument(builder, session_id, render):
    await builder.select_field(session_id, "user")
    result = await builder.set_typed_argument(session_id, "user", "id", 7)
    assert result["value"] == 7
    assert "query Q1 { user(id: 7) }" in await render(session_id)


async def test_scenario_non_numeric_id_is_rejected(builder, session_id, render):
    await builder.select_field(session_id, "user")
    result = await builder.set_typed_argument(session_id, "user", "id", "abc")
    assert result["code"] == "TypeMismatch"
    assert "Int" in result["error"]
    assert "abc" in result["error"]
    assert await render(session_id) == "query Q1 { user }"


async def test_string_argument_follows_schema_type(builder, session_id, render):
    await builder.select_multiple_fields(session_id, ["user", "lookup", "posts"])
    await builder.set_string_argument(session_id, "user", "id", "10")
    await builder.set_string_argument(session_id, "lookup", "key", "abc")
    await builder.set_string_argument(session_id, "lookup", "ref", "42")
    await builder.set_string_argument(session_id, "posts", "orderBy", "ASC", is_enum=True)

    assert await render(session_id) == (
        'query Q1 { user(id: 10) lookup(key: "abc", ref: "42") posts(orderBy: ASC) }'
    )


async def test_string_argument_enum_flag_on_non_enum(builder, session_id):
    await builder.select_field(session_id, "lookup")
    result = await builder.set_string_argument(session_id, "lookup", "key", "ADMIN", is_enum=True)
    assert result["code"] == "TypeMismatch"


async def test_string_argument_rejections(builder, session_id):
    await builder.select_field(session_id, "lookup")
    unknown = await builder.set_string_argument(session_id, "lookup", "kee", "x")
    assert unknown["code"] == "SchemaLookupError"
    assert "Did you mean 'key'?" in unknown["error"]

    assert (await builder.set_string_argument(session_id, "lookup", "key", ""))["code"] == "InvalidInput"
    assert (await builder.set_string_argument(session_id, "lookup", "key", "a\x07b"))["code"] == "InvalidInput"
    assert (await builder.set_string_argument(session_id, "missing", "key", "x"))["code"] == "PathNotFound"
    assert (await builder.set_string_argument(session_id, "", "key", "x"))["code"] == "InvalidPath"
    assert (await builder.set_string_argument(session_id, "lookup", "key", 5))["code"] == "InvalidInput"


async def test_string_argument_without_schema(offline_builder, offline_session_id, render):
    await offline_builder.select_multiple_fields(offline_session_id, ["items", "things"])
    result = await offline_builder.set_string_argument(offline_session_id, "items", "first", "10")
    assert result["success"] is True
    await offline_builder.set_string_argument(offline_session_id, "things", "sort", "NEWEST", is_enum=True)
    assert await render(offline_session_id) == 'query Q1 { items(first: "10") things(sort: NEWEST) }'


async def test_typed_argument_requires_schema(offline_builder, offline_session_id):
    await offline_builder.select_field(offline_session_id, "items")
    result = await offline_builder.set_typed_argument(offline_session_id, "items", "first", 10)
    assert result["code"] == "TypeMismatch"


async def test_typed_argument_null_and_lists(builder, session_id, render):
    await builder.select_field(session_id, "posts")
    await builder.set_typed_argument(session_id, "posts", "first", "null")
    assert await render(session_id) == "query Q1 { posts(first: null) }"

    result = await builder.set_typed_argument(session_id, "posts", "filter", {"tags": ["a", "b"]})
    assert result["success"] is True
    assert 'filter: {tags: ["a", "b"]}' in await render(session_id)


async def test_pagination_limits(builder, session_id, render):
    await builder.select_field(session_id, "posts")
    result = await builder.set_typed_argument(session_id, "posts", "first", 501)
    assert result["code"] == "InvalidInput"
    assert "exceeds maximum of 500" in result["error"]

    await builder.set_typed_argument(session_id, "posts", "first", 500)
    assert await render(session_id) == "query Q1 { posts(first: 500) }"


async def test_large_limit_warning(builder, session_id, cfg):
    cfg.max_pagination_value = 5000
    await builder.select_field(session_id, "posts")
    result = await builder.set_typed_argument(session_id, "posts", "limit", 2000)
    assert result["success"] is True
    assert "Large limit value (2000)" in result["warnings"][0]


async def test_argument_on_aliased_field_uses_schema_name(builder, session_id, render):
    await builder.select_field(session_id, "user", alias="author")
    await builder.set_typed_argument(session_id, "author", "id", "3")
    assert await render(session_id) == "query Q1 { author: user(id: 3) }"


async def test_input_object_argument(builder, session_id, render):
    await builder.select_field(session_id, "posts")
    result = await builder.set_input_object_argument(
        session_id, "posts", "filter", {"status": "PUBLISHED", "tags": ["graphql"]}
    )
    assert result["value"] == {"status": {"__enum__": "PUBLISHED"}, "tags": ["graphql"]}

    await builder.set_input_object_argument(session_id, "posts", "filter", "5", object_path="authorId")
    assert await render(session_id) == (
        'query Q1 { posts(filter: {status: PUBLISHED, tags: ["graphql"], authorId: "5"}) }'
    )


async def test_input_object_argument_from_json_string(builder, session_id, render):
    await builder.select_field(session_id, "createPost")
    result = await builder.set_input_object_argument(session_id, "createPost", "input", '{"title": "Hi"}')
    assert result["code"] == "SchemaLookupError"

    mutation = await builder.start_query_session("mutation")
    sid = mutation["sessionId"]
    await builder.select_field(sid, "createPost")
    await builder.set_input_object_argument(sid, "createPost", "input", '{"title": "Hi", "status": "DRAFT"}')
    assert await render(sid) == 'mutation { createPost(input: {title: "Hi", status: DRAFT}) }'


async def test_input_object_argument_rejections(builder, session_id):
    await builder.select_field(session_id, "posts")

    unknown = await builder.set_input_object_argument(session_id, "posts", "filter", {"stats": "DRAFT"})
    assert unknown["code"] == "TypeMismatch"
    assert "Did you mean 'status'?" in unknown["error"]

    forbidden = await builder.set_input_object_argument(session_id, "posts", "filter", {"__proto__": {}})
    assert forbidden["code"] == "InvalidInput"

    not_object = await builder.set_input_object_argument(session_id, "posts", "filter", [1, 2])
    assert not_object["code"] == "InvalidInput"

    scalar_arg = await builder.set_input_object_argument(session_id, "posts", "first", {"a": 1})
    assert scalar_arg["code"] == "TypeMismatch"
    assert "not an input object type" in scalar_arg["error"]


async def test_input_object_argument_bound_to_variable(builder, session_id):
    await builder.select_field(session_id, "posts")
    await builder.set_query_variable(session_id, "$filter", "PostFilter")
    await builder.set_variable_argument(session_id, "posts", "filter", "$filter")
    result = await builder.set_input_object_argument(session_id, "posts", "filter", {"status": "DRAFT"})
    assert result["code"] == "InvalidInput"
    assert "$filter" in result["error"]


async def test_offline_input_object_keys_must_be_names(offline_builder, offline_session_id, render):
    sid = offline_session_id
    await offline_builder.select_multiple_fields(sid, ["posts.id"])

    value = {"status": "DRAFT", "meta": {"x_1": 2}}
    ok = await offline_builder.set_input_object_argument(sid, "posts", "filter", value)
    assert ok["success"] is True
    query = await render(sid)
    assert query == 'query Q1 { posts(filter: {status: "DRAFT", meta: {x_1: 2}}) { id } }'
    parse(query)

    for bad in ({"bad key": 1}, {"a: 1}) { secret } x(y": 1}, {"outer": [{"in-ner": 1}]}):
        result = await offline_builder.set_input_object_argument(sid, "posts", "filter", bad)
        assert result["code"] == "InvalidName", bad
    nested = await offline_builder.set_input_object_argument(sid, "posts", "filter", 1, object_path="meta.bad key")
    assert nested["code"] == "InvalidName"
    assert await render(sid) == query

    directive = await offline_builder.set_field_directive(sid, "posts", "include", "if", {"a b": True})
    assert directive["code"] == "InvalidName"
    default = await offline_builder.set_query_variable(sid, "$f", "PostFilter", {"} { secret": 1})
    assert default["code"] == "InvalidName"
    assert await render(sid) == query
