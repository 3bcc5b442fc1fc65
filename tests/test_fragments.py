async def test_define_and_apply_named_fragment(builder, session_id, render):
    await builder.select_field(session_id, "user")
    await builder.set_typed_argument(session_id, "user", "id", 1)
    defined = await builder.define_named_fragment(session_id, "UserFields", "User", ["id", "name"])
    assert defined["fieldNames"] == ["id", "name"]

    await builder.apply_named_fragment(session_id, "user", "UserFields")
    again = await builder.apply_named_fragment(session_id, "user", "UserFields")
    assert again["success"] is True

    assert await render(session_id) == (
        "query Q1 { user(id: 1) { ...UserFields } } fragment UserFields on User { id name }"
    )
    validation = await builder.validate_query(session_id)
    assert validation["valid"] is True


async def test_fragment_redefinition(builder, session_id):
    await builder.define_named_fragment(session_id, "F", "User", ["id"])
    result = await builder.define_named_fragment(session_id, "F", "Post", ["id"])
    assert result["code"] == "FragmentAlreadyExists"


async def test_fragment_name_and_type_checks(builder, session_id):
    assert (await builder.define_named_fragment(session_id, "on", "User", ["id"]))["code"] == "InvalidName"
    assert (await builder.define_named_fragment(session_id, "1F", "User", ["id"]))["code"] == "InvalidName"

    missing = await builder.define_named_fragment(session_id, "F", "Usr", ["id"])
    assert missing["code"] == "SchemaLookupError"
    assert "Did you mean 'User'?" in missing["error"]

    enum = await builder.define_named_fragment(session_id, "F", "Role", ["id"])
    assert enum["code"] == "SchemaLookupError"
    assert "cannot have fragments" in enum["error"]

    field = await builder.define_named_fragment(session_id, "F", "User", ["id", "nmae"])
    assert field["code"] == "SchemaLookupError"
    assert "not found on type 'User'" in field["error"]


async def test_fragment_on_interface_and_union(builder, session_id):
    node = await builder.define_named_fragment(session_id, "NodeId", "Node", ["id"])
    assert node["success"] is True

    union = await builder.define_named_fragment(session_id, "Kind", "SearchResult", ["__typename"])
    assert union["success"] is True


async def test_fragment_without_schema_skips_checks(offline_builder, offline_session_id, render):
    result = await offline_builder.define_named_fragment(offline_session_id, "F", "Anything", ["whatever.deep"])
    assert result["success"] is True
    await offline_builder.select_field(offline_session_id, "items")
    await offline_builder.apply_named_fragment(offline_session_id, "items", "F")
    assert await render(offline_session_id) == (
        "query Q1 { items { ...F } } fragment F on Anything { whatever { deep } }"
    )


async def test_apply_unknown_fragment(builder, session_id):
    await builder.select_field(session_id, "viewer")
    result = await builder.apply_named_fragment(session_id, "viewer", "Nope")
    assert result["code"] == "FragmentNotFound"

    await builder.define_named_fragment(session_id, "F", "User", ["id"])
    missing_path = await builder.apply_named_fragment(session_id, "nowhere", "F")
    assert missing_path["code"] == "PathNotFound"


async def test_inline_fragments_merge_per_type(builder, session_id, render):
    await builder.select_field(session_id, "search")
    await builder.set_string_argument(session_id, "search", "term", "graphql")
    await builder.apply_inline_fragment(session_id, "search", "Post", ["title"])
    await builder.apply_inline_fragment(session_id, "search", "Post", ["id", " "])
    result = await builder.apply_inline_fragment(session_id, "search", type_name="User", field_names=["name"])
    assert result["onType"] == "User"

    assert await render(session_id) == (
        'query Q1 { search(term: "graphql") { ... on Post { title id } ... on User { name } } }'
    )
    assert (await builder.validate_query(session_id))["valid"] is True


async def test_inline_fragment_rejections(builder, session_id):
    await builder.select_field(session_id, "search")
    assert (await builder.apply_inline_fragment(session_id, "search", None, ["id"]))["code"] == "InvalidName"
    assert (await builder.apply_inline_fragment(session_id, "search", "Ghost", ["id"]))["code"] == "SchemaLookupError"
    assert (await builder.apply_inline_fragment(session_id, "nope", "Post", ["id"]))["code"] == "PathNotFound"


async def test_fragment_fields_count_toward_ceilings(builder, session_id, cfg):
    cfg.max_field_count = 3
    await builder.select_field(session_id, "viewer")
    await builder.define_named_fragment(
        session_id, "Big", "User", ["id", "name", "email", "posts.title", "posts.body"]
    )
    await builder.apply_named_fragment(session_id, "viewer", "Big")

    analysis = (await builder.analyze_query_complexity(session_id))["analysis"]
    assert analysis["valid"] is False
    assert analysis["fieldCount"] == 7

    result = await builder.execute_query(session_id)
    assert result["code"] == "ComplexityExceeded"
