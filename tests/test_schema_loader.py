import pytest
from graphql import introspection_from_schema, print_schema

from graphql_query_builder import schema_loader, utils
from graphql_query_builder.errors import SchemaUnavailable


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        return self.payload


@pytest.fixture
def introspection(schema):
    return introspection_from_schema(schema)


@pytest.fixture
def fake_post(monkeypatch, introspection):
    calls = []

    def post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "headers": headers, "timeout": timeout})
        return FakeResponse({"data": introspection})

    monkeypatch.setattr(schema_loader.requests, "post", post)
    schema_loader.IntrospectionSchemaProvider.clear_cache()
    yield calls
    schema_loader.IntrospectionSchemaProvider.clear_cache()


def test_load_schema_file_sdl_and_json(tmp_path, schema, introspection):
    sdl = tmp_path / "schema.graphql"
    sdl.write_text(print_schema(schema))
    assert schema_loader.load_schema_file(str(sdl)).get_type("User") is not None

    js = tmp_path / "schema.json"
    utils.write_json(str(js), {"data": introspection})
    assert schema_loader.load_schema_file(str(js)).get_type("PostFilter") is not None

    broken = tmp_path / "broken.graphql"
    broken.write_text("type {")
    with pytest.raises(SchemaUnavailable):
        schema_loader.load_schema_file(str(broken))


def test_provider_caches_per_header_set(cfg, fake_post):
    cfg.endpoint = "https://api.example.com/graphql"
    provider = schema_loader.IntrospectionSchemaProvider(cfg)

    first = provider.get_schema({"Authorization": "a"})
    again = provider.get_schema({"Authorization": "a"})
    other = provider.get_schema({"Authorization": "b"})

    assert first is again
    assert other is not first
    assert len(fake_post) == 2
    assert fake_post[0]["headers"]["Authorization"] == "a"
    assert fake_post[0]["timeout"] == cfg.introspection_timeout


def test_provider_disk_cache(cfg, fake_post):
    cfg.endpoint = "https://api.example.com/graphql"
    schema_loader.IntrospectionSchemaProvider(cfg, disk_cache=True).get_schema()
    path = schema_loader.cache_path_for(cfg.endpoint, cfg, {})
    assert utils.exists(path)

    schema_loader.IntrospectionSchemaProvider.clear_cache()
    schema_loader.IntrospectionSchemaProvider(cfg, disk_cache=True).get_schema()
    assert len(fake_post) == 1


def test_provider_without_endpoint(cfg):
    with pytest.raises(SchemaUnavailable, match="No GraphQL endpoint"):
        schema_loader.IntrospectionSchemaProvider(cfg).get_schema()


def test_introspection_failures(monkeypatch):
    monkeypatch.setattr(schema_loader.requests, "post", lambda *a, **k: FakeResponse({}, status_code=401))
    with pytest.raises(SchemaUnavailable, match="status 401"):
        schema_loader.introspect("https://api.example.com/graphql")

    monkeypatch.setattr(
        schema_loader.requests, "post", lambda *a, **k: FakeResponse({"errors": [{"message": "no"}]})
    )
    with pytest.raises(SchemaUnavailable, match="Introspection errors"):
        schema_loader.introspect("https://api.example.com/graphql")


def test_cache_path_depends_on_headers(cfg):
    url = "https://api.example.com/graphql"
    assert schema_loader.cache_path_for(url, cfg, {"A": "1"}) != schema_loader.cache_path_for(url, cfg, {"A": "2"})


def test_load_schema_requires_endpoint(cfg):
    with pytest.raises(SchemaUnavailable, match="No GraphQL endpoint provided"):
        schema_loader.load_schema("", cfg=cfg)


def test_load_schema_refresh_bypasses_disk_cache(cfg, fake_post):
    url = "https://api.example.com/graphql"
    first = schema_loader.load_schema(url, cfg=cfg)
    cached = schema_loader.load_schema(url, cfg=cfg)
    assert cached.hash == first.hash
    assert len(fake_post) == 1

    schema_loader.load_schema(url, cfg=cfg, refresh=True)
    assert len(fake_post) == 2
