import pytest
import yaml

from graphql_query_builder import config


def test_defaults(tmp_path):
    cfg = config.load(str(tmp_path / "missing.yaml"), environ={})
    assert cfg.endpoint is None
    assert cfg.max_depth == 12
    assert cfg.max_field_count == 200
    assert cfg.max_complexity_score == 2500
    assert cfg.session_ttl == 3600
    assert cfg.validate_selections is False
    assert not cfg.session_dir.startswith("~")


def test_load_yaml_and_ignore_unknown_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"endpoint": "https://x.test/graphql", "max_depth": 5, "colour": "blue"}))
    cfg = config.load(str(path), environ={})
    assert cfg.endpoint == "https://x.test/graphql"
    assert cfg.max_depth == 5
    assert not hasattr(cfg, "colour")


def test_environment_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"endpoint": "https://file.test", "headers": {"A": "1"}}))
    cfg = config.load(
        str(path),
        environ={
            "DEFAULT_GRAPHQL_ENDPOINT": "https://env.test",
            "DEFAULT_GRAPHQL_HEADERS": '{"B": "2"}',
            "SESSION_TTL_SECONDS": "0",
        },
    )
    assert cfg.endpoint == "https://env.test"
    assert cfg.headers == {"A": "1", "B": "2"}
    assert cfg.session_ttl == 0


def test_bad_environment_values_are_ignored(tmp_path):
    cfg = config.load(
        str(tmp_path / "none.yaml"),
        environ={"DEFAULT_GRAPHQL_HEADERS": "{not json", "SESSION_TTL_SECONDS": "soon"},
    )
    assert cfg.headers == {}
    assert cfg.session_ttl == 3600


def test_parse_headers():
    assert config.parse_headers('{"Authorization": "Bearer t"}') == {"Authorization": "Bearer t"}
    with pytest.raises(ValueError, match="JSON object"):
        config.parse_headers('["a"]')
    with pytest.raises(ValueError, match="must be a string"):
        config.parse_headers('{"X": 1}')
    with pytest.raises(ValueError, match="maximum length"):
        config.parse_headers('{"X": "%s"}' % ("v" * 1001))


def test_create_example_config(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config.create_example_config(str(path))
    cfg = config.load(str(path), environ={})
    assert cfg.endpoint == "https://api.example.com/graphql"
    assert cfg.headers == {"Authorization": "Bearer <token>"}
