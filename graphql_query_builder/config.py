"""Configuration management for graphql-query-builder."""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Optional

import yaml

from . import utils

logger = logging.getLogger(__name__)

DEFAULT_PAGINATION_ARGS = ["first", "last", "limit", "top", "count"]


@dataclass
class Config:
    """Configuration for graphql-query-builder."""

    endpoint: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    session_ttl: int = 3600
    session_dir: str = "~/.gqb/sessions"
    schema_cache_dir: str = "~/.gqb/schemas"

    # Complexity ceilings
    max_depth: int = 12
    max_field_count: int = 200
    max_complexity_score: float = 2500
    expensive_score: float = 1500

    # Timeouts (seconds)
    default_timeout: float = 30
    expensive_timeout: float = 60
    parse_timeout: float = 5
    store_timeout: float = 10
    introspection_timeout: float = 30

    # Input validation
    max_string_length: int = 8192
    max_pagination_value: int = 500
    pagination_args: list[str] = field(default_factory=lambda: list(DEFAULT_PAGINATION_ARGS))
    max_input_depth: int = 10
    max_input_properties: int = 1000
    max_type_depth: int = 5

    validate_selections: bool = False

    def __post_init__(self):
        """Expand paths after initialization."""
        self.session_dir = utils.expand_path(self.session_dir)
        self.schema_cache_dir = utils.expand_path(self.schema_cache_dir)


def get_default_config_path() -> str:
    """Get default config file path."""
    return utils.expand_path("~/.gqb/config.yaml")


def load(config_path: Optional[str] = None, environ: Optional[dict] = None) -> Config:
    """
    Load configuration from YAML file and environment.

    Args:
        config_path: Path to config file. If None, uses default location.
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Config object with defaults for missing values.
    """
    if config_path is None:
        config_path = get_default_config_path()
    if environ is None:
        environ = os.environ

    data = {}
    if utils.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    known = {f.name for f in fields(Config)}
    unknown = set(data) - known
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", config_path, ", ".join(sorted(unknown)))

    cfg = Config(**{k: v for k, v in data.items() if k in known})
    apply_environment(cfg, environ)
    return cfg


def apply_environment(cfg: Config, environ) -> Config:
    """
    Apply DEFAULT_GRAPHQL_ENDPOINT, DEFAULT_GRAPHQL_HEADERS and SESSION_TTL_SECONDS.

    Invalid header JSON is logged and ignored; an unparseable TTL keeps the
    configured value. A TTL of 0 disables session expiry.
    """
    endpoint = environ.get("DEFAULT_GRAPHQL_ENDPOINT")
    if endpoint:
        cfg.endpoint = endpoint

    raw_headers = environ.get("DEFAULT_GRAPHQL_HEADERS")
    if raw_headers:
        try:
            cfg.headers = {**cfg.headers, **parse_headers(raw_headers)}
        except ValueError as e:
            logger.warning("Failed to parse DEFAULT_GRAPHQL_HEADERS: %s", e)

    raw_ttl = environ.get("SESSION_TTL_SECONDS")
    if raw_ttl is not None:
        try:
            cfg.session_ttl = int(raw_ttl)
        except ValueError:
            logger.warning("Ignoring non-numeric SESSION_TTL_SECONDS=%r", raw_ttl)

    return cfg


def parse_headers(raw: str) -> dict[str, str]:
    """
    Parse a JSON object of header name/value pairs.

    Raises:
        ValueError: If the JSON is invalid, not an object, or a header is too long
    """
    try:
        headers = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e}") from e

    if not isinstance(headers, dict):
        raise ValueError("headers must be a JSON object")

    for key, value in headers.items():
        if not isinstance(value, str):
            raise ValueError(f"invalid header: {key} must be a string")
        if len(key) > 100 or len(value) > 1000:
            raise ValueError(f"header {key} exceeds maximum length")

    return headers


def create_example_config(path: Optional[str] = None) -> None:
    """Create an example config file."""
    if path is None:
        path = get_default_config_path()

    utils.ensure_dir(utils.dirname(path))

    example = {
        "endpoint": "https://api.example.com/graphql",
        "headers": {"Authorization": "Bearer <token>"},
        "session_ttl": 3600,
        "session_dir": "~/.gqb/sessions",
        "schema_cache_dir": "~/.gqb/schemas",
        "max_depth": 12,
        "max_field_count": 200,
        "max_complexity_score": 2500,
        "expensive_score": 1500,
        "default_timeout": 30,
        "expensive_timeout": 60,
        "max_pagination_value": 500,
        "validate_selections": False,
    }

    with open(path, "w") as f:
        yaml.dump(example, f, default_flow_style=False, sort_keys=False)
