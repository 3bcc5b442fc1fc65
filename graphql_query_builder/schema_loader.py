"""Schema loading and caching."""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

import requests
from graphql import GraphQLError, GraphQLSchema

from . import parser, utils
from .config import Config
from .errors import SchemaUnavailable

logger = logging.getLogger(__name__)


@dataclass
class SchemaProfile:
    """Schema profile with metadata."""

    url: str
    fetched_at: str
    hash: str
    schema_json: dict


def load_schema(
    url: str,
    cfg: Optional[Config] = None,
    allow_cache: bool = True,
    refresh: bool = False,
    headers: Optional[dict[str, str]] = None,
) -> SchemaProfile:
    """
    Load GraphQL introspection JSON, from the disk cache or via introspection.

    Args:
        url: GraphQL endpoint URL
        cfg: Configuration object (required for the disk cache)
        allow_cache: Whether to use the disk cache
        refresh: Force refresh even if cached
        headers: Request headers for introspection

    Returns:
        SchemaProfile with loaded schema

    Raises:
        SchemaUnavailable: If no url is provided, or fetching fails
    """
    if not url:
        raise SchemaUnavailable("No GraphQL endpoint provided.")

    cache_path = cache_path_for(url, cfg, headers) if cfg else None

    # Try cache first
    if allow_cache and cache_path and utils.exists(cache_path) and not refresh:
        logger.debug("Using cached schema %s", cache_path)
        prof_data = utils.read_json(cache_path)
        return SchemaProfile(**prof_data)

    # Fetch from server
    timeout = cfg.introspection_timeout if cfg else 30
    js = introspect(url, headers, timeout)
    prof = SchemaProfile(
        url=url,
        fetched_at=utils.now_iso(),
        hash=utils.sha256(js),
        schema_json=js,
    )

    # Save to cache
    if allow_cache and cache_path:
        utils.ensure_dir(utils.dirname(cache_path))
        utils.write_json(cache_path, asdict(prof))

    return prof


def introspect(graphql_url: str, headers: Optional[dict[str, str]] = None, timeout: float = 30) -> dict:
    """
    Introspect GraphQL schema via HTTP.

    Args:
        graphql_url: GraphQL endpoint URL
        headers: Request headers (authentication etc.)
        timeout: Request timeout in seconds

    Returns:
        Introspection result as dict

    Raises:
        SchemaUnavailable: If introspection fails
    """
    logger.info("Introspecting schema at %s", utils.redact_url(graphql_url))
    try:
        resp = requests.post(
            graphql_url,
            json={"query": utils.INTROSPECTION_QUERY},
            headers={"Content-Type": "application/json", **(headers or {})},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise SchemaUnavailable(f"Introspection request failed: {e}") from e

    if resp.status_code != 200:
        raise SchemaUnavailable(f"Introspection failed with status {resp.status_code}")

    try:
        payload = utils.safe_json_response(resp, "GraphQL introspection")
    except RuntimeError as e:
        raise SchemaUnavailable(str(e)) from e

    if payload.get("errors"):
        raise SchemaUnavailable(f"Introspection errors: {payload['errors']}")

    return payload["data"]


def cache_path_for(url: str, cfg: Config, headers: Optional[dict[str, str]] = None) -> str:
    """
    Get cache path for a schema URL.

    Different header sets (e.g. tokens with different permissions) may see
    different schemas, so they get separate files.

    Args:
        url: GraphQL endpoint URL
        cfg: Configuration object
        headers: Request headers

    Returns:
        Path to cache file
    """
    host = utils.sanitize_host(url)
    return utils.join(cfg.schema_cache_dir, f"{host}-{utils.sha256(headers or {})}.json")


def load_schema_file(path: str) -> GraphQLSchema:
    """Build a schema from an introspection JSON file or an SDL file."""
    try:
        if path.endswith(".json"):
            return parser.schema_from_introspection(utils.read_json(path))
        return parser.schema_from_sdl(utils.read_text(path))
    except (OSError, ValueError, TypeError, GraphQLError) as e:
        raise SchemaUnavailable(f"Could not load schema from {path}: {e}") from e


class SchemaProvider:
    """Source of the schema consulted by the type oracle."""

    def get_schema(self, headers: Optional[dict[str, str]] = None) -> GraphQLSchema:
        """
        Return the schema for a header set.

        Raises:
            SchemaUnavailable: If no schema can be obtained
        """
        raise NotImplementedError


class StaticSchemaProvider(SchemaProvider):
    """Always returns the same, already built schema."""

    def __init__(self, schema: GraphQLSchema):
        self.schema = schema

    @classmethod
    def from_file(cls, path: str) -> "StaticSchemaProvider":
        return cls(load_schema_file(path))

    def get_schema(self, headers=None) -> GraphQLSchema:
        return self.schema


class UnavailableSchemaProvider(SchemaProvider):
    """A provider with no schema, e.g. when no endpoint is configured."""

    def __init__(self, reason: str = "No schema available."):
        self.reason = reason

    def get_schema(self, headers=None) -> GraphQLSchema:
        raise SchemaUnavailable(self.reason)


class IntrospectionSchemaProvider(SchemaProvider):
    """
    Fetches schemas by introspection.

    Built schemas are cached for the process lifetime, keyed by endpoint and
    the merged header set. Entries are never invalidated.
    """

    _cache: dict[str, GraphQLSchema] = {}

    def __init__(self, cfg: Config, disk_cache: bool = False):
        self.cfg = cfg
        self.disk_cache = disk_cache

    def get_schema(self, headers: Optional[dict[str, str]] = None) -> GraphQLSchema:
        if not self.cfg.endpoint:
            raise SchemaUnavailable("No GraphQL endpoint configured (set 'endpoint' or DEFAULT_GRAPHQL_ENDPOINT).")

        merged = {**self.cfg.headers, **(headers or {})}
        key = f"{self.cfg.endpoint}:{utils.sha256(merged)}"
        schema = self._cache.get(key)
        if schema is not None:
            logger.debug("Schema cache hit for %s", utils.redact_url(self.cfg.endpoint))
            return schema

        profile = load_schema(
            url=self.cfg.endpoint,
            cfg=self.cfg,
            allow_cache=self.disk_cache,
            headers=merged,
        )
        try:
            schema = parser.schema_from_introspection(profile.schema_json)
        except (TypeError, GraphQLError) as e:
            raise SchemaUnavailable(f"Invalid introspection result: {e}") from e

        self._cache[key] = schema
        return schema

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()
