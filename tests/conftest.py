import pytest

from graphql_query_builder.config import Config
from graphql_query_builder.engine import QueryBuilder
from graphql_query_builder.executor import ExecutionGateway
from graphql_query_builder.parser import schema_from_sdl
from graphql_query_builder.schema_loader import StaticSchemaProvider, UnavailableSchemaProvider
from graphql_query_builder.store import MemorySessionStore

SDL = """
directive @cached(ttl: Int!) on FIELD | QUERY

enum Role {
  ADMIN
  EDITOR
  VIEWER
}

enum SortOrder {
  ASC
  DESC
}

enum PostStatus {
  DRAFT
  PUBLISHED
}

input PostFilter {
  status: PostStatus
  authorId: ID
  tags: [String!]
}

input PostMeta {
  featured: Boolean
  score: Float
}

input CreatePostInput {
  "Post title"
  title: String!
  body: String
  status: PostStatus = DRAFT
  meta: PostMeta
}

interface Node {
  id: ID!
}

type User implements Node {
  id: ID!
  name: String!
  email: String
  role: Role
  posts(first: Int, last: Int, orderBy: SortOrder): [Post!]!
  friends(limit: Int): [User!]!
}

type Post implements Node {
  id: ID!
  title: String!
  body: String
  published: Boolean
  author: User!
  comments(first: Int): [Comment!]!
}

type Comment implements Node {
  id: ID!
  text: String!
  author: User
}

union SearchResult = User | Post

type Query {
  "Look up a user by numeric id"
  user(id: Int!): User
  node(id: ID!): Node
  posts(first: Int, limit: Int, filter: PostFilter, orderBy: SortOrder = DESC): [Post!]!
  search(term: String!): [SearchResult!]!
  viewer: User
  lookup(key: String, ref: ID): User
}

type Mutation {
  createPost(input: CreatePostInput!): Post
}
"""


class StubGateway(ExecutionGateway):
    """Records requests and replays a canned response or error."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else {"data": {"ok": True}}
        self.error = error
        self.calls = []

    async def post(self, url, payload, headers, timeout, parse_timeout):
        self.calls.append(
            {"url": url, "payload": payload, "headers": headers, "timeout": timeout, "parse_timeout": parse_timeout}
        )
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def schema():
    return schema_from_sdl(SDL)


@pytest.fixture
def cfg(tmp_path):
    return Config(session_dir=str(tmp_path / "sessions"), schema_cache_dir=str(tmp_path / "schemas"))


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def builder(store, schema, cfg, gateway):
    return QueryBuilder(store, StaticSchemaProvider(schema), cfg, gateway)


@pytest.fixture
def offline_builder(store, cfg, gateway):
    return QueryBuilder(store, UnavailableSchemaProvider("No GraphQL endpoint configured."), cfg, gateway)


@pytest.fixture
async def session_id(builder):
    result = await builder.start_query_session("query", "Q1")
    return result["sessionId"]


@pytest.fixture
async def offline_session_id(offline_builder):
    result = await offline_builder.start_query_session("query", "Q1")
    return result["sessionId"]


@pytest.fixture
def render(builder):
    """Compact query string of a session."""

    async def _render(session_id):
        return (await builder.get_current_query(session_id))["queryString"]

    return _render
