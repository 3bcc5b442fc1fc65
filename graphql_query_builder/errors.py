"""Error taxonomy for query building operations."""

from typing import Optional


class QueryBuilderError(Exception):
    """Base exception for all query builder errors.

    Every operation converts these into ``{"error": message, "code": code}``
    at its boundary, so ``code`` is the stable, machine-readable part.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict:
        return {"error": self.message, "code": self.code}


class SessionNotFound(QueryBuilderError):
    """Raised when a session id has no stored document (unknown or expired)."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found.")


class PathNotFound(QueryBuilderError):
    """Raised when a field path does not resolve in the query structure."""

    def __init__(self, path: str, unresolved: Optional[str] = None):
        self.path = path
        self.unresolved = unresolved or path
        if self.unresolved != path:
            message = f"Field at path '{path}' not found in query structure (missing '{self.unresolved}')."
        else:
            message = f"Field at path '{path}' not found in query structure."
        super().__init__(message)


class InvalidPath(QueryBuilderError):
    pass


class InvalidName(QueryBuilderError):
    pass


class UndeclaredVariable(QueryBuilderError):
    def __init__(self, variable_name: str):
        self.variable_name = variable_name
        super().__init__(
            f"Variable '{variable_name}' is not declared. Use set-query-variable first."
        )


class VariableConflict(QueryBuilderError):
    pass


class FragmentAlreadyExists(QueryBuilderError):
    def __init__(self, fragment_name: str):
        self.fragment_name = fragment_name
        super().__init__(
            f"Fragment '{fragment_name}' already exists. Use a different name."
        )


class FragmentNotFound(QueryBuilderError):
    def __init__(self, fragment_name: str):
        self.fragment_name = fragment_name
        super().__init__(
            f"Fragment '{fragment_name}' not found. Define it first using define-named-fragment."
        )


class FieldConflict(QueryBuilderError):
    pass


class TypeMismatch(QueryBuilderError):
    """Raised when a value cannot be coerced to the expected GraphQL type."""

    def __init__(self, message: str, expected: Optional[str] = None, value=None):
        self.expected = expected
        self.value = value
        super().__init__(message)


class InvalidInput(QueryBuilderError):
    """Raised by structural validators (length, control characters, limits)."""


class SchemaLookupError(QueryBuilderError):
    """Raised when the schema is available but does not define a named thing."""


class SchemaUnavailable(QueryBuilderError):
    """Raised when no schema could be obtained from the provider."""


class SchemaTooLarge(QueryBuilderError):
    def __init__(self, message: str, details: dict):
        self.details = details
        super().__init__(message)

    def to_payload(self) -> dict:
        return {**super().to_payload(), "schemaDetails": self.details}


class ComplexityExceeded(QueryBuilderError):
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Query complexity too high: {'; '.join(errors)}")


class EndpointUnconfigured(QueryBuilderError):
    def __init__(self, message: str = "No GraphQL endpoint configured (set 'endpoint' or DEFAULT_GRAPHQL_ENDPOINT)."):
        super().__init__(message)


class ExecutionTimeout(QueryBuilderError):
    def __init__(self, message: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"{message} ({timeout}s)")


class HttpFailure(QueryBuilderError):
    """Raised for non-2xx responses; ``status_code`` is None when no response arrived."""

    def __init__(self, status_code: Optional[int], reason: str = ""):
        self.status_code = status_code
        if status_code is None:
            super().__init__(f"Request failed: {reason}")
        else:
            super().__init__(f"HTTP {status_code}: {reason}".rstrip(": "))


class StoreError(QueryBuilderError):
    pass
