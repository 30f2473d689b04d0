"""Error taxonomy shared by clients, services and the API layer.

Every failure keeps its kind on the way up so callers can decide whether to
retry, surface it to a user or raise an alert.
"""


class AccessBridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class InvalidRelationError(AccessBridgeError):
    """Raised when a relation or resource type is not declared in the relation schema."""

    def __init__(self, resource_type: str, relation: str | None = None):
        self.resource_type = resource_type
        self.relation = relation
        if relation is None:
            message = f"Resource type '{resource_type}' is not declared in the relation schema."
        else:
            message = f"Relation '{relation}' is not declared for resource type '{resource_type}'."
        super().__init__(message=message, detail="Schema violation, the call will not be retried.")


class InvalidRequestError(AccessBridgeError, ValueError):
    """Raised when caller input is malformed (empty share list, non-positive top_k)."""


class ConfigurationError(AccessBridgeError, ValueError):
    """Raised when a required setting is missing or malformed."""


class NotAuthorizedError(AccessBridgeError):
    """Expected business outcome: the subject lacks the required relation."""

    def __init__(self, subject_id: str, relation: str, resource_id: str):
        self.subject_id = subject_id
        self.relation = relation
        self.resource_id = resource_id
        super().__init__(
            message=f"Subject '{subject_id}' is not '{relation}' of resource '{resource_id}'.",
            detail=resource_id,
        )


class BackendUnavailableError(AccessBridgeError):
    """Transient infrastructure fault. Callers may retry with backoff."""


class StoreUnavailableError(BackendUnavailableError):
    """Relation store backend could not be reached or answered with an error."""


class ProviderError(BackendUnavailableError):
    """Embedding provider failed (quota, network, malformed response)."""


class IndexUnavailableError(BackendUnavailableError):
    """Vector index backend could not be reached or answered with an error."""


class RequestTimeoutError(AccessBridgeError):
    """A network call exceeded its caller-supplied timeout."""

    def __init__(self, url: str, timeout: float | None):
        self.url = url
        self.timeout = timeout
        super().__init__(
            message=f"Request to {url} timed out after {timeout}s.",
            detail="Retryable.",
        )
