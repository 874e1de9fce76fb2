"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class ChatProviderError(Exception):
    """Raised when a chat provider returns an error.

    Provider-agnostic — works for OpenAI and any OpenAI-compatible API.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class SearchProviderError(Exception):
    """Raised when a search backend (index, issue tracker) fails."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {message}")


class RateLimitExceededError(Exception):
    """Raised when a client exceeds its request budget for the window."""

    def __init__(self, retry_after: int, message: str = "Too many requests, please try again later."):
        self.retry_after = retry_after
        self.message = message
        super().__init__(message)


class AccessDeniedError(Exception):
    """Raised when a request fails an authorization or bot-score check."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)
