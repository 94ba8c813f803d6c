"""Tickertape exception hierarchy.

All Tickertape-specific exceptions inherit from TickertapeError.
"""


class TickertapeError(Exception):
    """Base exception for all Tickertape errors."""


class ConfigError(TickertapeError):
    """Raised when required configuration is missing or invalid."""


class ToolNotFoundError(TickertapeError):
    """Raised when a tool lookup by name fails."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' not found")


class DataProviderError(TickertapeError):
    """Raised when a data provider returns an error status or error body."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} API error: {message}")


class ContextNotFoundError(TickertapeError):
    """Raised when a stored tool result lookup fails."""

    def __init__(self, result_id: str) -> None:
        self.result_id = result_id
        super().__init__(f"Stored result not found: {result_id}")


class RunCancelledError(TickertapeError):
    """Raised at a suspension point once the run's cancellation signal is set."""

    def __init__(self) -> None:
        super().__init__("Agent run cancelled")


class AgentError(TickertapeError):
    """Raised when the agent state machine reaches an invalid state."""


class ModelError(TickertapeError):
    """Raised when a language-model call fails.

    Attributes:
        status_code: HTTP status of the failed response, or None when the
            failure was not an error status (e.g. a malformed body).
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ModelAuthError(ModelError):
    """Raised when the model API rejects the credentials (401/403)."""


class ModelRateLimitError(ModelError):
    """Raised when the model API keeps answering 429 after all retries.

    Attributes:
        retry_after: Seconds from the Retry-After header, or None.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message, status_code=429)


class ModelResponseError(ModelError):
    """Raised when a completion body lacks the expected message shape."""
