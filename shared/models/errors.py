"""Error taxonomy shared by the retrieval, ingestion and chat layers."""


class KBError(Exception):
    """Base class for all knowledge-base errors.

    Attributes:
        message (str): Detailed message for logs.
        user_message (str | None): Human-readable message safe to show to the end user.
            None means the API layer picks a generic localized message.
    """

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message


class ValidationError(KBError):
    """Malformed or under-specified request (e.g. scoped retrieval without owner_id)."""


class ProviderUnavailableError(KBError):
    """The embedding provider, search engine or LLM could not be reached or answered with an error."""


class ToolExecutionError(KBError):
    """A single tool invocation failed. Isolated per tool."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class DelegationTimeoutError(KBError):
    """The delegation path exceeded its deadline."""

    def __init__(self, timeout: float, user_message: str | None = None) -> None:
        super().__init__(f"Delegation exceeded its deadline of {timeout:.1f}s", user_message=user_message)
        self.timeout = timeout


class ConfigurationError(KBError, ValueError):
    """Required startup configuration is missing or invalid."""


class InvalidStatusTransitionError(KBError, ValueError):
    """A document status change skipped a state or left a terminal state."""
