"""
domain.exceptions - Custom exception hierarchy for the retrieval-aware agent.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class InvalidTurnError(DomainError):
    """Raised when a turn would break the conversation's ordering rules."""


# ---------------------------------------------------------------------------
# Semantic memory
# ---------------------------------------------------------------------------

class EmbeddingUnavailableError(DomainError):
    """Raised when the embedding service fails or returns an unusable vector."""


class DuplicateIdError(DomainError):
    """Raised when an entry id already exists in the target collection."""

    def __init__(self, collection: str, entry_id: str):
        super().__init__(
            f"Entry '{entry_id}' already exists in collection '{collection}'"
        )
        self.collection = collection
        self.entry_id = entry_id


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

class DuplicateToolNameError(DomainError):
    """Raised when a tool name is registered twice."""


class ToolError(DomainError):
    """Base for tool dispatch failures that are fed back to the model."""

    code = "ToolError"


class UnknownToolError(ToolError):
    """Raised when the requested tool is not registered."""

    code = "UnknownTool"


class InvalidArgumentsError(ToolError):
    """Raised when tool arguments fail schema validation."""

    code = "InvalidArguments"


class ToolExecutionFailedError(ToolError):
    """Raised when the tool callable itself raises or times out."""

    code = "ToolExecutionFailed"


# ---------------------------------------------------------------------------
# Model service / session outcomes
# ---------------------------------------------------------------------------

class ModelServiceUnavailableError(DomainError):
    """Raised when the language-model service cannot produce a reply."""


class SessionFailedError(DomainError):
    """Raised when a session cannot continue (model down after retries)."""


class MaxRoundsExceededError(DomainError):
    """Raised on demand when a run stopped at its round cap."""


class SessionCancelledError(DomainError):
    """Raised when a run was cancelled by the caller."""
