"""Error types raised by the compliance engine and its collaborators."""


class ComplianceError(Exception):
    """Base error carrying a stable machine-readable code."""

    code = "COMPLIANCE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class RequestValidationError(ComplianceError):
    """The turn request is malformed (no messages, no user message)."""

    code = "VALIDATION_ERROR"


class StreamingNotSupportedError(ComplianceError):
    code = "STREAMING_NOT_SUPPORTED"


class AgentError(ComplianceError):
    code = "AGENT_ERROR"


class LlmError(ComplianceError):
    code = "LLM_ERROR"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GraphError(ComplianceError):
    code = "GRAPH_ERROR"


def get_error_message(error: object) -> str:
    """Human-readable message for an exception or a provider error payload."""
    if isinstance(error, BaseException):
        return str(error) or error.__class__.__name__
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error, str) and error:
        return error
    return "Unknown error"
