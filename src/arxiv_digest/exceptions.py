"""Exception hierarchy for the arXiv digest pipeline."""

from typing import Any, Dict, Optional


class ArxivDigestError(Exception):
    """Base exception; ``details`` holds structured context for logs."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class UpstreamFetchError(ArxivDigestError):
    """An upstream service answered with a non-success status."""

    source = "upstream"
    label = "Upstream error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        self.response_text = response_text
        merged = {**(details or {}), 'source': self.source}
        if status_code is not None:
            merged['status_code'] = status_code
        super().__init__(message, merged)


class ArxivAPIError(UpstreamFetchError):
    """The arXiv Atom API returned an error status."""

    source = "arxiv"
    label = "arXiv API error"


class LLMAPIError(UpstreamFetchError):
    """The generation endpoint returned an error status."""

    source = "llm"
    label = "Summary service error"


class ValidationError(ArxivDigestError):
    """Rejected inbound input or a disallowed outbound URL."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value
        details = {'field': field} if field else {}
        if value is not None:
            details['value'] = str(value)
        super().__init__(message, details)


class NetworkError(ArxivDigestError):
    """The request never produced a response (DNS, connect, timeout...)."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        details = {}
        if original_error is not None:
            details = {'original_error': str(original_error), 'error_type': type(original_error).__name__}
        super().__init__(message, details)


class ConfigurationError(ArxivDigestError):
    """Settings are missing or cannot be loaded."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        super().__init__(message, {'config_key': config_key} if config_key else {})


def format_error_for_user(error: Exception) -> str:
    """Render an exception as the text returned by an MCP tool."""
    if isinstance(error, ValidationError):
        suffix = f" (field: {error.field})" if error.field else ""
        return f"Invalid input: {error.message}{suffix}"
    if isinstance(error, NetworkError):
        return f"Network error: {error.message}. Please check your internet connection."
    if isinstance(error, ConfigurationError):
        return f"Configuration error: {error.message}"
    if isinstance(error, UpstreamFetchError):
        status = f" ({error.status_code})" if error.status_code else ""
        return f"{error.label}{status}: {error.message}"
    if isinstance(error, ArxivDigestError):
        return f"Error: {error.message}"
    return f"Unexpected error: {error}"
