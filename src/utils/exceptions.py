# ==============================================
# Custom exceptions for Jira Task Automation
# ==============================================

"""
Exception Hierarchy for Jira Task Automation

1. All exceptions inherit from TaskAutomationException
2. Exceptions are categorized by domain (Client, Configuration, Data)
3. Each exception includes context information for debugging
4. Upstream I/O failures (FetchFailed, GenerationFailed) are client errors;
   the analyzer itself only ever raises InvalidInputException
"""

from typing import Optional, Dict, Any


# ==============================================
# Base Exception
# ==============================================

class TaskAutomationException(Exception):
    """
    Base exception for all Jira Task Automation errors

    Includes support for error context and categorization.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize base exception

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code (e.g., "ERR_JIRA_001")
            context: Additional context information (issue key, project key, etc.)
            original_exception: Original exception if this is a wrapped error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.original_exception = original_exception

    def __str__(self):
        """Format exception as string with context"""
        base = self.message
        if self.error_code:
            base = f"[{self.error_code}] {base}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} (Context: {context_str})"
        return base


# ==============================================
# Client Exceptions
# ==============================================

class ClientException(TaskAutomationException):
    """Base exception for external service errors (Jira, OpenAI)"""
    pass


class JiraClientException(ClientException):
    """Jira client errors"""
    pass


class JiraAuthenticationException(JiraClientException):
    """Jira authentication failed"""
    pass


class JiraIssueNotFoundException(JiraClientException):
    """Jira issue or project not found"""
    pass


class JiraPermissionException(JiraClientException):
    """Insufficient Jira permissions"""
    pass


class FetchFailedException(JiraClientException):
    """Issues could not be fetched from Jira"""
    pass


class OpenAIClientException(ClientException):
    """OpenAI client errors"""
    pass


class GenerationFailedException(OpenAIClientException):
    """OpenAI failed to generate a usable response"""
    pass


# ==============================================
# Configuration Exceptions
# ==============================================

class ConfigurationException(TaskAutomationException):
    """Configuration errors"""
    pass


class MissingConfigException(ConfigurationException):
    """Required configuration is missing"""
    pass


class InvalidConfigException(ConfigurationException):
    """Configuration value is invalid"""
    pass


# ==============================================
# Data Exceptions
# ==============================================

class DataException(TaskAutomationException):
    """Data processing errors"""
    pass


class InvalidInputException(DataException):
    """
    Input record violates a precondition

    ``field`` names the offending field so callers can report it.
    """

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', None) or {}
        if field:
            context = {'field': field, **context}
        super().__init__(message, error_code=kwargs.pop('error_code', 'ERR_DATA_001'), context=context, **kwargs)
        self.field = field


class ParsingException(DataException):
    """Failed to parse data"""
    pass


class TemplateStoreException(DataException):
    """Template store read/write failed"""
    pass


# ==============================================
# Exception Utilities
# ==============================================

def get_exception_context(exception: Exception) -> Dict[str, Any]:
    """
    Extract context from exception

    Args:
        exception: Exception to extract context from

    Returns:
        Context dictionary
    """
    if isinstance(exception, TaskAutomationException):
        return exception.context
    return {}
