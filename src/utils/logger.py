# ==============================================
# Structured logging setup with JSON support
# ==============================================

import logging
import sys
import json
import os
import time
import uuid
from contextvars import ContextVar
from typing import Optional, Dict, Any
from datetime import datetime, timezone

# Request-scoped correlation ID (safe across asyncio tasks)
_correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

# Extra fields copied from log records when present
CONTEXT_FIELDS = ('issue_key', 'project_key', 'category', 'error_code', 'operation', 'duration_ms', 'context')


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter for structured logging with contextual fields

    Supports both human-readable and JSON formats
    """

    def __init__(self, json_format: bool = False):
        """
        Initialize structured formatter

        Args:
            json_format: If True, output JSON format; otherwise human-readable
        """
        super().__init__()
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with contextual fields"""

        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data['correlation_id'] = correlation_id

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if self.json_format:
            return json.dumps(log_data, default=str)

        parts = [
            log_data['timestamp'],
            f"{log_data['level']:<8}",
            f"{log_data['logger']:<30}"
        ]

        context_parts = []
        if 'correlation_id' in log_data:
            context_parts.append(f"[{log_data['correlation_id'][:8]}]")
        if 'project_key' in log_data:
            context_parts.append(f"[{log_data['project_key']}]")
        if 'issue_key' in log_data:
            context_parts.append(f"[{log_data['issue_key']}]")
        if 'error_code' in log_data:
            context_parts.append(f"[{log_data['error_code']}]")

        if context_parts:
            parts.append(' '.join(context_parts))

        parts.append(f"| {log_data['message']}")

        if 'exception' in log_data:
            parts.append(f"\n{log_data['exception']}")

        return ' '.join(parts)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds contextual fields to all log records

    Usage:
        logger = get_logger(__name__, project_key='PROJ')
        logger.info("Parsing issues", extra={'issue_key': 'PROJ-1'})
    """

    def process(self, msg, kwargs):
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs


# ==============================================
# Correlation ID Management
# ==============================================

def set_correlation_id(correlation_id: str):
    """Set correlation ID for the current request context"""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get correlation ID for the current request context"""
    return _correlation_id.get()


def clear_correlation_id():
    """Clear correlation ID for the current request context"""
    _correlation_id.set(None)


def generate_correlation_id(prefix: str = '') -> str:
    """
    Generate a new correlation ID

    Args:
        prefix: Optional prefix for the ID

    Returns:
        Generated correlation ID
    """
    unique_id = uuid.uuid4().hex[:8]
    timestamp = datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')
    if prefix:
        return f"{prefix}-{timestamp}-{unique_id}"
    return f"{timestamp}-{unique_id}"


# ==============================================
# Logger Factory
# ==============================================

def get_logger(
    name: str,
    level: Optional[int] = None,
    json_format: Optional[bool] = None,
    **context
) -> logging.Logger:
    """
    Get configured logger with structured formatting

    Args:
        name: Logger name (usually __name__)
        level: Logging level (default: from env LOG_LEVEL, else INFO)
        json_format: Use JSON format (default: from env LOG_FORMAT=json)
        **context: Default context fields (project_key, issue_key, etc.)

    Returns:
        Configured logger instance (StructuredLogger if context provided)
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        if json_format is None:
            json_format = os.environ.get('LOG_FORMAT', 'text').lower() == 'json'

        handler.setFormatter(StructuredFormatter(json_format=json_format))
        logger.addHandler(handler)

        if level is None:
            level = logging.getLevelName(os.environ.get('LOG_LEVEL', 'INFO').upper())
            if not isinstance(level, int):
                level = logging.INFO
        logger.setLevel(level)
        logger.propagate = False

    if context:
        return StructuredLogger(logger, context)

    return logger


# ==============================================
# Performance Tracking
# ==============================================

class PerformanceTimer:
    """
    Context manager for timing operations and logging duration

    Usage:
        with PerformanceTimer(logger, "jira search", project_key="PROJ"):
            ...
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        log_level: int = logging.INFO,
        **context
    ):
        self.logger = logger
        self.operation = operation
        self.log_level = log_level
        self.context = context
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(
            f"Starting {self.operation}",
            extra={'operation': self.operation, **self.context}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = int((time.time() - self.start_time) * 1000)

        if exc_type is None:
            self.logger.log(
                self.log_level,
                f"✓ {self.operation} completed in {self.duration_ms}ms",
                extra={'operation': self.operation, 'duration_ms': self.duration_ms, **self.context}
            )
        else:
            self.logger.error(
                f"✗ {self.operation} failed after {self.duration_ms}ms: {exc_val}",
                extra={'operation': self.operation, 'duration_ms': self.duration_ms, **self.context}
            )
        return False


# ==============================================
# Error Code Management
# ==============================================

class ErrorCodeRegistry:
    """
    Registry for standardized error codes

    Categories:
    - ERR_JIRA_* : Jira client errors
    - ERR_AI_* : OpenAI client errors
    - ERR_DATA_* : Input/analysis errors
    - ERR_CONFIG_* : Configuration errors
    """

    # Jira errors
    ERR_JIRA_FETCH = "ERR_JIRA_001"
    ERR_JIRA_NOT_FOUND = "ERR_JIRA_002"
    ERR_JIRA_CREATE = "ERR_JIRA_003"
    ERR_JIRA_UPDATE = "ERR_JIRA_004"
    ERR_JIRA_AUTH = "ERR_JIRA_005"
    ERR_JIRA_USER = "ERR_JIRA_006"

    # OpenAI errors
    ERR_AI_REQUEST = "ERR_AI_001"
    ERR_AI_PARSE = "ERR_AI_002"

    # Data errors
    ERR_DATA_INVALID = "ERR_DATA_001"
    ERR_DATA_TEMPLATE_STORE = "ERR_DATA_002"

    # Configuration errors
    ERR_CONFIG_MISSING = "ERR_CONFIG_001"
    ERR_CONFIG_INVALID = "ERR_CONFIG_002"

    @classmethod
    def get_description(cls, error_code: str) -> str:
        """Get human-readable description for error code"""
        descriptions = {
            cls.ERR_JIRA_FETCH: "Failed to fetch Jira issues",
            cls.ERR_JIRA_NOT_FOUND: "Jira issue or project not found",
            cls.ERR_JIRA_CREATE: "Failed to create Jira issue",
            cls.ERR_JIRA_UPDATE: "Failed to update Jira issue",
            cls.ERR_JIRA_AUTH: "Jira authentication failed",
            cls.ERR_JIRA_USER: "Jira user lookup failed",
            cls.ERR_AI_REQUEST: "OpenAI request failed",
            cls.ERR_AI_PARSE: "OpenAI response could not be parsed",
            cls.ERR_DATA_INVALID: "Invalid input record",
            cls.ERR_DATA_TEMPLATE_STORE: "Template store operation failed",
            cls.ERR_CONFIG_MISSING: "Missing required configuration",
            cls.ERR_CONFIG_INVALID: "Invalid configuration value",
        }
        return descriptions.get(error_code, "Unknown error")


def log_error_with_code(
    logger: logging.Logger,
    error_code: str,
    message: str,
    exception: Optional[Exception] = None,
    **context
):
    """
    Log error with standardized error code

    Example:
        log_error_with_code(
            logger,
            ErrorCodeRegistry.ERR_JIRA_CREATE,
            "Failed to create issue",
            exception=e,
            project_key="PROJ"
        )
    """
    description = ErrorCodeRegistry.get_description(error_code)

    logger.error(
        f"[{error_code}] {message}",
        exc_info=exception,
        extra={'error_code': error_code, 'context': {'description': description, **context}}
    )
