"""
Log sanitization utilities to prevent credential leakage.

Jira tokens, Azure DevOps PATs and GitHub tokens travel in headers and
occasionally end up inside exception messages raised by the HTTP
libraries. Everything that is logged from an upstream failure, or returned
from a tool boundary, goes through these helpers first.
"""

import re


# Patterns that might indicate sensitive data
SENSITIVE_PATTERNS = [
    (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'\s,&]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(api_key["\']?\s*[:=]\s*["\']?)([^"\'\s,&]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'((?:access_)?token["\']?\s*[:=]\s*["\']?)([^"\'\s,&]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(pat["\']?\s*[:=]\s*["\']?)([^"\'\s,&]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'((?:bearer|basic|token)\s+)([a-zA-Z0-9\-._~+/]{16,}=*)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(authorization["\']?\s*[:=]\s*["\']?)(?!(?:bearer|basic|token)\s)([^"\'\s,]+)', re.IGNORECASE), r'\1***REDACTED***'),
    # GitHub personal access tokens
    (re.compile(r'\b(gh[pousr]_)[A-Za-z0-9]{20,}\b'), r'\1***REDACTED***'),
]


def sanitize_log_message(message: str) -> str:
    """
    Sanitize a log message by redacting sensitive information.

    Args:
        message: The log message to sanitize

    Returns:
        Sanitized log message with sensitive data redacted
    """
    if not message:
        return message

    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def sanitize_error(error: Exception) -> str:
    """Sanitize an exception message for safe logging."""
    return sanitize_log_message(str(error))


def safe_log_error(error: Exception, context: str = "") -> str:
    """
    Create a safe error message for logging.

    Args:
        error: The exception
        context: Additional context (e.g., "Pipeline 'Release-Build'")

    Returns:
        Safe error message for logging
    """
    sanitized_error = sanitize_error(error)
    error_type = type(error).__name__

    if context:
        return f"{context}: {error_type}: {sanitized_error}"
    return f"{error_type}: {sanitized_error}"
