"""
Custom exceptions for Outlook Mail Sorter.
"""

from typing import Optional


class MailSorterException(Exception):
    """Base exception for all custom exceptions."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(MailSorterException):
    """Configuration is invalid or missing."""

    pass


# ============================================================================
# Graph API Exceptions
# ============================================================================


class GraphAPIError(MailSorterException):
    """Error communicating with Microsoft Graph API."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class GraphAPIRateLimitError(GraphAPIError):
    """Graph API rate limit exceeded."""

    pass


class ItemNotFoundError(GraphAPIError):
    """Message or folder no longer exists (ErrorItemNotFound)."""

    pass


# ============================================================================
# Authentication Exceptions
# ============================================================================


class AuthenticationError(MailSorterException):
    """Authentication failed."""

    pass


class AuthTimeoutError(AuthenticationError):
    """No OAuth callback arrived before the timeout."""

    pass


class OAuthCallbackError(AuthenticationError):
    """Identity provider redirected back with an error."""

    def __init__(self, error: str, description: Optional[str] = None):
        super().__init__(f"OAuth Error: {error} - {description or 'No description'}")
        self.error = error
        self.description = description


class MissingAuthorizationCodeError(AuthenticationError):
    """Callback request carried neither a code nor an error."""

    pass


class LoopbackServerError(AuthenticationError):
    """Local callback server could not listen."""

    pass


# ============================================================================
# Classifier Exceptions
# ============================================================================


class ClassifierError(MailSorterException):
    """Error communicating with the language model."""

    pass


class ClassifierResponseError(ClassifierError):
    """Language model response could not be parsed as JSON."""

    pass


# ============================================================================
# Folder Exceptions
# ============================================================================


class FolderResolutionError(MailSorterException):
    """No folder could be found or created for a name."""

    pass
