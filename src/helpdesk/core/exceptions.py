"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class ProviderError(ExternalServiceException):
    """A generative or embedding provider call failed (network, quota, auth)."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class MalformedResponse(ExternalServiceException):
    """Generative output did not parse as the expected structure."""

    def __init__(
        self,
        message: str,
        raw_content: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.raw_content = raw_content
        super().__init__("Pattern Classifier", message, details)


class ClassifierUnavailable(ExternalServiceException):
    """The pattern classifier could not get a reply from its provider."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Pattern Classifier", message, details)


class StoreUnavailable(RepositoryException):
    """Historical store unreachable, or missing required schema after repair."""


class InsufficientHistory(RepositoryException):
    """Store reachable but holds no usable labeled and embedded tickets."""


class ClassificationUnavailable(ApplicationException):
    """Neither classifier produced a usable signal for this request."""

    def __init__(
        self,
        pattern_error: str,
        similarity_error: Optional[str],
        details: Optional[dict] = None
    ):
        self.pattern_error = pattern_error
        self.similarity_error = similarity_error
        super().__init__(
            "Ticket classification unavailable",
            details or {
                "pattern_error": pattern_error,
                "similarity_error": similarity_error,
            }
        )
