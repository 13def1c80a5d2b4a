"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the voucher
OCR system. Components raise these; the pipeline is the single place
where extraction-time exceptions are turned into failure records.

Exception Hierarchy:
    VoucherOCRError (base)
    ├── ConfigurationError
    ├── InputError
    │   ├── ImageFetchError
    │   └── CorruptedImageError
    ├── ExtractionError
    │   ├── NetworkError
    │   ├── ModelUnavailableError
    │   └── MalformedResponseError
    └── ReportExportError
"""

from typing import Optional


class VoucherOCRError(Exception):
    """
    Base exception for all voucher OCR errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(VoucherOCRError):
    """
    Raised when required configuration is missing or invalid.

    Fatal: never converted into a failure record.

    Example:
        >>> raise ConfigurationError("extraction.providers.gemini", "API key not configured")
    """

    def __init__(self, setting: str, reason: str = None):
        message = f"Configuration error for '{setting}'"
        if reason:
            message = f"{message}: {reason}"
        details = {"setting": setting, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(VoucherOCRError):
    """Base exception for image input errors."""
    pass


class ImageFetchError(InputError):
    """Raised when image bytes cannot be retrieved from a URL or store."""

    def __init__(self, source: str, reason: str = None):
        message = f"Failed to fetch image: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


class CorruptedImageError(InputError):
    """Raised when the payload is not a decodable image."""

    def __init__(self, source: str, reason: str = None):
        message = f"Corrupted or unreadable image: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(VoucherOCRError):
    """
    Base exception for extraction service errors.

    Attributes:
        raw_response: Raw text returned by the service, when there was one.
    """

    def __init__(self, message: str, details: dict = None, raw_response: Optional[str] = None):
        self.raw_response = raw_response
        super().__init__(message, details)


class NetworkError(ExtractionError):
    """Raised when the service call fails, times out or returns non-2xx."""

    def __init__(self, provider: str, reason: str = None, status_code: Optional[int] = None,
                 raw_response: Optional[str] = None):
        message = f"{provider} request failed"
        if status_code is not None:
            message = f"{message} with HTTP {status_code}"
        details = {"provider": provider, "reason": reason, "status_code": status_code}
        super().__init__(message, details, raw_response)


class ModelUnavailableError(ExtractionError):
    """Raised when the provider answers but declines to produce a candidate."""

    def __init__(self, provider: str, model: str, reason: str = None,
                 raw_response: Optional[str] = None):
        message = f"Model unavailable: {provider}/{model}"
        details = {"provider": provider, "model": model, "reason": reason}
        super().__init__(message, details, raw_response)


class MalformedResponseError(ExtractionError):
    """Raised when the service text is not valid JSON or violates the schema."""

    def __init__(self, reason: str, raw_response: Optional[str] = None):
        message = f"Malformed extraction response: {reason}"
        details = {"reason": reason}
        super().__init__(message, details, raw_response)


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class ReportExportError(VoucherOCRError):
    """Raised when an evaluation report cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export report: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'VoucherOCRError',
    'ConfigurationError',
    'InputError',
    'ImageFetchError',
    'CorruptedImageError',
    'ExtractionError',
    'NetworkError',
    'ModelUnavailableError',
    'MalformedResponseError',
    'ReportExportError',
]
