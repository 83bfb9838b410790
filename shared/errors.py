"""
Shared error handling for the token cache.
"""

from typing import Dict, Any, Optional


class TokenCacheException(Exception):
    """Base exception for token cache errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable error payload."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class CacheBackendError(TokenCacheException):
    """Storage backend misuse or failure."""

    def __init__(self, message: str = "Cache backend error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_BACKEND_ERROR", message, details)


class MalformedCacheRecordError(TokenCacheException):
    """A stored record does not have the expected shape."""

    def __init__(self, key: str, message: str = "Malformed cache record", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_CACHE_RECORD", f"{message}: {key}", details)
        self.key = key


class ConfigurationError(TokenCacheException):
    """Configuration-related errors."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class TokenDecodeError(TokenCacheException):
    """Token could not be decoded."""

    def __init__(self, message: str = "Token decode failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("TOKEN_DECODE_ERROR", message, details)
