"""Custom exception classes for the application."""

from typing import Optional


class BizScoutException(Exception):
    """Base exception for all BizScout errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class ConfigError(BizScoutException):
    """Raised when required configuration (e.g. the proxy API key) is missing."""

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(message or f"Missing required configuration: {setting}")


class NotFoundError(BizScoutException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class FetchError(BizScoutException):
    """Raised when a page cannot be fetched (HTTP error, timeout, network)."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Fetch failed for {url}: {message}")


class ExtractionError(BizScoutException):
    """Raised when a single listing element cannot be parsed."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Extraction error for {source}: {message}")


class PersistenceError(BizScoutException):
    """Raised when a batch of listings cannot be written."""

    def __init__(self, batch_index: int, message: str):
        self.batch_index = batch_index
        super().__init__(f"Batch {batch_index} failed: {message}")
