"""
Custom exceptions for the listing service.

Defines a hierarchy of exceptions for different error scenarios,
enabling precise error handling throughout the application.
"""

from __future__ import annotations

from typing import Optional


class CoinAIRankError(Exception):
    """Base exception for all listing service errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


# ==============================================================================
# Configuration Errors
# ==============================================================================

class ConfigurationError(CoinAIRankError):
    """Raised when configuration is invalid or missing."""
    pass


class MissingEnvironmentVariableError(ConfigurationError):
    """Raised when a required environment variable is missing."""

    def __init__(self, variable_name: str) -> None:
        super().__init__(f"Missing required environment variable: {variable_name}")
        self.variable_name = variable_name


# ==============================================================================
# Datastore Errors
# ==============================================================================

class DatastoreError(CoinAIRankError):
    """Base exception for datastore errors."""
    pass


class DatastoreConnectionError(DatastoreError):
    """Raised when the connection pool cannot be created."""
    pass


class DatastoreNotConnectedError(DatastoreError):
    """Raised when a query is issued before connect()."""

    def __init__(self) -> None:
        super().__init__("Datastore is not connected")


class QueryExecutionError(DatastoreError):
    """Raised when a query fails in the datastore."""

    def __init__(self, operation: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Failed to {operation}", cause=cause)
        self.operation = operation


class FixtureLoadError(DatastoreError):
    """Raised when a fixtures file cannot be read."""

    def __init__(self, filepath: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Failed to load fixtures from {filepath}", cause=cause)
        self.filepath = filepath


# ==============================================================================
# Lookup Errors
# ==============================================================================

class TokenNotFoundError(CoinAIRankError):
    """Raised when a token id does not exist."""

    def __init__(self, token_id: int) -> None:
        super().__init__(f"Token not found: {token_id}")
        self.token_id = token_id
