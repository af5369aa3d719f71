"""
Gateway error taxonomy.

Every error carries a stable ``kind`` and the HTTP status the API layer maps
it to, so handlers never have to inspect message text.
"""
from typing import Any, Dict


class GatewayError(Exception):
    """Base class for structured gateway errors."""

    kind: str = "GatewayError"
    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class InvalidIdentifier(GatewayError):
    """Malformed or reserved table/column name."""
    kind = "InvalidIdentifier"
    status_code = 400


class InvalidQueryParameter(GatewayError):
    """Unusable filter, sort, type or foreign key action."""
    kind = "InvalidQueryParameter"
    status_code = 400


class NoValidColumns(GatewayError):
    """No caller-supplied field matches a live column."""
    kind = "NoValidColumns"
    status_code = 400


class MissingWhereClause(GatewayError):
    """Update/delete without a usable WHERE predicate."""
    kind = "MissingWhereClause"
    status_code = 400


class ConnectionError(GatewayError):
    """Target database unreachable or misconfigured."""
    kind = "ConnectionError"
    status_code = 502


class QueryExecutionError(GatewayError):
    """Driver-level failure; carries the engine message."""
    kind = "QueryExecutionError"
    status_code = 500


class DuplicateKey(GatewayError):
    """Unique constraint violation."""
    kind = "DuplicateKey"
    status_code = 409


class InvalidCredentials(GatewayError):
    kind = "InvalidCredentials"
    status_code = 401


class NotAuthenticated(GatewayError):
    kind = "NotAuthenticated"
    status_code = 401


class InsufficientPermissions(GatewayError):
    kind = "InsufficientPermissions"
    status_code = 403


class NotFound(GatewayError):
    kind = "NotFound"
    status_code = 404
