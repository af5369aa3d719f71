"""
Core Package
"""
from pgconsole.core.errors import (
    GatewayError, InvalidIdentifier, InvalidQueryParameter, NoValidColumns,
    MissingWhereClause, ConnectionError, QueryExecutionError, DuplicateKey,
    InvalidCredentials, NotAuthenticated, InsufficientPermissions, NotFound
)
from pgconsole.core.identifiers import Identifier, sanitize, is_valid_identifier, quote_identifier
from pgconsole.core.rbac import Role, Operation, AppSession, authorize, is_allowed

__all__ = [
    # Errors
    "GatewayError", "InvalidIdentifier", "InvalidQueryParameter", "NoValidColumns",
    "MissingWhereClause", "ConnectionError", "QueryExecutionError", "DuplicateKey",
    "InvalidCredentials", "NotAuthenticated", "InsufficientPermissions", "NotFound",
    # Identifiers
    "Identifier", "sanitize", "is_valid_identifier", "quote_identifier",
    # RBAC
    "Role", "Operation", "AppSession", "authorize", "is_allowed",
]
