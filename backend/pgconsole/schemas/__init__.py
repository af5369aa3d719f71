"""
Schemas Package
"""
from pgconsole.schemas.connection import (
    DatabaseBase, DatabaseCreate, DatabaseUpdate, DatabaseResponse,
    ConnectionTestResult, ConfImportRequest
)
from pgconsole.schemas.app import AppBase, AppCreate, AppUpdate, AppResponse
from pgconsole.schemas.auth import (
    LoginRequest, PasswordChange, PrincipalCreate, PrincipalUpdate, SessionStatus
)
from pgconsole.schemas.data import (
    ColumnDefault, ColumnDefinitionIn, ForeignKeyIn, CreateTableRequest,
    RowInsertRequest, RowUpdateRequest, RowDeleteRequest, QueryRequest
)

__all__ = [
    # Connection targets
    "DatabaseBase", "DatabaseCreate", "DatabaseUpdate", "DatabaseResponse",
    "ConnectionTestResult", "ConfImportRequest",
    # Apps
    "AppBase", "AppCreate", "AppUpdate", "AppResponse",
    # Auth
    "LoginRequest", "PasswordChange", "PrincipalCreate", "PrincipalUpdate", "SessionStatus",
    # Data browser
    "ColumnDefault", "ColumnDefinitionIn", "ForeignKeyIn", "CreateTableRequest",
    "RowInsertRequest", "RowUpdateRequest", "RowDeleteRequest", "QueryRequest",
]
