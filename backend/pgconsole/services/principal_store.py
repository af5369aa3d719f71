"""
Principal Store
Per-app user accounts kept in a table of the app's own target database.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from pgconsole.config import settings
from pgconsole.connections.pool import ConnectionPoolManager, TargetCredentials, pool_manager
from pgconsole.core.auth import hash_password, verify_password
from pgconsole.core.errors import InvalidCredentials, InvalidQueryParameter, NotFound
from pgconsole.core.identifiers import sanitize
from pgconsole.core.rbac import AppSession, Role
from pgconsole.services.query_builder import (
    ColumnDefinition,
    LiteralDefault,
    QueryBuilder,
    RawExpression,
)
from pgconsole.services.query_executor import query_executor
from pgconsole.services.table_gateway import TableGateway

logger = structlog.get_logger()

PRINCIPAL_COLUMNS = [
    ColumnDefinition("id", "SERIAL", primary_key=True),
    ColumnDefinition("username", "VARCHAR(100)", nullable=False, unique=True),
    ColumnDefinition("password_hash", "VARCHAR(255)", nullable=False),
    ColumnDefinition("email", "VARCHAR(255)", unique=True),
    ColumnDefinition("full_name", "VARCHAR(255)"),
    ColumnDefinition("role", "VARCHAR(50)", default=LiteralDefault(Role.VIEWER.value)),
    ColumnDefinition("is_active", "BOOLEAN", default=LiteralDefault(True)),
    ColumnDefinition("last_login", "TIMESTAMP"),
    ColumnDefinition("created_at", "TIMESTAMP", default=RawExpression("CURRENT_TIMESTAMP")),
    ColumnDefinition("updated_at", "TIMESTAMP", default=RawExpression("CURRENT_TIMESTAMP")),
]

# Fields an admin may change on another principal
UPDATABLE_FIELDS = ("email", "full_name", "role", "is_active")


def public_principal(row: Dict[str, Any]) -> Dict[str, Any]:
    """Principal row without its password hash."""
    return {key: value for key, value in row.items() if key != "password_hash"}


class PrincipalStore:
    """Reads and writes the principal table of one app's target database."""

    def __init__(self, credentials: TargetCredentials, pool: Optional[ConnectionPoolManager] = None):
        self.credentials = credentials
        self.pool = pool or pool_manager
        self.table = sanitize(settings.PRINCIPAL_TABLE)
        self.rows = TableGateway(credentials, pool=self.pool)

    def provision(self) -> bool:
        """
        Create the principal table when missing and seed the default admin.

        Returns True when the admin account was seeded.
        """
        def _create(conn):
            query = QueryBuilder(conn.dialect).create_table(
                self.table, PRINCIPAL_COLUMNS, if_not_exists=True
            )
            query_executor.execute(conn, query)

        self.pool.with_connection(self.credentials, _create)

        if self.find(settings.DEFAULT_ADMIN_USERNAME) is not None:
            return False

        self.rows.create(self.table, {
            "username": settings.DEFAULT_ADMIN_USERNAME,
            "password_hash": hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            "email": settings.DEFAULT_ADMIN_EMAIL,
            "full_name": "Administrator",
            "role": Role.ADMIN.value,
            "is_active": True,
        })
        logger.info("principal_admin_seeded", database=self.credentials.database)
        return True

    def find(self, username: str) -> Optional[Dict[str, Any]]:
        """Full principal row (hash included) by username."""
        rows = self.rows.list(self.table, limit=1, filters={"username": username})["data"]
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """Check credentials; every failure is the same InvalidCredentials."""
        principal = self.find(username) if username else None
        if (
            principal is None
            or not principal.get("is_active")
            or not verify_password(password, principal.get("password_hash"))
        ):
            logger.info("login_failed", database=self.credentials.database, username=username)
            raise InvalidCredentials("Invalid credentials")

        updated = self.rows.update(self.table, principal["id"], {"last_login": datetime.now(timezone.utc)})
        logger.info("login_succeeded", database=self.credentials.database, principal_id=principal["id"])
        return public_principal(updated)

    def open_session(self, app_id: str, principal: Dict[str, Any]) -> AppSession:
        return AppSession(
            app_id=app_id,
            role=Role.parse(principal.get("role")),
            principal_id=principal["id"],
            username=principal.get("username"),
        )

    def refresh_session(self, session: AppSession) -> Optional[AppSession]:
        """Session rebuilt from the stored principal; None once it is deleted or inactive."""
        try:
            principal = self.rows.get_one(self.table, session.principal_id)
        except NotFound:
            return None
        if not principal.get("is_active"):
            return None
        return self.open_session(session.app_id, principal)

    def change_password(self, principal_id: int, current_password: str, new_password: str) -> None:
        principal = self.rows.get_one(self.table, principal_id)
        if not verify_password(current_password, principal.get("password_hash")):
            raise InvalidCredentials("Current password is incorrect")

        self.rows.update(self.table, principal_id, {
            "password_hash": hash_password(new_password),
            "updated_at": datetime.now(timezone.utc),
        })
        logger.info("password_changed", database=self.credentials.database, principal_id=principal_id)

    # ------------------------------------------------------------------
    # Management (admin only; checked by the caller)
    # ------------------------------------------------------------------

    def list_principals(self) -> List[Dict[str, Any]]:
        page = self.rows.list(self.table, limit=self.rows.max_limit, sort="id:asc")
        return [public_principal(row) for row in page["data"]]

    def create_principal(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an account; a taken username or email raises DuplicateKey."""
        row = self.rows.create(self.table, {
            "username": username,
            "password_hash": hash_password(password),
            "email": email,
            "full_name": full_name,
            "role": Role.parse(role).value,
            "is_active": True,
        })
        logger.info("principal_created", database=self.credentials.database, principal_id=row.get("id"))
        return public_principal(row)

    def update_principal(self, principal_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        changes = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}
        if "role" in changes:
            changes["role"] = Role.parse(changes["role"]).value
        changes["updated_at"] = datetime.now(timezone.utc)

        row = self.rows.update(self.table, principal_id, changes)
        logger.info("principal_updated", database=self.credentials.database, principal_id=principal_id)
        return public_principal(row)

    def delete_principal(self, principal_id: int, acting_principal_id: Optional[int]) -> Dict[str, Any]:
        if acting_principal_id is not None and int(principal_id) == int(acting_principal_id):
            raise InvalidQueryParameter("Cannot delete your own account")

        try:
            row = self.rows.delete(self.table, principal_id)
        except NotFound:
            raise NotFound("User not found")
        logger.info("principal_deleted", database=self.credentials.database, principal_id=principal_id)
        return public_principal(row)
