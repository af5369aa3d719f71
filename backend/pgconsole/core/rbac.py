"""
Role-Based Access Control for app sessions

The authorization decision is a pure function of an explicit ``AppSession``
and the requested ``Operation``; nothing is read from ambient request state.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional
import enum
import structlog

from pgconsole.core.errors import InsufficientPermissions

logger = structlog.get_logger()


class Role(str, enum.Enum):
    """Roles attached to an authenticated app session."""
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Map a stored role string to a Role; unknown values get least privilege."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.VIEWER


class Operation(str, enum.Enum):
    """Gateway operation kinds subject to authorization."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"


PERMISSION_MATRIX: Dict[Role, FrozenSet[Operation]] = {
    Role.VIEWER: frozenset({Operation.READ}),
    Role.EDITOR: frozenset({Operation.READ, Operation.CREATE, Operation.UPDATE, Operation.DELETE}),
    Role.ADMIN: frozenset(Operation),
}

# Minimum role advertised for each operation in generated documentation
REQUIRED_ROLE: Dict[Operation, Role] = {
    Operation.READ: Role.VIEWER,
    Operation.CREATE: Role.EDITOR,
    Operation.UPDATE: Role.EDITOR,
    Operation.DELETE: Role.EDITOR,
    Operation.MANAGE_USERS: Role.ADMIN,
}


@dataclass(frozen=True)
class AppSession:
    """Authenticated session context for one app."""
    app_id: str
    role: Role
    principal_id: Optional[int] = None
    username: Optional[str] = None
    anonymous: bool = False


def is_allowed(role: Role, operation: Operation) -> bool:
    return operation in PERMISSION_MATRIX.get(role, frozenset())


def authorize(session: AppSession, operation: Operation) -> AppSession:
    """Raise InsufficientPermissions unless the session's role allows the operation."""
    if not is_allowed(session.role, operation):
        logger.info(
            "permission_denied",
            app_id=session.app_id,
            role=session.role.value,
            operation=operation.value,
        )
        raise InsufficientPermissions(
            f"Role '{session.role.value}' is not allowed to perform '{operation.value}'"
        )
    return session
