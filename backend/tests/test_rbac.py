"""
Tests for role-based authorization and app session tokens
"""
import pytest

from pgconsole.core.auth import (
    create_session_token, hash_password, session_cookie_name,
    verify_password, verify_session_token
)
from pgconsole.core.errors import InsufficientPermissions
from pgconsole.core.rbac import AppSession, Operation, Role, authorize, is_allowed


class TestPermissionMatrix:
    """Role x operation decisions"""

    @pytest.mark.parametrize("role,operation,allowed", [
        (Role.VIEWER, Operation.READ, True),
        (Role.VIEWER, Operation.CREATE, False),
        (Role.VIEWER, Operation.UPDATE, False),
        (Role.VIEWER, Operation.DELETE, False),
        (Role.VIEWER, Operation.MANAGE_USERS, False),
        (Role.EDITOR, Operation.READ, True),
        (Role.EDITOR, Operation.CREATE, True),
        (Role.EDITOR, Operation.UPDATE, True),
        (Role.EDITOR, Operation.DELETE, True),
        (Role.EDITOR, Operation.MANAGE_USERS, False),
        (Role.ADMIN, Operation.MANAGE_USERS, True),
        (Role.ADMIN, Operation.DELETE, True),
    ])
    def test_matrix(self, role, operation, allowed):
        assert is_allowed(role, operation) is allowed

    def test_authorize_raises_for_viewer_write(self):
        session = AppSession(app_id="app-1", role=Role.VIEWER, principal_id=3)
        with pytest.raises(InsufficientPermissions):
            authorize(session, Operation.CREATE)

    def test_authorize_returns_session(self):
        session = AppSession(app_id="app-1", role=Role.EDITOR, principal_id=3)
        assert authorize(session, Operation.UPDATE) is session

    def test_unknown_role_is_viewer(self):
        assert Role.parse("superuser") is Role.VIEWER
        assert Role.parse(None) is Role.VIEWER
        assert Role.parse(" Admin ") is Role.ADMIN


class TestSessionTokens:
    """Per-app signed session tokens"""

    def test_round_trip(self):
        session = AppSession(app_id="app-1", role=Role.EDITOR, principal_id=7, username="eve")
        restored = verify_session_token(create_session_token(session), "app-1")

        assert restored == session

    def test_token_is_scoped_to_app(self):
        session = AppSession(app_id="app-1", role=Role.ADMIN, principal_id=1, username="admin")
        assert verify_session_token(create_session_token(session), "app-2") is None

    def test_garbage_token(self):
        assert verify_session_token("not-a-token", "app-1") is None

    def test_cookie_name(self):
        assert session_cookie_name("abc") == "app_session_abc"


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("wrong", hashed)

    def test_empty_or_unknown_hash(self):
        assert not verify_password("", hash_password("x"))
        assert not verify_password("x", None)
        assert not verify_password("x", "plain-text")
