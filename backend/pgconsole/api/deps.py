"""
Shared dependencies for per-app routes
"""
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session
import asyncio
import structlog

from pgconsole.core.auth import session_cookie_name, verify_session_token
from pgconsole.core.errors import NotAuthenticated
from pgconsole.core.rbac import AppSession, Role
from pgconsole.database import get_app_db
from pgconsole.models import App
from pgconsole.services import registry
from pgconsole.services.principal_store import PrincipalStore

logger = structlog.get_logger()


def session_from_request(request: Request, app: App) -> Optional[AppSession]:
    """
    Session claimed by the caller's cookie for ``app``, if any.

    A public app grants an anonymous viewer session when there is no valid
    cookie. The claim is not yet checked against the stored principal.
    """
    token = request.cookies.get(session_cookie_name(app.id))
    if token and app.auth_enabled:
        session = verify_session_token(token, app.id)
        if session is not None:
            return session

    if app.public_access:
        return AppSession(app_id=app.id, role=Role.VIEWER, anonymous=True)
    return None


async def resolve_session(request: Request, app: App, db: Session) -> Optional[AppSession]:
    """
    Caller's session with role and status re-read from the principal table.

    A principal that was deleted or deactivated since login loses the
    session; a changed role applies immediately.
    """
    session = session_from_request(request, app)
    if session is None or session.anonymous:
        return session

    store = PrincipalStore(registry.app_credentials(db, app))
    current = await asyncio.to_thread(store.refresh_session, session)
    if current is None:
        logger.info("session_revoked", app_id=app.id, principal_id=session.principal_id)
        if app.public_access:
            return AppSession(app_id=app.id, role=Role.VIEWER, anonymous=True)
    return current


async def get_app_session(
    app_id: str,
    request: Request,
    db: Session = Depends(get_app_db)
) -> AppSession:
    """Require a session for the app named in the path."""
    app = registry.get_app(db, app_id)
    session = await resolve_session(request, app, db)
    if session is None:
        raise NotAuthenticated("Not authenticated")
    return session


async def get_principal_session(session: AppSession = Depends(get_app_session)) -> AppSession:
    """Require a session that belongs to a logged-in principal."""
    if session.anonymous or session.principal_id is None:
        raise NotAuthenticated("Login required")
    return session
