"""
Per-app Authentication API Routes
"""
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
import asyncio
import structlog

from pgconsole.api.deps import get_principal_session, resolve_session
from pgconsole.config import settings
from pgconsole.core.auth import create_session_token, session_cookie_name
from pgconsole.core.errors import NotFound
from pgconsole.core.rbac import AppSession, Operation, authorize
from pgconsole.database import get_app_db
from pgconsole.models import App
from pgconsole.schemas import (
    LoginRequest, PasswordChange, PrincipalCreate, PrincipalUpdate, SessionStatus
)
from pgconsole.services import registry
from pgconsole.services.principal_store import PrincipalStore

router = APIRouter()
logger = structlog.get_logger()


def _auth_app(db: Session, app_id: str) -> App:
    app = registry.get_app(db, app_id)
    if not app.auth_enabled:
        raise NotFound("Authentication is not enabled for this app")
    return app


def _store(db: Session, app: App) -> PrincipalStore:
    return PrincipalStore(registry.app_credentials(db, app))


@router.post("/login/{app_id}")
async def login(
    app_id: str,
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_app_db)
):
    """Login to an app and set its session cookie."""
    app = _auth_app(db, app_id)
    store = _store(db, app)
    principal = await asyncio.to_thread(store.authenticate, credentials.username, credentials.password)

    session = store.open_session(app.id, principal)
    response.set_cookie(
        key=session_cookie_name(app.id),
        value=create_session_token(session),
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    logger.info("app_login", app_id=app.id, principal_id=session.principal_id, role=session.role.value)

    return {"message": "Login successful", "user": principal}


@router.post("/logout/{app_id}")
async def logout(app_id: str, response: Response):
    """Clear the app's session cookie."""
    response.delete_cookie(session_cookie_name(app_id))
    return {"message": "Logged out successfully"}


@router.get("/status/{app_id}", response_model=SessionStatus)
async def session_status(app_id: str, request: Request, db: Session = Depends(get_app_db)):
    """Whether the caller holds a session for the app, and as whom."""
    app = registry.get_app(db, app_id)
    session = await resolve_session(request, app, db)
    if session is None or session.anonymous:
        return SessionStatus(authenticated=False)

    return SessionStatus(
        authenticated=True,
        user={"id": session.principal_id, "username": session.username, "role": session.role.value},
    )


@router.post("/change-password/{app_id}")
async def change_password(
    app_id: str,
    password_data: PasswordChange,
    session: AppSession = Depends(get_principal_session),
    db: Session = Depends(get_app_db)
):
    store = _store(db, _auth_app(db, app_id))
    await asyncio.to_thread(
        store.change_password,
        session.principal_id,
        password_data.current_password,
        password_data.new_password,
    )
    return {"message": "Password changed successfully"}


# ============================================================================
# USER MANAGEMENT (admin)
# ============================================================================

@router.get("/users/{app_id}")
async def list_users(
    app_id: str,
    session: AppSession = Depends(get_principal_session),
    db: Session = Depends(get_app_db)
):
    authorize(session, Operation.MANAGE_USERS)
    store = _store(db, _auth_app(db, app_id))
    return await asyncio.to_thread(store.list_principals)


@router.post("/users/{app_id}", status_code=status.HTTP_201_CREATED)
async def create_user(
    app_id: str,
    user_data: PrincipalCreate,
    session: AppSession = Depends(get_principal_session),
    db: Session = Depends(get_app_db)
):
    authorize(session, Operation.MANAGE_USERS)
    store = _store(db, _auth_app(db, app_id))
    return await asyncio.to_thread(
        store.create_principal,
        user_data.username,
        user_data.password,
        user_data.email,
        user_data.full_name,
        user_data.role,
    )


@router.put("/users/{app_id}/{user_id}")
async def update_user(
    app_id: str,
    user_id: int,
    user_data: PrincipalUpdate,
    session: AppSession = Depends(get_principal_session),
    db: Session = Depends(get_app_db)
):
    authorize(session, Operation.MANAGE_USERS)
    store = _store(db, _auth_app(db, app_id))
    return await asyncio.to_thread(
        store.update_principal, user_id, user_data.model_dump(exclude_unset=True)
    )


@router.delete("/users/{app_id}/{user_id}")
async def delete_user(
    app_id: str,
    user_id: int,
    session: AppSession = Depends(get_principal_session),
    db: Session = Depends(get_app_db)
):
    authorize(session, Operation.MANAGE_USERS)
    store = _store(db, _auth_app(db, app_id))
    await asyncio.to_thread(store.delete_principal, user_id, session.principal_id)
    return {"message": "User deleted successfully"}
