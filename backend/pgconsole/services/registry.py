"""
Database Registry
Persists connection targets (password encrypted at rest) and the apps layered
over them in the console's own database.

Target-database work (connection tests, creating a database, provisioning the
principal table) is kept in separate functions so that handlers can run it
off the event loop.
"""
from typing import Any, Dict, List, Optional
import os

from sqlalchemy.orm import Session
import structlog

from pgconsole.config import settings
from pgconsole.connections.pool import ConnectionPoolManager, TargetCredentials, pool_manager
from pgconsole.core.crypto import decrypt_value, encrypt_value
from pgconsole.core.errors import ConnectionError, GatewayError, InvalidQueryParameter, NotFound
from pgconsole.models import App, ConnectionOrigin, ConnectionTarget
from pgconsole.services.principal_store import PrincipalStore

logger = structlog.get_logger()

APP_FIELDS = (
    "name", "description", "database_id", "auth_enabled", "public_access",
    "icon", "theme", "components",
)
TRUE_VALUES = ("1", "true", "yes", "on")


# ============================================================================
# CONNECTION TARGETS
# ============================================================================

def list_targets(db: Session) -> List[ConnectionTarget]:
    return db.query(ConnectionTarget).order_by(ConnectionTarget.id).all()


def get_target(db: Session, target_id: int) -> ConnectionTarget:
    target = db.query(ConnectionTarget).filter(ConnectionTarget.id == target_id).first()
    if not target:
        raise NotFound("Database not found")
    return target


def credentials_for(target: ConnectionTarget) -> TargetCredentials:
    """Decrypt a stored target into live connection credentials."""
    password = decrypt_value(target.encrypted_password)
    if password is None:
        logger.error("target_credentials_unreadable", target_id=target.id)
        raise ConnectionError("Stored credentials could not be decrypted")
    return TargetCredentials(
        host=target.host,
        port=target.port or 5432,
        database=target.database,
        user=target.username,
        password=password,
        ssl=bool(target.ssl_enabled),
    )


def verify_target(
    credentials: TargetCredentials,
    create_on_server: bool = False,
    pool: Optional[ConnectionPoolManager] = None,
) -> Dict[str, Any]:
    """
    Make sure the target is reachable before it is stored.

    With ``create_on_server`` the database is created first. Raises
    ConnectionError when the test fails.
    """
    pool = pool or pool_manager
    if create_on_server:
        pool.create_database(credentials)

    result = pool.test_connection(credentials)
    if not result["success"]:
        logger.warning("target_verification_failed", host=credentials.host, database=credentials.database)
        raise ConnectionError(f"Connection test failed: {result['message']}")
    return result


def save_target(
    db: Session,
    name: str,
    credentials: TargetCredentials,
    origin: ConnectionOrigin = ConnectionOrigin.REGISTERED,
) -> ConnectionTarget:
    target = ConnectionTarget(
        name=name,
        host=credentials.host,
        port=credentials.port,
        database=credentials.database,
        username=credentials.user,
        encrypted_password=encrypt_value(credentials.password),
        ssl_enabled=credentials.ssl,
        origin=origin.value,
    )
    db.add(target)
    db.commit()
    db.refresh(target)

    logger.info("target_registered", target_id=target.id, host=target.host, database=target.database)
    return target


def merged_credentials(target: ConnectionTarget, changes: Dict[str, Any]) -> TargetCredentials:
    """Credentials of ``target`` with ``changes`` applied; no password keeps the stored one."""
    current = credentials_for(target)
    return TargetCredentials(
        host=changes.get("host") or current.host,
        port=changes.get("port") or current.port,
        database=changes.get("database") or current.database,
        user=changes.get("username") or current.user,
        password=changes.get("password") or current.password,
        ssl=current.ssl if changes.get("ssl_enabled") is None else bool(changes["ssl_enabled"]),
    )


def update_target(
    db: Session,
    target: ConnectionTarget,
    credentials: TargetCredentials,
    name: Optional[str] = None,
) -> ConnectionTarget:
    if name:
        target.name = name
    target.host = credentials.host
    target.port = credentials.port
    target.database = credentials.database
    target.username = credentials.user
    target.encrypted_password = encrypt_value(credentials.password)
    target.ssl_enabled = credentials.ssl
    db.commit()
    db.refresh(target)

    logger.info("target_updated", target_id=target.id)
    return target


def delete_target(db: Session, target_id: int) -> None:
    """Remove a target; apps that used it are kept with no database."""
    target = get_target(db, target_id)
    orphaned = (
        db.query(App)
        .filter(App.database_id == target.id)
        .update({App.database_id: None}, synchronize_session=False)
    )
    db.delete(target)
    db.commit()

    logger.info("target_deleted", target_id=target_id, orphaned_apps=orphaned)


# ============================================================================
# .conf FILES
# ============================================================================

def load_conf(filename: str, conf_dir: Optional[str] = None) -> Dict[str, str]:
    """
    Parse a ``key=value`` file from the conf directory.

    Blank lines and lines starting with ``#`` are skipped; values stay strings.
    """
    conf_dir = os.path.realpath(conf_dir or settings.CONF_DIR)
    path = os.path.realpath(os.path.join(conf_dir, filename))
    if os.path.commonpath([conf_dir, path]) != conf_dir:
        raise InvalidQueryParameter("Config file must be inside the config directory")
    if not os.path.isfile(path):
        raise NotFound(f"Config file not found: {filename}")

    config = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            config[key.strip()] = value.strip()
    return config


def conf_to_target(config: Dict[str, str], filename: str) -> Dict[str, Any]:
    """Map a parsed .conf file onto target fields."""
    missing = [key for key in ("host", "database", "password") if not config.get(key)]
    if not (config.get("user") or config.get("username")):
        missing.append("user")
    if missing:
        raise InvalidQueryParameter(f"Config file is missing: {', '.join(missing)}")

    try:
        port = int(config.get("port") or 5432)
    except ValueError:
        raise InvalidQueryParameter(f"Invalid port in config file: {config['port']!r}")

    return {
        "name": config.get("name") or os.path.splitext(os.path.basename(filename))[0],
        "credentials": TargetCredentials(
            host=config["host"],
            port=port,
            database=config["database"],
            user=config.get("user") or config["username"],
            password=config["password"],
            ssl=config.get("ssl", "").lower() in TRUE_VALUES,
        ),
        "create_on_server": config.get("create_on_server", "").lower() in TRUE_VALUES,
    }


# ============================================================================
# APPS
# ============================================================================

def list_apps(db: Session) -> List[App]:
    return db.query(App).order_by(App.created_at).all()


def get_app(db: Session, app_id: str) -> App:
    app = db.query(App).filter(App.id == app_id).first()
    if not app:
        raise NotFound("App not found")
    return app


def app_credentials(db: Session, app: App) -> TargetCredentials:
    """Credentials of the database an app is layered over."""
    if app.database_id is None:
        raise NotFound("App has no database")
    return credentials_for(get_target(db, app.database_id))


def create_app(db: Session, fields: Dict[str, Any]) -> App:
    if fields.get("database_id") is not None:
        get_target(db, fields["database_id"])

    app = App(**{key: value for key, value in fields.items() if key in APP_FIELDS})
    if app.components is None:
        app.components = []
    db.add(app)
    db.commit()
    db.refresh(app)

    logger.info("app_created", app_id=app.id, database_id=app.database_id, auth_enabled=app.auth_enabled)
    return app


def provision_app(app_id: str, credentials: TargetCredentials, pool: Optional[ConnectionPoolManager] = None) -> bool:
    """
    Provision the principal table of an auth-enabled app.

    A failure is logged and reported as False; the app itself stays created.
    """
    try:
        PrincipalStore(credentials, pool=pool).provision()
    except GatewayError as e:
        logger.warning("principal_provision_failed", app_id=app_id, error=e.message)
        return False
    return True


def update_app(db: Session, app_id: str, changes: Dict[str, Any]) -> App:
    app = get_app(db, app_id)
    if changes.get("database_id") is not None:
        get_target(db, changes["database_id"])

    for key, value in changes.items():
        if key in APP_FIELDS and (value is not None or key == "database_id"):
            setattr(app, key, value)
    db.commit()
    db.refresh(app)

    logger.info("app_updated", app_id=app.id)
    return app


def delete_app(db: Session, app_id: str) -> None:
    app = get_app(db, app_id)
    db.delete(app)
    db.commit()
    logger.info("app_deleted", app_id=app_id)
