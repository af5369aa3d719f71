"""
Connection Pool Manager

Opens a pool scoped to one logical operation against a target database and
drains it afterwards. Pools are never kept warm across requests because the
registered credentials may change or disappear between them.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar
import time

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, URL
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
import structlog

from pgconsole.config import settings
from pgconsole.core.errors import ConnectionError, GatewayError
from pgconsole.core.identifiers import quote_identifier, sanitize

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class TargetCredentials:
    """Decrypted connection details for one target database."""
    host: str
    database: str
    user: str
    password: str
    port: int = 5432
    ssl: bool = False

    def url(self, database: Optional[str] = None) -> URL:
        query = {"sslmode": "require"} if self.ssl else {}
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=database or self.database,
            query=query,
        )

    def scrub(self, message: str) -> str:
        """Remove the password from a driver message."""
        if self.password:
            message = message.replace(self.password, "***")
        return message

    def __repr__(self) -> str:
        return (
            f"TargetCredentials(host={self.host!r}, port={self.port!r}, "
            f"database={self.database!r}, user={self.user!r}, ssl={self.ssl!r})"
        )


EngineFactory = Callable[[TargetCredentials, Optional[str]], Engine]


def _driver_message(exc: Exception) -> str:
    return str(getattr(exc, "orig", None) or exc).strip()


class ConnectionPoolManager:
    """Creates operation-scoped pools for target databases."""

    def __init__(
        self,
        pool_size: Optional[int] = None,
        connect_timeout: Optional[int] = None,
        engine_factory: Optional[EngineFactory] = None,
    ):
        self.pool_size = pool_size or settings.TARGET_POOL_SIZE
        self.connect_timeout = connect_timeout or settings.CONNECT_TIMEOUT_SECONDS
        self.engine_factory = engine_factory

    def create_engine(
        self,
        credentials: TargetCredentials,
        database: Optional[str] = None,
        **options: Any
    ) -> Engine:
        """Create an engine for a single operation."""
        if self.engine_factory is not None:
            return self.engine_factory(credentials, database)
        return create_engine(
            credentials.url(database),
            pool_size=self.pool_size,
            max_overflow=0,
            connect_args={"connect_timeout": self.connect_timeout},
            **options
        )

    @contextmanager
    def connection_scope(self, credentials: TargetCredentials) -> Iterator[Connection]:
        """
        Yield a connection inside a transaction.

        The transaction commits when the block exits normally and rolls back
        on error; the pool is disposed on every exit path.
        """
        engine = self.create_engine(credentials)
        try:
            try:
                connection = engine.connect()
            except DBAPIError as e:
                message = credentials.scrub(_driver_message(e))
                logger.warning("target_connect_failed", host=credentials.host, database=credentials.database, error=message)
                raise ConnectionError(message) from e
            try:
                with connection.begin():
                    yield connection
            finally:
                connection.close()
        finally:
            engine.dispose()

    def with_connection(self, credentials: TargetCredentials, fn: Callable[[Connection], T]) -> T:
        """Run ``fn`` with a scoped connection and return its result."""
        with self.connection_scope(credentials) as connection:
            return fn(connection)

    def test_connection(self, credentials: TargetCredentials) -> Dict[str, Any]:
        """Check that the target accepts connections. Never raises."""
        start_time = time.time()
        try:
            with self.connection_scope(credentials) as connection:
                connection.execute(text("SELECT 1"))
        except GatewayError as e:
            return {"success": False, "message": e.message}
        except SQLAlchemyError as e:
            return {"success": False, "message": credentials.scrub(_driver_message(e))}
        except Exception as e:
            logger.error("connection_test_error", host=credentials.host, error=credentials.scrub(str(e)))
            return {"success": False, "message": credentials.scrub(str(e))}

        response_time_ms = int((time.time() - start_time) * 1000)
        return {
            "success": True,
            "message": "Connection successful",
            "response_time_ms": response_time_ms,
        }

    def create_database(self, credentials: TargetCredentials) -> bool:
        """
        Create the target's database on its server.

        Connects to the maintenance database in autocommit mode. Returns False
        when the database already exists.
        """
        database = sanitize(credentials.database)
        engine = self.create_engine(
            credentials,
            settings.MAINTENANCE_DATABASE,
            isolation_level="AUTOCOMMIT",
        )
        try:
            with engine.connect() as connection:
                exists = connection.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": str(database)},
                ).first()
                if exists:
                    return False
                connection.execute(
                    text(f"CREATE DATABASE {quote_identifier(database, connection.dialect)}")
                )
                logger.info("database_created", host=credentials.host, database=str(database))
                return True
        except DBAPIError as e:
            raise ConnectionError(credentials.scrub(_driver_message(e))) from e
        finally:
            engine.dispose()


# Global pool manager instance
pool_manager = ConnectionPoolManager()
