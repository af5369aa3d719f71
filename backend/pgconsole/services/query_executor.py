"""
Query Executor
Runs compiled queries on a scoped connection and translates driver errors.
No statement is ever retried here.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List
import time

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
import structlog

from pgconsole.core.errors import DuplicateKey, QueryExecutionError
from pgconsole.services.query_builder import CompiledQuery

logger = structlog.get_logger()

UNIQUE_VIOLATION = "23505"


@dataclass
class QueryResult:
    """Query execution result."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    row_count: int = 0
    execution_time_ms: int = 0


def _driver_message(exc: Exception) -> str:
    return str(getattr(exc, "orig", None) or exc).strip()


def is_unique_violation(exc: Exception) -> bool:
    """True when ``exc`` reports a unique constraint violation."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNIQUE_VIOLATION:
        return True
    message = _driver_message(exc).lower()
    return "duplicate key" in message or "unique constraint" in message


class QueryExecutor:
    """Executes ``CompiledQuery`` objects."""

    def execute(self, connection: Connection, query: CompiledQuery) -> QueryResult:
        start_time = time.time()

        # Statements without binds (DDL) must not have colons read as binds
        sql = query.sql if query.params else query.sql.replace(":", "\\:")

        try:
            result = connection.execute(text(sql), query.params)
        except IntegrityError as e:
            message = _driver_message(e)
            logger.warning("query_integrity_error", kind=query.kind.value, error=message)
            if is_unique_violation(e):
                raise DuplicateKey(message) from e
            raise QueryExecutionError(message) from e
        except DBAPIError as e:
            message = _driver_message(e)
            logger.error("query_execution_error", kind=query.kind.value, query=query.sql[:200], error=message)
            raise QueryExecutionError(message) from e
        except SQLAlchemyError as e:
            logger.error("query_execution_error", kind=query.kind.value, query=query.sql[:200], error=str(e))
            raise QueryExecutionError(str(e)) from e

        rows: List[Dict[str, Any]] = []
        columns: List[str] = []
        if result.returns_rows:
            columns = list(result.keys())
            rows = [dict(row._mapping) for row in result]
            row_count = len(rows)
        else:
            row_count = max(result.rowcount, 0)

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.debug("query_executed", kind=query.kind.value, row_count=row_count, execution_time_ms=execution_time_ms)

        return QueryResult(
            rows=rows,
            columns=columns,
            row_count=row_count,
            execution_time_ms=execution_time_ms,
        )


query_executor = QueryExecutor()
