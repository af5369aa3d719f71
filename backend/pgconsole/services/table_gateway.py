"""
Table/Row CRUD Gateway
Generic list/get/create/update/delete over any table, built entirely from the
live schema. Names are sanitized and the caller's role is checked before a
connection is opened.
"""
from typing import Any, Dict, List, Optional, Sequence
import json
import re

from sqlalchemy.engine import Connection
import structlog

from pgconsole.config import settings
from pgconsole.connections.pool import ConnectionPoolManager, TargetCredentials, pool_manager
from pgconsole.core.errors import (
    InvalidQueryParameter,
    MissingWhereClause,
    NotAuthenticated,
    NotFound,
)
from pgconsole.core.identifiers import Identifier, sanitize
from pgconsole.core.rbac import AppSession, Operation, authorize
from pgconsole.services.query_builder import (
    ColumnDefinition,
    ForeignKeySpec,
    OperationKind,
    Pagination,
    QueryBuilder,
    QuerySpec,
    SortSpec,
)
from pgconsole.services.query_executor import QueryExecutor, query_executor
from pgconsole.services.schema_introspector import (
    ColumnSchema,
    SchemaIntrospector,
    TableSchema,
    schema_introspector,
)

logger = structlog.get_logger()

SCALAR_TYPES = (str, int, float, bool, type(None))
INTEGER_TEXT = re.compile(r"^-?\d+$")


def parse_filter(raw: Optional[str]) -> Dict[str, Any]:
    """Parse the ``filter`` query parameter: a JSON object of column/value pairs."""
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise InvalidQueryParameter("filter must be a JSON object of column/value pairs")
    return validate_conditions(parsed, "filter")


def validate_conditions(conditions: Any, label: str = "where") -> Dict[str, Any]:
    """Sanitize condition keys and require scalar values."""
    if conditions is None:
        return {}
    if not isinstance(conditions, dict):
        raise InvalidQueryParameter(f"{label} must be an object of column/value pairs")
    validated = {}
    for key, value in conditions.items():
        if not isinstance(value, SCALAR_TYPES):
            raise InvalidQueryParameter(f"{label} value for '{key}' must be a scalar")
        validated[sanitize(key)] = value
    return validated


def coerce_key(column: ColumnSchema, value: Any) -> Any:
    """Convert a path id to int when the key column is an integer type."""
    if isinstance(value, str) and column.is_integer and INTEGER_TEXT.match(value):
        return int(value)
    return value


class TableGateway:
    """Schema-driven CRUD over the tables of one target database."""

    def __init__(
        self,
        credentials: TargetCredentials,
        hide_reserved: bool = False,
        max_limit: Optional[int] = None,
        pool: Optional[ConnectionPoolManager] = None,
        introspector: Optional[SchemaIntrospector] = None,
        executor: Optional[QueryExecutor] = None,
    ):
        self.credentials = credentials
        self.hide_reserved = hide_reserved
        self.max_limit = max_limit or settings.BROWSER_MAX_LIMIT
        self.pool = pool or pool_manager
        self.introspector = introspector or schema_introspector
        self.executor = executor or query_executor

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def is_reserved(self, table: str) -> bool:
        return table.lower() == settings.PRINCIPAL_TABLE.lower()

    def resolve_table(self, table: str) -> Identifier:
        """Sanitize a table name and hide the principal table when required."""
        table = sanitize(table)
        if self.hide_reserved and self.is_reserved(table):
            raise NotFound(f"Table '{table}' not found")
        return table

    def list_tables(self) -> List[str]:
        tables = self.pool.with_connection(self.credentials, self.introspector.list_tables)
        if self.hide_reserved:
            tables = [t for t in tables if not self.is_reserved(t)]
        return tables

    def describe_table(self, table: str) -> TableSchema:
        table = self.resolve_table(table)
        return self.pool.with_connection(
            self.credentials,
            lambda conn: self.introspector.get_table_schema(conn, table),
        )

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def list(
        self,
        table: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        sort: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Page of rows plus the total count under the same filter."""
        spec = QuerySpec(
            kind=OperationKind.SELECT,
            table=self.resolve_table(table),
            filters=validate_conditions(filters, "filter"),
            sort=SortSpec.parse(sort),
            pagination=Pagination.clamp(limit, offset, self.max_limit, settings.DEFAULT_PAGE_LIMIT),
        )

        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, spec.table)
            builder = QueryBuilder(conn.dialect)
            result = self.executor.execute(conn, builder.select(spec, schema))
            total = self.executor.execute(conn, builder.count(spec, schema))

        logger.info("gateway_list", table=str(spec.table), rows=result.row_count, execution_time_ms=result.execution_time_ms)
        return {
            "data": result.rows,
            "pagination": {
                "total": int(total.rows[0]["total"]) if total.rows else 0,
                "limit": spec.pagination.limit,
                "offset": spec.pagination.offset,
            },
            "execution_time_ms": result.execution_time_ms,
        }

    def get_one(self, table: str, row_id: Any) -> Dict[str, Any]:
        table = self.resolve_table(table)
        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, table)
            key = self._key_column(schema)
            spec = QuerySpec(
                kind=OperationKind.SELECT,
                table=table,
                filters={key.name: coerce_key(key, row_id)},
                pagination=Pagination(limit=1),
            )
            result = self.executor.execute(conn, QueryBuilder(conn.dialect).build(spec, schema))

        if not result.rows:
            raise NotFound("Record not found")
        return result.rows[0]

    def create(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Insert the fields that match live columns; unknown keys are dropped."""
        table = self.resolve_table(table)
        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, table)
            spec = QuerySpec(kind=OperationKind.INSERT, table=table, values=fields)
            query = QueryBuilder(conn.dialect).build(spec, schema)
            result = self.executor.execute(conn, query)

        logger.info("gateway_create", table=str(table))
        return result.rows[0] if result.rows else {}

    def update(self, table: str, row_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        table = self.resolve_table(table)
        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, table)
            key = self._key_column(schema)
            spec = QuerySpec(
                kind=OperationKind.UPDATE,
                table=table,
                values=fields,
                filters={key.name: coerce_key(key, row_id)},
            )
            query = QueryBuilder(conn.dialect).build(spec, schema)
            result = self.executor.execute(conn, query)
            if not result.rows:
                raise NotFound("Record not found")

        logger.info("gateway_update", table=str(table))
        return result.rows[0]

    def delete(self, table: str, row_id: Any) -> Dict[str, Any]:
        table = self.resolve_table(table)
        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, table)
            key = self._key_column(schema)
            spec = QuerySpec(kind=OperationKind.DELETE, table=table, filters={key.name: coerce_key(key, row_id)})
            query = QueryBuilder(conn.dialect).build(spec, schema)
            result = self.executor.execute(conn, query)
            if not result.rows:
                raise NotFound("Record not found")

        logger.info("gateway_delete", table=str(table))
        return result.rows[0]

    def update_where(self, table: str, fields: Dict[str, Any], where: Dict[str, Any]) -> Dict[str, Any]:
        """Update every row matching ``where``; an empty predicate is refused up front."""
        table = self.resolve_table(table)
        where = validate_conditions(where)
        if not where:
            raise MissingWhereClause("Where condition is required")

        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, table)
            spec = QuerySpec(kind=OperationKind.UPDATE, table=table, values=fields, filters=where)
            query = QueryBuilder(conn.dialect).build(spec, schema)
            result = self.executor.execute(conn, query)

        logger.info("gateway_update_where", table=str(table), row_count=result.row_count)
        return {"rows": result.rows, "row_count": result.row_count, "execution_time_ms": result.execution_time_ms}

    def delete_where(self, table: str, where: Dict[str, Any]) -> Dict[str, Any]:
        table = self.resolve_table(table)
        where = validate_conditions(where)
        if not where:
            raise MissingWhereClause("Where condition is required")

        with self.pool.connection_scope(self.credentials) as conn:
            schema = self.introspector.get_table_schema(conn, table)
            spec = QuerySpec(kind=OperationKind.DELETE, table=table, filters=where)
            query = QueryBuilder(conn.dialect).build(spec, schema)
            result = self.executor.execute(conn, query)

        logger.info("gateway_delete_where", table=str(table), row_count=result.row_count)
        return {"rows": result.rows, "row_count": result.row_count, "execution_time_ms": result.execution_time_ms}

    def run_query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one caller-written SELECT/INSERT/UPDATE/DELETE with bind parameters."""
        query = QueryBuilder().custom(sql, params)

        with self.pool.connection_scope(self.credentials) as conn:
            result = self.executor.execute(conn, query)

        logger.info(
            "gateway_custom_query",
            statement=query.sql.split(None, 1)[0].upper(),
            row_count=result.row_count,
            execution_time_ms=result.execution_time_ms,
        )
        return {
            "data": result.rows,
            "columns": result.columns,
            "row_count": result.row_count,
            "execution_time_ms": result.execution_time_ms,
        }

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def create_table(
        self,
        table: str,
        columns: Sequence[ColumnDefinition],
        foreign_keys: Sequence[ForeignKeySpec] = (),
        if_not_exists: bool = False,
    ) -> TableSchema:
        """Create a table and return its schema as introspected afterwards."""
        table = self.resolve_table(table)
        # Validate the full statement before connecting
        QueryBuilder().create_table(table, columns, foreign_keys, if_not_exists)

        def _create(conn: Connection) -> TableSchema:
            query = QueryBuilder(conn.dialect).create_table(table, columns, foreign_keys, if_not_exists)
            self.executor.execute(conn, query)
            return self.introspector.get_table_schema(conn, table)

        schema = self.pool.with_connection(self.credentials, _create)
        logger.info("gateway_create_table", table=str(table), columns=len(schema.columns))
        return schema

    def _key_column(self, schema: TableSchema) -> ColumnSchema:
        key = schema.key_column()
        if key is None:
            raise MissingWhereClause(
                f"Table '{schema.table_name}' has no primary key to address rows by id"
            )
        return key


class AppTableGateway:
    """
    The gateway as published for one app.

    Every call takes the caller's ``AppSession`` explicitly; the role check
    runs before any name is resolved or any SQL is built. The principal
    table is never reachable here.
    """

    def __init__(self, app_id: str, credentials: TargetCredentials, **options: Any):
        self.app_id = app_id
        options.setdefault("max_limit", settings.GATEWAY_MAX_LIMIT)
        self.tables = TableGateway(credentials, hide_reserved=True, **options)

    def _authorize(self, session: AppSession, operation: Operation) -> None:
        if session is None or session.app_id != self.app_id:
            raise NotAuthenticated("Not authenticated")
        authorize(session, operation)

    def list_tables(self, session: AppSession) -> List[str]:
        self._authorize(session, Operation.READ)
        return self.tables.list_tables()

    def list(self, session: AppSession, table: str, **query: Any) -> Dict[str, Any]:
        self._authorize(session, Operation.READ)
        return self.tables.list(table, **query)

    def get_one(self, session: AppSession, table: str, row_id: Any) -> Dict[str, Any]:
        self._authorize(session, Operation.READ)
        return self.tables.get_one(table, row_id)

    def create(self, session: AppSession, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._authorize(session, Operation.CREATE)
        return self.tables.create(table, fields)

    def update(self, session: AppSession, table: str, row_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._authorize(session, Operation.UPDATE)
        return self.tables.update(table, row_id, fields)

    def delete(self, session: AppSession, table: str, row_id: Any) -> Dict[str, Any]:
        self._authorize(session, Operation.DELETE)
        return self.tables.delete(table, row_id)
