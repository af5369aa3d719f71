"""
Query Builder
Composes parameterized SQL for the generic table gateway.

Identifiers are quoted through the dialect's identifier preparer and only
after passing the sanitizer; every value travels as a bind parameter. The one
exception is ``RawExpression``, a column default that is emitted verbatim.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union
import enum
import re

from sqlalchemy import literal
from sqlalchemy.exc import SQLAlchemyError

from pgconsole.core.errors import (
    InvalidQueryParameter,
    MissingWhereClause,
    NoValidColumns,
)
from pgconsole.core.identifiers import DEFAULT_DIALECT, Identifier, quote_identifier, sanitize
from pgconsole.services.schema_introspector import TableSchema

# Declared column types accepted by CREATE TABLE, e.g. VARCHAR(255),
# NUMERIC(10, 2), TIMESTAMP WITH TIME ZONE, INTEGER[]
COLUMN_TYPE_PATTERN = re.compile(
    r"^[A-Za-z][A-Za-z0-9_]*( [A-Za-z][A-Za-z0-9_]*)*"
    r"(\s*\(\s*\d+(\s*,\s*\d+)?\s*\))?(\[\])?$"
)

# Leading keywords accepted by the custom query endpoint
CUSTOM_STATEMENTS = ("SELECT", "INSERT", "UPDATE", "DELETE")
LEADING_KEYWORD = re.compile(r"^\s*([A-Za-z]+)")
BIND_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
SCALAR_TYPES = (str, int, float, bool, type(None))


class OperationKind(str, enum.Enum):
    SELECT = "select"
    COUNT = "count"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE_TABLE = "create_table"
    CUSTOM = "custom"


class SortDirection(str, enum.Enum):
    ASC = "ASC"
    DESC = "DESC"


class ForeignKeyAction(str, enum.Enum):
    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ForeignKeyAction":
        if isinstance(value, cls):
            return value
        if not value:
            return cls.NO_ACTION
        normalized = " ".join(str(value).replace("_", " ").upper().split())
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidQueryParameter(f"Unsupported foreign key action: {value!r}")


@dataclass(frozen=True)
class SortSpec:
    column: Identifier
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SortSpec"]:
        """Parse ``column[:asc|desc]``; the direction defaults to ascending."""
        if not value:
            return None
        column, _, direction = value.partition(":")
        direction = SortDirection.DESC if direction.strip().upper() == "DESC" else SortDirection.ASC
        return cls(column=sanitize(column.strip()), direction=direction)


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int = 0

    @classmethod
    def clamp(
        cls,
        limit: Optional[int],
        offset: Optional[int],
        max_limit: int,
        default_limit: int = 100,
    ) -> "Pagination":
        """Bound limit to [0, max_limit] and offset to >= 0."""
        limit = default_limit if limit is None else int(limit)
        offset = 0 if offset is None else int(offset)
        return cls(limit=min(max(limit, 0), max_limit), offset=max(offset, 0))


@dataclass
class QuerySpec:
    """One request's query description; never persisted."""
    kind: OperationKind
    table: Identifier
    values: Dict[str, Any] = field(default_factory=dict)
    filters: Dict[str, Any] = field(default_factory=dict)
    sort: Optional[SortSpec] = None
    pagination: Optional[Pagination] = None


@dataclass(frozen=True)
class LiteralDefault:
    """Default value rendered as a quoted SQL literal."""
    value: Any


@dataclass(frozen=True)
class RawExpression:
    """
    Default emitted verbatim as SQL, e.g. ``NOW()``.

    This is the only path where caller text reaches SQL unquoted.
    """
    sql: str


DefaultValue = Union[LiteralDefault, RawExpression]


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    data_type: str
    nullable: bool = True
    default: Optional[DefaultValue] = None
    primary_key: bool = False
    unique: bool = False


@dataclass(frozen=True)
class ForeignKeySpec:
    column: str
    references_table: str
    references_column: str
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION


@dataclass(frozen=True)
class CompiledQuery:
    """SQL text plus its bind parameters."""
    sql: str
    params: Dict[str, Any]
    kind: OperationKind


class QueryBuilder:
    """Builds SQL for one dialect (PostgreSQL unless told otherwise)."""

    def __init__(self, dialect=None):
        self.dialect = dialect or DEFAULT_DIALECT

    def quote(self, name: str) -> str:
        return quote_identifier(sanitize(name), self.dialect)

    def render_literal(self, value: Any) -> str:
        """Render a Python value as a SQL literal through the dialect."""
        try:
            return str(literal(value).compile(
                dialect=self.dialect,
                compile_kwargs={"literal_binds": True},
            ))
        except (SQLAlchemyError, TypeError, ValueError, NotImplementedError):
            raise InvalidQueryParameter(f"Unsupported default value: {value!r}")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def build(self, spec: QuerySpec, schema: Optional[TableSchema] = None) -> CompiledQuery:
        if spec.kind == OperationKind.SELECT:
            return self.select(spec, schema)
        if spec.kind == OperationKind.COUNT:
            return self.count(spec, schema)
        if spec.kind == OperationKind.INSERT:
            return self.insert(spec.table, schema, spec.values)
        if spec.kind == OperationKind.UPDATE:
            return self.update(spec.table, schema, spec.values, spec.filters)
        if spec.kind == OperationKind.DELETE:
            return self.delete(spec.table, schema, spec.filters)
        raise InvalidQueryParameter(f"Unsupported operation: {spec.kind}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def select(self, spec: QuerySpec, schema: Optional[TableSchema] = None) -> CompiledQuery:
        params: Dict[str, Any] = {}
        sql = f"SELECT * FROM {self.quote(spec.table)}"

        where = self._where(spec.filters, schema, params)
        if where:
            sql += f" WHERE {where}"

        if spec.sort is not None:
            self._require_column(spec.sort.column, schema)
            sql += f" ORDER BY {self.quote(spec.sort.column)} {spec.sort.direction.value}"

        pagination = spec.pagination or Pagination(limit=100)
        sql += " LIMIT :limit OFFSET :offset"
        params["limit"] = pagination.limit
        params["offset"] = pagination.offset

        return CompiledQuery(sql=sql, params=params, kind=OperationKind.SELECT)

    def count(self, spec: QuerySpec, schema: Optional[TableSchema] = None) -> CompiledQuery:
        params: Dict[str, Any] = {}
        sql = f"SELECT COUNT(*) AS total FROM {self.quote(spec.table)}"
        where = self._where(spec.filters, schema, params)
        if where:
            sql += f" WHERE {where}"
        return CompiledQuery(sql=sql, params=params, kind=OperationKind.COUNT)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, table: str, schema: TableSchema, fields: Dict[str, Any]) -> CompiledQuery:
        values = self.filter_fields(schema, fields)
        if not values:
            raise NoValidColumns("No valid columns provided")

        params: Dict[str, Any] = {}
        columns = []
        placeholders = []
        for idx, (column, value) in enumerate(values.items()):
            columns.append(self.quote(column))
            placeholders.append(f":p{idx}")
            params[f"p{idx}"] = value

        sql = (
            f"INSERT INTO {self.quote(table)} ({', '.join(columns)}) "
            f"VALUES ({', '.join(placeholders)}) RETURNING *"
        )
        return CompiledQuery(sql=sql, params=params, kind=OperationKind.INSERT)

    def update(
        self,
        table: str,
        schema: TableSchema,
        fields: Dict[str, Any],
        where: Dict[str, Any],
    ) -> CompiledQuery:
        if not where:
            raise MissingWhereClause("Update requires a where condition")

        values = self.filter_fields(schema, fields, exclude=schema.primary_keys)
        if not values:
            raise NoValidColumns("No valid columns provided")

        params: Dict[str, Any] = {}
        assignments = []
        for idx, (column, value) in enumerate(values.items()):
            assignments.append(f"{self.quote(column)} = :p{idx}")
            params[f"p{idx}"] = value

        where_sql = self._where(where, schema, params)
        sql = (
            f"UPDATE {self.quote(table)} SET {', '.join(assignments)} "
            f"WHERE {where_sql} RETURNING *"
        )
        return CompiledQuery(sql=sql, params=params, kind=OperationKind.UPDATE)

    def delete(self, table: str, schema: Optional[TableSchema], where: Dict[str, Any]) -> CompiledQuery:
        if not where:
            raise MissingWhereClause("Delete requires a where condition")

        params: Dict[str, Any] = {}
        where_sql = self._where(where, schema, params)
        sql = f"DELETE FROM {self.quote(table)} WHERE {where_sql} RETURNING *"
        return CompiledQuery(sql=sql, params=params, kind=OperationKind.DELETE)

    # ------------------------------------------------------------------
    # Custom statements
    # ------------------------------------------------------------------

    def custom(self, sql: str, params: Optional[Dict[str, Any]] = None) -> CompiledQuery:
        """
        Wrap caller-written SQL for the operator query console.

        Only one SELECT, INSERT, UPDATE or DELETE statement is accepted.
        Values travel as ``:name`` bind parameters; the SQL text itself is
        passed through as written.
        """
        statement = (sql or "").strip().rstrip(";").strip()
        if not statement:
            raise InvalidQueryParameter("Query is required")

        match = LEADING_KEYWORD.match(statement)
        if not match or match.group(1).upper() not in CUSTOM_STATEMENTS:
            raise InvalidQueryParameter(
                "Only SELECT, INSERT, UPDATE, and DELETE queries are allowed"
            )
        if ";" in statement:
            raise InvalidQueryParameter("Only a single statement is allowed")

        params = params or {}
        if not isinstance(params, dict):
            raise InvalidQueryParameter("params must be an object of name/value pairs")
        for name, value in params.items():
            if not BIND_NAME.match(str(name)):
                raise InvalidQueryParameter(f"Invalid parameter name: {name!r}")
            if not isinstance(value, SCALAR_TYPES):
                raise InvalidQueryParameter(f"Parameter '{name}' must be a scalar")

        return CompiledQuery(sql=statement, params=dict(params), kind=OperationKind.CUSTOM)

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def create_table(
        self,
        table: str,
        columns: Sequence[ColumnDefinition],
        foreign_keys: Sequence[ForeignKeySpec] = (),
        if_not_exists: bool = False,
    ) -> CompiledQuery:
        if not columns:
            raise NoValidColumns("At least one column is required")

        names = [sanitize(col.name) for col in columns]
        if len(set(name.lower() for name in names)) != len(names):
            raise InvalidQueryParameter("Duplicate column names")

        primary_keys = [sanitize(col.name) for col in columns if col.primary_key]
        inline_pk = len(primary_keys) == 1

        definitions = [self._column_definition(col, inline_pk) for col in columns]

        if len(primary_keys) > 1:
            pk_cols = ", ".join(self.quote(name) for name in primary_keys)
            definitions.append(f"PRIMARY KEY ({pk_cols})")

        for fk in foreign_keys:
            if fk.column not in names:
                raise InvalidQueryParameter(
                    f"Foreign key column '{fk.column}' is not defined on the table"
                )
            on_delete = ForeignKeyAction.parse(fk.on_delete)
            on_update = ForeignKeyAction.parse(fk.on_update)
            definitions.append(
                f"FOREIGN KEY ({self.quote(fk.column)}) "
                f"REFERENCES {self.quote(fk.references_table)} ({self.quote(fk.references_column)}) "
                f"ON DELETE {on_delete.value} ON UPDATE {on_update.value}"
            )

        prefix = "CREATE TABLE IF NOT EXISTS" if if_not_exists else "CREATE TABLE"
        sql = f"{prefix} {self.quote(table)} ({', '.join(definitions)})"
        return CompiledQuery(sql=sql, params={}, kind=OperationKind.CREATE_TABLE)

    def _column_definition(self, column: ColumnDefinition, inline_pk: bool) -> str:
        data_type = (column.data_type or "").strip()
        if not COLUMN_TYPE_PATTERN.match(data_type):
            raise InvalidQueryParameter(f"Unsupported column type: {column.data_type!r}")

        parts = [self.quote(column.name), data_type.upper()]
        if column.primary_key and inline_pk:
            parts.append("PRIMARY KEY")
        elif not column.nullable:
            parts.append("NOT NULL")
        if column.unique and not column.primary_key:
            parts.append("UNIQUE")

        if isinstance(column.default, RawExpression):
            if not column.default.sql.strip():
                raise InvalidQueryParameter(f"Empty default expression for '{column.name}'")
            parts.append(f"DEFAULT {column.default.sql.strip()}")
        elif isinstance(column.default, LiteralDefault):
            parts.append(f"DEFAULT {self.render_literal(column.default.value)}")

        return " ".join(parts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def filter_fields(
        self,
        schema: TableSchema,
        fields: Dict[str, Any],
        exclude: Sequence[str] = (),
    ) -> Dict[str, Any]:
        """Keep only keys that are live columns; everything else is dropped."""
        return {
            sanitize(key): value
            for key, value in (fields or {}).items()
            if schema.has_column(key) and key not in exclude
        }

    def _require_column(self, column: str, schema: Optional[TableSchema]) -> None:
        if schema is not None and not schema.has_column(column):
            raise InvalidQueryParameter(f"Unknown column '{column}' for table '{schema.table_name}'")

    def _where(
        self,
        conditions: Dict[str, Any],
        schema: Optional[TableSchema],
        params: Dict[str, Any],
    ) -> str:
        """Equality conjunction; values are appended to ``params``."""
        clauses: List[str] = []
        for column, value in (conditions or {}).items():
            column = sanitize(column)
            self._require_column(column, schema)
            name = f"w{len(clauses)}"
            if value is None:
                clauses.append(f"{self.quote(column)} IS NULL")
            else:
                clauses.append(f"{self.quote(column)} = :{name}")
                params[name] = value
        return " AND ".join(clauses)
