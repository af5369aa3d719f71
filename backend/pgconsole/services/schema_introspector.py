"""
Schema Introspector
Reads live table structure from the target database catalog. Nothing is
cached here: every call reflects the schema as it is right now.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from sqlalchemy import Integer, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import NoSuchTableError
import structlog

from pgconsole.core.errors import NotFound
from pgconsole.core.identifiers import sanitize

logger = structlog.get_logger()


@dataclass
class ColumnSchema:
    """Column metadata."""
    name: str
    data_type: str
    is_nullable: bool
    default_value: Optional[str] = None
    is_primary_key: bool = False
    is_integer: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.data_type,
            "nullable": self.is_nullable,
            "default": self.default_value,
            "is_primary_key": self.is_primary_key,
        }


@dataclass
class TableSchema:
    """Ordered column list of one table."""
    table_name: str
    columns: List[ColumnSchema] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    @property
    def primary_keys(self) -> List[str]:
        return [col.name for col in self.columns if col.is_primary_key]

    def get(self, name: str) -> Optional[ColumnSchema]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.get(name) is not None

    def key_column(self) -> Optional[ColumnSchema]:
        """Column addressed by a row id: the primary key, else a column named ``id``."""
        for col in self.columns:
            if col.is_primary_key:
                return col
        return self.get("id")

    def to_list(self) -> List[Dict[str, Any]]:
        return [col.to_dict() for col in self.columns]


class SchemaIntrospector:
    """Lists tables and reads column metadata of the default schema."""

    def list_tables(self, connection: Connection) -> List[str]:
        """Table names of the default (public) schema, sorted."""
        inspector = inspect(connection)
        return sorted(inspector.get_table_names())

    def get_table_schema(self, connection: Connection, table: str) -> TableSchema:
        """Columns of ``table`` in physical order."""
        table = sanitize(table)
        inspector = inspect(connection)
        try:
            columns = inspector.get_columns(table)
            pk_constraint = inspector.get_pk_constraint(table)
        except NoSuchTableError:
            raise NotFound(f"Table '{table}' not found")

        if not columns:
            raise NotFound(f"Table '{table}' not found")

        pk_columns = pk_constraint.get("constrained_columns", []) if pk_constraint else []

        return TableSchema(
            table_name=str(table),
            columns=[
                ColumnSchema(
                    name=col["name"],
                    data_type=str(col["type"]),
                    is_nullable=bool(col["nullable"]),
                    default_value=str(col["default"]) if col.get("default") is not None else None,
                    is_primary_key=col["name"] in pk_columns,
                    is_integer=isinstance(col["type"], Integer),
                )
                for col in columns
            ],
        )


schema_introspector = SchemaIntrospector()
