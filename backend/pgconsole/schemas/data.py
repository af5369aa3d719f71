"""
Data Browser Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from pgconsole.services.query_builder import (
    ColumnDefinition,
    ForeignKeyAction,
    ForeignKeySpec,
    LiteralDefault,
    RawExpression,
)


class ColumnDefault(BaseModel):
    """Column default: a literal value, or verbatim SQL when ``raw`` is set."""
    value: Any = None
    raw: bool = False


class ColumnDefinitionIn(BaseModel):
    name: str
    type: str
    nullable: bool = True
    default: Optional[ColumnDefault] = None
    primary_key: bool = False
    unique: bool = False

    def to_definition(self) -> ColumnDefinition:
        default = None
        if self.default is not None:
            if self.default.raw:
                default = RawExpression(str(self.default.value or ""))
            else:
                default = LiteralDefault(self.default.value)
        return ColumnDefinition(
            name=self.name,
            data_type=self.type,
            nullable=self.nullable,
            default=default,
            primary_key=self.primary_key,
            unique=self.unique,
        )


class ForeignKeyIn(BaseModel):
    column: str
    references_table: str
    references_column: str
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    def to_spec(self) -> ForeignKeySpec:
        return ForeignKeySpec(
            column=self.column,
            references_table=self.references_table,
            references_column=self.references_column,
            on_delete=ForeignKeyAction.parse(self.on_delete),
            on_update=ForeignKeyAction.parse(self.on_update),
        )


class CreateTableRequest(BaseModel):
    name: str
    columns: List[ColumnDefinitionIn] = Field(..., min_length=1)
    foreign_keys: List[ForeignKeyIn] = []


class RowInsertRequest(BaseModel):
    data: Dict[str, Any]


class RowUpdateRequest(BaseModel):
    data: Dict[str, Any]
    where: Dict[str, Any] = {}


class RowDeleteRequest(BaseModel):
    where: Dict[str, Any] = {}


class QueryRequest(BaseModel):
    """Custom statement for the query console; values bind as ``:name``."""
    query: str = ""
    params: Dict[str, Any] = {}
