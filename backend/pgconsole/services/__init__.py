"""
Services Package
"""
from pgconsole.services.schema_introspector import SchemaIntrospector, TableSchema, ColumnSchema, schema_introspector
from pgconsole.services.query_builder import QueryBuilder, QuerySpec, CompiledQuery
from pgconsole.services.query_executor import QueryExecutor, QueryResult, query_executor
from pgconsole.services.table_gateway import TableGateway, AppTableGateway
from pgconsole.services.principal_store import PrincipalStore
from pgconsole.services.doc_generator import DocGenerator, doc_generator

__all__ = [
    "SchemaIntrospector", "TableSchema", "ColumnSchema", "schema_introspector",
    "QueryBuilder", "QuerySpec", "CompiledQuery",
    "QueryExecutor", "QueryResult", "query_executor",
    "TableGateway", "AppTableGateway",
    "PrincipalStore",
    "DocGenerator", "doc_generator",
]
