"""
Dynamic Documentation Generator
Describes the REST surface an app publishes, from the live schema of its
tables. Read-only.
"""
from typing import Any, Dict, List, Optional

import structlog

from pgconsole.config import settings
from pgconsole.connections.pool import ConnectionPoolManager, TargetCredentials, pool_manager
from pgconsole.core.identifiers import is_valid_identifier
from pgconsole.core.rbac import REQUIRED_ROLE, Operation
from pgconsole.services.schema_introspector import (
    SchemaIntrospector,
    TableSchema,
    schema_introspector,
)

logger = structlog.get_logger()


def _required(operation: Operation) -> str:
    return REQUIRED_ROLE[operation].value


def table_endpoints(app_id: str, table: str) -> List[Dict[str, Any]]:
    """Operation list published for one table."""
    collection = f"/api/{app_id}/{table}"
    item = f"{collection}/{{id}}"
    return [
        {
            "method": "GET",
            "path": collection,
            "description": f"Get all {table} records",
            "required_role": _required(Operation.READ),
            "query": {
                "limit": f"number (default: {settings.DEFAULT_PAGE_LIMIT}, max: {settings.GATEWAY_MAX_LIMIT})",
                "offset": "number (default: 0)",
                "sort": "column:asc|desc",
                "filter": "JSON object of column:value pairs",
            },
        },
        {
            "method": "GET",
            "path": item,
            "description": f"Get single {table} record",
            "required_role": _required(Operation.READ),
        },
        {
            "method": "POST",
            "path": collection,
            "description": f"Create new {table} record",
            "required_role": _required(Operation.CREATE),
            "body": "JSON object of column:value pairs",
        },
        {
            "method": "PUT",
            "path": item,
            "description": f"Update {table} record",
            "required_role": _required(Operation.UPDATE),
            "body": "JSON object of column:value pairs",
        },
        {
            "method": "DELETE",
            "path": item,
            "description": f"Delete {table} record",
            "required_role": _required(Operation.DELETE),
        },
    ]


class DocGenerator:
    """Builds the documentation document of an app."""

    def __init__(
        self,
        pool: Optional[ConnectionPoolManager] = None,
        introspector: Optional[SchemaIntrospector] = None,
    ):
        self.pool = pool or pool_manager
        self.introspector = introspector or schema_introspector

    def describe(self, app_id: str, app_name: str, credentials: TargetCredentials) -> Dict[str, Any]:
        """``{app, baseUrl, endpoints}`` with one entry per visible table."""
        def _describe(conn) -> List[TableSchema]:
            reserved = settings.PRINCIPAL_TABLE.lower()
            return [
                self.introspector.get_table_schema(conn, table)
                for table in self.introspector.list_tables(conn)
                if table.lower() != reserved and is_valid_identifier(table)
            ]

        schemas = self.pool.with_connection(credentials, _describe)

        logger.info("docs_generated", app_id=app_id, tables=len(schemas))
        return {
            "app": app_name,
            "baseUrl": f"/api/{app_id}",
            "endpoints": [
                {
                    "table": schema.table_name,
                    "endpoints": table_endpoints(app_id, schema.table_name),
                    "schema": schema.to_list(),
                }
                for schema in schemas
            ],
        }


doc_generator = DocGenerator()
