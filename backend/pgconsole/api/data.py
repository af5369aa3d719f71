"""
Data Browser API Routes - operator access to the tables of a registered database
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
import asyncio

from pgconsole.database import get_app_db
from pgconsole.schemas import (
    CreateTableRequest, QueryRequest, RowInsertRequest, RowUpdateRequest, RowDeleteRequest
)
from pgconsole.services import registry
from pgconsole.services.table_gateway import TableGateway, parse_filter

router = APIRouter()


def _browser(db: Session, target_id: int) -> TableGateway:
    return TableGateway(registry.credentials_for(registry.get_target(db, target_id)))


@router.get("/{target_id}/tables")
async def list_tables(target_id: int, db: Session = Depends(get_app_db)):
    browser = _browser(db, target_id)
    return {"tables": await asyncio.to_thread(browser.list_tables)}


@router.post("/{target_id}/tables", status_code=status.HTTP_201_CREATED)
async def create_table(target_id: int, payload: CreateTableRequest, db: Session = Depends(get_app_db)):
    """Create a table, with optional foreign keys."""
    browser = _browser(db, target_id)
    columns = [column.to_definition() for column in payload.columns]
    foreign_keys = [fk.to_spec() for fk in payload.foreign_keys]

    schema = await asyncio.to_thread(browser.create_table, payload.name, columns, foreign_keys)
    return {
        "message": f"Table '{schema.table_name}' created successfully",
        "table": schema.table_name,
        "columns": schema.to_list(),
    }


@router.get("/{target_id}/tables/{table}/schema")
async def get_table_schema(target_id: int, table: str, db: Session = Depends(get_app_db)):
    browser = _browser(db, target_id)
    schema = await asyncio.to_thread(browser.describe_table, table)
    return {"table": schema.table_name, "columns": schema.to_list()}


@router.get("/{target_id}/tables/{table}/data")
async def get_table_data(
    target_id: int,
    table: str,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    sort: Optional[str] = Query(None),
    filter: Optional[str] = Query(None),
    db: Session = Depends(get_app_db)
):
    browser = _browser(db, target_id)
    return await asyncio.to_thread(
        browser.list, table,
        limit=limit, offset=offset, sort=sort, filters=parse_filter(filter)
    )


@router.post("/{target_id}/tables/{table}/rows", status_code=status.HTTP_201_CREATED)
async def insert_row(target_id: int, table: str, payload: RowInsertRequest, db: Session = Depends(get_app_db)):
    browser = _browser(db, target_id)
    return await asyncio.to_thread(browser.create, table, payload.data)


@router.put("/{target_id}/tables/{table}/rows")
async def update_rows(target_id: int, table: str, payload: RowUpdateRequest, db: Session = Depends(get_app_db)):
    """Update every row matching ``where``."""
    browser = _browser(db, target_id)
    return await asyncio.to_thread(browser.update_where, table, payload.data, payload.where)


@router.delete("/{target_id}/tables/{table}/rows")
async def delete_rows(target_id: int, table: str, payload: RowDeleteRequest, db: Session = Depends(get_app_db)):
    browser = _browser(db, target_id)
    return await asyncio.to_thread(browser.delete_where, table, payload.where)


@router.post("/{target_id}/query")
async def execute_query(target_id: int, payload: QueryRequest, db: Session = Depends(get_app_db)):
    """Run one SELECT, INSERT, UPDATE or DELETE statement with bind parameters."""
    browser = _browser(db, target_id)
    return await asyncio.to_thread(browser.run_query, payload.query, payload.params)
