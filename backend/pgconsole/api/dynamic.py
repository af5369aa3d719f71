"""
Dynamic App API Routes

Generic REST surface over the tables of an app's database, plus the
generated documentation of that surface. Routes are resolved at request time
against the live schema.
"""
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
import asyncio

from pgconsole.api.deps import get_app_session
from pgconsole.core.rbac import AppSession, Operation, authorize
from pgconsole.database import get_app_db
from pgconsole.services import registry
from pgconsole.services.doc_generator import doc_generator
from pgconsole.services.table_gateway import AppTableGateway, parse_filter

router = APIRouter()
docs_router = APIRouter()


def _gateway(db: Session, app_id: str) -> AppTableGateway:
    app = registry.get_app(db, app_id)
    return AppTableGateway(app.id, registry.app_credentials(db, app))


@router.get("/{app_id}/{table}")
async def list_records(
    app_id: str,
    table: str,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    sort: Optional[str] = Query(None, description="column:asc|desc"),
    filter: Optional[str] = Query(None, description="JSON object of column:value pairs"),
    session: AppSession = Depends(get_app_session),
    db: Session = Depends(get_app_db)
):
    """List records with pagination, sorting and equality filters."""
    gateway = _gateway(db, app_id)
    result = await asyncio.to_thread(
        gateway.list, session, table,
        limit=limit, offset=offset, sort=sort, filters=parse_filter(filter)
    )
    return {"data": result["data"], "pagination": result["pagination"]}


@router.get("/{app_id}/{table}/{record_id}")
async def get_record(
    app_id: str,
    table: str,
    record_id: str,
    session: AppSession = Depends(get_app_session),
    db: Session = Depends(get_app_db)
):
    """Get a single record by primary key."""
    gateway = _gateway(db, app_id)
    return await asyncio.to_thread(gateway.get_one, session, table, record_id)


@router.post("/{app_id}/{table}", status_code=status.HTTP_201_CREATED)
async def create_record(
    app_id: str,
    table: str,
    fields: Dict[str, Any] = Body(...),
    session: AppSession = Depends(get_app_session),
    db: Session = Depends(get_app_db)
):
    """Create a record. Keys that are not columns of the table are ignored."""
    gateway = _gateway(db, app_id)
    return await asyncio.to_thread(gateway.create, session, table, fields)


@router.put("/{app_id}/{table}/{record_id}")
async def update_record(
    app_id: str,
    table: str,
    record_id: str,
    fields: Dict[str, Any] = Body(...),
    session: AppSession = Depends(get_app_session),
    db: Session = Depends(get_app_db)
):
    gateway = _gateway(db, app_id)
    return await asyncio.to_thread(gateway.update, session, table, record_id, fields)


@router.delete("/{app_id}/{table}/{record_id}")
async def delete_record(
    app_id: str,
    table: str,
    record_id: str,
    session: AppSession = Depends(get_app_session),
    db: Session = Depends(get_app_db)
):
    gateway = _gateway(db, app_id)
    deleted = await asyncio.to_thread(gateway.delete, session, table, record_id)
    return {"message": "Record deleted successfully", "deleted": deleted}


@docs_router.get("/docs/{app_id}")
async def app_documentation(
    app_id: str,
    session: AppSession = Depends(get_app_session),
    db: Session = Depends(get_app_db)
):
    """Generated documentation of the app's REST surface."""
    authorize(session, Operation.READ)
    app = registry.get_app(db, app_id)
    credentials = registry.app_credentials(db, app)
    return await asyncio.to_thread(doc_generator.describe, app.id, app.name, credentials)
