"""
Connection Target API Routes - registered PostgreSQL databases
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import asyncio

from pgconsole.connections import pool_manager, TargetCredentials
from pgconsole.database import get_app_db
from pgconsole.models import ConnectionOrigin
from pgconsole.schemas import (
    DatabaseCreate, DatabaseUpdate, DatabaseResponse, ConnectionTestResult, ConfImportRequest
)
from pgconsole.services import registry

router = APIRouter()


@router.get("/", response_model=List[DatabaseResponse])
async def list_databases(db: Session = Depends(get_app_db)):
    """List registered databases."""
    return registry.list_targets(db)


@router.get("/{target_id}", response_model=DatabaseResponse)
async def get_database(target_id: int, db: Session = Depends(get_app_db)):
    return registry.get_target(db, target_id)


@router.post("/", response_model=DatabaseResponse, status_code=status.HTTP_201_CREATED)
async def create_database(payload: DatabaseCreate, db: Session = Depends(get_app_db)):
    """
    Register a database.

    The connection is tested before anything is stored; with
    ``create_on_server`` the database is created on the server first.
    """
    credentials = TargetCredentials(
        host=payload.host,
        port=payload.port,
        database=payload.database,
        user=payload.username,
        password=payload.password,
        ssl=payload.ssl_enabled,
    )
    await asyncio.to_thread(registry.verify_target, credentials, payload.create_on_server)

    origin = ConnectionOrigin.CREATED_ON_SERVER if payload.create_on_server else ConnectionOrigin.REGISTERED
    return registry.save_target(db, payload.name, credentials, origin)


@router.post("/from-conf", response_model=DatabaseResponse, status_code=status.HTTP_201_CREATED)
async def create_database_from_conf(payload: ConfImportRequest, db: Session = Depends(get_app_db)):
    """Register a database described by a key=value .conf file."""
    parsed = registry.conf_to_target(registry.load_conf(payload.filename), payload.filename)
    credentials = parsed["credentials"]
    await asyncio.to_thread(registry.verify_target, credentials, parsed["create_on_server"])

    origin = ConnectionOrigin.CREATED_ON_SERVER if parsed["create_on_server"] else ConnectionOrigin.REGISTERED
    return registry.save_target(db, payload.name or parsed["name"], credentials, origin)


@router.put("/{target_id}", response_model=DatabaseResponse)
async def update_database(target_id: int, payload: DatabaseUpdate, db: Session = Depends(get_app_db)):
    """Update a registered database; the new settings are re-tested first."""
    target = registry.get_target(db, target_id)
    changes = payload.model_dump(exclude_unset=True)
    credentials = registry.merged_credentials(target, changes)
    await asyncio.to_thread(registry.verify_target, credentials)

    return registry.update_target(db, target, credentials, name=changes.get("name"))


@router.delete("/{target_id}")
async def delete_database(target_id: int, db: Session = Depends(get_app_db)):
    """Remove a database from the registry. Apps using it are kept."""
    registry.delete_target(db, target_id)
    return {"message": "Database deleted successfully"}


@router.post("/{target_id}/test", response_model=ConnectionTestResult)
async def test_database(target_id: int, db: Session = Depends(get_app_db)):
    credentials = registry.credentials_for(registry.get_target(db, target_id))
    return await asyncio.to_thread(pool_manager.test_connection, credentials)
