"""
App API Routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import asyncio

from pgconsole.database import get_app_db
from pgconsole.schemas import AppCreate, AppUpdate, AppResponse
from pgconsole.services import registry

router = APIRouter()


@router.get("/", response_model=List[AppResponse])
async def list_apps(db: Session = Depends(get_app_db)):
    return registry.list_apps(db)


@router.get("/{app_id}", response_model=AppResponse)
async def get_app(app_id: str, db: Session = Depends(get_app_db)):
    return registry.get_app(db, app_id)


@router.post("/", response_model=AppResponse, status_code=status.HTTP_201_CREATED)
async def create_app(payload: AppCreate, db: Session = Depends(get_app_db)):
    """
    Create an app over a registered database.

    Auth-enabled apps get their principal table provisioned and a default
    admin seeded; a provisioning failure does not undo the app.
    """
    app = registry.create_app(db, payload.model_dump())

    if app.auth_enabled:
        credentials = registry.app_credentials(db, app)
        await asyncio.to_thread(registry.provision_app, app.id, credentials)

    return app


@router.put("/{app_id}", response_model=AppResponse)
async def update_app(app_id: str, payload: AppUpdate, db: Session = Depends(get_app_db)):
    return registry.update_app(db, app_id, payload.model_dump(exclude_unset=True))


@router.delete("/{app_id}")
async def delete_app(app_id: str, db: Session = Depends(get_app_db)):
    registry.delete_app(db, app_id)
    return {"message": "App deleted successfully"}
