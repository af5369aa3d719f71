"""
App Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class AppBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = ""
    auth_enabled: bool = False
    public_access: bool = False
    icon: Optional[str] = "dashboard"
    theme: Optional[str] = "default"


class AppCreate(AppBase):
    database_id: int
    components: List[Dict[str, Any]] = []


class AppUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    database_id: Optional[int] = None
    auth_enabled: Optional[bool] = None
    public_access: Optional[bool] = None
    icon: Optional[str] = None
    theme: Optional[str] = None
    components: Optional[List[Dict[str, Any]]] = None


class AppResponse(AppBase):
    id: str
    database_id: Optional[int] = None
    components: List[Dict[str, Any]] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
