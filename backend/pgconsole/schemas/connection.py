"""
Connection Target Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class DatabaseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(5432, ge=1, le=65535)
    database: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=255)
    ssl_enabled: bool = False


class DatabaseCreate(DatabaseBase):
    password: str = Field(..., min_length=1)
    create_on_server: bool = False  # CREATE DATABASE before registering


class DatabaseUpdate(BaseModel):
    """Partial update; an omitted password keeps the stored one."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    host: Optional[str] = None
    port: Optional[int] = Field(None, ge=1, le=65535)
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    ssl_enabled: Optional[bool] = None


class DatabaseResponse(DatabaseBase):
    """Registered target (password never included)."""
    id: int
    created_on_server: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
    response_time_ms: Optional[int] = None


class ConfImportRequest(BaseModel):
    """Register a target from a key=value .conf file in the conf directory."""
    filename: str = Field(..., min_length=1)
    name: Optional[str] = None
