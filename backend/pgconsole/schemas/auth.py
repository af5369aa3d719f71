"""
Per-app Auth Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=1)


class PrincipalCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = "viewer"


class PrincipalUpdate(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None


class SessionStatus(BaseModel):
    authenticated: bool
    user: Optional[Dict[str, Any]] = None
