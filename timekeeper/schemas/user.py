"""Account, login and profile schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..core.access import GlobalRole


class RegisterRequest(BaseModel):
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")
    full_name: str = Field(..., description="Display name")
    role: GlobalRole = Field(GlobalRole.MEMBER, description="Ignored for the first account, which becomes admin")

    model_config = {
        "json_schema_extra": {
            "examples": [{"email": "alice@company.com", "password": "securepass", "full_name": "Alice"}]
        }
    }


class LoginRequest(BaseModel):
    email: str
    password: str


class RoleRequest(BaseModel):
    role: GlobalRole


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    timezone: Optional[str] = Field(None, max_length=64)


class UserResponse(BaseModel):
    user_id: str
    email: str
    full_name: str
    role: str
    is_active: bool
    timezone: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class AuditEntryResponse(BaseModel):
    id: int
    user_id: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
