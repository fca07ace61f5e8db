from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional
from app.schemas.base import CamelModel

class UserRole(str, Enum):
    USER = "user"
    HOST = "host"
    ADMIN = "admin"

class HostStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"

class CurrentUser(BaseModel):
    """Authenticated caller resolved from the bearer token and the profile row"""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True
    is_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

class ProfileUpdate(CamelModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    bio: Optional[str] = Field(None, max_length=1000)
    city: Optional[str] = None
    interests: Optional[List[str]] = None
    avatar_url: Optional[str] = Field(None, alias="profileImage")

class RoleUpdate(BaseModel):
    role: UserRole

class StatusReason(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
