from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from app.schemas.base import CamelModel
from app.schemas.user import UserRole

class UserRegister(CamelModel):
    """Sign up payload; every new account starts with the attendee role"""
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    full_name: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane@example.com",
                "password": "hunter22",
                "fullName": "Jane Doe"
            }
        }

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class SessionUser(BaseModel):
    # Profile Snapshot Returned Next to the Tokens
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    is_verified: bool = False
    avatar_url: Optional[str] = None

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionUser

    class Config:
        json_schema_extra = {
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "refresh_token": "v1.MRjcyZcqYbnTpn2Vn...",
                "token_type": "bearer",
                "expires_in": 3600,
                "user": {
                    "id": "3f1c2d9e-5a7b-4c1d-9e2f-0a1b2c3d4e5f",
                    "email": "host@example.com",
                    "full_name": "Hana Host",
                    "role": "host",
                    "is_verified": True
                }
            }
        }

class RefreshTokenRequest(CamelModel):
    refresh_token: str

class ForgotPasswordRequest(CamelModel):
    email: EmailStr
    redirect_url: str

class UserPasswordUpdate(CamelModel):
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    confirm_password: str
