import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.database import SupabaseClient
from app.schemas.user import CurrentUser, UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

def _resolve_user(token: str) -> CurrentUser:
    """
    Validates the Bearer Token with the Supabase Auth Server, Then Loads the Profile Row for Role and Status.
    """
    supabase = SupabaseClient.get_client()
    try:
        response = supabase.auth.get_user(token)
    except Exception as e:
        logger.info("Auth validation rejected token: %s", e)
        raise HTTPException(
            status_code = status.HTTP_401_UNAUTHORIZED,
            detail = "Invalid or Expired Token",
            headers = {"WWW-Authenticate": "Bearer"},
        )
    if not response or not response.user:
        raise HTTPException(
            status_code = status.HTTP_401_UNAUTHORIZED,
            detail = "Invalid token or user not found",
            headers = {"WWW-Authenticate": "Bearer"},
        )

    auth_user = response.user
    profile_response = SupabaseClient.get_service_client().table("profile").select("*").eq("id", auth_user.id).execute()
    profile = profile_response.data[0] if profile_response.data else {}

    user = CurrentUser(
        id = str(auth_user.id),
        email = auth_user.email,
        full_name = profile.get("full_name"),
        role = profile.get("role") or UserRole.USER.value,
        is_active = profile.get("is_active", True),
        is_verified = profile.get("is_verified", False),
    )
    if not user.is_active:
        raise HTTPException(
            status_code = status.HTTP_403_FORBIDDEN,
            detail = "Account is Suspended"
        )
    return user

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code = status.HTTP_401_UNAUTHORIZED,
            detail = "Not Authenticated",
            headers = {"WWW-Authenticate": "Bearer"},
        )
    return _resolve_user(credentials.credentials)

def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    # Public Endpoints Personalise the Response When a Valid Token is Sent
    if credentials is None or not credentials.credentials:
        return None
    try:
        return _resolve_user(credentials.credentials)
    except HTTPException:
        return None

def require_roles(*roles: UserRole):
    allowed = {r.value for r in roles}

    def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role.value not in allowed:
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "You Do Not Have Permission to Perform This Action"
            )
        return user

    return checker

get_host_user = require_roles(UserRole.HOST, UserRole.ADMIN)
get_admin_user = require_roles(UserRole.ADMIN)
