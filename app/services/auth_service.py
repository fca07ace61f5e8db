import logging
from fastapi import HTTPException, status
from supabase import AuthApiError
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from app.core.database import SupabaseService
from app.schemas.auth import UserPasswordUpdate, UserRegister, TokenResponse, UserLogin
from app.schemas.user import HostStatus, UserRole

logger = logging.getLogger(__name__)

class AuthService(SupabaseService):
    """Service for handling authentication operations"""

    def _token_response(self, session, user_info: Dict[str, Any]) -> TokenResponse:
        return TokenResponse(
            access_token = session.access_token,
            refresh_token = session.refresh_token,
            token_type = "bearer",
            expires_in = session.expires_in,
            user = user_info
        )

    def _load_profile(self, user_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase_admin.table("profile").select("*").eq("id", user_id).execute()
            return result.data[0] if result.data else {}
        except Exception as e:
            logger.warning("Profile fetch failed for user %s: %s", user_id, e)
            return {}

    # New User Registration Function
    def register_user(self, user_data: UserRegister):
        """
        Register a New User With Supabase Auth and Create the Matching Profile Row
        """
        try:
            response = self.supabase.auth.sign_up({
                "email": user_data.email,
                "password": user_data.password,
                "options": {
                    "data": {
                        "full_name": user_data.full_name or ""
                    }
                }
            })
        except AuthApiError as e:
            msg = str(e).lower()
            if "already registered" in msg or "already exists" in msg:
                raise HTTPException(
                    status_code = status.HTTP_409_CONFLICT,
                    detail = "Email is Already Been Registered"
                )
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = e.message
            )

        if not response.user:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Failed to create user"
            )

        now = datetime.now(timezone.utc).isoformat()
        self.supabase_admin.table("profile").upsert({
            "id": response.user.id,
            "email": user_data.email,
            "full_name": user_data.full_name or "",
            "role": UserRole.USER.value,
            "host_status": HostStatus.NONE.value,
            "is_verified": False,
            "is_active": True,
            "average_rating": 0,
            "total_reviews": 0,
            "created_at": now,
            "updated_at": now,
        }, on_conflict = "id").execute()
        logger.info("Registered user %s", response.user.id)

        # Email Confirmation is Required -> No Session Yet
        session = response.session
        if not session:
            return {
                "message": "Registration Successful. Please check your email.",
                "user_id": response.user.id,
                "email": response.user.email,
                "requires_confirmation": True
            }

        return self._token_response(session, {
            "id": response.user.id,
            "email": response.user.email,
            "full_name": user_data.full_name,
            "role": UserRole.USER.value
        })

    # User Login Function
    def login_user(self, user_data: UserLogin) -> TokenResponse:
        """
        Login User, Returning Access and Refresh Tokens
        """
        try:
            response = self.supabase.auth.sign_in_with_password({
                "email": user_data.email,
                "password": user_data.password
            })
        except AuthApiError as e:
            msg = str(e).lower()
            if "invalid_grant" in msg or "invalid login" in msg:
                raise HTTPException(
                    status_code = status.HTTP_401_UNAUTHORIZED,
                    detail = "Invalid email or password"
                )
            if "email not confirmed" in msg:
                raise HTTPException(
                    status_code = status.HTTP_403_FORBIDDEN,
                    detail = "Email not confirmed"
                )
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = e.message
            )

        if not response.user or not response.session:
            raise HTTPException(
                status_code = status.HTTP_401_UNAUTHORIZED,
                detail = "Login Failed. No Session Created."
            )
        if response.user.email_confirmed_at is None:
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "Email is Not Verified. Please Check Your Email."
            )

        profile = self._load_profile(response.user.id)
        if profile.get("is_active") is False:
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "Account is Suspended"
            )

        return self._token_response(response.session, {
            "id": response.user.id,
            "email": response.user.email,
            "full_name": profile.get("full_name"),
            "role": profile.get("role") or UserRole.USER.value,
            "is_verified": profile.get("is_verified", False),
            "avatar_url": profile.get("avatar_url", "")
        })

    # User Logout Function
    def logout_user(self, access_token: str, refresh_token: Optional[str] = None) -> dict:
        try:
            if refresh_token:
                self.supabase.auth.set_session(access_token, refresh_token)
            else:
                self.supabase.postgrest.auth(access_token)
            self.supabase.auth.sign_out()
            return {"message": "Logged Out Successfully"}
        except Exception as e:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Logout Failed: {str(e)}"
            )

    # Refresh Access Token Function -> Keep User Stay Login Without Re-entering Password
    def refresh_token(self, refresh_token: str) -> TokenResponse:
        try:
            response = self.supabase.auth.refresh_session(refresh_token)
        except Exception as e:
            logger.info("Token refresh rejected: %s", e)
            raise HTTPException(
                status_code = status.HTTP_401_UNAUTHORIZED,
                detail = "Token Refresh Failed. Please Login Again"
            )
        if not response.session:
            raise HTTPException(
                status_code = status.HTTP_401_UNAUTHORIZED,
                detail = "Failed to Refresh Token, Due to Invalid or Expired Refresh Token"
            )
        return self._token_response(response.session, {
            "id": response.user.id,
            "email": response.user.email
        })

    # Forgot Password Function
    def forgot_password(self, email: str, redirect_url: str) -> dict:
        # Same Message Either Way to Prevent Email Enumeration
        try:
            self.supabase.auth.reset_password_email(email, options = {"redirect_to": redirect_url})
        except Exception as e:
            logger.warning("Password reset request error: %s", e)
        return {
            "message": "If An Account with That Email Exists, A Password Reset Link Has Been Sent.",
            "success": True
        }

    # Reset Password Function
    def reset_password(self, user_id: str, payload: UserPasswordUpdate):
        if payload.password != payload.confirm_password:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Password Do Not Match"
            )
        response = self.supabase_admin.auth.admin.update_user_by_id(
            user_id,
            {"password": payload.password}
        )
        if not response.user:
            raise HTTPException(
                status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail = "Failed to Update Password in Supabase"
            )
        return {"message": "User Password Updated Successfully"}
