from fastapi import APIRouter, HTTPException, status, Depends
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional
from app.api.deps import get_current_user, security
from app.schemas.auth import ForgotPasswordRequest, RefreshTokenRequest, UserLogin, UserPasswordUpdate, UserRegister, TokenResponse
from app.schemas.user import CurrentUser
from app.services.auth_service import AuthService
from app.services.user_service import UserService
from app.utils.responses import success_response

router = APIRouter()
auth_service = AuthService()
user_service = UserService()

@router.post("/register", status_code = status.HTTP_201_CREATED)
def register(
    user_data: UserRegister
):
    # Register a new User
    try:
        result = auth_service.register_user(user_data)
        if isinstance(result, TokenResponse):
            return success_response(result.model_dump(), "Registration Successful")
        return success_response(result, result["message"])
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_400_BAD_REQUEST,
            detail = str(e)
        )

@router.post("/login", status_code = status.HTTP_200_OK)
def login(
    user_data: UserLogin
):
    # Login User and Return Access Token
    try:
        return success_response(auth_service.login_user(user_data).model_dump(), "Login Successful")
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(
            status_code = status.HTTP_401_UNAUTHORIZED,
            detail = "Invalid Email or Password"
        )

@router.post("/logout", status_code = status.HTTP_200_OK)
def logout(
    payload: Optional[RefreshTokenRequest] = None,
    auth: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    # Logout User Requires a Valid Access Token in the Authorization Bearer
    if auth is None:
        raise HTTPException(
            status_code = status.HTTP_401_UNAUTHORIZED,
            detail = "Not Authenticated"
        )
    result = auth_service.logout_user(auth.credentials, payload.refresh_token if payload else None)
    return success_response(None, result["message"])

@router.post("/refresh", status_code = status.HTTP_200_OK)
def refresh_token(
    payload: RefreshTokenRequest
):
    # Get a New Access Token Using the Refresh Token
    try:
        return success_response(auth_service.refresh_token(payload.refresh_token).model_dump(), "Token Refreshed")
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(
            status_code = status.HTTP_401_UNAUTHORIZED,
            detail = "Token Refresh Failed"
        )

@router.get("/me", status_code = status.HTTP_200_OK)
def get_me(user: CurrentUser = Depends(get_current_user)):
    return success_response(user_service.get_profile(user.id, user), "Profile Retrieved Successfully")

@router.post("/forgot-password", status_code = status.HTTP_200_OK)
def forgot_password(
    request: ForgotPasswordRequest
):
    # Request Password Reset Email
    result = auth_service.forgot_password(request.email, request.redirect_url)
    return success_response(None, result["message"])

@router.put("/reset-password", status_code = status.HTTP_200_OK)
def reset_password(payload: UserPasswordUpdate, user: CurrentUser = Depends(get_current_user)):
    try:
        result = auth_service.reset_password(user.id, payload)
        return success_response(None, result["message"])
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Reset Password Operation Fail: {str(e)}"
        )
