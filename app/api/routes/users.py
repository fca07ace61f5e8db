from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from typing import Optional
from app.api.deps import get_current_user, get_optional_user
from app.services.user_service import UserService
from app.schemas.user import CurrentUser, ProfileUpdate
from app.utils.responses import success_response

router = APIRouter()
user_service = UserService()

@router.post("/me/avatar", status_code = status.HTTP_200_OK)
def upload_avatar_image(file: UploadFile = File(...), user: CurrentUser = Depends(get_current_user)):
    try:
        return success_response(user_service.upload_avatar(user, file), "Avatar Uploaded Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Upload Avatar Image Fail: {str(e)}"
        )

@router.post("/me/become-host", status_code = status.HTTP_200_OK)
def apply_for_host(user: CurrentUser = Depends(get_current_user)):
    return success_response(user_service.apply_for_host(user), "Host Application Submitted")

@router.get("/{user_id}", status_code = status.HTTP_200_OK)
def get_profile(user_id: str, viewer: Optional[CurrentUser] = Depends(get_optional_user)):
    try:
        return success_response(user_service.get_profile(user_id, viewer), "Profile Retrieved Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Profile Detail Retrieved Error: {str(e)}"
        )

@router.put("/{user_id}", status_code = status.HTTP_200_OK)
def update_profile(user_id: str, payload: ProfileUpdate, user: CurrentUser = Depends(get_current_user)):
    try:
        return success_response(user_service.update_profile(user_id, user, payload), "Profile Updated Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Profile Update Fail: {str(e)}"
        )
