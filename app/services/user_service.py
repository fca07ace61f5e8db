import logging
from fastapi import HTTPException, status, UploadFile
from typing import Dict, Any
from datetime import datetime, timezone
from app.core.database import SupabaseService
from app.schemas.user import CurrentUser, HostStatus, ProfileUpdate, UserRole
from app.utils.storage import StorageService

logger = logging.getLogger(__name__)

PUBLIC_PROFILE_FIELDS = ("id", "full_name", "avatar_url", "bio", "city", "interests", "role", "is_verified", "average_rating", "total_reviews", "created_at")

class UserService(SupabaseService):
    # Initiate the Service Needed in User API
    def __init__(self):
        self.table = "profile"
        self.storage = StorageService()

    def get_profile_row(self, user_id: str) -> Dict[str, Any]:
        response = self.supabase_admin.table(self.table).select("*").eq("id", user_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Profile Not Found"
            )
        return response.data[0]

    def _with_activity(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        # Hosted / Joined / Saved Event IDs as the Web Client Expects Them on the Profile
        user_id = profile["id"]
        hosted = self.supabase_admin.table("event").select("id").eq("host_id", user_id).execute()
        joined = self.supabase_admin.table("event_participants").select("event_id").eq("user_id", user_id).execute()
        saved = self.supabase_admin.table("saved_events").select("event_id").eq("user_id", user_id).execute()
        profile["hosted_events"] = [e["id"] for e in hosted.data or []]
        profile["joined_events"] = [p["event_id"] for p in joined.data or []]
        profile["saved_events"] = [s["event_id"] for s in saved.data or []]
        return profile

    # Get the Profile Detail -> Full Row for the Owner and Admins, Public Fields for Everyone Else
    def get_profile(self, user_id: str, viewer: CurrentUser = None) -> Dict[str, Any]:
        profile = self.get_profile_row(user_id)
        if viewer is not None and (viewer.is_admin or viewer.id == user_id):
            return self._with_activity(profile)
        if profile.get("is_active") is False:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "User Not Found"
            )
        return {k: profile.get(k) for k in PUBLIC_PROFILE_FIELDS}

    # Update the Profile
    def update_profile(self, user_id: str, user: CurrentUser, payload: ProfileUpdate) -> Dict[str, Any]:
        if not (user.is_admin or user.id == user_id):
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "You Can Only Update Your Own Profile"
            )
        # Clean the Payload First -> Remove the Unset Value
        profile_update_data = payload.model_dump(exclude_unset = True)
        if not profile_update_data:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "No Profile Update Data Provided"
            )
        profile_update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        self.get_profile_row(user_id)
        profile_response = self.supabase_admin.table(self.table).update(profile_update_data).eq("id", user_id).execute()
        if not profile_response.data:
            raise HTTPException(
                status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail = "Failed to Update the Profile"
            )
        return profile_response.data[0]

    def upload_avatar(self, user: CurrentUser, file: UploadFile) -> Dict[str, Any]:
        old_profile = self.get_profile_row(user.id)
        url = self.storage.upload_avatar(file, user.id)
        if old_profile.get("avatar_url"):
            self.storage.delete_avatar_by_url(old_profile["avatar_url"])
        self.supabase_admin.table(self.table).update({
            "avatar_url": url,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }).eq("id", user.id).execute()
        return {"avatar_url": url}

    # Host Application -> Reviewed by an Admin in the Command Center
    def apply_for_host(self, user: CurrentUser) -> Dict[str, Any]:
        profile = self.get_profile_row(user.id)
        if profile.get("role") in (UserRole.HOST.value, UserRole.ADMIN.value):
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "You Can Already Host Events"
            )
        if profile.get("host_status") == HostStatus.PENDING.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Your Host Application is Already Pending"
            )
        if profile.get("host_status") == HostStatus.SUSPENDED.value:
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "Your Hosting Privileges are Suspended"
            )
        response = self.supabase_admin.table(self.table).update({
            "host_status": HostStatus.PENDING.value,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }).eq("id", user.id).execute()
        logger.info("User %s applied to become a host", user.id)
        return response.data[0]
