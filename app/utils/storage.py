import logging
from uuid import uuid4
from typing import Optional
from fastapi import UploadFile, HTTPException, status
from app.core.database import SupabaseClient
from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

class StorageService:
    # Service for Handling Supabase Bucket Storage
    def __init__(self):
        self.event_bucket = settings.EVENT_IMAGE_BUCKET
        self.event_folder = settings.EVENT_IMAGE_FOLDER
        self.avatar_bucket = settings.AVATAR_BUCKET
        self.max_bytes = settings.MAX_IMAGE_SIZE_MB * 1024 * 1024

    @property
    def supabase(self):
        return SupabaseClient.get_service_client()

    def _read_image(self, file: UploadFile) -> tuple:
        # Validate Content Type, Extension and Size Before Anything Touches the Bucket
        if not file.content_type or not file.content_type.startswith("image/"):
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Only Image Files are Allowed to Upload"
            )
        filename = file.filename or ""
        if "." in filename:
            extension = filename.rsplit(".", 1)[-1].lower()
        else:
            extension = file.content_type.split("/", 1)[1].lower()
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Unsupported Image Type '{extension}'"
            )
        bytes_data = file.file.read()
        if len(bytes_data) > self.max_bytes:
            raise HTTPException(
                status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail = f"Image Must Be {settings.MAX_IMAGE_SIZE_MB}MB or Smaller"
            )
        return bytes_data, extension

    # Generic Upload File to Handle Multiple Supabase Bucket Storage File Upload
    def _generic_upload(self, file: UploadFile, bucket: str, folder_path: str) -> dict:
        bytes_data, extension = self._read_image(file)
        path = f"{folder_path}/{uuid4()}.{extension}"
        try:
            self.supabase.storage.from_(bucket).upload(
                path = path,
                file = bytes_data,
                file_options = {"content-type": file.content_type, "upsert": "true"}
            )
            public_url = self.supabase.storage.from_(bucket).get_public_url(path)
        except Exception as e:
            logger.error("Upload to bucket %s failed: %s", bucket, e)
            raise HTTPException(
                status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail = "Storage Upload Failed"
            )
        logger.info("Stored %s bytes at %s/%s", len(bytes_data), bucket, path)
        return {
            "url": public_url,
            "path": path
        }

    # Upload the Event Image
    def upload_event_image(self, file: UploadFile, event_id: str) -> dict:
        return self._generic_upload(file, self.event_bucket, f"{self.event_folder}/{event_id}")

    # Upload the Profile Avatar
    def upload_avatar(self, file: UploadFile, user_id: str) -> str:
        result = self._generic_upload(file, self.avatar_bucket, f"{user_id}")
        return result["url"]

    # Storage Path Helper Function -> Extracts the Relative Path From a Supabase Public URL
    def extract_path_from_url(self, url: Optional[str], bucket: str) -> Optional[str]:
        # URL: https://.../storage/v1/object/public/<bucket>/folder/image.png
        if not url or f"/{bucket}/" not in url:
            return None
        path = url.split(f"/{bucket}/", 1)[1]
        return path.split("?", 1)[0] or None

    # Generic Delete File to Handle Multiple Supabase Bucket Storage Delete Operation
    def _generic_delete(self, bucket: str, path: Optional[str]) -> bool:
        # Delete a File From Storage -> Return TRUE If Success Else Return False
        if not path:
            return False
        try:
            self.supabase.storage.from_(bucket).remove([path])
            return True
        except Exception as e:
            logger.warning("Failed to delete file %s from %s: %s", path, bucket, e)
            return False

    def delete_event_image_by_url(self, url: Optional[str]) -> bool:
        return self._generic_delete(self.event_bucket, self.extract_path_from_url(url, self.event_bucket))

    def delete_avatar_by_url(self, url: Optional[str]) -> bool:
        return self._generic_delete(self.avatar_bucket, self.extract_path_from_url(url, self.avatar_bucket))
