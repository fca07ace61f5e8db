from supabase import create_client, Client
from app.core.config import settings
from typing import Optional
import httpx
import logging

logger = logging.getLogger(__name__)

class SupabaseClient:
    _client: Optional[Client] = None
    _service_client: Optional[Client] = None

    @staticmethod
    def _create(key: str) -> Client:
        client = create_client(settings.SUPABASE_URL, key)
        client.postgrest.timeout = 60
        try:
            client.auth._http_client.timeout = httpx.Timeout(60.0)
        except AttributeError:
            pass
        return client

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = cls._create(settings.SUPABASE_KEY)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Get Supabase Client with Service Role Key for Admin Operations"""
        if not settings.SUPABASE_SERVICE_ROLE_KEY:
            return cls.get_client()
        if cls._service_client is None:
            logger.info("Creating Supabase service role client")
            cls._service_client = cls._create(settings.SUPABASE_SERVICE_ROLE_KEY)
        return cls._service_client

    @classmethod
    def reset(cls) -> None:
        cls._client = None
        cls._service_client = None


class SupabaseService:
    """Base for services talking to Supabase: clients are resolved on use so the app imports without credentials."""

    @property
    def supabase(self) -> Client:
        return SupabaseClient.get_client()

    @property
    def supabase_admin(self) -> Client:
        return SupabaseClient.get_service_client()
