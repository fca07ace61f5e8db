from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Supabase Configuration
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # Supabase Bucket Configuration
    EVENT_IMAGE_BUCKET: str = "event-images"
    EVENT_IMAGE_FOLDER: str = "banners"
    AVATAR_BUCKET: str = "avatars"
    MAX_IMAGE_SIZE_MB: int = 5

    # Stripe Configuration
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    DEFAULT_CURRENCY: str = "usd"
    # Minutes a Pending Booking Holds a Seat While the Payment is in Progress
    PAYMENT_HOLD_MINUTES: int = 15

    # CORS Configuration
    CORS_ORIGINS: list = ["*"]

    # APP Configuration
    PROJECT_NAME: str = "Eventhub API"
    API_PREFIX: str = "/api"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
