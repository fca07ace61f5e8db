import logging
from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def configure_logging(level: str = None) -> None:
    # Configure the Root Logger Once at Start Up
    logging.basicConfig(
        level = (level or settings.LOG_LEVEL).upper(),
        format = LOG_FORMAT,
    )
    # Quieten the Chatty HTTP Client Used by Supabase
    logging.getLogger("httpx").setLevel(logging.WARNING)
