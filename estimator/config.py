import logging
import sys

from pydantic_settings import BaseSettings
from typing import List, Optional


def setup_logging():
    """Configure application logging."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Set third-party loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# Initialize logging on import
setup_logging()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Model provider (server-side only)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-5-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    # Further models callers may request besides openai_model (JSON list in env)
    openai_allowed_models: List[str] = []

    # Backend-as-a-service project (auth + storage)
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    food_images_bucket: str = "food-images"
    signed_url_expiry: int = 60

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Timeout settings (seconds)
    provider_timeout: int = 60

    # Client-side streaming display limits (characters)
    stream_buffer_limit: int = 2200
    stream_preview_limit: int = 480

    @property
    def model_names(self) -> List[str]:
        """Models a request may name; the default model comes first."""
        names = [self.openai_model]
        names.extend(m for m in self.openai_allowed_models if m not in names)
        return names

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def validate_provider_settings() -> bool:
    """Log a warning block if the model provider key is missing."""
    if settings.openai_api_key:
        return True
    logger.warning("=" * 60)
    logger.warning("OPENAI_API_KEY is not set; estimate requests will fail.")
    logger.warning("Set OPENAI_API_KEY in your .env file:")
    logger.warning("    OPENAI_API_KEY=sk-...")
    logger.warning("=" * 60)
    return False


settings = Settings()
