"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Persistence
    STORE_BACKEND = os.getenv("STORE_BACKEND", "file")
    STORE_DIR = os.path.expanduser(os.getenv("STORE_DIR", "~/.nextpage"))

    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "nextpage")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Catalog API
    GOOGLE_BOOKS_API_KEY = os.getenv("GOOGLE_BOOKS_API_KEY")
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))

    # Storefront
    AFFILIATE_TAG = os.getenv("AFFILIATE_TAG")

    # Recommendations
    RECOMMENDATION_BATCH_SIZE = int(os.getenv("RECOMMENDATION_BATCH_SIZE", "10"))
    RECOMMENDATION_TOP_N = int(os.getenv("RECOMMENDATION_TOP_N", "5"))
    FALLBACK_GENRE = os.getenv("FALLBACK_GENRE", "fiction")

    # Search-as-you-type
    SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.5"))
    MIN_QUERY_LENGTH = int(os.getenv("MIN_QUERY_LENGTH", "3"))
