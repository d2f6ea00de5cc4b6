"""Configuration management"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Supabase backend
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").strip().rstrip("/")
SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "").strip()

# Network
# Timeouts live on the HTTP client only; repositories impose none.
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))

# Local cache
CACHE_DB_PATH: Path = Path(os.getenv("CACHE_DB_PATH", "./data/track_anything_cache.db"))

# Minimum time between two background refreshes of the same entity kind
REFRESH_COOLDOWN_SECONDS: float = float(os.getenv("REFRESH_COOLDOWN_SECONDS", "10"))

# Identity used by the command-line preload
TRACK_ANYTHING_USER_ID: str = os.getenv("TRACK_ANYTHING_USER_ID", "").strip()
TRACK_ANYTHING_ACCESS_TOKEN: str = os.getenv("TRACK_ANYTHING_ACCESS_TOKEN", "").strip()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Monitoring
ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "true").lower() == "true"
ENABLE_SENTRY: bool = os.getenv("ENABLE_SENTRY", "false").lower() == "true"
SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "development")


# Validation
def validate_config() -> None:
    """Validate required configuration"""
    from track_anything.exceptions import ConfigurationError

    if not SUPABASE_URL:
        raise ConfigurationError("SUPABASE_URL is required", config_key="SUPABASE_URL")
    if not SUPABASE_ANON_KEY:
        raise ConfigurationError("SUPABASE_ANON_KEY is required", config_key="SUPABASE_ANON_KEY")
    if REFRESH_COOLDOWN_SECONDS < 0:
        raise ConfigurationError(
            "REFRESH_COOLDOWN_SECONDS must not be negative",
            config_key="REFRESH_COOLDOWN_SECONDS"
        )
