from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    """
    Settings for the Campus Support platform.

    Please do not modify this file directly.
    Instead, create a .env file in the root directory of the project
    and specify the settings you would like to change there.
    For example, to keep the shared store in a redis server, add the
    following lines to the .env file:
    - STORE_BACKEND=redis
    - REDIS_HOST=my-redis-host

    SUMMARY:
    - Override settings (if needed) using a .env file
    - Never push the .env file to GitHub (it should be in .gitignore)
    - STORE_BACKEND selects where the shared namespaces live: memory, sql or redis
    """

    # Application settings
    app_name: str = "Campus Support"
    app_version: str = "0.1.0"
    app_host: str = "127.0.0.1"
    app_port: int = 8000

    # Local vs production settings
    local: bool = True # Default to local development

    # Logs settings
    logs_dir: str = "logs"

    # Shared store settings
    store_backend: str = "sql" # One of: memory, sql, redis
    namespace: str = "uni-help" # Namespace holding every entity collection

    # Database settings
    db_url: str = "sqlite:///campus_support_db.db" # Default, for local development

    # Redis settings
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None

    # Lifecycle settings
    staleness_hours: int = 72 # Pending requests older than this are reported as ignored
    notification_max_entries: int = 0 # 0 keeps the notification log unbounded

    # Admin created on first use of the admin views
    default_admin_id: str = "admin"
    default_admin_name: str = "Admin"

    # Rate limits for the admin reporting endpoints
    admin_rate_limit: str = "30/minute"

    # Load settings from .env file
    model_config = SettingsConfigDict(env_file=".env")

@lru_cache() # Cache settings to avoid reading .env file multiple times
def get_settings():
    """
    Use this function as a dependency to get the settings object.
    Dependency injection will make it easier to test endpoints with different settings, simply inject a different settings object.
    """
    return Settings()
