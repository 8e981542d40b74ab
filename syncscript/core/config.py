from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache
import os


class Settings(BaseSettings):
    """
    Application settings and configuration
    """
    
    # Application
    app_name: str = "SyncScript API"
    app_version: str = "1.0.0"
    debug: bool = False
    
    # Server
    host: str = "0.0.0.0"
    port: int = int(os.getenv("PORT", "4000"))
    
    # Environment detection
    environment: str = os.getenv("ENVIRONMENT", "development")
    
    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./syncscript.db")
    
    # Security
    secret_key: str = os.getenv("SECRET_KEY", "change-this-in-production-please")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    
    # Cache
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    cache_enabled: bool = True
    cache_ttl_seconds: int = 300
    cache_socket_timeout: float = 2.0
    
    # Object storage
    aws_region: str = "us-east-1"
    aws_bucket_name: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_endpoint_url: Optional[str] = None
    presign_expiry_seconds: int = 3600
    max_upload_size: int = 10 * 1024 * 1024  # 10MB
    
    # Metadata enrichment
    metadata_fetch_timeout: float = 5.0
    metadata_user_agent: str = "SyncScriptBot/1.0 (+metadata)"
    
    # Logging
    log_level: str = "INFO"
    log_format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
    log_file: Optional[str] = None
    log_rotation: str = "10 MB"
    log_retention: str = "14 days"
    
    # CORS
    allowed_origins: List[str] = ["*"]
    allow_credentials: bool = True
    
    enable_docs: bool = os.getenv("ENABLE_DOCS", "true").lower() == "true"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Create settings instance with caching
@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings
    """
    return Settings()


def get_database_url(settings: Optional[Settings] = None) -> str:
    """
    Get database URL, creating the directory for a SQLite file if needed
    """
    url = (settings or get_settings()).database_url
    
    if url.startswith("sqlite:///") and ":memory:" not in url:
        db_path = url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
    
    return url
