from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    app_name: str = "Lab Portal Profile API"
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = "INFO"

    # Primary record store - SQLite locally, PostgreSQL in production
    database_url: str = "sqlite+aiosqlite:///./labportal.db"

    # Token verification (issuance happens upstream)
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:5173,http://localhost:5174"

    # Object store holding uploaded resumes
    aws_region: str = "us-east-1"
    resume_bucket: str = "labportal-resume-uploads"
    max_resume_size_mb: int = 10

    # Server endpoints used by the upload protocol and the REST fallback tier
    api_base_url: str = "http://localhost:3001"
    resume_upload_endpoint: str = ""
    update_user_resume_endpoint: str = ""
    resume_url_endpoint: str = ""
    http_timeout_seconds: float = 30.0

    # Local cache tier (one directory per user)
    local_cache_dir: str = "./.profile_cache"

    # Recommendation export
    export_api_key: str = ""
    export_test_path_enabled: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"
        # Make field names case-insensitive for environment variables
        case_sensitive = False

    def get_cors_origins(self) -> list:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def endpoint(self, name: str) -> str:
        """Resolve a server endpoint, defaulting to a path under api_base_url"""
        defaults = {
            "resume_upload_endpoint": "/uploadResume",
            "update_user_resume_endpoint": "/updateUserResume",
            "resume_url_endpoint": "/getResumeUrl",
        }
        configured = getattr(self, name)
        if configured:
            return configured.rstrip("/")
        return f"{self.api_base_url.rstrip('/')}{defaults[name]}"

    @property
    def max_resume_size_bytes(self) -> int:
        return self.max_resume_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    return Settings()
