from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./scoreboard.db"
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720
    session_cookie_name: str = "scoreboard_session"
    session_cookie_secure: bool = False
    environment: str = "development"
    enable_registration: bool = True
    setup_bootstrap_token: str | None = None
    api_cors_origins: str = "http://localhost:3000"

    login_rate_limit_attempts: int = 5
    login_rate_limit_window_seconds: int = 900

    cache_headers_enabled: bool = True

    # Defaults for scripts/setup_admin.py
    admin_email: str = "admin@example.com"
    admin_password: str = "AdminPass123!"
    admin_name: str = "System Administrator"

    @property
    def cors_origins(self) -> list[str]:
        raw = self.api_cors_origins.strip()
        if not raw:
            return []
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @property
    def emit_cache_headers(self) -> bool:
        return self.cache_headers_enabled and self.environment != "development"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
