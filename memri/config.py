from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql://postgres:postgres@db:5432/memri"
    log_level: str = "INFO"

    # Session lifecycle (seconds)
    session_ttl: int = 86400 * 7  # 7 days
    session_refresh_threshold: int = 86400  # extend when less than 24h remain
    session_sweep_interval: int = 3600  # hourly backstop for abandoned sessions
    session_sweep_enabled: bool = True

    # Session cookie
    session_cookie_name: str = "sessionId"
    session_cookie_secure: bool = False  # True in production

    # Password hashing work factor
    bcrypt_rounds: int = 12

    # Database retry policy for idempotent operations
    db_retry_max_attempts: int = 3
    db_retry_base_delay: float = 1.0
    db_retry_max_delay: float = 5.0

    # Uploads
    upload_dir: str = "uploads"
    upload_max_bytes: int = 5 * 1024 * 1024  # 5MB

    class Config:
        env_file = ".env"


settings = Settings()
