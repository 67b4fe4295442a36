from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "WIKI_CONSOLE_", "env_file": ".env", "env_file_encoding": "utf-8"}

    wiki_base_url: str = Field(default="http://localhost:8050")
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    auth_username: str = Field(default="admin")
    auth_password: str = Field(min_length=1)
    jwt_secret: str = Field(min_length=32)
    jwt_expire_minutes: int = Field(default=1440)
    log_level: str = Field(default="INFO")
    cors_origins: str = Field(default="http://localhost:3000")

    # Page import
    import_queue_name: str = Field(default="PageImportJob")
    import_report_url: str = Field(default="/page_import_report")

    # Job status synchronization
    stream_update_interval_ms: int = Field(default=500, gt=0)
    fallback_polling_enabled: bool = Field(default=True)
    fallback_poll_interval_seconds: float = Field(default=2.0, gt=0)
    overlay_idle_refresh_seconds: float = Field(default=10.0, gt=0)
    reload_debounce_seconds: float = Field(default=0.3, ge=0)

    notification_duration_seconds: int = Field(default=5, gt=0)


settings = Settings()
