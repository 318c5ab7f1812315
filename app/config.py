"""Service configuration from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "info"
    max_image_size: int = 2048
    cors_origins: list[str] = ["*"]

    # Engine defaults
    default_projection: str = "perspective"
    rembg_model: str = "u2net"

    model_config = SettingsConfigDict(
        env_prefix="SHADOWGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
