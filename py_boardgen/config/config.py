from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")
    allowed_origins: str = Field(default="*", description="CORS allowed origins")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (e.g., console, json)")

    # Board Generation Configuration
    default_board_width: int = Field(default=40, description="Default board width in cells")
    default_board_height: int = Field(default=40, description="Default board height in cells")
    default_traffic_rounds: int = Field(default=1000, description="Default Monte-Carlo rounds")

    model_config = SettingsConfigDict(
        env_prefix="BOARDGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Instantiate singleton settings object
settings = Settings()
