from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Midtrans Snap
    midtrans_server_key: Optional[str] = Field(None, alias="MIDTRANS_SERVER_KEY")
    midtrans_is_production: bool = Field(False, alias="MIDTRANS_IS_PRODUCTION")
    midtrans_verify_signature: bool = Field(False, alias="MIDTRANS_VERIFY_SIGNATURE")
    midtrans_timeout_seconds: float = Field(15.0, alias="MIDTRANS_TIMEOUT_SECONDS")

    # Object storage (Supabase Storage REST API)
    storage_url: Optional[str] = Field(None, alias="STORAGE_URL")
    storage_api_key: Optional[str] = Field(None, alias="STORAGE_API_KEY")
    storage_bucket: str = Field("masjidku", alias="STORAGE_BUCKET")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(True, alias="LOG_JSON")

    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def midtrans_snap_base_url(self) -> str:
        if self.midtrans_is_production:
            return "https://app.midtrans.com"
        return "https://app.sandbox.midtrans.com"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
