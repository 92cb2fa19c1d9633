from pydantic_settings import BaseSettings
from decouple import config


class Settings(BaseSettings):
    # Database
    database_url: str = config("DATABASE_URL", default="sqlite:///./ips_slips.db")

    # Sharing
    share_expiry_days: int = config("SHARE_EXPIRY_DAYS", default=30, cast=int)

    # QR rendering
    qr_box_size: int = config("QR_BOX_SIZE", default=10, cast=int)
    qr_border: int = config("QR_BORDER", default=4, cast=int)

    # Payment defaults
    default_currency: str = config("DEFAULT_CURRENCY", default="RSD")

    # App
    app_name: str = "IPS QR Payment Slip"
    app_version: str = "1.0.0"
    log_level: str = config("LOG_LEVEL", default="INFO")
    cors_origins: str = config("CORS_ORIGINS", default="*")

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        case_sensitive = False


settings = Settings()
