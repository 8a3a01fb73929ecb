from pydantic_settings import BaseSettings

from .money import DEFAULT_CURRENCY, DEFAULT_MARGIN_PCT, DEFAULT_TAX_PCT


class Settings(BaseSettings):
    APP_NAME: str = "MeisterKI"
    LOG_LEVEL: str = "INFO"

    # Flat-file storage
    DATA_DIR: str = "./data"
    GENERATED_DIR: str = "./generated"
    UPLOADS_DIR: str = "./uploads"

    # Offer defaults
    MARGIN_DEFAULT: float = DEFAULT_MARGIN_PCT
    TAX_DEFAULT: float = DEFAULT_TAX_PCT
    CURRENCY: str = DEFAULT_CURRENCY

    # Auth
    JWT_SECRET: str = ""  # REQUIRED in production — fail loudly if missing at auth time
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_EXPIRE_MINUTES: int = 15
    JWT_REFRESH_EXPIRE_DAYS: int = 30

    # Cloudflare R2 (optional), photos go to UPLOADS_DIR when unset
    CLOUDFLARE_R2_ACCOUNT_ID: str = ""
    CLOUDFLARE_R2_ACCESS_KEY_ID: str = ""
    CLOUDFLARE_R2_SECRET_ACCESS_KEY: str = ""
    CLOUDFLARE_R2_BUCKET: str = "meisterki-uploads"

    class Config:
        env_file = ".env"


settings = Settings()
