from pydantic_settings import BaseSettings, SettingsConfigDict

# 1.0 in fixed-point units; duplicated here so settings has no import from src
_SCALE = 10**18


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # App
    APP_NAME: str = "LMSR Prediction Market"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev
    LOG_LEVEL: str = "INFO"

    # Trading: all money values are fixed-point scaled (1 token == 10**18)
    PLATFORM_FEE_BPS: int = 200  # 2%, charged on top of buys, deducted from sells
    PAYOUT_PER_SHARE: int = 100 * _SCALE  # paid per winning share at resolution
    FEE_SINK_ACCOUNT: str = "PLATFORM_FEE"

    # Market creation limits
    MIN_MARKET_DURATION_SECONDS: int = 3600
    MIN_OPTIONS: int = 2
    MAX_OPTIONS: int = 10


settings = Settings()
