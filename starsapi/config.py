from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="starsapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Stars Ledger API"
    PROJECT_NAME: str = "Stars Ledger API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""
    POSTGRES_SCHEMA: str = "stars"

    # 설정되면 POSTGRES_* 조합보다 우선 (테스트/로컬 sqlite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # Security - 인증 제공자가 발급한 JWT 검증용
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Anonymous device identity (signed cookie)
    DEVICE_COOKIE_NAME: str = "__host_sd"
    DEVICE_COOKIE_SECRET: str = ""
    DEVICE_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 365 * 2  # 2년
    DEV_DEVICE_COOKIE_SECRET: str = "dev-signing-secret-change-me"

    @property
    def device_cookie_secret(self) -> str:
        """쿠키 서명 키 - 운영 환경에서는 기본값 사용 금지 (빈 문자열 반환)"""
        if self.DEVICE_COOKIE_SECRET:
            return self.DEVICE_COOKIE_SECRET
        if self.SECRET_KEY:
            return self.SECRET_KEY
        if self.is_production:
            return ""
        return self.DEV_DEVICE_COOKIE_SECRET

    # Stars Ledger
    STARS_REFILL_CEILING: int = 12  # refill 계열 add/refresh 상한
    TRANSACTIONS_DEFAULT_LIMIT: int = 50
    TRANSACTIONS_MAX_LIMIT: int = 100

    # Daily claim
    DAILY_CLAIM_STARS_USER: int = 10  # 로그인 사용자
    DAILY_CLAIM_STARS_DEVICE: int = 5  # 익명 디바이스

    # Ad watch
    MAX_DAILY_AD_WATCHES: int = 10
    STARS_PER_AD_WATCH: int = 2

    # Social share
    MAX_DAILY_SOCIAL_SHARES: int = 5
    STARS_PER_SOCIAL_SHARE: int = 2

    # Referral
    REFERRAL_BONUS_STARS: int = 5  # 추천인 보상
    REFERRAL_WELCOME_STARS: int = 5  # 피추천인 보상 (0이면 미지급)
    MAX_WEEKLY_REFERRALS: int = 10
    REFERRAL_CODE_LENGTH: int = 8

    # Shared content visit award
    SHARE_VISIT_REWARD: int = 1
    SHARE_VISIT_CONTENT_CAP: int = 5  # 콘텐츠당 누적 지급 상한


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
