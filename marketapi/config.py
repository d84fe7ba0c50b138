from datetime import timedelta
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="marketapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Account Marketplace API"
    PROJECT_NAME: str = "Account Marketplace API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DATABASE: str = "marketplace"

    # DATABASE_URL이 지정되면 POSTGRES_* 값보다 우선합니다 (테스트에서는 sqlite 사용)
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

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Business Rules
    DEFAULT_CURRENCY: str = "NGN"
    DEFAULT_PAYMENT_METHOD: str = "flutterwave"
    DEFAULT_PROFIT_MARGIN: float = 0.2  # 원가 정보가 없으므로 매출의 20%를 이익으로 간주
    ACTIVITY_LOG_RETENTION_DAYS: int = 30
    VIEW_LOG_RETENTION_HOURS: int = 24
    POPULAR_PRODUCTS_LIMIT: int = 5
    RECENT_ACTIVITY_LIMIT: int = 10

    # Revenue Target
    REVENUE_TARGET_BASE: float = 10000.0  # 1월 기준 월간 목표 매출
    REVENUE_TARGET_MONTHLY_GROWTH: float = 0.05  # 월 성장률 (5%)

    # Reporting
    REPORT_QUERY_TIMEOUT_MS: int = 5000  # 리포트 쿼리 타임아웃 (PostgreSQL statement_timeout)
    MAX_REPORT_RANGE_DAYS: int = 366

    @property
    def view_dedup_window(self) -> timedelta:
        """순 조회 판정 구간 (조회 기록 보존 기간과 동일)"""
        return timedelta(hours=self.VIEW_LOG_RETENTION_HOURS)


settings = Settings()
