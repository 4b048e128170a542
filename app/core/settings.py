from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, case_sensitive=False)

    # App
    app_name: str = "Easy Auto API"
    debug: bool = False
    log_level: str = "INFO"
    base_url: str = "http://localhost:8000"
    cors_origins: List[str] = ["*"]

    # Database
    database_url: str = "sqlite:///./app.db"

    # Security
    access_token_secret: str = "dev-access-secret-change-me"
    refresh_token_secret: str = "dev-refresh-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_expires_minutes: int = 15
    refresh_token_expires_days: int = 7
    admin_token_expires_hours: int = 24

    # Cookies
    refresh_cookie_name: str = "refresh_token"
    refresh_cookie_path: str = "/api/auth"
    refresh_cookie_secure: bool = False
    refresh_cookie_samesite: str = "lax"

    # OTP
    otp_backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"
    otp_ttl_seconds: int = 300
    otp_max_attempts: int = 5

    # Social identity provider (Clerk)
    clerk_secret_key: str = ""
    clerk_api_url: str = "https://api.clerk.com/v1"
    clerk_jwks_url: str = ""
    clerk_issuer: str = ""

    # Payment gateway (PayHere)
    payhere_merchant_id: str = ""
    payhere_merchant_secret: str = ""
    payhere_checkout_url: str = "https://sandbox.payhere.lk/pay/checkout"
    payhere_notify_url: str = ""
    default_currency: str = "LKR"

    # Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "no-reply@easyauto.local"

    # Marketplace defaults
    ad_default_expiry_days: int = 30
    package_default_duration_days: int = 30
    expiry_warning_days: int = 7
    ad_limit_threshold: int = 80
    unlimited_sentinel: int = 9999

    # Scheduler
    scheduler_enabled: bool = True
    scheduler_poll_seconds: int = 30
    ad_expiry_cron: str = "0 0 * * *"
    ban_expiry_cron: str = "0 * * * *"
    boost_expiry_cron: str = "15 * * * *"
    token_cleanup_cron: str = "30 0 * * *"
    expiry_warning_cron: str = "0 8 * * *"
    ad_limit_warning_cron: str = "0 10 * * *"


settings = Settings()
