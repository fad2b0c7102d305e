from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./data/orders.db",
        description="SQLAlchemy URL of the order store"
    )

    # Carrier tracking API
    CARRIER_API_URL: str = Field(
        default="https://api.easypost.com/v2/trackers",
        description="Tracker endpoint of the carrier tracking service"
    )
    CARRIER_API_KEY: str = Field(
        default="",
        description="API key for the carrier tracking service"
    )

    # Email dispatch service
    EMAIL_SERVICE_URL: str = Field(
        default="https://service-email.herokuapp.com/emails/promotions/send",
        description="Endpoint asking the email service to send a promotion"
    )
    EMAIL_SERVICE_TOKEN: str = Field(
        default="",
        description="Static credential sent in the disco-auth header"
    )

    HTTP_TIMEOUT: float = Field(default=30.0, gt=0)

    # Job settings
    ORDER_CHECK_CRON: str = Field(
        default="0 */1 * * *",
        description="Crontab expression for the order check job"
    )
    DELIVERY_GRACE_HOURS: int = Field(
        default=24,
        ge=0,
        description="Hours to wait after delivery before notifying"
    )
    STALE_THRESHOLD_DAYS: int = Field(
        default=8,
        ge=0,
        description="Age after which untracked orders are notified anyway"
    )
    MAX_CONCURRENCY: int = Field(
        default=4,
        ge=1,
        description="Orders processed at the same time by the order check"
    )
    STALE_SWEEP_RECURRING: bool = Field(
        default=False,
        description="Run the stale order sweep on the order check cadence too"
    )
    MARK_EMAIL_SENT: bool = Field(
        default=True,
        description="Persist email_sent=true once an order has been notified"
    )
    ERROR_HISTORY_SIZE: int = Field(default=100, ge=1)

    # Application Settings
    APP_HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=4000)
    DEBUG: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


# Global settings instance
settings = Settings()
