"""Application configuration settings."""
from pydantic import model_validator
from pydantic_settings import BaseSettings
from typing import List
import logging


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "sqlite"
    db_password: str = ""
    db_name: str = "certalert"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600

    # Notification Transport
    notification_transport: str = "log"
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    transport_timeout_seconds: int = 10
    transport_max_retries: int = 2
    transport_retry_delays: List[int] = [1, 2, 5]

    # Dispatch Settings
    dispatch_timeout_seconds: int = 40
    stale_claim_minutes: int = 30

    # Sender Identity
    default_sender_domain: str = "safetytracker.app"
    sender_local_part: str = "safety"
    fallback_sender_local_part: str = "noreply"

    # Escalation and Retry Policy
    prefer_assigned_supervisor: bool = False
    retry_failed_reminders: bool = False
    max_send_attempts: int = 3

    # Scheduler Settings
    scheduler_enabled: bool = True
    expiry_check_hour: int = 6
    expiry_check_minute: int = 0

    # Operator API
    admin_api_token: str = ""

    # Application Settings
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def database_url(self) -> str:
        """Construct database URL from configuration."""
        # Use SQLite if DB_USER is 'sqlite'
        if self.db_user.lower() == 'sqlite':
            return f"sqlite:///./{self.db_name}.db"
        return f"mysql+pymysql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug

    @property
    def transport_retry_budget_seconds(self) -> int:
        """Worst-case time an HTTP transport spends on one message, retries and waits included."""
        delays = self.transport_retry_delays or [0]
        waits = sum(delays[min(i, len(delays) - 1)] for i in range(self.transport_max_retries))
        return (self.transport_max_retries + 1) * self.transport_timeout_seconds + waits

    @model_validator(mode="after")
    def check_dispatch_timeout(self) -> "Settings":
        """The per-item timeout must outlast every transport retry."""
        budget = self.transport_retry_budget_seconds
        if self.dispatch_timeout_seconds < budget:
            raise ValueError(
                f"dispatch_timeout_seconds ({self.dispatch_timeout_seconds}) is shorter than "
                f"the transport retry budget ({budget}s)"
            )
        return self


def configure_logging(level: str = None) -> None:
    """Install a console handler on the root logger.

    Args:
        level: Log level name (defaults to settings.log_level)
    """
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# Global settings instance
settings = Settings()
