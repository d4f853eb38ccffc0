"""Application settings."""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Transfer Jobs Dashboard"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8090
    api_base_url: str = "https://platform-api.service.signiant.com"
    orchestration_api_prefix: str = "/v1"
    token_path: str = "/oauth/token"
    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    token_safety_margin_seconds: float = 300.0
    http_timeout_seconds: float = 20.0
    polling_enabled: bool = True
    poll_interval_seconds: float = 30.0
    settle_delay_seconds: float = 1.0
    job_page_size: int = 100
    notification_history_size: int = 50

    @property
    def token_url(self) -> str:
        """Absolute client-credentials token endpoint."""

        base_url = self.api_base_url.strip().rstrip("/")
        path = self.token_path.strip()
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base_url}{path}"

    @model_validator(mode="after")
    def validate_runtime_settings(self) -> "Settings":
        """Ensure intervals and sizes are usable."""

        if not self.api_base_url.strip():
            raise ValueError("TRANSFER_DASHBOARD_API_BASE_URL cannot be empty.")
        if self.token_safety_margin_seconds < 0:
            raise ValueError("TRANSFER_DASHBOARD_TOKEN_SAFETY_MARGIN_SECONDS must be >= 0.")
        if self.http_timeout_seconds <= 0:
            raise ValueError("TRANSFER_DASHBOARD_HTTP_TIMEOUT_SECONDS must be > 0.")
        if self.poll_interval_seconds <= 0:
            raise ValueError("TRANSFER_DASHBOARD_POLL_INTERVAL_SECONDS must be > 0.")
        if self.settle_delay_seconds < 0:
            raise ValueError("TRANSFER_DASHBOARD_SETTLE_DELAY_SECONDS must be >= 0.")
        if self.job_page_size < 1:
            raise ValueError("TRANSFER_DASHBOARD_JOB_PAGE_SIZE must be >= 1.")
        if self.notification_history_size < 1:
            raise ValueError("TRANSFER_DASHBOARD_NOTIFICATION_HISTORY_SIZE must be >= 1.")
        return self

    model_config = SettingsConfigDict(env_prefix="TRANSFER_DASHBOARD_", extra="ignore")


__all__ = ["Settings"]
