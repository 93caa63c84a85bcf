"""Configuration management using Pydantic Settings"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./budget_insights.db"

    # External Services
    notification_webhook_url: str = "http://localhost:8002/mock-notifications"

    # Service
    service_name: str = "budget-insights"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = 3
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds

    # Analysis window and feed sizes
    analysis_window_days: int = 30
    suggestion_limit: int = 5
    inbox_capacity: int = 100

    # Cadence (seconds)
    notification_cooldown_seconds: float = 3600.0
    budget_check_interval_seconds: float = 1800.0
    refresh_interval_seconds: float = 300.0
    min_analysis_interval_seconds: float = 300.0

    # Health score weights (must sum to 1)
    weight_budget_adherence: float = 0.25
    weight_consistency: float = 0.20
    weight_savings_rate: float = 0.25
    weight_category_balance: float = 0.15
    weight_trend: float = 0.15
    target_savings_rate: float = 0.2

    @model_validator(mode="after")
    def check_weights(self) -> "Settings":
        total = sum(self.health_weights)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Health score weights must sum to 1, got {total:.3f}")
        return self

    @property
    def health_weights(self) -> tuple[float, float, float, float, float]:
        """Weights in sub-score order: adherence, consistency, savings, balance, trend"""
        return (
            self.weight_budget_adherence,
            self.weight_consistency,
            self.weight_savings_rate,
            self.weight_category_balance,
            self.weight_trend,
        )


settings = Settings()
