"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "flowsight-core"
    log_level: str = "INFO"

    # Randomness (None = OS entropy)
    random_seed: Optional[int] = None

    # Simulation budgets
    bootstrap_iterations: int = 500
    monte_carlo_simulations: int = 1000

    # Sample-size policy
    min_category_transactions: int = 10
    min_anomaly_transactions: int = 10

    # Forecast horizons
    default_forecast_weeks: int = 52
    default_projection_months: int = 12


settings = Settings()
