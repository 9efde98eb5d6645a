"""Pydantic Settings for application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings using Pydantic."""

    # Project paths
    project_root: Path = Path(__file__).parent.parent
    data_dir: Path = project_root / "data"
    output_dir: Path = data_dir / "outputs"
    state_dir: Path = data_dir / "state"
    state_store_path: Path = state_dir / "screener_state.db"
    log_file: Path | None = None
    log_level: str = "INFO"

    # Remote services
    api_base_url: str = "https://api.wheelstrategyoptions.com"
    query_path: str = "/wheelstrat/filter"
    save_filter_path: str = "/wheelstrat/saveFilter"
    update_filter_path: str = "/wheelstrat/updateFilter"
    fetch_filter_path: str = "/wheelstrat/fetchFilter"
    delete_filter_path: str = "/wheelstrat/deleteFilter"
    save_query_path: str = "/wheelstrat/saveQuery"
    api_token: str | None = None
    request_timeout_seconds: float = 15.0
    retry_attempts: int = 3
    retry_delay: float = 1.0

    # Query defaults
    default_option_type: str = "call"
    default_page_size: int = 50
    debounce_seconds: float = 0.8
    default_output_format: str = "csv"

    # Access / subscription
    grace_period_days: int = 7
    signup_trial_days: int | None = None
    preview_rows: int = 5

    # Result normalization
    premium_multiplier: float = 100.0
    expiration_shift_days: int = 1

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def supported_option_types(self) -> list[str]:
        """Get list of supported option types."""
        return ["call", "put"]


# Global settings instance
settings = Settings()
