"""
panelsim settings.
"""

from pathlib import Path
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PANELSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Simulation
    master_seed: int = Field(default=42, description="Master seed for the whole sweep")
    n_replications: int = Field(
        default=100, ge=1, description="Replications per feasible scenario"
    )
    significance_level: float = Field(
        default=0.05, gt=0.0, lt=1.0, description="Hausman test significance threshold"
    )
    n_jobs: int = Field(
        default=1, description="Worker processes (1 = sequential, -1 = all cores)"
    )

    # Paths
    sweep_config: Path | None = Field(
        default=None,
        description="YAML sweep design (default: built-in reference design)",
    )
    output_dir: Path = Field(default=Path("outputs"), description="Output directory")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
