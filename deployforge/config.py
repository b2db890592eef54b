"""Environment-driven settings.

Centralized config using pydantic-settings.  Reads from a ``.env`` file and
``DEPLOYFORGE_*`` environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ForgeSettings(BaseSettings):
    """Process-wide settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DEPLOYFORGE_RPC_URL=https://sepolia.example.org
        export DEPLOYFORGE_PRIVATE_KEY=0x...
        export DEPLOYFORGE_REGISTRY_DIR=/data/addresses

    Or via .env file::

        DEPLOYFORGE_ENVIRONMENT=production
        DEPLOYFORGE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DEPLOYFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Inputs and state
    specs_path: Path = Path("deploy/specs.json")
    artifacts_dir: Path = Path("build/contracts")
    registry_dir: Path = Path("deploy/addresses")
    proxy_contract: str = "ForgeProxy"

    # Chain access
    rpc_url: str = ""
    private_key: str = ""
    factory_address: str = ""
    rpc_timeout_seconds: float = 30.0
    rpc_max_retries: int = 3
    rpc_backoff_seconds: float = 0.5
    confirmation_timeout_seconds: float = 180.0
    gas_limit: int | None = None

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"
