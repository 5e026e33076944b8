"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from accumulator.exceptions import ConfigurationInvalid

logger = logging.getLogger(__name__)

POLYGON_CHAIN_ID = 137


class ChainConfig(BaseModel):
    """Network identity."""

    chain_id: int = POLYGON_CHAIN_ID
    request_timeout_seconds: float = 30.0


class ContractsConfig(BaseModel):
    """Contract endpoints (Aave v2 and QuickSwap on Polygon by default)."""

    incentives_controller: str = "0x357D51124f59836DeD84c8a1730D72B749d8BC23"
    data_provider: str = "0x7551b5D2763519d4e37e8B81929D336De671d46d"
    lending_pool: str = "0x8dFf5E27EA6b7AC08EbFdf9eB090F32ee9a30fcf"
    exchange_factory: str = "0x5757371414417b8C6CAad45bAeF941aBc7d3Ab32"
    exchange_router: str = "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff"


class TokensConfig(BaseModel):
    """Reserve symbols for the reward and deposit assets."""

    award_token: str = "WMATIC"
    deposit_token: str = "USDT"


class GasConfig(BaseModel):
    """Fee price source, ceiling and gas allowance."""

    price_limit_gwei: float | None = None
    gas_limit: int = 450000  # enough for the swap, the most expensive step
    price_source: Literal["gas_station", "node"] = "gas_station"
    gas_station_url: str = "https://gasstation-mainnet.matic.network"
    timeout_seconds: float = 10.0


class SwapConfig(BaseModel):
    """Swap guard parameters."""

    slippage_buffer: int = 1000  # smallest token units, not a percentage
    deadline_minutes: int = 5


class ConfirmationConfig(BaseModel):
    """Receipt polling."""

    poll_interval_seconds: float = 15.0


class SchedulerConfig(BaseModel):
    """Cron schedule for recurring runs."""

    cron_pattern: str = ""
    timezone: str = "UTC"


class AuditConfig(BaseModel):
    """CSV event log of confirmed transactions."""

    create_event_log: bool = False
    file_name: str = "events.csv"


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Network & wallet
    network_url: str = ""
    wallet_address: str = ""
    wallet_private_key: str = ""

    logfire_token: str = ""

    # Nested configuration sections
    chain: ChainConfig = Field(default_factory=ChainConfig)
    contracts: ContractsConfig = Field(default_factory=ContractsConfig)
    tokens: TokensConfig = Field(default_factory=TokensConfig)
    gas: GasConfig = Field(default_factory=GasConfig)
    swap: SwapConfig = Field(default_factory=SwapConfig)
    confirmation: ConfirmationConfig = Field(default_factory=ConfirmationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def audit_file(self) -> Path:
        return self.data_dir / self.audit.file_name

    def validate_required(self, scheduled: bool = False) -> None:
        """Raise ConfigurationInvalid naming every missing required setting."""
        missing = []
        if not self.network_url:
            missing.append("NETWORK_URL")
        if not self.wallet_address:
            missing.append("WALLET_ADDRESS")
        if not self.wallet_private_key:
            missing.append("WALLET_PRIVATE_KEY")
        if scheduled and not self.scheduler.cron_pattern:
            missing.append("SCHEDULER__CRON_PATTERN")
        if missing:
            raise ConfigurationInvalid(missing)

    def loggable(self) -> dict[str, Any]:
        """Settings dump with secrets masked."""
        data = self.model_dump(mode="json")
        data["wallet_private_key"] = "***" if self.wallet_private_key else ""
        data["logfire_token"] = "***" if self.logfire_token else ""
        return data

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m accumulator init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in [
                "chain",
                "contracts",
                "tokens",
                "gas",
                "swap",
                "confirmation",
                "scheduler",
                "audit",
            ]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
