from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_ENTRY_POINT = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize addresses that are compared case-insensitively."""

        super().model_post_init(__context)

        if self.entry_point_address:
            object.__setattr__(self, "entry_point_address", self.entry_point_address.strip())

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=3001, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(
        default="development",
        description="Deployment environment name",
        validation_alias=AliasChoices("environment", "NODE_ENV", "APP_ENV"),
    )
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of origins allowed by CORS",
    )
    request_timeout_seconds: float = Field(default=20.0, description="Upstream request timeout")

    # Paymaster
    paymaster_url: str = Field(default="", description="Paymaster JSON-RPC endpoint")
    paymaster_id: str = Field(default="", description="Billing identifier sent in the sponsorship context")
    paymaster_api_key: str = Field(default="", description="Optional bearer token for the paymaster")
    paymaster_rpc_method: str = Field(default="pm_getPaymasterData", description="Sponsorship RPC method")

    # Bundler
    bundler_url: str = Field(default="", description="Bundler JSON-RPC endpoint")
    bundler_api_key: str = Field(default="", description="Optional x-api-key for the bundler")

    # Network
    entry_point_address: str = Field(
        default=DEFAULT_ENTRY_POINT,
        description="EntryPoint v0.7 contract address",
    )
    chain_id: int = Field(default=1946, description="The single chain this deployment serves")
    chain_name: str = Field(default="Soneium Minato", description="Human readable chain name")
    rpc_url: str = Field(default="https://rpc.minato.soneium.org", description="Chain RPC endpoint")

    # Sponsorship policy
    sponsorship_allowlist: str = Field(
        default="",
        description="Comma-separated sender addresses eligible for sponsorship (empty = everyone)",
    )
    sponsorship_daily_quota: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum sponsored operations per sender per UTC day",
    )

    # Client side (lifecycle orchestrator / transport adapter)
    backend_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of this backend as seen by clients",
        validation_alias=AliasChoices("backend_url", "API_URL", "VITE_API_URL"),
    )
    poll_interval_seconds: float = Field(default=3.0, gt=0, description="Receipt polling interval")
    max_poll_attempts: Optional[int] = Field(
        default=None,
        ge=1,
        description="Stop polling after this many attempts (unbounded when unset)",
    )
    poll_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Stop polling after this many seconds (unbounded when unset)",
    )

    @property
    def has_paymaster(self) -> bool:
        return bool(self.paymaster_url)

    @property
    def has_bundler(self) -> bool:
        return bool(self.bundler_url)

    @property
    def allowed_origin_list(self) -> List[str]:
        return _split_csv(self.allowed_origins)

    @property
    def sponsorship_allowlist_addresses(self) -> List[str]:
        return [address.lower() for address in _split_csv(self.sponsorship_allowlist)]


# Global settings instance
settings = Settings()
