"""
Settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration with validation. All
settings can be overridden via environment variables (case-insensitive) or
a .env file.

Example:
    # Via environment variables
    export VAULT_ADDR="https://vault.company.com:8200"
    export VAULT_TOKEN="s.abc123"
    export VAULT_ENGINE=kv1
    export VAULT_MAX_TOKEN_TTL=600

    # In code
    from vaultkeeper.config import Settings
    settings = Settings()
    policy = settings.renewal_policy()
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from vaultkeeper.engines import SecretEngine
from vaultkeeper.renewer import RenewalPolicy


class Settings(BaseSettings):
    """
    Store connection, renewal policy and service settings.

    All token TTL values are whole seconds, matching the unit the store
    reports TTLs in.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store connection
    vault_addr: str = Field(description="Vault server URL")
    vault_token: SecretStr = Field(description="Initial Vault token")
    vault_engine: SecretEngine = Field(
        default=SecretEngine.KV2,
        description="Secret engine response format (kv1 or kv2)",
    )
    vault_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for every store call, in seconds",
    )
    vault_verify: bool = Field(
        default=True,
        description="Verify TLS certificates. Disable only for local development",
    )

    # Renewal policy
    vault_token_polling_period: float = Field(
        default=15.0,
        gt=0,
        description="Seconds between token TTL checks",
    )
    vault_max_token_ttl: int = Field(
        default=300,
        ge=0,
        description="Renew the token when its TTL falls below this many seconds",
    )
    vault_renew_ttl_increment: int = Field(
        default=600,
        gt=0,
        description="Seconds requested on each renewal",
    )

    # Service
    service_name: str = "vaultkeeper"
    log_level: str = "INFO"
    metrics_port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Prometheus exporter port; 0 disables the exporter",
    )

    def renewal_policy(self) -> RenewalPolicy:
        return RenewalPolicy(
            polling_period=self.vault_token_polling_period,
            threshold=self.vault_max_token_ttl,
            increment=self.vault_renew_ttl_increment,
        )
