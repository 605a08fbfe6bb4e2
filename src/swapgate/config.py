"""Application configuration via environment variables."""

from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

CsvList = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///swapgate.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    json_logs: bool = True

    # CORS (empty = permissive)
    cors_origins: CsvList = []

    # Wert on-ramp provider
    wert_env: str = "sandbox"
    wert_partner_id: str = ""
    wert_api_key: str = ""
    wert_auth_scheme: str = "bearer"
    wert_create_session_url: str = ""
    wert_webhook_secret: str = ""

    # Upstream REST APIs
    oneinch_api_key: str = ""
    oneinch_upstream_base: str = "https://api.1inch.dev"
    moralis_api_key: str = ""
    moralis_upstream_base: str = "https://deep-index.moralis.io/api/v2.2"
    upstream_timeout_seconds: float = 15.0

    # Proxy cache
    proxy_cache_ttl_seconds: float = 30.0
    price_cache_ttl_seconds: float = 20.0
    cache_sweep_interval_seconds: float = 60.0

    # App auth gate (JWT bearer or timestamped HMAC)
    jwt_secret: str = ""
    hmac_secret: str = ""
    hmac_max_skew_seconds: int = 300

    # Tokens
    token_registry_url: str = ""
    token_registry_ttl_seconds: float = 3600.0
    allow_tokens: CsvList = []
    deny_tokens: CsvList = []

    # RPC relay
    private_rpc_urls: CsvList = []
    rpc_timeout_seconds: float = 15.0

    # Price stream
    price_stream_interval_seconds: float = 10.0
    price_stream_max_addresses: int = 20
    price_fetch_timeout_seconds: float = 12.0

    # Session ledger maintenance
    pending_expiry_hours: int = 24
    retention_days: int = 60
    maintenance_interval_seconds: float = 3600.0

    # Push notifications (OneSignal)
    onesignal_app_id: str = ""
    onesignal_api_key: str = ""
    onesignal_api_url: str = "https://api.onesignal.com/notifications"

    # Admin and request gating
    basic_auth_user: str = ""
    basic_auth_pass: str = ""
    deny_ips: CsvList = []
    deny_countries: CsvList = []
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 60

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "SWAPGATE_",
    }

    @field_validator(
        "cors_origins", "private_rpc_urls", "deny_ips", mode="before"
    )
    @classmethod
    def _split_csv(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("allow_tokens", "deny_tokens", mode="before")
    @classmethod
    def _split_csv_lower(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        return [item.strip().lower() for item in value if item.strip()]

    @field_validator("deny_countries", mode="before")
    @classmethod
    def _split_csv_upper(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        return [item.strip().upper() for item in value if item.strip()]

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.onesignal_app_id and self.onesignal_api_key)

    @property
    def app_auth_enabled(self) -> bool:
        return bool(self.jwt_secret or self.hmac_secret)


settings = Settings()
