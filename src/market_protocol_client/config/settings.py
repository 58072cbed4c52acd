"""Settings configuration for the MARKET Protocol client."""

from dotenv import load_dotenv
from eth_account import Account
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_EVENT_TIMEOUT_SECONDS, WS_CONNECT_ATTEMPTS

# Load environment variables from .env file
load_dotenv()


def _validate_address(value: str) -> str:
    if not value.startswith("0x") or len(value) != 42:
        raise ValueError(f"Invalid Ethereum address format: {value}")
    try:
        int(value, 16)
    except ValueError as e:
        raise ValueError(f"Invalid Ethereum address format: {value}") from e
    return value


class Settings(BaseSettings):
    """Client settings loaded from environment variables (prefix ``MARKET_``)."""

    model_config = SettingsConfigDict(
        env_prefix="MARKET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Chain access
    rpc_url: str = Field(..., description="HTTP(S) JSON-RPC endpoint")
    ws_url: str | None = Field(
        None, description="WebSocket endpoint for log subscriptions (derived from rpc_url if unset)"
    )
    network_id: int | None = Field(None, description="Expected network id (checked on connect)")

    # Signing
    private_key: str | None = Field(
        None,
        description="Signs transactions locally; node-managed accounts are used if unset",
    )
    default_account: str | None = Field(
        None, description="Sender address (derived from private_key when set)"
    )

    # Deployed protocol contracts
    market_token_address: str = Field(..., description="MKT fee token / enablement registry")
    registry_address: str = Field(..., description="MarketContractRegistry address")
    order_lib_address: str | None = Field(
        None, description="OrderLib address; orders are hashed locally when unset"
    )

    # Operational
    event_timeout_seconds: float = Field(
        default=DEFAULT_EVENT_TIMEOUT_SECONDS,
        gt=0,
        description="How long to wait for the settlement event of a submitted transaction",
    )
    ws_connect_attempts: int = Field(default=WS_CONNECT_ATTEMPTS, ge=1, le=20)
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: str | None) -> str | None:
        """Validate private key format."""
        if v is None or v == "":
            return None
        if not v.startswith("0x"):
            v = "0x" + v
        if len(v) != 66:
            raise ValueError("Private key must be a 66-character hex string starting with 0x")
        try:
            int(v, 16)
        except ValueError as e:
            raise ValueError("Private key must be a valid hexadecimal string") from e
        return v

    @field_validator("market_token_address", "registry_address")
    @classmethod
    def validate_required_address(cls, v: str) -> str:
        """Validate contract address format."""
        return _validate_address(v)

    @field_validator("order_lib_address", "default_account")
    @classmethod
    def validate_optional_address(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        return _validate_address(v)

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("rpc_url must start with http:// or https://")
        return v

    @field_validator("ws_url")
    @classmethod
    def validate_ws_url(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("ws_url must start with ws:// or wss://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @model_validator(mode="after")
    def derive_defaults(self) -> "Settings":
        """Derive the websocket URL and the sender address."""
        if self.ws_url is None:
            self.ws_url = self.rpc_url.replace("https://", "wss://").replace("http://", "ws://")

        if self.private_key is not None:
            try:
                derived = Account.from_key(self.private_key).address
            except Exception as e:
                raise ValueError(f"Failed to derive address from private key: {e}") from e
            if self.default_account and self.default_account.lower() != derived.lower():
                raise ValueError(
                    f"default_account ({self.default_account}) does not match the address "
                    f"derived from private_key ({derived})"
                )
            self.default_account = derived

        return self
