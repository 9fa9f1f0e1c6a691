from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class NetworkConfig:
    """Endpoint and chain identifier for one network."""

    lcd_url: str
    chain_id: str
    gas_prices_url: str


MAINNET = NetworkConfig(
    lcd_url="https://lcd.terra.dev",
    chain_id="columbus-5",
    gas_prices_url="https://fcd.terra.dev/v1/txs/gas_prices",
)

TESTNET = NetworkConfig(
    lcd_url="https://bombay-lcd.terra.dev",
    chain_id="bombay-12",
    gas_prices_url="https://bombay-fcd.terra.dev/v1/txs/gas_prices",
)

# Display symbols for the native denoms a sale can be priced in
NATIVE_TOKEN_SYMBOLS: Dict[str, str] = {
    "uusd": "UST",
    "uluna": "LUNA",
    "ukrw": "KRT",
    "usdr": "SDT",
    "umnt": "MNT",
    "ueur": "EUT",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        env_prefix="LBP_",
        case_sensitive=False,
        extra="ignore"
    )

    # Network
    is_testnet: bool = Field(default=False, description="Use the testnet presets")
    lcd_url: str = Field(default="", description="Override the LCD endpoint of the selected preset")
    chain_id: str = Field(default="", description="Override the chain id of the selected preset")
    gas_prices_url: str = Field(default="", description="Override the gas price endpoint")

    # Sale
    pair_address: str = Field(
        default="terra1fnywlw4edny3vw44x04xd67uzkdqluymgreu7g",
        description="LBP pair contract address",
    )
    token_code_id: int = Field(default=1796, description="Code id of the sale token contract")
    decimals: int = Field(default=6, ge=0, description="Fixed-point precision of native amounts")

    # Fees
    fee_safety_margin: Decimal = Field(
        default=Decimal("1.1"),
        ge=Decimal("1"),
        description="Multiplier applied to the estimated fee before clamping a native swap",
    )
    gas_adjustment: Decimal = Field(
        default=Decimal("1.4"),
        ge=Decimal("1"),
        description="Multiplier applied to simulated gas usage",
    )

    # Transaction monitoring
    tx_poll_interval_seconds: float = Field(default=1.0, gt=0, description="Confirmation poll interval")
    tx_poll_max_errors: int = Field(
        default=5,
        ge=0,
        description="Consecutive network errors tolerated while polling before giving up",
    )
    tx_confirmation_timeout_seconds: float = Field(
        default=180.0,
        gt=0,
        description="Seconds to wait for inclusion before the swap is marked timed out",
    )

    # HTTP
    request_timeout_seconds: float = Field(default=15.0, gt=0, description="Request timeout")
    request_max_retries: int = Field(default=3, ge=1, description="Attempts per request on transport errors")

    log_level: str = Field(default="INFO", description="Logging level")

    def network(self) -> NetworkConfig:
        """Resolve the preset for the selected network, applying overrides."""
        preset = TESTNET if self.is_testnet else MAINNET
        return NetworkConfig(
            lcd_url=(self.lcd_url or preset.lcd_url).rstrip("/"),
            chain_id=self.chain_id or preset.chain_id,
            gas_prices_url=self.gas_prices_url or preset.gas_prices_url,
        )

    def native_symbol(self, denom: Optional[str]) -> str:
        if not denom:
            return NATIVE_TOKEN_SYMBOLS["uusd"]
        return NATIVE_TOKEN_SYMBOLS.get(denom, denom)


# Global settings instance
settings = Settings()
