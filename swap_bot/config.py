"""
Configuration Management Module

Loads the YAML configuration file into typed settings objects.
Keys in the file are camelCase;
attributes are snake_case.
"""

from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple

import yaml

from .utils import ConfigError, amount_steps


@dataclass
class NetworkSettings:
    """Fixed network parameters (Tea Sepolia by default)."""
    rpc_url: str = "https://tea-sepolia.g.alchemy.com/public"
    chain_id: int = 10218
    router_address: str = "0xE15efbaA098AA81BaB70c471FeA760684dc776ae"
    weth_address: str = "0x7752dBd604a5C43521408ee80486853dCEb4cceB"
    native_symbol: str = "TEA"
    request_timeout: int = 30

    KEYS = {
        "rpcUrl": "rpc_url",
        "chainId": "chain_id",
        "routerAddress": "router_address",
        "wethAddress": "weth_address",
        "nativeSymbol": "native_symbol",
        "requestTimeout": "request_timeout",
    }


@dataclass
class SwapSettings:
    """Bounds for the random swap amount, in native currency."""
    min_amount: float = 0.01
    max_amount: float = 0.02

    KEYS = {
        "minAmount": "min_amount",
        "maxAmount": "max_amount",
    }


@dataclass
class TransactionSettings:
    """Per-swap transaction parameters."""
    slippage: float = 0.5                 # percent
    gas_price_multiplier: float = 1.1
    timeout_minutes: int = 20             # deadline window
    max_retries: int = 3                  # attempts per swap
    retry_delay: int = 5000               # ms between attempts
    receipt_timeout: int = 120            # seconds to wait for inclusion
    refresh_on_retry: bool = True         # recompute deadline/gas price per attempt
    pre_send_delay: Optional[Tuple[int, int]] = (2, 5)  # seconds, None disables

    KEYS = {
        "slippage": "slippage",
        "gasPriceMultiplier": "gas_price_multiplier",
        "timeoutMinutes": "timeout_minutes",
        "maxRetries": "max_retries",
        "retryDelay": "retry_delay",
        "receiptTimeout": "receipt_timeout",
        "refreshOnRetry": "refresh_on_retry",
        "preSendDelay": "pre_send_delay",
    }


@dataclass
class KeySettings:
    """Where wallet secrets come from."""
    file: str = "pk.txt"
    encrypted: bool = False
    password_env: str = "SWAP_BOT_KEYS_PASSWORD"

    KEYS = {
        "file": "file",
        "encrypted": "encrypted",
        "passwordEnv": "password_env",
    }


@dataclass
class LoggingSettings:
    level: str = "INFO"
    dir: Optional[str] = "logs"

    KEYS = {
        "level": "level",
        "dir": "dir",
    }


@dataclass
class BotConfig:
    """Bot configuration settings."""

    # Scheduling
    swaps_per_wallet: int = 1
    time_between_swaps: float = 25.0      # hours between cycles
    threads: int = 1                      # execution lanes
    max_cycles: Optional[int] = None      # None = run forever
    dry_run: bool = False

    swap: SwapSettings = field(default_factory=SwapSettings)
    transaction: TransactionSettings = field(default_factory=TransactionSettings)
    network: NetworkSettings = field(default_factory=NetworkSettings)
    keys: KeySettings = field(default_factory=KeySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    KEYS = {
        "maxSwapsPerBatch": "swaps_per_wallet",
        "swapsPerWallet": "swaps_per_wallet",
        "timeBetweenSwaps": "time_between_swaps",
        "threads": "threads",
        "maxCycles": "max_cycles",
        "dryRun": "dry_run",
    }

    SECTIONS = {
        "swap": SwapSettings,
        "transaction": TransactionSettings,
        "network": NetworkSettings,
        "keys": KeySettings,
        "logging": LoggingSettings,
    }

    @property
    def cooldown_seconds(self) -> float:
        """Sleep between cycles, derived from time_between_swaps."""
        return self.time_between_swaps * 60 * 60

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BotConfig":
        """Create config from a parsed YAML mapping, ignoring unknown keys."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        kwargs = _map_keys(cls.KEYS, data)
        for section, section_cls in cls.SECTIONS.items():
            section_data = data.get(section)
            if section_data is None:
                continue
            if not isinstance(section_data, dict):
                raise ConfigError(f"'{section}' must be a mapping")
            kwargs[section] = section_cls(**_map_keys(section_cls.KEYS, section_data))

        config = cls(**kwargs)
        config.validate()
        return config

    def validate(self):
        """Check value ranges; raises ConfigError naming the offending key."""
        _require(_is_int(self.swaps_per_wallet) and self.swaps_per_wallet >= 1,
                 "maxSwapsPerBatch", "must be an integer >= 1")
        _require(_is_number(self.time_between_swaps) and self.time_between_swaps > 0,
                 "timeBetweenSwaps", "must be a positive number of hours")
        _require(_is_int(self.threads) and self.threads >= 1,
                 "threads", "must be an integer >= 1")
        _require(self.max_cycles is None or (_is_int(self.max_cycles) and self.max_cycles >= 1),
                 "maxCycles", "must be null or an integer >= 1")

        swap = self.swap
        _require(_is_number(swap.min_amount) and swap.min_amount > 0,
                 "swap.minAmount", "must be a positive number")
        _require(_is_number(swap.max_amount) and swap.max_amount >= swap.min_amount,
                 "swap.maxAmount", "must be a number >= swap.minAmount")
        low_steps, high_steps = amount_steps(swap.min_amount, swap.max_amount)
        _require(low_steps <= high_steps,
                 "swap.minAmount", "must leave a 5-decimal amount up to swap.maxAmount")

        tx = self.transaction
        _require(_is_number(tx.slippage) and 0 <= tx.slippage < 100,
                 "transaction.slippage", "must be a percentage in [0, 100)")
        _require(_is_number(tx.gas_price_multiplier) and tx.gas_price_multiplier > 0,
                 "transaction.gasPriceMultiplier", "must be positive")
        _require(_is_int(tx.timeout_minutes) and tx.timeout_minutes >= 1,
                 "transaction.timeoutMinutes", "must be an integer >= 1")
        _require(_is_int(tx.max_retries) and tx.max_retries >= 1,
                 "transaction.maxRetries", "must be an integer >= 1")
        _require(_is_int(tx.retry_delay) and tx.retry_delay >= 0,
                 "transaction.retryDelay", "must be a non-negative number of milliseconds")
        _require(_is_number(tx.receipt_timeout) and tx.receipt_timeout > 0,
                 "transaction.receiptTimeout", "must be positive")

        if tx.pre_send_delay is not None:
            delay = tx.pre_send_delay
            _require(isinstance(delay, (list, tuple)) and len(delay) == 2
                     and all(_is_int(v) and v >= 0 for v in delay) and delay[0] <= delay[1],
                     "transaction.preSendDelay", "must be null or [min, max] whole seconds")
            tx.pre_send_delay = (int(delay[0]), int(delay[1]))

        _require(isinstance(self.network.rpc_url, str) and self.network.rpc_url.startswith(("http://", "https://")),
                 "network.rpcUrl", "must be an http(s) URL")
        _require(_is_int(self.network.chain_id), "network.chainId", "must be an integer")


def _map_keys(mapping: Dict[str, str], data: Dict[str, Any]) -> Dict[str, Any]:
    return {mapping[k]: v for k, v in data.items() if k in mapping}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require(condition: bool, key: str, message: str):
    if not condition:
        raise ConfigError(f"Invalid configuration: '{key}' {message}")


class ConfigManager:
    """Reads the bot configuration file."""

    def __init__(self, config_path: Path = Path("./config.yaml")):
        self.config_path = Path(config_path)

    def exists(self) -> bool:
        return self.config_path.exists()

    def load_config(self) -> BotConfig:
        """Load and validate the configuration file."""
        if not self.config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {self.config_path}. Please create config.yaml"
            )

        try:
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing {self.config_path}: {e}") from e

        return BotConfig.from_dict(data)

