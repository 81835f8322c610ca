"""
Utility Module

Exceptions, error classification, formatting helpers, randomization
utilities and the shared sleeper used for all pacing.
"""

import re
import random
import threading
from enum import Enum
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Optional, Sequence, TypeVar

from web3.exceptions import ContractLogicError, TimeExhausted

T = TypeVar("T")

# Swap amounts are drawn on a 5-decimal grid
AMOUNT_QUANTUM = Decimal("0.00001")


class ConfigError(Exception):
    """Configuration file missing or invalid."""
    pass


class KeysError(Exception):
    """Wallet secrets missing or unreadable."""
    pass


class TransactionError(Exception):
    """Transaction was mined but reverted."""
    pass


class ShutdownRequested(Exception):
    """Raised from a sleep once the process is shutting down."""
    pass


class ErrorKind(str, Enum):
    """Error taxonomy used in logs and swap outcomes."""
    CONFIG_MISSING = "config_missing"
    KEYS_MISSING = "keys_missing"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    GAS_ESTIMATION_FAILED = "gas_estimation_failed"
    NETWORK_RPC_ERROR = "network_rpc_error"
    TX_REVERTED = "tx_reverted"
    TX_REJECTED = "tx_rejected"
    EXHAUSTED_RETRIES = "exhausted_retries"
    CYCLE_LEVEL_ERROR = "cycle_level_error"


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised during a swap attempt to an error kind."""
    if isinstance(error, TransactionError):
        return ErrorKind.TX_REVERTED
    if isinstance(error, TimeExhausted):
        return ErrorKind.NETWORK_RPC_ERROR
    # web3 surfaces node-side rejections (nonce, underpriced, funds) as ValueError
    if isinstance(error, (ContractLogicError, ValueError)):
        return ErrorKind.TX_REJECTED
    return ErrorKind.NETWORK_RPC_ERROR


def error_reason(error: BaseException) -> str:
    """Short, sanitized reason string for an exception."""
    reason = getattr(error, "reason", None) or getattr(error, "message", None) or str(error)
    if not reason:
        reason = error.__class__.__name__
    return sanitize_error_message(reason)


def sanitize_error_message(error: str) -> str:
    """
    Sanitize error messages to remove sensitive data.

    Args:
        error: Original error message

    Returns:
        Sanitized error message safe for display
    """
    if not isinstance(error, str):
        error = str(error)

    patterns = [
        (r'https?://[^\s]+', '[URL]'),
        (r'password["\']?\s*[:=]\s*\S+', 'password=[REDACTED]'),
    ]

    sanitized = error
    for pattern, replacement in patterns:
        sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

    return sanitized


# Formatting utilities

def format_address(address: str, length: int = 8) -> str:
    """Format Ethereum address with ellipsis."""
    if len(address) <= length + 2:
        return address
    return f"{address[:length + 2]}..."


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}m {secs}s" if secs > 0 else f"{minutes}m"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"


def format_units(amount: int, decimals: int = 18) -> str:
    """Format a raw integer token amount without float rounding."""
    value = Decimal(amount) / (Decimal(10) ** decimals)
    text = format(value.normalize(), "f")
    return text if "." in text or text == "0" else f"{text}.0"


# Randomization utilities

def amount_steps(min_amount, max_amount):
    """First and last 5-decimal grid step inside [min, max]. The range is empty when first > last."""
    low = Decimal(str(min_amount))
    high = Decimal(str(max_amount))
    low_steps = int((low / AMOUNT_QUANTUM).to_integral_value(rounding=ROUND_CEILING))
    high_steps = int((high / AMOUNT_QUANTUM).to_integral_value(rounding=ROUND_FLOOR))
    return low_steps, high_steps


def generate_random_amount(min_amount, max_amount, rng: Optional[random.Random] = None) -> str:
    """
    Draw a random swap amount between min and max with 5 decimal places.

    The draw is uniform over the 5-decimal values inside [min, max], so the
    formatted result never falls outside the bounds.

    Raises:
        ValueError: If min > max or no 5-decimal value lies in the range
    """
    rng = rng or random
    low = Decimal(str(min_amount))
    high = Decimal(str(max_amount))
    if low > high:
        raise ValueError(f"min amount {low} exceeds max amount {high}")

    low_steps, high_steps = amount_steps(low, high)
    if low_steps > high_steps:
        raise ValueError(f"no 5-decimal amount between {low} and {high}")

    steps = rng.randint(low_steps, high_steps)
    return f"{Decimal(steps) * AMOUNT_QUANTUM:.5f}"


def generate_random_delay(min_seconds: int, max_seconds: int, rng: Optional[random.Random] = None) -> int:
    """Random whole-second delay between min and max (inclusive), in milliseconds."""
    rng = rng or random
    if min_seconds > max_seconds:
        raise ValueError(f"min delay {min_seconds} exceeds max delay {max_seconds}")
    return rng.randint(int(min_seconds), int(max_seconds)) * 1000


def select_random_token(catalog: Sequence[T], rng: Optional[random.Random] = None) -> T:
    """Pick a token uniformly from the catalog."""
    if not catalog:
        raise ValueError("token catalog is empty")
    rng = rng or random
    return rng.choice(list(catalog))


class Sleeper:
    """
    Interruptible sleep shared by every lane.

    All pacing (retry delays, swap and wallet gaps, cycle cooldowns) goes
    through one sleeper so that a shutdown request wakes every lane at its
    next suspension point.
    """

    def __init__(self, stop_event: Optional[threading.Event] = None):
        self.stop_event = stop_event or threading.Event()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def request_stop(self):
        self.stop_event.set()

    def check(self):
        """Raise ShutdownRequested if a stop was requested."""
        if self.stop_event.is_set():
            raise ShutdownRequested()

    def sleep(self, seconds: float):
        """Sleep for the given seconds, aborting early on shutdown."""
        self.check()
        if seconds > 0 and self.stop_event.wait(seconds):
            raise ShutdownRequested()
