"""
Auto Swap Bot for Tea Sepolia

Swaps small random amounts of native TEA into random tokens through a
Uniswap-V2 style router, across many wallets, in repeating cycles.

Usage:
    from swap_bot import BotConfig, LaneOrchestrator, connect

    # Or from the command line: swap-bot run
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config import BotConfig, ConfigManager
from .allocator import LaneAssignment, build_lane_assignments, distribute
from .chain import connect, get_router
from .executor import SwapExecutor, SwapOutcome, SwapRequest, OutcomeKind
from .lane import LaneRunner
from .orchestrator import LaneOrchestrator, LaneReport
from .scheduler import CycleScheduler, ScheduleState, SchedulerState
from .tokens import TokenCatalog, TokenDescriptor, TOKEN_LIST
from .wallet import WalletHandle, SecureKeyManager, load_wallet_secrets
from .utils import (
    Sleeper,
    ErrorKind,
    ConfigError,
    KeysError,
    TransactionError,
    ShutdownRequested,
)

__all__ = [
    "BotConfig",
    "ConfigManager",
    "LaneAssignment",
    "build_lane_assignments",
    "distribute",
    "connect",
    "get_router",
    "SwapExecutor",
    "SwapOutcome",
    "SwapRequest",
    "OutcomeKind",
    "LaneRunner",
    "LaneOrchestrator",
    "LaneReport",
    "CycleScheduler",
    "ScheduleState",
    "SchedulerState",
    "TokenCatalog",
    "TokenDescriptor",
    "TOKEN_LIST",
    "WalletHandle",
    "SecureKeyManager",
    "load_wallet_secrets",
    "Sleeper",
    "ErrorKind",
    "ConfigError",
    "KeysError",
    "TransactionError",
    "ShutdownRequested",
]
