"""
Lane Runner

One pass over a lane's wallets: K swaps per wallet, with randomized
pacing between swaps and between wallets.
"""

import random
from typing import Callable, Optional, Sequence

from .allocator import LaneAssignment
from .config import BotConfig
from .executor import SwapExecutor, SwapRequest
from .logging_utils import SecureLogger, logger as default_logger
from .tokens import TokenCatalog
from .utils import (
    Sleeper,
    ShutdownRequested,
    error_reason,
    generate_random_amount,
    generate_random_delay,
    select_random_token,
)
from .wallet import WalletHandle, open_wallet

FAILURE_COOLDOWN_SECONDS = 30
SWAP_DELAY_RANGE = (3, 10)        # seconds between swaps of one wallet
WALLET_DELAY_RANGE = (10, 30)     # seconds between wallets


class LaneRunner:
    """
    Runs swaps for the wallets assigned to one lane.

    Swaps are strictly sequential, so a wallet never has two transactions
    in flight from this lane. A failed swap (outcome or exception) costs a
    30 second cooldown and the pass moves on.
    """

    def __init__(
        self,
        assignment: LaneAssignment,
        secrets: Sequence[str],
        executor: SwapExecutor,
        catalog: TokenCatalog,
        config: BotConfig,
        sleeper: Sleeper,
        logger: Optional[SecureLogger] = None,
        rng: Optional[random.Random] = None,
        wallet_factory: Callable[[str, int], WalletHandle] = open_wallet,
    ):
        self.assignment = assignment
        self.secrets = secrets
        self.executor = executor
        self.catalog = catalog
        self.config = config
        self.sleeper = sleeper
        self.logger = logger or default_logger
        self.rng = rng or random.Random()
        self.wallet_factory = wallet_factory

    @property
    def swaps_per_pass(self) -> int:
        return len(self.assignment) * self.config.swaps_per_wallet

    def run_pass(self) -> int:
        """Run every swap for every wallet once. Returns the success count."""
        swaps_per_wallet = self.config.swaps_per_wallet
        wallet_indices = self.assignment.wallet_indices
        successes = 0

        for position, wallet_index in enumerate(wallet_indices):
            self.logger.info(f"Processing wallet #{wallet_index} ({position + 1}/{len(wallet_indices)})")

            for sequence in range(1, swaps_per_wallet + 1):
                self.sleeper.check()

                if self._run_swap(wallet_index, sequence):
                    successes += 1
                else:
                    self.logger.info(f"Waiting {FAILURE_COOLDOWN_SECONDS} seconds before next swap...")
                    self.sleeper.sleep(FAILURE_COOLDOWN_SECONDS)

                if sequence < swaps_per_wallet:
                    self._pause(SWAP_DELAY_RANGE, "next swap")

            if position < len(wallet_indices) - 1:
                self._pause(WALLET_DELAY_RANGE, "next wallet")

        self.logger.info(f"Lane pass completed with {successes}/{self.swaps_per_pass} successful swaps")
        return successes

    def _run_swap(self, wallet_index: int, sequence: int) -> bool:
        swaps_per_wallet = self.config.swaps_per_wallet
        try:
            amount = generate_random_amount(
                self.config.swap.min_amount, self.config.swap.max_amount, rng=self.rng
            )
            token = select_random_token(self.catalog.tokens, rng=self.rng)
            self.logger.info(
                f"Swap {sequence}/{swaps_per_wallet} for wallet #{wallet_index}: "
                f"{amount} {self.config.network.native_symbol} -> {token.symbol}"
            )

            wallet = self.wallet_factory(self.secrets[wallet_index], wallet_index)
            outcome = self.executor.execute(
                wallet,
                SwapRequest(
                    wallet_index=wallet_index,
                    token_address=token.address,
                    amount_in=amount,
                    sequence=sequence,
                ),
            )
        except ShutdownRequested:
            raise
        except Exception as e:
            self.logger.error(f"Error processing swap {sequence} for wallet #{wallet_index}: {error_reason(e)}")
            return False

        if outcome.success:
            self.logger.info(f"Swap {sequence}/{swaps_per_wallet} for wallet #{wallet_index} done: {outcome.tx_hash}")
            return True

        self.logger.error(
            f"Swap {sequence} for wallet #{wallet_index} failed ({outcome.kind.value}): "
            f"{outcome.error}. Continuing..."
        )
        return False

    def _pause(self, delay_range, label: str):
        delay_ms = generate_random_delay(*delay_range, rng=self.rng)
        self.logger.info(f"Waiting {delay_ms / 1000:g} seconds before {label}...")
        self.sleeper.sleep(delay_ms / 1000)
