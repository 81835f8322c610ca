"""
Swap Executor

Runs one native-currency -> token swap through the router:
quote, slippage bound, gas pricing, estimation, submission, confirmation,
with a bounded number of attempts.
"""

import math
import time
import random
from enum import Enum
from decimal import Decimal
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from web3 import Web3
from tenacity import Retrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_fixed

from .config import BotConfig
from .chain import get_token_contract
from .logging_utils import SecureLogger, logger as default_logger
from .tokens import TokenCatalog, TokenDescriptor
from .utils import (
    ErrorKind,
    Sleeper,
    ShutdownRequested,
    TransactionError,
    classify_error,
    error_reason,
    format_address,
    format_units,
    generate_random_delay,
)
from .wallet import WalletHandle

FALLBACK_GAS_LIMIT = 300_000
FALLBACK_GAS_PRICE = Web3.to_wei(5, "gwei")
GAS_LIMIT_BUFFER_PERCENT = 120
DRY_RUN_TX_HASH = "0xDRYRUN"


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    EXHAUSTED_RETRIES = "exhausted_retries"


@dataclass
class SwapRequest:
    """One swap to perform; built fresh by the lane for every swap."""
    wallet_index: int
    token_address: str
    amount_in: str          # decimal native amount, e.g. "0.01234"
    sequence: int = 1       # swap number for this wallet within the cycle


@dataclass
class SwapOutcome:
    """Terminal result of a swap."""
    success: bool
    kind: OutcomeKind
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    attempts: int = 0


@dataclass
class TransactionParams:
    deadline: int
    gas_price: int


@dataclass
class Submission:
    """Nonce shared by the attempts of one swap."""
    nonce: Optional[int] = None


def calculate_min_output(expected_output: int, slippage_percent: float) -> int:
    """
    Minimum accepted output for a slippage percentage.

    Integer math on a per-mille scale: the percentage is floored to 0.1%
    steps, so 0.05% slippage behaves like 0%.
    """
    return expected_output * (1000 - math.floor(slippage_percent * 10)) // 1000


def apply_gas_multiplier(gas_price: int, multiplier: float) -> int:
    """Scale a gas price by a multiplier floored to two decimals."""
    return gas_price * math.floor(multiplier * 100) // 100


def buffered_gas_limit(estimated_gas: int) -> int:
    """Add a 20% safety buffer to a gas estimate."""
    return estimated_gas * GAS_LIMIT_BUFFER_PERCENT // 100


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, Exception) and not isinstance(error, ShutdownRequested)


class SwapExecutor:
    """
    Executes swaps for one lane.

    Holds no per-wallet state: the wallet handle arrives with each call.
    The nonce is read once per swap and reused by its retries, so a resend
    replaces a still-pending transaction instead of adding a second swap.
    """

    def __init__(
        self,
        w3: Web3,
        router,
        catalog: TokenCatalog,
        config: BotConfig,
        sleeper: Sleeper,
        logger: Optional[SecureLogger] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.w3 = w3
        self.router = router
        self.catalog = catalog
        self.settings = config.transaction
        self.network = config.network
        self.dry_run = config.dry_run
        self.sleeper = sleeper
        self.logger = logger or default_logger
        self.rng = rng or random.Random()
        self.clock = clock
        self.weth = Web3.to_checksum_address(config.network.weth_address)

    def execute(self, wallet: WalletHandle, request: SwapRequest) -> SwapOutcome:
        """
        Run the full swap pipeline for one wallet and token.

        Token lookup errors and errors before the first attempt (balance
        read, quote) propagate to the caller. Attempt failures are retried
        up to transaction.max_retries times.
        """
        token = self.catalog.get(request.token_address)
        amount_in = Web3.to_wei(Decimal(request.amount_in), "ether")
        native = self.network.native_symbol
        wallet_label = f"#{wallet.index} {format_address(wallet.address)}"

        self.logger.info(
            f"Starting swap {request.sequence}: {request.amount_in} {native} -> "
            f"{token.symbol} ({token.name}) using wallet {wallet_label}"
        )

        balance = self.w3.eth.get_balance(wallet.address)
        if balance < amount_in:
            reason = (
                f"Required {request.amount_in} {native}, "
                f"have {format_units(balance)} {native}"
            )
            self.logger.error(f"Insufficient balance for wallet {wallet_label}: {reason}")
            return SwapOutcome(
                success=False,
                kind=OutcomeKind.INSUFFICIENT_BALANCE,
                error=reason,
                error_kind=ErrorKind.INSUFFICIENT_BALANCE,
            )

        path = [self.weth, Web3.to_checksum_address(token.address)]
        amounts_out = self.router.functions.getAmountsOut(amount_in, path).call()
        expected_output = amounts_out[-1]
        min_output = calculate_min_output(expected_output, self.settings.slippage)

        self.logger.info(f"Expected output: {format_units(expected_output, token.decimals)} {token.symbol}")
        self.logger.info(
            f"Minimum output ({self.settings.slippage}% slippage): "
            f"{format_units(min_output, token.decimals)} {token.symbol}"
        )

        max_attempts = self.settings.max_retries
        params: Optional[TransactionParams] = None
        submission = Submission()
        result: Optional[Tuple[str, Optional[int]]] = None
        attempts = 0

        retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(self.settings.retry_delay / 1000),
            retry=retry_if_exception(_is_retryable),
            sleep=self.sleeper.sleep,
            after=lambda state: self._log_failed_attempt(state, wallet_label),
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        self.logger.info(f"Retry attempt {attempts}/{max_attempts}...")
                    if params is None or self.settings.refresh_on_retry:
                        params = self._transaction_params()
                    result = self._attempt(wallet, amount_in, min_output, path, params, submission)
        except ShutdownRequested:
            raise
        except Exception as e:
            reason = error_reason(e)
            self.logger.error(
                f"All swap attempts failed after {attempts} attempt(s) for wallet {wallet_label}: {reason}"
            )
            return SwapOutcome(
                success=False,
                kind=OutcomeKind.EXHAUSTED_RETRIES,
                error=reason,
                error_kind=classify_error(e),
                attempts=attempts,
            )

        tx_hash, block_number = result
        if not self.dry_run:
            self._log_balances(wallet, token)

        return SwapOutcome(
            success=True,
            kind=OutcomeKind.SUCCESS,
            tx_hash=tx_hash,
            block_number=block_number,
            attempts=attempts,
        )

    def _transaction_params(self) -> TransactionParams:
        """Deadline and gas price for the next submission."""
        deadline = int(self.clock()) + 60 * self.settings.timeout_minutes
        gas_price = self._gas_price()
        self.logger.debug(f"Deadline {deadline}, gas price {Web3.from_wei(gas_price, 'gwei')} gwei")
        return TransactionParams(deadline=deadline, gas_price=gas_price)

    def _gas_price(self) -> int:
        """Network gas price with the configured multiplier, 5 gwei on failure."""
        try:
            network_price = int(self.w3.eth.gas_price)
        except Exception as e:
            self.logger.error(f"Error getting gas price: {error_reason(e)}")
            return FALLBACK_GAS_PRICE
        return apply_gas_multiplier(network_price, self.settings.gas_price_multiplier)

    def _attempt(
        self,
        wallet: WalletHandle,
        amount_in: int,
        min_output: int,
        path: List[str],
        params: TransactionParams,
        submission: Submission,
    ) -> Tuple[str, Optional[int]]:
        """Estimate, sign, send and confirm once. Raises on any failure."""
        swap_fn = self.router.functions.swapExactETHForTokens(
            min_output, path, wallet.address, params.deadline
        )
        tx_fields = {
            "from": wallet.address,
            "value": amount_in,
            "gasPrice": params.gas_price,
        }

        try:
            estimated_gas = swap_fn.estimate_gas(tx_fields)
            gas_limit = buffered_gas_limit(estimated_gas)
            self.logger.info(f"Estimated gas: {estimated_gas}, with buffer: {gas_limit}")
        except Exception as e:
            self.logger.warning(
                f"Gas estimation failed ({ErrorKind.GAS_ESTIMATION_FAILED.value}): {error_reason(e)}"
            )
            gas_limit = FALLBACK_GAS_LIMIT
            self.logger.info(f"Using fallback gas limit: {gas_limit}")

        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would send swap with gas limit {gas_limit}")
            return DRY_RUN_TX_HASH, None

        if self.settings.pre_send_delay:
            delay_ms = generate_random_delay(*self.settings.pre_send_delay, rng=self.rng)
            self.logger.info(f"Adding random delay of {delay_ms / 1000:g} seconds before sending transaction...")
            self.sleeper.sleep(delay_ms / 1000)

        if submission.nonce is None:
            submission.nonce = self.w3.eth.get_transaction_count(wallet.address, "pending")
        tx = swap_fn.build_transaction({
            **tx_fields,
            "gas": gas_limit,
            "nonce": submission.nonce,
            "chainId": self.network.chain_id,
        })

        signed = wallet.sign_transaction(tx)
        raw_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash = Web3.to_hex(raw_hash)
        self.logger.info(f"Transaction submitted: {tx_hash}")

        receipt = self.w3.eth.wait_for_transaction_receipt(raw_hash, timeout=self.settings.receipt_timeout)
        if receipt["status"] != 1:
            # a mined revert consumes the nonce
            submission.nonce = None
            raise TransactionError(f"Transaction reverted in block {receipt['blockNumber']}: {tx_hash}")

        self.logger.info(f"Swap successful! Transaction confirmed in block {receipt['blockNumber']}")
        return tx_hash, receipt["blockNumber"]

    def _log_failed_attempt(self, retry_state: RetryCallState, wallet_label: str):
        error = retry_state.outcome.exception()
        self.logger.error(
            f"Swap attempt {retry_state.attempt_number}/{self.settings.max_retries} failed "
            f"for wallet {wallet_label} ({classify_error(error).value}): {error_reason(error)}"
        )

    def _log_balances(self, wallet: WalletHandle, token: TokenDescriptor):
        """Log native and token balances after a swap; failures only warn."""
        try:
            native_balance = self.w3.eth.get_balance(wallet.address)
            token_balance = get_token_contract(self.w3, token.address).functions.balanceOf(wallet.address).call()

            self.logger.info(f"Current balances for wallet {format_address(wallet.address)}:")
            self.logger.info(f"- {self.network.native_symbol}: {format_units(native_balance)}")
            self.logger.info(f"- {token.symbol}: {format_units(token_balance, token.decimals)}")
        except Exception as e:
            self.logger.warning(f"Error getting balances: {error_reason(e)}")
