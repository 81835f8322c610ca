"""
Shared fixtures: Web3/router doubles, a recording sleeper and test wallets.

No test touches the network.
"""

import pytest
from unittest.mock import Mock

from swap_bot.config import BotConfig
from swap_bot.tokens import TokenCatalog, TokenDescriptor
from swap_bot.utils import Sleeper, ShutdownRequested
from swap_bot.wallet import WalletHandle

TOKEN = TokenDescriptor("0x" + "ab" * 20, "TST", "Test Token", 18)
WALLET_ADDRESS = "0x" + "12" * 20
TX_HASH = bytes.fromhex("cd" * 32)
TX_HASH_HEX = "0x" + "cd" * 32


class RecordingSleeper(Sleeper):
    """Sleeper that records requested sleeps instead of waiting."""

    def __init__(self, stop_after: int = None):
        super().__init__()
        self.sleeps = []
        self.stop_after = stop_after

    def sleep(self, seconds):
        self.check()
        self.sleeps.append(seconds)
        if self.stop_after is not None and len(self.sleeps) >= self.stop_after:
            self.request_stop()
            raise ShutdownRequested()


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def config():
    """Small, fast config: 3 attempts, 1s retry delay, no pre-send delay."""
    return BotConfig.from_dict({
        "transaction": {
            "maxRetries": 3,
            "retryDelay": 1000,
            "preSendDelay": None,
        },
        "logging": {"dir": None},
    })


@pytest.fixture
def catalog():
    return TokenCatalog(tokens=[TOKEN])


@pytest.fixture
def mock_w3():
    """Web3 double for a wallet holding 1 TEA on a 1 gwei network."""
    w3 = Mock()
    w3.eth.get_balance.return_value = 10 ** 18
    w3.eth.gas_price = 10 ** 9
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 42}
    w3.eth.contract.return_value.functions.balanceOf.return_value.call.return_value = 5 * 10 ** 18
    return w3


@pytest.fixture
def mock_router():
    """Router double quoting 1000 tokens for any input."""
    router = Mock()
    router.functions.getAmountsOut.return_value.call.return_value = [10 ** 16, 1000 * 10 ** 18]
    swap_fn = router.functions.swapExactETHForTokens.return_value
    swap_fn.estimate_gas.return_value = 100_000
    swap_fn.build_transaction.side_effect = lambda tx: dict(tx)
    return router


def make_wallet(index: int = 0) -> WalletHandle:
    account = Mock()
    account.sign_transaction.return_value = Mock(raw_transaction=b"signed")
    return WalletHandle(index=index, address=WALLET_ADDRESS, account=account)


@pytest.fixture
def wallet():
    return make_wallet()


@pytest.fixture
def wallet_factory():
    """Stands in for open_wallet; records the (secret, index) pairs it was given."""
    return Mock(side_effect=lambda secret, index: make_wallet(index))
