"""
Tests for randomization helpers, formatting, error classification and
the shared sleeper.
"""

import random
import threading
from decimal import Decimal

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from swap_bot.utils import (
    ErrorKind,
    ShutdownRequested,
    Sleeper,
    TransactionError,
    classify_error,
    error_reason,
    format_address,
    format_duration,
    format_units,
    generate_random_amount,
    generate_random_delay,
    sanitize_error_message,
    select_random_token,
)


class TestRandomAmount:

    def test_within_bounds_with_five_decimals(self):
        rng = random.Random(1)
        for _ in range(500):
            amount = generate_random_amount(0.01, 0.02, rng=rng)
            assert Decimal("0.01") <= Decimal(amount) <= Decimal("0.02")
            assert len(amount.split(".")[1]) == 5

    def test_equal_bounds(self):
        assert generate_random_amount(0.01, 0.01) == "0.01000"

    def test_bounds_off_the_grid(self):
        rng = random.Random(3)
        for _ in range(100):
            amount = Decimal(generate_random_amount("0.000011", "0.000029", rng=rng))
            assert amount == Decimal("0.00002")

    def test_min_above_max(self):
        with pytest.raises(ValueError):
            generate_random_amount(0.02, 0.01)

    def test_no_grid_value_in_range(self):
        with pytest.raises(ValueError):
            generate_random_amount("0.000011", "0.000019")


class TestRandomDelay:

    def test_milliseconds_in_range(self):
        rng = random.Random(5)
        delays = {generate_random_delay(3, 10, rng=rng) for _ in range(500)}

        assert all(3000 <= d <= 10000 for d in delays)
        assert all(d % 1000 == 0 for d in delays)
        assert delays == {s * 1000 for s in range(3, 11)}

    def test_fixed_delay(self):
        assert generate_random_delay(4, 4) == 4000

    def test_reversed_range(self):
        with pytest.raises(ValueError):
            generate_random_delay(10, 3)


class TestSelectRandomToken:

    def test_picks_from_catalog(self):
        catalog = ["a", "b", "c"]
        rng = random.Random(0)
        assert {select_random_token(catalog, rng=rng) for _ in range(100)} == set(catalog)

    def test_empty_catalog(self):
        with pytest.raises(ValueError):
            select_random_token([])


class TestFormatting:

    def test_format_address(self):
        address = "0x696381f39F17cAD67032f5f52A4924ce84e51BA3"
        assert format_address(address) == "0x696381f3..."
        assert format_address("0x1234") == "0x1234"

    def test_format_duration(self):
        assert format_duration(45) == "45s"
        assert format_duration(600) == "10m"
        assert format_duration(90_000) == "25h"
        assert format_duration(5400) == "1h 30m"

    def test_format_units(self):
        assert format_units(10 ** 18) == "1.0"
        assert format_units(15 * 10 ** 17) == "1.5"
        assert format_units(1, 6) == "0.000001"
        assert format_units(123456789 * 10 ** 18) == "123456789.0"


class TestErrors:

    def test_classify(self):
        assert classify_error(TransactionError("reverted")) == ErrorKind.TX_REVERTED
        assert classify_error(ValueError("nonce too low")) == ErrorKind.TX_REJECTED
        assert classify_error(ContractLogicError("execution reverted")) == ErrorKind.TX_REJECTED
        assert classify_error(TimeExhausted("no receipt")) == ErrorKind.NETWORK_RPC_ERROR
        assert classify_error(ConnectionError("reset")) == ErrorKind.NETWORK_RPC_ERROR

    def test_error_reason_falls_back_to_class_name(self):
        assert error_reason(RuntimeError()) == "RuntimeError"

    def test_error_reason_redacts_urls(self):
        reason = error_reason(ConnectionError("could not reach https://node.example/v2/secret-api-key"))
        assert "secret-api-key" not in reason
        assert "[URL]" in reason

    def test_sanitize_keeps_tx_hashes(self):
        tx_hash = "0x" + "ab" * 32
        assert sanitize_error_message(f"tx {tx_hash} failed") == f"tx {tx_hash} failed"

    def test_sanitize_password(self):
        assert "hunter2" not in sanitize_error_message("password=hunter2")


class TestSleeper:

    def test_sleep_zero_returns(self):
        Sleeper().sleep(0)

    def test_sleep_after_stop_raises(self):
        sleeper = Sleeper()
        sleeper.request_stop()

        assert sleeper.stopped
        with pytest.raises(ShutdownRequested):
            sleeper.sleep(0)
        with pytest.raises(ShutdownRequested):
            sleeper.check()

    def test_stop_wakes_sleeping_thread(self):
        sleeper = Sleeper()
        raised = threading.Event()

        def worker():
            try:
                sleeper.sleep(60)
            except ShutdownRequested:
                raised.set()

        thread = threading.Thread(target=worker)
        thread.start()
        sleeper.request_stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert raised.is_set()

    def test_shared_event(self):
        event = threading.Event()
        first, second = Sleeper(event), Sleeper(event)

        first.request_stop()

        assert second.stopped
