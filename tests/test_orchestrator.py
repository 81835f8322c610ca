"""
Tests for lane orchestration, including a full single-wallet run against
Web3 doubles.
"""

import random
import threading

import pytest
from unittest.mock import PropertyMock

from swap_bot.config import BotConfig
from swap_bot.orchestrator import LaneOrchestrator, LaneReport

SECRETS = ["0x" + f"{i:02x}" * 32 for i in range(1, 6)]


def run_config(**overrides):
    data = {
        "maxSwapsPerBatch": 1,
        "maxCycles": 1,
        "transaction": {"maxRetries": 1, "preSendDelay": None},
        "logging": {"dir": None},
    }
    data.update(overrides)
    return BotConfig.from_dict(data)


def make_orchestrator(config, secrets, mock_w3, mock_router, catalog, sleeper, wallet_factory):
    return LaneOrchestrator(
        config,
        secrets,
        mock_w3,
        router=mock_router,
        catalog=catalog,
        sleeper=sleeper,
        wallet_factory=wallet_factory,
        rng_factory=lambda: random.Random(7),
    )


class TestEndToEnd:
    """One wallet, one swap, everything succeeds first time."""

    def test_single_wallet_run(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        gas_price = PropertyMock(return_value=10 ** 9)
        type(mock_w3.eth).gas_price = gas_price
        orchestrator = make_orchestrator(
            run_config(), SECRETS[:1], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )

        reports = orchestrator.run()

        assert reports == [LaneReport(lane_id=1, wallet_count=1, cycles=1, successes=1)]
        swap_fn = mock_router.functions.swapExactETHForTokens.return_value
        assert mock_router.functions.getAmountsOut.return_value.call.call_count == 1
        assert gas_price.call_count == 1
        assert swap_fn.estimate_gas.call_count == 1
        assert mock_w3.eth.send_raw_transaction.call_count == 1
        assert mock_w3.eth.wait_for_transaction_receipt.call_count == 1
        assert sleeper.sleeps == []

    def test_single_lane_runs_on_calling_thread(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        threads = []
        original = wallet_factory.side_effect

        def factory(secret, index):
            threads.append(threading.current_thread())
            return original(secret, index)

        wallet_factory.side_effect = factory
        orchestrator = make_orchestrator(
            run_config(), SECRETS[:2], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )

        reports = orchestrator.run()

        assert threads == [threading.current_thread()] * 2
        assert reports[0].successes == 2


class TestAssignments:

    def test_empty_lanes_skipped(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        orchestrator = make_orchestrator(
            run_config(threads=4), SECRETS[:2], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )

        assignments = orchestrator.build_assignments()

        assert [a.lane_id for a in assignments] == [1, 2]
        assert [a.wallet_indices for a in assignments] == [(0,), (1,)]

    def test_no_wallets(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        orchestrator = make_orchestrator(
            run_config(), [], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )
        assert orchestrator.run() == []


class TestMultiLane:

    def test_lanes_cover_all_wallets(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        orchestrator = make_orchestrator(
            run_config(threads=2), SECRETS[:5], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )

        reports = orchestrator.run()

        assert [(r.lane_id, r.wallet_count, r.successes, r.error) for r in reports] == [
            (1, 3, 3, None),
            (2, 2, 2, None),
        ]
        used = sorted(c[0][1] for c in wallet_factory.call_args_list)
        assert used == [0, 1, 2, 3, 4]

    def test_lanes_run_on_worker_threads(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        names = set()
        original = wallet_factory.side_effect

        def factory(secret, index):
            names.add(threading.current_thread().name)
            return original(secret, index)

        wallet_factory.side_effect = factory
        orchestrator = make_orchestrator(
            run_config(threads=2), SECRETS[:2], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )

        orchestrator.run()

        assert names == {"lane-1", "lane-2"}

    def test_crashing_lane_does_not_stop_siblings(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):

        class CrashingOrchestrator(LaneOrchestrator):
            def build_scheduler(self, assignment):
                if assignment.lane_id == 2:
                    raise RuntimeError("lane 2 wiring failed")
                return super().build_scheduler(assignment)

        orchestrator = CrashingOrchestrator(
            run_config(threads=2),
            SECRETS[:4],
            mock_w3,
            router=mock_router,
            catalog=catalog,
            sleeper=sleeper,
            wallet_factory=wallet_factory,
        )

        reports = orchestrator.run()

        assert reports[0].error is None
        assert reports[0].successes == 2
        assert reports[1].error == "lane 2 wiring failed"
        assert reports[1].successes == 0

    def test_lanes_share_connection_and_catalog(self, mock_w3, mock_router, catalog, sleeper, wallet_factory):
        orchestrator = make_orchestrator(
            run_config(threads=3), SECRETS[:3], mock_w3, mock_router, catalog, sleeper, wallet_factory
        )

        schedulers = [orchestrator.build_scheduler(a) for a in orchestrator.build_assignments()]
        runners = [s.cycle_body.__self__ for s in schedulers]

        assert {id(r.executor.w3) for r in runners} == {id(mock_w3)}
        assert {id(r.catalog) for r in runners} == {id(catalog)}
        assert len({id(r.executor) for r in runners}) == 3
