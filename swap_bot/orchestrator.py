"""
Lane Orchestrator
=================
Splits wallets over lanes and runs each lane's scheduler.

With one lane the scheduler runs inline on the calling thread. With more,
each non-empty lane gets a daemon thread with its own logger, executor,
runner and scheduler. Lanes share the Web3 connection, the router binding,
the token catalog and the sleeper; nothing else.
"""

import random
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from web3 import Web3

from .allocator import LaneAssignment, build_lane_assignments
from .chain import get_router
from .config import BotConfig
from .executor import SwapExecutor
from .lane import LaneRunner
from .logging_utils import SecureLogger, get_lane_logger, logger as default_logger
from .scheduler import CycleScheduler, ScheduleState
from .tokens import TokenCatalog
from .utils import Sleeper, error_reason
from .wallet import WalletHandle, open_wallet

JOIN_POLL_SECONDS = 1.0


@dataclass
class LaneReport:
    """What one lane did before it stopped."""
    lane_id: int
    wallet_count: int
    cycles: int = 0
    successes: int = 0
    error: Optional[str] = None


class LaneOrchestrator:
    """Builds and runs the execution lanes."""

    def __init__(
        self,
        config: BotConfig,
        secrets: Sequence[str],
        w3: Web3,
        router=None,
        catalog: Optional[TokenCatalog] = None,
        sleeper: Optional[Sleeper] = None,
        logger: Optional[SecureLogger] = None,
        wallet_factory: Callable[[str, int], WalletHandle] = open_wallet,
        rng_factory: Callable[[], random.Random] = random.Random,
    ):
        self.config = config
        self.secrets = list(secrets)
        self.w3 = w3
        self.router = router if router is not None else get_router(w3, config.network)
        self.catalog = catalog or TokenCatalog(w3)
        self.sleeper = sleeper or Sleeper()
        self.logger = logger or default_logger
        self.wallet_factory = wallet_factory
        self.rng_factory = rng_factory

    @property
    def multi_lane(self) -> bool:
        return self.config.threads > 1

    def build_assignments(self) -> List[LaneAssignment]:
        """Non-empty lane assignments; lanes left without wallets are skipped."""
        assignments = build_lane_assignments(len(self.secrets), self.config.threads)
        active = [a for a in assignments if not a.is_empty]
        skipped = len(assignments) - len(active)
        if skipped:
            self.logger.warning(
                f"{skipped} lane(s) have no wallets ({len(self.secrets)} wallets, "
                f"{self.config.threads} threads) and will not start"
            )
        return active

    def build_scheduler(self, assignment: LaneAssignment) -> CycleScheduler:
        """Wire executor, runner and scheduler for one lane."""
        if self.multi_lane:
            lane_logger = get_lane_logger(assignment.lane_id, self.config.logging.dir)
        else:
            lane_logger = self.logger

        rng = self.rng_factory()
        executor = SwapExecutor(
            self.w3, self.router, self.catalog, self.config, self.sleeper, lane_logger, rng=rng
        )
        runner = LaneRunner(
            assignment,
            self.secrets,
            executor,
            self.catalog,
            self.config,
            self.sleeper,
            lane_logger,
            rng=rng,
            wallet_factory=self.wallet_factory,
        )
        return CycleScheduler(
            runner.run_pass,
            ScheduleState.from_config(self.config),
            self.sleeper,
            lane_logger,
            swaps_per_cycle=runner.swaps_per_pass,
        )

    def run(self) -> List[LaneReport]:
        """
        Run every lane until shutdown or max_cycles.

        In multi-lane mode a KeyboardInterrupt on the main thread sets the
        stop flag for every lane and is re-raised.
        """
        assignments = self.build_assignments()
        if not assignments:
            self.logger.warning("No wallets to run")
            return []

        self.logger.info(
            f"Starting {len(assignments)} lane(s) for {len(self.secrets)} wallet(s), "
            f"{self.config.swaps_per_wallet} swap(s) per wallet per cycle"
        )

        if not self.multi_lane:
            assignment = assignments[0]
            scheduler = self.build_scheduler(assignment)
            scheduler.run()
            return [LaneReport(
                lane_id=assignment.lane_id,
                wallet_count=len(assignment),
                cycles=scheduler.cycle_count,
                successes=scheduler.total_successes,
            )]

        reports = [LaneReport(lane_id=a.lane_id, wallet_count=len(a)) for a in assignments]
        threads = []
        for assignment, report in zip(assignments, reports):
            self.logger.info(f"Lane {assignment.lane_id} wallets: {list(assignment.wallet_indices)}")
            threads.append(threading.Thread(
                target=self._run_lane,
                args=(assignment, report),
                name=f"lane-{assignment.lane_id}",
                daemon=True,
            ))

        for thread in threads:
            thread.start()

        try:
            while any(thread.is_alive() for thread in threads):
                for thread in threads:
                    thread.join(timeout=JOIN_POLL_SECONDS)
        except KeyboardInterrupt:
            self.logger.info("Stopping all lanes...")
            self.sleeper.request_stop()
            raise

        for report in reports:
            status = f"crashed: {report.error}" if report.error else "finished"
            self.logger.info(
                f"Lane {report.lane_id} {status} after {report.cycles} cycle(s), "
                f"{report.successes} successful swap(s)"
            )
        return reports

    def _run_lane(self, assignment: LaneAssignment, report: LaneReport):
        """Thread target; a crash is recorded on the report and ends only this lane."""
        scheduler = None
        try:
            scheduler = self.build_scheduler(assignment)
            scheduler.run()
        except Exception as e:
            report.error = error_reason(e)
            self.logger.critical(f"Lane {assignment.lane_id} crashed: {report.error}")
        finally:
            if scheduler is not None:
                report.cycles = scheduler.cycle_count
                report.successes = scheduler.total_successes
