"""
Cycle Scheduler

Repeats a lane's cycle body forever (or max_cycles times), sleeping a
fixed cooldown between cycles and a recovery interval after a cycle-level
error.
"""

from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from .config import BotConfig
from .logging_utils import SecureLogger, logger as default_logger
from .utils import ErrorKind, Sleeper, ShutdownRequested, error_reason, format_duration

RECOVERY_SLEEP_SECONDS = 10 * 60


class SchedulerState(str, Enum):
    RUNNING = "running"
    COOLING_DOWN = "cooling_down"


@dataclass
class ScheduleState:
    """Cooldown between cycles, fixed at startup."""
    cooldown_seconds: float
    max_cycles: Optional[int] = None

    @classmethod
    def from_config(cls, config: BotConfig) -> "ScheduleState":
        return cls(cooldown_seconds=config.cooldown_seconds, max_cycles=config.max_cycles)


class CycleScheduler:
    """
    Drives one lane through RUNNING / COOLING_DOWN.

    The cycle body returns its success count. An exception from it is a
    cycle-level error: it is logged and the lane waits RECOVERY_SLEEP_SECONDS
    instead of the normal cooldown. A shutdown request ends the loop at the
    next boundary or sleep.
    """

    def __init__(
        self,
        cycle_body: Callable[[], int],
        schedule: ScheduleState,
        sleeper: Sleeper,
        logger: Optional[SecureLogger] = None,
        swaps_per_cycle: Optional[int] = None,
    ):
        self.cycle_body = cycle_body
        self.schedule = schedule
        self.sleeper = sleeper
        self.logger = logger or default_logger
        self.swaps_per_cycle = swaps_per_cycle

        self.state = SchedulerState.RUNNING
        self.cycle_count = 0
        self.total_successes = 0
        self.error_count = 0

    def _finished(self) -> bool:
        max_cycles = self.schedule.max_cycles
        return max_cycles is not None and self.cycle_count >= max_cycles

    def run(self) -> int:
        """Run cycles until shutdown or max_cycles. Returns cycles started."""
        self.logger.info("Starting the automated swap process...")
        try:
            self._loop()
        except ShutdownRequested:
            self.logger.info(f"Shutdown requested, stopping after {self.cycle_count} cycle(s)")
        return self.cycle_count

    def _loop(self):
        while not self.sleeper.stopped:
            self.state = SchedulerState.RUNNING
            self.cycle_count += 1
            self.logger.info(f"Starting cycle {self.cycle_count}")

            try:
                successes = self.cycle_body()
            except ShutdownRequested:
                raise
            except Exception as e:
                self.error_count += 1
                self.logger.error(
                    f"Error in batch execution ({ErrorKind.CYCLE_LEVEL_ERROR.value}): {error_reason(e)}"
                )
                if self._finished():
                    return
                self.state = SchedulerState.COOLING_DOWN
                self.logger.info(f"Retrying in {format_duration(RECOVERY_SLEEP_SECONDS)}...")
                self.sleeper.sleep(RECOVERY_SLEEP_SECONDS)
                continue

            self.total_successes += successes
            total = f"/{self.swaps_per_cycle}" if self.swaps_per_cycle is not None else ""
            self.logger.info(f"Batch completed with {successes}{total} successful swaps")

            if self._finished():
                self.logger.info(f"Reached max cycles ({self.schedule.max_cycles}), stopping")
                return

            self.state = SchedulerState.COOLING_DOWN
            cooldown = self.schedule.cooldown_seconds
            next_run = datetime.now() + timedelta(seconds=cooldown)
            self.logger.info(
                f"Next batch will occur in {format_duration(cooldown)} "
                f"({next_run.strftime('%Y-%m-%d %H:%M:%S')})"
            )
            self.sleeper.sleep(cooldown)
