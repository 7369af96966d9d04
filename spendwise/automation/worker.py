"""
Automation worker.

Runs in its own process (``python -m spendwise.automation.worker``). Every
interval it materializes recurring templates for each user that has an
active one, then revokes API keys whose expiry has passed. The request path
runs the same materializer inline, so this loop only keeps data fresh
sooner; nothing depends on it for correctness.
"""

import os
import signal
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..config.settings import Settings
from ..container import Container
from ..security.secure_logging import get_structured_logger
from ..services.api_key_service import ApiKeyService

logger = get_structured_logger().get_logger(__name__)

PARENT_PID_ENV = "AUTOMATION_PARENT_PID"


@dataclass
class CycleReport:
    """Outcome of one automation cycle"""

    users_processed: int = 0
    entries_created: int = 0
    keys_revoked: int = 0
    failed_users: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


class AutomationWorker:
    """Periodic materialization loop with a non-overlapping cycle guard"""

    def __init__(self, container: Container, interval_seconds: Optional[float] = None):
        self.container = container
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else container.settings.automation.interval_seconds
        )
        self._cycle_lock = threading.Lock()
        self._shutdown = threading.Event()
        self._parent_pid = self._read_parent_pid()

    @staticmethod
    def _read_parent_pid() -> Optional[int]:
        raw = os.getenv(PARENT_PID_ENV)
        try:
            return int(raw) if raw else None
        except ValueError:
            return None

    @property
    def is_running_cycle(self) -> bool:
        return self._cycle_lock.locked()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def run_cycle(self) -> Optional[CycleReport]:
        """
        Run one cycle.

        Returns None without doing anything if a cycle is already in flight.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Automation cycle already running, skipping", operation="run_cycle")
            return None

        started = time.monotonic()
        report = CycleReport()
        try:
            self._materialize_all(report)
            report.keys_revoked = self._revoke_expired_keys()
        except Exception as e:
            logger.error(
                "Automation cycle failed",
                error_type=type(e).__name__,
                operation="run_cycle",
                exc_info=e,
            )
        finally:
            report.duration_seconds = time.monotonic() - started
            self._cycle_lock.release()

        logger.info(
            "Automation cycle completed",
            users=report.users_processed,
            created=report.entries_created,
            keys_revoked=report.keys_revoked,
            failed_users=len(report.failed_users),
            duration_seconds=round(report.duration_seconds, 3),
            operation="run_cycle",
        )
        return report

    def _materialize_all(self, report: CycleReport) -> None:
        materializer = self.container.materializer
        user_ids = self.container.users.find_ids_with_active_templates()
        if user_ids:
            logger.info("Running automation", user_count=len(user_ids), operation="run_cycle")

        for user_id in user_ids:
            try:
                report.entries_created += materializer.materialize_expenses(user_id)
                report.entries_created += materializer.materialize_incomes(user_id)
            except Exception as e:
                report.failed_users.append(user_id)
                logger.error(
                    "Automation failed for user",
                    user_id=user_id,
                    error_type=type(e).__name__,
                    operation="run_cycle",
                )
            report.users_processed += 1

    def _revoke_expired_keys(self) -> int:
        service: ApiKeyService = self.container.api_key_service
        try:
            return service.revoke_expired(self.container.clock())
        except Exception as e:
            logger.error(
                "Failed to revoke expired API keys",
                error_type=type(e).__name__,
                operation="revoke_expired",
            )
            return 0

    def _parent_alive(self) -> bool:
        # reparenting means the serving process that spawned us is gone
        return self._parent_pid is None or os.getppid() == self._parent_pid

    def run_forever(self) -> None:
        """Run a cycle now, then every interval until shutdown is requested."""
        logger.info(
            "Automation worker online",
            pid=os.getpid(),
            interval_seconds=self.interval_seconds,
            operation="run_forever",
        )
        while not self._shutdown.is_set():
            self.run_cycle()
            if not self._parent_alive():
                logger.warning("Parent process exited, stopping worker", operation="run_forever")
                break
            self._shutdown.wait(self.interval_seconds)
        logger.info("Automation worker stopped", operation="run_forever")

    def request_shutdown(self, signal_name: Optional[str] = None) -> None:
        """Stop after the in-flight cycle, if any, has finished."""
        if self._shutdown.is_set():
            return
        logger.info("Shutting down automation worker", signal=signal_name, operation="shutdown")
        self._shutdown.set()


def install_signal_handlers(worker: AutomationWorker) -> None:
    def handle(signum, _frame):
        worker.request_shutdown(signal.Signals(signum).name)

    signal.signal(signal.SIGTERM, handle)
    signal.signal(signal.SIGINT, handle)


def main() -> int:
    try:
        container = Container(Settings())
        worker = AutomationWorker(container)
    except Exception as e:
        logger.error("Failed to start automation worker", error_type=type(e).__name__, exc_info=e)
        return 1

    install_signal_handlers(worker)
    try:
        worker.run_forever()
    finally:
        container.cleanup()
    return 0


if __name__ == "__main__":
    sys.exit(main())
