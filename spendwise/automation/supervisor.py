"""
Supervisor for the automation worker process.

The serving process owns one AutomationSupervisor. It spawns the worker as a
child process, watches it from a daemon thread and restarts it after a delay
if it dies unexpectedly. Only one child and one pending restart exist at a
time.
"""

import os
import subprocess
import sys
import threading
from typing import Callable, List, Optional

from ..config.environment import EnvironmentManager
from ..config.settings import Settings
from ..security.secure_logging import get_structured_logger
from .worker import PARENT_PID_ENV

logger = get_structured_logger().get_logger(__name__)

WORKER_MODULE = "spendwise.automation.worker"


class AutomationSupervisor:
    """Spawns, watches and restarts the automation worker"""

    def __init__(
        self,
        settings: Settings,
        command: Optional[List[str]] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        enabled: Optional[bool] = None,
    ):
        self.settings = settings
        self.command = command or [sys.executable, "-m", WORKER_MODULE]
        self.restart_delay_seconds = settings.automation.restart_delay_seconds
        self._popen = popen
        self._enabled_override = enabled

        self._lock = threading.RLock()
        self._process: Optional[subprocess.Popen] = None
        self._watcher: Optional[threading.Thread] = None
        self._restart_timer: Optional[threading.Timer] = None
        self._shutting_down = False
        self.restart_count = 0

    @property
    def enabled(self) -> bool:
        """Off when the kill switch is set or under tests, unless overridden"""
        if self._enabled_override is not None:
            return self._enabled_override
        if self.settings.automation.disabled:
            return False
        if self.settings.app.is_testing:
            return False
        return not EnvironmentManager().is_testing()

    @property
    def process(self) -> Optional[subprocess.Popen]:
        return self._process

    @property
    def restart_pending(self) -> bool:
        return self._restart_timer is not None

    def is_running(self) -> bool:
        process = self._process
        return process is not None and process.poll() is None

    def ensure_running(self) -> bool:
        """Start the worker unless disabled, shutting down or already running"""
        with self._lock:
            if not self.enabled:
                logger.info("Automation disabled", operation="ensure_running")
                return False
            if self._shutting_down:
                return False
            if self._process is not None:
                return True

            env = dict(os.environ)
            env[PARENT_PID_ENV] = str(os.getpid())
            try:
                process = self._popen(self.command, env=env)
            except Exception as e:
                logger.error(
                    "Failed to start automation worker",
                    error_type=type(e).__name__,
                    restart_delay_seconds=self.restart_delay_seconds,
                    operation="ensure_running",
                    exc_info=e,
                )
                self._schedule_restart()
                return False
            self._process = process
            logger.info(
                "Automation worker started",
                child_pid=getattr(process, "pid", None),
                operation="ensure_running",
            )

            self._watcher = threading.Thread(
                target=self._watch,
                args=(process,),
                name="automation-supervisor",
                daemon=True,
            )
            self._watcher.start()
            return True

    def _watch(self, process: subprocess.Popen) -> None:
        code = process.wait()
        with self._lock:
            if self._process is process:
                self._process = None
            if self._shutting_down:
                return
            logger.warning(
                "Automation worker exited, restart scheduled",
                exit_code=code,
                restart_delay_seconds=self.restart_delay_seconds,
                operation="watch",
            )
            self._schedule_restart()

    def _schedule_restart(self) -> None:
        # caller holds self._lock
        if self._shutting_down or self._restart_timer is not None:
            return
        timer = threading.Timer(self.restart_delay_seconds, self._restart)
        timer.daemon = True
        self._restart_timer = timer
        timer.start()

    def _restart(self) -> None:
        with self._lock:
            self._restart_timer = None
            if self._shutting_down:
                return
            self.restart_count += 1
        self.ensure_running()

    def shutdown(self, timeout: float = 10.0) -> None:
        """Stop the worker; it finishes any in-flight cycle before exiting"""
        with self._lock:
            self._shutting_down = True
            if self._restart_timer is not None:
                self._restart_timer.cancel()
                self._restart_timer = None
            process = self._process

        if process is not None and process.poll() is None:
            logger.info("Stopping automation worker", child_pid=process.pid, operation="shutdown")
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning(
                    "Automation worker did not stop in time, killing",
                    child_pid=process.pid,
                    operation="shutdown",
                )
                process.kill()
                process.wait()

        if self._watcher is not None:
            self._watcher.join(timeout=timeout)
        with self._lock:
            self._process = None
