"""
Automation worker thread and host-side controller.

The worker is a daemon thread running its own asyncio loop. It owns the
Playwright driver and the browser session manager, so every browser
call happens on that one thread. The host talks to it through
``submit``/``send`` and reads WorkerMessage objects from a queue.
"""

import asyncio
import concurrent.futures
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from .browser_session import BrowserSessionManager, PlaywrightLauncher
from .checkpoints import CheckpointStore
from .config import Config
from .logging_utils import get_logger
from .models import (
    AccountMappings,
    AutomationCheckpoint,
    ControlType,
    Credentials,
    CSVRow,
    MessageType,
    TimeSlot,
    WorkerMessage,
)
from .playwright_client import RepliconClient
from .retry import CircuitBreaker, CircuitOpenError, RetryPolicy, is_transient_error
from .runner import AutomationRunner, RunOutcome


class AutomationAlreadyRunningError(RuntimeError):
    """Raised when a run is started while another one is active."""
    pass


@dataclass
class RunRequest:
    """Everything the worker needs to execute one run."""
    credentials: Credentials
    rows: List[CSVRow]
    time_slots: List[TimeSlot]
    mappings: AccountMappings
    resume_from: Optional[AutomationCheckpoint] = None
    run_id: Optional[str] = None


class AutomationWorker(threading.Thread):
    """
    Thread that executes automation runs on its own event loop.
    """

    def __init__(self, config: Config, checkpoints: CheckpointStore,
                 launcher=None, client_factory=RepliconClient):
        """
        Initialize the worker.

        Args:
            config: Application configuration
            checkpoints: Store shared with the host
            launcher: Browser launcher (PlaywrightLauncher by default)
            client_factory: Builds the browser client for each run
        """
        super().__init__(name='automation-worker', daemon=True)
        self.config = config
        self.checkpoints = checkpoints
        self.launcher = launcher or PlaywrightLauncher(config)
        self.client_factory = client_factory
        self.logger = get_logger('worker')

        self.messages: 'queue.Queue[WorkerMessage]' = queue.Queue()
        self.sessions: Optional[BrowserSessionManager] = None
        self.runner: Optional[AutomationRunner] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready = threading.Event()

    def post(self, message: WorkerMessage):
        self.messages.put(message)

    def start(self):
        """Start the thread and wait until its loop is running."""
        super().start()
        self._ready.wait()

    def run(self):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self.sessions = BrowserSessionManager(self.launcher)

        if self.config.preload_browser:
            loop.call_soon(self.sessions.preload)

        loop.call_soon(self.post, WorkerMessage(type=MessageType.READY))
        loop.call_soon(self._ready.set)
        self.logger.debug("Worker loop starting")

        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
            self.logger.debug("Worker loop closed")

    def submit(self, request: RunRequest) -> concurrent.futures.Future:
        """
        Schedule a run on the worker loop.

        Args:
            request: Run inputs

        Returns:
            Future resolving to the RunOutcome
        """
        if self._loop is None or not self.is_alive():
            raise RuntimeError("Worker is not running")

        # Created here so controls sent right after submit() find it
        runner = AutomationRunner(
            self.config,
            self.sessions,
            self.checkpoints,
            emit=self.post,
            client_factory=self.client_factory,
            run_id=request.run_id,
        )
        self.runner = runner
        return asyncio.run_coroutine_threadsafe(self._execute(runner, request), self._loop)

    async def _execute(self, runner: AutomationRunner, request: RunRequest) -> RunOutcome:
        try:
            return await runner.run(
                request.credentials,
                request.rows,
                request.time_slots,
                request.mappings,
                resume_from=request.resume_from,
            )
        finally:
            if self.runner is runner:
                self.runner = None

    def send(self, control: str):
        """
        Deliver a control message to the active run.

        Args:
            control: "stop" or "pause" (pause toggles)

        Raises:
            ValueError: If the control type is unknown
        """
        if control not in (ControlType.STOP, ControlType.PAUSE):
            raise ValueError(f"Unknown control message: {control!r}")
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._apply_control, control)

    def _apply_control(self, control: str):
        runner = self.runner
        if runner is None:
            self.logger.debug(f"Ignoring {control!r}: no active run")
            return
        if control == ControlType.STOP:
            runner.stop()
        else:
            runner.toggle_pause()

    async def _shutdown(self):
        if self.runner is not None:
            self.runner.stop()
        await self.sessions.shutdown()

    def shutdown(self, timeout: float = 10.0):
        """Release browsers, stop the loop and join the thread."""
        if self._loop is None or not self.is_alive():
            return

        future = asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop)
        try:
            future.result(timeout)
        except Exception as e:
            self.logger.warning(f"Worker shutdown did not finish cleanly: {e}")

        self._loop.call_soon_threadsafe(self._loop.stop)
        self.join(timeout)


class AutomationController:
    """
    Host-side facade over the automation worker.

    Only one run may be active at a time. Starts are guarded by a circuit
    breaker that opens after repeated failed runs.
    """

    def __init__(self, config: Config, checkpoints: Optional[CheckpointStore] = None,
                 worker_factory: Optional[Callable[[], AutomationWorker]] = None):
        """
        Initialize the controller.

        Args:
            config: Application configuration
            checkpoints: Checkpoint store (built from config when None)
            worker_factory: Builds the worker (AutomationWorker by default)
        """
        self.config = config
        self.checkpoints = checkpoints or CheckpointStore(config.checkpoint_dir)
        self.worker_factory = worker_factory or (
            lambda: AutomationWorker(self.config, self.checkpoints)
        )
        self.breaker = CircuitBreaker(
            threshold=config.circuit_threshold,
            reset_timeout=config.circuit_reset_seconds,
        )
        self.logger = get_logger('controller')

        self._worker: Optional[AutomationWorker] = None
        self._future: Optional[concurrent.futures.Future] = None
        self._settled: Optional[concurrent.futures.Future] = None
        self._lock = threading.Lock()

    @property
    def worker(self) -> AutomationWorker:
        """The worker thread, started on first use."""
        if self._worker is None:
            self._worker = self.worker_factory()
            self._worker.start()
        return self._worker

    @property
    def is_running(self) -> bool:
        return self._future is not None and not self._future.done()

    def start(self, credentials: Credentials, rows: List[CSVRow],
              time_slots: List[TimeSlot], mappings: AccountMappings,
              resume_from: Optional[AutomationCheckpoint] = None,
              run_id: Optional[str] = None) -> concurrent.futures.Future:
        """
        Start a run.

        Returns:
            Future resolving to the RunOutcome

        Raises:
            AutomationAlreadyRunningError: If a run is active
            CircuitOpenError: If recent runs kept failing
        """
        with self._lock:
            self._settle()
            if self.is_running:
                raise AutomationAlreadyRunningError("An automation is already running")
            if not self.breaker.allow():
                raise CircuitOpenError(
                    f"Too many failed runs; try again in {self.breaker.reset_timeout:.0f}s"
                )

            request = RunRequest(
                credentials=credentials,
                rows=rows,
                time_slots=time_slots,
                mappings=mappings,
                resume_from=resume_from,
                run_id=run_id,
            )
            future = self.worker.submit(request)
            self._future = future
            return future

    def _settle(self):
        """Feed the finished run into the circuit breaker, once."""
        future = self._future
        if future is None or not future.done() or future is self._settled:
            return
        self._settled = future
        if future.cancelled():
            return
        error = future.exception()
        if error is None and future.result().error is None:
            self.breaker.record_success()
        else:
            self.breaker.record_failure()

    def resume(self, checkpoint_id: str, credentials: Credentials,
               time_slots: List[TimeSlot], mappings: AccountMappings) -> concurrent.futures.Future:
        """
        Continue a checkpointed run after its last successful day.

        Raises:
            CheckpointNotFoundError: If the checkpoint does not exist
        """
        checkpoint = self.checkpoints.get(checkpoint_id)
        self.logger.info(
            f"Resuming {checkpoint.id} after day {checkpoint.last_successful_day or 0}"
            f"/{checkpoint.total_days}"
        )
        return self.start(
            credentials,
            checkpoint.rows(),
            time_slots,
            mappings,
            resume_from=checkpoint,
            run_id=checkpoint.id,
        )

    def pause(self):
        """Toggle pause on the active run."""
        if self._worker is not None:
            self._worker.send(ControlType.PAUSE)

    def stop(self):
        if self._worker is not None:
            self._worker.send(ControlType.STOP)

    def iter_messages(self, timeout: float = 0.1) -> Iterator[WorkerMessage]:
        """Yield queued worker messages without blocking longer than ``timeout``."""
        if self._worker is None:
            return
        while True:
            try:
                yield self._worker.messages.get(timeout=timeout)
            except queue.Empty:
                return

    def wait(self, timeout: Optional[float] = None,
             on_message: Optional[Callable[[WorkerMessage], None]] = None) -> RunOutcome:
        """
        Wait for the active run to end.

        Args:
            timeout: Maximum seconds to wait (None waits forever)
            on_message: Receives worker messages while waiting

        Returns:
            RunOutcome of the run

        Raises:
            RuntimeError: If no run was started
            concurrent.futures.TimeoutError: If the timeout expires
        """
        future = self._future
        if future is None:
            raise RuntimeError("No automation has been started")
        if on_message is None:
            outcome = future.result(timeout)
            self._settle()
            return outcome

        deadline = None if timeout is None else time.monotonic() + timeout
        while not future.done():
            if deadline is not None and time.monotonic() > deadline:
                raise concurrent.futures.TimeoutError()
            for message in self.iter_messages():
                on_message(message)

        # Messages posted before the run returned
        for message in self.iter_messages(timeout=0):
            on_message(message)
        outcome = future.result()
        self._settle()
        return outcome

    def run_with_retry(self, credentials: Credentials, rows: List[CSVRow],
                       time_slots: List[TimeSlot], mappings: AccountMappings,
                       policy: Optional[RetryPolicy] = None,
                       on_message: Optional[Callable[[WorkerMessage], None]] = None,
                       sleep: Callable[[float], None] = time.sleep) -> RunOutcome:
        """
        Run, retrying transient failures from the last checkpoint.

        Args:
            credentials: SSO credentials
            rows: Calendar rows
            time_slots: Work-day slots
            mappings: Account mappings
            policy: Backoff settings (max_retries from config by default)
            on_message: Receives worker messages
            sleep: Sleep function (injectable for tests)

        Returns:
            Outcome of the last attempt
        """
        policy = policy or RetryPolicy(max_attempts=self.config.max_retries)
        resume_from: Optional[AutomationCheckpoint] = None
        run_id: Optional[str] = None
        attempt = 1

        while True:
            self.start(credentials, rows, time_slots, mappings,
                       resume_from=resume_from, run_id=run_id)
            outcome = self.wait(on_message=on_message)

            if outcome.success or outcome.stopped:
                return outcome
            if attempt >= policy.max_attempts or not is_transient_error(outcome.error or ''):
                return outcome

            delay = policy.compute_delay(attempt)
            self.logger.warning(
                f"Attempt {attempt} failed ({outcome.error}); retrying in {delay:.1f}s"
            )
            sleep(delay)

            run_id = outcome.run_id
            resume_from = self.checkpoints.load(run_id)
            attempt += 1

    def close(self, timeout: float = 10.0):
        """Stop any active run and shut the worker down."""
        if self.is_running:
            self.stop()
            try:
                self._future.result(timeout)
            except Exception as e:
                self.logger.debug(f"Run did not end cleanly: {e}")

        if self._worker is not None:
            self._worker.shutdown(timeout)
            self._worker = None
        self.checkpoints.close()
