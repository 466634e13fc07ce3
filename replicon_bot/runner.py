"""
Automation runner.

Drives one run through its states:

    idle -> starting -> running <-> paused -> stopping -> completed | errored

Pause and stop are cooperative: they are observed at day boundaries only
and never interrupt an entry being written. Browser resources are
released exactly once, in the stopping state, however the run ends.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from .checkpoints import CheckpointStore, check_checkpoint_id
from .config import Config
from .logging_utils import get_logger, log_event
from .models import (
    AccountMappings,
    AutomationCheckpoint,
    AutomationProgress,
    CheckpointStatus,
    Credentials,
    CSVRow,
    MessageType,
    TimeEntry,
    TimeSlot,
    WorkerMessage,
    serialize_rows,
)
from .playwright_client import RepliconClient
from .schedule import ScheduleCompiler


class RunState(str, Enum):
    """States of an automation run."""
    IDLE = 'idle'
    STARTING = 'starting'
    RUNNING = 'running'
    PAUSED = 'paused'
    STOPPING = 'stopping'
    COMPLETED = 'completed'
    ERRORED = 'errored'


TRANSITIONS = {
    RunState.IDLE: {RunState.STARTING},
    RunState.STARTING: {RunState.RUNNING, RunState.STOPPING},
    RunState.RUNNING: {RunState.PAUSED, RunState.STOPPING},
    RunState.PAUSED: {RunState.RUNNING, RunState.STOPPING},
    RunState.STOPPING: {RunState.COMPLETED, RunState.ERRORED},
    RunState.COMPLETED: set(),
    RunState.ERRORED: set(),
}


class InvalidTransitionError(Exception):
    """Raised when a run is asked to move to a state it cannot reach."""
    pass


def new_run_id() -> str:
    return f"run-{time.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"


class RunControl:
    """
    Pause/stop token shared between the host and a running loop.

    Waiters wake as soon as the run is resumed or stopped.
    """

    def __init__(self):
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._stopped = asyncio.Event()

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def pause(self):
        self._resumed.clear()

    def resume(self):
        self._resumed.set()

    def toggle_pause(self) -> bool:
        """Flip the pause flag; returns True when now paused."""
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    def stop(self):
        self._stopped.set()

    async def wait_while_paused(self):
        """Block until resumed or stopped."""
        if not self.paused or self.stopped:
            return

        waiters = [
            asyncio.ensure_future(self._resumed.wait()),
            asyncio.ensure_future(self._stopped.wait()),
        ]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()


@dataclass
class RunOutcome:
    """
    How a run ended.

    Attributes:
        run_id: Run identifier (also the checkpoint id)
        state: Final state (completed or errored)
        success: True when every day was processed
        stopped: True when the run was stopped before the end
        error: Error message for errored runs
        last_successful_day: Last day fully processed
        entries_written: Entries written in this run
    """
    run_id: str
    state: RunState
    success: bool
    stopped: bool = False
    error: Optional[str] = None
    last_successful_day: Optional[int] = None
    entries_written: int = 0


class AutomationRunner:
    """
    Runs one automation: login, then every day's entries in order.
    """

    def __init__(self, config: Config, sessions, checkpoints: CheckpointStore,
                 emit: Optional[Callable[[WorkerMessage], None]] = None,
                 client_factory=RepliconClient,
                 run_id: Optional[str] = None):
        """
        Initialize the runner.

        Args:
            config: Application configuration
            sessions: BrowserSessionManager handing out browsers
            checkpoints: Store for recovery checkpoints
            emit: Receives outbound worker messages
            client_factory: Builds the browser client from (config, browser)
            run_id: Run identifier; generated when None

        Raises:
            InvalidCheckpointIdError: If run_id cannot name a checkpoint file
        """
        self.config = config
        self.sessions = sessions
        self.checkpoints = checkpoints
        self.client_factory = client_factory
        self.run_id = check_checkpoint_id(run_id) if run_id else new_run_id()
        self.logger = get_logger('runner')

        self._emit = emit or (lambda message: None)
        self.control = RunControl()
        self.state = RunState.IDLE
        self.state_history: List[RunState] = [RunState.IDLE]
        self.progress = AutomationProgress(status='idle')

        self._checkpoint: Optional[AutomationCheckpoint] = None
        self._client = None
        self._browser = None
        self._cleaned_up = False
        self._finished_all_days = False
        self.entries_written = 0

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def _send(self, message_type: str, data: Optional[dict] = None):
        try:
            self._emit(WorkerMessage(type=message_type, data=data or {}))
        except Exception as e:
            self.logger.debug(f"Dropping {message_type} message: {e}")

    def _log(self, level: str, message: str):
        log_event(level, message, self.logger)

        self._send(MessageType.LOG, {
            'level': level,
            'message': message,
            'timestamp': datetime.now().isoformat(),
        })

    def _update_progress(self, **changes):
        for name, value in changes.items():
            setattr(self.progress, name, value)
        if self.control.paused and self.state in (RunState.RUNNING, RunState.PAUSED):
            self.progress.status = 'paused'
        self._send(MessageType.PROGRESS, self.progress.to_dict())

    # ------------------------------------------------------------------
    # State and checkpoints
    # ------------------------------------------------------------------

    def _transition(self, new_state: RunState):
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move from {self.state.value} to {new_state.value}"
            )
        self.logger.debug(f"State: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.state_history.append(new_state)

    def _save_checkpoint(self, status: Optional[CheckpointStatus] = None):
        checkpoint = self._checkpoint
        if status is not None:
            checkpoint.status = status
        checkpoint.touch()
        try:
            self.checkpoints.save(checkpoint)
        except OSError as e:
            self.logger.warning(f"Could not save checkpoint {checkpoint.id}: {e}")

    @property
    def checkpoint(self) -> Optional[AutomationCheckpoint]:
        return self._checkpoint

    # ------------------------------------------------------------------
    # Controls (call from the event loop thread)
    # ------------------------------------------------------------------

    def pause(self):
        if not self.control.paused:
            self.control.pause()
            self._log('info', "Pause requested; pausing at the next day")

    def resume(self):
        if self.control.paused:
            self.control.resume()
            self._log('info', "Resume requested")

    def toggle_pause(self):
        if self.control.paused:
            self.resume()
        else:
            self.pause()

    def stop(self):
        if not self.control.stopped:
            self.control.stop()
            self._log('warning', "Stop requested; stopping at the next day")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, credentials: Credentials, rows: List[CSVRow],
                  time_slots: List[TimeSlot], mappings: AccountMappings,
                  resume_from: Optional[AutomationCheckpoint] = None) -> RunOutcome:
        """
        Execute the run.

        Args:
            credentials: SSO credentials
            rows: Calendar rows, index 0 is day 1
            time_slots: Slots applied to every regular work day
            mappings: Account mappings
            resume_from: Checkpoint of an earlier attempt; days up to its
                last successful day are not processed again

        Returns:
            RunOutcome describing how the run ended

        Raises:
            InvalidTransitionError: If the runner was already used
        """
        self._transition(RunState.STARTING)

        start_day = 0
        completed: List[int] = []
        if resume_from is not None:
            start_day = resume_from.last_successful_day or 0
            completed = list(resume_from.completed_entries)

        self._checkpoint = AutomationCheckpoint(
            id=self.run_id,
            timestamp=AutomationCheckpoint.now_ms(),
            current_day=start_day,
            total_days=len(rows),
            completed_entries=completed,
            csv_data=serialize_rows(rows),
            status=CheckpointStatus.IN_PROGRESS,
            last_successful_day=start_day or None,
        )
        self._save_checkpoint()

        error: Optional[str] = None
        try:
            self._log('info', "Starting automation...")
            days = ScheduleCompiler(mappings, time_slots).compile(rows)
            total_entries = sum(len(entries) for entries in days)
            self._log('info', f"Compiled {len(days)} day(s) with {total_entries} entries")
            if start_day:
                self._log('info', f"Resuming after day {start_day}")

            self._update_progress(
                status='running',
                current_day=start_day,
                total_days=len(days),
                message="Starting browser",
            )

            await self._start_browser(credentials)

            self._transition(RunState.RUNNING)
            await self._process_days(days, start_day)

        except Exception as e:
            error = str(e) or e.__class__.__name__
            self._log('error', f"Error: {error}")

        finally:
            self._transition(RunState.STOPPING)
            await self._cleanup()

        return self._finish(error)

    async def _start_browser(self, credentials: Credentials):
        self._browser = await self.sessions.acquire()
        self._client = self.client_factory(self.config, self._browser)
        await self._client.open()
        self._log('success', "Browser started")

        await self._client.login(credentials)
        self._log('success', "Signed in")

        await self._client.select_month()
        self._log('success', "Month selected")

    async def _pause_point(self, day_number: int):
        self._transition(RunState.PAUSED)
        self._save_checkpoint(CheckpointStatus.PAUSED)
        self._update_progress(status='paused', message=f"Paused before day {day_number}")
        self._log('info', f"Paused before day {day_number}")

        await self.control.wait_while_paused()

        if self.control.stopped:
            return

        self._transition(RunState.RUNNING)
        self._save_checkpoint(CheckpointStatus.IN_PROGRESS)
        self._update_progress(status='running', message=f"Resumed at day {day_number}")
        self._log('info', f"Resumed at day {day_number}")

    async def _process_days(self, days: List[List[TimeEntry]], start_day: int):
        total_days = len(days)

        for index in range(start_day, total_days):
            day_number = index + 1

            if self.control.stopped:
                break
            if self.control.paused:
                await self._pause_point(day_number)
                if self.control.stopped:
                    break

            entries = days[index]
            self._checkpoint.current_day = day_number
            self._update_progress(
                status='running',
                current_day=day_number,
                total_days=total_days,
                current_entry=0,
                total_entries=len(entries),
                message=f"Processing day {day_number} of {total_days}",
            )

            if not entries:
                self._log('info', f"Day {day_number}: no entries, skipping")
            elif await self._client.is_vacation_or_holiday(day_number):
                self._log('info', f"Day {day_number}: vacation/holiday in Replicon, skipping")
            else:
                await self._write_day(day_number, entries, total_days)

            self._mark_day_done(day_number)
        else:
            self._finished_all_days = True

    async def _write_day(self, day_number: int, entries: List[TimeEntry], total_days: int):
        self._log('info', f"Day {day_number}: writing {len(entries)} entries")
        await self._client.open_day(day_number)

        for entry_index, entry in enumerate(entries, start=1):
            self._update_progress(
                status='running',
                current_day=day_number,
                total_days=total_days,
                current_entry=entry_index,
                total_entries=len(entries),
                message=f"Day {day_number}: entry {entry_index}/{len(entries)}",
            )
            await self._client.add_time_entry(entry)
            self.entries_written += 1
            self._log('success', f"  ✓ {entry.describe()}")

    def _mark_day_done(self, day_number: int):
        checkpoint = self._checkpoint
        checkpoint.last_successful_day = day_number
        if day_number not in checkpoint.completed_entries:
            checkpoint.completed_entries.append(day_number)
        self._save_checkpoint()

    async def _cleanup(self):
        """Close page, context and browser. Runs once per run."""
        if self._cleaned_up:
            return
        self._cleaned_up = True

        client, self._client = self._client, None
        browser, self._browser = self._browser, None

        if client is not None:
            try:
                await client.close()
            except Exception as e:
                self.logger.debug(f"Ignoring error while closing client: {e}")
        if browser is not None:
            await self.sessions.release(browser)

        self.logger.debug("Browser resources released")

    def _finish(self, error: Optional[str]) -> RunOutcome:
        checkpoint = self._checkpoint

        if error is not None:
            checkpoint.error_message = error
            self._save_checkpoint(CheckpointStatus.ERROR)
            self._transition(RunState.ERRORED)
            self.progress.status = 'error'
            self.progress.message = error
            self._send(MessageType.PROGRESS, self.progress.to_dict())
            self._send(MessageType.ERROR, {'error': error})
            return RunOutcome(
                run_id=self.run_id,
                state=self.state,
                success=False,
                error=error,
                last_successful_day=checkpoint.last_successful_day,
                entries_written=self.entries_written,
            )

        if not self._finished_all_days:
            self._save_checkpoint(CheckpointStatus.PAUSED)
            self._transition(RunState.COMPLETED)
            self._log('warning', "Automation stopped")
            self.progress.status = 'idle'
            self.progress.message = "Automation stopped"
            self._send(MessageType.PROGRESS, self.progress.to_dict())
            self._send(MessageType.COMPLETE, {'success': False})
            return RunOutcome(
                run_id=self.run_id,
                state=self.state,
                success=False,
                stopped=True,
                last_successful_day=checkpoint.last_successful_day,
                entries_written=self.entries_written,
            )

        self.checkpoints.clear(self.run_id)
        self._transition(RunState.COMPLETED)
        self._log('success', "Automation completed successfully")
        self.progress.status = 'completed'
        self.progress.message = "Automation completed"
        self._send(MessageType.PROGRESS, self.progress.to_dict())
        self._send(MessageType.COMPLETE, {'success': True})
        return RunOutcome(
            run_id=self.run_id,
            state=self.state,
            success=True,
            last_successful_day=checkpoint.last_successful_day,
            entries_written=self.entries_written,
        )
