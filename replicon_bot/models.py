"""
Data models for timesheet automation.

This module defines the data structures used throughout the application,
including calendar rows, time slots, account mappings, compiled time
entries, checkpoints and preview results.
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass
class CSVRow:
    """
    One calendar day of input.

    Position in the row list is the day: index 0 is day 1 of the month.

    Attributes:
        account: Account code (e.g., "PROD", "H")
        project: Project code (e.g., "PI")
        extras: Optional extras string (e.g., "EXT/PROD:PI:1600:1800")
    """
    account: str
    project: str = ""
    extras: str = ""

    def __post_init__(self):
        self.account = (self.account or "").strip()
        self.project = (self.project or "").strip()
        self.extras = (self.extras or "").strip()

    def is_empty(self) -> bool:
        """Check whether the row carries no data at all."""
        return not (self.account or self.project or self.extras)

    def to_dict(self) -> Dict[str, str]:
        return {'account': self.account, 'project': self.project, 'extras': self.extras}


@dataclass
class TimeSlot:
    """
    A time range applied to every regular work day.

    Attributes:
        id: Slot identifier
        start_time: Start time text (e.g., "7:00am")
        end_time: End time text (e.g., "1:00pm")
    """
    id: str
    start_time: str
    end_time: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimeSlot':
        return cls(
            id=str(data.get('id', '')),
            start_time=str(data.get('start_time', '')).strip(),
            end_time=str(data.get('end_time', '')).strip(),
        )


@dataclass
class AccountMapping:
    """
    Display names for one account code and its project codes.

    Attributes:
        name: Account display name as shown in Replicon
        projects: Project code -> project display name
    """
    name: str
    projects: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountMapping':
        projects = data.get('projects') or {}
        return cls(
            name=str(data.get('name', '')).strip(),
            projects={
                str(code).strip().upper(): str(name)
                for code, name in projects.items()
            },
        )

    def project_name(self, project_code: str) -> str:
        """Resolve a project code, falling back to the code itself."""
        return self.projects.get(project_code, project_code)


AccountMappings = Dict[str, AccountMapping]


def mappings_from_dict(data: Dict[str, Any]) -> AccountMappings:
    """
    Build account mappings from plain JSON-shaped data.

    Args:
        data: {code: {"name": ..., "projects": {code: name}}}

    Returns:
        Mappings keyed by upper-case account code
    """
    return {
        str(code).strip().upper(): AccountMapping.from_dict(value)
        for code, value in data.items()
    }


@dataclass
class TimeEntry:
    """
    A single entry written to the timesheet.

    Note the browser's naming: ``project`` holds the resolved account
    display name and ``account`` holds the resolved project display name.
    """
    start_time: str
    end_time: str
    project: str
    account: str

    def describe(self) -> str:
        return f"{self.project} - {self.account}: {self.start_time} - {self.end_time}"


@dataclass
class Credentials:
    """SSO credentials for a run."""
    email: str
    password: str
    remember_me: bool = False

    def __repr__(self):
        return f"Credentials(email={self.email!r}, password='***', remember_me={self.remember_me})"


class CheckpointStatus(str, Enum):
    """Status of a run that still needs attention."""
    IN_PROGRESS = 'in-progress'
    PAUSED = 'paused'
    ERROR = 'error'


PENDING_STATUSES = (
    CheckpointStatus.IN_PROGRESS,
    CheckpointStatus.PAUSED,
    CheckpointStatus.ERROR,
)


def serialize_rows(rows: List[CSVRow]) -> str:
    """Serialize rows for storage inside a checkpoint."""
    return json.dumps([row.to_dict() for row in rows], ensure_ascii=False)


def deserialize_rows(payload: str) -> List[CSVRow]:
    """Inverse of serialize_rows."""
    return [
        CSVRow(
            account=item.get('account', ''),
            project=item.get('project', ''),
            extras=item.get('extras', ''),
        )
        for item in json.loads(payload or '[]')
    ]


@dataclass
class AutomationCheckpoint:
    """
    Durable snapshot of a run used for crash recovery.

    Attributes:
        id: Automation run identifier
        timestamp: Last update time (milliseconds since epoch)
        current_day: Day being processed (1-based, 0 before the first day)
        total_days: Number of days in the run
        completed_entries: Day numbers whose entries were all written
        csv_data: Serialized input rows
        status: Checkpoint status
        error_message: Error that ended the run, if any
        last_successful_day: Last day fully processed, if any
    """
    id: str
    timestamp: int
    current_day: int
    total_days: int
    completed_entries: List[int] = field(default_factory=list)
    csv_data: str = '[]'
    status: CheckpointStatus = CheckpointStatus.IN_PROGRESS
    error_message: Optional[str] = None
    last_successful_day: Optional[int] = None

    @staticmethod
    def now_ms() -> int:
        return int(time.time() * 1000)

    def touch(self):
        """Refresh the timestamp."""
        self.timestamp = self.now_ms()

    def rows(self) -> List[CSVRow]:
        return deserialize_rows(self.csv_data)

    def copy(self) -> 'AutomationCheckpoint':
        """Independent copy, as it would be read back from disk."""
        return AutomationCheckpoint.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'timestamp': self.timestamp,
            'currentDay': self.current_day,
            'totalDays': self.total_days,
            'completedEntries': list(self.completed_entries),
            'csvData': self.csv_data,
            'status': self.status.value,
        }
        if self.error_message is not None:
            data['errorMessage'] = self.error_message
        if self.last_successful_day is not None:
            data['lastSuccessfulDay'] = self.last_successful_day
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AutomationCheckpoint':
        return cls(
            id=str(data['id']),
            timestamp=int(data.get('timestamp', 0)),
            current_day=int(data.get('currentDay', 0)),
            total_days=int(data.get('totalDays', 0)),
            completed_entries=[int(d) for d in data.get('completedEntries', [])],
            csv_data=data.get('csvData', '[]'),
            status=CheckpointStatus(data.get('status', CheckpointStatus.IN_PROGRESS.value)),
            error_message=data.get('errorMessage'),
            last_successful_day=data.get('lastSuccessfulDay'),
        )


@dataclass
class ValidationResult:
    """
    Result of the static validation pass.

    Errors block a run; warnings and suggestions never do.
    """
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class DayPreview:
    """Preview of one day in a dry run."""
    day: int
    count: int
    entries: List[str] = field(default_factory=list)


@dataclass
class DryRunResult:
    """
    Predicted outcome of a run, computed without a browser.

    Attributes:
        success: True when no errors were found
        total_days: Number of input rows
        work_days: Days classified as work
        vacation_days: Days classified as vacation
        holiday_days: Days classified as holiday / no work
        weekend_days: Days classified as weekend
        total_entries: Entries that would be written (regular + extras)
        entries_per_day: Per-day preview
        warnings: Non-blocking issues
        errors: Malformed extras groups
        estimated_duration_ms: Heuristic duration estimate
    """
    success: bool = True
    total_days: int = 0
    work_days: int = 0
    vacation_days: int = 0
    holiday_days: int = 0
    weekend_days: int = 0
    total_entries: int = 0
    entries_per_day: List[DayPreview] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    estimated_duration_ms: int = 0

    def format_summary(self) -> str:
        """
        Format the result as a human-readable string.

        Returns:
            Formatted summary text
        """
        lines = [
            "\n" + "="*60,
            "DRY RUN SUMMARY",
            "="*60,
            f"\nDays:",
            f"  Total: {self.total_days}",
            f"  Work: {self.work_days}",
            f"  Vacation: {self.vacation_days}",
            f"  Holiday: {self.holiday_days}",
            f"  Weekend: {self.weekend_days}",
            f"\nEntries: {self.total_entries}",
            f"Estimated duration: ~{self.estimated_duration_ms / 1000:.0f}s",
        ]

        lines.append(f"\nPer day:")
        for preview in self.entries_per_day:
            lines.append(f"  Day {preview.day} ({preview.count}):")
            for text in preview.entries:
                lines.append(f"    - {text}")

        if self.warnings:
            lines.append(f"\nWarnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        if self.errors:
            lines.append(f"\nErrors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        lines.append("="*60 + "\n")
        return "\n".join(lines)


@dataclass
class AutomationProgress:
    """Progress snapshot sent to the host."""
    status: str = 'running'
    current_day: int = 0
    total_days: int = 0
    current_entry: int = 0
    total_entries: int = 0
    message: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'currentDay': self.current_day,
            'totalDays': self.total_days,
            'currentEntry': self.current_entry,
            'totalEntries': self.total_entries,
            'message': self.message,
        }


class MessageType:
    """Types of messages sent from the automation worker to the host."""
    PROGRESS = 'progress'
    LOG = 'log'
    COMPLETE = 'complete'
    ERROR = 'error'
    READY = 'ready'


class ControlType:
    """Types of control messages sent from the host to the worker."""
    STOP = 'stop'
    PAUSE = 'pause'


@dataclass
class WorkerMessage:
    """
    A message from the automation worker.

    Payloads:
        progress: AutomationProgress.to_dict()
        log: {"level", "message", "timestamp"}
        complete: {"success"}
        error: {"error"}
        ready: {}
    """
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
