"""
Replicon Bot - Automated timesheet filling for Replicon.

This package compiles a month of calendar rows into time entries and
writes them to the Replicon timesheet through the SSO login flow, with
validation, dry runs, pause/resume and checkpoint recovery.
"""

__version__ = '1.0.0'
__author__ = 'Replicon Automation'

from .config import Config
from .models import AccountMapping, CSVRow, Credentials, TimeEntry, TimeSlot
from .schedule import ScheduleCompiler, compile_schedule
from .validation import validate_automation_data
from .dry_run import dry_run
from .checkpoints import CheckpointStore
from .runner import AutomationRunner, RunState
from .worker import AutomationController, AutomationWorker

__all__ = [
    'Config',
    'AccountMapping',
    'CSVRow',
    'Credentials',
    'TimeEntry',
    'TimeSlot',
    'ScheduleCompiler',
    'compile_schedule',
    'validate_automation_data',
    'dry_run',
    'CheckpointStore',
    'AutomationRunner',
    'RunState',
    'AutomationController',
    'AutomationWorker',
]
