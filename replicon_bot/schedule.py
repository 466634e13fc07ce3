"""
Schedule compiler.

Turns calendar rows into the ordered time entries written for each day.
The compiler never raises for data problems: unmapped codes produce no
entries and malformed extras groups are skipped with a warning.
"""

from enum import Enum
from typing import List, Optional

from .config import SPECIAL_ACCOUNTS, SpecialAccounts
from .extras import ExtraGroup, parse_extras
from .logging_utils import get_logger, log_warning
from .models import AccountMappings, CSVRow, TimeEntry, TimeSlot


class DayKind(str, Enum):
    """Classification of a calendar day."""
    WORK = 'work'
    VACATION = 'vacation'
    WEEKEND = 'weekend'
    HOLIDAY = 'holiday'


def normalize_code(code: Optional[str]) -> str:
    """Trim and upper-case an account or project code."""
    return (code or '').strip().upper()


def classify_day(account: str, project: str,
                 special: SpecialAccounts = SPECIAL_ACCOUNTS) -> DayKind:
    """
    Classify a day from its account and project codes.

    Buckets are checked in a fixed order: vacation, weekend, then
    no-work (which requires both codes to be in the no-work set).

    Examples:
        >>> classify_day('h', '')
        <DayKind.VACATION: 'vacation'>
        >>> classify_day('BH', 'BH')
        <DayKind.HOLIDAY: 'holiday'>
    """
    account = normalize_code(account)
    project = normalize_code(project)

    if account in special.vacation:
        return DayKind.VACATION
    if account in special.weekend:
        return DayKind.WEEKEND
    if account in special.no_work and project in special.no_work:
        return DayKind.HOLIDAY
    return DayKind.WORK


class ScheduleCompiler:
    """
    Compiles calendar rows into time entries.
    """

    def __init__(self, mappings: AccountMappings, time_slots: List[TimeSlot],
                 special: SpecialAccounts = SPECIAL_ACCOUNTS):
        """
        Initialize the compiler.

        Args:
            mappings: Account code -> AccountMapping
            time_slots: Slots applied to every regular work day
            special: Special account code sets
        """
        self.mappings = mappings
        self.time_slots = list(time_slots)
        self.special = special
        self.logger = get_logger('schedule')

    def classify(self, row: CSVRow) -> DayKind:
        return classify_day(row.account, row.project, self.special)

    def regular_entries(self, row: CSVRow) -> List[TimeEntry]:
        """
        Entries generated from the time slots for a row.

        Special days and unmapped accounts produce no entries.
        """
        if self.classify(row) is not DayKind.WORK:
            return []

        account = normalize_code(row.account)
        project = normalize_code(row.project)

        mapping = self.mappings.get(account)
        if mapping is None:
            return []

        project_name = mapping.project_name(project)
        return [
            TimeEntry(
                start_time=slot.start_time,
                end_time=slot.end_time,
                project=mapping.name,
                account=project_name,
            )
            for slot in self.time_slots
        ]

    def extra_entry(self, group: ExtraGroup) -> Optional[TimeEntry]:
        """Resolve one extras group; None when its account is unmapped."""
        mapping = self.mappings.get(group.account)
        if mapping is None:
            return None

        return TimeEntry(
            start_time=group.start_standard,
            end_time=group.end_standard,
            project=mapping.name,
            account=mapping.project_name(group.project),
        )

    def extra_entries(self, row: CSVRow, day: Optional[int] = None) -> List[TimeEntry]:
        """
        Entries generated from a row's extras string, in declared order.

        Args:
            row: Calendar row
            day: Day number, only used in log messages
        """
        parsed = parse_extras(row.extras)
        label = f"Day {day}" if day is not None else "Row"

        for bad in parsed.malformed:
            log_warning(
                f"{label}: skipping extra {bad.position} '{bad.text}': {bad.reason}",
                self.logger
            )

        entries = []
        for group in parsed.groups:
            entry = self.extra_entry(group)
            if entry is None:
                self.logger.debug(f"{label}: extra account '{group.account}' not mapped")
                continue
            entries.append(entry)
        return entries

    def compile_day(self, row: CSVRow, day: Optional[int] = None) -> List[TimeEntry]:
        """
        Compile one row into its ordered entries.

        Regular entries come first, extras follow in declared order.

        Args:
            row: Calendar row
            day: Day number, only used in log messages

        Returns:
            List of TimeEntry (may be empty)
        """
        return self.regular_entries(row) + self.extra_entries(row, day)

    def compile(self, rows: List[CSVRow]) -> List[List[TimeEntry]]:
        """
        Compile every row.

        Returns:
            One entry list per day, in row order
        """
        return [self.compile_day(row, day) for day, row in enumerate(rows, start=1)]


def compile_schedule(rows: List[CSVRow], mappings: AccountMappings,
                     time_slots: List[TimeSlot]) -> List[List[TimeEntry]]:
    """
    Convenience function to compile all rows.

    Args:
        rows: Calendar rows, index 0 is day 1
        mappings: Account mappings
        time_slots: Slots applied to every regular work day

    Returns:
        One entry list per day
    """
    return ScheduleCompiler(mappings, time_slots).compile(rows)
