"""
Dry run simulation.

Reproduces the compiler's classification and entry generation and
aggregates counts, without touching a browser.
"""

from typing import List

from .extras import parse_extras
from .models import AccountMappings, CSVRow, DayPreview, DryRunResult, TimeSlot
from .schedule import DayKind, ScheduleCompiler, normalize_code


# Heuristic weights, not measured timings
SETUP_MS = 30000
PER_WORK_DAY_MS = 2000
PER_ENTRY_MS = 3000

DAY_LABELS = {
    DayKind.VACATION: "Vacation",
    DayKind.WEEKEND: "Weekend",
    DayKind.HOLIDAY: "Holiday / no work",
}


def estimate_duration_ms(work_days: int, total_entries: int) -> int:
    """
    Rough duration estimate for a run.

    A fixed heuristic: 30s of setup (launch, login, month selection),
    2s per work day and 3s per entry. It has no empirical basis and
    should only be shown as an approximation.
    """
    return SETUP_MS + work_days * PER_WORK_DAY_MS + total_entries * PER_ENTRY_MS


def dry_run(rows: List[CSVRow], mappings: AccountMappings,
            time_slots: List[TimeSlot]) -> DryRunResult:
    """
    Simulate a run.

    Args:
        rows: Calendar rows, index 0 is day 1
        mappings: Account mappings
        time_slots: Slots applied to every regular work day

    Returns:
        DryRunResult with counts, per-day previews and an estimate
    """
    compiler = ScheduleCompiler(mappings, time_slots)
    result = DryRunResult(total_days=len(rows))

    for day, row in enumerate(rows, start=1):
        kind = compiler.classify(row)
        lines: List[str] = []

        if kind is DayKind.VACATION:
            result.vacation_days += 1
        elif kind is DayKind.WEEKEND:
            result.weekend_days += 1
        elif kind is DayKind.HOLIDAY:
            result.holiday_days += 1
        else:
            result.work_days += 1
            account = normalize_code(row.account)
            if account and account not in mappings:
                result.warnings.append(f"Day {day}: account '{account}' not mapped")

        for entry in compiler.regular_entries(row):
            lines.append(entry.describe())

        parsed = parse_extras(row.extras)
        for bad in parsed.malformed:
            result.errors.append(
                f"Day {day}, extra {bad.position}: invalid format '{bad.text}' ({bad.reason})"
            )
        for group in parsed.groups:
            entry = compiler.extra_entry(group)
            if entry is None:
                result.warnings.append(f"Day {day}: extra account '{group.account}' not mapped")
                continue
            lines.append(f"[EXT] {entry.describe()}")

        result.total_entries += len(lines)
        count = len(lines)
        if not lines and kind in DAY_LABELS:
            lines.append(DAY_LABELS[kind])

        result.entries_per_day.append(DayPreview(day=day, count=count, entries=lines))

    result.estimated_duration_ms = estimate_duration_ms(result.work_days, result.total_entries)
    result.success = len(result.errors) == 0
    return result
