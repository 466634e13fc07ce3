"""
Static validation of automation inputs.

A read-only pass over rows, mappings and time slots that reports
errors (block a run), warnings and suggestions before any browser work.
"""

from typing import List

from .extras import parse_extras
from .models import AccountMappings, CSVRow, TimeSlot, ValidationResult
from .schedule import DayKind, classify_day, normalize_code
from .time_utils import is_24h_clock


def _fail(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, errors=[message])


def validate_automation_data(rows: List[CSVRow], mappings: AccountMappings,
                             time_slots: List[TimeSlot],
                             check_slot_format: bool = True) -> ValidationResult:
    """
    Validate rows, mappings and time slots.

    Args:
        rows: Calendar rows, index 0 is day 1
        mappings: Account mappings
        time_slots: Slots applied to every regular work day
        check_slot_format: Report slot times that are not HH:MM as errors;
            when False they are only warned about, since the browser types
            slot text as written (e.g. "7:00am")

    Returns:
        ValidationResult; is_valid is True when there are no errors
    """
    if not rows:
        return _fail("No CSV rows to process")
    if not mappings:
        return _fail("No account mappings configured")
    if not time_slots:
        return _fail("No time slots configured")

    errors: List[str] = []
    warnings: List[str] = []
    suggestions: List[str] = []

    # dict keeps first-seen order
    unmapped_accounts = {}
    empty_rows = 0
    work_days = 0

    for line, row in enumerate(rows, start=1):
        if row.is_empty():
            empty_rows += 1
            continue

        account = normalize_code(row.account)
        project = normalize_code(row.project)
        kind = classify_day(account, project)

        if kind is DayKind.WORK and account:
            work_days += 1
            mapping = mappings.get(account)
            if mapping is None:
                unmapped_accounts[account] = True
                warnings.append(f"Row {line}: account '{account}' is not in the mapping")
            elif project and project not in mapping.projects:
                warnings.append(
                    f"Row {line}: project '{project}' is not mapped for account '{account}'"
                )

        parsed = parse_extras(row.extras)
        for bad in parsed.malformed:
            errors.append(
                f"Row {line}, extra {bad.position}: invalid format '{bad.text}' "
                f"(expected ACCOUNT:PROJECT:HHMM:HHMM; {bad.reason})"
            )
        for group in parsed.groups:
            if group.account not in mappings:
                unmapped_accounts[group.account] = True
                warnings.append(
                    f"Row {line}: extra account '{group.account}' is not in the mapping"
                )

    if unmapped_accounts:
        suggestions.append(
            "Consider adding these accounts to the mapping: "
            + ", ".join(unmapped_accounts)
        )

    if empty_rows > 0:
        suggestions.append(f"{empty_rows} row(s) are empty and will be ignored")

    if work_days == 0:
        warnings.append("There are no work days in the data")

    slot_problems = errors if check_slot_format else warnings
    for index, slot in enumerate(time_slots, start=1):
        for label, value in (('start', slot.start_time), ('end', slot.end_time)):
            if not is_24h_clock(value):
                slot_problems.append(
                    f"Time slot {index}: invalid {label} time '{value}' (expected HH:MM)"
                )

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
    )
