"""
Input file loading.

Rows come from a CSV file with one line per calendar day (the first data
line is day 1). Account mappings and time slots come from JSON files.

Expected CSV format:
    account,project,extras
    PROD,PI,
    H,,
    PROD,PI,EXT/PROD:PI:1600:1800
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import DEFAULT_TIME_SLOTS
from .models import AccountMappings, CSVRow, TimeSlot, mappings_from_dict


class InputLoadError(Exception):
    """Raised when an input file cannot be loaded."""
    pass


ACCOUNT = 'account'
PROJECT = 'project'
EXTRAS = 'extras'

REQUIRED_HEADERS = [ACCOUNT]

# Header names used by older exports
LEGACY_ALIASES: Dict[str, str] = {
    'cuenta': ACCOUNT,
    'proyecto': PROJECT,
    'extra': EXTRAS,
}

ENCODING = 'utf-8'


def normalize_header(header: str) -> str:
    """
    Normalize a header name to canonical form.

    Examples:
        >>> normalize_header('  Cuenta ')
        'account'
        >>> normalize_header('EXTRAS')
        'extras'
    """
    normalized = header.strip().lower()
    return LEGACY_ALIASES.get(normalized, normalized)


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise InputLoadError(f"File not found: {path}")
    try:
        with path.open('r', encoding=ENCODING) as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise InputLoadError(f"Failed to read {path}: {e}")


def load_rows(csv_path: str) -> List[CSVRow]:
    """
    Load calendar rows from a CSV file.

    Blank lines are kept as empty rows so that day numbering follows the
    file. The header row is required.

    Args:
        csv_path: Path to the CSV file

    Returns:
        Rows in file order (index 0 is day 1)

    Raises:
        InputLoadError: If the file is missing or has no account column
    """
    path = Path(csv_path)
    if not path.exists():
        raise InputLoadError(f"CSV file not found: {csv_path}")

    try:
        # utf-8-sig drops the BOM spreadsheet exports add
        with path.open('r', encoding='utf-8-sig', newline='') as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if not header:
                raise InputLoadError("CSV file is empty or has no headers")

            columns = [normalize_header(h) for h in header]
            missing = [h for h in REQUIRED_HEADERS if h not in columns]
            if missing:
                raise InputLoadError(f"CSV missing required headers: {', '.join(missing)}")

            rows = []
            for values in reader:
                record = dict(zip(columns, values))
                rows.append(CSVRow(
                    account=record.get(ACCOUNT, ''),
                    project=record.get(PROJECT, ''),
                    extras=record.get(EXTRAS, ''),
                ))
    except InputLoadError:
        raise
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise InputLoadError(f"Failed to load CSV: {e}")

    return rows


def load_mappings(json_path: str) -> AccountMappings:
    """
    Load account mappings from a JSON file.

    Expected format:
        {"PROD": {"name": "Production", "projects": {"PI": "Project Alpha"}}}

    Raises:
        InputLoadError: If the file is missing or malformed
    """
    data = _read_json(Path(json_path))
    if not isinstance(data, dict):
        raise InputLoadError(f"Mappings must be a JSON object: {json_path}")

    for code, value in data.items():
        if not isinstance(value, dict) or not value.get('name'):
            raise InputLoadError(f"Mapping for {code!r} needs a 'name'")
        if not isinstance(value.get('projects') or {}, dict):
            raise InputLoadError(f"Projects for {code!r} must be a JSON object")

    return mappings_from_dict(data)


def load_time_slots(json_path: Optional[str] = None) -> List[TimeSlot]:
    """
    Load work-day time slots from a JSON file.

    Both ``start_time``/``end_time`` and ``startTime``/``endTime`` keys are
    accepted. Without a path the default slots are returned.

    Raises:
        InputLoadError: If the file is missing or malformed
    """
    if not json_path:
        return [TimeSlot.from_dict(slot) for slot in DEFAULT_TIME_SLOTS]

    data = _read_json(Path(json_path))
    if not isinstance(data, list):
        raise InputLoadError(f"Time slots must be a JSON list: {json_path}")

    slots = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise InputLoadError(f"Time slot {index} must be a JSON object")
        slots.append(TimeSlot.from_dict({
            'id': item.get('id', index),
            'start_time': item.get('start_time', item.get('startTime', '')),
            'end_time': item.get('end_time', item.get('endTime', '')),
        }))
    return slots
