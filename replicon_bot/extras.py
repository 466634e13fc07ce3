"""
Parser for the extras mini-grammar.

Extra (e.g., overtime) entries are encoded in a single CSV column:

    EXT/ACC:PROJ:HHMM:HHMM;ACC:PROJ:HHMM:HHMM

Each group has exactly four colon-separated fields and uses 24-hour
military time. Malformed groups are skipped and reported, never raised.
"""

from dataclasses import dataclass, field
from typing import List

from .config import EXTRAS_PREFIX
from .time_utils import is_military_time, military_to_standard


GROUP_SEPARATOR = ';'
FIELD_SEPARATOR = ':'
FIELD_COUNT = 4


@dataclass
class ExtraGroup:
    """
    One extra entry.

    Attributes:
        account: Account code (upper-case)
        project: Project code (upper-case)
        start: Start time, military (e.g., "1600")
        end: End time, military (e.g., "1800")
    """
    account: str
    project: str
    start: str
    end: str

    @property
    def start_standard(self) -> str:
        return military_to_standard(self.start)

    @property
    def end_standard(self) -> str:
        return military_to_standard(self.end)

    def to_text(self) -> str:
        return FIELD_SEPARATOR.join([self.account, self.project, self.start, self.end])


@dataclass
class MalformedGroup:
    """
    A group that was skipped.

    Attributes:
        position: 1-based position of the group in the extras string
        text: Raw group text
        reason: Why the group was rejected
    """
    position: int
    text: str
    reason: str


@dataclass
class ExtrasParseResult:
    """Valid groups in declared order plus the groups that were skipped."""
    groups: List[ExtraGroup] = field(default_factory=list)
    malformed: List[MalformedGroup] = field(default_factory=list)


def has_extras(text: str) -> bool:
    """Check whether a string uses the extras prefix."""
    return bool(text) and text.strip().upper().startswith(EXTRAS_PREFIX)


def _parse_group(position: int, raw: str):
    fields = [part.strip() for part in raw.split(FIELD_SEPARATOR)]

    if len(fields) != FIELD_COUNT:
        return MalformedGroup(
            position=position,
            text=raw,
            reason=f"expected {FIELD_COUNT} fields ACCOUNT:PROJECT:START:END, got {len(fields)}",
        )

    account, project, start, end = fields
    if not account:
        return MalformedGroup(position=position, text=raw, reason="missing account code")

    for value in (start, end):
        if not is_military_time(value):
            return MalformedGroup(
                position=position,
                text=raw,
                reason=f"invalid military time '{value}' (expected HHMM)",
            )

    return ExtraGroup(
        account=account.upper(),
        project=project.upper(),
        start=start,
        end=end,
    )


def parse_extras(text: str) -> ExtrasParseResult:
    """
    Parse an extras string.

    Args:
        text: Raw extras column value

    Returns:
        ExtrasParseResult; empty when the string does not use the prefix

    Examples:
        >>> parse_extras("EXT/PROD:PI:1600:1800").groups
        [ExtraGroup(account='PROD', project='PI', start='1600', end='1800')]
        >>> parse_extras("overtime").groups
        []
    """
    result = ExtrasParseResult()
    if not has_extras(text):
        return result

    body = text.strip()[len(EXTRAS_PREFIX):]

    for position, raw in enumerate(body.split(GROUP_SEPARATOR), start=1):
        raw = raw.strip()
        if not raw:
            continue

        parsed = _parse_group(position, raw)
        if isinstance(parsed, MalformedGroup):
            result.malformed.append(parsed)
        else:
            result.groups.append(parsed)

    return result


def format_extras(groups: List[ExtraGroup]) -> str:
    """
    Render groups back into the extras grammar.

    Examples:
        >>> format_extras([ExtraGroup('PROD', 'PI', '1600', '1800')])
        'EXT/PROD:PI:1600:1800'
    """
    if not groups:
        return ""
    return EXTRAS_PREFIX + GROUP_SEPARATOR.join(group.to_text() for group in groups)
