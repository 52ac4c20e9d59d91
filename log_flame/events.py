"""
events.py

Turn raw log lines into FlameEvents.

Each line is searched for a timestamp and a list of block names. The
block names are reconciled against a running stack (longest common
prefix kept, the rest closed, the new suffix opened) and an event is
emitted whenever the resulting hierarchy differs from the last one
emitted. Durations are the gap to the next event once the events are
sorted by time.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog
from dateutil import parser as dt_parser

from .patterns import DEFAULT_BLOCK_PATTERN, DEFAULT_BLOCK_PATTERNS, compile_pattern

logger = structlog.get_logger()

# Log levels are not hierarchy segments, whichever delimiter they come in
DISCARDED_LEVELS = frozenset({"INFO", "WARN", "WARNING", "DEBUG", "ERROR"})

_ONE_MS = timedelta(milliseconds=1)

_DMY_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})\s+(\d{2}):(\d{2}):(\d{2})(\.\d+)?")
_YMD_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):(\d{2})(\.\d+)?(?!,\d)")
_YMD_COMMA_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):(\d{2}),(\d{3})")


@dataclass
class FlameEvent:
    line: int
    timestamp: datetime
    blocks: Tuple[str, ...]
    duration: Optional[int] = None  # ms, set by derive_durations()


def to_utc(value: datetime) -> datetime:
    """Naive timestamps are read as UTC so they can be compared with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def millis_between(start: datetime, end: datetime) -> int:
    return (to_utc(end) - to_utc(start)) // _ONE_MS


def _from_fields(match: "re.Match[str]", order: Sequence[int], millis: int = 0) -> Optional[datetime]:
    year, month, day, hour, minute, second = (int(match.group(i)) for i in order)
    try:
        return datetime(year, month, day, hour, minute, second, millis * 1000)
    except ValueError:
        return None


def parse_timestamp(text: str) -> Optional[datetime]:
    """
    Parse a matched timestamp substring.

    Tries, in order: ISO-8601 (dateutil's isoparse), dd/mm/yyyy hh:mm:ss,
    yyyy-mm-dd hh:mm:ss, yyyy-mm-dd hh:mm:ss,mmm and finally dateutil's
    free-form parser. The two slash/dash fallbacks keep second precision,
    the comma form keeps milliseconds. Returns None if nothing fits.
    """
    try:
        return dt_parser.isoparse(text)
    except (ValueError, OverflowError):
        pass

    match = _DMY_RE.search(text)
    if match:
        parsed = _from_fields(match, (3, 2, 1, 4, 5, 6))
        if parsed:
            return parsed

    match = _YMD_RE.search(text)
    if match:
        parsed = _from_fields(match, (1, 2, 3, 4, 5, 6))
        if parsed:
            return parsed

    match = _YMD_COMMA_RE.search(text)
    if match:
        parsed = _from_fields(match, (1, 2, 3, 4, 5, 6), int(match.group(7)))
        if parsed:
            return parsed

    try:
        return dt_parser.parse(text)
    except (ValueError, OverflowError):
        return None


def block_regexes(block_pattern: str) -> List["re.Pattern[str]"]:
    if block_pattern == DEFAULT_BLOCK_PATTERN:
        return [re.compile(p) for p in DEFAULT_BLOCK_PATTERNS]
    return [compile_pattern(block_pattern)]


def extract_blocks(line: str, regexes: Iterable["re.Pattern[str]"]) -> List[str]:
    """
    Collect block names from one line, outermost first.

    All matches of the first regex come before any match of the second,
    and so on; within a regex, matches are taken left to right.
    """
    blocks = []
    for regex in regexes:
        for match in regex.finditer(line):
            raw = match.group(1) if regex.groups else match.group(0)
            if raw is None:
                continue
            candidate = raw.strip()
            if not candidate or candidate.upper() in DISCARDED_LEVELS:
                continue
            blocks.append(candidate)
    return blocks


def reconcile(stack: List[str], proposed: Sequence[str]) -> Tuple[str, ...]:
    """
    Update `stack` in place to `proposed`, keeping their common prefix.

    Returns a snapshot of the new stack. An empty proposal closes every level.
    """
    common = 0
    while (
        common < len(stack)
        and common < len(proposed)
        and stack[common] == proposed[common]
    ):
        common += 1

    del stack[common:]
    stack.extend(proposed[common:])
    return tuple(stack)


def parse_lines(
    lines: Sequence[str],
    date_pattern: str,
    block_pattern: str,
    start_line: int = 0,
) -> List[FlameEvent]:
    """
    Extract one event per hierarchy transition, in line order.

    Lines with no timestamp match, or one that cannot be parsed, are skipped
    and leave the hierarchy untouched. Raises InvalidPatternError for a bad
    date or block regex.
    """
    date_regex = compile_pattern(date_pattern)
    regexes = block_regexes(block_pattern)

    events: List[FlameEvent] = []
    stack: List[str] = []
    last: Optional[FlameEvent] = None
    skipped = 0

    for idx, text in enumerate(lines):
        date_match = date_regex.search(text)
        if not date_match:
            skipped += 1
            continue
        timestamp = parse_timestamp(date_match.group(0))
        if timestamp is None:
            skipped += 1
            continue

        hierarchy = reconcile(stack, extract_blocks(text, regexes))
        if last is not None and hierarchy == last.blocks:
            continue

        last = FlameEvent(line=start_line + idx, timestamp=timestamp, blocks=hierarchy)
        events.append(last)

    # Library callers get no output until the host configures logging
    if structlog.is_configured():
        logger.debug("lines_parsed", lines=len(lines), events=len(events), skipped=skipped)
    return events


def sort_events(events: Iterable[FlameEvent]) -> List[FlameEvent]:
    # sorted() is stable, so equal timestamps keep their line order
    return sorted(events, key=lambda evt: to_utc(evt.timestamp))


def derive_durations(events: List[FlameEvent]) -> List[FlameEvent]:
    """Set each duration to the gap to the next event; the last one gets 0."""
    for current, following in zip(events, events[1:]):
        current.duration = millis_between(current.timestamp, following.timestamp)
    if events:
        events[-1].duration = 0
    return events


def build_events(
    lines: Sequence[str],
    date_pattern: str,
    block_pattern: str,
    start_line: int = 0,
) -> List[FlameEvent]:
    """parse_lines() -> sort_events() -> derive_durations()."""
    events = parse_lines(lines, date_pattern, block_pattern, start_line)
    return derive_durations(sort_events(events))
