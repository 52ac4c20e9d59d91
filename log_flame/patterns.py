"""
patterns.py

Timestamp and block-name pattern catalogs, plus the two interactive
selectors used to choose between them.

Selectors return None whenever the user backs out; callers must abort
the whole run in that case instead of falling back to a default.
"""

import re
from typing import Callable, NamedTuple, Optional, Sequence

import click
import structlog

logger = structlog.get_logger()


class DatePattern(NamedTuple):
    key: str
    label: str
    pattern: str


DATE_PATTERNS = [
    DatePattern(
        "iso",
        "ISO (e.g. 2021-05-20T13:45:30.123Z)",
        r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z?",
    ),
    DatePattern(
        "dmy",
        "dd/mm/yyyy hh:mm:ss",
        r"\d{2}/\d{2}/\d{4}\s+\d{2}:\d{2}:\d{2}(\.\d+)?",
    ),
    DatePattern(
        "ymd",
        "yyyy-mm-dd hh:mm:ss",
        r"\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}(\.\d+)?",
    ),
    DatePattern(
        "ymd-comma",
        "yyyy-mm-dd hh:mm:ss,ms",
        r"\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2},\d{3}",
    ),
]

# Marker meaning "try every pattern in DEFAULT_BLOCK_PATTERNS"
DEFAULT_BLOCK_PATTERN = "default"

# Order matters: matches are concatenated pattern by pattern
DEFAULT_BLOCK_PATTERNS = [
    r"\[([^\]]+)\]",
    r"\{([^}]+)\}",
    r"\(([^)]+)\)",
    r'"([^"]+)"',
]

CUSTOM_CHOICE = "Custom Pattern"
DEFAULT_CHOICE = "Default Patterns"

# choose(title, options) -> picked option or None
Chooser = Callable[[str, Sequence[str]], Optional[str]]
# ask(prompt, prefill) -> entered text or None
Asker = Callable[[str, str], Optional[str]]


class InvalidPatternError(ValueError):
    """A user supplied regular expression failed to compile."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


def compile_pattern(text: str, flags: int = 0) -> "re.Pattern[str]":
    try:
        return re.compile(text, flags)
    except re.error as exc:
        raise InvalidPatternError(text, str(exc)) from exc


def prompt_choice(title: str, options: Sequence[str]) -> Optional[str]:
    """Numbered menu on the terminal; None when the prompt is aborted."""
    click.echo(f"{title}:")
    for idx, option in enumerate(options, start=1):
        click.echo(f"  [{idx}] {option}")
    try:
        choice = click.prompt("Select", type=click.IntRange(1, len(options)))
    except click.Abort:
        return None
    return options[choice - 1]


def prompt_text(prompt: str, prefill: str) -> Optional[str]:
    try:
        return click.prompt(prompt, default=prefill, show_default=bool(prefill))
    except click.Abort:
        return None


def pick_date_pattern(
    stored: Optional[str] = None,
    choose: Chooser = prompt_choice,
    ask: Asker = prompt_text,
) -> Optional[str]:
    """
    Offer the known timestamp patterns plus a custom entry.

    The custom prompt is pre-filled with `stored`. An empty custom answer
    counts as cancellation.
    """
    options = [p.label for p in DATE_PATTERNS]
    options.append(CUSTOM_CHOICE)
    choice = choose("Select a known date pattern or pick custom", options)
    if not choice:
        if structlog.is_configured():
            logger.debug("date_pattern_cancelled")
        return None

    if choice == CUSTOM_CHOICE:
        custom = ask("Enter a custom date regex pattern", stored or "")
        return custom or None

    for known in DATE_PATTERNS:
        if known.label == choice:
            return known.pattern
    return None


def pick_block_pattern(
    stored: Optional[str] = None,
    choose: Chooser = prompt_choice,
    ask: Asker = prompt_text,
) -> Optional[str]:
    """Choose between the default block patterns and a custom regex."""
    choice = choose("Select block name extraction mode", [DEFAULT_CHOICE, CUSTOM_CHOICE])
    if not choice:
        if structlog.is_configured():
            logger.debug("block_pattern_cancelled")
        return None

    if choice == CUSTOM_CHOICE:
        prefill = stored if stored and stored != DEFAULT_BLOCK_PATTERN else ""
        custom = ask(
            "Enter a custom block name regex pattern "
            "(the first capturing group returns the block name)",
            prefill,
        )
        return custom or None
    return DEFAULT_BLOCK_PATTERN


def resolve_date_pattern(text: str) -> str:
    """Map a catalog key or label to its regex; anything else is taken as regex text."""
    for known in DATE_PATTERNS:
        if text in (known.key, known.label):
            return known.pattern
    return text
