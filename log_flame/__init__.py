"""
Flame graphs from plain log files.

Pipeline:
- `patterns`: pick the timestamp and block-name patterns
- `events`: extract FlameEvents, reconcile the block hierarchy, derive durations
- `exporters`: HTML/SVG flame graph, Rich terminal tree, folded stacks
"""

from .events import FlameEvent, build_events, derive_durations, parse_lines, sort_events
from .patterns import InvalidPatternError, pick_block_pattern, pick_date_pattern

__all__ = [
    "FlameEvent",
    "InvalidPatternError",
    "build_events",
    "derive_durations",
    "parse_lines",
    "pick_block_pattern",
    "pick_date_pattern",
    "sort_events",
]
