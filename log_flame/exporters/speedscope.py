"""
speedscope.py

Emit FlameEvents as FlameGraph-style folded stacks:

    root;child;subchild <duration_ms>

You can then load the resulting file into Speedscope
(via “Import” → “Text (FlameGraph)”).
"""

import sys
from typing import Iterable, Iterator, Optional, TextIO, Tuple

from ..events import FlameEvent


def weighted_paths(events: Iterable[FlameEvent], min_ms: int = 1) -> Iterator[Tuple[FlameEvent, int]]:
    """Yield (event, duration_ms) for events with a block path and at least `min_ms`."""
    for evt in events:
        dur = evt.duration or 0
        if dur < min_ms or not evt.blocks:
            continue
        yield evt, dur


def folded_lines(events: Iterable[FlameEvent], min_ms: int = 1) -> Iterator[str]:
    for evt, dur in weighted_paths(events, min_ms):
        # join with semicolon, then a space, then the weight (milliseconds)
        yield f"{';'.join(evt.blocks)} {dur}"


def export_folded(events: Iterable[FlameEvent], out: Optional[TextIO] = None, min_ms: int = 1) -> int:
    """
    For each event, writes:
      root;child;...;thisblock <duration_ms>

    Returns the number of lines written.
    """
    out = out or sys.stdout
    written = 0
    for line in folded_lines(events, min_ms):
        out.write(line + "\n")
        written += 1
    return written
