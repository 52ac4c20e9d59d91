"""
flame_html.py

Project sorted, duration-tagged FlameEvents onto a time axis and render
them as a self-contained HTML page with an inline SVG.

Every bar carries the source line in `data-line`; clicking it posts
{"command": "goToLine", "line": N} to the embedding host.
"""

from dataclasses import dataclass, field
from datetime import timedelta, timezone
from html import escape
from typing import Any, List, NamedTuple, Optional, Sequence

from ..events import FlameEvent, millis_between, to_utc

PALETTE = ["#FF5733", "#33FF57", "#3357FF", "#FF33A1", "#FFC300"]

CANVAS_WIDTH = 1000
CANVAS_HEIGHT = 600
BASELINE = 50
BLOCK_HEIGHT = 20
BLOCK_SPACING = 5
DIVISIONS = 5
# Used as the time range when every event shares one timestamp
MIN_RANGE_MS = 1000
# Bar width for events whose duration is unset or zero
DEFAULT_DURATION_MS = 10

GO_TO_LINE = "goToLine"


class RuleCount(NamedTuple):
    rule: str
    count: int


class Bar(NamedTuple):
    x: float
    y: float
    width: float
    height: float
    color: str
    block: str
    depth: int
    line: int
    duration: Optional[int]


class Tick(NamedTuple):
    x: float
    label: str


@dataclass
class FlameLayout:
    range_ms: int
    width: int
    height: int
    bars: List[Bar] = field(default_factory=list)
    ticks: List[Tick] = field(default_factory=list)
    legend: List[RuleCount] = field(default_factory=list)


def go_to_line_message(line: int) -> dict:
    return {"command": GO_TO_LINE, "line": line}


def parse_message(message: Any) -> Optional[int]:
    """Return the target line of a goToLine message, or None for anything else."""
    if not isinstance(message, dict) or message.get("command") != GO_TO_LINE:
        return None
    line = message.get("line")
    if isinstance(line, bool):
        return None
    try:
        line = int(line)
    except (TypeError, ValueError):
        return None
    return line if line >= 0 else None


def layout(
    events: Sequence[FlameEvent],
    rule_counts: Sequence[RuleCount] = (),
    width: int = CANVAS_WIDTH,
    height: int = CANVAS_HEIGHT,
) -> FlameLayout:
    """Compute bar and tick geometry. `events` must be non-empty."""
    if not events:
        raise ValueError("cannot lay out an empty event list")

    first = min(to_utc(e.timestamp) for e in events)
    last = max(to_utc(e.timestamp) for e in events)
    range_ms = millis_between(first, last) or MIN_RANGE_MS

    def x_for(ms: float) -> float:
        return ms / range_ms * width

    result = FlameLayout(
        range_ms=range_ms,
        width=width,
        height=height,
        legend=[RuleCount(*rc) for rc in rule_counts],
    )

    for evt in events:
        x = x_for((to_utc(evt.timestamp) - first) / timedelta(milliseconds=1))
        bar_width = x_for(evt.duration or DEFAULT_DURATION_MS)
        for depth, block in enumerate(evt.blocks):
            result.bars.append(
                Bar(
                    x=x,
                    y=BASELINE + depth * (BLOCK_HEIGHT + BLOCK_SPACING),
                    width=bar_width,
                    height=BLOCK_HEIGHT,
                    color=PALETTE[depth % len(PALETTE)],
                    block=block,
                    depth=depth,
                    line=evt.line,
                    duration=evt.duration,
                )
            )

    # Label ticks in the earliest event's own offset; naive logs stay as written
    tz = min(events, key=lambda e: to_utc(e.timestamp)).timestamp.tzinfo or timezone.utc
    increment = range_ms / DIVISIONS
    for i in range(DIVISIONS + 1):
        tick_time = (first + timedelta(milliseconds=i * increment)).astimezone(tz)
        result.ticks.append(Tick(x=i / DIVISIONS * width, label=tick_time.strftime("%H:%M:%S")))

    return result


def _fmt(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_svg(flame: FlameLayout) -> str:
    axis_y = BASELINE + 10
    parts = [
        f'<svg viewBox="0 0 {flame.width} {flame.height}" '
        'preserveAspectRatio="xMinYMin meet" style="width: 100%; height: auto;">',
        f'<line x1="0" y1="{axis_y}" x2="{flame.width}" y2="{axis_y}" stroke="white" />',
    ]
    for tick in flame.ticks:
        tx = _fmt(tick.x)
        parts.append(
            f'<line x1="{tx}" y1="{BASELINE + 5}" x2="{tx}" y2="{BASELINE + 15}" stroke="white"/>'
        )
        parts.append(
            f'<text x="{tx}" y="{BASELINE + 30}" font-size="12" text-anchor="middle" '
            f'fill="white">{escape(tick.label)}</text>'
        )
    for bar in flame.bars:
        tooltip = escape(
            f"Block: {bar.block}\nDuration: {bar.duration} ms\nLine: {bar.line}"
        )
        parts.append(
            f'<rect x="{_fmt(bar.x)}" y="{_fmt(bar.y)}" width="{_fmt(bar.width)}" '
            f'height="{bar.height}" fill="{bar.color}" data-line="{bar.line}" '
            f'class="blockRect"><title>{tooltip}</title></rect>'
        )
    parts.append("</svg>")
    return "\n".join(parts)


def render_legend(legend: Sequence[RuleCount]) -> str:
    if not legend:
        return ""
    items = "".join(f"<li>{escape(rc.rule)}: {rc.count}</li>" for rc in legend)
    return f'<div class="legend"><h2>Rules and Counts</h2><ul>{items}</ul></div>'


_STYLE = """<style>
body { font-family: sans-serif; margin: 10px; background-color: transparent; }
svg { border: 1px solid #ccc; background-color: var(--vscode-editor-background, #1e1e1e); }
.blockRect:hover { stroke: black; stroke-width: 1; cursor: pointer; }
text { font-family: sans-serif; }
.legend { margin-bottom: 20px; }
</style>"""

_SCRIPT = """<script>
const host = (typeof acquireVsCodeApi === 'function')
  ? acquireVsCodeApi()
  : { postMessage: (msg) => window.parent.postMessage(msg, '*') };
document.querySelectorAll('.blockRect').forEach(rect => {
  rect.addEventListener('click', () => {
    const line = parseInt(rect.getAttribute('data-line'), 10);
    host.postMessage({ command: '%s', line: line });
  });
});
</script>""" % GO_TO_LINE


def render_html(
    events: Sequence[FlameEvent],
    rule_counts: Sequence[RuleCount] = (),
    title: str = "Flame Graph",
) -> str:
    flame = layout(events, rule_counts)
    return "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{escape(title)}</title>",
            _STYLE,
            "</head>",
            "<body>",
            render_legend(flame.legend),
            f"<h1>{escape(title)}</h1>",
            "<p>Click on a block to jump to that line in the original file.</p>",
            render_svg(flame),
            _SCRIPT,
            "</body>",
            "</html>",
        ]
    )
