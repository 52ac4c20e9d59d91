"""
view_flame.py

Render FlameEvents as an aggregated, collapsible tree in your terminal
using Rich, with human-friendly time units.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable

from rich.markup import escape
from rich.tree import Tree

from ..events import FlameEvent
from .speedscope import weighted_paths


@dataclass
class BlockNode:
    time: int = 0
    first_line: int = -1
    children: Dict[str, "BlockNode"] = field(default_factory=dict)

    def add(self, dur: int, line: int) -> None:
        self.time += dur
        if self.first_line < 0:
            self.first_line = line


def format_time(ms: int) -> str:
    """Convert milliseconds to a human-friendly string."""
    if ms >= 60_000:
        return f"{ms / 60_000:.2f}min"
    elif ms >= 1_000:
        return f"{ms / 1_000:.2f}s"
    else:
        return f"{ms}ms"


def build_tree(events: Iterable[FlameEvent], min_ms: int = 1) -> BlockNode:
    """Sum event durations into every block along each event's path."""
    root = BlockNode()
    for evt, dur in weighted_paths(events, min_ms):
        node = root
        node.add(dur, evt.line)
        for block in evt.blocks:
            node = node.children.setdefault(block, BlockNode())
            node.add(dur, evt.line)
    return root


def render(node: BlockNode, tree: Tree, total_time: int):
    # Largest first; block names come from log text and may contain markup
    for name, child in sorted(node.children.items(), key=lambda kv: kv[1].time, reverse=True):
        pct = child.time / total_time * 100 if total_time else 0.0
        branch = tree.add(
            f"[bold]{escape(name)}[/] • {format_time(child.time)} ({pct:.1f}%) "
            f"[dim]line {child.first_line}[/]"
        )
        render(child, branch, total_time)


def make_tree(events: Iterable[FlameEvent]) -> Tree:
    root = build_tree(events)
    console_tree = Tree(f"[b]root[/] • {format_time(root.time)} (100%)")
    render(root, console_tree, root.time)
    return console_tree
