#!/usr/bin/env python3
"""
cli.py

Command-line interface for turning a range of log lines into a flame graph.
"""
import os

import click
import structlog
from rich import print

from log_flame import state
from log_flame.events import build_events
from log_flame.exporters import flame_html, speedscope, view_flame
from log_flame.logging import configure_logging
from log_flame.patterns import (
    InvalidPatternError,
    pick_block_pattern,
    pick_date_pattern,
    resolve_date_pattern,
)
from log_flame.rules import count_rules, parse_rule

logger = structlog.get_logger()

NO_EVENTS_MESSAGE = (
    "No valid events found with the given patterns. "
    "Try adjusting the date or block name patterns."
)


def read_selection(path: str, start: int, end):
    """Return lines start..end (0-based, inclusive) of the file."""
    with open(path, encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()
    if end is None or end >= len(lines):
        end = len(lines) - 1
    if start > end:
        return []
    return lines[start:end + 1]


@click.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "-s", type=click.IntRange(min=0), default=0, show_default=True,
              help="First line of the selection (0-based)")
@click.option("--end", "-e", type=click.IntRange(min=0), default=None,
              help="Last line of the selection, inclusive [default: end of file]")
@click.option("--date-pattern", "-d", default=None,
              help="Timestamp regex, or one of: iso, dmy, ymd, ymd-comma")
@click.option("--block-pattern", "-b", default=None,
              help="'default' or a regex whose first group is the block name")
@click.option("--rule", "rules", multiple=True, metavar="NAME=REGEX",
              help="Count lines matching REGEX and list them in the legend")
@click.option("--format", "-f", "fmt", type=click.Choice(["html", "tree", "folded"]),
              default="html", show_default=True)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Output file [default: flame.html for html, stdout otherwise]")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stderr")
def main(log_file, start, end, date_pattern, block_pattern, rules, fmt, output, verbose):
    """
    Build a flame graph from the timestamps and [block] names in LOG_FILE.
    """
    configure_logging(verbose)

    lines = read_selection(log_file, start, end)
    if not lines:
        click.echo("No lines selected. Please select some lines containing log events.", err=True)
        raise SystemExit(1)

    try:
        parsed_rules = [parse_rule(r) for r in rules]
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--rule")

    # Prompt for whatever was not given on the command line
    if date_pattern:
        date_pattern = resolve_date_pattern(date_pattern)
    else:
        date_pattern = pick_date_pattern(state.get_stored(state.DATE_PATTERN_KEY))
        if not date_pattern:
            click.echo("Date pattern selection canceled.")
            return

    if not block_pattern:
        block_pattern = pick_block_pattern(state.get_stored(state.BLOCK_PATTERN_KEY))
        if not block_pattern:
            click.echo("Block pattern selection canceled.")
            return

    try:
        events = build_events(lines, date_pattern, block_pattern, start)
        rule_counts = count_rules(lines, parsed_rules)
    except InvalidPatternError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(2)

    if not events:
        click.echo(NO_EVENTS_MESSAGE, err=True)
        raise SystemExit(1)

    # Only remember patterns that produced a graph
    state.store(state.DATE_PATTERN_KEY, date_pattern)
    state.store(state.BLOCK_PATTERN_KEY, block_pattern)
    logger.debug("events_built", events=len(events), first_line=events[0].line)

    if fmt == "tree":
        print(view_flame.make_tree(events))
    elif fmt == "folded" and not output:
        speedscope.export_folded(events)
    else:
        target = output or "flame.html"
        try:
            with open(target, "w", encoding="utf-8") as f:
                if fmt == "html":
                    f.write(flame_html.render_html(events, rule_counts,
                                                   title=f"Flame Graph: {os.path.basename(log_file)}"))
                else:
                    speedscope.export_folded(events, f)
        except OSError as exc:
            click.echo(f"Cannot write {target}: {exc.strerror or exc}", err=True)
            raise SystemExit(1)
        if fmt == "html":
            click.echo(f"Flame graph with {len(events)} events written to {target}")
        else:
            click.echo(f"Folded stacks written to {target}")


if __name__ == "__main__":
    main()
