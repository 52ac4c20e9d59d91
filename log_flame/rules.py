"""Per-rule match counts shown in the flame graph legend."""

from typing import Iterable, List, Sequence, Tuple

from .exporters.flame_html import RuleCount
from .patterns import compile_pattern


def parse_rule(value: str) -> Tuple[str, str]:
    """Split a NAME=REGEX option value."""
    name, sep, regex = value.partition("=")
    if not sep or not name.strip() or not regex:
        raise ValueError(f"expected NAME=REGEX, got {value!r}")
    return name.strip(), regex


def count_rules(lines: Sequence[str], rules: Iterable[Tuple[str, str]]) -> List[RuleCount]:
    """Count the lines each rule's regex matches at least once."""
    counts = []
    for name, regex in rules:
        compiled = compile_pattern(regex)
        counts.append(RuleCount(name, sum(1 for line in lines if compiled.search(line))))
    return counts
