"""Tests for event extraction, hierarchy reconciliation and durations."""

from datetime import datetime, timezone

import pytest

from log_flame.events import (
    FlameEvent,
    block_regexes,
    build_events,
    derive_durations,
    extract_blocks,
    millis_between,
    parse_lines,
    parse_timestamp,
    reconcile,
    sort_events,
)
from log_flame.logging import configure_logging
from log_flame.patterns import DATE_PATTERNS, DEFAULT_BLOCK_PATTERN, InvalidPatternError

ISO = DATE_PATTERNS[0].pattern
DMY = DATE_PATTERNS[1].pattern


def blocks(line: str, pattern: str = DEFAULT_BLOCK_PATTERN) -> list:
    return extract_blocks(line, block_regexes(pattern))


# =============================================================================
# Timestamps
# =============================================================================


class TestParseTimestamp:
    def test_iso_with_zulu_is_utc(self) -> None:
        assert parse_timestamp("2024-01-01T00:00:00.250Z") == datetime(
            2024, 1, 1, 0, 0, 0, 250000, tzinfo=timezone.utc
        )

    def test_iso_without_zone_is_naive(self) -> None:
        parsed = parse_timestamp("2021-05-20T13:45:30")
        assert parsed == datetime(2021, 5, 20, 13, 45, 30)
        assert parsed.tzinfo is None

    def test_slash_dates_are_day_first(self) -> None:
        assert parse_timestamp("03/04/2024 10:00:00") == datetime(2024, 4, 3, 10, 0, 0)

    def test_slash_fraction_is_dropped(self) -> None:
        assert parse_timestamp("25/01/2024 10:11:12.5") == datetime(2024, 1, 25, 10, 11, 12)

    def test_dash_date_with_wide_gap(self) -> None:
        assert parse_timestamp("2024-01-01  10:00:00") == datetime(2024, 1, 1, 10, 0, 0)

    def test_comma_milliseconds_kept(self) -> None:
        assert parse_timestamp("2024-01-01 10:00:00,123") == datetime(2024, 1, 1, 10, 0, 0, 123000)

    def test_comma_milliseconds_with_wide_gap(self) -> None:
        assert parse_timestamp("2024-01-01  10:00:00,123") == datetime(2024, 1, 1, 10, 0, 0, 123000)

    def test_garbage_is_none(self) -> None:
        assert parse_timestamp("not a date") is None

    def test_out_of_range_fields_are_none(self) -> None:
        assert parse_timestamp("99/99/9999 99:99:99") is None


class TestMillisBetween:
    def test_naive_and_aware_compare_as_utc(self) -> None:
        start = datetime(2024, 1, 1, 0, 0, 0)
        end = datetime(2024, 1, 1, 0, 0, 2, tzinfo=timezone.utc)
        assert millis_between(start, end) == 2000


# =============================================================================
# Blocks
# =============================================================================


class TestExtractBlocks:
    def test_default_patterns_in_catalog_order(self) -> None:
        # Brackets first, then braces, parens, quotes, regardless of position
        assert blocks('"q" (p) {b} [a]') == ["a", "b", "p", "q"]

    def test_multiple_matches_left_to_right(self) -> None:
        assert blocks("[one] text [two] [three]") == ["one", "two", "three"]

    def test_candidates_are_trimmed(self) -> None:
        assert blocks("[  Init ]") == ["Init"]

    @pytest.mark.parametrize("token", ["[INFO]", "{warn}", "(Warning)", '"debug"', "[ ERROR ]"])
    def test_log_levels_are_discarded(self, token: str) -> None:
        assert blocks(f"{token} [Real]") == ["Real"]

    def test_custom_pattern_uses_first_group(self) -> None:
        assert blocks("<db> <query> done", r"<(\w+)>") == ["db", "query"]

    def test_custom_pattern_without_group_uses_whole_match(self) -> None:
        assert blocks("<db> <query>", r"<\w+>") == ["<db>", "<query>"]

    def test_invalid_custom_pattern(self) -> None:
        with pytest.raises(InvalidPatternError):
            block_regexes("([")


# =============================================================================
# Reconciliation
# =============================================================================


class TestReconcile:
    def test_common_prefix_is_kept(self) -> None:
        stack = ["A", "B", "C"]
        assert reconcile(stack, ["A", "B", "D"]) == ("A", "B", "D")
        assert stack == ["A", "B", "D"]

    def test_divergence_at_root_replaces_everything(self) -> None:
        stack = ["A", "B"]
        assert reconcile(stack, ["X"]) == ("X",)

    def test_identical_path_is_unchanged(self) -> None:
        stack = ["A", "B"]
        assert reconcile(stack, ["A", "B"]) == ("A", "B")
        assert stack == ["A", "B"]

    def test_empty_proposal_closes_all_levels(self) -> None:
        stack = ["A", "B", "C", "D"]
        assert reconcile(stack, []) == ()
        assert stack == []

    def test_snapshot_is_independent_of_stack(self) -> None:
        stack = []
        snapshot = reconcile(stack, ["A"])
        reconcile(stack, ["B"])
        assert snapshot == ("A",)


# =============================================================================
# Extraction
# =============================================================================


class TestParseLines:
    def test_end_to_end_sample(self, sample_lines: list) -> None:
        events = build_events(sample_lines, ISO, DEFAULT_BLOCK_PATTERN, 0)

        assert [e.blocks for e in events] == [
            ("Init",),
            ("Init", "Load"),
            ("Init",),
            ("Done",),
        ]
        assert [e.duration for e in events] == [1000, 2000, 2000, 0]
        assert [e.line for e in events] == [0, 1, 2, 4]

    def test_repeated_hierarchy_is_coalesced(self) -> None:
        lines = [
            "2024-01-01T00:00:00Z [A]",
            "2024-01-01T00:00:01Z [A]",
            "2024-01-01T00:00:02Z [A][B]",
        ]
        events = parse_lines(lines, ISO, DEFAULT_BLOCK_PATTERN)
        assert [(e.line, e.blocks) for e in events] == [(0, ("A",)), (2, ("A", "B"))]

    def test_consecutive_events_never_share_a_path(self, sample_lines: list) -> None:
        events = parse_lines(sample_lines * 3, ISO, DEFAULT_BLOCK_PATTERN)
        for prev, cur in zip(events, events[1:]):
            assert prev.blocks != cur.blocks

    def test_start_line_offsets_line_numbers(self, sample_lines: list) -> None:
        events = parse_lines(sample_lines, ISO, DEFAULT_BLOCK_PATTERN, start_line=10)
        assert [e.line for e in events] == [10, 11, 12, 14]

    def test_line_without_blocks_collapses_to_root(self) -> None:
        lines = [
            "2024-01-01T00:00:00Z [A][B][C]",
            "2024-01-01T00:00:01Z nothing nested here",
            "2024-01-01T00:00:02Z [A]",
        ]
        events = parse_lines(lines, ISO, DEFAULT_BLOCK_PATTERN)
        assert [e.blocks for e in events] == [("A", "B", "C"), (), ("A",)]

    def test_level_only_line_collapses_to_root(self) -> None:
        lines = [
            "2024-01-01T00:00:00Z [Init][Load]",
            "2024-01-01T00:00:01Z [ERROR] disk full",
        ]
        events = parse_lines(lines, ISO, DEFAULT_BLOCK_PATTERN)
        assert events[-1].blocks == ()
        assert all("ERROR" not in e.blocks for e in events)

    def test_unparseable_timestamp_leaves_stack_alone(self) -> None:
        lines = [
            "01/01/2024 00:00:00 [A]",
            "99/99/9999 99:99:99 [X][Y]",
            "01/01/2024 00:00:01 [A]",
        ]
        events = parse_lines(lines, DMY, DEFAULT_BLOCK_PATTERN)
        assert [e.blocks for e in events] == [("A",)]

    def test_wrong_pattern_yields_nothing(self, sample_lines: list) -> None:
        assert parse_lines(sample_lines, DMY, DEFAULT_BLOCK_PATTERN) == []

    def test_invalid_date_pattern(self, sample_lines: list) -> None:
        with pytest.raises(InvalidPatternError) as exc_info:
            parse_lines(sample_lines, "(unclosed", DEFAULT_BLOCK_PATTERN)
        assert exc_info.value.pattern == "(unclosed"
        assert isinstance(exc_info.value, ValueError)

    def test_independent_runs_do_not_share_state(self) -> None:
        first = parse_lines(["2024-01-01T00:00:00Z [A][B]"], ISO, DEFAULT_BLOCK_PATTERN)
        second = parse_lines(["2024-01-01T00:00:00Z [A][B]"], ISO, DEFAULT_BLOCK_PATTERN)
        assert first[0].blocks == second[0].blocks == ("A", "B")

    def test_silent_without_logging_configured(self, sample_lines: list, capsys: pytest.CaptureFixture) -> None:
        parse_lines(sample_lines, ISO, DEFAULT_BLOCK_PATTERN)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_debug_summary_when_verbose(self, sample_lines: list, capsys: pytest.CaptureFixture) -> None:
        configure_logging(verbose=True)
        parse_lines(sample_lines, ISO, DEFAULT_BLOCK_PATTERN)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "lines_parsed" in captured.err
        assert "skipped=1" in captured.err


# =============================================================================
# Sorting and durations
# =============================================================================


def _event(line: int, second: int, *names: str) -> FlameEvent:
    return FlameEvent(line=line, timestamp=datetime(2024, 1, 1, 0, 0, second), blocks=names)


class TestSortEvents:
    def test_sorts_by_timestamp(self) -> None:
        events = [_event(0, 5, "C"), _event(1, 1, "A"), _event(2, 3, "B")]
        assert [e.line for e in sort_events(events)] == [1, 2, 0]

    def test_ties_keep_original_order(self) -> None:
        events = [_event(0, 2, "A"), _event(1, 1, "B"), _event(2, 2, "C"), _event(3, 2, "D")]
        assert [e.line for e in sort_events(events)] == [1, 0, 2, 3]


class TestDeriveDurations:
    def test_gap_to_next_event(self) -> None:
        events = derive_durations([_event(0, 0, "A"), _event(1, 2, "B"), _event(2, 7, "C")])
        assert [e.duration for e in events] == [2000, 5000, 0]

    def test_single_event_has_zero_duration(self) -> None:
        assert derive_durations([_event(0, 0, "A")])[0].duration == 0

    def test_empty_list(self) -> None:
        assert derive_durations([]) == []

    def test_sub_second_precision(self) -> None:
        lines = ["2024-01-01T00:00:00.250Z [A]", "2024-01-01T00:00:01Z [B]"]
        events = build_events(lines, ISO, DEFAULT_BLOCK_PATTERN)
        assert events[0].duration == 750
