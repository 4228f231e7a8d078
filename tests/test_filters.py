"""Tests for gstlogview/filters.py"""

import pytest
from werkzeug.datastructures import MultiDict

from gstlogview.errors import InvalidFilter
from gstlogview.filters import FilterSpec, TimeRange, compile_filter
from gstlogview.models import Level, Record
from gstlogview.timeunits import TimeUnit

from conftest import make_record


def _matches(spec, record):
    return compile_filter(spec)(record)


class TestEmptySpec:
    def test_matches_everything(self, records):
        predicate = compile_filter(FilterSpec())
        assert all(predicate(r) for r in records)

    def test_matches_record_with_only_timestamp(self):
        assert _matches(FilterSpec(), Record(timestamp=5))


class TestExactMatch:
    def test_level(self):
        assert _matches(FilterSpec(level=Level.ERROR), make_record(1, Level.ERROR))
        assert not _matches(FilterSpec(level=Level.ERROR), make_record(1, Level.INFO))

    def test_pid(self):
        assert _matches(FilterSpec(pid=4242), make_record(1, pid=4242))
        assert not _matches(FilterSpec(pid=1), make_record(1, pid=4242))

    def test_thread(self):
        assert _matches(FilterSpec(thread="0x1"), make_record(1, thread="0x1"))
        assert not _matches(FilterSpec(thread="0x2"), make_record(1, thread="0x1"))

    def test_object(self):
        assert _matches(FilterSpec(object="queue0"), make_record(1, obj="queue0"))
        assert not _matches(FilterSpec(object="queue0"), make_record(1, obj="queue1"))

    def test_absent_field_never_matches(self):
        bare = Record(timestamp=1)
        assert not _matches(FilterSpec(level=Level.INFO), bare)
        assert not _matches(FilterSpec(pid=0), bare)
        assert not _matches(FilterSpec(thread="0x1"), bare)
        assert not _matches(FilterSpec(object="queue0"), bare)


class TestCategories:
    def test_empty_set_is_unconstrained(self):
        assert _matches(FilterSpec(categories=frozenset()), make_record(1, category="X"))

    def test_membership_is_or(self):
        spec = FilterSpec(categories=frozenset({"GST_PADS", "GST_INIT"}))
        assert _matches(spec, make_record(1, category="GST_INIT"))
        assert _matches(spec, make_record(1, category="GST_PADS"))
        assert not _matches(spec, make_record(1, category="videotestsrc"))

    def test_missing_category(self):
        spec = FilterSpec(categories=frozenset({"GST_INIT"}))
        assert not _matches(spec, Record(timestamp=1))


class TestRegex:
    def test_unanchored_search(self):
        spec = FilterSpec(message_regex="fill")
        assert _matches(spec, make_record(1, message="failed to fill buffer"))

    def test_case_sensitive(self):
        spec = FilterSpec(message_regex="FILL")
        assert not _matches(spec, make_record(1, message="failed to fill buffer"))

    def test_function_regex(self):
        spec = FilterSpec(function_regex=r"^gst_pad_")
        assert _matches(spec, make_record(1, function="gst_pad_push"))
        assert not _matches(spec, make_record(1, function="init_pre"))

    def test_invalid_regex_raises(self):
        with pytest.raises(InvalidFilter):
            compile_filter(FilterSpec(message_regex="(unbalanced"))

    def test_invalid_function_regex_raises(self):
        with pytest.raises(InvalidFilter):
            compile_filter(FilterSpec(function_regex="[a-"))

    def test_missing_field_does_not_match(self):
        assert not _matches(FilterSpec(message_regex=".*"), Record(timestamp=1))


class TestTimeRange:
    def test_inclusive_bounds_in_microseconds(self):
        spec = FilterSpec(time_range=TimeRange(100, 150, TimeUnit.MICROSECONDS))
        assert _matches(spec, make_record(100_000))
        assert _matches(spec, make_record(150_999))  # floors to 150us
        assert not _matches(spec, make_record(151_000))
        assert not _matches(spec, make_record(99_999))

    def test_milliseconds_compare_after_downscaling_record(self):
        spec = FilterSpec(time_range=TimeRange(1, 1, TimeUnit.MILLISECONDS))
        assert _matches(spec, make_record(1_000_000))
        assert _matches(spec, make_record(1_999_999))
        assert not _matches(spec, make_record(2_000_000))

    def test_open_bounds(self):
        assert _matches(FilterSpec(time_range=TimeRange(min=5)), make_record(5_000_000))
        assert not _matches(FilterSpec(time_range=TimeRange(max=4)), make_record(5_000_000))

    def test_same_numbers_mean_different_windows_per_unit(self):
        record = make_record(500_000)  # 500us == 0ms
        us = FilterSpec(time_range=TimeRange(400, 600, TimeUnit.MICROSECONDS))
        ms = FilterSpec(time_range=TimeRange(400, 600, TimeUnit.MILLISECONDS))
        assert _matches(us, record)
        assert not _matches(ms, record)

    def test_inverted_bounds_rejected(self):
        with pytest.raises(InvalidFilter):
            TimeRange(10, 5)

    def test_record_is_not_modified(self):
        record = make_record(1_234_567)
        _matches(FilterSpec(time_range=TimeRange(1, 1)), record)
        assert record.timestamp == 1_234_567


class TestCombined:
    def test_all_clauses_are_anded(self):
        spec = FilterSpec(
            level=Level.ERROR,
            categories=frozenset({"videotestsrc"}),
            message_regex="fill",
            pid=4242,
        )
        hit = make_record(1, Level.ERROR, category="videotestsrc", message="fill it")
        miss = make_record(1, Level.INFO, category="videotestsrc", message="fill it")
        assert _matches(spec, hit)
        assert not _matches(spec, miss)


class TestFromArgs:
    def test_empty_args(self):
        assert FilterSpec.from_args(MultiDict()) == FilterSpec()

    def test_empty_strings_are_absent(self):
        args = MultiDict({"level": "", "pid": "", "thread": "", "message_regex": ""})
        assert FilterSpec.from_args(args) == FilterSpec()

    def test_repeated_categories(self):
        args = MultiDict([("categories", "GST_PADS"), ("categories", "GST_INIT")])
        spec = FilterSpec.from_args(args)
        assert spec.categories == frozenset({"GST_PADS", "GST_INIT"})

    def test_plain_dict_with_list(self):
        spec = FilterSpec.from_args({"categories": ["A", "B"], "level": "warn"})
        assert spec.categories == frozenset({"A", "B"})
        assert spec.level is Level.WARNING

    def test_time_range_with_microsecond_flag(self):
        args = MultiDict({"min_timestamp": "100", "max_timestamp": "200",
                          "use_microseconds": "true"})
        spec = FilterSpec.from_args(args)
        assert spec.time_range == TimeRange(100, 200, TimeUnit.MICROSECONDS)

    def test_time_range_defaults_to_milliseconds(self):
        spec = FilterSpec.from_args(MultiDict({"min_timestamp": "3"}))
        assert spec.time_range == TimeRange(3, None, TimeUnit.MILLISECONDS)

    def test_bad_integer(self):
        with pytest.raises(InvalidFilter):
            FilterSpec.from_args(MultiDict({"pid": "abc"}))

    def test_bad_boolean(self):
        with pytest.raises(InvalidFilter):
            FilterSpec.from_args(MultiDict({"min_timestamp": "1", "use_microseconds": "maybe"}))

    def test_unknown_level(self):
        with pytest.raises(InvalidFilter):
            FilterSpec.from_args(MultiDict({"level": "LOUD"}))
