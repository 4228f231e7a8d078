"""Filter specification and the composite predicate built from it.

Each clause is a small pure function. ``compile_filter`` keeps only the
clauses the caller actually set and ANDs them into one callable, so the
listing and timeline queries always see the same filter state.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Mapping

from gstlogview.errors import InvalidFilter
from gstlogview.models import Level, Record
from gstlogview.timeunits import TimeUnit

Predicate = Callable[[Record], bool]

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class TimeRange:
    """Inclusive bounds, expressed in the unit the client selected them in."""

    min: int | None = None
    max: int | None = None
    unit: TimeUnit = TimeUnit.MILLISECONDS

    def __post_init__(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise InvalidFilter(
                f"min_timestamp ({self.min}) is greater than max_timestamp ({self.max})"
            )

    def contains(self, native_ts: int) -> bool:
        value = self.unit.from_native(native_ts)
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


@dataclass(frozen=True)
class FilterSpec:
    level: Level | None = None
    categories: frozenset[str] = field(default_factory=frozenset)
    message_regex: str | None = None
    function_regex: str | None = None
    pid: int | None = None
    thread: str | None = None
    object: str | None = None
    time_range: TimeRange | None = None

    @classmethod
    def from_args(cls, args) -> "FilterSpec":
        """Build a spec from request query args (a MultiDict or plain mapping).

        Empty strings count as absent. ``categories`` may repeat.
        """
        level = _arg(args, "level")
        pid = _arg(args, "pid")
        min_ts = _arg(args, "min_timestamp")
        max_ts = _arg(args, "max_timestamp")

        time_range = None
        if min_ts is not None or max_ts is not None:
            unit = TimeUnit.for_client_flag(
                parse_bool(_arg(args, "use_microseconds"), "use_microseconds")
            )
            time_range = TimeRange(
                min=parse_int(min_ts, "min_timestamp"),
                max=parse_int(max_ts, "max_timestamp"),
                unit=unit,
            )

        return cls(
            level=parse_level(level) if level is not None else None,
            categories=frozenset(_arg_list(args, "categories")),
            message_regex=_arg(args, "message_regex"),
            function_regex=_arg(args, "function_regex"),
            pid=parse_int(pid, "pid"),
            thread=_arg(args, "thread"),
            object=_arg(args, "object"),
            time_range=time_range,
        )


def _arg(args: Mapping, name: str) -> str | None:
    value = args.get(name)
    if value is None or value == "":
        return None
    return value


def _arg_list(args, name: str) -> list[str]:
    if hasattr(args, "getlist"):
        values = args.getlist(name)
    else:
        value = args.get(name)
        if value is None:
            values = []
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
        else:
            values = [value]
    return [v for v in values if v != ""]


def parse_int(value: str | None, name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidFilter(f"{name} must be an integer, got {value!r}") from None


def parse_bool(value: str | None, name: str) -> bool:
    if value is None:
        return False
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise InvalidFilter(f"{name} must be true or false, got {value!r}")


def parse_level(value: str) -> Level:
    try:
        return Level.from_name(value)
    except ValueError as e:
        raise InvalidFilter(str(e)) from None


def compile_regex(pattern: str, name: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidFilter(f"Invalid {name} {pattern!r}: {e}") from None


def filter_by_field(record: Record, field_name: str, expected) -> bool:
    """Exact match; a record missing the field never matches."""
    actual = getattr(record, field_name)
    return actual is not None and actual == expected


def filter_by_categories(record: Record, categories: frozenset[str]) -> bool:
    return record.category is not None and record.category in categories


def filter_by_regex(record: Record, field_name: str, regex: re.Pattern) -> bool:
    """Unanchored, case-sensitive search anywhere in the field."""
    value = getattr(record, field_name)
    return value is not None and regex.search(value) is not None


def filter_by_time_range(record: Record, time_range: TimeRange) -> bool:
    return time_range.contains(record.timestamp)


def compile_filter(spec: FilterSpec) -> Predicate:
    """Combine every clause set on `spec` into a single callable.

    Regexes are compiled here, once per request. An invalid pattern raises
    InvalidFilter before any record is looked at.
    """
    predicates = []

    for field_name in ("level", "pid", "thread", "object"):
        expected = getattr(spec, field_name)
        if expected is not None:
            predicates.append(
                lambda r, f=field_name, e=expected: filter_by_field(r, f, e)
            )

    if spec.categories:
        categories = frozenset(spec.categories)
        predicates.append(lambda r, c=categories: filter_by_categories(r, c))

    if spec.message_regex is not None:
        regex = compile_regex(spec.message_regex, "message_regex")
        predicates.append(lambda r, rx=regex: filter_by_regex(r, "message", rx))

    if spec.function_regex is not None:
        regex = compile_regex(spec.function_regex, "function_regex")
        predicates.append(lambda r, rx=regex: filter_by_regex(r, "function", rx))

    if spec.time_range is not None:
        time_range = spec.time_range
        predicates.append(lambda r, t=time_range: filter_by_time_range(r, t))

    if not predicates:
        return lambda record: True

    def combined(record: Record) -> bool:
        return all(p(record) for p in predicates)

    return combined
