from datetime import date, datetime, timezone

import pandas as pd
import pytest

from action_tracker.dates import find_date_in_object, normalize_date, resolve_record_date


def _local_day(epoch_seconds):
    return datetime.fromtimestamp(epoch_seconds).date().isoformat()


@pytest.mark.parametrize(
    "raw",
    ["2026-01-13", "1/13/2026", "01/13/2026", " 01/13/2026 ", "Due 1/13/2026", "1-13-2026"],
)
def test_same_day_in_different_formats_shares_a_key(raw):
    assert normalize_date(raw) == "2026-01-13"


def test_native_dates():
    assert normalize_date(date(2026, 1, 13)) == "2026-01-13"
    assert normalize_date(datetime(2026, 1, 13, 23, 59)) == "2026-01-13"
    assert normalize_date(pd.Timestamp("2026-01-13 08:00")) == "2026-01-13"


def test_wrapped_values():
    assert normalize_date({"value": "2026-01-13"}) == "2026-01-13"
    assert normalize_date({"value": {"value": "1/13/2026"}}) == "2026-01-13"


def test_epoch_numbers_use_local_calendar_day():
    seconds = 1768300000
    assert normalize_date(seconds) == _local_day(seconds)
    assert normalize_date(seconds * 1000) == _local_day(seconds)
    assert normalize_date(str(seconds * 1000)) == _local_day(seconds)
    assert normalize_date({"seconds": seconds}) == _local_day(seconds)
    assert normalize_date({"_seconds": seconds, "_nanoseconds": 0}) == _local_day(seconds)


def test_timezone_aware_values_convert_to_local_day():
    moment = datetime(2026, 1, 13, 12, 0, tzinfo=timezone.utc)
    assert normalize_date(moment) == moment.astimezone().date().isoformat()


@pytest.mark.parametrize("raw", [None, "", "   ", "not a date", "2026-02-30", "13/45/2026", 42, "42", True, {}, float("nan")])
def test_unparseable_values_return_none(raw):
    assert normalize_date(raw) is None


def test_normalization_is_idempotent():
    key = normalize_date("1/13/2026")
    assert normalize_date(key) == key


def test_resolve_record_date_prefers_the_resolved_key():
    record = {"createDate": "2026-01-13", "updated_date": "2026-02-01"}
    assert resolve_record_date(record, "createDate") == "2026-01-13"


def test_resolve_record_date_falls_back_to_date_like_keys():
    record = {"name": "x", "Created At": "1/14/2026"}
    assert resolve_record_date(record, "createDate") == "1/14/2026"


def test_resolve_record_date_searches_nested_values():
    record = {"meta": {"audit": {"stamp": "2026-01-15"}}, "name": "x"}
    assert resolve_record_date(record, None) == "2026-01-15"
    assert normalize_date(resolve_record_date(record, None)) == "2026-01-15"


def test_nested_search_is_bounded_and_handles_cycles():
    deep = {"v": "2026-01-15"}
    for _ in range(6):
        deep = {"n": deep}
    assert find_date_in_object(deep) is None

    cyclic = {"name": "x"}
    cyclic["self"] = cyclic
    assert find_date_in_object(cyclic) is None
