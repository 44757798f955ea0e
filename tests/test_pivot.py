import pytest

from action_tracker.data import build_data_context
from action_tracker.drilldown import select_cell_detail
from action_tracker.filters import FilterSet, apply_filters
from action_tracker.pivot import (
    GRAND_TOTAL_LABEL,
    TOTAL_LABEL,
    build_pivot,
    format_cell,
    pivot_payload,
    resolve_dimension,
)
from action_tracker.values import BLANK_LABEL


def test_minutes_pivot_merges_normalized_values(example_ctx):
    table = build_pivot(example_ctx["frame"], "business", "status", "Minutes")

    assert table.row_values == ["Acme", "Beta"]
    assert table.col_values == ["Open", "Closed"]
    assert table.cell("Acme", "Open") == 75
    assert table.cell("Beta", "Closed") == 10
    assert table.cell("Acme", "Closed") == 0
    assert table.row_totals == {"Acme": 75, "Beta": 10}
    assert table.grand_total == 85


def test_grand_total_row_and_total_column(example_ctx):
    rows = build_pivot(example_ctx["frame"], "business", "status", "Minutes").to_rows()
    assert rows[-1] == {"business": GRAND_TOTAL_LABEL, "Open": 75, "Closed": 10, TOTAL_LABEL: 85}
    assert rows[0][TOTAL_LABEL] == 75


@pytest.mark.parametrize(
    "filters",
    [FilterSet(), FilterSet(business="Acme"), FilterSet(date_from="2026-01-14"), FilterSet(status="Nope")],
)
def test_grand_total_matches_record_count_and_minutes(tracker_data, filters):
    filtered = apply_filters(tracker_data["frame"], filters)

    counts = build_pivot(filtered, "business", "owner", "Count")
    assert counts.grand_total == len(filtered)
    assert sum(counts.col_totals.values()) == len(filtered)

    minutes = build_pivot(filtered, "process", "status", "Minutes")
    assert minutes.grand_total == pytest.approx(filtered["minutes"].sum())


def test_missing_values_land_in_blank_bucket(tracker_data):
    table = build_pivot(tracker_data["frame"], "owner", "priority", "Count")
    assert BLANK_LABEL in table.row_values
    assert table.cell(BLANK_LABEL, BLANK_LABEL) == 1
    assert table.grand_total == 4


def test_hours_and_days_scale_minutes(tracker_data):
    hours = build_pivot(tracker_data["frame"], "business", "owner", "Hours")
    days = build_pivot(tracker_data["frame"], "business", "owner", "Days")
    assert hours.cell("Acme", "Ravi") == pytest.approx(1.0)
    assert hours.grand_total == pytest.approx(3.0)
    assert days.grand_total == pytest.approx(0.5)


def test_count_cells_are_integers(tracker_data):
    table = build_pivot(tracker_data["frame"], "business", "status", "Count")
    assert all(isinstance(v, int) for row in table.grid.values() for v in row.values())


def test_empty_frame_gives_empty_table(tracker_data):
    table = build_pivot(tracker_data["frame"].iloc[0:0], "business", "owner", "Count")
    assert table.empty
    assert table.grand_total == 0
    assert pivot_payload(table)["empty"] is True


def test_unknown_metric_or_dimension_raises(tracker_data):
    with pytest.raises(ValueError):
        build_pivot(tracker_data["frame"], "business", "owner", "Weeks")
    with pytest.raises(ValueError):
        build_pivot(tracker_data["frame"], "colour", "owner", "Count")


def test_format_cell_zero_conventions():
    assert format_cell(0, "Count") == "0"
    assert format_cell(3, "Count") == "3"
    assert format_cell(0, "Minutes") == "-"
    assert format_cell(0.0, "Days") == "-"
    assert format_cell(1.5, "Hours") == "1.50"


def test_display_rows_are_formatted(example_ctx):
    payload = pivot_payload(build_pivot(example_ctx["frame"], "business", "status", "Minutes"))
    assert payload["display_rows"][0] == {"business": "Acme", "Open": "75.00", "Closed": "-", TOTAL_LABEL: "75.00"}


@pytest.mark.parametrize(
    "name, expected",
    [(None, "business"), ("Business Type", "business_type"), ("user", "owner"), ("subType", "sub_type"), ("STATUS", "status")],
)
def test_resolve_dimension(name, expected):
    assert resolve_dimension(name, "business") == expected


def test_resolve_dimension_rejects_unknown():
    with pytest.raises(ValueError):
        resolve_dimension("colour", "business")


def test_same_dimension_on_both_axes_fills_only_the_diagonal(tracker_data):
    frame, rows = tracker_data["frame"], tracker_data["rows"]
    table = build_pivot(frame, "status", "status", "Count")

    assert table.row_values == table.col_values
    for r in table.row_values:
        for c in table.col_values:
            expected = table.row_totals[r] if r == c else 0
            assert table.cell(r, c) == expected
            assert len(select_cell_detail(frame, rows, "status", "status", r, c)) == expected
    assert table.grand_total == len(frame)


def test_literal_blank_text_stays_apart_from_missing_values():
    ctx = build_data_context({"rows": [{"business": "(blank)", "min": 1}, {"business": None, "min": 2}]})
    table = build_pivot(ctx["frame"], "business", "business", "Count")

    assert table.row_values == ["(blank)", BLANK_LABEL]
    assert table.row_totals == {"(blank)": 1, BLANK_LABEL: 1}
    assert select_cell_detail(ctx["frame"], ctx["rows"], "business", "business", BLANK_LABEL, None) == [
        {"business": None, "min": 2}
    ]
