from datetime import date

from action_tracker.data import build_data_context, prepare_context
from action_tracker.filters import FilterSet
from action_tracker.metrics_admin import (
    compute_admin_table,
    compute_form_options,
    normalize_admin_query,
)
from action_tracker.metrics_overview import compute_kpis, compute_overview, overdue_bucket, tasks_by_priority
from action_tracker.metrics_reports import (
    compute_daywise,
    compute_pivot,
    compute_pivot_detail,
    compute_rollup,
    compute_rollup_detail,
    daywise_table,
)


class TestOverview:
    def test_kpis(self, tracker_ctx):
        assert compute_kpis(tracker_ctx["filtered"]) == {"all_tasks": 4, "in_progress": 1, "stuck": 1, "done": 1}

    def test_overview_payload(self, tracker_ctx):
        payload = compute_overview(tracker_ctx["filters"], tracker_ctx, today=date(2026, 1, 15))

        assert payload["empty"] is False
        assert set(payload["charts"]) == {"tasks_by_status", "deliveries_by_user", "overdue_tasks", "priority_tasks"}
        assert all(isinstance(spec, dict) for spec in payload["charts"].values())
        assert {r["status"] for r in payload["status"]} == {"In Progress", "Completed", "Stuck", "Not Started"}
        assert sum(r["count"] for r in payload["status"]) == 4
        assert payload["users"][0] == {"owner": "Ravi", "count": 2}
        assert {r["owner"] for r in payload["users"]} == {"Ravi", "Meera", "Unassigned"}

        overdue = {r["bucket"]: r["count"] for r in payload["overdue"]}
        assert overdue == {"Completed": 1, "Not Started": 1, "In Progress": 0, "Stuck": 0, "Other": 0}

    def test_priority_order(self, tracker_ctx):
        out = tasks_by_priority(tracker_ctx["filtered"])
        assert out["priority"].tolist() == ["V High", "High", "Low", "Unspecified"]

    def test_empty_selection_is_not_an_error(self, tracker_data):
        ctx = prepare_context({"status": "Nope"}, tracker_data)
        payload = compute_overview(ctx["filters"], ctx)
        assert payload["empty"] is True
        assert payload["kpis"]["all_tasks"] == 0
        assert payload["charts"] == {}

    def test_overdue_bucket(self):
        assert overdue_bucket("Done") == "Completed"
        assert overdue_bucket("Not Started") == "Not Started"
        assert overdue_bucket("Blocked") == "Stuck"
        assert overdue_bucket(None) == "Other"


class TestReports:
    def test_pivot_payload(self, tracker_ctx):
        payload = compute_pivot(tracker_ctx["filters"], tracker_ctx)
        assert payload["row_dim"] == "business"
        assert payload["col_dim"] == "owner"
        assert payload["grand_total"] == 180
        assert payload["record_count"] == 4

    def test_pivot_detail(self, tracker_ctx):
        payload = compute_pivot_detail(
            tracker_ctx["filters"], tracker_ctx, row_dim="business", col_dim="owner", row_value="Acme", col_value="Ravi"
        )
        assert payload["count"] == 1
        assert payload["records"][0]["id"] == "a1"

    def test_daywise_table(self, tracker_ctx):
        table = daywise_table(tracker_ctx["filtered"])
        assert table["date"].tolist() == ["2026-01-13", "2026-01-14"]
        first = table.iloc[0]
        assert first["minutes"] == 90
        assert first["hours"] == 1.5
        assert first["days"] == 0.25
        assert first["items"] == 2
        assert first["by_owner"] == {"Ravi": 60.0, "Meera": 30.0}

    def test_daywise_payload_counts_undated(self, tracker_ctx):
        payload = compute_daywise(tracker_ctx["filters"], tracker_ctx)
        assert payload["undated_records"] == 1
        assert len(payload["days"]) == 2
        assert "workload" in payload["charts"]

    def test_daywise_unknown_owner(self):
        data = build_data_context({"rows": [{"date": "2026-01-13", "min": 5}, {"date": "bad", "min": 7}]})
        table = daywise_table(data["frame"])
        assert table["by_owner"].tolist() == [{"Unknown": 5.0}]

    def test_rollup_payload(self, tracker_ctx):
        payload = compute_rollup(tracker_ctx["filters"], tracker_ctx, expanded=[["2026-01-13"]])
        assert [r["path"] for r in payload["rows"]] == [["2026-01-14"], ["2026-01-13"], ["2026-01-13", "Retail"]]
        assert payload["totals"] == {"count": 3, "minutes": 180.0}

        everything = compute_rollup(tracker_ctx["filters"], tracker_ctx, expand_all=True)
        assert len(everything["rows"]) > len(payload["rows"])

    def test_rollup_detail(self, tracker_ctx):
        payload = compute_rollup_detail(tracker_ctx["filters"], tracker_ctx, path=["2026-01-14"])
        assert payload["count"] == 1
        assert payload["records"][0]["id"] == "a3"

    def test_rollup_empty(self, tracker_data):
        ctx = prepare_context(FilterSet(status="Nope"), tracker_data)
        payload = compute_rollup(ctx["filters"], ctx)
        assert payload["empty"] is True
        assert payload["rows"] == []


class TestAdmin:
    def test_owner_filter_and_summary(self, tracker_ctx):
        payload = compute_admin_table(tracker_ctx, normalize_admin_query({"owner": "ravi"}))
        assert [r["id"] for r in payload["rows"]] == ["a1", "a3"]
        assert payload["summary"] == "Showing 2 of 4"

    def test_business_search_is_case_insensitive_substring(self, tracker_ctx):
        payload = compute_admin_table(tracker_ctx, normalize_admin_query({"business_query": "CME"}))
        assert [r["id"] for r in payload["rows"]] == ["a1", "a2"]

    def test_deadline_range(self, tracker_ctx):
        query = normalize_admin_query({"deadline_from": "2026-01-05", "deadline_to": "1/31/2026"})
        assert [r["id"] for r in compute_admin_table(tracker_ctx, query)["rows"]] == ["a1", "a2"]

    def test_sorting(self, tracker_ctx):
        query = normalize_admin_query({"owner": "Ravi", "sort_key": "min", "sort_dir": "DESC"})
        assert [r["id"] for r in compute_admin_table(tracker_ctx, query)["rows"]] == ["a3", "a1"]

    def test_cells_are_display_values(self, tracker_ctx):
        rows = compute_admin_table(tracker_ctx, normalize_admin_query({}))["rows"]
        by_id = {r["id"]: r for r in rows}
        assert by_id["a3"]["createDate"] == "2026-01-14"
        assert by_id["a2"]["subType"] == ""

    def test_form_options(self, tracker_ctx):
        options = compute_form_options(tracker_ctx)
        assert options["owner"] == ["Meera", "Ravi"]
        assert options["business"] == ["Acme", "Beta", "acme"]
        assert "In Progress" in options["status"]
        assert options["priority"][0] == "V High"
