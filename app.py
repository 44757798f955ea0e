import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from action_tracker import data as dc
from action_tracker.filters import FilterSet, filter_options, reduce_filters
from action_tracker.metrics_admin import compute_admin_table, compute_form_options, normalize_admin_query
from action_tracker.metrics_overview import compute_overview
from action_tracker.metrics_reports import compute_daywise, compute_pivot, compute_rollup
from action_tracker.drilldown import select_cell_detail, select_node_detail
from action_tracker.pivot import METRICS, TOTAL_LABEL, GRAND_TOTAL_LABEL
from action_tracker.rollup import ExpansionState, build_rollup
from action_tracker.warehouse import NoFieldsToUpdate, UnknownColumn, get_warehouse_client


PIVOT_DIM_LABELS = {
    "business": "BUSINESS",
    "owner": "OWNER",
    "business_type": "BUSINESS TYPE",
    "process": "PROCESS",
    "status": "STATUS",
}
FILTER_LABELS = {
    "user": "Owner",
    "business": "Business",
    "business_type": "Business Type",
    "process": "Process",
    "sub_type": "Process SubType",
    "status": "Status",
}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(filters: FilterSet) -> str:
    active = filters.active()
    if not active:
        return "<span class='chip'>All records</span>"
    return "".join(f"<span class='chip'>{k.replace('_', ' ').title()}: {v}</span>" for k, v in active.items())


def render_page_header(title: str, filters: FilterSet, export_rows: Optional[List[Dict[str, Any]]] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(f"<div class='app-top-bar'><div class='page-title'>{title}</div></div>", unsafe_allow_html=True)
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            fetch_snapshot.clear()
            st.rerun()
        if export_rows:
            btn_cols[1].download_button(
                "Export CSV",
                data=pd.DataFrame(export_rows).to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{format_filter_summary(filters)}</div>", unsafe_allow_html=True)


@st.cache_data(show_spinner=False, ttl=60)
def fetch_snapshot() -> Dict[str, Any]:
    return get_warehouse_client().fetch_records()


def show_records(records: List[Dict[str, Any]], columns: List[Dict[str, str]]):
    if not records:
        st.info("No data available.")
        return
    keys = [c["key"] for c in columns] or list(records[0].keys())
    table = pd.DataFrame([{k: dc.format_cell(r.get(k)) for k in keys} for r in records])
    st.dataframe(table.astype(str), use_container_width=True, hide_index=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Action Tracker Pro", layout="wide")
inject_base_styles()
st.title("Action Tracker Pro")

with st.spinner("Loading..."):
    try:
        data_ctx = dc.build_data_context(fetch_snapshot())
    except Exception as exc:
        st.error(f"Could not load action items: {exc}")
        st.stop()

frame = data_ctx["frame"]
rows = data_ctx["rows"]
columns = data_ctx["columns"]

if "filters" not in st.session_state:
    st.session_state["filters"] = FilterSet()
if "rollup_state" not in st.session_state:
    st.session_state["rollup_state"] = ExpansionState()

# ----- Sidebar: navigation + filters -----
options = filter_options(frame)
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Dashboard", "Reports", "Admin"], index=0)

    st.markdown("---")
    st.markdown("### Filters")
    filters: FilterSet = st.session_state["filters"]
    for name, label in FILTER_LABELS.items():
        choices = ["(all)"] + options.get(name, [])
        current = getattr(filters, name)
        picked = st.selectbox(label, choices, index=choices.index(current) if current in choices else 0, key=f"filter_{name}")
        filters = reduce_filters(filters, {"type": "set", "field": name, "value": None if picked == "(all)" else picked})
    date_cols = st.columns(2)
    date_from = date_cols[0].date_input("From", value=None, key="filter_date_from")
    date_to = date_cols[1].date_input("To", value=None, key="filter_date_to")
    filters = reduce_filters(filters, {"type": "set", "field": "date_from", "value": date_from})
    filters = reduce_filters(filters, {"type": "set", "field": "date_to", "value": date_to})
    if st.button("Clear filters"):
        filters = reduce_filters(filters, {"type": "clear"})
        for name in list(FILTER_LABELS) + ["date_from", "date_to"]:
            st.session_state.pop(f"filter_{name}", None)
        st.session_state["filters"] = filters
        st.rerun()
    st.session_state["filters"] = filters

ctx = dc.prepare_context(filters, data_ctx)
filtered_rows = dc.rows_for(ctx["filtered"], rows)


# ---------- Pages ----------
def render_dashboard():
    render_page_header("Dashboard", filters, filtered_rows, "action_items.csv")
    payload = compute_overview(filters, ctx)
    kpis = payload["kpis"]
    cols = st.columns(4)
    cols[0].metric("All Tasks", kpis["all_tasks"])
    cols[1].metric("In progress", kpis["in_progress"])
    cols[2].metric("Stuck", kpis["stuck"])
    cols[3].metric("Done", kpis["done"])
    if payload["empty"]:
        st.info("No data available.")
        return
    charts = payload["charts"]
    left, right = st.columns(2)
    with left:
        with card("Tasks by status"):
            st.vega_lite_chart(charts["tasks_by_status"], use_container_width=True)
        with card("Overdue tasks"):
            st.vega_lite_chart(charts["overdue_tasks"], use_container_width=True)
    with right:
        with card("Deliveries by User"):
            st.vega_lite_chart(charts["deliveries_by_user"], use_container_width=True)
        with card("Priority Tasks"):
            st.vega_lite_chart(charts["priority_tasks"], use_container_width=True)


def render_pivot():
    c1, c2, c3 = st.columns(3)
    dims = list(PIVOT_DIM_LABELS)
    row_dim = c1.selectbox("Rows", dims, index=0, format_func=PIVOT_DIM_LABELS.get)
    col_dim = c2.selectbox("Columns", dims, index=1, format_func=PIVOT_DIM_LABELS.get)
    metric = c3.selectbox("Metric", list(METRICS), index=1, format_func=lambda m: "Days (÷6)" if m == "Days" else m)
    payload = compute_pivot(filters, ctx, row_dim=row_dim, col_dim=col_dim, metric=metric)
    if payload["empty"]:
        st.info("No data available.")
        return
    display = pd.DataFrame(payload["display_rows"]).rename(columns={row_dim: PIVOT_DIM_LABELS[row_dim]})
    st.dataframe(display, use_container_width=True, hide_index=True)

    with st.expander("Cell detail"):
        d1, d2 = st.columns(2)
        row_value = d1.selectbox("Row value", [GRAND_TOTAL_LABEL] + payload["row_values"], index=0)
        col_value = d2.selectbox("Column value", [TOTAL_LABEL] + payload["col_values"], index=0)
        records = select_cell_detail(ctx["filtered"], rows, row_dim, col_dim, row_value, col_value)
        st.caption(f"{len(records)} records")
        show_records(list(records), columns)


def render_daywise():
    payload = compute_daywise(filters, ctx)
    if payload["empty"]:
        st.info("No data available.")
        return
    table = pd.DataFrame(payload["days"])
    table["by_owner"] = table["by_owner"].map(lambda d: "  ".join(f"{k}: {v:.0f}min" for k, v in d.items()))
    table = table.rename(columns={"date": "DATE", "minutes": "MINUTES", "hours": "HOURS", "days": "DAYS (÷6)", "items": "ITEMS", "by_owner": "BY USER"})
    st.dataframe(table, use_container_width=True, hide_index=True)
    if payload["charts"].get("workload"):
        st.vega_lite_chart(payload["charts"]["workload"], use_container_width=True)
    if payload["undated_records"]:
        st.caption(f"{payload['undated_records']} records without a usable date are not shown.")


def render_rollup():
    state: ExpansionState = st.session_state["rollup_state"]
    payload = compute_rollup(filters, ctx, expanded=sorted(state.expanded))
    if payload["empty"]:
        st.info("No data available.")
        return
    b1, b2, _ = st.columns([1, 1, 6])
    if b1.button("Expand all"):
        st.session_state["rollup_state"] = state.expand_all(build_rollup(ctx["filtered"]))
        st.rerun()
    if b2.button("Collapse all"):
        st.session_state["rollup_state"] = state.collapse_all()
        st.rerun()

    for row in payload["rows"]:
        indent = " " * row["level"]
        marker = ("▼" if row["expanded"] else "▶") if row["has_children"] else "•"
        label = f"{indent}{marker} {row['label']}: {row['display_value']} · {row['count']} items · {row['hours']:.2f} h"
        c1, c2 = st.columns([8, 1])
        if c1.button(label, key="node_" + "|".join(row["path"]), disabled=not row["has_children"]):
            st.session_state["rollup_state"] = state.toggle(row["path"])
            st.rerun()
        if c2.button("Details", key="detail_" + "|".join(row["path"])):
            st.session_state["rollup_detail"] = row["path"]

    path = st.session_state.get("rollup_detail")
    if path:
        st.markdown(f"**Records under {' / '.join(path)}**")
        show_records(list(select_node_detail(ctx["filtered"], rows, path)), columns)


def render_reports():
    render_page_header("Reports", filters, filtered_rows, "reports.csv")
    tab_pivot, tab_day, tab_tree = st.tabs(["Pivot Table", "Day-wise Workload", "Drill-down"])
    with tab_pivot:
        render_pivot()
    with tab_day:
        render_daywise()
    with tab_tree:
        render_rollup()


def render_admin():
    render_page_header("Admin", filters, rows, "all_action_items.csv")
    form_options = compute_form_options(ctx)
    c = st.columns(6)
    owner = c[0].selectbox("Owner", ["(any)"] + form_options["owner"])
    business_type = c[1].selectbox("Business Type", ["(any)"] + form_options["business_type"])
    status = c[2].selectbox("Status", ["(any)"] + sorted(options.get("status", [])))
    business_query = c[3].text_input("Business", placeholder="search business")
    deadline_from = c[4].date_input("From (deadline)", value=None)
    deadline_to = c[5].date_input("To (deadline)", value=None)
    s1, s2 = st.columns(2)
    sort_key = s1.selectbox("Sort by", ["(none)"] + [col["key"] for col in columns])
    sort_dir = s2.radio("Direction", ["asc", "desc"], horizontal=True)

    query = normalize_admin_query(
        {
            "owner": None if owner == "(any)" else owner,
            "business_type": None if business_type == "(any)" else business_type,
            "status": None if status == "(any)" else status,
            "business_query": business_query,
            "deadline_from": deadline_from,
            "deadline_to": deadline_to,
            "sort_key": None if sort_key == "(none)" else sort_key,
            "sort_dir": sort_dir,
        }
    )
    payload = compute_admin_table(ctx, query)
    if payload["rows"]:
        st.dataframe(pd.DataFrame(payload["rows"]).astype(str), use_container_width=True, hide_index=True)
    else:
        st.info("No data available.")
    st.caption(payload["summary"])

    client = get_warehouse_client()
    ids = [r["id"] for r in payload["rows"] if r.get("id") not in (None, "")]
    edit_col, add_col = st.columns(2)
    with edit_col:
        with card("Edit / delete"):
            if not ids:
                st.caption("No rows to edit.")
            else:
                selected = st.selectbox("Row id", ids)
                current = next((r for r in rows if r.get("id") == selected), {})
                with st.form("edit_form"):
                    updates = {}
                    for col in columns:
                        if col["key"] in ("id", "actions"):
                            continue
                        updates[col["key"]] = st.text_input(col["label"], value=str(dc.format_cell(current.get(col["key"]))))
                    if st.form_submit_button("Save"):
                        try:
                            client.update_record(selected, updates)
                            fetch_snapshot.clear()
                            st.success("Saved.")
                            st.rerun()
                        except (NoFieldsToUpdate, UnknownColumn) as exc:
                            st.warning(str(exc))
                        except Exception as exc:
                            st.error(f"Update failed: {exc}")
                if st.button(f"Delete {selected}"):
                    try:
                        client.delete_record(selected)
                        fetch_snapshot.clear()
                        st.rerun()
                    except Exception as exc:
                        st.error(f"Delete failed: {exc}")
    with add_col:
        with card("Add New Action Item"):
            with st.form("add_form"):
                values = {}
                for col in columns:
                    key = col["key"]
                    if key in ("id", "actions") or key.upper().startswith("UNNAMED"):
                        continue
                    semantic = next((s for s, k in data_ctx["key_map"].items() if k == key), None)
                    choices = form_options.get(semantic or "", [])
                    if choices:
                        values[key] = st.selectbox(col["label"], [""] + choices, key=f"add_{key}")
                    else:
                        values[key] = st.text_input(col["label"], key=f"add_{key}")
                if st.form_submit_button("Create"):
                    try:
                        client.insert_record({k: v for k, v in values.items() if v != ""})
                        fetch_snapshot.clear()
                        st.success("Created.")
                        st.rerun()
                    except (NoFieldsToUpdate, UnknownColumn) as exc:
                        st.warning(str(exc))
                    except Exception as exc:
                        st.error(f"Failed to create action item: {exc}")


if nav_choice == "Dashboard":
    render_dashboard()
elif nav_choice == "Reports":
    render_reports()
else:
    render_admin()
