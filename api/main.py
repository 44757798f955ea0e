from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from fastapi import Body, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from action_tracker.config import load_settings
from action_tracker.data import load_dashboard_data, prepare_context, rows_for
from action_tracker.filters import FilterSet, InvalidFilter, filter_options, normalize_filters
from action_tracker.metrics_admin import compute_admin_table, compute_form_options, normalize_admin_query
from action_tracker.metrics_overview import compute_overview
from action_tracker.metrics_reports import (
    compute_daywise,
    compute_pivot,
    compute_pivot_detail,
    compute_rollup,
    compute_rollup_detail,
)
from action_tracker.pivot import Metric, resolve_dimension
from action_tracker.warehouse import NoFieldsToUpdate, UnknownColumn, get_warehouse_client
from api.schemas import AdminQueryModel, FilterSetModel, PivotDetailRequest, RollupDetailRequest, RollupRequest


settings = load_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Action Tracker API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: Optional[FilterSetModel]) -> FilterSet:
    raw = model.model_dump() if model is not None else {}
    return normalize_filters(raw)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _context(filters: Optional[FilterSetModel]) -> Dict[str, Any]:
    data_ctx = load_dashboard_data()
    return prepare_context(_filters_from_model(filters), data_ctx)


# ---------------- Row CRUD ----------------
@app.get("/api/action-items")
def list_action_items():
    try:
        return _json(get_warehouse_client().fetch_records())
    except Exception as exc:
        logger.exception("Error fetching action-items from BigQuery")
        return _error(exc)


@app.post("/api/action-items")
def create_action_item(values: Dict[str, Any] = Body(...)):
    try:
        get_warehouse_client().insert_record(values)
        return _json({"success": True})
    except (NoFieldsToUpdate, UnknownColumn) as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("Error creating action-item")
        return _error(exc)


@app.put("/api/action-items/{item_id}")
def update_action_item(item_id: str, updates: Dict[str, Any] = Body(...)):
    try:
        get_warehouse_client().update_record(item_id, updates)
        return _json({"success": True})
    except (NoFieldsToUpdate, UnknownColumn) as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("Error updating action-item")
        return _error(exc)


@app.delete("/api/action-items/{item_id}")
def delete_action_item(item_id: str):
    try:
        get_warehouse_client().delete_record(item_id)
        return _json({"success": True})
    except Exception as exc:
        logger.exception("Error deleting action-item")
        return _error(exc)


# ---------------- Meta ----------------
@app.post("/meta/options")
def meta_options(filters: Optional[FilterSetModel] = None):
    try:
        ctx = _context(filters)
        return _json(
            {
                "filters": filter_options(ctx["frame"]),
                "form": compute_form_options(ctx),
                "key_map": ctx["key_map"],
            }
        )
    except InvalidFilter as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


# ---------------- Pages ----------------
@app.post("/overview")
def overview(filters: Optional[FilterSetModel] = None):
    try:
        ctx = _context(filters)
        return _json(compute_overview(ctx["filters"], ctx))
    except InvalidFilter as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/reports/pivot")
def pivot(
    filters: Optional[FilterSetModel] = None,
    row_dim: str = Query(default="business"),
    col_dim: str = Query(default="owner"),
    metric: Metric = Query(default="Minutes"),
):
    try:
        row_key = resolve_dimension(row_dim, "business")
        col_key = resolve_dimension(col_dim, "owner")
    except ValueError as exc:
        return _error(exc, 400)
    try:
        ctx = _context(filters)
        return _json(compute_pivot(ctx["filters"], ctx, row_dim=row_key, col_dim=col_key, metric=metric))
    except InvalidFilter as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("pivot failed")
        return _error(exc)


@app.post("/reports/pivot/detail")
def pivot_detail(request: PivotDetailRequest):
    try:
        row_key = resolve_dimension(request.row_dim, "business")
        col_key = resolve_dimension(request.col_dim, "owner")
    except ValueError as exc:
        return _error(exc, 400)
    try:
        ctx = _context(request.filters)
        return _json(
            compute_pivot_detail(
                ctx["filters"],
                ctx,
                row_dim=row_key,
                col_dim=col_key,
                row_value=request.row_value,
                col_value=request.col_value,
            )
        )
    except InvalidFilter as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("pivot_detail failed")
        return _error(exc)


@app.post("/reports/daywise")
def daywise(filters: Optional[FilterSetModel] = None):
    try:
        ctx = _context(filters)
        return _json(compute_daywise(ctx["filters"], ctx))
    except InvalidFilter as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("daywise failed")
        return _error(exc)


@app.post("/reports/rollup")
def rollup(request: RollupRequest):
    try:
        ctx = _context(request.filters)
        return _json(compute_rollup(ctx["filters"], ctx, expanded=request.expanded, expand_all=request.expand_all))
    except InvalidFilter as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("rollup failed")
        return _error(exc)


@app.post("/reports/rollup/detail")
def rollup_detail(request: RollupDetailRequest):
    try:
        ctx = _context(request.filters)
        return _json(compute_rollup_detail(ctx["filters"], ctx, path=request.path))
    except ValueError as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("rollup_detail failed")
        return _error(exc)


@app.post("/admin/table")
def admin_table(query: Optional[AdminQueryModel] = None):
    try:
        ctx = _context(None)
        admin_query = normalize_admin_query(query.model_dump() if query is not None else {})
        return _json(compute_admin_table(ctx, admin_query))
    except Exception as exc:
        logger.exception("admin_table failed")
        return _error(exc)


@app.post("/export/{page}")
def export_page(page: str, filters: Optional[FilterSetModel] = None):
    try:
        ctx = _context(filters)
    except InvalidFilter as exc:
        return _error(exc, 400)

    filename = f"{page}.csv"
    if page in {"reports", "overview", "filtered"}:
        export_df = pd.DataFrame(rows_for(ctx["filtered"], ctx["rows"]))
    elif page == "normalized":
        export_df = ctx["filtered"].drop(columns=["row_index"], errors="ignore")
    elif page == "all":
        export_df = pd.DataFrame(ctx["rows"])
    else:
        export_df = pd.DataFrame()

    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
