from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Literal

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import ConnectionResponse, FilterStateModel, GroupRequestModel
from claims.filters import FilterState, apply_filters, filter_options, normalize_filters
from claims.metrics_analytics import build_analytics, group_and_aggregate, top_n_series
from claims.metrics_overview import compute_overview
from claims.records import record_to_dict
from claims.service import DataService, get_data_service


app = FastAPI(title="Dental Claims Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: FilterStateModel) -> FilterState:
    return normalize_filters(model.model_dump(by_alias=False))


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


@app.get("/health")
def health(service: DataService = Depends(get_data_service)):
    return _json({"status": "ok", "degraded": service.degraded, "cache": service.cache_stats()})


@app.get("/records")
async def records(use_cache: bool = Query(default=True), service: DataService = Depends(get_data_service)):
    try:
        rows = await service.fetch_patient_records(use_cache=use_cache)
        return _json({"records": [record_to_dict(r) for r in rows], "count": len(rows), "degraded": service.degraded})
    except Exception as exc:
        logger.exception("records failed")
        return _error(exc)


@app.post("/records/filter")
async def records_filter(filters: FilterStateModel, service: DataService = Depends(get_data_service)):
    try:
        f = _filters_from_model(filters)
        rows = apply_filters(await service.fetch_patient_records(), f)
        return _json({"filters": asdict(f), "records": [record_to_dict(r) for r in rows], "count": len(rows), "degraded": service.degraded})
    except Exception as exc:
        logger.exception("records_filter failed")
        return _error(exc)


@app.post("/metrics")
async def metrics(
    filters: FilterStateModel,
    claims_policy: Literal["all", "completed_only"] = Query(default="completed_only"),
    service: DataService = Depends(get_data_service),
):
    try:
        f = _filters_from_model(filters)
        rows = apply_filters(await service.fetch_patient_records(), f)
        return _json(compute_overview(f, rows, claims_policy=claims_policy, degraded=service.degraded))
    except Exception as exc:
        logger.exception("metrics failed")
        return _error(exc)


@app.post("/analytics")
async def analytics(filters: FilterStateModel, service: DataService = Depends(get_data_service)):
    try:
        f = _filters_from_model(filters)
        rows = apply_filters(await service.fetch_patient_records(), f)
        return _json({"filters": asdict(f), "degraded": service.degraded, **build_analytics(rows)})
    except Exception as exc:
        logger.exception("analytics failed")
        return _error(exc)


@app.post("/analytics/group")
async def analytics_group(request: GroupRequestModel, service: DataService = Depends(get_data_service)):
    try:
        f = _filters_from_model(request.filters)
        rows = apply_filters(await service.fetch_patient_records(), f)
        series = group_and_aggregate(rows, request.x_field, request.y_fields, request.aggregation)
        if request.limit is not None:
            series = top_n_series(series, request.limit)
        return _json({"x_field": request.x_field, "y_fields": request.y_fields, "aggregation": request.aggregation, "series": series})
    except ValueError as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("analytics_group failed")
        return _error(exc)


@app.get("/meta/options")
async def meta_options(service: DataService = Depends(get_data_service)):
    try:
        return _json(filter_options(await service.fetch_patient_records()))
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


@app.get("/data-quality")
async def data_quality(service: DataService = Depends(get_data_service)):
    try:
        return _json(await service.data_quality())
    except Exception as exc:
        logger.exception("data_quality failed")
        return _error(exc)


@app.post("/cache/clear")
def cache_clear(service: DataService = Depends(get_data_service)):
    service.clear_cache()
    return _json({"cleared": True, "cache": service.cache_stats()})


@app.get("/connection", response_model=ConnectionResponse)
async def connection(service: DataService = Depends(get_data_service)):
    return ConnectionResponse(connected=await service.test_connection())
