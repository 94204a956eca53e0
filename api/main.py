from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import FilterCriteriaModel
from market_core.config import CORS_ORIGINS, DEFAULT_FALLBACK_LEVEL
from market_core.data import MarketDataset, load_market_data
from market_core.errors import DatasetLoadError
from market_core.filters import FilterCriteria, effective_filters, normalize_filters
from market_core.geography import GeographyHierarchyResolver, search_resolution
from market_core.matrix_filter import filter_records, select_partition
from market_core.pipeline import SeriesCache


app = FastAPI(title="Market Intelligence API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

geography_resolver = GeographyHierarchyResolver()
series_cache = SeriesCache()


def get_dataset() -> MarketDataset:
    return load_market_data()


def _criteria_from_model(model: FilterCriteriaModel, *, dataset: MarketDataset) -> FilterCriteria:
    raw = model.model_dump()
    return normalize_filters(raw, available_years=dataset.years)


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
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@app.exception_handler(DatasetLoadError)
async def dataset_load_error(request: Request, exc: DatasetLoadError) -> JSONResponse:
    logger.error("dataset unavailable for %s: %s", request.url.path, exc)
    return _error(exc, status_code=503)


@app.get("/meta/geographies")
def meta_geographies(q: str = Query(default=""), dataset: MarketDataset = Depends(get_dataset)):
    try:
        resolution = geography_resolver.resolve(dataset.geographies)
        if q:
            resolution = search_resolution(resolution, q)
        return _json(resolution.to_dict())
    except Exception as exc:
        logger.exception("meta_geographies failed")
        return _error(exc)


@app.get("/meta/segments")
def meta_segments(
    segment_type: Optional[str] = Query(default=None),
    data_type: str = Query(default="value"),
    dataset: MarketDataset = Depends(get_dataset),
):
    try:
        return _json(
            {
                "segmentTypes": dataset.segment_types(data_type),
                "segments": dataset.segments(data_type, segment_type),
            }
        )
    except Exception as exc:
        logger.exception("meta_segments failed")
        return _error(exc)


@app.get("/meta/years")
def meta_years(dataset: MarketDataset = Depends(get_dataset)):
    try:
        return _json({"years": dataset.years, "metadata": dataset.metadata})
    except Exception as exc:
        logger.exception("meta_years failed")
        return _error(exc)


@app.post("/series")
def series(filters: FilterCriteriaModel, dataset: MarketDataset = Depends(get_dataset)):
    try:
        criteria = _criteria_from_model(filters, dataset=dataset)
        return _json(series_cache.get(dataset, criteria, fallback_level=DEFAULT_FALLBACK_LEVEL))
    except Exception as exc:
        logger.exception("series failed")
        return _error(exc)


@app.post("/records/count")
def records_count(filters: FilterCriteriaModel, dataset: MarketDataset = Depends(get_dataset)):
    try:
        criteria = effective_filters(_criteria_from_model(filters, dataset=dataset), fallback_level=DEFAULT_FALLBACK_LEVEL)
        records = select_partition(dataset, criteria.data_type)
        filtered = filter_records(records, criteria)
        return _json(
            {
                "total": int(len(records)),
                "filtered": int(len(filtered)),
                "segmentType": criteria.segment_type,
                "aggregationLevel": criteria.aggregation_level,
            }
        )
    except Exception as exc:
        logger.exception("records_count failed")
        return _error(exc)
