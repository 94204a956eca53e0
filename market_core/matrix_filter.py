from __future__ import annotations

from typing import Optional

import pandas as pd

from market_core.data import MarketDataset, empty_records
from market_core.filters import FilterCriteria


def select_partition(dataset: Optional[MarketDataset], data_type: str) -> pd.DataFrame:
    if dataset is None:
        return empty_records()
    return dataset.records(data_type)


def filter_records(
    records: pd.DataFrame,
    criteria: FilterCriteria,
    *,
    segment_type: Optional[str] = None,
) -> pd.DataFrame:
    """Apply the criteria to raw records, keeping their original order.

    Empty ``geographies`` or ``segments`` leave that dimension unrestricted.
    ``segment_type`` overrides the criteria's segment type (region views).
    """
    if records is None or records.empty:
        return empty_records()

    start, end = criteria.year_range
    mask = records["year"].between(start, end, inclusive="both")
    if criteria.geographies:
        mask &= records["geography"].isin(set(criteria.geographies))
    if criteria.segments:
        mask &= records["segment"].isin(set(criteria.segments))
    mask &= records["segment_type"] == (segment_type if segment_type is not None else criteria.segment_type)
    return records[mask]
