"""Series preparation: filtered records -> year-indexed chart points.

A point is a plain dict ``{"year": 2020, "<series key>": total, ...}``. A key
is present only when at least one record contributed to it for that year.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from market_core.config import SERIES_KEY_SEPARATOR
from market_core.filters import FilterCriteria
from market_core.geography import GeographyResolution
from market_core.segments import DEFAULT_SEGMENT_RESOLVER, SegmentRollupResolver

SeriesPoint = Dict[str, Any]


def _map_labels(values: pd.Series, fn: Callable[[str], str]) -> pd.Series:
    lookup = {label: fn(label) for label in pd.unique(values)}
    return values.map(lookup)


def sum_by_year(filtered: pd.DataFrame, keys: pd.Series) -> List[SeriesPoint]:
    """Sum ``value`` per (year, key), ordered by year then key first appearance."""
    if filtered.empty:
        return []
    keyed = pd.DataFrame({"year": filtered["year"].to_numpy(), "series_key": keys.to_numpy(), "value": filtered["value"].to_numpy()})
    key_order = {key: i for i, key in enumerate(pd.unique(keyed["series_key"]))}

    totals = keyed.groupby(["year", "series_key"], sort=False)["value"].sum().reset_index()
    totals["_order"] = totals["series_key"].map(key_order)
    totals = totals.sort_values(["year", "_order"], kind="stable")

    points: List[SeriesPoint] = []
    for year, group in totals.groupby("year", sort=True):
        point: SeriesPoint = {"year": int(year)}
        for key, value in zip(group["series_key"], group["value"]):
            point[str(key)] = float(value)
        points.append(point)
    return points


def prepare_level_aggregated(
    filtered: pd.DataFrame,
    criteria: FilterCriteria,
    *,
    level: Optional[int] = None,
    geography_resolution: Optional[GeographyResolution] = None,
    segment_resolver: SegmentRollupResolver = DEFAULT_SEGMENT_RESOLVER,
) -> List[SeriesPoint]:
    """Group by (year, rollup key) and sum.

    Geography mode rolls geographies up through the resolved region tree
    (level 1 is the region); segment mode rolls segments up through the
    segment taxonomy. Matrix mode keeps the geography and rolls the segment.
    """
    if filtered.empty:
        return []
    level = criteria.aggregation_level if level is None else level

    def roll_geo(label: str) -> str:
        if level is None or geography_resolution is None:
            return label
        return geography_resolution.rollup(label, level)

    def roll_segment(label: str) -> str:
        if level is None:
            return label
        return segment_resolver.rollup(label, level, criteria.segment_type)

    if criteria.view_mode == "geography-mode":
        raw = filtered["geography"]
        rolled = _map_labels(raw, roll_geo)
        keys = rolled
    elif criteria.view_mode == "matrix":
        raw = filtered["segment"]
        rolled = _map_labels(raw, roll_segment)
        keys = filtered["geography"].astype(str) + SERIES_KEY_SEPARATOR + rolled
    else:
        raw = filtered["segment"]
        rolled = _map_labels(raw, roll_segment)
        keys = rolled
    filtered, keys = prefer_own_totals(filtered, raw, rolled, keys)
    return sum_by_year(filtered, keys)


def prefer_own_totals(
    filtered: pd.DataFrame,
    raw: pd.Series,
    rolled: pd.Series,
    keys: pd.Series,
) -> Tuple[pd.DataFrame, pd.Series]:
    """Keep only a parent's own rows where it has them.

    A row whose label already equals its rollup key (e.g. a "North America"
    region row) is that key's reported total. Within a (year, key) group that
    has such a row, the child rows rolled into the same key are dropped, so a
    parent is never added on top of its parts.
    """
    own = raw.to_numpy() == rolled.to_numpy()
    if own.all():
        return filtered, keys
    groups = pd.DataFrame({"year": filtered["year"].to_numpy(), "key": keys.to_numpy(), "own": own})
    has_own = groups.groupby(["year", "key"], sort=False)["own"].transform("any").to_numpy(dtype=bool)
    keep = own | ~has_own
    return filtered[keep], keys[keep]


def prepare_multi_level(filtered: pd.DataFrame, criteria: FilterCriteria) -> List[SeriesPoint]:
    """Group by (year, raw series key) with no ancestor rollup."""
    if filtered.empty:
        return []
    if criteria.view_mode == "geography-mode":
        keys = filtered["geography"]
    elif criteria.view_mode == "matrix":
        keys = filtered["geography"].astype(str) + SERIES_KEY_SEPARATOR + filtered["segment"].astype(str)
    else:
        keys = filtered["segment"]
    return sum_by_year(filtered, keys)


def extract_series_names(points: Iterable[SeriesPoint]) -> List[str]:
    names: Dict[str, None] = {}
    for point in points:
        for key in point:
            if key != "year":
                names.setdefault(key, None)
    return list(names)
