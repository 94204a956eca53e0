"""Chart series pipeline: dataset + FilterCriteria -> {points, seriesNames}.

:func:`compute_chart_series` runs the whole chain (filter, prepare, extract
names). :class:`SeriesCache` memoizes it per (dataset token, criteria) so an
unchanged interaction is not recomputed; any change of either key misses.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, Hashable, List, Optional, Tuple

from market_core.data import MarketDataset
from market_core.filters import FilterCriteria, effective_filters, uses_level_aggregation
from market_core.geography import GeographyHierarchyResolver
from market_core.matrix_filter import filter_records, select_partition
from market_core.segments import DEFAULT_SEGMENT_RESOLVER, SegmentRollupResolver
from market_core.series import extract_series_names, prepare_level_aggregated, prepare_multi_level

logger = logging.getLogger(__name__)

DEFAULT_GEOGRAPHY_RESOLVER = GeographyHierarchyResolver()


def empty_series() -> Dict[str, List[Any]]:
    return {"points": [], "seriesNames": []}


def _copy_series(result: Dict[str, List[Any]]) -> Dict[str, List[Any]]:
    return {"points": [dict(point) for point in result["points"]], "seriesNames": list(result["seriesNames"])}


def compute_chart_series(
    dataset: Optional[MarketDataset],
    criteria: FilterCriteria,
    *,
    fallback_level: Optional[int] = None,
    geography_resolver: GeographyHierarchyResolver = DEFAULT_GEOGRAPHY_RESOLVER,
    segment_resolver: SegmentRollupResolver = DEFAULT_SEGMENT_RESOLVER,
) -> Dict[str, List[Any]]:
    if dataset is None:
        return empty_series()

    effective = effective_filters(criteria, fallback_level=fallback_level)
    records = select_partition(dataset, effective.data_type)
    filtered = filter_records(records, effective)

    if uses_level_aggregation(effective):
        resolution = geography_resolver.resolve(dataset.geographies) if effective.view_mode == "geography-mode" else None
        points = prepare_level_aggregated(
            filtered,
            effective,
            geography_resolution=resolution,
            segment_resolver=segment_resolver,
        )
    else:
        points = prepare_multi_level(filtered, effective)

    series_names = extract_series_names(points)
    logger.debug(
        "chart series: filtered=%d prepared=%d series=%s view_mode=%s segment_type=%s level=%s",
        len(filtered),
        len(points),
        series_names,
        effective.view_mode,
        effective.segment_type,
        effective.aggregation_level,
    )
    return {"points": points, "seriesNames": series_names}


class SeriesCache:
    """Small LRU of computed series keyed by (dataset token, criteria, fallback level)."""

    def __init__(self, maxsize: int = 32):
        self.maxsize = max(1, int(maxsize))
        self._entries: "OrderedDict[Tuple[Hashable, ...], Dict[str, List[Any]]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(
        self,
        dataset: MarketDataset,
        criteria: FilterCriteria,
        *,
        fallback_level: Optional[int] = None,
    ) -> Dict[str, List[Any]]:
        key = (dataset.token, criteria, fallback_level)
        if key in self._entries:
            self.hits += 1
            self._entries.move_to_end(key)
            return _copy_series(self._entries[key])

        self.misses += 1
        result = compute_chart_series(dataset, criteria, fallback_level=fallback_level)
        self._entries[key] = result
        if len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)
        return _copy_series(result)

    def invalidate(self, dataset: Optional[MarketDataset] = None) -> None:
        """Drop every entry, or only those computed for ``dataset``."""
        if dataset is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[0] == dataset.token]:
            del self._entries[key]
