from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, List, Optional, Tuple

from market_core.config import (
    DATA_TYPES,
    DEFAULT_SEGMENT_TYPE,
    DEFAULT_YEAR_RANGE,
    REGION_SEGMENT_TYPE,
    VIEW_MODES,
)


@dataclass(frozen=True)
class AdvancedSegment:
    type: str
    name: str


@dataclass(frozen=True)
class FilterCriteria:
    data_type: str = "value"
    view_mode: str = "segment-mode"
    segment_type: str = DEFAULT_SEGMENT_TYPE
    geographies: Tuple[str, ...] = field(default_factory=tuple)
    segments: Tuple[str, ...] = field(default_factory=tuple)
    advanced_segments: Tuple[AdvancedSegment, ...] = field(default_factory=tuple)
    aggregation_level: Optional[int] = None
    year_range: Tuple[int, int] = DEFAULT_YEAR_RANGE

    def __post_init__(self) -> None:
        # Keep the snapshot hashable even when callers pass lists.
        for name in ("geographies", "segments", "advanced_segments"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        start, end = (int(y) for y in self.year_range)
        object.__setattr__(self, "year_range", (end, start) if start > end else (start, end))

    @property
    def has_segment_selection(self) -> bool:
        """True when the user picked advanced segments of the current segment type."""
        return any(seg.type == self.segment_type for seg in self.advanced_segments)


def _get(raw: dict, snake: str, camel: str, default: Any = None) -> Any:
    if snake in raw:
        return raw[snake]
    return raw.get(camel, default)


def _as_str_tuple(values: Optional[Iterable[object]]) -> Tuple[str, ...]:
    if not values:
        return ()
    return tuple(dict.fromkeys(str(x) for x in values if x is not None))


def _as_optional_int(value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        out = int(value)  # type: ignore[arg-type]
    except Exception:
        return None
    return out if out >= 1 else None


def _as_year_range(value: object, available_years: List[int]) -> Tuple[int, int]:
    default = (available_years[0], available_years[-1]) if available_years else DEFAULT_YEAR_RANGE
    if not value:
        return default
    try:
        start, end = (int(v) for v in value)  # type: ignore[union-attr]
    except Exception:
        return default
    return (end, start) if start > end else (start, end)


def _as_advanced_segments(values: Optional[Iterable[object]]) -> Tuple[AdvancedSegment, ...]:
    out: List[AdvancedSegment] = []
    for item in values or []:
        if isinstance(item, AdvancedSegment):
            out.append(item)
        elif isinstance(item, dict) and item.get("type") is not None and item.get("name") is not None:
            out.append(AdvancedSegment(type=str(item["type"]), name=str(item["name"])))
    return tuple(out)


def normalize_filters(raw: dict, *, available_years: Optional[List[int]] = None) -> FilterCriteria:
    available_years = sorted(available_years or [])

    data_type = str(_get(raw, "data_type", "dataType", "value") or "value")
    if data_type not in DATA_TYPES:
        data_type = "value"

    view_mode = str(_get(raw, "view_mode", "viewMode", "segment-mode") or "segment-mode")
    if view_mode not in VIEW_MODES:
        view_mode = "segment-mode"

    segment_type = str(_get(raw, "segment_type", "segmentType", DEFAULT_SEGMENT_TYPE) or DEFAULT_SEGMENT_TYPE).strip()

    return FilterCriteria(
        data_type=data_type,
        view_mode=view_mode,
        segment_type=segment_type,
        geographies=_as_str_tuple(raw.get("geographies")),
        segments=_as_str_tuple(raw.get("segments")),
        advanced_segments=_as_advanced_segments(_get(raw, "advanced_segments", "advancedSegments")),
        aggregation_level=_as_optional_int(_get(raw, "aggregation_level", "aggregationLevel")),
        year_range=_as_year_range(_get(raw, "year_range", "yearRange"), available_years),
    )


def effective_filters(criteria: FilterCriteria, *, fallback_level: Optional[int] = None) -> FilterCriteria:
    """Derive the criteria the engine actually runs with.

    Segment selections of the current type force leaf granularity. Without
    them, the requested level applies, or ``fallback_level`` when none was
    requested. Geography mode reads region rows (``REGION_SEGMENT_TYPE``)
    unless the user selected segments of the current type.
    """
    if criteria.has_segment_selection:
        level = None
    elif criteria.aggregation_level is not None:
        level = criteria.aggregation_level
    else:
        level = fallback_level

    segment_type = criteria.segment_type
    if criteria.view_mode == "geography-mode" and not criteria.has_segment_selection:
        segment_type = REGION_SEGMENT_TYPE

    return replace(criteria, aggregation_level=level, segment_type=segment_type)


def uses_level_aggregation(criteria: FilterCriteria) -> bool:
    return criteria.aggregation_level is not None or criteria.view_mode == "geography-mode"
