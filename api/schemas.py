from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class AdvancedSegmentModel(BaseModel):
    type: str
    name: str


class FilterCriteriaModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_type: Literal["value", "volume"] = Field(default="value", alias="dataType")
    view_mode: Literal["segment-mode", "geography-mode", "matrix"] = Field(default="segment-mode", alias="viewMode")
    segment_type: str = Field(default="By Type", alias="segmentType")
    geographies: List[str] = Field(default_factory=list)
    segments: List[str] = Field(default_factory=list)
    advanced_segments: List[AdvancedSegmentModel] = Field(default_factory=list, alias="advancedSegments")
    aggregation_level: Optional[int] = Field(default=None, alias="aggregationLevel")
    year_range: Optional[Tuple[int, int]] = Field(default=None, alias="yearRange")
