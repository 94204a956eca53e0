import altair as alt
import pandas as pd
import streamlit as st
from typing import Dict, List

from market_core.config import DATA_PATH, DEFAULT_FALLBACK_LEVEL, VIEW_MODES
from market_core.data import MarketDataset, load_market_data
from market_core.errors import DatasetLoadError
from market_core.filters import normalize_filters
from market_core.geography import GeographyHierarchyResolver, region_selection_state
from market_core.pipeline import SeriesCache

alt.data_transformers.disable_max_rows()

VIEW_LABELS = {"segment-mode": "Segment Mode", "geography-mode": "Geography Mode", "matrix": "Matrix"}
LEVEL_OPTIONS = {"Auto": None, "Level 1": 1, "Level 2": 2, "Level 3": 3}


@st.cache_resource
def get_series_cache() -> SeriesCache:
    return SeriesCache(maxsize=64)


@st.cache_resource
def get_geography_resolver() -> GeographyHierarchyResolver:
    return GeographyHierarchyResolver()


def points_frame(points: List[Dict[str, float]], series_names: List[str]) -> pd.DataFrame:
    """Long (year, series, value) frame; missing keys stay missing."""
    if not points:
        return pd.DataFrame(columns=["year", "series", "value"])
    wide = pd.DataFrame(points)
    cols = [c for c in series_names if c in wide.columns]
    return wide.melt(id_vars="year", value_vars=cols, var_name="series", value_name="value").dropna(subset=["value"])


def geography_options(dataset: MarketDataset) -> List[str]:
    resolution = get_geography_resolver().resolve(dataset.geographies)
    return resolution.labels() + list(resolution.unmatched)


def format_geography(label: str, dataset: MarketDataset) -> str:
    resolution = get_geography_resolver().resolve(dataset.geographies)
    region = resolution.rollup(label, 1)
    return label if region == label else f"{region} › {label}"


# ---------- UI setup ----------
st.set_page_config(page_title="Market Intelligence Dashboard", layout="wide")
st.title("Market Intelligence Dashboard")

try:
    dataset = load_market_data()
except DatasetLoadError as exc:
    st.error(f"Could not load market data from {DATA_PATH}: {exc}")
    st.stop()

years = dataset.years
if not years:
    st.error("The dataset has no records.")
    st.stop()

with st.sidebar:
    st.markdown("### View")
    data_type = st.radio("Data", ["value", "volume"], format_func=str.title, horizontal=True)
    view_mode = st.radio("View mode", list(VIEW_MODES), format_func=lambda m: VIEW_LABELS[m])
    segment_types = dataset.segment_types(data_type) or ["By Type"]
    segment_type = st.selectbox("Segment type", segment_types)

    st.markdown("---")
    st.markdown("### Filters")
    selected_geos = st.multiselect(
        "Geographies",
        options=geography_options(dataset),
        format_func=lambda g: format_geography(g, dataset),
    )
    segment_options = dataset.segments(data_type, segment_type)
    selected_segments = st.multiselect("Segments", options=segment_options)
    level_label = st.selectbox("Aggregation level", list(LEVEL_OPTIONS))
    year_range = st.slider("Years", min_value=years[0], max_value=years[-1], value=(years[0], years[-1]))

    with st.expander("Regions", expanded=False):
        resolution = get_geography_resolver().resolve(dataset.geographies)
        for node in resolution.tree:
            state = region_selection_state(node, selected_geos, dataset.geographies)
            mark = {"all": "●", "partial": "◐", "none": "○"}[state]
            st.write(f"{mark} {node.name}" + ("" if node.selectable else " (group)"))
        if resolution.unmatched:
            st.caption("Other: " + ", ".join(resolution.unmatched))

criteria = normalize_filters(
    {
        "data_type": data_type,
        "view_mode": view_mode,
        "segment_type": segment_type,
        "geographies": selected_geos,
        "segments": selected_segments,
        "advanced_segments": [{"type": segment_type, "name": s} for s in selected_segments],
        "aggregation_level": LEVEL_OPTIONS[level_label],
        "year_range": year_range,
    },
    available_years=years,
)
result = get_series_cache().get(dataset, criteria, fallback_level=DEFAULT_FALLBACK_LEVEL)
long_df = points_frame(result["points"], result["seriesNames"])

if long_df.empty:
    st.info("No data to display. Try adjusting your filters.")
    st.stop()

unit = dataset.metadata.get("value_unit", "") if data_type == "value" else dataset.metadata.get("volume_unit", "")
y_title = f"Market {data_type.title()} ({unit})" if unit else f"Market {data_type.title()}"

if criteria.view_mode == "matrix":
    chart = (
        alt.Chart(long_df)
        .mark_rect()
        .encode(
            x=alt.X("year:O", title="Year"),
            y=alt.Y("series:N", title="Geography :: Segment", sort=result["seriesNames"]),
            color=alt.Color("value:Q", title=y_title),
            tooltip=["year", "series", alt.Tooltip("value:Q", format=",.2f")],
        )
    )
else:
    chart = (
        alt.Chart(long_df)
        .mark_line(point=True)
        .encode(
            x=alt.X("year:O", title="Year"),
            y=alt.Y("value:Q", title=y_title),
            color=alt.Color("series:N", title="Series", sort=result["seriesNames"]),
            tooltip=["year", "series", alt.Tooltip("value:Q", format=",.2f")],
        )
        .properties(height=420)
    )
st.altair_chart(chart, use_container_width=True)
st.dataframe(pd.DataFrame(result["points"]), hide_index=True)
