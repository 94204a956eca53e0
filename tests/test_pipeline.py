from __future__ import annotations

from market_core.data import load_dataset
from market_core.filters import AdvancedSegment, FilterCriteria
from market_core.pipeline import SeriesCache, compute_chart_series

YEARS = (2020, 2021)


def test_segment_mode_without_fallback(market_dataset):
    result = compute_chart_series(market_dataset, FilterCriteria(segment_type="By Type", year_range=YEARS))
    assert result["points"] == [
        {"year": 2020, "Tablets": 15.0, "Capsules": 3.0},
        {"year": 2021, "Tablets": 12.0, "Intravenous": 7.0},
    ]
    assert result["seriesNames"] == ["Tablets", "Capsules", "Intravenous"]


def test_fallback_level_rolls_up_when_nothing_selected(market_dataset):
    result = compute_chart_series(market_dataset, FilterCriteria(segment_type="By Type", year_range=YEARS), fallback_level=2)
    assert result["points"] == [
        {"year": 2020, "Solid Dosage": 18.0},
        {"year": 2021, "Solid Dosage": 12.0, "Parenteral": 7.0},
    ]
    assert result["seriesNames"] == ["Solid Dosage", "Parenteral"]


def test_segment_selection_shows_leaf_series(market_dataset):
    criteria = FilterCriteria(
        segment_type="By Type",
        segments=("Tablets",),
        advanced_segments=(AdvancedSegment("By Type", "Tablets"),),
        year_range=YEARS,
    )
    result = compute_chart_series(market_dataset, criteria, fallback_level=2)
    assert result["seriesNames"] == ["Tablets"]
    assert [p["Tablets"] for p in result["points"]] == [15.0, 12.0]


def test_geography_mode_reads_region_rows(market_dataset):
    criteria = FilterCriteria(view_mode="geography-mode", segment_type="By Type", year_range=YEARS)
    result = compute_chart_series(market_dataset, criteria, fallback_level=2)
    assert result["points"] == [
        {"year": 2020, "U.S.": 20.0, "Canada": 8.0, "Germany": 6.0},
        {"year": 2021, "U.S.": 22.0, "Atlantis": 1.0},
    ]
    assert result["seriesNames"] == ["U.S.", "Canada", "Germany", "Atlantis"]


def test_geography_mode_region_level(market_dataset):
    criteria = FilterCriteria(view_mode="geography-mode", segment_type="By Type", aggregation_level=1, year_range=YEARS)
    result = compute_chart_series(market_dataset, criteria)
    assert result["points"] == [
        {"year": 2020, "North America": 28.0, "Europe": 6.0},
        {"year": 2021, "North America": 22.0, "Atlantis": 1.0},
    ]


def test_matrix_mode(market_dataset):
    criteria = FilterCriteria(view_mode="matrix", segment_type="By Type", year_range=YEARS)
    result = compute_chart_series(market_dataset, criteria)
    assert result["seriesNames"] == ["U.S.::Tablets", "Canada::Tablets", "U.S.::Capsules", "Germany::Intravenous"]
    assert result["points"][1] == {"year": 2021, "U.S.::Tablets": 12.0, "Germany::Intravenous": 7.0}


def test_volume_partition(market_dataset):
    result = compute_chart_series(market_dataset, FilterCriteria(data_type="volume", segment_type="By Type", year_range=YEARS))
    assert result["points"] == [{"year": 2020, "Tablets": 100.0}, {"year": 2021, "Tablets": 110.0}]


def test_reversed_year_range_matches_normal(market_dataset):
    forward = compute_chart_series(market_dataset, FilterCriteria(segment_type="By Type", year_range=(2020, 2021)))
    backward = compute_chart_series(market_dataset, FilterCriteria(segment_type="By Type", year_range=(2021, 2020)))
    assert forward == backward


def test_empty_results_are_not_errors(market_dataset):
    empty = {"points": [], "seriesNames": []}
    assert compute_chart_series(None, FilterCriteria()) == empty
    assert compute_chart_series(load_dataset({}), FilterCriteria()) == empty
    assert compute_chart_series(market_dataset, FilterCriteria(geographies=("Nowhere",))) == empty
    assert compute_chart_series(market_dataset, FilterCriteria(segment_type="By Type", year_range=(1990, 1991))) == empty


def test_cache_hits_and_invalidation(market_dataset, market_payload):
    cache = SeriesCache(maxsize=2)
    criteria = FilterCriteria(segment_type="By Type", year_range=YEARS)

    first = cache.get(market_dataset, criteria)
    assert cache.get(market_dataset, FilterCriteria(segment_type="By Type", year_range=YEARS)) == first
    assert (cache.hits, cache.misses) == (1, 1)

    cache.get(market_dataset, criteria, fallback_level=2)
    assert cache.misses == 2

    market_payload["data"]["value"]["geography_segment_matrix"][0]["value"] = 11
    changed = load_dataset(market_payload)
    assert changed.token != market_dataset.token
    updated = cache.get(changed, criteria)
    assert updated["points"][0]["Tablets"] == 16.0
    assert cache.misses == 3
    assert len(cache) == 2

    cache.invalidate(changed)
    assert len(cache) == 1
    cache.invalidate()
    assert len(cache) == 0


def test_cached_results_are_independent_copies(market_dataset):
    cache = SeriesCache()
    criteria = FilterCriteria(segment_type="By Type", year_range=YEARS)

    first = cache.get(market_dataset, criteria)
    first["points"][0]["Tablets"] = -1.0
    first["points"].clear()
    first["seriesNames"].append("Injected")

    again = cache.get(market_dataset, criteria)
    assert again["points"][0] == {"year": 2020, "Tablets": 15.0, "Capsules": 3.0}
    assert again["seriesNames"] == ["Tablets", "Capsules", "Intravenous"]
    assert cache.hits == 1


def test_region_row_is_not_added_to_its_countries():
    dataset = load_dataset(
        {
            "data": {
                "value": {
                    "geography_segment_matrix": [
                        {"year": 2020, "geography": "North America", "segment": "North America", "segmentType": "By Region", "value": 15},
                        {"year": 2020, "geography": "U.S.", "segment": "U.S.", "segmentType": "By Region", "value": 10},
                        {"year": 2020, "geography": "Canada", "segment": "Canada", "segmentType": "By Region", "value": 5},
                        {"year": 2021, "geography": "U.S.", "segment": "U.S.", "segmentType": "By Region", "value": 11},
                        {"year": 2021, "geography": "Canada", "segment": "Canada", "segmentType": "By Region", "value": 6},
                    ]
                }
            }
        }
    )
    criteria = FilterCriteria(view_mode="geography-mode", aggregation_level=1, year_range=YEARS)
    result = compute_chart_series(dataset, criteria)
    assert result["points"] == [
        {"year": 2020, "North America": 15.0},
        {"year": 2021, "North America": 17.0},
    ]
