from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

from market_core.data import MarketDataset, load_dataset, records_frame

SCENARIO_ROWS = [
    {"year": 2020, "geography": "U.S.", "segment": "Tablets", "segmentType": "By Type", "value": 10},
    {"year": 2020, "geography": "Canada", "segment": "Tablets", "segmentType": "By Type", "value": 5},
    {"year": 2021, "geography": "U.S.", "segment": "Tablets", "segmentType": "By Type", "value": 12},
]

MARKET_PAYLOAD: Dict[str, Any] = {
    "dimensions": {"geographies": {"all_geographies": ["U.S.", "Canada", "Germany", "Atlantis"]}},
    "data": {
        "value": {
            "geography_segment_matrix": SCENARIO_ROWS
            + [
                {"year": 2020, "geography": "U.S.", "segment": "Capsules", "segmentType": "By Type", "value": 3},
                {"year": 2021, "geography": "Germany", "segment": "Intravenous", "segmentType": "By Type", "value": 7},
                {"year": 2020, "geography": "U.S.", "segment": "U.S.", "segmentType": "By Region", "value": 20},
                {"year": 2020, "geography": "Canada", "segment": "Canada", "segmentType": "By Region", "value": 8},
                {"year": 2020, "geography": "Germany", "segment": "Germany", "segmentType": "By Region", "value": 6},
                {"year": 2021, "geography": "U.S.", "segment": "U.S.", "segmentType": "By Region", "value": 22},
                {"year": 2021, "geography": "Atlantis", "segment": "Atlantis", "segmentType": "By Region", "value": 1},
            ]
        },
        "volume": {
            "geography_segment_matrix": [
                {"year": 2020, "geography": "U.S.", "segment": "Tablets", "segmentType": "By Type", "value": 100},
                {"year": 2021, "geography": "U.S.", "segment": "Tablets", "segmentType": "By Type", "value": 110},
            ]
        },
    },
    "metadata": {"currency": "USD", "value_unit": "Million", "volume_unit": "Units"},
}


@pytest.fixture
def scenario_records():
    return records_frame(SCENARIO_ROWS)


@pytest.fixture
def market_payload() -> Dict[str, Any]:
    return copy.deepcopy(MARKET_PAYLOAD)


@pytest.fixture
def market_dataset(market_payload) -> MarketDataset:
    return load_dataset(market_payload)
