from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_dataset
from market_core.errors import DatasetLoadError


@pytest.fixture
def client(market_dataset):
    app.dependency_overrides[get_dataset] = lambda: market_dataset
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_series_uses_default_fallback_level(client):
    resp = client.post("/series", json={"viewMode": "segment-mode", "segmentType": "By Type", "yearRange": [2020, 2021]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["seriesNames"] == ["Solid Dosage", "Parenteral"]
    assert body["points"][0] == {"year": 2020, "Solid Dosage": 18.0}


def test_series_with_segment_selection(client):
    payload = {
        "segment_type": "By Type",
        "segments": ["Tablets"],
        "advanced_segments": [{"type": "By Type", "name": "Tablets"}],
    }
    body = client.post("/series", json=payload).json()
    assert body["seriesNames"] == ["Tablets"]
    assert [p["year"] for p in body["points"]] == [2020, 2021]


def test_series_empty_result(client):
    body = client.post("/series", json={"geographies": ["Nowhere"]}).json()
    assert body == {"points": [], "seriesNames": []}


def test_meta_geographies(client):
    body = client.get("/meta/geographies").json()
    assert [region["name"] for region in body["tree"]] == ["North America", "Europe"]
    assert body["unmatched"] == ["Atlantis"]

    searched = client.get("/meta/geographies", params={"q": "can"}).json()
    assert searched["tree"][0]["children"] == [{"name": "Canada", "existsInData": True, "selectable": True, "children": []}]


def test_meta_segments_and_years(client):
    segments = client.get("/meta/segments", params={"segment_type": "By Type"}).json()
    assert segments["segments"] == ["Tablets", "Capsules", "Intravenous"]
    assert client.get("/meta/years").json()["years"] == [2020, 2021]


def test_records_count(client):
    body = client.post("/records/count", json={"viewMode": "geography-mode"}).json()
    assert body["segmentType"] == "By Region"
    assert body["filtered"] == 5
    assert body["total"] == 10


def test_dataset_failure_is_a_distinct_error():
    def broken():
        raise DatasetLoadError("Dataset not found at /nowhere.json")

    app.dependency_overrides[get_dataset] = broken
    try:
        resp = TestClient(app).post("/series", json={})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503
    assert resp.json()["type"] == "DatasetLoadError"


def test_series_years_are_integers(client):
    body = client.post("/series", json={"segmentType": "By Type", "aggregationLevel": 3}).json()
    assert body["points"]
    assert all(isinstance(point["year"], int) for point in body["points"])
    assert body["points"][0] == {"year": 2020, "Tablets": 15.0, "Capsules": 3.0}
