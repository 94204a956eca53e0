from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from market_core.config import DATA_PATH, DATA_TYPES, RECORD_COLUMNS
from market_core.errors import DatasetLoadError

logger = logging.getLogger(__name__)

# alias -> column; the alias wins only where the column is missing
RECORD_ALIASES = {"segmentType": "segment_type"}


@dataclass(frozen=True)
class MarketDataset:
    partitions: Dict[str, pd.DataFrame] = field(compare=False)
    geographies: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)
    token: str = ""

    def records(self, data_type: str) -> pd.DataFrame:
        return self.partitions.get(data_type, empty_records())

    @property
    def years(self) -> List[int]:
        years: set = set()
        for df in self.partitions.values():
            years.update(int(y) for y in df["year"].unique())
        return sorted(years)

    def segment_types(self, data_type: str = "value") -> List[str]:
        return [str(x) for x in pd.unique(self.records(data_type)["segment_type"])]

    def segments(self, data_type: str = "value", segment_type: Optional[str] = None) -> List[str]:
        df = self.records(data_type)
        if segment_type is not None:
            df = df[df["segment_type"] == segment_type]
        return [str(x) for x in pd.unique(df["segment"])]


def empty_records() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "year": pd.Series(dtype="int64"),
            "geography": pd.Series(dtype="object"),
            "segment": pd.Series(dtype="object"),
            "segment_type": pd.Series(dtype="object"),
            "value": pd.Series(dtype="float64"),
        }
    )


def records_frame(rows: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Build a typed record frame from MarketRecord dicts.

    Rows without a parseable year or value are dropped; labels are coerced to
    strings.
    """
    df = pd.DataFrame(list(rows))
    if df.empty:
        return empty_records()
    for alias, col in RECORD_ALIASES.items():
        if alias not in df.columns:
            continue
        df[col] = df[col].combine_first(df[alias]) if col in df.columns else df[alias]
        df = df.drop(columns=[alias])
    for col in RECORD_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA
    df = df[RECORD_COLUMNS].copy()
    df["year"] = pd.to_numeric(df["year"], errors="coerce")
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    df = df.dropna(subset=["year", "value"])
    df["year"] = df["year"].astype("int64")
    df["value"] = df["value"].astype("float64")
    for col in ("geography", "segment", "segment_type"):
        df[col] = df[col].fillna("").astype(str)
    return df.reset_index(drop=True)


def dataset_token(partitions: Dict[str, pd.DataFrame], geographies: Tuple[str, ...]) -> str:
    digest = hashlib.sha1()
    for name in sorted(partitions):
        digest.update(name.encode("utf-8"))
        digest.update(pd.util.hash_pandas_object(partitions[name], index=False).values.tobytes())
    digest.update("\x1f".join(geographies).encode("utf-8"))
    return digest.hexdigest()


def load_dataset(payload: Dict[str, Any]) -> MarketDataset:
    if not isinstance(payload, dict):
        raise DatasetLoadError(f"Dataset payload must be an object, got {type(payload).__name__}")

    data = payload.get("data") or {}
    partitions: Dict[str, pd.DataFrame] = {}
    for data_type in DATA_TYPES:
        rows = (data.get(data_type) or {}).get("geography_segment_matrix") or []
        partitions[data_type] = records_frame(rows)

    dims = (payload.get("dimensions") or {}).get("geographies") or {}
    geographies = [str(g) for g in (dims.get("all_geographies") or []) if g is not None]
    if not geographies:
        seen: List[str] = []
        for data_type in DATA_TYPES:
            seen.extend(partitions[data_type]["geography"].tolist())
        geographies = list(dict.fromkeys(seen))
    geographies_t = tuple(dict.fromkeys(geographies))

    return MarketDataset(
        partitions=partitions,
        geographies=geographies_t,
        metadata=dict(payload.get("metadata") or {}),
        token=dataset_token(partitions, geographies_t),
    )


def file_signature(path: Path) -> Tuple[str, float]:
    return (str(path), path.stat().st_mtime)


@lru_cache(maxsize=4)
def _load_market_data_cached(signature: Tuple[str, float]) -> MarketDataset:
    path = Path(signature[0])
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, ValueError) as exc:
        raise DatasetLoadError(f"Could not read dataset at {path}: {exc}") from exc
    dataset = load_dataset(payload)
    logger.info(
        "Loaded market dataset %s: %d value rows, %d volume rows, %d geographies",
        path.name,
        len(dataset.records("value")),
        len(dataset.records("volume")),
        len(dataset.geographies),
    )
    return dataset


def load_market_data(path: Optional[Path] = None) -> MarketDataset:
    path = Path(path or DATA_PATH)
    if not path.exists():
        raise DatasetLoadError(f"Dataset not found at {path}")
    return _load_market_data_cached(file_signature(path))
