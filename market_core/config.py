"""
Configuration constants for the market intelligence engine.
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

# ======================================================
#  DATA SOURCE
# ======================================================
BASE_DIR: Path = Path(__file__).resolve().parents[1]
DATA_PATH: Path = Path(os.getenv("MARKET_DATA_PATH", str(BASE_DIR / "market_data.json"))).expanduser()

# ======================================================
#  DIMENSIONS
# ======================================================
DATA_TYPES: Tuple[str, ...] = ("value", "volume")
VIEW_MODES: Tuple[str, ...] = ("segment-mode", "geography-mode", "matrix")

RECORD_COLUMNS: List[str] = ["year", "geography", "segment", "segment_type", "value"]

# Regions only carry this segment type; geography mode switches to it.
REGION_SEGMENT_TYPE: str = "By Region"
DEFAULT_SEGMENT_TYPE: str = "By Type"

SERIES_KEY_SEPARATOR: str = "::"

# ======================================================
#  AGGREGATION DEFAULTS
# ======================================================
# Level used when the user requested none and has no segment selections.
DEFAULT_FALLBACK_LEVEL: Optional[int] = 2

# ======================================================
#  API
# ======================================================
CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

# ======================================================
#  YEAR BOUNDS
# ======================================================
GLOBAL_YEAR_MIN: int = 1900
GLOBAL_YEAR_MAX: int = 2100
DEFAULT_YEAR_RANGE: Tuple[int, int] = (GLOBAL_YEAR_MIN, GLOBAL_YEAR_MAX)
