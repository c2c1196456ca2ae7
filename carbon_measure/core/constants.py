"""Shared measurement constants: single source of truth.

The derivation constants below are business values that existing
reports depend on. They are reproduced verbatim and must not be
"corrected" (for example by deriving the observation span from dates,
or by swapping the planar area scale for a geodesic one).
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Static feature collection
# ---------------------------------------------------------------------------

DEFAULT_FEATURE_BASE_URL: str = "http://localhost:3000"
"""Base URL the feature collection path is resolved against."""

DEFAULT_FEATURE_COLLECTION_PATH: str = "/15_carbon_lulc_joined.geojson"
"""Path of the joined carbon / land-use GeoJSON document."""

DEFAULT_EARLIER_STOCK_FIELD: str = "total_carbon_2017_sum"
"""Parcel property holding total carbon stock at the earlier reference year."""

DEFAULT_LATER_STOCK_FIELD: str = "total_carbon_2024_sum"
"""Parcel property holding total carbon stock at the later reference year."""

PARCEL_AREA_FIELD: str = "area"
"""Optional parcel property holding the parcel's own area."""

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

MIN_POLYGON_VERTICES: int = 3

METRES_PER_DEGREE: float = 111_319.9
"""Equatorial metres per degree used by the planar area estimate."""

SQ_METRES_PER_SQ_DEGREE: float = METRES_PER_DEGREE * METRES_PER_DEGREE

SQ_METRES_PER_HECTARE: float = 10_000.0

# ---------------------------------------------------------------------------
# Metric derivation
# ---------------------------------------------------------------------------

OBSERVATION_SPAN_YEARS: int = 7
"""Assumed years between the two stock observations (hard-coded)."""

LEAKAGE_RATE: float = 0.10
"""Share of forest growth discounted as leakage. Net keeps the remaining 90%."""

CREDIT_PRICE_PER_UNIT: int = 96_000
"""Price (Rp.) per unit of positive net sequestration."""

HIGH_GROWTH_THRESHOLD_PCT: float = 20.0
"""Growth percentage above which a measurement is flagged for review."""

# ---------------------------------------------------------------------------
# Area-only heuristic fallback rates (per square metre)
# ---------------------------------------------------------------------------

FALLBACK_MODE_ZERO: str = "zero"
FALLBACK_MODE_HEURISTIC: str = "heuristic"
FALLBACK_MODES: frozenset[str] = frozenset({FALLBACK_MODE_ZERO, FALLBACK_MODE_HEURISTIC})

HEURISTIC_CARBON_STOCK_RATE: float = 0.075
HEURISTIC_FOREST_GROWTH_RATE: float = 0.15
HEURISTIC_LEAKAGE_RATE: float = 0.10
