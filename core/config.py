"""
Configuration constants for the wildfire watch data layer.

This module contains all tunable parameters for fetching, filtering and trend analysis.
"""

import os

# ============================================================================
# Refresh Configuration
# ============================================================================

REFRESH_INTERVAL_SECONDS = 5 * 60  # Fixed polling period, independent of fetch duration
GATEWAY_TIMEOUT_SECONDS = 30.0  # Upper bound for a single gateway call

# ============================================================================
# Filter Configuration
# ============================================================================

DEFAULT_FILTER_WINDOW_DAYS = 7
ALL = "all"  # "no constraint" sentinel for confidence / region filters

CONFIDENCE_LEVELS = ("low", "nominal", "high")

# ============================================================================
# Territory
# ============================================================================

TERRITORY_NAME = "India"
TERRITORY_BBOX = "68.1,6.5,97.4,35.5"  # west,south,east,north

# (id, name, latitude, longitude)
TERRITORY_REGIONS = [
    ("mh", "Maharashtra", 19.7515, 75.7139),
    ("mp", "Madhya Pradesh", 23.4733, 77.9470),
    ("ka", "Karnataka", 15.3173, 75.7139),
    ("uk", "Uttarakhand", 30.0668, 79.0193),
    ("od", "Odisha", 20.9517, 85.0985),
    ("ap", "Andhra Pradesh", 15.9129, 79.7400),
    ("cg", "Chhattisgarh", 21.2787, 81.8661),
    ("as", "Assam", 26.2006, 92.9376),
]

# ============================================================================
# Dashboard Statistics
# ============================================================================

TOP_REGION_LIMIT = 5

# ============================================================================
# Historical Trend Configuration
# ============================================================================

HISTORICAL_TIME_RANGES = ("30d", "90d", "6m", "1y")
DEFAULT_HISTORICAL_TIME_RANGE = "30d"

# Savitzky-Golay filter parameters for the fire-count trend line
TREND_POLYORDER = 2
TREND_WINDOW = 7  # Must be odd and greater than polyorder

# ============================================================================
# Remote APIs
# ============================================================================

FIRMS_API_URL = "https://firms.modaps.eosdis.nasa.gov/api/area/csv"
FIRMS_SOURCE = "VIIRS_SNPP_NRT"
FIRMS_MAX_DAYS = 10  # NASA FIRMS area API limit per request
FIRMS_API_KEY = os.environ.get("FIRMS_API_KEY")

WEATHER_API_URL = "https://api.openweathermap.org/data/2.5"
OPENWEATHER_API_KEY = os.environ.get("OPENWEATHER_API_KEY")

HTTP_CONNECT_TIMEOUT_SECONDS = 10
