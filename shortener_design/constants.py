"""
Shared constants for the URL shortener design showcase
Centralizes the fixed numbers of the capacity estimator so every figure is derived from one place
"""

# ============================================================================
# Time and Units
# ============================================================================

SECONDS_PER_DAY = 86_400
DAYS_PER_YEAR = 365
MILLION = 1_000_000
BILLION_IN_MILLIONS = 1_000  # millions per billion
GIB = 1024**3
TIB_IN_GIB = 1024

# ============================================================================
# Payload Sizes
# ============================================================================

AVG_RECORD_SIZE_BYTES = 500  # short_code + original_url + metadata
AVG_RESPONSE_SIZE_BYTES = 300  # 302 redirect response
AVG_WRITE_REQUEST_SIZE_BYTES = 200  # POST /shorten body

# ============================================================================
# Capacity Assumptions
# ============================================================================

HOT_CACHE_WINDOW_DAYS = 30
PEAK_TRAFFIC_FACTOR = 2
REPLICATION_FACTOR = 3
SHORT_CODE_ALPHABET_SIZE = 62  # [a-zA-Z0-9]

# ============================================================================
# Estimation Parameters
# ============================================================================

ESTIMATION_PARAMETERS = {
    "daily_creates_millions",
    "read_write_ratio",
    "retention_years",
}

# Parameters that must hold whole numbers
INTEGRAL_PARAMETERS = {"read_write_ratio", "retention_years"}

# Reference slider ranges: (min, max, step, default). Informational only,
# the estimator accepts any finite positive value.
SLIDER_RANGES = {
    "daily_creates_millions": (0.1, 10.0, 0.1, 1.0),
    "read_write_ratio": (10, 1000, 10, 100),
    "retention_years": (1, 10, 1, 5),
}

# ============================================================================
# Visualizations
# ============================================================================

VISUALIZATION_KINDS = {"request_trace", "cache_simulation"}
