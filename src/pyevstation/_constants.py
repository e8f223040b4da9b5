"""Internal constants shared across the library."""

DEFAULT_PORTS: tuple[str, ...] = ("A", "B")
DEFAULT_PRICE_VND_PER_KWH = 4500
DEFAULT_TEMPERATURE_THRESHOLD_C = 40.0

# ------------------------------------------------------------------
# Environment sensor ranges (after normalization)
# ------------------------------------------------------------------

TEMPERATURE_MIN_C = -50.0
TEMPERATURE_MAX_C = 100.0
HUMIDITY_MIN_PCT = 0
HUMIDITY_MAX_PCT = 100

# Raw temperatures above this magnitude are fixed-point values times 10.
TEMPERATURE_FIXED_POINT_LIMIT = 100.0
# Raw humidities at or below this value are fractions (0..1).
HUMIDITY_FRACTION_LIMIT = 1.0

# ------------------------------------------------------------------
# Timestamp classification thresholds
# ------------------------------------------------------------------

EPOCH_MILLIS_THRESHOLD = 1_000_000_000_000
EPOCH_SECONDS_THRESHOLD = 1_000_000_000

# ------------------------------------------------------------------
# Firebase endpoints
# ------------------------------------------------------------------

IDENTITY_TOOLKIT_SIGNUP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signUp"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
# Refresh the ID token this many seconds before it actually expires.
TOKEN_REFRESH_MARGIN_S = 60.0
