# Configuration file for the Carbon Neutral Home survey service
# Policy constants, defaults and settings. Every value can be overridden
# with an environment variable of the same name.

import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


# ============================================================================
# ENERGY POLICY PARAMETERS
# ============================================================================

# Regional electricity tariff (currency units per kWh)
COST_PER_KWH = _env_float("COST_PER_KWH", 5.0)

# Grid carbon intensity (kg CO2 per kWh)
CO2_FACTOR = _env_float("CO2_FACTOR", 0.79)

# Every bill entry is assumed to cover a bi-monthly period
BILL_PERIOD_DAYS = int(_env_float("BILL_PERIOD_DAYS", 60))

# Horsepower to watts
HP_TO_WATTS = _env_float("HP_TO_WATTS", 746.0)

# Bill-derived vs appliance-derived daily consumption mismatch threshold
CROSS_CHECK_TOLERANCE = _env_float("CROSS_CHECK_TOLERANCE", 0.10)

# Appliances above this rating are listed in the suggestion profile
HIGH_POWER_THRESHOLD_WATTS = _env_float("HIGH_POWER_THRESHOLD_WATTS", 500.0)

# ============================================================================
# GEMINI CONFIGURATION
# ============================================================================

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or ""
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# ============================================================================
# STORAGE / UPLOADS
# ============================================================================

DB_FILE = os.getenv("DB_FILE", "surveys.json")

MAX_UPLOAD_BYTES = int(_env_float("MAX_UPLOAD_BYTES", 10 * 1024 * 1024))

# ============================================================================
# ADMIN / WEB CONFIGURATION
# ============================================================================

# Admin user email (for initial setup)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@carbonneutralhome.org")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "cnh_session")

APP_ENV = os.getenv("APP_ENV", "development")

# Editing sessions untouched for this long are dropped
SESSION_IDLE_SECONDS = _env_float("SESSION_IDLE_SECONDS", 6 * 60 * 60)

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
