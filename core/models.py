"""
core/models.py -- Domain vocabulary shared by every layer.

These are the fixed value sets the API validates against and the stores
aggregate on. They live in core/ so api/ and herd/ agree on spelling without
importing each other.
"""

from enum import Enum

# ---------------------------------------------------------------------------
# Livestock health status
# ---------------------------------------------------------------------------


class LivestockStatus(str, Enum):
    healthy = "Healthy"
    needs_attention = "Needs Attention"
    critical = "Critical"


# ---------------------------------------------------------------------------
# Anomalies and notifications
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class NotificationType(str, Enum):
    alert = "alert"
    warning = "warning"
    info = "info"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class Role(str, Enum):
    farmer = "farmer"
    veterinarian = "veterinarian"
    admin = "admin"


# Plausible physiological ranges for incoming readings. Values outside these
# bounds are sensor faults, not animals.
TEMPERATURE_RANGE = (25.0, 50.0)  # degrees C
HEART_RATE_RANGE = (0, 400)  # bpm
SPO2_RANGE = (0.0, 100.0)  # percent
RESPIRATORY_RATE_RANGE = (0, 200)  # breaths/min
MOTION_LEVEL_RANGE = (0.0, 100.0)  # relative activity

# bcrypt hashes at most 72 bytes of input and bcrypt>=5 rejects anything longer.
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = 72
