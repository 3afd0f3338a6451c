"""
API request and response models for HerdWatch REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in herd/models.py and
auth/models.py, which own the internal domain representation. Response models
read the dataclasses directly (from_attributes=True), so route handlers hand
over domain objects and never build dicts field by field.

Separation of concerns: herd/ models = domain truth; api/ models = API contract.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.models import (
    HEART_RATE_RANGE,
    MOTION_LEVEL_RANGE,
    PASSWORD_MAX_BYTES,
    PASSWORD_MIN_LENGTH,
    RESPIRATORY_RATE_RANGE,
    SPO2_RANGE,
    TEMPERATURE_RANGE,
    LivestockStatus,
    NotificationType,
    Role,
    Severity,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_Temperature = Field(ge=TEMPERATURE_RANGE[0], le=TEMPERATURE_RANGE[1], description="Body temperature, degrees C.")
_HeartRate = Field(ge=HEART_RATE_RANGE[0], le=HEART_RATE_RANGE[1], description="Heart rate, bpm.")
_Spo2 = Field(ge=SPO2_RANGE[0], le=SPO2_RANGE[1], description="Blood oxygen saturation, percent.")


class _DomainModel(BaseModel):
    """Base for response models built from domain dataclasses."""

    model_config = ConfigDict(frozen=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    role: Role = Role.farmer

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)


class UserResponse(_DomainModel):
    """Public view of a user. The password hash is never serialized."""

    id: int
    name: Optional[str]
    email: str
    role: str
    created_at: Optional[str]


class AuthResponse(BaseModel):
    """Response for register and login: the user plus a session token."""

    model_config = ConfigDict(frozen=True)

    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# Farms
# ---------------------------------------------------------------------------


class FarmCreate(BaseModel):
    """Request body for POST /api/v1/farms."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=1000)
    type: Optional[str] = Field(default=None, max_length=50)


class FarmUpdate(BaseModel):
    """Request body for PATCH /api/v1/farms/{farm_id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=1000)
    type: Optional[str] = Field(default=None, max_length=50)


class FarmResponse(_DomainModel):
    id: int
    user_id: int
    name: str
    location: Optional[str]
    address: Optional[str]
    type: Optional[str]
    created_at: str


# ---------------------------------------------------------------------------
# Livestock
# ---------------------------------------------------------------------------


class LivestockCreate(BaseModel):
    """Request body for POST /api/v1/livestock.

    farm_id is optional; when present it must reference one of the caller's farms.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    farm_id: Optional[int] = None
    name: str = Field(min_length=1, max_length=255)
    species: str = Field(min_length=1, max_length=100)
    breed: Optional[str] = Field(default=None, max_length=100)
    gender: Optional[str] = Field(default=None, max_length=20)
    birth_date: Optional[date] = None
    photo_url: Optional[str] = Field(default=None, max_length=2048)
    status: Optional[LivestockStatus] = None
    height: Optional[float] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    body_condition_score: Optional[int] = Field(default=None, ge=1, le=9)
    notes: Optional[str] = Field(default=None, max_length=5000)
    recorded_at: Optional[datetime] = None


class LivestockUpdate(BaseModel):
    """Request body for PATCH /api/v1/livestock/{livestock_id}.

    Only fields present in the request body are written; an explicit null
    clears an optional field.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    farm_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    species: Optional[str] = Field(default=None, min_length=1, max_length=100)
    breed: Optional[str] = Field(default=None, max_length=100)
    gender: Optional[str] = Field(default=None, max_length=20)
    birth_date: Optional[date] = None
    photo_url: Optional[str] = Field(default=None, max_length=2048)
    status: Optional[LivestockStatus] = None
    height: Optional[float] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    body_condition_score: Optional[int] = Field(default=None, ge=1, le=9)
    notes: Optional[str] = Field(default=None, max_length=5000)
    recorded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "LivestockUpdate":
        for name in ("name", "species"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class LivestockResponse(_DomainModel):
    id: int
    user_id: int
    farm_id: Optional[int]
    name: str
    species: str
    breed: Optional[str]
    gender: Optional[str]
    birth_date: Optional[str]
    photo_url: Optional[str]
    status: Optional[str]
    height: Optional[float]
    weight: Optional[float]
    body_condition_score: Optional[int]
    notes: Optional[str]
    recorded_at: Optional[str]
    created_at: str
    updated_at: str


# ---------------------------------------------------------------------------
# Sensor data
# ---------------------------------------------------------------------------


class SensorReadingUpsert(BaseModel):
    """Request body for PUT /api/v1/livestock/{id}/sensor-data.

    Replaces the animal's current reading (or creates the first one).
    temperature, heart_rate and spo2 are required.
    """

    temperature: float = _Temperature
    heart_rate: int = _HeartRate
    spo2: float = _Spo2
    respiratory_rate: Optional[int] = Field(
        default=None, ge=RESPIRATORY_RATE_RANGE[0], le=RESPIRATORY_RATE_RANGE[1]
    )
    motion_level: Optional[float] = Field(default=None, ge=MOTION_LEVEL_RANGE[0], le=MOTION_LEVEL_RANGE[1])
    timestamp: Optional[datetime] = None


class SensorReadingCreate(BaseModel):
    """Request body for POST /api/v1/livestock/{id}/sensor-data (append a reading).

    Every metric is optional but at least one must be present.
    """

    temperature: Optional[float] = Field(default=None, ge=TEMPERATURE_RANGE[0], le=TEMPERATURE_RANGE[1])
    heart_rate: Optional[int] = Field(default=None, ge=HEART_RATE_RANGE[0], le=HEART_RATE_RANGE[1])
    spo2: Optional[float] = Field(default=None, ge=SPO2_RANGE[0], le=SPO2_RANGE[1])
    respiratory_rate: Optional[int] = Field(
        default=None, ge=RESPIRATORY_RATE_RANGE[0], le=RESPIRATORY_RATE_RANGE[1]
    )
    motion_level: Optional[float] = Field(default=None, ge=MOTION_LEVEL_RANGE[0], le=MOTION_LEVEL_RANGE[1])
    device_id: Optional[int] = Field(default=None, ge=0)
    timestamp: Optional[datetime] = None

    @model_validator(mode="after")
    def at_least_one_metric(self) -> "SensorReadingCreate":
        metrics = (self.temperature, self.heart_rate, self.spo2, self.respiratory_rate, self.motion_level)
        if all(m is None for m in metrics):
            raise ValueError("a reading needs at least one metric")
        return self


class SensorReadingResponse(_DomainModel):
    id: int
    livestock_id: int
    temperature: Optional[float]
    heart_rate: Optional[int]
    spo2: Optional[float]
    respiratory_rate: Optional[int]
    motion_level: Optional[float]
    device_id: Optional[int]
    timestamp: str


class MetricAverages(BaseModel):
    """Average of each metric over a window. None when no reading had that metric."""

    model_config = ConfigDict(frozen=True)

    temperature: Optional[float]
    heart_rate: Optional[float]
    spo2: Optional[float]
    respiratory_rate: Optional[float]
    readings: int


class HourlyAverageRow(MetricAverages):
    hour: str


class DailyAverageRow(MetricAverages):
    day: str


class SevenDayAveragesResponse(BaseModel):
    """Response for GET /api/v1/dashboard/seven-day-averages."""

    model_config = ConfigDict(frozen=True)

    window_days: int
    overall: MetricAverages
    days: list[DailyAverageRow]


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------


class AnomalyUpdate(BaseModel):
    """Request body for PUT /api/v1/livestock/{id}/anomalies."""

    model_config = ConfigDict(str_strip_whitespace=True)

    type: str = Field(min_length=1, max_length=100)
    severity: Severity
    resolved: bool
    notes: Optional[str] = Field(default=None, max_length=5000)
    detected_at: Optional[datetime] = None


class AnomalyResponse(_DomainModel):
    id: int
    livestock_id: int
    type: Optional[str]
    severity: Optional[str]
    notes: Optional[str]
    detected_at: Optional[str]
    resolved: Optional[bool]


class LivestockDetailResponse(_DomainModel):
    """One animal with its latest reading and anomaly record."""

    livestock: LivestockResponse
    sensor_data: Optional[SensorReadingResponse]
    anomaly: Optional[AnomalyResponse]


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


class DeviceBind(BaseModel):
    """Request body for POST /api/v1/livestock/{id}/devices."""

    device_id: int = Field(ge=0)


class DeviceResponse(_DomainModel):
    livestock_id: int
    device_id: int
    last_update: Optional[str]


class SasTokenRequest(BaseModel):
    """Request body for POST /api/v1/devices/sas-token."""

    model_config = ConfigDict(str_strip_whitespace=True)

    hostname: str = Field(min_length=1, max_length=255, description="IoT Hub hostname.")
    device_id: str = Field(min_length=1, max_length=128)
    primary_key: str = Field(min_length=1, max_length=256, description="Base64 device primary key.")


class SasTokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    sas_token: str
    expires_in: int


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationCreate(BaseModel):
    """Request body for POST /api/v1/notifications."""

    model_config = ConfigDict(str_strip_whitespace=True)

    livestock_id: int
    message: str = Field(min_length=1, max_length=2000)
    type: NotificationType = NotificationType.info


class NotificationResponse(_DomainModel):
    id: int
    user_id: int
    livestock_id: int
    message: str
    type: str
    read: bool
    sent_at: str


class LivestockSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    species: str


class RecentNotificationRow(_DomainModel):
    notification: NotificationResponse
    livestock: LivestockSummary


class NotificationDetailRow(_DomainModel):
    notification: NotificationResponse
    livestock: LivestockResponse
    sensor_data: Optional[SensorReadingResponse]


class UnreadCountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    unread: int


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class StatusCountsResponse(BaseModel):
    """Response for GET /api/v1/dashboard/status-counts."""

    model_config = ConfigDict(frozen=True)

    total: int
    healthy: int
    needs_attention: int
    critical: int


class SpeciesCountRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    species: str
    total: int
