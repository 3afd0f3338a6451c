"""
herd/models.py -- Domain dataclasses for farms, livestock and telemetry.

These are pure data containers with zero logic. Ownership checks, the
get-or-create writes and every aggregate live in herd/store.py.

id is None before a record is written to the database. Timestamps are UTC
ISO 8601 strings (see core.config.to_iso).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Farm:
    """A user-owned grouping of livestock."""

    user_id: int
    name: str
    location: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = None  # "dairy", "beef", "mixed", ...
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class Livestock:
    """An animal record owned by a user, optionally assigned to one of their farms.

    status drives the dashboard counts: "Healthy" | "Needs Attention" | "Critical".
    """

    user_id: int
    name: str
    species: str
    farm_id: Optional[int] = None
    breed: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[str] = None  # YYYY-MM-DD
    photo_url: Optional[str] = None
    status: Optional[str] = None
    height: Optional[float] = None  # cm
    weight: Optional[float] = None  # kg
    body_condition_score: Optional[int] = None
    notes: Optional[str] = None
    recorded_at: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class SensorReading:
    """One time-stamped telemetry sample for a livestock record.

    Every metric is optional: a collar that only measures temperature still
    produces valid readings.
    """

    livestock_id: int
    temperature: Optional[float] = None  # degrees C
    heart_rate: Optional[int] = None  # bpm
    spo2: Optional[float] = None  # percent
    respiratory_rate: Optional[int] = None  # breaths/min
    motion_level: Optional[float] = None
    device_id: Optional[int] = None
    timestamp: str = ""
    id: Optional[int] = None


@dataclass
class Anomaly:
    """The single detected-condition record attached to a livestock record.

    Created empty alongside the animal and overwritten in place afterwards,
    so every field except livestock_id may be None.
    """

    livestock_id: int
    type: Optional[str] = None
    severity: Optional[str] = None  # "low" | "medium" | "high" | "critical"
    notes: Optional[str] = None
    detected_at: Optional[str] = None
    resolved: Optional[bool] = None
    id: Optional[int] = None


@dataclass
class Device:
    """A sensor device (collar, ear tag) bound to a livestock record."""

    livestock_id: int
    device_id: int
    last_update: Optional[str] = None


@dataclass
class Notification:
    """A message to a user about one of their animals."""

    user_id: int
    livestock_id: int
    message: str
    type: str = "info"  # "alert" | "warning" | "info"
    read: bool = False
    sent_at: str = ""
    id: Optional[int] = None
