"""
api/routes/v1/sensors.py -- Sensor telemetry for a single animal.

Routes:
  GET  /livestock/{livestock_id}/sensor-data          -- latest reading or null
  PUT  /livestock/{livestock_id}/sensor-data          -- get-or-create the current reading
  POST /livestock/{livestock_id}/sensor-data          -- append a reading (periodic ingestion)
  GET  /livestock/{livestock_id}/sensor-data/history  -- readings in a trailing window
  GET  /livestock/{livestock_id}/sensor-data/hourly   -- per-hour averages

PUT keeps a single "current" row per animal for clients that only care about
the latest state; POST builds the time series the averages are computed from.
Both write the same table, so the latest reading is always the newest row.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import limiter
from api.models import HourlyAverageRow, SensorReadingCreate, SensorReadingResponse, SensorReadingUpsert
from api.routes.v1.common import owned_livestock_or_404
from auth.dependencies import get_current_user
from auth.models import User
from core.config import to_iso
from herd.models import SensorReading
from herd.store import HerdStore

router = APIRouter(dependencies=[Depends(get_current_user)])

logger = logging.getLogger("herdwatch.api.sensors")


@router.get("/livestock/{livestock_id}/sensor-data", response_model=Optional[SensorReadingResponse])
def get_sensor_data(
    request: Request,
    livestock_id: int,
    current_user: User = Depends(get_current_user),
) -> Optional[SensorReadingResponse]:
    """Return the animal's most recent reading, or null when it has none yet."""
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    reading = store.latest_reading(livestock_id)
    return SensorReadingResponse.model_validate(reading) if reading is not None else None


@limiter.limit("120/minute")
@router.put("/livestock/{livestock_id}/sensor-data", response_model=SensorReadingResponse)
def upsert_sensor_data(
    request: Request,
    livestock_id: int,
    body: SensorReadingUpsert,
    current_user: User = Depends(get_current_user),
) -> SensorReadingResponse:
    """Overwrite the current reading, or create it if the animal has none.

    Every metric is replaced; optional metrics left out of the body are
    cleared. timestamp defaults to now.
    """
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    values = body.model_dump()
    values["timestamp"] = to_iso(body.timestamp) if body.timestamp is not None else None
    reading = store.upsert_current_reading(livestock_id, **values)
    return SensorReadingResponse.model_validate(reading)


@limiter.limit("600/minute")
@router.post("/livestock/{livestock_id}/sensor-data", response_model=SensorReadingResponse, status_code=201)
def add_sensor_reading(
    request: Request,
    livestock_id: int,
    body: SensorReadingCreate,
    current_user: User = Depends(get_current_user),
) -> SensorReadingResponse:
    """Append one reading to the animal's time series.

    If device_id names a device bound to this animal its last_update is
    refreshed. Unbound device ids are stored on the reading as-is.
    """
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    fields = body.model_dump(exclude={"timestamp"})
    reading_id = store.add_reading(
        SensorReading(
            livestock_id=livestock_id,
            timestamp=to_iso(body.timestamp) if body.timestamp is not None else "",
            **fields,
        )
    )
    logger.debug("Stored reading %d for livestock %d", reading_id, livestock_id)
    return SensorReadingResponse.model_validate(store.get_reading(reading_id))


@router.get("/livestock/{livestock_id}/sensor-data/history", response_model=list[SensorReadingResponse])
def get_sensor_history(
    request: Request,
    livestock_id: int,
    hours: int = Query(default=24, ge=1, le=24 * 30),
    limit: int = Query(default=100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
) -> list[SensorReadingResponse]:
    """Return readings from the last `hours` hours, newest first, at most `limit`."""
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    since = datetime.now(timezone.utc) - timedelta(hours=hours)
    readings = store.list_readings(livestock_id, since=since, limit=limit)
    return [SensorReadingResponse.model_validate(r) for r in readings]


@router.get("/livestock/{livestock_id}/sensor-data/hourly", response_model=list[HourlyAverageRow])
def get_hourly_averages(
    request: Request,
    livestock_id: int,
    hours: int = Query(default=24, ge=1, le=168),
    current_user: User = Depends(get_current_user),
) -> list[HourlyAverageRow]:
    """Return rolling per-hour averages for the current hour and the hours - 1 before it."""
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    return [HourlyAverageRow(**row) for row in store.hourly_averages(livestock_id, hours=hours)]
