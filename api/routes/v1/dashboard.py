"""
api/routes/v1/dashboard.py -- Aggregated herd metrics for the dashboard widgets.

Every route aggregates over the authenticated user's own animals only.

Routes:
  GET /dashboard/status-counts        -- total / healthy / needs attention / critical
  GET /dashboard/species-counts       -- animals per species
  GET /dashboard/sensor-anomalies     -- every animal with latest reading + anomaly
  GET /dashboard/seven-day-averages   -- metric averages over the last 7 days
  GET /dashboard/latest-readings      -- latest reading per animal

These are read-only aggregate routes -- no mutations here.
"""

from fastapi import APIRouter, Depends, Request

from api.limiter import limiter
from api.models import (
    DailyAverageRow,
    LivestockDetailResponse,
    MetricAverages,
    SensorReadingResponse,
    SevenDayAveragesResponse,
    SpeciesCountRow,
    StatusCountsResponse,
)
from auth.dependencies import get_current_user
from auth.models import User
from herd.store import HerdStore

# Auth policy:
# - every /dashboard route requires auth; the router-level dependency enforces it
#   and handlers take current_user only to scope the query.
router = APIRouter(dependencies=[Depends(get_current_user)])

_WINDOW_DAYS = 7


@router.get("/dashboard/status-counts", response_model=StatusCountsResponse)
def status_counts(request: Request, current_user: User = Depends(get_current_user)) -> StatusCountsResponse:
    """Count the user's animals by health status in a single query."""
    store: HerdStore = request.app.state.herd
    return StatusCountsResponse(**store.status_counts(current_user.id))


@router.get("/dashboard/species-counts", response_model=list[SpeciesCountRow])
def species_counts(request: Request, current_user: User = Depends(get_current_user)) -> list[SpeciesCountRow]:
    store: HerdStore = request.app.state.herd
    return [SpeciesCountRow(**row) for row in store.species_counts(current_user.id)]


@limiter.limit("60/minute")
@router.get("/dashboard/sensor-anomalies", response_model=list[LivestockDetailResponse])
def sensor_anomalies(request: Request, current_user: User = Depends(get_current_user)) -> list[LivestockDetailResponse]:
    """Return each animal with its latest reading and anomaly record.

    Animals without readings are included with sensor_data = null.
    """
    store: HerdStore = request.app.state.herd
    return [LivestockDetailResponse.model_validate(row) for row in store.sensor_anomaly_overview(current_user.id)]


@limiter.limit("60/minute")
@router.get("/dashboard/seven-day-averages", response_model=SevenDayAveragesResponse)
def seven_day_averages(request: Request, current_user: User = Depends(get_current_user)) -> SevenDayAveragesResponse:
    """Return overall and per-day metric averages for today and the six days before it.

    Response:
      window_days -- 7
      overall     -- averages across the whole window (null metrics when no readings)
      days        -- one row per day that has readings, oldest first
    """
    store: HerdStore = request.app.state.herd
    overall = store.window_averages(current_user.id, days=_WINDOW_DAYS)
    days = store.daily_averages(current_user.id, days=_WINDOW_DAYS)
    return SevenDayAveragesResponse(
        window_days=_WINDOW_DAYS,
        overall=MetricAverages(**overall),
        days=[DailyAverageRow(**row) for row in days],
    )


@router.get("/dashboard/latest-readings", response_model=list[SensorReadingResponse])
def latest_readings(request: Request, current_user: User = Depends(get_current_user)) -> list[SensorReadingResponse]:
    """Latest reading for each animal that has one, ordered by livestock id."""
    store: HerdStore = request.app.state.herd
    readings = store.latest_readings_for_user(current_user.id)
    return [SensorReadingResponse.model_validate(r) for r in readings.values()]
