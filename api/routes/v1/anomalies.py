"""
api/routes/v1/anomalies.py -- The anomaly record attached to each animal.

Routes:
  GET /livestock/{livestock_id}/anomalies  -- current anomaly record
  PUT /livestock/{livestock_id}/anomalies  -- overwrite (or create) the record

Each animal has exactly one anomaly row, created empty with the animal. A
fresh record therefore reads back with every field null except the ids.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import AnomalyResponse, AnomalyUpdate
from api.routes.v1.common import owned_livestock_or_404
from auth.dependencies import get_current_user
from auth.models import User
from core.config import to_iso
from herd.store import HerdStore

router = APIRouter(dependencies=[Depends(get_current_user)])

logger = logging.getLogger("herdwatch.api.anomalies")


@router.get("/livestock/{livestock_id}/anomalies", response_model=Optional[AnomalyResponse])
def get_anomaly(
    request: Request,
    livestock_id: int,
    current_user: User = Depends(get_current_user),
) -> Optional[AnomalyResponse]:
    """Return the anomaly record, or null for animals stored before rows were seeded."""
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    anomaly = store.get_anomaly(livestock_id)
    return AnomalyResponse.model_validate(anomaly) if anomaly is not None else None


@router.put("/livestock/{livestock_id}/anomalies", response_model=AnomalyResponse)
def put_anomaly(
    request: Request,
    livestock_id: int,
    body: AnomalyUpdate,
    current_user: User = Depends(get_current_user),
) -> AnomalyResponse:
    """Replace the anomaly record. detected_at defaults to now; omitted notes are cleared."""
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    anomaly = store.upsert_anomaly(
        livestock_id,
        type=body.type,
        severity=body.severity.value,
        resolved=body.resolved,
        notes=body.notes,
        detected_at=to_iso(body.detected_at) if body.detected_at is not None else None,
    )
    if not body.resolved:
        logger.info(
            "Open %s anomaly (%s) recorded for livestock %d", anomaly.severity, anomaly.type, livestock_id
        )
    return AnomalyResponse.model_validate(anomaly)
