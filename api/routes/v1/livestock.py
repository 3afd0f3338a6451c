"""
api/routes/v1/livestock.py -- Livestock CRUD, scoped to the authenticated user.

Routes:
  POST   /livestock                       -- create animal (+ empty anomaly row)
  GET    /livestock                       -- list, optional farm_id/status/species filters
  GET    /livestock/{livestock_id}        -- animal record
  PATCH  /livestock/{livestock_id}        -- partial update
  DELETE /livestock/{livestock_id}        -- delete animal and its telemetry
  GET    /livestock/{livestock_id}/detail -- animal + latest reading + anomaly

Farm rule: a farm_id in a create or update body must name one of the caller's
own farms. A foreign or missing farm is 403 (the animal request itself is
valid, the caller just cannot attach it there).
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.limiter import limiter
from api.models import (
    ErrorDetail,
    LivestockCreate,
    LivestockDetailResponse,
    LivestockResponse,
    LivestockUpdate,
)
from api.routes.v1.common import not_found, owned_livestock_or_404
from auth.dependencies import get_current_user
from auth.models import User
from core.config import to_iso
from core.models import LivestockStatus
from herd.models import Livestock
from herd.store import HerdStore

router = APIRouter(dependencies=[Depends(get_current_user)])


def _check_farm(store: HerdStore, farm_id: Optional[int], user_id: int) -> None:
    if farm_id is None:
        return
    if store.get_farm(farm_id, user_id) is None:
        raise HTTPException(
            status_code=403,
            detail=ErrorDetail(code="farm_forbidden", message="Farm not found or you do not have access.").model_dump(),
        )


def _to_storage(fields: dict) -> dict:
    """Convert parsed request values to the strings the store persists."""
    out = dict(fields)
    if out.get("birth_date") is not None:
        out["birth_date"] = out["birth_date"].isoformat()
    if isinstance(out.get("recorded_at"), datetime):
        out["recorded_at"] = to_iso(out["recorded_at"])
    if out.get("status") is not None:
        out["status"] = LivestockStatus(out["status"]).value
    return out


@limiter.limit("60/minute")
@router.post("/livestock", response_model=LivestockResponse, status_code=201)
def create_livestock(
    request: Request,
    body: LivestockCreate,
    current_user: User = Depends(get_current_user),
) -> LivestockResponse:
    store: HerdStore = request.app.state.herd
    _check_farm(store, body.farm_id, current_user.id)
    fields = _to_storage(body.model_dump())
    livestock_id = store.create_livestock(Livestock(user_id=current_user.id, **fields))
    return LivestockResponse.model_validate(store.get_livestock(livestock_id, current_user.id))


@router.get("/livestock", response_model=list[LivestockResponse])
def list_livestock(
    request: Request,
    farm_id: Optional[int] = None,
    status: Optional[LivestockStatus] = Query(default=None),
    species: Optional[str] = Query(default=None, max_length=100),
    current_user: User = Depends(get_current_user),
) -> list[LivestockResponse]:
    store: HerdStore = request.app.state.herd
    animals = store.list_livestock(
        current_user.id,
        farm_id=farm_id,
        status=status.value if status is not None else None,
        species=species,
    )
    return [LivestockResponse.model_validate(a) for a in animals]


@router.get("/livestock/{livestock_id}", response_model=LivestockResponse)
def get_livestock(
    request: Request,
    livestock_id: int,
    current_user: User = Depends(get_current_user),
) -> LivestockResponse:
    store: HerdStore = request.app.state.herd
    return LivestockResponse.model_validate(owned_livestock_or_404(store, livestock_id, current_user.id))


@router.patch("/livestock/{livestock_id}", response_model=LivestockResponse)
def update_livestock(
    request: Request,
    livestock_id: int,
    body: LivestockUpdate,
    current_user: User = Depends(get_current_user),
) -> LivestockResponse:
    """Write the fields present in the body; an explicit null clears an optional field."""
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    updates = _to_storage(body.model_dump(exclude_unset=True))
    if not updates:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_changes", message="No fields to update.").model_dump(),
        )
    _check_farm(store, updates.get("farm_id"), current_user.id)
    store.update_livestock(livestock_id, current_user.id, **updates)
    return LivestockResponse.model_validate(store.get_livestock(livestock_id, current_user.id))


@router.delete("/livestock/{livestock_id}", status_code=204)
def delete_livestock(
    request: Request,
    livestock_id: int,
    current_user: User = Depends(get_current_user),
) -> Response:
    store: HerdStore = request.app.state.herd
    if not store.delete_livestock(livestock_id, current_user.id):
        raise not_found("livestock_not_found", "Livestock not found or you do not have access.")
    return Response(status_code=204)


@router.get("/livestock/{livestock_id}/detail", response_model=LivestockDetailResponse)
def get_livestock_detail(
    request: Request,
    livestock_id: int,
    current_user: User = Depends(get_current_user),
) -> LivestockDetailResponse:
    """Return the animal with its latest sensor reading and anomaly record (either may be null)."""
    store: HerdStore = request.app.state.herd
    detail = store.sensor_anomaly_detail(livestock_id, current_user.id)
    if detail is None:
        raise not_found("livestock_not_found", "Livestock not found or you do not have access.")
    return LivestockDetailResponse.model_validate(detail)
