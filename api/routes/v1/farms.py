"""
api/routes/v1/farms.py -- Farm CRUD, scoped to the authenticated user.

Routes:
  POST   /farms             -- create farm
  GET    /farms             -- list the caller's farms
  GET    /farms/{farm_id}   -- farm detail
  PATCH  /farms/{farm_id}   -- partial update
  DELETE /farms/{farm_id}   -- delete farm; its livestock are detached, not deleted
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import ErrorDetail, FarmCreate, FarmResponse, FarmUpdate
from api.routes.v1.common import not_found
from auth.dependencies import get_current_user
from auth.models import User
from herd.models import Farm
from herd.store import HerdStore

router = APIRouter(dependencies=[Depends(get_current_user)])

_FARM_NOT_FOUND = ("farm_not_found", "Farm not found or you do not have access.")


@limiter.limit("30/minute")
@router.post("/farms", response_model=FarmResponse, status_code=201)
def create_farm(
    request: Request,
    body: FarmCreate,
    current_user: User = Depends(get_current_user),
) -> FarmResponse:
    store: HerdStore = request.app.state.herd
    farm_id = store.create_farm(
        Farm(
            user_id=current_user.id,
            name=body.name,
            location=body.location,
            address=body.address,
            type=body.type,
        )
    )
    return FarmResponse.model_validate(store.get_farm(farm_id, current_user.id))


@router.get("/farms", response_model=list[FarmResponse])
def list_farms(request: Request, current_user: User = Depends(get_current_user)) -> list[FarmResponse]:
    store: HerdStore = request.app.state.herd
    return [FarmResponse.model_validate(f) for f in store.list_farms(current_user.id)]


@router.get("/farms/{farm_id}", response_model=FarmResponse)
def get_farm(request: Request, farm_id: int, current_user: User = Depends(get_current_user)) -> FarmResponse:
    store: HerdStore = request.app.state.herd
    farm = store.get_farm(farm_id, current_user.id)
    if farm is None:
        raise not_found(*_FARM_NOT_FOUND)
    return FarmResponse.model_validate(farm)


@router.patch("/farms/{farm_id}", response_model=FarmResponse)
def update_farm(
    request: Request,
    farm_id: int,
    body: FarmUpdate,
    current_user: User = Depends(get_current_user),
) -> FarmResponse:
    """Update the fields present in the body. name cannot be cleared."""
    store: HerdStore = request.app.state.herd
    updates = body.model_dump(exclude_unset=True)
    if updates.get("name", "") is None:
        updates.pop("name")
    if not updates:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_changes", message="No fields to update.").model_dump(),
        )
    if not store.update_farm(farm_id, current_user.id, **updates):
        raise not_found(*_FARM_NOT_FOUND)
    return FarmResponse.model_validate(store.get_farm(farm_id, current_user.id))


@router.delete("/farms/{farm_id}", status_code=204)
def delete_farm(request: Request, farm_id: int, current_user: User = Depends(get_current_user)) -> Response:
    store: HerdStore = request.app.state.herd
    if not store.delete_farm(farm_id, current_user.id):
        raise not_found(*_FARM_NOT_FOUND)
    return Response(status_code=204)
