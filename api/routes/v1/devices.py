"""
api/routes/v1/devices.py -- Sensor device bindings and IoT Hub credentials.

Routes:
  POST   /livestock/{livestock_id}/devices              -- bind a device to an animal
  GET    /livestock/{livestock_id}/devices              -- list bound devices
  DELETE /livestock/{livestock_id}/devices/{device_id}  -- unbind
  POST   /devices/sas-token                             -- mint a device SAS token

The primary key sent to /devices/sas-token is used once to sign the token
and is never stored or logged.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import DeviceBind, DeviceResponse, ErrorDetail, SasTokenRequest, SasTokenResponse
from api.routes.v1.common import not_found, owned_livestock_or_404
from auth.dependencies import get_current_user
from auth.models import User
from auth.sas import generate_sas_token
from core.config import get_settings
from herd.store import HerdStore

router = APIRouter(dependencies=[Depends(get_current_user)])

logger = logging.getLogger("herdwatch.api.devices")


@router.post("/livestock/{livestock_id}/devices", response_model=DeviceResponse, status_code=201)
def bind_device(
    request: Request,
    livestock_id: int,
    body: DeviceBind,
    current_user: User = Depends(get_current_user),
) -> DeviceResponse:
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    try:
        device = store.bind_device(livestock_id, body.device_id)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail=ErrorDetail(code="device_already_bound", message="Device is already bound to this livestock.").model_dump(),
        ) from exc
    logger.info("Bound device %d to livestock %d", body.device_id, livestock_id)
    return DeviceResponse.model_validate(device)


@router.get("/livestock/{livestock_id}/devices", response_model=list[DeviceResponse])
def list_devices(
    request: Request,
    livestock_id: int,
    current_user: User = Depends(get_current_user),
) -> list[DeviceResponse]:
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    return [DeviceResponse.model_validate(d) for d in store.list_devices(livestock_id)]


@router.delete("/livestock/{livestock_id}/devices/{device_id}", status_code=204)
def unbind_device(
    request: Request,
    livestock_id: int,
    device_id: int,
    current_user: User = Depends(get_current_user),
) -> Response:
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, livestock_id, current_user.id)
    if not store.unbind_device(livestock_id, device_id):
        raise not_found("device_not_found", "Device is not bound to this livestock.")
    return Response(status_code=204)


@limiter.limit("30/minute")
@router.post("/devices/sas-token", response_model=SasTokenResponse)
def create_sas_token(request: Request, body: SasTokenRequest) -> SasTokenResponse:
    """Return a shared access signature a device can use to connect to IoT Hub.

    400 invalid_key if primary_key is not base64.
    """
    ttl = get_settings().sas_token_ttl_seconds
    try:
        token = generate_sas_token(f"{body.hostname}/devices/{body.device_id}", body.primary_key, expiry=ttl)
    except ValueError as exc:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_key", message="primary_key must be base64-encoded.").model_dump(),
        ) from exc
    return SasTokenResponse(sas_token=token, expires_in=ttl)
