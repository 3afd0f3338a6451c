"""
api/routes/v1/common.py -- Lookups shared by the herd route modules.

Every per-animal route starts the same way: resolve the livestock id against
the caller's own records and stop with 404 if it is missing or foreign. The
same 404 is used for both cases so callers cannot probe other users' ids.
"""

from fastapi import HTTPException

from api.models import ErrorDetail
from herd.models import Livestock
from herd.store import HerdStore


def not_found(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code=code, message=message).model_dump(),
    )


def owned_livestock_or_404(store: HerdStore, livestock_id: int, user_id: int) -> Livestock:
    animal = store.get_livestock(livestock_id, user_id)
    if animal is None:
        raise not_found("livestock_not_found", "Livestock not found or you do not have access.")
    return animal
