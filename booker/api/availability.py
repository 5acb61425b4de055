from dataclasses import asdict

from fastapi import APIRouter, Depends

from booker.api.auth import require_bearer
from booker.models.schemas import CheckNowRequest, CheckNowResponse, SlotResponse
from booker.services.booking_service import booking_service

router = APIRouter(tags=["availability"])


@router.post("/check_now", response_model=CheckNowResponse)
async def check_now(
    request: CheckNowRequest | None = None,
    _: None = Depends(require_bearer),
) -> CheckNowResponse:
    """
    Scan the portal once and return matching slots.

    ``degraded`` is true when the single slot returned is the placeholder
    rather than real portal data; ``reason`` then says why.
    """
    preferences = (request or CheckNowRequest()).preferences
    result = await booking_service.check_now(preferences)
    return CheckNowResponse(
        slots=[SlotResponse(**asdict(slot)) for slot in result.slots],
        degraded=result.degraded,
        reason=result.reason,
    )
