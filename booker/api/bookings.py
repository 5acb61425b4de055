from dataclasses import asdict

from fastapi import APIRouter, Depends

from booker.api.auth import require_bearer
from booker.models.schemas import BookingRequest, BookingResponse
from booker.services.booking_service import booking_service

router = APIRouter(tags=["bookings"])


@router.post("/book", response_model=BookingResponse)
async def book(
    request: BookingRequest,
    _: None = Depends(require_bearer),
) -> BookingResponse:
    """Reserve a slot previously returned by /check_now."""
    result = await booking_service.book(request)
    return BookingResponse.model_validate(asdict(result))
