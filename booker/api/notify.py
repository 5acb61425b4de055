import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from booker.api.auth import require_bearer
from booker.models.schemas import NotifyRequest, NotifyResponse
from booker.services.notification_service import (
    MissingRecipient,
    NotificationError,
    NotifierNotConfigured,
    notification_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notify"])


@router.post("/notify", response_model=NotifyResponse)
async def notify(
    request: NotifyRequest,
    _: None = Depends(require_bearer),
) -> NotifyResponse | JSONResponse:
    """
    Send a message through Telegram, SMS or email, whichever is usable first.

    Status codes: 400 when email is the only channel and no recipient is known,
    500 when no channel is configured, 502 when delivery fails.
    """
    try:
        result = await notification_service.notify(request)
    except (MissingRecipient, NotifierNotConfigured) as e:
        logger.warning(f"Notify rejected: {e}")
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})
    except NotificationError as e:
        logger.error(f"Notify error: {e}")
        return JSONResponse(
            status_code=e.status_code,
            content={"error": "Notify failed", "detail": str(e)},
        )

    return NotifyResponse(via=result.via, target=result.target)
