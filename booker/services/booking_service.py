"""
Booking service for availability checks and court reservations.

Thin application layer between the HTTP routes and the configured portal
provider. The provider is chosen once at startup (real or mock) and injected
via set_portal_provider().
"""

import logging

from booker.models.schemas import BookingRequest, Preferences
from booker.providers.base import BookingResult, PortalProvider, ScanResult

logger = logging.getLogger(__name__)


class BookingService:
    """
    Runs availability checks and bookings through the portal provider.

    Attributes:
        _portal_provider: Provider that drives the reservation portal.
    """

    def __init__(self) -> None:
        self._portal_provider: PortalProvider | None = None

    def set_portal_provider(self, provider: PortalProvider) -> None:
        """Set the portal provider used for checks and bookings."""
        self._portal_provider = provider

    @property
    def provider(self) -> PortalProvider:
        if self._portal_provider is None:
            raise RuntimeError("Portal provider not configured")
        return self._portal_provider

    async def check_now(self, preferences: Preferences) -> ScanResult:
        """Scan the portal once for slots matching the preferences."""
        logger.info(f"Availability check requested: {preferences.model_dump(exclude_none=True)}")
        result = await self.provider.check_availability(preferences)
        if result.degraded:
            logger.warning(f"Availability check degraded: {result.reason}")
        else:
            logger.info(f"Availability check found {len(result.slots)} slots")
        return result

    async def book(self, request: BookingRequest) -> BookingResult:
        """Attempt to reserve the requested slot."""
        logger.info(
            f"Booking requested: {request.time_24h} for {request.duration_hours}h, "
            f"{request.num_people} people at {request.facility_url}"
        )
        result = await self.provider.book_slot(request)
        if result.success:
            logger.info(f"Booking succeeded: {result.message}")
        else:
            logger.error(f"Booking failed: {result.message}")
        return result


booking_service = BookingService()
