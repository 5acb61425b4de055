"""
Tests for BookingService in booker/services/booking_service.py.

These tests verify that the service delegates to the configured portal
provider and refuses to run without one.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from booker.models.schemas import BookingRequest, Preferences
from booker.providers.base import BookedSlot, BookingResult, ScanResult, Slot
from booker.services.booking_service import BookingService


@pytest.fixture
def booking_service() -> BookingService:
    """Create a fresh BookingService instance."""
    return BookingService()


@pytest.fixture
def mock_provider() -> MagicMock:
    """Create a mock portal provider."""
    provider = MagicMock()
    provider.check_availability = AsyncMock(
        return_value=ScanResult(
            slots=[
                Slot(
                    date_iso="2026-10-20",
                    time_24h="19:00",
                    minutes=60,
                    location="UBC Tennis Centre - Indoor Court 1",
                    deep_link="https://portal.test/court/1",
                )
            ],
            resources_scanned=1,
        )
    )
    provider.book_slot = AsyncMock(
        return_value=BookingResult.succeeded(
            message="Booked 7:00 PM for 60 minutes at UBC Tennis Centre - Indoor Court 1",
            booked_slot=BookedSlot(
                time="19:00", duration=60, location="UBC Tennis Centre - Indoor Court 1"
            ),
            confirmation_number="UBC-1",
        )
    )
    return provider


class TestProviderConfiguration:
    """Tests for provider wiring."""

    def test_provider_required(self, booking_service: BookingService) -> None:
        """Test that using the service without a provider raises."""
        with pytest.raises(RuntimeError, match="not configured"):
            _ = booking_service.provider

    def test_set_portal_provider(
        self, booking_service: BookingService, mock_provider: MagicMock
    ) -> None:
        """Test that the configured provider is returned."""
        booking_service.set_portal_provider(mock_provider)
        assert booking_service.provider is mock_provider


class TestCheckNow:
    """Tests for BookingService.check_now."""

    @pytest.mark.asyncio
    async def test_delegates_to_provider(
        self, booking_service: BookingService, mock_provider: MagicMock
    ) -> None:
        """Test that preferences are passed through unchanged."""
        booking_service.set_portal_provider(mock_provider)
        preferences = Preferences(start_hour=18, indoor_only=True)

        result = await booking_service.check_now(preferences)

        mock_provider.check_availability.assert_awaited_once_with(preferences)
        assert len(result.slots) == 1
        assert result.degraded is False

    @pytest.mark.asyncio
    async def test_degraded_result_is_returned_as_is(
        self, booking_service: BookingService, mock_provider: MagicMock
    ) -> None:
        """Test that a degraded scan reaches the caller with its reason."""
        mock_provider.check_availability.return_value = ScanResult(
            slots=[], degraded=True, reason="No resources found on the landing page"
        )
        booking_service.set_portal_provider(mock_provider)

        result = await booking_service.check_now(Preferences())

        assert result.degraded is True
        assert result.reason == "No resources found on the landing page"


class TestBook:
    """Tests for BookingService.book."""

    @pytest.mark.asyncio
    async def test_successful_booking(
        self, booking_service: BookingService, mock_provider: MagicMock
    ) -> None:
        """Test that the provider's result is returned."""
        booking_service.set_portal_provider(mock_provider)
        request = BookingRequest(facility_url="https://portal.test/court/1", time_24h="19:00")

        result = await booking_service.book(request)

        mock_provider.book_slot.assert_awaited_once_with(request)
        assert result.success is True
        assert result.confirmation_number == "UBC-1"

    @pytest.mark.asyncio
    async def test_failed_booking(
        self, booking_service: BookingService, mock_provider: MagicMock
    ) -> None:
        """Test that a failed booking is passed back, not raised."""
        mock_provider.book_slot.return_value = BookingResult.failed(
            "Could not find available slot at 7:00 PM"
        )
        booking_service.set_portal_provider(mock_provider)
        request = BookingRequest(facility_url="https://portal.test/court/1", time_24h="19:00")

        result = await booking_service.book(request)

        assert result.success is False
        assert result.booked_slot is None
        assert result.message == "Could not find available slot at 7:00 PM"
