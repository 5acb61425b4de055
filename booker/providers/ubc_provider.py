"""
UBC Recreation tennis-court provider.

Every public method runs its blocking Selenium work in a worker thread via
asyncio.to_thread() and owns a dedicated browser session for the length of
that call, so concurrent operations never share cookies or pages.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from selenium.common.exceptions import TimeoutException, WebDriverException

from booker.config import PortalConfig
from booker.models.schemas import BookingRequest, Preferences
from booker.providers.auth_flow import AuthenticationFlow
from booker.providers.base import BookedSlot, BookingResult, PortalProvider, ScanResult, Slot
from booker.providers.booking_pipeline import BookingPipeline
from booker.providers.errors import PortalError
from booker.providers.scanner import AvailabilityScanner, ScanOutcome
from booker.providers.session import BrowserSession, DriverFactory, create_driver, with_session
from booker.providers.time_utils import (
    passes_preferences,
    placeholder_slot,
    portal_today,
    sort_slots,
)
from booker.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)


class UBCTennisProvider(PortalProvider):
    """
    Provider for the UBC Recreation facility-booking portal.

    Usage:
        provider = UBCTennisProvider(settings.portal_config())
        result = await provider.check_availability(Preferences(start_hour=18))
        if not result.degraded:
            booking = await provider.book_slot(BookingRequest(...))
    """

    def __init__(
        self,
        config: PortalConfig,
        driver_factory: DriverFactory = create_driver,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.config = config
        self.driver_factory = driver_factory
        self.today = today or (lambda: portal_today(config.timezone))
        self.waits = WaitStrategy(config)

    async def check_availability(self, preferences: Preferences) -> ScanResult:
        """
        Scan every court for bookable slots that match the preferences.

        Never raises: an empty or failed scan yields the single placeholder slot
        with ``degraded`` set and a reason.
        """
        return await asyncio.to_thread(self._check_availability_sync, preferences)

    def _check_availability_sync(self, preferences: Preferences) -> ScanResult:
        landing_url = self.config.landing_url
        logger.info(f"SCAN: === STARTING AVAILABILITY CHECK === {landing_url}")

        def operation(session: BrowserSession) -> ScanOutcome:
            driver = session.driver
            driver.get(landing_url)
            self._settle(driver)
            AuthenticationFlow(self.config, waits=self.waits).ensure_authenticated(
                driver, landing_url
            )
            scanner = AvailabilityScanner(self.config, waits=self.waits, today=self.today)
            return scanner.scan(driver, preferences, landing_url)

        try:
            outcome = with_session(self.config, operation, self.driver_factory)
        except PortalError as e:
            logger.error(f"SCAN: Portal workflow failed: {e}")
            return self._degraded(f"Portal workflow failed: {e}")
        except WebDriverException as e:
            logger.error(f"SCAN: Browser error during scan: {e}")
            return self._degraded(f"Browser error: {e}")
        except Exception as e:
            logger.exception(f"SCAN: Unexpected error during scan: {e}")
            return self._degraded(f"Unexpected error: {e}")

        if not outcome.slots:
            if outcome.reason:
                reason = outcome.reason
            elif outcome.resources_found == 0:
                reason = "No resources found on the landing page"
            else:
                reason = "No bookable slots matched the preferences"
            return self._degraded(reason, outcome.resources_scanned)

        logger.info(
            f"SCAN: === CHECK COMPLETE === {len(outcome.slots)} slots from "
            f"{outcome.resources_scanned} resources"
        )
        return ScanResult(
            slots=outcome.slots,
            reason=outcome.reason,
            resources_scanned=outcome.resources_scanned,
        )

    def _degraded(self, reason: str, resources_scanned: int = 0) -> ScanResult:
        logger.warning(f"SCAN: Returning placeholder slot ({reason})")
        return ScanResult(
            slots=[placeholder_slot(self.today())],
            degraded=True,
            reason=reason,
            resources_scanned=resources_scanned,
        )

    def _settle(self, driver: Any) -> None:
        try:
            self.waits.wait_for_page_settled(driver, self.config.step_timeout_seconds)
        except TimeoutException:
            logger.debug("Landing page still busy, continuing")

    async def book_slot(self, request: BookingRequest) -> BookingResult:
        """
        Run the reservation workflow for one slot.

        Never raises; every failure comes back as a failed BookingResult
        with a diagnostic message.
        """
        return await asyncio.to_thread(self._book_slot_sync, request)

    def _book_slot_sync(self, request: BookingRequest) -> BookingResult:
        def operation(session: BrowserSession) -> BookingResult:
            driver = session.driver
            driver.get(request.facility_url)
            self._settle(driver)
            auth = AuthenticationFlow(self.config, waits=self.waits)
            try:
                auth.ensure_authenticated(driver, request.facility_url)
            except PortalError as e:
                logger.error(f"BOOKING: Login failed: {e}")
                return BookingResult.failed(f"Failed to log in to the portal: {e}")
            return BookingPipeline(self.config, auth=auth, waits=self.waits).run(driver, request)

        try:
            return with_session(self.config, operation, self.driver_factory)
        except WebDriverException as e:
            logger.error(f"BOOKING: Browser error: {e}")
            return BookingResult.failed(f"Booking error: {e}")
        except Exception as e:
            logger.exception(f"BOOKING: Unexpected error: {e}")
            return BookingResult.failed(f"Booking error: {e}")

    async def close(self) -> None:
        """Nothing to release: each operation tears down its own browser."""
        pass


class MockPortalProvider(PortalProvider):
    """Mock provider for running the service without a browser or credentials."""

    LOCATIONS = (
        "UBC Tennis Centre - Indoor Court 1",
        "UBC Tennis Centre - Indoor Court 2",
        "Thunderbird Park - Outdoor Court 5",
    )
    START_TIMES = ("18:00", "19:00", "20:00")

    def __init__(self, today: Callable[[], date] | None = None) -> None:
        self.today = today or date.today

    async def check_availability(self, preferences: Preferences) -> ScanResult:
        today = self.today()
        slots = []
        for index, location in enumerate(self.LOCATIONS, start=1):
            for start in self.START_TIMES:
                slot = Slot(
                    date_iso=today.isoformat(),
                    time_24h=start,
                    minutes=60,
                    location=location,
                    deep_link=f"https://mock.booker.invalid/facility/{index}",
                )
                if passes_preferences(slot, preferences, today):
                    slots.append(slot)

        if not slots:
            return ScanResult(
                slots=[placeholder_slot(today)],
                degraded=True,
                reason="No bookable slots matched the preferences",
                resources_scanned=len(self.LOCATIONS),
            )
        return ScanResult(slots=sort_slots(slots), resources_scanned=len(self.LOCATIONS))

    async def book_slot(self, request: BookingRequest) -> BookingResult:
        booked_slot = BookedSlot(
            time=request.time_24h,
            duration=request.duration_hours * 60,
            location=self.LOCATIONS[0],
        )
        return BookingResult.succeeded(
            message=f"Mock booking at {request.time_24h}",
            booked_slot=booked_slot,
            confirmation_number=f"MOCK-{datetime.now().strftime('%Y%m%d%H%M%S')}",
        )

    async def close(self) -> None:
        pass
