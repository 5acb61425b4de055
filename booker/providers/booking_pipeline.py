"""
Multi-step reservation workflow for a single court slot.

The pipeline is a fixed sequence of steps. Each step owns a timeout budget and
the failure kind it ends with, and the run loop turns any step failure into a
failed BookingResult. Nothing is retried; the only recovery is the inline
re-authentication step when the portal asks for a login mid-booking.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urljoin

from selenium.common.exceptions import (
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.support.ui import WebDriverWait

from booker.config import PortalConfig
from booker.models.schemas import BookingRequest
from booker.providers.auth_flow import AuthenticationFlow, query_param, same_page
from booker.providers.base import BookedSlot, BookingResult
from booker.providers.dom_actions import js_click, page_text, remove_element, set_widget_value
from booker.providers.errors import (
    AuthenticationTimeout,
    PortalError,
    PortalValidationError,
    SelectorNotFound,
)
from booker.providers.locators import (
    affordance_chain,
    css_chain,
    find_css,
    is_enabled,
    is_visible,
)
from booker.providers.portal_dom_schema import DOM, PortalDOMSchema
from booker.providers.scanner import is_bookable_marker, marker_range_text
from booker.providers.time_utils import range_starts_at, to_12h_label
from booker.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)


class BookingStep(str, Enum):
    SELECT_SLOT = "select_slot"
    CONFIRM_RESERVATION = "confirm_reservation"
    REAUTHENTICATE = "reauthenticate"
    SELECT_ATTENDEE = "select_attendee"
    PAYMENT_AND_CONFIRM = "payment_and_confirm"


@dataclass(frozen=True)
class StepPlan:
    step: BookingStep
    timeout: float
    failure: type[PortalError]


@dataclass
class BookingContext:
    """State carried from one step to the next during a single run."""

    request: BookingRequest
    slot_label: str
    location: str | None = None
    confirmation_number: str | None = None
    completed: list[BookingStep] = field(default_factory=list)


def capture_diagnostics(driver: Any, context: str) -> None:
    """Save a screenshot and the page source to /tmp for a failed step."""
    try:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        screenshot_path = f"/tmp/booker_debug_{context}_{timestamp}.png"
        html_path = f"/tmp/booker_debug_{context}_{timestamp}.html"

        driver.save_screenshot(screenshot_path)
        logger.info(f"BOOKING: Saved debug screenshot to {screenshot_path}")

        with open(html_path, "w", encoding="utf-8") as f:
            f.write(driver.page_source)
        logger.info(f"BOOKING: Saved debug HTML to {html_path}")

    except (WebDriverException, OSError) as e:
        logger.warning(f"BOOKING: Failed to capture diagnostic info: {e}")


class BookingPipeline:
    """
    Drives slot select -> reserve -> (re-auth) -> attendee -> payment.

    Expects an authenticated session; the facility page is opened by the
    first step if the driver is not already on it.

    Usage:
        pipeline = BookingPipeline(config, auth=auth_flow)
        result = pipeline.run(driver, request)
    """

    def __init__(
        self,
        config: PortalConfig,
        auth: AuthenticationFlow | None = None,
        dom: PortalDOMSchema = DOM,
        waits: WaitStrategy | None = None,
    ) -> None:
        self.config = config
        self.dom = dom
        self.waits = waits or WaitStrategy(config)
        self.auth = auth or AuthenticationFlow(config, dom, self.waits)

        reservation = dom.RESERVATION
        attendees = dom.ATTENDEES
        payment = dom.PAYMENT
        self.reserve_chain = affordance_chain(
            "reserve", reservation.reserve_affordances, reservation.reserve_names
        )
        self.attendee_rows_chain = css_chain("attendee rows", attendees.rows)
        self.next_chain = affordance_chain("next", attendees.next_affordances, attendees.next_names)
        self.stored_payment_chain = css_chain("stored payment", payment.stored_payment_options)
        self.submit_order_chain = affordance_chain(
            "submit order", payment.submit_order_affordances, payment.submit_order_names
        )
        self.detail_heading_chain = css_chain("facility heading", dom.SCHEDULE.detail_headings)
        self.login_boundary = re.compile(dom.CREDENTIALS.login_boundary_pattern, re.IGNORECASE)
        self.confirmation_patterns = [
            re.compile(pattern, re.IGNORECASE) for pattern in payment.confirmation_patterns
        ]

    def step_plan(self) -> tuple[StepPlan, ...]:
        step_timeout = self.config.step_timeout_seconds
        return (
            StepPlan(BookingStep.SELECT_SLOT, step_timeout, SelectorNotFound),
            StepPlan(BookingStep.CONFIRM_RESERVATION, step_timeout, SelectorNotFound),
            StepPlan(
                BookingStep.REAUTHENTICATE, self.config.login_timeout_seconds, AuthenticationTimeout
            ),
            StepPlan(BookingStep.SELECT_ATTENDEE, step_timeout, SelectorNotFound),
            StepPlan(BookingStep.PAYMENT_AND_CONFIRM, step_timeout, PortalValidationError),
        )

    def _handlers(self) -> dict[BookingStep, Callable[[Any, BookingContext, float], None]]:
        return {
            BookingStep.SELECT_SLOT: self._select_slot,
            BookingStep.CONFIRM_RESERVATION: self._confirm_reservation,
            BookingStep.REAUTHENTICATE: self._reauthenticate,
            BookingStep.SELECT_ATTENDEE: self._select_attendee,
            BookingStep.PAYMENT_AND_CONFIRM: self._payment_and_confirm,
        }

    def run(self, driver: Any, request: BookingRequest) -> BookingResult:
        """Run every step in order and return the terminal result."""
        context = BookingContext(request=request, slot_label=to_12h_label(request.time_24h))
        plan = self.step_plan()
        handlers = self._handlers()

        logger.info(
            f"BOOKING: === STARTING BOOKING === time={request.time_24h} "
            f"({context.slot_label}), duration={request.duration_hours}h, "
            f"people={request.num_people}, facility={request.facility_url}"
        )
        for number, stage in enumerate(plan, start=1):
            logger.info(f"BOOKING: Step {number}/{len(plan)} - {stage.step.value}")
            try:
                handlers[stage.step](driver, context, stage.timeout)
            except PortalError as e:
                return self._fail(driver, stage, str(e))
            except TimeoutException as e:
                timed_out = stage.failure(f"{stage.step.value} timed out after {stage.timeout}s")
                logger.debug(f"BOOKING: Timeout detail: {e}")
                return self._fail(driver, stage, str(timed_out))
            except WebDriverException as e:
                return self._fail(driver, stage, f"Booking error: {e}")
            context.completed.append(stage.step)

        duration = request.duration_hours * 60
        location = context.location or request.facility_url
        booked_slot = BookedSlot(time=request.time_24h, duration=duration, location=location)
        logger.info(
            f"BOOKING: === BOOKING COMPLETE === {location} at {request.time_24h}, "
            f"confirmation={context.confirmation_number}"
        )
        return BookingResult.succeeded(
            message=f"Booked {context.slot_label} for {duration} minutes at {location}",
            booked_slot=booked_slot,
            confirmation_number=context.confirmation_number,
        )

    def _fail(self, driver: Any, stage: StepPlan, message: str) -> BookingResult:
        try:
            url = driver.current_url
        except WebDriverException:
            url = "<unavailable>"
        logger.error(f"BOOKING: {stage.step.value} failed at {url}: {message}")
        if self.config.capture_diagnostics:
            capture_diagnostics(driver, stage.step.value)
        return BookingResult.failed(message)

    def _settle(self, driver: Any, timeout: float) -> None:
        try:
            self.waits.wait_for_page_settled(driver, timeout)
        except TimeoutException:
            logger.debug(f"BOOKING: Page still busy after {timeout}s, continuing")

    def _click_and_follow(self, driver: Any, element: Any, timeout: float) -> None:
        url_before = driver.current_url
        js_click(driver, element)
        self.waits.wait_for_url_change(driver, url_before, timeout)
        self._settle(driver, timeout)

    # Step 1

    def _select_slot(self, driver: Any, context: BookingContext, timeout: float) -> None:
        request = context.request
        if not same_page(driver.current_url, request.facility_url):
            logger.info(f"BOOKING: Opening facility page {request.facility_url}")
            driver.get(request.facility_url)
            self._settle(driver, timeout)

        try:
            marker = WebDriverWait(driver, timeout, poll_frequency=self.waits.poll_interval).until(
                lambda d: self._find_slot_marker(d, request.time_24h) or False
            )
        except TimeoutException as e:
            raise SelectorNotFound(f"Could not find available slot at {context.slot_label}") from e

        heading = self.detail_heading_chain.find(driver)
        if heading is not None and heading.text.strip():
            context.location = heading.text.strip()

        logger.info(f"BOOKING: Selecting slot {context.slot_label} at {context.location}")
        self._click_and_follow(driver, marker, timeout)

    def _find_slot_marker(self, driver: Any, time_24h: str) -> Any | None:
        schedule = self.dom.SCHEDULE
        for marker in find_css(driver, schedule.bookable_markers):
            try:
                if not is_bookable_marker(marker, schedule):
                    continue
                if range_starts_at(marker_range_text(marker, schedule), time_24h):
                    return marker
            except StaleElementReferenceException:
                continue
        return None

    # Step 2

    def _confirm_reservation(self, driver: Any, context: BookingContext, timeout: float) -> None:
        match = self.waits.wait_for_chain(driver, self.reserve_chain, timeout)
        if match is None:
            raise SelectorNotFound("Reserve button not found")

        self._clear_overlays(driver)

        request = context.request
        duration_control = self._first_present(driver, self.dom.RESERVATION.duration_controls)
        if duration_control is not None:
            value = set_widget_value(driver, duration_control, str(request.duration_hours))
            logger.debug(f"BOOKING: Duration control set to {value}")

        count_control = self._first_present(driver, self.dom.RESERVATION.attendee_count_controls)
        if count_control is not None:
            value = set_widget_value(driver, count_control, str(request.num_people))
            logger.debug(f"BOOKING: Attendee count set to {value}")
        else:
            logger.warning("BOOKING: No attendee-count control found, keeping the portal default")

        logger.info(f"BOOKING: Clicking reserve via {match.strategy!r}")
        self._click_and_follow(driver, match.element, timeout)

    def _clear_overlays(self, driver: Any) -> None:
        """Wait briefly for blocking overlays to go away, then remove any that remain."""
        selector = self.dom.RESERVATION.overlays
        if self.waits.wait_for_invisibility(driver, selector, self.config.overlay_timeout_seconds):
            return
        for overlay in find_css(driver, selector):
            if is_visible(overlay):
                logger.info("BOOKING: Removing blocking overlay")
                remove_element(driver, overlay)

    @staticmethod
    def _first_present(driver: Any, selectors: tuple[str, ...]) -> Any | None:
        # Rich widgets often hide the underlying input, so visibility is not required
        for selector in selectors:
            elements = find_css(driver, selector)
            if elements:
                return elements[0]
        return None

    # Step 3

    def _reauthenticate(self, driver: Any, context: BookingContext, timeout: float) -> None:
        current_url = driver.current_url
        if not self.login_boundary.search(current_url):
            logger.debug("BOOKING: No login boundary after reserving")
            return

        logger.info(f"BOOKING: Portal asked for login mid-booking at {current_url}")
        return_url = query_param(current_url, self.dom.CREDENTIALS.return_url_param)
        self.auth.submit_credentials(driver)

        if return_url:
            target = urljoin(f"{self.config.base_url.rstrip('/')}/", return_url)
            logger.info(f"BOOKING: Navigating explicitly to return URL {target}")
            driver.get(target)
            self._settle(driver, timeout)
        else:
            logger.info("BOOKING: No return URL given, following the portal's redirect")

        if self.login_boundary.search(driver.current_url):
            raise AuthenticationTimeout(
                f"Still at a login page after re-authenticating: {driver.current_url}"
            )

    # Step 4

    def _select_attendee(self, driver: Any, context: BookingContext, timeout: float) -> None:
        try:
            rows = WebDriverWait(driver, timeout, poll_frequency=self.waits.poll_interval).until(
                lambda d: self.attendee_rows_chain.all_visible(d) or False
            )
        except TimeoutException as e:
            raise SelectorNotFound("Attendee table not found") from e

        chosen = self._pick_attendee(rows)
        if chosen is None:
            raise SelectorNotFound("No selectable attendee found")

        row, control = chosen
        logger.info(f"BOOKING: Selecting attendee '{' '.join(row.text.split())}'")
        if not control.is_selected():
            js_click(driver, control)

        next_match = self.waits.wait_for_chain(driver, self.next_chain, timeout)
        if next_match is None:
            raise SelectorNotFound("Next button not found on the attendee step")
        self._click_and_follow(driver, next_match.element, timeout)

    def _pick_attendee(self, rows: list[Any]) -> tuple[Any, Any] | None:
        """The row marked as the logged-in user, else the first enabled visible row."""
        attendees = self.dom.ATTENDEES
        fallback = None
        for row in rows:
            controls = find_css(row, attendees.row_input)
            if not controls:
                continue
            control = controls[0]
            is_self = attendees.self_marker.lower() in row.text.lower()
            if not is_visible(row) or not is_enabled(control):
                if is_self:
                    logger.info("BOOKING: Own attendee row is disabled, using another attendee")
                continue
            if is_self:
                return row, control
            if fallback is None:
                fallback = (row, control)
        return fallback

    # Step 5

    def _payment_and_confirm(self, driver: Any, context: BookingContext, timeout: float) -> None:
        stored = self._first_present(driver, self.dom.PAYMENT.stored_payment_options)
        if stored is not None and is_enabled(stored) and not stored.is_selected():
            logger.info("BOOKING: Choosing stored payment method")
            js_click(driver, stored)

        submit = self.waits.wait_for_chain(driver, self.submit_order_chain, timeout)
        if submit is None:
            raise SelectorNotFound("Order submit button not found")
        logger.info(f"BOOKING: Submitting order via {submit.strategy!r}")
        self._click_and_follow(driver, submit.element, timeout)

        try:
            kind, detail = WebDriverWait(
                driver, timeout, poll_frequency=self.waits.poll_interval
            ).until(lambda d: self._classify_result_page(d) or False)
        except TimeoutException as e:
            raise PortalValidationError(
                f"No confirmation or error shown after submitting the order at {driver.current_url}"
            ) from e

        if kind == "error":
            raise PortalValidationError(detail)

        context.confirmation_number = self._extract_confirmation_number(driver)
        logger.info(f"BOOKING: Confirmation page reached ({detail})")

    def _classify_result_page(self, driver: Any) -> tuple[str, str] | None:
        """("error", message) or ("success", phrase); None while undecided."""
        for selector in self.dom.PAYMENT.error_containers:
            for element in find_css(driver, selector):
                text = " ".join(element.text.split())
                if text and is_visible(element):
                    return "error", text

        text = page_text(driver)
        for phrase in self.dom.PAYMENT.success_phrases:
            if phrase in text:
                return "success", phrase
        return None

    def _extract_confirmation_number(self, driver: Any) -> str | None:
        text = page_text(driver, lowercase=False)
        for pattern in self.confirmation_patterns:
            match = pattern.search(text)
            if match:
                return match.group(1)
        logger.debug("BOOKING: No confirmation identifier on the confirmation page")
        return None
