"""
Availability scanner for the portal's resource list.

Starting from an authenticated session on the landing page, the scanner opens
each court's schedule in turn, reads its bookable markers and returns the
slots that pass the caller's preferences. The page is a single mutable
resource, so courts are visited strictly one after another and every control
is re-located after navigating back to the list.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from selenium.common.exceptions import TimeoutException, WebDriverException

from booker.config import PortalConfig
from booker.models.schemas import Preferences
from booker.providers.base import Slot
from booker.providers.dom_actions import js_click
from booker.providers.locators import (
    LocatorChain,
    affordance_chain,
    css_chain,
    find_css,
    is_visible,
    iter_ancestors,
)
from booker.providers.portal_dom_schema import DOM, PortalDOMSchema, ScheduleSelectors
from booker.providers.time_utils import (
    duration_minutes,
    parse_time_range,
    passes_preferences,
    portal_today,
    sort_slots,
)
from booker.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)

RESOURCE_KEY_ATTRIBUTES = ("href", "data-id", "data-facility-id", "data-resource-id", "aria-label")


def is_actionable(marker: Any, schedule: ScheduleSelectors) -> bool:
    """False when class names, style or attributes say the marker cannot be clicked."""
    classes = (marker.get_attribute("class") or "").lower()
    if any(fragment in classes for fragment in schedule.disabled_class_fragments):
        return False
    if marker.get_attribute("disabled") is not None:
        return False
    if (marker.get_attribute("aria-disabled") or "").lower() == "true":
        return False
    opacity = marker.value_of_css_property("opacity")
    try:
        if opacity and float(opacity) == 0:
            return False
    except ValueError:
        pass
    if (marker.value_of_css_property("pointer-events") or "").lower() == "none":
        return False
    return True


def is_bookable_marker(marker: Any, schedule: ScheduleSelectors) -> bool:
    """Visible, labelled exactly with the bookable phrase, and actionable."""
    if not is_visible(marker):
        return False
    if marker.text.strip().lower() != schedule.bookable_phrase.lower():
        return False
    return is_actionable(marker, schedule)


def marker_range_text(marker: Any, schedule: ScheduleSelectors) -> str:
    """Time-range label from the range attributes in order, else the marker text."""
    for attribute in schedule.range_attributes:
        value = (marker.get_attribute(attribute) or "").strip()
        if value:
            return value
    return marker.text.strip()


@dataclass
class ScanOutcome:
    slots: list[Slot] = field(default_factory=list)
    resources_found: int = 0
    resources_scanned: int = 0
    ended_early: bool = False
    reason: str | None = None


class AvailabilityScanner:
    """Enumerates resources on the landing page and extracts bookable slots."""

    def __init__(
        self,
        config: PortalConfig,
        dom: PortalDOMSchema = DOM,
        waits: WaitStrategy | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.config = config
        self.dom = dom
        self.waits = waits or WaitStrategy(config)
        self.today = today or (lambda: portal_today(config.timezone))
        self.choose_chain: LocatorChain = affordance_chain(
            "choose resource",
            dom.RESOURCE_LIST.choose_affordances,
            dom.RESOURCE_LIST.choose_names,
        )
        self.detail_heading_chain = css_chain("resource heading", dom.SCHEDULE.detail_headings)

    def discover_resources(self, driver: Any) -> list[Any]:
        """
        Find every "choose" control, one per physical resource.

        Presentation variants (a desktop-only copy of the same button) share a
        link target or label and are collapsed into the first visible one.
        The list is capped at max_resources.
        """
        unique: list[Any] = []
        seen: set[str] = set()
        for element in self.choose_chain.all_visible(driver):
            key = self._resource_key(element)
            if key is not None:
                if key in seen:
                    logger.debug(f"SCAN: Skipping duplicate resource control '{key}'")
                    continue
                seen.add(key)
            unique.append(element)
        return unique[: self.config.max_resources]

    @staticmethod
    def _resource_key(element: Any) -> str | None:
        for attribute in RESOURCE_KEY_ATTRIBUTES:
            value = element.get_attribute(attribute)
            if value and value.strip():
                return f"{attribute}={value.strip()}"
        return None

    def scan(self, driver: Any, preferences: Preferences, landing_url: str) -> ScanOutcome:
        """
        Visit each resource and collect slots that pass the preferences.

        A failure to get back to the landing page ends the enumeration early;
        whatever was collected so far is still returned.
        """
        today = self.today()
        candidates = self.discover_resources(driver)
        outcome = ScanOutcome(resources_found=len(candidates))
        logger.info(f"SCAN: Found {len(candidates)} resources at {driver.current_url}")

        if not candidates:
            logger.warning("SCAN: No resource controls found on the landing page")
            return outcome

        collected: list[Slot] = []
        for index in range(outcome.resources_found):
            if index > 0:
                # Navigating away invalidated the previous element references
                candidates = self.discover_resources(driver)
                if index >= len(candidates):
                    outcome.ended_early = True
                    outcome.reason = (
                        f"Resource list shrank to {len(candidates)} entries after "
                        f"scanning {index} resources"
                    )
                    logger.warning(f"SCAN: {outcome.reason}")
                    break

            control = candidates[index]
            nearby_label = self._nearby_heading(control)

            try:
                self._open_resource(driver, control)
                label = self._resource_label(driver, nearby_label, index)
                deep_link = driver.current_url
                found = self.extract_slots(driver, label, deep_link, today)
                kept = [s for s in found if passes_preferences(s, preferences, today)]
                logger.info(
                    f"SCAN: {label}: {len(found)} bookable markers, "
                    f"{len(kept)} match preferences"
                )
                collected.extend(kept)
                outcome.resources_scanned += 1
            except WebDriverException as e:
                logger.warning(f"SCAN: Could not scan resource {index + 1}: {e}")

            is_last = index == outcome.resources_found - 1
            if not is_last and not self._return_to_list(driver, landing_url):
                outcome.ended_early = True
                outcome.reason = f"Could not return to the resource list after resource {index + 1}"
                logger.error(f"SCAN: {outcome.reason}")
                break

        outcome.slots = sort_slots(collected)
        return outcome

    def _open_resource(self, driver: Any, control: Any) -> None:
        url_before = driver.current_url
        js_click(driver, control)
        if not self.waits.wait_for_url_change(driver, url_before, self.config.step_timeout_seconds):
            logger.debug("SCAN: Resource click did not change the URL, reading page in place")
        try:
            self.waits.wait_for_page_settled(driver, self.config.step_timeout_seconds)
        except TimeoutException:
            logger.debug("SCAN: Schedule page still busy, parsing what is rendered")

    def _nearby_heading(self, control: Any) -> str | None:
        """Heading text from the card/row that holds a choose control."""
        levels = self.dom.RESOURCE_LIST.max_heading_ancestor_levels
        try:
            for ancestor in iter_ancestors(control, levels):
                for heading in find_css(ancestor, self.dom.RESOURCE_LIST.nearby_headings):
                    text = heading.text.strip()
                    if text:
                        return text
        except WebDriverException as e:
            logger.debug(f"SCAN: Could not read heading near control: {e}")
        return None

    def _resource_label(self, driver: Any, nearby_label: str | None, index: int) -> str:
        heading = self.detail_heading_chain.find(driver)
        if heading is not None:
            text = heading.text.strip()
            if text:
                return text
        if nearby_label:
            return nearby_label
        logger.debug(f"SCAN: No heading for resource {index + 1}, using synthetic label")
        return f"Resource {index + 1}"

    def _return_to_list(self, driver: Any, landing_url: str) -> bool:
        try:
            driver.get(landing_url)
        except WebDriverException as e:
            logger.error(f"SCAN: Navigation back to {landing_url} failed: {e}")
            return False
        timeout = self.config.step_timeout_seconds
        match = self.waits.wait_for_chain(driver, self.choose_chain, timeout)
        return match is not None

    def extract_slots(
        self, driver: Any, label: str, deep_link: str | None, today: date
    ) -> list[Slot]:
        """Parse every actionable bookable marker on the current schedule view."""
        slots = []
        for marker in find_css(driver, self.dom.SCHEDULE.bookable_markers):
            try:
                slot = self._parse_marker(marker, label, deep_link, today)
            except WebDriverException as e:
                logger.debug(f"SCAN: Could not read marker: {e}")
                continue
            if slot is not None:
                slots.append(slot)
        return slots

    def _parse_marker(
        self, marker: Any, label: str, deep_link: str | None, today: date
    ) -> Slot | None:
        if not is_bookable_marker(marker, self.dom.SCHEDULE):
            return None

        range_text = marker_range_text(marker, self.dom.SCHEDULE)
        parsed = parse_time_range(range_text)
        if parsed is None:
            logger.debug(f"SCAN: Marker without a usable time range: '{range_text}'")
            return None

        start, end = parsed
        return Slot(
            date_iso=self._resolve_date(marker) or today.isoformat(),
            time_24h=start,
            minutes=duration_minutes(start, end),
            location=label,
            deep_link=deep_link,
        )

    def _resolve_date(self, marker: Any) -> str | None:
        """ISO date from a data-date annotation on the marker or an ancestor."""
        attribute = self.dom.SCHEDULE.date_attribute
        levels = self.dom.SCHEDULE.max_date_ancestor_levels
        for element in [marker, *iter_ancestors(marker, levels)]:
            value = (element.get_attribute(attribute) or "").strip()
            if not value:
                continue
            try:
                return date.fromisoformat(value[:10]).isoformat()
            except ValueError:
                logger.debug(f"SCAN: Ignoring malformed {attribute}='{value}'")
        return None
