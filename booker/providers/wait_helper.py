"""
Bounded wait strategies for Selenium operations against the portal.

Every wait takes an explicit timeout from PortalConfig so each workflow step
owns its budget. Waits either return a result or raise/return a falsy value;
none of them sleeps for a fixed duration without checking a condition.
"""

import logging
import time as time_module
from typing import Any

from selenium.common.exceptions import (
    NoSuchWindowException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.support.ui import WebDriverWait

from booker.config import PortalConfig
from booker.providers.dom_actions import READY_STATE_SCRIPT, RESOURCE_COUNT_SCRIPT
from booker.providers.locators import LocatorChain, LocatorMatch, find_css, is_visible

logger = logging.getLogger(__name__)


class WaitStrategy:
    """
    Provides condition-based waits tuned by the portal configuration.

    Usage:
        waits = WaitStrategy(config)
        waits.wait_for_page_settled(driver, timeout=config.redirect_timeout_seconds)
        match = waits.wait_for_chain(driver, chain, timeout=config.step_timeout_seconds)
    """

    def __init__(self, config: PortalConfig) -> None:
        self.config = config
        self.poll_interval = config.poll_interval_seconds

    def wait_for_chain(
        self, driver: Any, chain: LocatorChain, timeout: float
    ) -> LocatorMatch | None:
        """Wait until any strategy of the chain finds a visible element."""
        return chain.wait_for(driver, timeout, self.poll_interval)

    def wait_for_url_change(self, driver: Any, previous_url: str, timeout: float) -> bool:
        """
        Wait for the current URL to differ from previous_url.

        Returns:
            True if the URL changed within the timeout, False otherwise.
        """
        try:
            WebDriverWait(driver, timeout, poll_frequency=self.poll_interval).until(
                lambda d: d.current_url != previous_url
            )
            logger.debug(f"URL changed from {previous_url} to {driver.current_url}")
            return True
        except TimeoutException:
            logger.debug(f"URL stayed at {previous_url} for {timeout}s")
            return False

    def wait_for_transition(
        self, driver: Any, previous_url: str, handles_before: list[str], timeout: float
    ) -> str | None:
        """
        Wait for a click to either open a new window or navigate the current one.

        Returns:
            The new window handle if one opened, the current handle if the
            same window navigated, or None if nothing happened.
        """
        known = set(handles_before)

        def _transitioned(d: Any) -> str | bool:
            new_handles = [h for h in d.window_handles if h not in known]
            if new_handles:
                return new_handles[-1]
            if d.current_url != previous_url:
                return d.current_window_handle
            return False

        try:
            return WebDriverWait(driver, timeout, poll_frequency=self.poll_interval).until(
                _transitioned
            )
        except TimeoutException:
            return None

    def wait_for_invisibility(self, driver: Any, selector: str, timeout: float) -> bool:
        """
        Wait until nothing matching the selector is visible.

        Returns:
            True if everything matching disappeared, False if still visible at timeout.
        """
        try:
            WebDriverWait(driver, timeout, poll_frequency=self.poll_interval).until(
                lambda d: not any(is_visible(e) for e in find_css(d, selector))
            )
            return True
        except TimeoutException:
            return False

    def wait_for_page_settled(self, driver: Any, timeout: float) -> None:
        """
        Wait for a navigation chain of unknown length to come to rest.

        The page counts as settled once the document is complete and the URL
        and the number of loaded resources have stayed unchanged for the
        configured quiet period.

        Raises:
            TimeoutException: If the page never settles within the timeout.
        """
        quiet = self.config.settle_quiet_seconds
        deadline = time_module.monotonic() + timeout
        last_signature: tuple[Any, ...] | None = None
        stable_since = time_module.monotonic()

        while True:
            signature = self._page_signature(driver)
            now = time_module.monotonic()
            if signature != last_signature:
                last_signature = signature
                stable_since = now
            if signature[0] == "complete" and now - stable_since >= quiet:
                logger.debug(f"Page settled at {signature[1]}")
                return
            if now >= deadline:
                raise TimeoutException(
                    f"Page did not settle within {timeout}s (last state: {signature})"
                )
            time_module.sleep(self.poll_interval)

    def _page_signature(self, driver: Any) -> tuple[Any, ...]:
        try:
            return (
                driver.execute_script(READY_STATE_SCRIPT),
                driver.current_url,
                driver.execute_script(RESOURCE_COUNT_SCRIPT),
            )
        except NoSuchWindowException:
            # A login popup may close itself at the end of the redirect chain;
            # follow whichever window is still open.
            handles = driver.window_handles
            if handles:
                logger.debug("Active window closed, switching to the remaining window")
                driver.switch_to.window(handles[-1])
            return ("loading", None, None)
        except WebDriverException as e:
            # Mid-navigation the old document can vanish under the script
            logger.debug(f"Page signature unavailable: {e}")
            return ("loading", None, None)
