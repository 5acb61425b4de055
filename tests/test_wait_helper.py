"""
Tests for the wait strategy helper module.

These tests verify that every wait is bounded by the timeout it is given and
reports the outcome instead of sleeping blindly.
"""

from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import NoSuchWindowException, TimeoutException

from booker.providers.dom_actions import READY_STATE_SCRIPT
from booker.providers.locators import css_chain
from booker.providers.wait_helper import WaitStrategy
from tests.fixtures.fake_browser import FakeDriver
from tests.fixtures.portal_pages import make_config, page

LIST_URL = "https://portal.test/list"
NEXT_URL = "https://portal.test/next"


@pytest.fixture
def waits() -> WaitStrategy:
    """Create a WaitStrategy with tiny timeouts."""
    return WaitStrategy(make_config())


@pytest.fixture
def driver() -> FakeDriver:
    """Create a fake driver with a page that can navigate or open a popup."""
    pages = {
        LIST_URL: page(
            f"""
            <a id="same" href="{NEXT_URL}">Next</a>
            <a id="popup" href="{NEXT_URL}" target="_blank">Popup</a>
            <a id="nowhere" href="#">Stay</a>
            <div class="k-overlay"></div>
            <div class="bm-overlay" style="display: none"></div>
            """
        ),
        NEXT_URL: page("<h1>Next page</h1>"),
    }
    return FakeDriver(pages, start_url=LIST_URL)


class TestWaitForUrlChange:
    """Tests for WaitStrategy.wait_for_url_change."""

    def test_returns_true_when_url_differs(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that a URL already different from the previous one passes immediately."""
        driver.find_element(value="#same").click()
        assert waits.wait_for_url_change(driver, LIST_URL, timeout=0.2) is True

    def test_returns_false_on_timeout(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that an unchanged URL reports False instead of raising."""
        assert waits.wait_for_url_change(driver, LIST_URL, timeout=0.05) is False


class TestWaitForTransition:
    """Tests for WaitStrategy.wait_for_transition."""

    def test_same_window_navigation(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that navigating in place returns the current handle."""
        handles = list(driver.window_handles)
        driver.find_element(value="#same").click()

        handle = waits.wait_for_transition(driver, LIST_URL, handles, timeout=0.2)

        assert handle == driver.current_window_handle
        assert handle in handles

    def test_new_window(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that a popup returns the new window's handle."""
        handles = list(driver.window_handles)
        driver.find_element(value="#popup").click()

        handle = waits.wait_for_transition(driver, LIST_URL, handles, timeout=0.2)

        assert handle is not None
        assert handle not in handles

    def test_nothing_happened(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that a click with no effect times out to None."""
        handles = list(driver.window_handles)
        driver.find_element(value="#nowhere").click()

        assert waits.wait_for_transition(driver, LIST_URL, handles, timeout=0.05) is None


class TestWaitForInvisibility:
    """Tests for WaitStrategy.wait_for_invisibility."""

    def test_visible_overlay_times_out(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that a lingering overlay reports False."""
        assert waits.wait_for_invisibility(driver, ".k-overlay", timeout=0.05) is False

    def test_hidden_overlay_passes(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that hidden or absent overlays report True."""
        assert waits.wait_for_invisibility(driver, ".bm-overlay", timeout=0.05) is True
        assert waits.wait_for_invisibility(driver, ".blockUI", timeout=0.05) is True


class TestWaitForChain:
    def test_finds_visible_element(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that the chain match comes back with the strategy that found it."""
        chain = css_chain("next link", ["a.missing", "a#same"])

        match = waits.wait_for_chain(driver, chain, timeout=0.2)

        assert match is not None
        assert match.element.get_attribute("id") == "same"
        assert match.strategy.description == "a#same"

    def test_hidden_only_match_times_out(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that hidden elements never satisfy a chain."""
        chain = css_chain("overlay", [".bm-overlay"])
        assert waits.wait_for_chain(driver, chain, timeout=0.05) is None


class TestWaitForPageSettled:
    """Tests for WaitStrategy.wait_for_page_settled."""

    def test_settles_on_complete_page(self, waits: WaitStrategy, driver: FakeDriver) -> None:
        """Test that a complete, static page settles without error."""
        waits.wait_for_page_settled(driver, timeout=0.2)

    def test_waits_out_quiet_period(self, driver: FakeDriver) -> None:
        """Test that a non-zero quiet period still settles within the timeout."""
        waits = WaitStrategy(make_config(settle_quiet_seconds=0.03))
        waits.wait_for_page_settled(driver, timeout=0.5)

    def test_raises_when_never_complete(self, waits: WaitStrategy) -> None:
        """Test that a page stuck loading raises TimeoutException."""
        mock_driver = MagicMock()
        mock_driver.current_url = LIST_URL
        mock_driver.execute_script.return_value = "loading"

        with pytest.raises(TimeoutException):
            waits.wait_for_page_settled(mock_driver, timeout=0.05)

    def test_follows_remaining_window_when_current_closes(self, waits: WaitStrategy) -> None:
        """Test that a closed popup switches back to the window still open."""
        calls = {"count": 0}

        def execute_script(script: str, *args: object) -> object:
            calls["count"] += 1
            if calls["count"] == 1:
                raise NoSuchWindowException("window closed")
            return "complete" if script == READY_STATE_SCRIPT else 0

        mock_driver = MagicMock()
        mock_driver.current_url = LIST_URL
        mock_driver.window_handles = ["window-1"]
        mock_driver.execute_script.side_effect = execute_script

        waits.wait_for_page_settled(mock_driver, timeout=0.5)

        mock_driver.switch_to.window.assert_called_once_with("window-1")
