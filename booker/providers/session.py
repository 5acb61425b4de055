"""
Browser session lifecycle.

Every public operation gets its own Chrome process with a throwaway profile
directory, so it starts without cookies and never shares state with another
operation. Teardown runs on every exit path.
"""

import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from webdriver_manager.chrome import ChromeDriverManager

from booker.config import PortalConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

DriverFactory = Callable[[PortalConfig, str], Any]


def create_driver(config: PortalConfig, profile_dir: str) -> webdriver.Chrome:
    """Create a Chrome WebDriver bound to a fresh, isolated profile directory."""
    options = Options()
    if config.headless:
        options.add_argument("--headless=new")
    options.add_argument(f"--user-data-dir={profile_dir}")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-setuid-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-gpu")
    options.add_argument("--window-size=1920,1080")
    options.add_argument("--disable-blink-features=AutomationControlled")
    options.add_experimental_option("excludeSwitches", ["enable-automation"])
    options.add_experimental_option("useAutomationExtension", False)

    # Explicit chromedriver path first, then ChromeDriverManager for automatic
    # version management
    chromedriver_path = config.chromedriver_path or os.environ.get("CHROMEDRIVER_PATH", "")
    if chromedriver_path and os.path.exists(chromedriver_path):
        service = Service(chromedriver_path)
    else:
        service = Service(ChromeDriverManager().install())
    driver = webdriver.Chrome(service=service, options=options)

    driver.execute_cdp_cmd(
        "Page.addScriptToEvaluateOnNewDocument",
        {
            "source": """
            Object.defineProperty(navigator, 'webdriver', {
                get: () => undefined
            })
        """
        },
    )

    return driver


@dataclass
class BrowserSession:
    """An exclusively-owned browser: driver plus its temporary profile."""

    driver: Any
    profile_dir: str

    @property
    def current_url(self) -> str:
        return self.driver.current_url


@contextmanager
def browser_session(
    config: PortalConfig, driver_factory: DriverFactory = create_driver
) -> Iterator[BrowserSession]:
    """
    Acquire a fresh browser session and release it however the block exits.

    A failure while quitting the browser is logged but never replaces the
    exception raised inside the block.
    """
    profile_dir = tempfile.mkdtemp(prefix="booker-profile-")
    driver = None
    try:
        driver = driver_factory(config, profile_dir)
        logger.debug(f"SESSION: Browser started with profile {profile_dir}")
        yield BrowserSession(driver=driver, profile_dir=profile_dir)
    finally:
        if driver is not None:
            try:
                driver.quit()
                logger.debug("SESSION: Browser closed")
            except WebDriverException as e:
                logger.warning(f"SESSION: Error while closing browser: {e}")
        shutil.rmtree(profile_dir, ignore_errors=True)


def with_session(
    config: PortalConfig,
    operation: Callable[[BrowserSession], T],
    driver_factory: DriverFactory = create_driver,
) -> T:
    """Run operation(session) inside a session that is always torn down."""
    with browser_session(config, driver_factory) as session:
        return operation(session)
