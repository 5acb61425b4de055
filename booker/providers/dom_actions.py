"""JavaScript-backed DOM actions used where a plain WebDriver call is not enough."""

import logging
from typing import Any

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By

logger = logging.getLogger(__name__)

CLICK_SCRIPT = "arguments[0].click();"
SCROLL_INTO_VIEW_SCRIPT = "arguments[0].scrollIntoView({block: 'center'});"
REMOVE_ELEMENT_SCRIPT = "arguments[0].remove();"
READY_STATE_SCRIPT = "return document.readyState;"
RESOURCE_COUNT_SCRIPT = (
    "return (window.performance && performance.getEntriesByType) "
    "? performance.getEntriesByType('resource').length : 0;"
)
# Rich widgets (Kendo numeric boxes and the like) only pick up a value once
# input/change events fire, so the write and the dispatch go together.
SET_WIDGET_VALUE_SCRIPT = """
const el = arguments[0];
const value = arguments[1];
el.value = value;
el.setAttribute('value', value);
el.dispatchEvent(new Event('input', { bubbles: true }));
el.dispatchEvent(new Event('change', { bubbles: true }));
return el.value;
"""


def js_click(driver: Any, element: Any) -> None:
    """Scroll an element into view and click it through JavaScript to bypass overlays."""
    try:
        driver.execute_script(SCROLL_INTO_VIEW_SCRIPT, element)
    except WebDriverException as e:
        logger.debug(f"Could not scroll element into view: {e}")
    driver.execute_script(CLICK_SCRIPT, element)


def set_widget_value(driver: Any, element: Any, value: str) -> str | None:
    """Assign a value to a form widget and dispatch input/change so it registers."""
    return driver.execute_script(SET_WIDGET_VALUE_SCRIPT, element, value)


def remove_element(driver: Any, element: Any) -> None:
    driver.execute_script(REMOVE_ELEMENT_SCRIPT, element)


def page_text(driver: Any, lowercase: bool = True) -> str:
    """Visible text of the whole document, lowercased unless asked otherwise."""
    try:
        text = driver.find_element(By.TAG_NAME, "body").text
    except WebDriverException:
        text = driver.page_source
    return text.lower() if lowercase else text
