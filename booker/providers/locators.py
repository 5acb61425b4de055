"""
Ordered locator strategies for an uncontrolled third-party UI.

A LocatorChain holds an ordered sequence of strategies; each strategy is a
capability probe that either returns a visible element or nothing. The chain
tries them in order until one succeeds, which keeps every fallback sequence
explicit and testable instead of inlined per call site.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from selenium.common.exceptions import (
    InvalidSelectorException,
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait

logger = logging.getLogger(__name__)

ROLE_SELECTORS = {
    "button": "button, [role='button'], input[type='submit'], input[type='button']",
    "link": "a[href], [role='link']",
}


def is_visible(element: Any) -> bool:
    try:
        return bool(element.is_displayed())
    except StaleElementReferenceException:
        return False


def is_enabled(element: Any) -> bool:
    try:
        if not element.is_enabled():
            return False
        return (element.get_attribute("aria-disabled") or "").lower() != "true"
    except StaleElementReferenceException:
        return False


def accessible_name(element: Any) -> str:
    """Approximate accessible name: aria-label, visible text, value, then title."""
    for candidate in (
        element.get_attribute("aria-label"),
        element.text,
        element.get_attribute("value"),
        element.get_attribute("title"),
    ):
        if candidate and candidate.strip():
            return " ".join(candidate.split())
    return ""


def find_css(context: Any, selector: str) -> list[Any]:
    """find_elements by CSS that treats stale or rejected selectors as no match."""
    try:
        return list(context.find_elements(By.CSS_SELECTOR, selector))
    except (StaleElementReferenceException, InvalidSelectorException) as e:
        logger.debug(f"Selector '{selector}' could not be evaluated: {e}")
        return []


def iter_ancestors(element: Any, max_levels: int) -> Iterator[Any]:
    """Yield up to max_levels parents of an element, stopping at <body>."""
    current = element
    for _ in range(max_levels):
        try:
            current = current.find_element(By.XPATH, "./..")
        except (NoSuchElementException, StaleElementReferenceException, InvalidSelectorException):
            return
        if (current.tag_name or "").lower() in ("body", "html"):
            return
        yield current


class LocatorStrategy(ABC):
    """One way of finding an affordance."""

    description: str = "strategy"

    @abstractmethod
    def find_all(self, context: Any) -> list[Any]:
        """Return every candidate element, visible or not."""
        pass

    def visible(self, context: Any) -> list[Any]:
        return [element for element in self.find_all(context) if is_visible(element)]

    def probe(self, context: Any) -> Any | None:
        matches = self.visible(context)
        return matches[0] if matches else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description}>"


class CssLocator(LocatorStrategy):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        self.description = selector

    def find_all(self, context: Any) -> list[Any]:
        return find_css(context, self.selector)


class TextLocator(LocatorStrategy):
    """Elements under a CSS scope whose accessible name contains (or equals) a phrase."""

    def __init__(self, scope: str, phrases: Iterable[str], exact: bool = False) -> None:
        self.scope = scope
        self.phrases = tuple(p.lower() for p in phrases)
        self.exact = exact
        self.description = f"{scope} named {'=' if exact else '~'}{list(self.phrases)}"

    def _matches(self, name: str) -> bool:
        name = name.lower()
        if self.exact:
            return name in self.phrases
        return any(phrase in name for phrase in self.phrases)

    def find_all(self, context: Any) -> list[Any]:
        found = []
        for element in find_css(context, self.scope):
            try:
                if self._matches(accessible_name(element)):
                    found.append(element)
            except StaleElementReferenceException:
                continue
        return found


class RoleLocator(TextLocator):
    """Accessible role + name, e.g. role='button' name='Organization Login'."""

    def __init__(self, role: str, names: Iterable[str], exact: bool = False) -> None:
        super().__init__(ROLE_SELECTORS.get(role, role), names, exact=exact)
        self.description = f"role={role} names={list(self.phrases)}"


class ImageAltLocator(LocatorStrategy):
    """Images (usually wrapped in a link) whose alt text contains a fragment."""

    scope = "a img[alt], button img[alt], input[type='image'][alt]"

    def __init__(self, alt_fragments: Iterable[str]) -> None:
        self.alt_fragments = tuple(a.lower() for a in alt_fragments)
        self.description = f"img alt~{list(self.alt_fragments)}"

    def find_all(self, context: Any) -> list[Any]:
        found = []
        for element in find_css(context, self.scope):
            alt = (element.get_attribute("alt") or "").lower()
            if any(fragment in alt for fragment in self.alt_fragments):
                found.append(element)
        return found


@dataclass(frozen=True)
class LocatorMatch:
    element: Any
    strategy: LocatorStrategy


class LocatorChain:
    """An ordered sequence of strategies tried until one finds a visible element."""

    def __init__(self, name: str, strategies: Iterable[LocatorStrategy]) -> None:
        self.name = name
        self.strategies = tuple(strategies)

    def first_match(self, context: Any) -> LocatorMatch | None:
        for strategy in self.strategies:
            element = strategy.probe(context)
            if element is not None:
                logger.debug(f"{self.name}: matched via {strategy!r}")
                return LocatorMatch(element=element, strategy=strategy)
            logger.debug(f"{self.name}: no match via {strategy!r}")
        return None

    def find(self, context: Any) -> Any | None:
        match = self.first_match(context)
        return match.element if match else None

    def all_visible(self, context: Any) -> list[Any]:
        """Every visible element from the first strategy that yields any."""
        for strategy in self.strategies:
            elements = strategy.visible(context)
            if elements:
                return elements
        return []

    def wait_for(
        self, driver: Any, timeout: float, poll_interval: float = 0.25
    ) -> LocatorMatch | None:
        """Poll the chain until a strategy matches or the timeout expires."""
        try:
            return WebDriverWait(driver, timeout, poll_frequency=poll_interval).until(
                lambda d: self.first_match(d) or False
            )
        except TimeoutException:
            logger.debug(f"{self.name}: nothing matched within {timeout}s")
            return None

    def __repr__(self) -> str:
        return f"<LocatorChain {self.name} ({len(self.strategies)} strategies)>"


def css_chain(name: str, selectors: Iterable[str]) -> LocatorChain:
    return LocatorChain(name, [CssLocator(selector) for selector in selectors])


def affordance_chain(
    name: str,
    selectors: Iterable[str],
    names: Iterable[str],
    role: str = "button",
) -> LocatorChain:
    """CSS selectors first, then accessible-name matches for buttons and links."""
    names = tuple(names)
    strategies: list[LocatorStrategy] = [CssLocator(selector) for selector in selectors]
    strategies.append(RoleLocator(role, names, exact=True))
    strategies.append(RoleLocator("link" if role == "button" else "button", names, exact=True))
    strategies.append(RoleLocator(role, names))
    return LocatorChain(name, strategies)
