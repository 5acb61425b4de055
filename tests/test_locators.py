"""
Tests for the ordered locator strategies in booker/providers/locators.py.
"""

import pytest

from booker.providers.locators import (
    CssLocator,
    ImageAltLocator,
    LocatorChain,
    RoleLocator,
    TextLocator,
    accessible_name,
    affordance_chain,
    find_css,
    iter_ancestors,
)
from tests.fixtures.fake_browser import FakeDriver
from tests.fixtures.portal_pages import page

URL = "https://portal.test/page"

HTML = page(
    """
    <div id="outer">
      <section id="card">
        <p><button id="hidden-login" hidden>Login</button></p>
        <a id="sign-in" href="/signin">Sign In</a>
        <span role="button" aria-label="Organization Login" id="org"></span>
        <a id="cwl" href="/idp"><img alt="CWL logo"></a>
        <button id="reserve-disabled" aria-disabled="true">Reserve</button>
        <input id="submit" type="submit" value="Place My Order">
      </section>
    </div>
    """
)


@pytest.fixture
def driver() -> FakeDriver:
    """Create a fake driver on the locator test page."""
    return FakeDriver({URL: HTML}, start_url=URL)


class TestAccessibleName:
    """Tests for accessible_name."""

    def test_prefers_aria_label(self, driver: FakeDriver) -> None:
        """Test that aria-label wins over text content."""
        assert accessible_name(driver.find_element(value="#org")) == "Organization Login"

    def test_falls_back_to_text_then_value(self, driver: FakeDriver) -> None:
        """Test the text and value fallbacks."""
        assert accessible_name(driver.find_element(value="#sign-in")) == "Sign In"
        assert accessible_name(driver.find_element(value="#submit")) == "Place My Order"


class TestStrategies:
    """Tests for the individual locator strategies."""

    def test_css_probe_skips_hidden_elements(self, driver: FakeDriver) -> None:
        """Test that a hidden match is found but never probed."""
        strategy = CssLocator("#hidden-login")
        assert len(strategy.find_all(driver)) == 1
        assert strategy.probe(driver) is None

    def test_role_locator_matches_button_role(self, driver: FakeDriver) -> None:
        """Test role=button covers elements with an explicit ARIA role."""
        element = RoleLocator("button", ["organization login"]).probe(driver)
        assert element is not None
        assert element.get_attribute("id") == "org"

    def test_role_locator_exact_vs_contains(self, driver: FakeDriver) -> None:
        """Test exact and substring name matching."""
        assert RoleLocator("link", ["Sign"], exact=True).probe(driver) is None
        assert RoleLocator("link", ["Sign"]).probe(driver) is not None

    def test_text_locator_scoped_by_css(self, driver: FakeDriver) -> None:
        """Test that TextLocator only looks inside its CSS scope."""
        assert TextLocator("a", ["sign in"]).probe(driver) is not None
        assert TextLocator("span", ["sign in"]).probe(driver) is None

    def test_image_alt_locator(self, driver: FakeDriver) -> None:
        """Test images inside links matched by alt text."""
        element = ImageAltLocator(["cwl"]).probe(driver)
        assert element is not None
        assert element.get_attribute("alt") == "CWL logo"

    def test_invalid_selector_is_no_match(self, driver: FakeDriver) -> None:
        """Test that a selector the engine rejects counts as no match."""
        assert find_css(driver, "a[") == []


class TestLocatorChain:
    """Tests for LocatorChain ordering."""

    def test_first_matching_strategy_wins(self, driver: FakeDriver) -> None:
        """Test that strategies are tried in order."""
        chain = LocatorChain(
            "login",
            [CssLocator("#hidden-login"), CssLocator("#sign-in"), CssLocator("#org")],
        )

        match = chain.first_match(driver)

        assert match is not None
        assert match.element.get_attribute("id") == "sign-in"
        assert match.strategy is chain.strategies[1]

    def test_no_match(self, driver: FakeDriver) -> None:
        """Test that an exhausted chain returns None."""
        chain = LocatorChain("nothing", [CssLocator(".missing"), RoleLocator("button", ["Nope"])])
        assert chain.find(driver) is None
        assert chain.all_visible(driver) == []

    def test_affordance_chain_falls_back_to_names(self, driver: FakeDriver) -> None:
        """Test that accessible names are used once the CSS selectors miss."""
        chain = affordance_chain("submit", ["button#submit"], ["Place My Order"])

        match = chain.first_match(driver)

        assert match is not None
        assert isinstance(match.strategy, RoleLocator)
        assert match.element.get_attribute("id") == "submit"


class TestIterAncestors:
    def test_walks_up_to_body(self, driver: FakeDriver) -> None:
        """Test that ancestors stop before <body>."""
        button = driver.find_element(value="#hidden-login")

        ancestors = list(iter_ancestors(button, 10))

        assert [a.tag_name for a in ancestors] == ["p", "section", "div"]

    def test_respects_level_limit(self, driver: FakeDriver) -> None:
        """Test the max_levels cap."""
        button = driver.find_element(value="#hidden-login")
        assert len(list(iter_ancestors(button, 1))) == 1
