"""
Authentication state machine for the portal's multi-hop single sign-on.

The flow starts from a page believed to be the landing view, detects whether
the session is logged out, walks the portal -> identity provider -> redirect
chain, and hands control back on the landing page.
"""

import logging
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, urlsplit

from selenium.common.exceptions import (
    NoSuchWindowException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support.ui import WebDriverWait

from booker.config import PortalConfig
from booker.providers.errors import (
    AuthenticationTimeout,
    CredentialFieldNotFound,
    PortalError,
    StepNavigationFailure,
)
from booker.providers.locators import (
    CssLocator,
    ImageAltLocator,
    LocatorChain,
    LocatorStrategy,
    RoleLocator,
    TextLocator,
    affordance_chain,
    css_chain,
)
from booker.providers.portal_dom_schema import DOM, PortalDOMSchema
from booker.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING_LOGIN_STATE = "checking_login_state"
    ALREADY_AUTHENTICATED = "already_authenticated"
    AWAITING_PORTAL_REDIRECT = "awaiting_portal_redirect"
    AWAITING_IDENTITY_PROVIDER_LINK = "awaiting_identity_provider_link"
    AWAITING_CREDENTIAL_FORM = "awaiting_credential_form"
    SUBMITTING = "submitting"
    AWAITING_REDIRECT_CHAIN = "awaiting_redirect_chain"
    RETURNED_TO_KNOWN_PAGE = "returned_to_known_page"
    FAILED = "failed"


def url_base(url: str) -> str:
    """scheme://host/path of a URL, ignoring query string, fragment and trailing slash."""
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path.rstrip('/')}"


def same_page(current_url: str, target_url: str) -> bool:
    """
    True when current_url shows the page target_url names.

    The paths must match and every query parameter of the target must be
    present with the same value. Extra parameters on the current URL, such as
    a sign-in ticket appended by a redirect, are ignored.
    """
    if url_base(current_url) != url_base(target_url):
        return False
    current = parse_qs(urlsplit(current_url).query)
    wanted = parse_qs(urlsplit(target_url).query)
    return all(current.get(key) == values for key, values in wanted.items())


def query_param(url: str, name: str) -> str | None:
    """Case-insensitive lookup of a single query parameter."""
    for key, values in parse_qs(urlsplit(url).query).items():
        if key.lower() == name.lower() and values:
            return values[0]
    return None


class AuthenticationFlow:
    """
    Drives the login state machine on a WebDriver.

    Every state change is appended to ``history`` so callers and tests can see
    exactly which path a login took.
    """

    def __init__(
        self,
        config: PortalConfig,
        dom: PortalDOMSchema = DOM,
        waits: WaitStrategy | None = None,
    ) -> None:
        self.config = config
        self.dom = dom
        self.waits = waits or WaitStrategy(config)
        self.state = AuthState.UNKNOWN
        self.history: list[AuthState] = [AuthState.UNKNOWN]
        self.login_window: str | None = None

        self.login_chain = affordance_chain(
            "portal login", dom.LOGIN.login_affordances, dom.LOGIN.login_names, role="link"
        )
        self.org_login_chain = self._build_org_login_chain(dom)
        self.username_chain = css_chain("username field", dom.CREDENTIALS.username_inputs)
        self.password_chain = css_chain("password field", dom.CREDENTIALS.password_inputs)
        self.submit_chain = css_chain("login submit", dom.CREDENTIALS.submit_buttons)

    @staticmethod
    def _build_org_login_chain(dom: PortalDOMSchema) -> LocatorChain:
        idp = dom.IDENTITY_PROVIDER
        strategies: list[LocatorStrategy] = [
            RoleLocator(role, idp.org_login_names) for role in idp.org_login_roles
        ]
        strategies.append(TextLocator("a", idp.org_login_link_texts))
        strategies.append(ImageAltLocator(idp.org_login_image_alts))
        strategies.extend(CssLocator(selector) for selector in idp.org_login_sso_links)
        return LocatorChain("organization login", strategies)

    def _transition(self, state: AuthState) -> None:
        logger.info(f"AUTH: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def ensure_authenticated(self, driver: Any, landing_url: str) -> AuthState:
        """
        Make sure the session is logged in and back on the landing page.

        On an already-authenticated page this performs no navigation at all,
        so calling it repeatedly is safe.

        Raises:
            AuthenticationTimeout: Credential fields or the redirect chain never settled.
            StepNavigationFailure: The flow could not get back to the landing page.
        """
        self.state = AuthState.UNKNOWN
        self.history = [AuthState.UNKNOWN]
        self.login_window = None

        self._transition(AuthState.CHECKING_LOGIN_STATE)
        login_affordance = self.login_chain.find(driver)
        if login_affordance is None:
            self._transition(AuthState.ALREADY_AUTHENTICATED)
            return self.state

        logger.info(f"AUTH: Login affordance visible at {driver.current_url}, signing in")
        try:
            self._follow_login_affordance(driver, login_affordance)
            self._open_organization_login(driver)
            self.submit_credentials(driver)
            self._return_to_landing(driver, landing_url)
        except PortalError:
            self._transition(AuthState.FAILED)
            raise
        except TimeoutException as e:
            self._transition(AuthState.FAILED)
            raise AuthenticationTimeout(f"Authentication timed out: {e}") from e

        return self.state

    def _follow_login_affordance(self, driver: Any, login_affordance: Any) -> None:
        """Click Login and follow whichever window the portal now shows."""
        self._transition(AuthState.AWAITING_PORTAL_REDIRECT)
        handles_before = list(driver.window_handles)
        url_before = driver.current_url

        login_affordance.click()

        handle = self.waits.wait_for_transition(
            driver, url_before, handles_before, self.config.step_timeout_seconds
        )
        if handle is None:
            logger.warning("AUTH: Login click produced no navigation, continuing on current page")
        elif handle not in handles_before:
            logger.info("AUTH: Login opened a new window, switching to it")
            self.login_window = handle
            driver.switch_to.window(handle)
        logger.debug(f"AUTH: Now at {driver.current_url}")

    def _open_organization_login(self, driver: Any) -> None:
        """Pick the organization login on the identity provider, if one is offered."""
        self._transition(AuthState.AWAITING_IDENTITY_PROVIDER_LINK)

        def _org_link_or_form(d: Any) -> Any:
            if self._credential_fields(d):
                return "form"
            return self.org_login_chain.first_match(d) or False

        try:
            found = WebDriverWait(
                driver,
                self.config.idp_link_timeout_seconds,
                poll_frequency=self.waits.poll_interval,
            ).until(_org_link_or_form)
        except TimeoutException:
            logger.info("AUTH: No organization login affordance found, continuing")
            return

        if found == "form":
            logger.info("AUTH: Credential form already present, skipping organization login")
            return

        logger.info(f"AUTH: Organization login matched via {found.strategy!r}")
        found.element.click()

    def _credential_fields(self, driver: Any) -> tuple[Any, Any] | None:
        username = self.username_chain.find(driver)
        password = self.password_chain.find(driver)
        if username is None or password is None:
            return None
        return username, password

    def submit_credentials(self, driver: Any) -> None:
        """
        Fill and submit the credential form, then wait for the redirect chain.

        Also used by the booking pipeline when the portal asks for a login
        in the middle of a reservation.

        Raises:
            CredentialFieldNotFound: Username/password fields never appeared.
            AuthenticationTimeout: The post-submit redirect chain never settled.
        """
        if not self.config.has_credentials:
            raise PortalError("Portal credentials are not configured")

        self._transition(AuthState.AWAITING_CREDENTIAL_FORM)
        try:
            username, password = WebDriverWait(
                driver,
                self.config.login_timeout_seconds,
                poll_frequency=self.waits.poll_interval,
            ).until(lambda d: self._credential_fields(d) or False)
        except TimeoutException as e:
            raise CredentialFieldNotFound(
                f"Username/password fields did not appear within "
                f"{self.config.login_timeout_seconds}s at {driver.current_url}"
            ) from e

        self._transition(AuthState.SUBMITTING)
        username.clear()
        username.send_keys(self.config.username)
        password.clear()
        password.send_keys(self.config.password)

        submit = self.submit_chain.find(driver)
        if submit is not None:
            submit.click()
        else:
            logger.debug("AUTH: No submit control found, pressing Enter in password field")
            password.send_keys(Keys.RETURN)

        self._transition(AuthState.AWAITING_REDIRECT_CHAIN)
        try:
            self.waits.wait_for_page_settled(driver, self.config.redirect_timeout_seconds)
        except TimeoutException as e:
            raise AuthenticationTimeout(
                f"Login redirect chain did not settle within "
                f"{self.config.redirect_timeout_seconds}s"
            ) from e
        logger.info(f"AUTH: Credentials submitted, settled at {driver.current_url}")

    def _ensure_live_window(self, driver: Any) -> None:
        handles = driver.window_handles
        if not handles:
            raise StepNavigationFailure("Every browser window closed during login")
        try:
            current = driver.current_window_handle
        except NoSuchWindowException:
            current = None
        if current not in handles:
            driver.switch_to.window(handles[0])

        if self.login_window is None or self.login_window in handles:
            return
        # The login popup closed itself; the opener still shows its logged-out render
        logger.info(f"AUTH: Login window closed, reloading {driver.current_url}")
        self.login_window = None
        try:
            driver.refresh()
            self.waits.wait_for_page_settled(driver, self.config.step_timeout_seconds)
        except WebDriverException as e:
            raise StepNavigationFailure(f"Could not reload the original window: {e}") from e

    def _return_to_landing(self, driver: Any, landing_url: str) -> None:
        self._ensure_live_window(driver)
        if not same_page(driver.current_url, landing_url):
            logger.info(f"AUTH: Landed on {driver.current_url}, navigating back to {landing_url}")
            try:
                driver.get(landing_url)
                self.waits.wait_for_page_settled(driver, self.config.step_timeout_seconds)
            except WebDriverException as e:
                raise StepNavigationFailure(f"Could not return to {landing_url}: {e}") from e

        if not same_page(driver.current_url, landing_url):
            raise StepNavigationFailure(
                f"Expected landing page {landing_url}, ended on {driver.current_url}"
            )
        self._transition(AuthState.RETURNED_TO_KNOWN_PAGE)
