"""
A miniature facility-booking portal for browser-free tests.

Pages are plain HTML strings keyed by URL and served by FakeDriver. The
landing page renders the logged-out view until the identity provider's
submit button sets the "logged_in" flag.
"""

from datetime import date
from typing import Any

from booker.config import PortalConfig

BASE_URL = "https://portal.test"
LANDING_PATH = "/24063/Clients/BookMe4FacilityList/List"
LANDING_URL = f"{BASE_URL}{LANDING_PATH}"
PORTAL_LOGIN_URL = f"{BASE_URL}/24063/Clients/Login"
IDP_LOGIN_URL = "https://idp.test/idp/profile/login"
COURT_1_URL = f"{BASE_URL}/24063/Clients/BookMe4BookingPages/Court1"
COURT_2_URL = f"{BASE_URL}/24063/Clients/BookMe4BookingPages/Court2"
COURT_3_URL = f"{BASE_URL}/24063/Clients/BookMe4BookingPages/Court3"
RESERVE_URL = f"{BASE_URL}/24063/Clients/BookMe4EventParticipants/Reserve"
MIDFLOW_LOGIN_URL = f"{BASE_URL}/24063/Account/Login"
ATTENDEES_PATH = "/24063/Clients/BookMe4EventParticipants/Attendees"
ATTENDEES_URL = f"{BASE_URL}{ATTENDEES_PATH}"
PAYMENT_URL = f"{BASE_URL}/24063/Clients/BookMe4EventParticipants/Payment"
CONFIRMATION_URL = f"{BASE_URL}/24063/Clients/BookMe4EventParticipants/Confirmation"
ORDER_ERROR_URL = f"{BASE_URL}/24063/Clients/BookMe4EventParticipants/OrderError"
PORTAL_HOME_URL = f"{BASE_URL}/24063/Clients/Home"
# One path for every court, told apart by the query string
FACILITY_URL = f"{BASE_URL}/24063/Clients/BookMe4BookingPages/Facility"
FACILITY_1_URL = f"{FACILITY_URL}?facilityId=1"
FACILITY_2_URL = f"{FACILITY_URL}?facilityId=2"

TODAY = date(2026, 10, 20)

COURT_1_NAME = "UBC Tennis Centre - Indoor Court 1"
COURT_2_NAME = "Thunderbird Park - Outdoor Court 5"


def make_config(**overrides: Any) -> PortalConfig:
    """PortalConfig pointed at the fake portal, with tiny timeouts."""
    values: dict[str, Any] = dict(
        base_url=BASE_URL,
        landing_path=LANDING_PATH,
        username="student@ubc.ca",
        password="s3cret-pass",
        login_timeout_seconds=0.3,
        redirect_timeout_seconds=0.3,
        step_timeout_seconds=0.2,
        overlay_timeout_seconds=0.05,
        idp_link_timeout_seconds=0.2,
        settle_quiet_seconds=0,
        poll_interval_seconds=0.01,
    )
    values.update(overrides)
    return PortalConfig(**values)


def page(body: str, title: str = "UBC Recreation") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


LOGGED_OUT_LANDING_HTML = page(
    """
    <header><a id="loginButton" href="/24063/Clients/Login">Login</a></header>
    <p>Sign in to view court availability.</p>
    """
)

LOGGED_OUT_LANDING_POPUP_HTML = page(
    """
    <header><a id="loginButton" href="/24063/Clients/Login" target="_blank">Login</a></header>
    """
)

LANDING_HTML = page(
    """
    <header><span class="bm-user">Sam Taylor</span></header>
    <div class="bm-facility-card">
      <h3>UBC Tennis Centre - Indoor Court 1</h3>
      <a class="bm-facility-choose" href="/24063/Clients/BookMe4BookingPages/Court1">Choose</a>
      <a class="bm-facility-choose bm-desktop" href="/24063/Clients/BookMe4BookingPages/Court1">Choose</a>
    </div>
    <div class="bm-facility-card">
      <div class="bm-card-body">
        <h3>Thunderbird Park - Outdoor Court 5</h3>
        <div class="bm-card-actions">
          <a class="bm-facility-choose" href="/24063/Clients/BookMe4BookingPages/Court2">Choose</a>
        </div>
      </div>
    </div>
    <div class="bm-facility-card">
      <a class="bm-facility-choose" href="/24063/Clients/BookMe4BookingPages/Court3">Choose</a>
    </div>
    <div class="bm-facility-card d-none">
      <h3>Retired Court</h3>
      <a class="bm-facility-choose" href="/24063/Clients/BookMe4BookingPages/Retired">Choose</a>
    </div>
    """
)

SINGLE_COURT_LANDING_HTML = page(
    """
    <div class="bm-facility-card">
      <h3>UBC Tennis Centre - Indoor Court 1</h3>
      <a class="bm-facility-choose" href="/24063/Clients/BookMe4BookingPages/Court1">Choose</a>
    </div>
    """
)

EMPTY_LANDING_HTML = page("<p>No facilities are currently available for booking.</p>")

PORTAL_LOGIN_HTML = page(
    f"""
    <h1>Sign in</h1>
    <button type="button" class="bm-org-login" data-nav="{IDP_LOGIN_URL}">Organization Login</button>
    """
)

PORTAL_LOGIN_WITH_FORM_HTML = page(
    f"""
    <h1>Sign in</h1>
    <form>
      <input id="username" name="username" type="text">
      <input id="password" name="password" type="password">
      <button type="submit" data-set-flag="logged_in" data-nav="{LANDING_URL}">Log In</button>
    </form>
    """
)

IDP_LOGIN_HTML = page(
    f"""
    <h1>Campus-wide Login</h1>
    <form>
      <input id="username" name="j_username" type="text">
      <input id="password" name="j_password" type="password">
      <button type="submit" name="_eventId_proceed" data-set-flag="logged_in"
              data-nav="{LANDING_URL}?ticket=ST-1">Continue</button>
    </form>
    """,
    title="CWL",
)

IDP_WITHOUT_FORM_HTML = page("<h1>Campus-wide Login</h1><p>Service temporarily unavailable.</p>")

COURT_1_HTML = page(
    f"""
    <h1 class="bm-facility-title">{COURT_1_NAME}</h1>
    <div class="bm-schedule">
      <span class="bm-marker-available" title="3:00 PM - 4:00 PM"
            data-nav="{RESERVE_URL}?slot=1500">Available</span>
      <span class="bm-marker-available" title="7:00 PM - 8:00 PM"
            data-nav="{RESERVE_URL}?slot=1900">Available</span>
      <span class="bm-marker-available bm-marker-booked" title="8:00 PM - 9:00 PM">Available</span>
    </div>
    """
)

COURT_2_HTML = page(
    """
    <div class="bm-schedule">
      <div class="bm-day" data-date="2026-10-21">
        <div class="bm-row">
          <span class="bm-marker-available" title="6:00 PM – 7:30 PM">Available</span>
          <span class="bm-marker-available" title="9:00 PM - 10:00 PM" style="opacity: 0">Available</span>
          <span class="bm-marker-available" title="10:00 PM - 11:00 PM"
                style="pointer-events: none">Available</span>
          <span class="bm-marker-available" title="5:00 PM - 6:00 PM">Booked</span>
          <span class="bm-marker-available" title="4:00 PM - 5:00 PM" hidden>Available</span>
        </div>
      </div>
    </div>
    """
)

COURT_3_HTML = page(
    """
    <div class="bm-schedule">
      <button class="bm-marker-available" aria-label="9:00 AM - 10:00 AM">  Available </button>
      <span class="bm-marker-available" data-date="not-a-date"
            aria-label="11:00AM-12:00PM">Available</span>
      <button class="bm-marker-available" title="1:00 PM - 2:00 PM" disabled>Available</button>
      <span class="bm-marker-available" title="2:00 PM - 3:00 PM" aria-disabled="true">Available</span>
      <span class="bm-marker-available" title="4:00 PM - 3:00 PM">Available</span>
    </div>
    """
)


def reserve_html(reserve_target: str = ATTENDEES_URL) -> str:
    return page(
        f"""
        <div class="k-overlay"></div>
        <h2>Reserve UBC Tennis Centre - Indoor Court 1</h2>
        <select name="DurationHours"><option value="1">1 hour</option><option value="2">2 hours</option></select>
        <input id="NumberOfAttendees" name="NumberOfAttendees" type="text" style="display: none" value="1">
        <button id="bookEventButton" data-nav="{reserve_target}">Reserve</button>
        """
    )


MIDFLOW_LOGIN_HTML = page(
    f"""
    <h1>Please sign in to continue</h1>
    <form>
      <input id="username" name="username" type="text">
      <input id="password" name="password" type="password">
      <button type="submit" data-nav="{PORTAL_HOME_URL}">Sign In</button>
    </form>
    """
)

ATTENDEES_HTML = page(
    f"""
    <table class="bm-attendees"><tbody>
      <tr><td><input type="checkbox" name="attendee" value="2"></td><td>Jordan Lee</td></tr>
      <tr><td><input type="checkbox" name="attendee" value="1"></td><td>Sam Taylor (You)</td></tr>
    </tbody></table>
    <button id="nextButton" data-nav="{PAYMENT_URL}">Next</button>
    """
)

ATTENDEES_SELF_DISABLED_HTML = page(
    f"""
    <table class="bm-attendees"><tbody>
      <tr><td><input type="checkbox" name="attendee" value="1" disabled></td><td>Sam Taylor (You)</td></tr>
      <tr><td><input type="checkbox" name="attendee" value="3" disabled></td><td>Alex Kim</td></tr>
      <tr><td><input type="checkbox" name="attendee" value="2"></td><td>Jordan Lee</td></tr>
    </tbody></table>
    <button id="nextButton" data-nav="{PAYMENT_URL}">Next</button>
    """
)

ATTENDEES_NONE_ENABLED_HTML = page(
    f"""
    <table class="bm-attendees"><tbody>
      <tr><td><input type="checkbox" name="attendee" value="1" disabled></td><td>Sam Taylor (You)</td></tr>
    </tbody></table>
    <button id="nextButton" data-nav="{PAYMENT_URL}">Next</button>
    """
)


def payment_html(submit_target: str = CONFIRMATION_URL) -> str:
    return page(
        f"""
        <h2>Payment</h2>
        <div class="bm-stored-card">
          <label><input type="radio" name="PaymentMethod" value="card-1"> Visa ending 4242</label>
        </div>
        <button id="submit" data-nav="{submit_target}">Place My Order</button>
        """
    )


CONFIRMATION_HTML = page(
    """
    <h2>Thank you!</h2>
    <p>Your court has been booked.</p>
    <p>Confirmation #: UBC-48213</p>
    """
)

ORDER_ERROR_HTML = page(
    """
    <h2>Payment</h2>
    <div class="validation-summary-errors"><ul><li>No spots remaining for this time.</li></ul></div>
    """
)


def landing(driver: Any) -> str:
    return LANDING_HTML if "logged_in" in driver.flags else LOGGED_OUT_LANDING_HTML


def portal_pages(replacements: dict[str, Any] | None = None) -> dict[str, Any]:
    """The full portal, with any URL -> page replacements applied."""
    pages: dict[str, Any] = {
        LANDING_URL: landing,
        PORTAL_LOGIN_URL: PORTAL_LOGIN_HTML,
        IDP_LOGIN_URL: IDP_LOGIN_HTML,
        COURT_1_URL: COURT_1_HTML,
        COURT_2_URL: COURT_2_HTML,
        COURT_3_URL: COURT_3_HTML,
        RESERVE_URL: reserve_html(),
        MIDFLOW_LOGIN_URL: MIDFLOW_LOGIN_HTML,
        ATTENDEES_URL: ATTENDEES_HTML,
        PAYMENT_URL: payment_html(),
        CONFIRMATION_URL: CONFIRMATION_HTML,
        ORDER_ERROR_URL: ORDER_ERROR_HTML,
        PORTAL_HOME_URL: page("<h1>Welcome back</h1>"),
    }
    pages.update(replacements or {})
    return pages
