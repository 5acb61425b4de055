"""
Centralized DOM schema for the UBC Recreation facility-booking portal.

All CSS selectors, accessible names and text phrases used by the browser
components are defined here as named constants, grouped by functional area.
Fallback chains (tried in priority order) are tuples.

Only CSS is used so the same selectors can be checked offline against saved
HTML with BeautifulSoup (see scripts/validate_selectors.py). When the portal
changes its markup, update selectors ONLY in this file.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LoginSelectors:
    """The portal's own "Login" affordance shown to anonymous visitors."""

    login_affordances: tuple[str, ...] = (
        "a#loginButton",
        "a.bm-login-link",
        "a[href*='/Login' i]",
        "button[class*='login' i]",
    )
    login_names: tuple[str, ...] = ("Login", "Log In", "Sign In")


@dataclass(frozen=True)
class IdentityProviderSelectors:
    """Selectors for the identity-provider hop (organization / CWL login)."""

    org_login_roles: tuple[str, ...] = ("button", "link")
    org_login_names: tuple[str, ...] = (
        "Organization Login",
        "Organizational Login",
        "CWL Login",
        "Campus-wide Login",
    )
    org_login_link_texts: tuple[str, ...] = ("organization", "cwl", "campus-wide")
    org_login_image_alts: tuple[str, ...] = ("cwl", "campus-wide", "organization")
    org_login_sso_links: tuple[str, ...] = (
        "a[href*='saml' i]",
        "a[href*='shibboleth' i]",
        "a[href*='/sso' i]",
    )


@dataclass(frozen=True)
class CredentialSelectors:
    """Username/password form, on the identity provider or inline in the portal."""

    username_inputs: tuple[str, ...] = (
        "input#username",
        "input[name='username']",
        "input[name='j_username']",
        "input[autocomplete='username']",
        "input[type='email']",
    )
    password_inputs: tuple[str, ...] = (
        "input#password",
        "input[name='password']",
        "input[name='j_password']",
        "input[type='password']",
    )
    submit_buttons: tuple[str, ...] = (
        "button[name='_eventId_proceed']",
        "button[type='submit']",
        "input[type='submit']",
    )
    # Matched case-insensitively against the current URL mid-booking
    login_boundary_pattern: str = r"/(account/)?(login|signin)\b|/idp/|saml|shibboleth"
    return_url_param: str = "returnUrl"


@dataclass(frozen=True)
class ResourceListSelectors:
    """The landing page listing every bookable court."""

    choose_affordances: tuple[str, ...] = (
        "a.bm-facility-choose",
        "a.bm-button[title*='choose' i]",
        "button[aria-label*='choose' i]",
        "a[aria-label*='choose' i]",
    )
    choose_names: tuple[str, ...] = ("Choose", "Select")
    # Headings searched within ancestors of a choose control
    nearby_headings: str = "h2, h3, h4, .bm-facility-name, .bm-facility-title"
    max_heading_ancestor_levels: int = 6


@dataclass(frozen=True)
class ScheduleSelectors:
    """A single resource's schedule view and its bookable markers."""

    detail_headings: tuple[str, ...] = (
        "h1.bm-facility-title",
        ".bm-facility-header h1",
        ".bm-facility-name",
        "h1",
    )
    bookable_markers: str = (
        ".bm-marker-available, [data-slot-status='available'], "
        ".available-slot, span.bm-available"
    )
    bookable_phrase: str = "Available"
    range_attributes: tuple[str, ...] = ("title", "aria-label", "data-time-range")
    # Class-name fragments that mean the marker cannot actually be clicked
    disabled_class_fragments: tuple[str, ...] = (
        "disabled",
        "unavailable",
        "booked",
        "reserved",
        "inactive",
    )
    date_attribute: str = "data-date"
    max_date_ancestor_levels: int = 8


@dataclass(frozen=True)
class ReservationSelectors:
    """Reserve button, blocking overlays and the widgets set before reserving."""

    reserve_affordances: tuple[str, ...] = (
        "button#bookEventButton",
        "a.bm-book-button",
        "button[class*='reserve' i]",
        "a[class*='reserve' i]",
    )
    reserve_names: tuple[str, ...] = ("Reserve", "Book Now", "Book")
    overlays: str = ".k-overlay, .modal-backdrop, .loading-overlay, .bm-overlay, .blockUI"
    attendee_count_controls: tuple[str, ...] = (
        "input#NumberOfAttendees",
        "input[name*='attendee' i]",
        "select[name*='attendee' i]",
        "input[id*='attendee' i]",
    )
    duration_controls: tuple[str, ...] = (
        "select[name*='duration' i]",
        "input[name*='duration' i]",
        "select[id*='duration' i]",
    )


@dataclass(frozen=True)
class AttendeeSelectors:
    """The attendee table shown after reserving."""

    rows: tuple[str, ...] = (
        "table.bm-attendees tbody tr",
        "table[id*='attendee' i] tbody tr",
        ".bm-attendee-row",
        "[class*='attendee-row']",
    )
    row_input: str = "input[type='checkbox'], input[type='radio']"
    self_marker: str = "(You)"
    next_affordances: tuple[str, ...] = (
        "button#nextButton",
        "a.bm-next",
        "button[class*='next' i]",
        "a[class*='next' i]",
    )
    next_names: tuple[str, ...] = ("Next", "Continue")


@dataclass(frozen=True)
class PaymentSelectors:
    """Payment step and the final confirmation / error page."""

    stored_payment_options: tuple[str, ...] = (
        ".bm-stored-card input[type='radio']",
        "input[type='radio'][name*='payment' i]",
        "input[type='radio'][name*='card' i]",
    )
    submit_order_affordances: tuple[str, ...] = (
        "button#submit",
        "button.bm-place-order",
        "button[class*='checkout' i]",
    )
    submit_order_names: tuple[str, ...] = ("Place My Order", "Complete", "Pay", "Submit", "Confirm")
    error_containers: tuple[str, ...] = (
        ".validation-summary-errors",
        ".field-validation-error",
        ".alert-danger",
        ".bm-error",
        "[role='alert']",
    )
    success_phrases: tuple[str, ...] = (
        "thank you",
        "confirmation",
        "successfully",
        "has been booked",
        "booking confirmed",
    )
    confirmation_patterns: tuple[str, ...] = (
        r"confirmation\s*(?:number|no\.?|#|id)?[:\s#]*([A-Z0-9-]*\d[A-Z0-9-]*)",
        r"receipt\s*(?:number|no\.?|#)?[:\s#]*([A-Z0-9-]*\d[A-Z0-9-]*)",
        r"reference[:\s#]*([A-Z0-9-]*\d[A-Z0-9-]*)",
    )


# ---- Module-level singleton instance ----
# Import and use as: from booker.providers.portal_dom_schema import DOM
# Then reference: DOM.LOGIN.login_affordances, DOM.SCHEDULE.bookable_markers, etc.


@dataclass(frozen=True)
class PortalDOMSchema:
    """Top-level container grouping all selector categories."""

    LOGIN: LoginSelectors = LoginSelectors()
    IDENTITY_PROVIDER: IdentityProviderSelectors = IdentityProviderSelectors()
    CREDENTIALS: CredentialSelectors = CredentialSelectors()
    RESOURCE_LIST: ResourceListSelectors = ResourceListSelectors()
    SCHEDULE: ScheduleSelectors = ScheduleSelectors()
    RESERVATION: ReservationSelectors = ReservationSelectors()
    ATTENDEES: AttendeeSelectors = AttendeeSelectors()
    PAYMENT: PaymentSelectors = PaymentSelectors()


DOM = PortalDOMSchema()
