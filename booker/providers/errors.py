"""
Failure taxonomy for the browser-driven portal workflow.

Scanner failures are recovered by the provider (degraded result), booking
failures are converted to a failed BookingResult, and authentication failures
end whichever operation triggered them.
"""


class PortalError(Exception):
    """Base class for every expected failure while driving the portal."""


class AuthenticationTimeout(PortalError):
    """Credential fields or the post-login redirect chain never settled."""


class CredentialFieldNotFound(AuthenticationTimeout):
    """The username/password inputs did not appear within the login budget."""


class SelectorNotFound(PortalError):
    """An expected affordance (slot, attendee, payment, next button) never appeared."""


class StepNavigationFailure(PortalError):
    """An expected URL transition did not happen."""


class PortalValidationError(PortalError):
    """The portal itself reported a booking-side validation failure."""
