from __future__ import annotations


class HarvestError(RuntimeError):
    """
    Base class for failures that abort a session harvest.

    The API maps any of these to a 500 with `str(exc)` as the message.
    """


class ConfigurationError(HarvestError):
    """Required configuration (usually the CRM credentials) is missing or invalid."""


class NavigationError(HarvestError):
    """A page navigation failed (DNS, connection reset, aborted load, ...)."""


class NavigationTimeout(NavigationError):
    """A page navigation did not reach the requested load state in time."""


class ElementNotFound(HarvestError):
    """A login form element never appeared on the page."""


class FillTimeout(HarvestError):
    """A login form element was present but could not be filled in time."""


class LoginFailedError(HarvestError):
    """Login could not be confirmed, even after the fallback dashboard navigation."""


class BrowserError(HarvestError):
    """The browser could not be started, or stopped answering outside of navigation and form filling."""
