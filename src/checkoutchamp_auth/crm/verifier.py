from __future__ import annotations

import enum
import logging
from typing import Optional

from ..errors import NavigationError
from .driver import BrowserDriver


logger = logging.getLogger(__name__)


class LoginState(str, enum.Enum):
    UNVERIFIED = "unverified"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class LoginVerifier:
    """
    Decide whether the submitted login actually produced a session.

    The post-login redirect is not always reliable, so a page-content check backs up the URL check,
    and one direct navigation to the dashboard is tried before giving up.
    """

    def __init__(
        self,
        driver: BrowserDriver,
        *,
        dashboard_url: str,
        dashboard_path: str = "/dashboard",
        marker_text: str = "reports",
        settle_ms: int = 2_000,
        fallback_timeout_ms: int = 20_000,
    ) -> None:
        self.driver = driver
        self.dashboard_url = dashboard_url
        self.dashboard_path = dashboard_path
        self.marker_text = marker_text
        self.settle_ms = settle_ms
        self.fallback_timeout_ms = fallback_timeout_ms

        self.state = LoginState.UNVERIFIED
        self.fallback_attempted = False
        self.fallback_error: Optional[NavigationError] = None

    def looks_logged_in(self) -> bool:
        if self.dashboard_path in self.driver.current_url():
            return True
        return self.driver.has_text(self.marker_text)

    def verify(self) -> LoginState:
        if self.state is not LoginState.UNVERIFIED:
            return self.state

        self.driver.wait(self.settle_ms)
        if self.looks_logged_in():
            self.state = LoginState.CONFIRMED
            return self.state

        logger.info("Dashboard not detected after submit; trying %s directly", self.dashboard_url)
        self.fallback_attempted = True
        try:
            self.driver.navigate(self.dashboard_url, wait_until="networkidle", timeout_ms=self.fallback_timeout_ms)
        except NavigationError as e:
            # Re-check anyway; a slow dashboard can still have rendered enough.
            self.fallback_error = e
            logger.warning("Fallback dashboard navigation failed: %s", e)

        self.state = LoginState.CONFIRMED if self.looks_logged_in() else LoginState.FAILED
        return self.state
