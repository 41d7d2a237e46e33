from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..bundle import build_auth_bundle
from ..config import AppConfig, BrowserConfig
from ..errors import LoginFailedError
from ..models import AuthBundle
from .driver import BrowserDriver, PlaywrightBrowserDriver
from .extractor import EmbeddedDataExtractor, collect_script_texts, extract_session_cookies, get_extractor
from .selectors import CrmSelectors
from .verifier import LoginState, LoginVerifier


logger = logging.getLogger(__name__)

DriverFactory = Callable[[BrowserConfig], BrowserDriver]


def harvest_auth_bundle(
    config: AppConfig,
    *,
    driver_factory: Optional[DriverFactory] = None,
    extractor: Optional[EmbeddedDataExtractor] = None,
    selectors: Optional[CrmSelectors] = None,
    now: Optional[datetime] = None,
) -> AuthBundle:
    """
    Log into the CRM with a fresh browser and return the session artifacts as an `AuthBundle`.

    Raises a `HarvestError` subclass on any fatal step. The browser is released exactly once,
    whichever step fails.
    """
    # Config problems must surface before a browser is started.
    creds = config.crm.require_credentials()
    extractor = extractor or get_extractor(config.extraction.pattern_set)
    selectors = selectors or CrmSelectors()
    factory = driver_factory or PlaywrightBrowserDriver.acquire

    crm = config.crm
    bcfg = config.browser

    driver = factory(bcfg)
    try:
        logger.info("Loading login page...")
        driver.navigate(crm.login_url, wait_until="domcontentloaded", timeout_ms=bcfg.navigation_timeout_ms)

        logger.info("Logging in...")
        driver.fill_and_submit(
            selectors,
            creds,
            fill_timeout_ms=bcfg.fill_timeout_ms,
            navigation_timeout_ms=bcfg.submit_navigation_timeout_ms,
        )

        verifier = LoginVerifier(
            driver,
            dashboard_url=crm.dashboard_url,
            dashboard_path=crm.dashboard_path,
            marker_text=selectors.logged_in_marker_text,
            settle_ms=bcfg.settle_ms,
            fallback_timeout_ms=bcfg.fallback_timeout_ms,
        )
        if verifier.verify() is not LoginState.CONFIRMED:
            if bcfg.debug_dir:
                driver.save_debug(bcfg.debug_dir, "login_not_confirmed")
            detail = f" (fallback navigation failed: {verifier.fallback_error})" if verifier.fallback_error else ""
            raise LoginFailedError(f"Login failed - could not reach dashboard{detail}")

        logger.info("Login successful")

        cookies = extract_session_cookies(driver.read_cookies())
        embedded = extractor.extract(collect_script_texts(driver))
    finally:
        driver.release()

    return build_auth_bundle(
        cookies=cookies,
        embedded=embedded,
        username=creds.username,
        crm=crm,
        user_agent=bcfg.user_agent,
        now=now,
    )
