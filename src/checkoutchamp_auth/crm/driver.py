from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from ..config import BrowserConfig, CrmCredentials
from ..errors import BrowserError, ElementNotFound, FillTimeout, NavigationError, NavigationTimeout
from .selectors import CrmSelectors


logger = logging.getLogger(__name__)


class BrowserDriver(Protocol):
    """
    What the login/harvest steps need from a browser.

    `PlaywrightBrowserDriver` is the real one; tests drive the pipeline with a fake.
    """

    def navigate(self, url: str, *, wait_until: str, timeout_ms: int) -> None: ...

    def fill_and_submit(
        self,
        selectors: CrmSelectors,
        creds: CrmCredentials,
        *,
        fill_timeout_ms: int,
        navigation_timeout_ms: int,
    ) -> None: ...

    def current_url(self) -> str: ...

    def has_text(self, text: str) -> bool: ...

    def wait(self, ms: int) -> None: ...

    def read_cookies(self) -> list[dict[str, Any]]: ...

    def evaluate(self, expression: str) -> Any: ...

    def save_debug(self, debug_dir: str, name_prefix: str) -> None: ...

    def release(self) -> None: ...


class PlaywrightBrowserDriver:
    """
    One headless Chromium + one fresh context + one page, owned by a single harvest.

    Nothing is shared between instances: every `acquire()` starts its own Playwright driver process.
    """

    def __init__(self, *, playwright, browser, context, page) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._released = False

    @classmethod
    def acquire(cls, cfg: BrowserConfig) -> "PlaywrightBrowserDriver":
        try:
            pw = sync_playwright().start()
        except PlaywrightError as e:
            raise BrowserError(f"Playwright failed to start: {e.message}") from e
        browser = None
        try:
            browser = pw.chromium.launch(
                headless=cfg.headless,
                args=list(cfg.launch_args),
                slow_mo=int(cfg.slow_mo_ms or 0),
            )
            context = browser.new_context(user_agent=cfg.user_agent)
            page = context.new_page()
        except Exception as e:
            # Don't leak a half-started browser if launch/context creation fails.
            if browser is not None:
                try:
                    browser.close()
                except Exception:
                    logger.debug("Failed to close browser after launch error.", exc_info=True)
            pw.stop()
            if isinstance(e, PlaywrightError):
                raise BrowserError(f"Browser launch failed: {e.message}") from e
            raise

        logger.debug("Browser launched (headless=%s)", cfg.headless)
        return cls(playwright=pw, browser=browser, context=context, page=page)

    def navigate(self, url: str, *, wait_until: str = "domcontentloaded", timeout_ms: int = 30_000) -> None:
        try:
            self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Timed out after {timeout_ms}ms loading {url}") from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e.message}") from e

    def fill_and_submit(
        self,
        selectors: CrmSelectors,
        creds: CrmCredentials,
        *,
        fill_timeout_ms: int = 5_000,
        navigation_timeout_ms: int = 20_000,
    ) -> None:
        self._fill(selectors.username_input, creds.username, timeout_ms=fill_timeout_ms)
        self._fill(selectors.password_input, creds.password, timeout_ms=fill_timeout_ms)

        # Some logins only swap the DOM instead of navigating; a missing navigation is fine.
        try:
            with self._page.expect_navigation(wait_until="networkidle", timeout=navigation_timeout_ms):
                self._click(selectors.submit_button, timeout_ms=fill_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("No navigation within %sms after submit; continuing.", navigation_timeout_ms)

    def _fill(self, selector: str, value: str, *, timeout_ms: int) -> None:
        try:
            self._page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementNotFound(f"Login form field not found: {selector}") from e
        try:
            self._page.fill(selector, value, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise FillTimeout(f"Timed out after {timeout_ms}ms filling {selector}") from e

    def _click(self, selector: str, *, timeout_ms: int) -> None:
        try:
            self._page.click(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementNotFound(f"Login button not clickable: {selector}") from e

    def current_url(self) -> str:
        return self._page.url or ""

    def has_text(self, text: str) -> bool:
        """
        Case-insensitive substring match anywhere in the body (same as a `text=` selector).
        """
        try:
            return self._page.locator("body").get_by_text(text, exact=False).count() > 0
        except PlaywrightError:
            logger.debug("Text lookup failed (text=%r).", text, exc_info=True)
            return False

    def wait(self, ms: int) -> None:
        try:
            self._page.wait_for_timeout(ms)
        except PlaywrightError as e:
            raise BrowserError(f"Page closed while waiting: {e.message}") from e

    def read_cookies(self) -> list[dict[str, Any]]:
        try:
            return [dict(c) for c in self._context.cookies()]
        except PlaywrightError as e:
            raise BrowserError(f"Could not read cookies: {e.message}") from e

    def evaluate(self, expression: str) -> Any:
        try:
            return self._page.evaluate(expression)
        except PlaywrightError as e:
            raise BrowserError(f"Script evaluation failed: {e.message}") from e

    def save_debug(self, debug_dir: str, name_prefix: str) -> None:
        try:
            out_dir = Path(debug_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            safe = re.sub(r"[^a-zA-Z0-9_-]+", "_", name_prefix).strip("_")[:60] or "debug"
            self._page.screenshot(path=str(out_dir / f"{safe}.png"), full_page=True)
            (out_dir / f"{safe}.html").write_text(self._page.content(), encoding="utf-8")
            # Rendered text is easier to grep than the HTML when the markup changes.
            try:
                (out_dir / f"{safe}.txt").write_text(self._page.inner_text("body"), encoding="utf-8")
            except Exception:
                pass
        except Exception:
            logger.debug("Failed to save debug artifacts.", exc_info=True)

    def release(self) -> None:
        if self._released:
            return
        self._released = True

        for name, closer in (
            ("context", self._context.close),
            ("browser", self._browser.close),
            ("playwright", self._playwright.stop),
        ):
            try:
                closer()
            except Exception:
                logger.debug("Failed to close %s.", name, exc_info=True)
        logger.debug("Browser released")
