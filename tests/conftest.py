from __future__ import annotations

import sys
from typing import Any, Optional
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from checkoutchamp_auth.config import ApiConfig, AppConfig, BrowserConfig, CrmConfig  # noqa: E402


BASE = "https://crm.checkoutchamp.com"
DASHBOARD = f"{BASE}/dashboard/"


def pytest_configure(config: Any) -> None:
    config.addinivalue_line(
        "markers",
        "browser: live smoke tests that launch Chromium against the real CRM (needs credentials)",
    )


class FakeDriver:
    """
    In-memory stand-in for PlaywrightBrowserDriver.

    Page state is just (url, body text). `pages` maps a navigated URL to where it lands;
    `fail_on` maps a method name to the exception it should raise.
    """

    def __init__(
        self,
        *,
        after_submit: tuple[str, str] = (DASHBOARD, "Dashboard Reports Orders"),
        pages: Optional[dict[str, tuple[str, str]]] = None,
        cookies: Optional[list[dict[str, Any]]] = None,
        scripts: Optional[list[str]] = None,
        fail_on: Optional[dict[str, Exception]] = None,
        navigate_errors: Optional[dict[str, Exception]] = None,
    ) -> None:
        self.url = "about:blank"
        self.text = ""
        self.after_submit = after_submit
        self.pages = pages or {}
        self.cookies = cookies if cookies is not None else []
        self.scripts = scripts if scripts is not None else []
        self.fail_on = fail_on or {}
        self.navigate_errors = navigate_errors or {}

        self.calls: list[tuple] = []
        self.release_count = 0
        self.waited_ms: list[int] = []
        self.debug_saves: list[tuple[str, str]] = []

    def _maybe_fail(self, name: str) -> None:
        exc = self.fail_on.get(name)
        if exc is not None:
            raise exc

    def navigate(self, url: str, *, wait_until: str, timeout_ms: int) -> None:
        self.calls.append(("navigate", url, wait_until, timeout_ms))
        self._maybe_fail("navigate")
        if url in self.navigate_errors:
            raise self.navigate_errors[url]
        self.url, self.text = self.pages.get(url, (url, ""))

    def fill_and_submit(self, selectors, creds, *, fill_timeout_ms: int, navigation_timeout_ms: int) -> None:
        self.calls.append(("fill_and_submit", creds.username, fill_timeout_ms, navigation_timeout_ms))
        self._maybe_fail("fill_and_submit")
        self.url, self.text = self.after_submit

    def current_url(self) -> str:
        self._maybe_fail("current_url")
        return self.url

    def has_text(self, text: str) -> bool:
        return text.lower() in self.text.lower()

    def wait(self, ms: int) -> None:
        self.waited_ms.append(ms)

    def read_cookies(self) -> list[dict[str, Any]]:
        self.calls.append(("read_cookies",))
        self._maybe_fail("read_cookies")
        return [dict(c) for c in self.cookies]

    def evaluate(self, expression: str) -> Any:
        self.calls.append(("evaluate", expression))
        self._maybe_fail("evaluate")
        return list(self.scripts)

    def save_debug(self, debug_dir: str, name_prefix: str) -> None:
        self.debug_saves.append((debug_dir, name_prefix))

    def release(self) -> None:
        self.release_count += 1

    def fallback_navigations(self) -> int:
        return sum(1 for c in self.calls if c[0] == "navigate" and c[1] == DASHBOARD)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        crm=CrmConfig(base_url=BASE, username="ops@example.com", password="hunter2"),
        browser=BrowserConfig(settle_ms=0),
        api=ApiConfig(token="secret-token"),
    )
