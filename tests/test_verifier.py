from __future__ import annotations

from conftest import BASE, DASHBOARD, FakeDriver

from checkoutchamp_auth.crm.verifier import LoginState, LoginVerifier
from checkoutchamp_auth.errors import NavigationTimeout


def _verifier(driver: FakeDriver) -> LoginVerifier:
    return LoginVerifier(
        driver,
        dashboard_url=DASHBOARD,
        dashboard_path="/dashboard",
        settle_ms=2_000,
        fallback_timeout_ms=20_000,
    )


def _land(driver: FakeDriver, url: str, text: str = "") -> None:
    driver.url, driver.text = url, text


def test_dashboard_url_confirms_without_fallback() -> None:
    d = FakeDriver()
    _land(d, f"{BASE}/dashboard/?welcome=1")
    v = _verifier(d)

    assert v.verify() is LoginState.CONFIRMED
    assert d.fallback_navigations() == 0
    assert v.fallback_attempted is False
    assert d.waited_ms == [2_000]


def test_reports_text_confirms_when_url_is_elsewhere() -> None:
    d = FakeDriver()
    _land(d, f"{BASE}/home/", "Orders  Customers  REPORTS  Settings")

    assert _verifier(d).verify() is LoginState.CONFIRMED
    assert d.fallback_navigations() == 0


def test_fallback_navigation_can_confirm() -> None:
    d = FakeDriver(pages={DASHBOARD: (DASHBOARD, "Reports")})
    _land(d, f"{BASE}/", "Sign in")
    v = _verifier(d)

    assert v.verify() is LoginState.CONFIRMED
    assert d.fallback_navigations() == 1
    assert v.fallback_attempted is True
    assert ("navigate", DASHBOARD, "networkidle", 20_000) in d.calls


def test_single_fallback_then_failed() -> None:
    # The CRM bounces an unauthenticated dashboard request back to the login page.
    d = FakeDriver(pages={DASHBOARD: (f"{BASE}/", "Username Password Login")})
    _land(d, f"{BASE}/", "Invalid login")
    v = _verifier(d)

    assert v.verify() is LoginState.FAILED
    assert d.fallback_navigations() == 1

    # Terminal: asking again does not navigate again.
    assert v.verify() is LoginState.FAILED
    assert d.fallback_navigations() == 1


def test_fallback_navigation_error_is_tolerated_and_recorded() -> None:
    err = NavigationTimeout("Timed out after 20000ms loading dashboard")
    d = FakeDriver(navigate_errors={DASHBOARD: err})
    _land(d, f"{BASE}/", "")
    v = _verifier(d)

    assert v.verify() is LoginState.FAILED
    assert v.fallback_error is err
    assert d.fallback_navigations() == 1


def test_fallback_error_but_page_rendered_still_confirms() -> None:
    d = FakeDriver()
    _land(d, f"{BASE}/", "")

    def _navigate_then_fail(url, *, wait_until, timeout_ms):
        d.calls.append(("navigate", url, wait_until, timeout_ms))
        # networkidle never came, but the dashboard DOM is there
        _land(d, DASHBOARD, "Reports")
        raise NavigationTimeout("slow")

    d.navigate = _navigate_then_fail  # type: ignore[method-assign]

    assert _verifier(d).verify() is LoginState.CONFIRMED
    assert d.fallback_navigations() == 1
