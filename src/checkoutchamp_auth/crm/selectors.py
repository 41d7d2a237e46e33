from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CrmSelectors:
    """
    The CRM login page is plain server-rendered HTML; selectors may still change over time.
    Keep all UI selectors/text hooks here for easy maintenance.
    """

    # Login
    username_input: str = 'input[name="userName"]'
    password_input: str = 'input[name="password"]'
    submit_button: str = "#loginBtn"

    # Text that only shows up once logged in (the Reports menu).
    logged_in_marker_text: str = "reports"
