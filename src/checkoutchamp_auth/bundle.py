from __future__ import annotations

from datetime import datetime
from typing import Optional

from .config import CrmConfig
from .models import (
    AuthBundle,
    BundleEndpoints,
    BundleHeaders,
    EmbeddedAuthData,
    SessionCookies,
    SessionInfo,
)
from .util.dates import iso_utc_timestamp


def build_auth_bundle(
    *,
    cookies: SessionCookies,
    embedded: EmbeddedAuthData,
    username: str,
    crm: CrmConfig,
    user_agent: str,
    now: Optional[datetime] = None,
) -> AuthBundle:
    """
    Assemble the response for API callers from what the harvest found.

    A missing company id falls back to `crm.fallback_company_id`. A missing CSRF token stays None;
    callers must see that it is absent rather than get a made-up value.
    """
    company_id = embedded.company_id or crm.fallback_company_id

    return AuthBundle(
        cookies=cookies,
        headers=BundleHeaders(
            company_id=company_id,
            csrf_token=embedded.csrf_token or None,
            user_agent=user_agent,
            referer=crm.referer,
            origin=crm.origin,
        ),
        endpoints=BundleEndpoints(
            base_url=crm.base_url,
            login_url=crm.login_url,
            data_endpoint=crm.data_endpoint,
            chart_endpoint=crm.chart_endpoint,
        ),
        session_info=SessionInfo(
            timestamp=iso_utc_timestamp(now),
            username=username,
            company_id=company_id,
            session_timeout_minutes=crm.session_timeout_minutes,
        ),
    )
