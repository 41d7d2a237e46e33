from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EmbeddedAuthData(BaseModel):
    """Values scraped from inline page scripts. Both are best-effort."""

    model_config = ConfigDict(frozen=True)

    csrf_token: Optional[str] = None
    company_id: Optional[str] = None


class SessionCookies(BaseModel):
    # `__cf_bm` can't be a pydantic field name (leading underscore), so it travels as an alias.
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    crmid: Optional[str] = None
    k_region: Optional[str] = None
    cf_bm: Optional[str] = Field(default=None, alias="__cf_bm")
    all_cookies: list[dict[str, Any]] = Field(default_factory=list)


class BundleHeaders(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content_type: str = Field(default="application/x-www-form-urlencoded", alias="Content-Type")
    company_id: str = Field(alias="X-COMPANY-ID")
    csrf_token: Optional[str] = Field(default=None, alias="X-CSRF-Token")
    user_agent: str = Field(alias="User-Agent")
    referer: str = Field(alias="Referer")
    origin: str = Field(alias="Origin")


class BundleEndpoints(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str
    login_url: str
    data_endpoint: str
    chart_endpoint: str


class SessionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    username: str
    company_id: str
    session_timeout_minutes: int = 240


class AuthBundle(BaseModel):
    """
    Everything a plain HTTP client needs to call the CRM's internal report endpoints.

    Serialize with `to_json_dict()` so header/cookie names keep their wire spelling.
    """

    model_config = ConfigDict(frozen=True)

    cookies: SessionCookies
    headers: BundleHeaders
    endpoints: BundleEndpoints
    session_info: SessionInfo

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
