from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigurationError


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")
_COMPANY_ID_RE = re.compile(r"^\d+$")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
)


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only config; the server is normally configured entirely through `.env`.

    A YAML file passed to `load_config()` is merged on top of this for overrides.
    """
    out: dict = {
        "crm": {
            "base_url": os.getenv("CHECKOUTCHAMP_BASE_URL", "https://crm.checkoutchamp.com"),
            "username": os.getenv("CHECKOUTCHAMP_USER", ""),
            "password": os.getenv("CHECKOUTCHAMP_PASS", ""),
            "fallback_company_id": os.getenv("CHECKOUTCHAMP_FALLBACK_COMPANY_ID", "4623"),
        },
        "browser": {
            "headless": _env_bool("HEADLESS", default=True),
            "debug_dir": os.getenv("BROWSER_DEBUG_DIR", ""),
        },
        "api": {
            "token": os.getenv("API_TOKEN", ""),
            "host": os.getenv("HOST", "0.0.0.0"),
            "port": os.getenv("PORT", "") or 3000,
        },
        "extraction": {
            "pattern_set": os.getenv("EMBEDDED_PATTERN_SET", "adom-v1"),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", ""),
        },
    }
    return out


class CrmCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password: str = Field(repr=False)


class CrmConfig(BaseModel):
    """
    Where the CRM lives and which paths the harvest and the bundle refer to.

    Paths are joined onto `base_url`; the defaults match the hosted CheckoutChamp CRM.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://crm.checkoutchamp.com"
    username: str = ""
    password: str = Field(default="", repr=False)

    login_path: str = "/"
    # Substring of the post-login URL that marks a logged-in session.
    dashboard_path: str = "/dashboard"
    dashboard_fallback_path: str = "/dashboard/"
    data_path: str = "/reports/order-details/getTable.ajax.php"
    chart_path: str = "/reports/order-details/getChart.ajax.php"
    referer_path: str = "/reports/order-details/"

    fallback_company_id: str = "4623"
    session_timeout_minutes: int = 240

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, v: str) -> str:
        base_url = (v or "").strip().rstrip("/")
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("crm.base_url must be a full URL like 'https://crm.checkoutchamp.com'")
        return base_url

    @field_validator("fallback_company_id")
    @classmethod
    def _validate_company_id(cls, v: str) -> str:
        s = str(v or "").strip()
        if not _COMPANY_ID_RE.match(s):
            raise ValueError("crm.fallback_company_id must be numeric (e.g. '4623')")
        return s

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @property
    def login_url(self) -> str:
        return self.url(self.login_path)

    @property
    def dashboard_url(self) -> str:
        return self.url(self.dashboard_fallback_path)

    @property
    def data_endpoint(self) -> str:
        return self.url(self.data_path)

    @property
    def chart_endpoint(self) -> str:
        return self.url(self.chart_path)

    @property
    def referer(self) -> str:
        return self.url(self.referer_path)

    @property
    def origin(self) -> str:
        parsed = urlparse(self.base_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    def require_credentials(self) -> CrmCredentials:
        if not self.username or not self.password:
            raise ConfigurationError("Missing CHECKOUTCHAMP_USER or CHECKOUTCHAMP_PASS environment variables")
        return CrmCredentials(username=self.username, password=self.password)


class BrowserConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    # Sandboxing is off so Chromium starts inside unprivileged containers.
    launch_args: tuple[str, ...] = ("--no-sandbox", "--disable-setuid-sandbox")
    slow_mo_ms: int = 0

    navigation_timeout_ms: int = 30_000
    submit_navigation_timeout_ms: int = 20_000
    fill_timeout_ms: int = 5_000
    settle_ms: int = 2_000
    fallback_timeout_ms: int = 20_000

    # When set, page screenshot/HTML/text are written here if login cannot be confirmed.
    debug_dir: str = ""


class ApiConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str = Field(default="", repr=False)
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)


class ExtractionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    pattern_set: str = "adom-v1"


class LoggingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    file_path: str = ""


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    crm: CrmConfig = CrmConfig()
    browser: BrowserConfig = BrowserConfig()
    api: ApiConfig = ApiConfig()
    extraction: ExtractionConfig = ExtractionConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)
