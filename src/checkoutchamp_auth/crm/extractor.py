from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Protocol

from ..errors import ConfigurationError
from ..models import EmbeddedAuthData, SessionCookies
from .driver import BrowserDriver


logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "crmid"
REGION_COOKIE_NAME = "k_region"
EDGE_COOKIE_NAME = "__cf_bm"

# textContent of every <script> element, in document order.
SCRIPT_TEXTS_JS = "() => Array.from(document.querySelectorAll('script'), (s) => s.textContent || '')"


def _cookie_value(cookies: list[dict[str, Any]], name: str) -> Optional[str]:
    for c in cookies:
        if c.get("name") == name:
            return c.get("value") or None
    return None


def extract_session_cookies(cookies: list[dict[str, Any]]) -> SessionCookies:
    """
    Pick the three cookies API callers need; a missing (or empty) cookie becomes None.
    """
    return SessionCookies(
        crmid=_cookie_value(cookies, SESSION_COOKIE_NAME),
        k_region=_cookie_value(cookies, REGION_COOKIE_NAME),
        cf_bm=_cookie_value(cookies, EDGE_COOKIE_NAME),
        all_cookies=list(cookies),
    )


def collect_script_texts(driver: BrowserDriver) -> list[str]:
    raw = driver.evaluate(SCRIPT_TEXTS_JS) or []
    return [t for t in raw if isinstance(t, str)]


class EmbeddedDataExtractor(Protocol):
    def extract(self, script_texts: Iterable[str]) -> EmbeddedAuthData: ...


@dataclass(frozen=True)
class EmbeddedPatterns:
    """
    Regexes for one version of the CRM's inline bootstrap script.

    `construct` must capture the call's argument text in group 1; the value patterns are searched only
    inside that text and must capture the value in group 1.
    """

    construct: re.Pattern[str]
    csrf_token: re.Pattern[str]
    company_id: re.Pattern[str]


PATTERN_SETS: Mapping[str, EmbeddedPatterns] = {
    # aDom.construct({ csrfToken: '...', currentCompanyId: '4623', ... })
    "adom-v1": EmbeddedPatterns(
        construct=re.compile(r"aDom\.construct\s*\(\s*\{([^}]+)\}\s*\)"),
        csrf_token=re.compile(r"""['"]?csrfToken['"]?\s*:\s*['"]([^'"]+)['"]"""),
        company_id=re.compile(r"""['"]?currentCompanyId['"]?\s*:\s*['"](\d+)['"]"""),
    ),
}


class RegexEmbeddedDataExtractor:
    """
    Scan inline scripts for the bootstrap call and pull the CSRF token + company id out of its arguments.

    Only the first construct call in each script is considered. The first value found for each key wins.
    """

    def __init__(self, patterns: EmbeddedPatterns) -> None:
        self.patterns = patterns

    def extract(self, script_texts: Iterable[str]) -> EmbeddedAuthData:
        csrf: Optional[str] = None
        company_id: Optional[str] = None

        for text in script_texts:
            m = self.patterns.construct.search(text or "")
            if not m:
                continue
            args = m.group(1)

            if csrf is None:
                cm = self.patterns.csrf_token.search(args)
                if cm:
                    csrf = cm.group(1)
            if company_id is None:
                cm = self.patterns.company_id.search(args)
                if cm:
                    company_id = cm.group(1)

            if csrf is not None and company_id is not None:
                break

        if csrf is None or company_id is None:
            logger.info(
                "Embedded auth data incomplete (csrf_token=%s, company_id=%s)",
                "found" if csrf else "missing",
                company_id or "missing",
            )
        return EmbeddedAuthData(csrf_token=csrf, company_id=company_id)


def get_extractor(pattern_set: str) -> RegexEmbeddedDataExtractor:
    key = (pattern_set or "").strip().lower()
    patterns = PATTERN_SETS.get(key)
    if patterns is None:
        known = ", ".join(sorted(PATTERN_SETS))
        raise ConfigurationError(f"Unknown embedded pattern set {pattern_set!r} (known: {known})")
    return RegexEmbeddedDataExtractor(patterns)
