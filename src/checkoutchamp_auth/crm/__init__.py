from .driver import BrowserDriver, PlaywrightBrowserDriver
from .extractor import (
    EmbeddedDataExtractor,
    RegexEmbeddedDataExtractor,
    extract_session_cookies,
    get_extractor,
)
from .harvest import harvest_auth_bundle
from .selectors import CrmSelectors
from .verifier import LoginState, LoginVerifier

__all__ = [
    "BrowserDriver",
    "PlaywrightBrowserDriver",
    "CrmSelectors",
    "LoginState",
    "LoginVerifier",
    "EmbeddedDataExtractor",
    "RegexEmbeddedDataExtractor",
    "extract_session_cookies",
    "get_extractor",
    "harvest_auth_bundle",
]
