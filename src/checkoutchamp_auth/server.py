"""
HTTP front for the harvester.

POST /api/auth runs one full browser login per request and returns the AuthBundle JSON.
GET /health is unauthenticated.
"""

from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Request, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import AppConfig
from .crm.harvest import harvest_auth_bundle
from .models import AuthBundle
from .util.dates import iso_utc_timestamp


logger = logging.getLogger(__name__)

API_TOKEN_HEADER = APIKeyHeader(name="X-API-Token", auto_error=False)

Harvester = Callable[[AppConfig], AuthBundle]


class ApiError(StarletteHTTPException):
    """HTTP error rendered as `{"error": ..., "message": ...}`."""

    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.error = error
        self.message = message


def _config(request: Request) -> AppConfig:
    return request.app.state.config


def verify_api_token(
    request: Request,
    token: Optional[str] = Security(API_TOKEN_HEADER),
) -> None:
    if not token:
        raise ApiError(401, "Unauthorized", "Missing X-API-Token header")

    expected = _config(request).api.token
    # An unset server token never matches anything.
    if not expected or not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise ApiError(403, "Forbidden", "Invalid API token")


def create_app(config: AppConfig, *, harvester: Optional[Harvester] = None) -> FastAPI:
    app = FastAPI(title="CheckoutChamp Auth API", docs_url=None, redoc_url=None)
    app.state.config = config
    app.state.harvester = harvester or harvest_auth_bundle

    if not config.api.token:
        logger.warning("API_TOKEN is not set; every /api/auth request will be rejected with 403.")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if isinstance(exc, ApiError):
            body = {"error": exc.error, "message": exc.message}
        else:
            body = {"error": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": iso_utc_timestamp()}

    # Plain `def`: FastAPI runs it in a worker thread, which the sync Playwright API requires.
    @app.post("/api/auth", dependencies=[Depends(verify_api_token)])
    def auth(request: Request) -> JSONResponse:
        logger.info("Received auth request...")
        cfg = _config(request)
        try:
            bundle = request.app.state.harvester(cfg)
        except Exception as e:
            logger.error("Auth harvest failed: %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "message": str(e)},
            )
        return JSONResponse(content=bundle.to_json_dict())

    return app
