from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import load_config
from .crm.harvest import harvest_auth_bundle
from .errors import HarvestError
from .logging_config import configure_logging


logger = logging.getLogger("checkoutchamp_auth")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="checkoutchamp_auth")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="Run the auth API (POST /api/auth, GET /health)")
    serve.add_argument("--config", default="", help="Optional YAML config overriding env settings")
    serve.add_argument("--host", default="", help="Listen address (default: api.host / HOST)")
    serve.add_argument("--port", type=int, default=0, help="Listen port (default: api.port / PORT)")

    harvest = sub.add_parser("harvest", help="Log in once and print the auth bundle JSON (no server)")
    harvest.add_argument("--config", default="", help="Optional YAML config overriding env settings")
    harvest.add_argument("--headful", action="store_true", help="Run browser headful (debug)")
    harvest.add_argument(
        "--debug-dir",
        default="",
        help="Save screenshot/HTML/text here if login cannot be confirmed (default: browser.debug_dir).",
    )
    harvest.add_argument("--out", default="", help="Write the bundle JSON to this file instead of stdout.")

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    cfg = load_config(args.config or None)
    configure_logging(
        level=cfg.logging.level,
        file_path=cfg.logging.file_path or None,
        secrets=(cfg.crm.password, cfg.api.token),
    )

    if args.cmd == "serve":
        import uvicorn

        from .server import create_app

        host = args.host or cfg.api.host
        port = args.port or cfg.api.port
        logger.info("CheckoutChamp Auth API running on %s:%s", host, port)
        logger.info('Usage: POST /api/auth with header "X-API-Token: <API_TOKEN>"')
        uvicorn.run(create_app(cfg), host=host, port=port, log_config=None)
        return 0

    if args.cmd == "harvest":
        browser_updates: dict = {}
        if args.headful:
            browser_updates["headless"] = False
        if args.debug_dir:
            browser_updates["debug_dir"] = args.debug_dir
        if browser_updates:
            cfg = cfg.model_copy(update={"browser": cfg.browser.model_copy(update=browser_updates)})

        try:
            bundle = harvest_auth_bundle(cfg)
        except HarvestError as e:
            print(f"❌ harvest failed: {e}")
            return 1
        except Exception as e:
            logger.debug("Unexpected harvest failure.", exc_info=True)
            print(f"❌ harvest failed: {type(e).__name__}: {e}")
            return 1

        payload = json.dumps(bundle.to_json_dict(), indent=2)
        if args.out:
            out = Path(args.out)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(payload + "\n", encoding="utf-8")
            print(f"✅ Auth bundle written: {out}")
        else:
            print(payload)
        return 0

    raise AssertionError("Unhandled command")
