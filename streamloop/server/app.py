"""FastAPI app creation, global state, and error mapping."""

import logging
import os
from typing import Optional

import yaml
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ..app import StreamLoop
from ..errors import (
    ProviderError,
    ProviderOverloadedError,
    RateLimitedError,
    StreamLoopError,
)

logger = logging.getLogger(__name__)

_config_path = os.getenv("STREAMLOOP_CONFIG", "config.yaml")

_app: Optional[StreamLoop] = None


def _try_load_app():
    """Attempt to load StreamLoop from config. Silent if config missing."""
    global _app
    try:
        if os.path.exists(_config_path):
            _app = StreamLoop(_config_path)
            logger.info(f"StreamLoop loaded from {_config_path}")
        else:
            logger.warning(f"Config not found: {_config_path}")
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config: {e}")
        _app = None


def require_app() -> StreamLoop:
    """Raise 503 if app is not configured. Lazy-loads on first call."""
    if _app is None:
        _try_load_app()
    if _app is None:
        raise HTTPException(503, "Not configured. Set STREAMLOOP_CONFIG to a config file.")
    return _app


def set_app(new_app: Optional[StreamLoop]):
    """Set the global _app instance."""
    global _app
    _app = new_app


def get_app_instance() -> Optional[StreamLoop]:
    """Get the current global _app instance (may be None)."""
    return _app


def status_for_error(error: StreamLoopError) -> int:
    """HTTP status a classified error is reported with"""
    if isinstance(error, RateLimitedError):
        return 429
    if isinstance(error, ProviderOverloadedError):
        return 503
    return 502


async def _streamloop_error_handler(request: Request, exc: StreamLoopError):
    status = status_for_error(exc)
    headers = {}
    if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
        headers["Retry-After"] = str(int(exc.retry_after))
    level = logging.WARNING if isinstance(exc, ProviderError) and exc.retryable else logging.ERROR
    logger.log(level, f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"error": exc.to_dict()}, headers=headers)


# --- FastAPI app creation ---

def create_api(app: Optional[StreamLoop] = None) -> FastAPI:
    """Create and configure the FastAPI app with routes."""
    if app is not None:
        set_app(app)

    _api = FastAPI(title="StreamLoop", version="0.1.0")
    _api.add_exception_handler(StreamLoopError, _streamloop_error_handler)

    from .routes import router
    _api.include_router(router)
    return _api
