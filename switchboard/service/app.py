# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
FastAPI application exposing the browser automation service over HTTP.

RemoteBrowserService is the matching client. Error mapping:

- unknown session          -> 404
- unknown action           -> 400, reason ``unknown_action``
- element/parameter errors -> 422, reason such as ``element_not_visible``
- service failures         -> 500

Example Usage:
    ```bash
    uvicorn switchboard.service.app:app --host 0.0.0.0 --port 3001
    ```

    ```bash
    curl -X POST http://localhost:3001/session/execute \\
      -H "Content-Type: application/json" \\
      -d '{"session_id": "...", "action": "navigate", "params": {"url": "https://example.com"}}'
    ```
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from switchboard import __version__
from switchboard.browser.service import BrowserService, PlaywrightBrowserService
from switchboard.config import get_config
from switchboard.exceptions import (
    BrowserActionError,
    BrowserError,
    SessionNotFoundError,
    UnknownActionError,
)
from switchboard.service.models import (
    ActionRequest,
    ActionResponse,
    ErrorResponse,
    HealthResponse,
    SessionCreateResponse,
    SessionDestroyRequest,
    SessionDestroyResponse,
)
from switchboard.utils.logger import logger


def _browser_error_response(exc: BrowserError) -> JSONResponse:
    if isinstance(exc, SessionNotFoundError):
        status_code, reason = status.HTTP_404_NOT_FOUND, "session_not_found"
    elif isinstance(exc, UnknownActionError):
        status_code, reason = status.HTTP_400_BAD_REQUEST, "unknown_action"
    elif isinstance(exc, BrowserActionError):
        status_code, reason = 422, exc.reason
    else:
        status_code, reason = status.HTTP_500_INTERNAL_SERVER_ERROR, "browser_error"

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            message=str(exc),
            reason=reason,
        ).model_dump(),
    )


def create_app(service: Optional[BrowserService] = None) -> FastAPI:
    """
    Build the application.

    Args:
        service: Browser service to expose. Defaults to an in-process
            PlaywrightBrowserService created at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting browser automation service...")
        if app.state.service is None:
            app.state.service = PlaywrightBrowserService(get_config().browser)
        app.state.start_time = time.time()
        logger.info("Browser automation service started")

        yield

        logger.info("Shutting down browser automation service...")
        await app.state.service.close()
        logger.info("Browser automation service shut down")

    app = FastAPI(
        title="Switchboard Browser Service",
        description="Session-scoped browser automation returning semantic action surfaces.",
        version=__version__,
        lifespan=lifespan,
        license_info={
            "name": "Apache 2.0",
            "url": "https://www.apache.org/licenses/LICENSE-2.0.html",
        },
    )
    app.state.service = service
    app.state.start_time = time.time()

    @app.exception_handler(BrowserError)
    async def browser_exception_handler(request: Request, exc: BrowserError):
        logger.warning(f"[BROWSER] {request.url.path}: {exc}")
        return _browser_error_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                details={"exception": str(exc)},
            ).model_dump(),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        browser = app.state.service
        return HealthResponse(
            status="healthy",
            version=__version__,
            uptime_seconds=time.time() - app.state.start_time,
            active_sessions=len(getattr(browser, "sessions", None) or {}),
        )

    @app.post("/session/create", response_model=SessionCreateResponse, tags=["Sessions"])
    async def create_session():
        session_id = await app.state.service.create_session()
        return SessionCreateResponse(session_id=session_id)

    @app.post("/session/execute", response_model=ActionResponse, tags=["Sessions"])
    async def execute_action(request: ActionRequest):
        """
        Run one action and return the page's recomputed action surface.

        **Actions:** navigate, type_text, click_element, get_surface
        """
        observation = await app.state.service.execute_action(
            request.session_id, request.action, request.params
        )
        return ActionResponse(**observation.to_dict())

    @app.post("/session/destroy", response_model=SessionDestroyResponse, tags=["Sessions"])
    async def destroy_session(request: SessionDestroyRequest):
        destroyed = await app.state.service.destroy_session(request.session_id)
        if not destroyed:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session not found: {request.session_id}",
            )
        return SessionDestroyResponse(session_id=request.session_id, destroyed=True)

    return app


app = create_app()
