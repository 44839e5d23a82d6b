# Copyright 2025 Roger Cibrian
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

"""JSON HTTP API for MAVT.

A FastAPI application exposing the tracker to dashboards and scripts,
served by uvicorn from a background thread of the daemon. Route handlers
are plain functions, so FastAPI runs them in its worker threadpool and
they may run concurrently with the scheduler's background checks.

Routes:

    GET     /api/apps                    Tracked apps
    GET     /api/updates?since=24h       Updates across apps within a window
    GET     /api/health                  Liveness and tracked app count
    GET     /api/search?q=...&limit=10   Catalog search with tracking flags
    POST    /api/track                   {"bundle_id": "..."} start tracking
    DELETE  /api/track                   {"bundle_id": "..."} stop tracking
    GET     /api/history?bundle_id=...   Version history of one app
    GET     /api/last-update             Time of the most recent update
    POST    /api/check                   Run a check now

Errors are returned as {"error": "..."} with these status codes:

- 400: missing/invalid parameters or body, unusable bundle ID
- 404: unknown route, app not found in the catalog or not tracked
- 405: known route, wrong method
- 502: catalog unreachable
- 500: storage failures

Example:
    ```python
    server = ApiServer(tracker, "127.0.0.1", 8080)
    server.start()
    ...
    server.shutdown()
    ```
"""

from __future__ import annotations

from datetime import UTC, datetime
import socket
import threading
import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse, Response
import uvicorn

from mavt import __version__
from mavt.config import parse_duration
from mavt.exceptions import (
    AppNotFoundError,
    ConfigError,
    InvalidIdentifierError,
    MAVTError,
    NetworkError,
)
from mavt.logging import Logger, get_global_logger, sanitize_for_log
from mavt.tracker import Tracker

# Checked in order; the first matching class decides the status code.
ERROR_STATUS: tuple[tuple[type[MAVTError], int], ...] = (
    (InvalidIdentifierError, 400),
    (ConfigError, 400),
    (AppNotFoundError, 404),
    (NetworkError, 502),
)

router = APIRouter(prefix="/api", tags=["MAVT"])


class TrackRequest(BaseModel):
    """Body of POST and DELETE /api/track."""

    bundle_id: str = Field(..., min_length=1, description="Bundle ID of the app")


def get_tracker(request: Request) -> Tracker:
    return request.app.state.tracker


def get_logger(request: Request) -> Logger:
    return request.app.state.logger


TrackerDep = Annotated[Tracker, Depends(get_tracker)]
LoggerDep = Annotated[Logger, Depends(get_logger)]


def status_for(err: MAVTError) -> int:
    """Map a MAVT error to its HTTP status code (500 when unlisted)."""
    for cls, status in ERROR_STATUS:
        if isinstance(err, cls):
            return status
    return 500


# -------------------------------
# Routes
# -------------------------------


@router.get("/apps")
def list_apps(tracker: TrackerDep) -> list[dict[str, Any]]:
    return [app.to_dict() for app in tracker.get_tracked_apps()]


@router.get("/updates")
def recent_updates(tracker: TrackerDep, since: str = "24h") -> list[dict[str, Any]]:
    window = parse_duration(since)
    return [u.to_dict() for u in tracker.get_recent_updates(window)]


@router.get("/health")
def health(tracker: TrackerDep) -> Response:
    try:
        apps = tracker.get_tracked_apps()
    except MAVTError as err:
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "error": str(err)}
        )
    return JSONResponse(
        content={
            "status": "healthy",
            "version": __version__,
            "tracked_apps": len(apps),
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )


@router.get("/search")
def search(
    tracker: TrackerDep,
    q: Annotated[str, Query(description="Search term")] = "",
    limit: Annotated[str | None, Query(description="Maximum results")] = None,
) -> list[dict[str, Any]]:
    """Search the catalog. A limit that is not an integer means no limit."""
    term = q.strip()
    if not term:
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    try:
        max_results = int(limit) if limit is not None else None
    except ValueError:
        max_results = None
    return [r.to_dict() for r in tracker.search(term, max_results)]


@router.post("/track")
def track(body: TrackRequest, tracker: TrackerDep, logger: LoggerDep) -> dict[str, Any]:
    app = tracker.track_app(body.bundle_id)
    logger.info("HTTP", f"Tracking app via API: {sanitize_for_log(body.bundle_id)}")
    return {
        "success": True,
        "bundle_id": body.bundle_id,
        "message": "App successfully added to tracking",
        "app": app.to_dict(),
    }


@router.delete("/track")
def untrack(
    body: TrackRequest, tracker: TrackerDep, logger: LoggerDep
) -> dict[str, Any]:
    if not tracker.remove_app(body.bundle_id):
        raise HTTPException(
            status_code=404, detail=f"App is not tracked: {body.bundle_id}"
        )
    logger.info(
        "HTTP",
        f"Removed app from tracking via API: {sanitize_for_log(body.bundle_id)}",
    )
    return {
        "success": True,
        "bundle_id": body.bundle_id,
        "message": "App successfully removed from tracking",
    }


@router.get("/history")
def history(
    tracker: TrackerDep, bundle_id: Annotated[str, Query()] = ""
) -> list[dict[str, Any]]:
    if not bundle_id:
        raise HTTPException(
            status_code=400, detail="Query parameter 'bundle_id' is required"
        )
    return [u.to_dict() for u in tracker.get_version_history(bundle_id)]


@router.get("/last-update")
def last_update(tracker: TrackerDep) -> dict[str, Any]:
    latest = tracker.last_update_time()
    return {
        "last_update": latest.isoformat() if latest else None,
        "tracked_apps": len(tracker.get_tracked_apps()),
        "has_updates": latest is not None,
    }


@router.post("/check")
def check_now(tracker: TrackerDep) -> dict[str, Any]:
    updates = tracker.check_for_updates()
    return {"count": len(updates), "updates": [u.to_dict() for u in updates]}


# -------------------------------
# Application
# -------------------------------


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as {"error": "..."} with a matching status code."""

    @app.exception_handler(MAVTError)
    async def _mavt_error_handler(request: Request, exc: MAVTError) -> Response:
        status = status_for(exc)
        if status >= 500:
            app.state.logger.warning(
                "HTTP",
                f"{request.method} {request.url.path} failed: "
                f"{sanitize_for_log(str(exc))}",
            )
        return JSONResponse(status_code=status, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> Response:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=dict(exc.headers or {}),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> Response:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400, content={"error": f"Invalid request: {problems}"}
        )


def create_app(tracker: Tracker, logger: Logger | None = None) -> FastAPI:
    """Build the API application bound to a tracker.

    Args:
        tracker: Tracker serving the requests.
        logger: Logger for request failures. Defaults to the global logger.

    Returns:
        A FastAPI app ready for uvicorn or a test client.

    """
    app = FastAPI(
        title="MAVT",
        description="Mac App Store version tracker",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.tracker = tracker
    app.state.logger = logger or get_global_logger()
    register_exception_handlers(app)
    app.include_router(router)
    return app


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, port), family=family)


class ApiServer:
    """The API application served by uvicorn in a background thread.

    Attributes:
        tracker: Tracker serving the requests.
        app: The FastAPI application.
    """

    def __init__(
        self,
        tracker: Tracker,
        host: str = "0.0.0.0",
        port: int = 8080,
        logger: Logger | None = None,
    ):
        """Bind the listening socket (port 0 picks a free port).

        Raises:
            OSError: If the address cannot be bound.

        """
        self.tracker = tracker
        self._logger = logger or get_global_logger()
        self.app = create_app(tracker, self._logger)
        self._sock = _bind(host, port)
        self._server = uvicorn.Server(
            uvicorn.Config(
                self.app,
                host=host,
                port=port,
                log_config=None,
                log_level="warning",
                access_log=False,
            )
        )
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._sock.getsockname()[:2]
        return str(host), int(port)

    def start(self) -> None:
        """Serve requests in a background daemon thread.

        Returns once uvicorn is accepting connections.
        """
        host, port = self.address
        self._logger.info("HTTP", f"Starting HTTP server on http://{host}:{port}")
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [self._sock]},
            name="mavt-http",
            daemon=True,
        )
        self._thread.start()
        while not self._server.started and self._thread.is_alive():
            time.sleep(0.01)

    def shutdown(self) -> None:
        """Stop serving and close the socket."""
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join()
        self._sock.close()
