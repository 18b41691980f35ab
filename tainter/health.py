"""Liveness endpoint served alongside the reconciler."""

import threading

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from tainter.logging_config import get_logger

logger = get_logger(__name__)

app = FastAPI(title="tainter", docs_url=None, redoc_url=None, openapi_url=None)


@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "healthy"


class HealthServer:
    """Runs the liveness endpoint in a daemon thread."""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_config=None, access_log=False)
        )
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        logger.info(f"Starting health endpoint on {self.host}:{self.port}")
        self._thread = threading.Thread(target=self._server.run, name="health", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._server.should_exit = True
