from __future__ import annotations

import logging
import os
import socket
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi import Query, Path

from models.health import Health
from routers import (
    entities,
    references,
)
from config.settings import settings
from services.database import init_db, close_db
from services.exceptions import MethodNotSupportedError, PropertyReferenceError

port = int(os.environ.get("FASTAPIPORT", 8000))

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_db()
    logger.info("Database initialised (%s)", settings.ENVIRONMENT)
    yield
    await close_db()


app = FastAPI(
    title="Property References Service",
    description="FastAPI service exposing navigable hypermedia links for the properties of persisted objects.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------------------------------------------------------
# Error handling
# -----------------------------------------------------------------------------

@app.exception_handler(PropertyReferenceError)
async def property_reference_error_handler(request: Request, exc: PropertyReferenceError) -> Response:
    # Errors are scoped to the request and surface as a bare status
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    headers = {}
    if isinstance(exc, MethodNotSupportedError) and exc.allowed:
        headers["Allow"] = ", ".join(exc.allowed)
    return Response(status_code=exc.status_code, headers=headers)

# -----------------------------------------------------------------------------
# Health endpoints
# -----------------------------------------------------------------------------

def make_health(echo: Optional[str], path_echo: Optional[str]=None) -> Health:
    return Health(
        status=200,
        status_message="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        ip_address=socket.gethostbyname(socket.gethostname()),
        echo=echo,
        path_echo=path_echo
    )

@app.get("/health", response_model=Health)
def get_health_no_path(echo: str | None = Query(None, description="Optional echo string")):
    return make_health(echo=echo, path_echo=None)

@app.get("/health/{path_echo}", response_model=Health)
def get_health_with_path(
    path_echo: str = Path(..., description="Required echo in the URL path"),
    echo: str | None = Query(None, description="Optional echo string"),
):
    return make_health(echo=echo, path_echo=path_echo)

# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------
@app.get("/")
def root():
    return {"message": "Welcome to the Property References API. See /docs for OpenAPI UI."}

# -----------------------------------------------------------------------------
# Routers to exported repositories
# -----------------------------------------------------------------------------

# Registered last: their first path segment is a repository name
app.include_router(router=references.router)
app.include_router(router=entities.router)

# -----------------------------------------------------------------------------
# Entrypoint for `python main.py`
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
