"""FastAPI application entry point."""

import asyncio
import json
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from restaurant_pos.api.routes import api_router
from restaurant_pos.core.config import settings
from restaurant_pos.core.exceptions import register_exception_handlers
from restaurant_pos.core.rate_limit import limiter
from restaurant_pos.core.rbac import ROLE_ROOMS, token_data_from_payload
from restaurant_pos.core.security import decode_access_token
from restaurant_pos.db.base import Base
from restaurant_pos.db.session import SessionLocal, engine
from restaurant_pos.repositories.sql import SqlReservationRepository, SqlTableRepository, SqlUnitOfWork
from restaurant_pos.services import TableService, broadcaster

import restaurant_pos.models  # noqa: F401  (register models on Base.metadata)

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with its status and duration."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in ("/health", "/", "/docs", "/openapi.json"):
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        request_logger.info(f"Request: {request.method} {request.url.path} - Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {e} - Time: {time.time() - start_time:.3f}s - Client: {client_ip}"
            )
            raise

        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"Response: {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {time.time() - start_time:.3f}s - Client: {client_ip}",
        )
        return response


def provision_tables() -> None:
    """Create the default floor plan on an empty database."""
    db = SessionLocal()
    try:
        service = TableService(
            tables=SqlTableRepository(db),
            reservations=SqlReservationRepository(db),
            uow=SqlUnitOfWork(db),
            notifier=broadcaster,
        )
        service.provision_default_tables(settings.default_table_count)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Restaurant POS")

    # SQLite dev databases are created in place; PostgreSQL uses Alembic migrations
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    if settings.provision_default_tables:
        provision_tables()

    broadcaster.bind(asyncio.get_running_loop())

    yield

    broadcaster.unbind()
    logger.info("Shutting down Restaurant POS")


app = FastAPI(
    title="Restaurant POS",
    description="Orders, kitchen display, tables, reservations and inventory",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_exception_handlers(app)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with database and WebSocket checks."""
    checks = {"database": "unknown", "websocket": "unknown"}

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    checks["websocket"] = f"healthy ({broadcaster.get_connection_count()} connections)"

    return {
        "status": "ready" if all(c.startswith("healthy") for c in checks.values()) else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.websocket("/ws")
async def websocket_events(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Real-time event stream. Joins the rooms of the caller's role."""
    payload = decode_access_token(token) if token else None
    if payload is None:
        cookie_token = websocket.cookies.get("access_token")
        payload = decode_access_token(cookie_token) if cookie_token else None
    principal = token_data_from_payload(payload) if payload else None
    if principal is None:
        logger.warning("WebSocket rejected: no valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    rooms = ROLE_ROOMS[principal.role]
    if not await broadcaster.connect(websocket, rooms, user_id=principal.user_id):
        return

    try:
        await websocket.send_json({
            "event": "connected",
            "data": {"rooms": list(rooms), "user_id": principal.user_id},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        broadcaster.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error for user {principal.user_id}: {e}", exc_info=True)
        broadcaster.disconnect(websocket)
