"""FastAPI application entry point for the Smart Home Admin Console."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from src.api.outbound import deliver_outbound
from src.api.websocket import ws_manager
from src.api.routes.activity import router as activity_router
from src.api.routes.security import router as security_router
from src.api.routes.simulations import router as simulations_router
from src.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from src.simulation.runner import sim_runner
from src.storage.document_store import document_store

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
# Quiet noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[SchedulingError], int] = {
    NotFoundError: 404,
    InvalidTransitionError: 409,
    ConcurrentModificationError: 409,
    ValidationError: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info(f"Starting {settings.app_name}")

    await document_store.initialize()
    sim_runner.set_emitter(deliver_outbound)
    await sim_runner.resume_in_progress()
    if settings.auto_run_due_events:
        await sim_runner.start()

    logger.info(f"{settings.app_name} is ready")
    yield

    logger.info("Shutting down...")
    await sim_runner.shutdown()
    await document_store.close()


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(security_router, prefix="/api/v1")
app.include_router(simulations_router, prefix="/api/v1")
app.include_router(activity_router, prefix="/api/v1")


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    status = next(
        (code for kind, code in _ERROR_STATUS.items() if isinstance(exc, kind)), 400
    )
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "websocket_connections": ws_manager.connection_count,
        "pending_settle_timers": len(sim_runner.pending_timers),
    }


@app.websocket("/ws/{owner_id}")
async def websocket_endpoint(websocket: WebSocket, owner_id: str):
    """Push notifications and activity entries to an admin's console."""
    await ws_manager.connect(owner_id, websocket)
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug(f"WS received: {data}")
            if data == "ping":
                await websocket.send_json({"type": "pong", "data": {}})
    except WebSocketDisconnect:
        await ws_manager.disconnect(owner_id, websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        await ws_manager.disconnect(owner_id, websocket)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
