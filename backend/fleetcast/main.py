"""
Fleet Forecasting Service
Main FastAPI Application Entry Point

Builds the FastAPI app, mounts Socket.IO and owns the ForecastRuntime
through the application lifespan.

Run:
    uvicorn fleetcast.main:create_asgi_app --factory
"""

import logging
import time
from contextlib import asynccontextmanager

import socketio
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fleetcast import __version__
from fleetcast.api import prediction_router, scheduler_router
from fleetcast.config import ConfigManager
from fleetcast.logging_config import configure_logging
from fleetcast.runtime import ForecastRuntime
from fleetcast.websocket import SocketIOObserverChannel


logger = logging.getLogger(__name__)


def create_sio(config: ConfigManager) -> socketio.AsyncServer:
    """Socket.IO server for observers"""
    return socketio.AsyncServer(
        async_mode='asgi',
        cors_allowed_origins=config.get('broadcast.corsAllowedOrigins', '*'),
        logger=False,
        engineio_logger=False,
        ping_interval=config.get('broadcast.pingInterval', 25),
        ping_timeout=config.get('broadcast.pingTimeout', 60)
    )


def create_app(config: ConfigManager = None, sio: socketio.AsyncServer = None, **runtime_options) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        config: Loaded configuration (default: read from the config directory)
        sio: Socket.IO server to attach observers to
        runtime_options: Extra keyword arguments for ForecastRuntime.from_config
            (clock, rng, store)
    """
    config = config or ConfigManager()
    sio = sio or create_sio(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events - startup and shutdown"""
        channel = SocketIOObserverChannel(
            sio,
            outbox_size=config.get('broadcast.outboxSize', 100),
            overflow_policy=config.get('broadcast.overflowPolicy', 'drop_oldest')
        )
        runtime = ForecastRuntime.from_config(config, channel, **runtime_options)

        await runtime.start()
        app.state.runtime = runtime
        app.state.channel = channel
        logger.info("Fleet forecasting service ready")

        yield

        logger.info("Shutting down...")
        await runtime.stop()
        app.state.runtime = None

    app = FastAPI(
        title="Fleet Forecasting Service API",
        description="Short-horizon fleet delay forecasting and live vehicle updates",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.config = config
    app.state.sio = sio
    app.state.runtime = None

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get('system.cors.allowOrigins', ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================
    # Include API Routers
    # ============================================

    # Prediction routes: /api/predictions/performance, /api/predictions/vehicle/{id}
    app.include_router(prediction_router)

    # Scheduler routes: /api/scheduler/status
    app.include_router(scheduler_router)

    # ============================================
    # Root Endpoints
    # ============================================

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint - API information"""
        return {
            "name": "Fleet Forecasting Service",
            "version": __version__,
            "status": "operational",
            "documentation": "/docs",
            "endpoints": {
                "performance": "/api/predictions/performance",
                "vehiclePredictions": "/api/predictions/vehicle/{vehicle_id}",
                "scheduler": "/api/scheduler/status",
                "health": "/health"
            },
            "websocket": {
                "serverEvents": ["connection:success", "vehicles:snapshot", "vehicle:update"],
                "clientEvents": ["vehicle:request"]
            }
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint"""
        runtime = app.state.runtime
        channel = getattr(app.state, 'channel', None)

        return {
            "status": "healthy" if runtime and runtime.is_running else "starting",
            "timestamp": time.time(),
            "uptime": round(time.time() - runtime.started_at, 1) if runtime and runtime.started_at else 0,
            "websocket": {
                "connected_clients": len(channel.observer_ids) if channel else 0,
                "status": "ready" if channel else "down"
            }
        }

    return app


def create_asgi_app() -> socketio.ASGIApp:
    """
    Process entry point: environment, logging, app and Socket.IO mount
    """
    load_dotenv()
    config = ConfigManager()
    configure_logging(config.get('system.logging.level', 'INFO'), config.get('system.logging.format'))

    sio = create_sio(config)
    app = create_app(config, sio)
    return socketio.ASGIApp(sio, app)


# ============================================
# Entry Point
# ============================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fleetcast.main:create_asgi_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
