"""
Road Trip Planner API entry point.

Builds the FastAPI app, wires the shared TripPlanner in the lifespan and
refuses to start on missing configuration.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import ConfigurationError, load_config
from .processing.pipeline import TripPlanner
from .api.routes import router, set_planner
from .api.saved_routes import router as saved_routes_router
from .api.sessions import router as sessions_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


async def _build_planner() -> TripPlanner:
    """Planner from environment config, with a provider connectivity report."""
    config = load_config()
    for api, available in config.validate_apis().items():
        logger.info(f"  {api}: {'configured' if available else 'not configured'}")

    planner = TripPlanner(config)
    logger.info("Checking provider connectivity...")
    results = await planner.test_all_apis()
    if not all(results.values()):
        # Keep serving; resolution degrades to "no route" until providers answer
        logger.error("Provider check failed. Verify MAPBOX_ACCESS_TOKEN and network access.")
    return planner


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the planner on startup and release its resources on shutdown."""
    logger.info("Road Trip Planner API starting")

    try:
        # A planner passed to create_app() is used as-is
        planner = app.state.planner or await _build_planner()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Set the variables listed in .env.example and restart.")
        sys.exit(1)

    await planner.start()
    app.state.planner = planner
    set_planner(planner)
    logger.info(
        f"Ready on {planner.config.backend_host}:{planner.config.backend_port} "
        f"(directions: {planner.config.directions_provider})"
    )

    try:
        yield
    finally:
        logger.info("Stopping planner")
        set_planner(None)
        await planner.close()
        logger.info("Stopped")


def create_app(planner: Optional[TripPlanner] = None) -> FastAPI:
    """FastAPI app; pass a planner to skip environment loading (tests)."""
    if planner is not None:
        cors_origins = planner.config.cors_origins
    else:
        try:
            cors_origins = load_config().cors_origins
        except ConfigurationError:
            # lifespan reports the problem at startup
            cors_origins = ["*"]

    app = FastAPI(
        title="Road Trip Planner API",
        description="Multi-stop driving routes with fuel cost estimates",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.planner = planner

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for api_router in (router, saved_routes_router, sessions_router):
        app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = load_config()
    uvicorn.run(
        "roadtrip.main:app",
        host=config.backend_host,
        port=config.backend_port,
        reload=False,
    )
