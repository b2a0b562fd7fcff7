from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from loguru import logger

from api.router import router as dashboard_router
from core.config import FIRMS_API_KEY, OPENWEATHER_API_KEY, REFRESH_INTERVAL_SECONDS, TERRITORY_NAME
from core.dashboard import WildfireDashboard
from core.gateway import Gateway, HttpGateway, MockGateway
from core.historical import HistoricalService
from core.logger import setup_logging


def default_gateway() -> Gateway:
    """Real feeds when both API keys are configured, demo data otherwise."""
    if FIRMS_API_KEY and OPENWEATHER_API_KEY:
        return HttpGateway(FIRMS_API_KEY, OPENWEATHER_API_KEY)
    return MockGateway()


def create_app(gateway: Optional[Gateway] = None, interval: float = REFRESH_INTERVAL_SECONDS) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        source = gateway or default_gateway()
        logger.info(
            "Starting wildfire watch for {territory} with {gateway}",
            territory=TERRITORY_NAME,
            gateway=type(source).__name__,
        )
        app.state.dashboard = WildfireDashboard(source, interval=interval)
        app.state.historical = HistoricalService(source)
        app.state.dashboard.start()
        try:
            yield
        finally:
            await app.state.dashboard.stop()
            if isinstance(source, HttpGateway):
                await source.close()

    app = FastAPI(title="Wildfire Watch", lifespan=lifespan)
    app.include_router(dashboard_router)
    return app


setup_logging()
app = create_app()
