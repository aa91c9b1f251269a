"""FastAPI server exposing restaurant ingestion and the saved list."""

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from snapbite.config import Config, get_config, setup_logging
from snapbite.errors import RecordNotFoundError, ValidationError
from snapbite.models import (
    Coordinates,
    IngestionRequest,
    IngestionResult,
    IngestionStatus,
    ManualFields,
    RestaurantRecord,
    RestaurantUpdate,
)
from snapbite.services.deduplication import DeduplicationGate
from snapbite.services.geocoding_service import GeocodingResolver
from snapbite.services.ingestion import RestaurantIngestionPipeline
from snapbite.services.proximity import ProximityAlert, ProximityMonitor
from snapbite.services.restaurant_store import RestaurantStore, SortKey
from snapbite.services.vision_service import VisionExtractionClient

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    IngestionStatus.CREATED: 201,
    IngestionStatus.DUPLICATE_REJECTED: 409,
    IngestionStatus.NEEDS_MANUAL_ENTRY: 202,
}


class ScanRequest(BaseModel):
    """Screenshot upload for analysis."""

    image_base64: str = Field(..., min_length=1, description="Base64-encoded JPEG")
    image_uri: str | None = Field(None, description="Where the screenshot lives")


class AlertResponse(BaseModel):
    """Proximity alert as returned by the API."""

    restaurant: RestaurantRecord
    distance_meters: float
    message: str


def create_app(
    config: Config | None = None,
    store: RestaurantStore | None = None,
    pipeline: RestaurantIngestionPipeline | None = None,
) -> FastAPI:
    """Build the API application.

    Components that are not passed in are created from configuration when
    the application starts.

    Args:
        config: Application configuration (global config if None)
        store: Restaurant store to serve
        pipeline: Ingestion pipeline writing to ``store``

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Application lifespan manager."""
        cfg = config or get_config()
        logger.info(f"Starting SnapBite API on {cfg.server_host}:{cfg.server_port}")

        if store is not None:
            app_store = store
        elif pipeline is not None:
            app_store = pipeline.store
        else:
            app_store = RestaurantStore(cfg.storage_path)

        http_client = None
        app_pipeline = pipeline
        if app_pipeline is None:
            http_client = httpx.AsyncClient(timeout=cfg.request_timeout_seconds)
            vision = VisionExtractionClient(cfg)
            app_pipeline = RestaurantIngestionPipeline(
                store=app_store,
                geocoder=GeocodingResolver(cfg, http_client=http_client),
                vision=vision if vision.is_configured() else None,
                gate=DeduplicationGate(cfg.duplicate_radius_meters),
            )
            logger.info("✓ Ingestion pipeline initialized")

        _app.state.store = app_store
        _app.state.pipeline = app_pipeline
        _app.state.monitor = ProximityMonitor(
            app_store, radius_meters=cfg.proximity_radius_meters
        )

        yield

        if http_client is not None:
            await http_client.aclose()
        logger.info("Shutting down SnapBite API")

    app = FastAPI(
        title="SnapBite API",
        description="Restaurant discovery from screenshots",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(_request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"error": str(exc)})

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(_request: Request, exc: RecordNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    _register_routes(app)
    return app


def get_store(request: Request) -> RestaurantStore:
    """Dependency to get the restaurant store from app state."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store not initialized yet")
    return store


def get_pipeline(request: Request) -> RestaurantIngestionPipeline:
    """Dependency to get the ingestion pipeline from app state."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized yet")
    return pipeline


def get_monitor(request: Request) -> ProximityMonitor:
    """Dependency to get the proximity monitor from app state."""
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        raise HTTPException(status_code=503, detail="Monitor not initialized yet")
    return monitor


def _ingestion_response(result: IngestionResult) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_CODES[result.status],
        content=result.model_dump(mode="json"),
    )


def _to_alert_response(alert: ProximityAlert) -> AlertResponse:
    return AlertResponse(
        restaurant=alert.restaurant,
        distance_meters=alert.distance_meters,
        message=alert.message,
    )


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "healthy", "service": "snapbite-api"}

    @app.get("/restaurants", response_model=list[RestaurantRecord])
    async def list_restaurants(
        q: str | None = Query(None, description="Search text"),
        sort: SortKey = Query("date", description="date, name or distance"),
        lat: float | None = Query(None, ge=-90, le=90),
        lon: float | None = Query(None, ge=-180, le=180),
        store: RestaurantStore = Depends(get_store),
    ):
        """List saved restaurants, optionally filtered and sorted."""
        origin = None
        if lat is not None and lon is not None:
            origin = Coordinates(latitude=lat, longitude=lon)
        if sort == "distance" and origin is None:
            raise HTTPException(
                status_code=400, detail="lat and lon are required to sort by distance"
            )

        ordered = store.sorted_by(sort, origin)
        if q:
            matching = {record.id for record in store.search(q)}
            ordered = [record for record in ordered if record.id in matching]
        return ordered

    @app.get("/restaurants/nearby", response_model=list[RestaurantRecord])
    async def nearby_restaurants(
        lat: float = Query(..., ge=-90, le=90),
        lon: float = Query(..., ge=-180, le=180),
        radius_km: float = Query(1.0, gt=0),
        store: RestaurantStore = Depends(get_store),
    ):
        """List restaurants within a radius of a point, nearest first."""
        return store.nearby(Coordinates(latitude=lat, longitude=lon), radius_km)

    @app.get("/restaurants/{restaurant_id}", response_model=RestaurantRecord)
    async def get_restaurant(
        restaurant_id: str, store: RestaurantStore = Depends(get_store)
    ):
        """Get one saved restaurant."""
        record = store.get(restaurant_id)
        if record is None:
            raise RecordNotFoundError(restaurant_id)
        return record

    @app.post("/restaurants/scan")
    async def scan_screenshot(
        body: ScanRequest,
        pipeline: RestaurantIngestionPipeline = Depends(get_pipeline),
    ):
        """Analyze a screenshot and save the restaurant it shows.

        Returns 201 when saved, 409 for a duplicate and 202 when the
        screenshot could not be read and details must be entered by hand.
        """
        result = await pipeline.ingest(
            IngestionRequest(image_base64=body.image_base64, image_uri=body.image_uri)
        )
        return _ingestion_response(result)

    @app.post("/restaurants")
    async def add_restaurant(
        fields: ManualFields,
        pipeline: RestaurantIngestionPipeline = Depends(get_pipeline),
    ):
        """Save a restaurant from hand-entered details."""
        result = await pipeline.ingest(IngestionRequest(manual_fields=fields))
        return _ingestion_response(result)

    @app.patch("/restaurants/{restaurant_id}", response_model=RestaurantRecord)
    async def update_restaurant(
        restaurant_id: str,
        changes: RestaurantUpdate,
        store: RestaurantStore = Depends(get_store),
    ):
        """Update visited status, notes or other details."""
        return await asyncio.to_thread(store.update, restaurant_id, changes)

    @app.delete("/restaurants/{restaurant_id}", status_code=204)
    async def delete_restaurant(
        restaurant_id: str, store: RestaurantStore = Depends(get_store)
    ):
        """Permanently remove a restaurant."""
        if not await asyncio.to_thread(store.delete, restaurant_id):
            raise RecordNotFoundError(restaurant_id)
        return Response(status_code=204)

    @app.get("/alerts", response_model=list[AlertResponse])
    async def proximity_alerts(
        lat: float = Query(..., ge=-90, le=90),
        lon: float = Query(..., ge=-180, le=180),
        monitor: ProximityMonitor = Depends(get_monitor),
    ):
        """List saved restaurants close enough to trigger an alert."""
        alerts = monitor.check(Coordinates(latitude=lat, longitude=lon))
        return [_to_alert_response(alert) for alert in alerts]


app = create_app()


def run_server():
    """Run the FastAPI server using uvicorn.

    This is the main entry point for the server.
    """
    config = get_config()
    setup_logging(config)

    uvicorn.run(
        "snapbite.server:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run_server()
