from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from dotenv import load_dotenv
import logging
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .routers.analysis import router as analysis_router
from .routers.auth import router as auth_router
from .routers.records import router as records_router
from ..config import Settings
from ..core.validator import Clock, utc_now
from ..domain.errors import GdpError
from ..infrastructure.events import build_publisher
from ..infrastructure.record_store import RecordStore, build_record_store
from ..observability.metrics import metrics_middleware_factory
from ..services.record_gateway import RecordGateway
from ..services.trend_summarizer import CompletionClient, TrendSummarizer, build_completion_client

load_dotenv()  # Load environment variables from .env if present (MONGO_URL, OPENAI_API_KEY, etc.)

API_NAME = "GDP Insights API"
API_VERSION = "0.1.0"

logger = logging.getLogger("gdp.api")


async def _gdp_error_handler(request: Request, exc: GdpError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[RecordStore] = None,
    completion_client: Optional[CompletionClient] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """Build the API with its collaborators wired in.

    ``store`` and ``completion_client`` default to what ``settings`` describes;
    tests pass fakes instead.
    """
    settings = settings or Settings.from_env()
    store = store if store is not None else build_record_store(settings)
    gateway = RecordGateway(store, clock=clock, cache_listing=store.kind != "mongo")
    publisher = build_publisher(settings.redis_url)
    if publisher is not None:
        gateway.subscribe(publisher)
    client = completion_client if completion_client is not None else build_completion_client(settings)

    app = FastAPI(title=API_NAME, version=API_VERSION)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.summarizer = TrendSummarizer(client)
    logger.info("Record store: %s", gateway.store_kind)

    app.add_exception_handler(GdpError, _gdp_error_handler)
    app.middleware("http")(metrics_middleware_factory())

    for router in (records_router, analysis_router, auth_router):
        app.include_router(router)
        # also exposed under /api for the web client
        app.include_router(router, prefix="/api")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _health() -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "components": {
                "api": "ok",
                "store": gateway.store_kind,
                "llm": app.state.summarizer.describe().get("provider") or "unconfigured",
            },
        }

    def _metrics() -> Response:
        data = generate_latest(REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    def _root() -> dict:
        return {"name": API_NAME, "version": API_VERSION}

    for prefix in ("", "/api"):
        app.add_api_route(f"{prefix}/" if not prefix else prefix, _root, methods=["GET"])
        app.add_api_route(f"{prefix}/health", _health, methods=["GET"])
        app.add_api_route(f"{prefix}/metrics", _metrics, methods=["GET"])

    return app


app = create_app()
