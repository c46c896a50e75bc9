"""Entry point for the FastAPI-powered Stremio addon."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any
from urllib.parse import parse_qs

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, settings
from .database import Database
from .services.cache_store import CacheStore
from .services.catalog_service import CatalogQueryService
from .services.refresh import RefreshPipeline
from .services.scheduler import RefreshScheduler
from .services.tmdb import TMDBClient

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

CATALOG_ID = "action-movies-catalog"
MANIFEST_ID = "org.stremio.action-addon"


def configure_logging(config: Settings) -> None:
    """Log to the console and, when configured, to a file."""

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT, handlers=handlers)


configure_logging(settings)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    config: Settings = getattr(fastapi_app.state, "settings", settings)
    transport: httpx.AsyncBaseTransport | None = getattr(
        fastapi_app.state, "tmdb_transport", None
    )
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(config.tmdb_api_url),
            timeout=httpx.Timeout(20.0, connect=10.0),
            transport=transport,
        )
    )
    database = Database(config.database_url)
    try:
        await database.create_all()
    except SQLAlchemyError as exc:
        logger.error("Error preparing cache database: %s", exc)

    store = CacheStore(database.session_factory)
    await store.load()

    scheduler: RefreshScheduler | None = None
    if config.tmdb_api_key:
        client = TMDBClient(config, tmdb_http_client)
        pipeline = RefreshPipeline(client, store, config.genre_combinations)
        scheduler = RefreshScheduler(
            pipeline,
            store,
            hour=config.refresh_hour,
            minute=config.refresh_minute,
            max_age=config.cache_max_age,
        )
    else:
        logger.warning("TMDB_API_KEY is not configured; serving cached data only")

    fastapi_app.state.query_service = CatalogQueryService(store)
    fastapi_app.state.scheduler = scheduler
    if scheduler is not None:
        await scheduler.start()

    logger.info("Starting Stremio Add-on server on port %s", config.server_port)
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        await database.dispose()
        await exit_stack.aclose()


def create_app(
    config: Settings | None = None,
    *,
    tmdb_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the add-on application.

    ``config`` defaults to the environment settings. ``tmdb_transport`` swaps
    the network layer of the TMDB client, which lets tests run the full
    lifespan against a mocked API.
    """

    config = config or settings
    fastapi_app = FastAPI(
        title=config.app_name,
        description="Stremio add-on showcasing TMDB movies with configurable filters",
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = config
    fastapi_app.state.tmdb_transport = tmdb_transport

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_query_service(app: FastAPI) -> CatalogQueryService:
    service = getattr(app.state, "query_service", None)
    if not isinstance(service, CatalogQueryService):
        raise RuntimeError("Query service not initialised")
    return service


def build_manifest(config: Settings) -> dict[str, Any]:
    return {
        "id": MANIFEST_ID,
        "version": "1.0.0",
        "name": config.app_name,
        "description": "Stremio Add-on to showcase movies with configurable filters",
        "catalogs": [
            {
                "type": "movie",
                "id": CATALOG_ID,
                "name": config.app_name,
                "extra": [{"name": "search", "isRequired": False}],
            }
        ],
        "resources": ["catalog", "meta"],
        "types": ["movie"],
        "idPrefixes": ["tmdb"],
    }


def _parse_extra(raw_extra: str | None) -> dict[str, str]:
    """Parse Stremio's ``key=value&key=value`` extra path segment."""

    if not raw_extra:
        return {}
    parsed = parse_qs(raw_extra, keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items() if values}


def register_routes(fastapi_app: FastAPI) -> None:
    def _catalog_payload(
        catalog_id: str, extra: dict[str, str]
    ) -> JSONResponse:
        if catalog_id != CATALOG_ID:
            raise HTTPException(status_code=404, detail=f"Unknown catalog {catalog_id}")
        service = get_query_service(fastapi_app)
        search_query = extra.get("search", "")
        logger.debug("Catalog request received. Query: %r", search_query)
        summaries = service.search_catalog(search_query)
        logger.info(
            "Catalog request processed. Query: %r, Results: %s",
            search_query,
            len(summaries),
        )
        return JSONResponse({"metas": [summary.to_stremio() for summary in summaries]})

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/cache/status")
    async def cache_status() -> dict[str, Any]:
        service = get_query_service(fastapi_app)
        scheduler = getattr(fastapi_app.state, "scheduler", None)
        return {
            **service.cache_status(),
            "refreshing": bool(scheduler is not None and scheduler.is_refreshing),
        }

    @fastapi_app.get("/manifest.json")
    async def manifest() -> dict[str, Any]:
        return build_manifest(getattr(fastapi_app.state, "settings", settings))

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}.json")
    async def catalog(content_type: str, catalog_id: str) -> JSONResponse:
        if content_type != "movie":
            raise HTTPException(status_code=400, detail="Unsupported content type")
        return _catalog_payload(catalog_id, {})

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}/{extra}.json")
    async def catalog_with_extra(
        content_type: str, catalog_id: str, extra: str
    ) -> JSONResponse:
        if content_type != "movie":
            raise HTTPException(status_code=400, detail="Unsupported content type")
        return _catalog_payload(catalog_id, _parse_extra(extra))

    @fastapi_app.get("/meta/{content_type}/{meta_id}.json")
    async def meta(content_type: str, meta_id: str) -> JSONResponse:
        if content_type != "movie":
            raise HTTPException(status_code=400, detail="Unsupported content type")
        service = get_query_service(fastapi_app)
        view = service.get_metadata(meta_id)
        if view is None:
            return JSONResponse({"meta": None})
        logger.info("Meta request processed for movie ID: %s", meta_id)
        return JSONResponse({"meta": view.to_stremio()})


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
