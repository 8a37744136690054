from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .exceptions import ConfigurationError, ValidationError, WorldDataError, get_error_response
from .models import CountryRecord, CountrySummary, HealthResponse, IndicatorKind, SeriesPoint
from .providers.base import normalize_country_code
from .services.cache_store import CacheStore
from .services.country import CountryService
from .services.http_pool import HTTPClientPool, close_http_pool
from .services.prefetch import prefetch_regions
from .services.redis_cache import RedisCacheBackend

settings: Settings = get_settings()

logger = logging.getLogger("worlddata")
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

SERVICE_NAME = "world-data-explorer-backend"
PUBLIC_CACHE_CONTROL = "public, max-age=300, stale-while-revalidate=600"


async def build_cache_store(app_settings: Settings) -> CacheStore:
    """Memory-only store, with the Redis tier attached when REDIS_URL is set and reachable."""
    cache = CacheStore()
    if not app_settings.durable_cache_enabled:
        logger.info("REDIS_URL not set. Using in-memory cache only.")
        return cache

    durable = RedisCacheBackend(app_settings.redis_url)
    try:
        connected = await durable.connect()
    except ConfigurationError as e:
        logger.error(f"{e.message} (continuing with in-memory cache)")
        return cache
    if connected:
        cache.attach_durable(durable)
    else:
        logger.warning("Redis connection failed (continuing with in-memory cache)")
    return cache


async def _prefetch_loop(service: CountryService, app_settings: Settings) -> None:
    try:
        await prefetch_regions(
            service,
            app_settings.prefetch_regions,
            concurrency=app_settings.prefetch_concurrency,
            delay=app_settings.prefetch_delay,
        )
    except Exception as e:
        logger.warning(f"Prefetch failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # === STARTUP ===
    HTTPClientPool.open()
    cache = await build_cache_store(settings)
    service = CountryService.from_settings(cache, settings)
    app.state.cache = cache
    app.state.country_service = service

    app.state.prefetch_task = None
    if settings.prefetch:
        app.state.prefetch_task = asyncio.create_task(_prefetch_loop(service, settings))

    logger.info(f"{SERVICE_NAME} ready on port {settings.port}")

    yield

    # === SHUTDOWN ===
    prefetch_task: asyncio.Task | None = getattr(app.state, "prefetch_task", None)
    if prefetch_task:
        prefetch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await prefetch_task

    await service.aclose()
    await cache.close()
    await close_http_pool()


app = FastAPI(title="World Data Explorer API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request and mark public GET API responses as cacheable."""
    started = time.perf_counter()
    response = await call_next(request)
    if request.method == "GET" and request.url.path.startswith("/api"):
        response.headers.setdefault("Cache-Control", PUBLIC_CACHE_CONTROL)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
    return response


@app.exception_handler(WorldDataError)
async def world_data_error_handler(_request: Request, exc: WorldDataError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=get_error_response(exc))


@app.exception_handler(Exception)
async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Error: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=get_error_response(exc))


def get_country_service(request: Request) -> CountryService:
    return request.app.state.country_service


def _validated_code(code: str) -> str:
    country = normalize_country_code(code)
    if len(country) < 2:
        raise ValidationError("Invalid country code", field="code")
    return country


def _indicator_kind(kind: str) -> IndicatorKind:
    try:
        return IndicatorKind(kind.lower())
    except ValueError:
        raise ValidationError(f"Unknown indicator: {kind}", field="kind", status_code=404) from None


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    cache: CacheStore | None = getattr(request.app.state, "cache", None)
    cache_stats = await cache.get_stats() if cache else {}
    return HealthResponse(
        ok=True,
        service=SERVICE_NAME,
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.environment,
        cache=cache_stats,
        http=HTTPClientPool.get_stats(),
    )


@app.get("/api/country/{code}", response_model=CountryRecord)
async def country(code: str, service: CountryService = Depends(get_country_service)) -> CountryRecord:
    return await service.get_country_combined(_validated_code(code))


@app.get("/api/gdp/{code}", response_model=List[SeriesPoint])
async def gdp(code: str, service: CountryService = Depends(get_country_service)) -> List[SeriesPoint]:
    return await service.get_indicator_series(normalize_country_code(code), IndicatorKind.GDP)


@app.get("/api/population/{code}", response_model=List[SeriesPoint])
async def population(code: str, service: CountryService = Depends(get_country_service)) -> List[SeriesPoint]:
    return await service.get_indicator_series(normalize_country_code(code), IndicatorKind.POPULATION)


@app.get("/api/indicator/{kind}/{code}", response_model=List[SeriesPoint])
async def indicator(
    kind: str,
    code: str,
    service: CountryService = Depends(get_country_service),
) -> List[SeriesPoint]:
    return await service.get_indicator_series(normalize_country_code(code), _indicator_kind(kind))


@app.get("/api/search", response_model=List[CountrySummary])
async def search(
    q: str = Query(default=""),
    service: CountryService = Depends(get_country_service),
) -> List[CountrySummary]:
    query = q.strip()
    if not query:
        return []
    return await service.search_countries(query)


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("worlddata.main:app", host="0.0.0.0", port=settings.port)
