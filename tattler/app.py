from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import DEFAULT_APP_CONFIG, AppConfig, setup_logging
from .restaurants.models import (
    CommentIn,
    GradeIn,
    Page,
    RestaurantCreate,
    RestaurantOut,
    RestaurantPatch,
)
from .restaurants.mutations import RestaurantMutationService
from .restaurants.results import ErrorKind, Failure, Result
from .restaurants.search import RestaurantQueryService
from .storage.base import DocumentStore
from .storage.memory import MemoryDocumentStore

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.bad_request: 400,
    ErrorKind.not_found: 404,
    ErrorKind.conflict: 409,
    ErrorKind.internal: 500,
}


def _unwrap(result: Result[Any]) -> Any:
    if isinstance(result, Failure):
        detail: dict[str, Any] = {"message": result.message}
        if result.errors:
            detail["errors"] = list(result.errors)
        raise HTTPException(status_code=STATUS_BY_KIND[result.kind], detail=detail)
    return result.value


def _entity(restaurant: RestaurantOut) -> dict:
    return restaurant.model_dump(mode="json", by_alias=True, exclude_none=True)


def _paginated(page: Page) -> dict:
    return {
        "success": True,
        "data": [_entity(r) for r in page.data],
        "pagination": page.pagination.model_dump(by_alias=True),
    }


def _success(data: Any, message: str) -> dict:
    return {"success": True, "message": message, "data": data}


def get_queries(request: Request) -> RestaurantQueryService:
    return request.app.state.queries


def get_mutations(request: Request) -> RestaurantMutationService:
    return request.app.state.mutations


# ── Restaurant endpoints ─────────────────────────────────────────────────

router = APIRouter(prefix="/restaurants")


@router.get("")
async def list_restaurants(
    page: str | None = None,
    limit: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    return _paginated(_unwrap(await queries.list_restaurants(page, limit, sort, order)))


@router.get("/stats")
async def stats(mutations: RestaurantMutationService = Depends(get_mutations)) -> dict:
    result = _unwrap(await mutations.stats())
    return _success(result.model_dump(by_alias=True), "Statistics retrieved successfully")


@router.get("/search")
async def search(
    q: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    return _paginated(_unwrap(await queries.search(q, page, limit, sort, order)))


@router.get("/cuisine/{cuisine}")
async def by_cuisine(
    cuisine: str,
    page: str | None = None,
    limit: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    return _paginated(_unwrap(await queries.filter_by_cuisine(cuisine, page, limit, sort, order)))


@router.get("/borough/{borough}")
async def by_borough(
    borough: str,
    page: str | None = None,
    limit: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    return _paginated(_unwrap(await queries.filter_by_borough(borough, page, limit, sort, order)))


@router.get("/filter")
async def by_cuisine_and_borough(
    cuisine: str | None = None,
    borough: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    result = await queries.filter_by_cuisine_and_borough(cuisine, borough, page, limit, sort, order)
    return _paginated(_unwrap(result))


@router.get("/score")
async def by_average_score(
    min_score: str | None = Query(None, alias="minScore"),
    max_score: str | None = Query(None, alias="maxScore"),
    page: str | None = None,
    limit: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    return _paginated(_unwrap(await queries.filter_by_average_score(min_score, max_score, page, limit)))


@router.get("/nearby")
async def nearby(
    lng: str | None = None,
    lat: str | None = None,
    radius: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    return _paginated(_unwrap(await queries.find_nearby(lng, lat, radius, page, limit)))


@router.get("/restaurant-id/{business_id}")
async def by_business_id(
    business_id: str,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    restaurant = _unwrap(await queries.get_by_business_id(business_id))
    return _success(_entity(restaurant), "Restaurant retrieved successfully")


@router.get("/{restaurant_id}")
async def by_id(
    restaurant_id: str,
    queries: RestaurantQueryService = Depends(get_queries),
) -> dict:
    restaurant = _unwrap(await queries.get_by_id(restaurant_id))
    return _success(_entity(restaurant), "Restaurant retrieved successfully")


@router.post("", status_code=201)
async def create(
    body: RestaurantCreate,
    mutations: RestaurantMutationService = Depends(get_mutations),
) -> dict:
    restaurant = _unwrap(await mutations.create(body))
    return _success(_entity(restaurant), "Restaurant created successfully")


@router.put("/{restaurant_id}")
async def update(
    restaurant_id: str,
    body: RestaurantCreate,
    mutations: RestaurantMutationService = Depends(get_mutations),
) -> dict:
    restaurant = _unwrap(await mutations.update(restaurant_id, body))
    return _success(_entity(restaurant), "Restaurant updated successfully")


@router.patch("/{restaurant_id}")
async def partial_update(
    restaurant_id: str,
    body: RestaurantPatch,
    mutations: RestaurantMutationService = Depends(get_mutations),
) -> dict:
    restaurant = _unwrap(await mutations.partial_update(restaurant_id, body))
    return _success(_entity(restaurant), "Restaurant updated successfully")


@router.delete("/{restaurant_id}")
async def delete(
    restaurant_id: str,
    mutations: RestaurantMutationService = Depends(get_mutations),
) -> dict:
    _unwrap(await mutations.delete(restaurant_id))
    return {"success": True, "message": "Restaurant deleted successfully"}


@router.post("/{restaurant_id}/grades", status_code=201)
async def add_grade(
    restaurant_id: str,
    body: GradeIn,
    mutations: RestaurantMutationService = Depends(get_mutations),
) -> dict:
    restaurant = _unwrap(await mutations.add_grade(restaurant_id, body))
    return _success(_entity(restaurant), "Grade added successfully")


@router.post("/{restaurant_id}/comments", status_code=201)
async def add_comment(
    restaurant_id: str,
    body: CommentIn,
    mutations: RestaurantMutationService = Depends(get_mutations),
) -> dict:
    restaurant = _unwrap(await mutations.add_comment(restaurant_id, body))
    return _success(_entity(restaurant), "Comment added successfully")


# ── Application factory ──────────────────────────────────────────────────


def create_app(
    store_factory: Callable[[], DocumentStore] = MemoryDocumentStore.from_config,
    config: AppConfig = DEFAULT_APP_CONFIG,
) -> FastAPI:
    """Build the API. The store is opened at startup and closed at shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = store_factory()
        app.state.queries = RestaurantQueryService(store)
        app.state.mutations = RestaurantMutationService(store)
        logger.info("%s v%s ready", config.title, config.version)
        try:
            yield
        finally:
            await store.close()

    app = FastAPI(title=config.title, version=config.version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 1)
        logger.info("%s %s - %d - %sms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
        body = {"success": False, "message": detail.get("message"), "statusCode": exc.status_code}
        if detail.get("errors"):
            body["errors"] = detail["errors"]
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation failed", "statusCode": 400, "errors": errors},
        )

    @app.get("/health")
    def health() -> dict:
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get(config.api_prefix)
    def api_index() -> dict:
        return {
            "success": True,
            "message": f"{config.title} {config.api_prefix.rsplit('/', 1)[-1]}",
            "version": config.version,
            "endpoints": {
                "restaurants": f"{config.api_prefix}/restaurants",
                "stats": f"{config.api_prefix}/restaurants/stats",
                "health": "/health",
            },
        }

    app.include_router(router, prefix=config.api_prefix)
    return app


setup_logging()
app = create_app()
