from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Header, Path, Query, Request, status
from fastapi.responses import JSONResponse

from pulse import __version__, categories
from pulse.analytics import CategoryAnalytics
from pulse.config import Settings, settings as default_settings
from pulse.errors import CategoryExists, NotFound
from pulse.logging_config import configure_logging
from pulse.schemas import CATEGORY_NAME_RE, CategoryCreate, EventCreate, EventPage
from pulse.store import SqlEventStore
from pulse.windowing import TimeRange

log = logging.getLogger(__name__)

CategoryName = Annotated[str, Path(min_length=1, max_length=64, pattern=CATEGORY_NAME_RE.pattern)]

def _error(status_code: int, error: str, code: str, details=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "code": code, "details": details or []})

async def current_user(x_user_id: str = Header(..., alias="X-User-Id", min_length=1)) -> str:
    return x_user_id

def create_app(store: Optional[SqlEventStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    s = settings or default_settings
    store = store or SqlEventStore(s.database_url)
    analytics = CategoryAnalytics(store, settings=s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(s.log_level)
        store.init_schema()
        yield
        store.engine.dispose()

    app = FastAPI(title="Event Category Analytics API", version=__version__, lifespan=lifespan)
    app.state.store = store
    app.state.analytics = analytics

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        return _error(status.HTTP_404_NOT_FOUND, str(exc), "NOT_FOUND")

    @app.exception_handler(CategoryExists)
    async def _exists(request: Request, exc: CategoryExists):
        return _error(status.HTTP_409_CONFLICT, str(exc), "CONFLICT")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        log.exception("unhandled error on %s %s", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")

    @app.get("/health")
    def health():
        return {"ok": True, "version": __version__, "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/v1/categories")
    async def list_categories(user_id: str = Depends(current_user)):
        metrics = await analytics.list_category_metrics(user_id)
        return {"categories": [m.model_dump(mode="json") for m in metrics]}

    @app.post("/v1/categories", status_code=status.HTTP_201_CREATED)
    async def create_category(body: CategoryCreate, user_id: str = Depends(current_user)):
        category = await asyncio.to_thread(categories.create_category, store, user_id, body.name, body.color, body.emoji)
        return {"category": category.model_dump(mode="json")}

    @app.post("/v1/categories/quickstart")
    async def quickstart(user_id: str = Depends(current_user)):
        count = await asyncio.to_thread(categories.insert_quickstart_categories, store, user_id)
        return {"success": True, "count": count}

    @app.delete("/v1/categories/{name}")
    async def delete_category(name: CategoryName, user_id: str = Depends(current_user)):
        await asyncio.to_thread(categories.delete_category, store, user_id, name)
        return {"success": True}

    @app.get("/v1/categories/{name}/poll")
    async def poll_category(name: CategoryName, user_id: str = Depends(current_user)):
        return {"has_events": await analytics.has_events(name, user_id)}

    @app.get("/v1/categories/{name}/events", response_model=EventPage)
    async def events_by_category(
        name: CategoryName,
        page: int = Query(1, ge=1),
        limit: int = Query(s.max_page_size, ge=1, le=s.max_page_size),
        time_range: TimeRange = Query("month"),
        user_id: str = Depends(current_user),
    ):
        return await analytics.query_events(name, user_id, page=page, limit=limit, time_range=time_range)

    @app.post("/v1/categories/{name}/events", status_code=status.HTTP_201_CREATED)
    async def record_event(body: EventCreate, name: CategoryName, user_id: str = Depends(current_user)):
        event = await asyncio.to_thread(categories.record_event, store, user_id, name, body.fields)
        return {"event": event.model_dump(mode="json")}

    return app

app = create_app()
